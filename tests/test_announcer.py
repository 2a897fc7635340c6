from campusnav.motion import NEUTRAL_SAMPLE, MovementSample, MovementStatus
from campusnav.navigation import Announcer
from conftest import FakeSynthesizer

WALKING = MovementSample(status=MovementStatus.MOVING, bearing=90.0, speed=1.2)


class FakeClock:
    def __init__(self):
        self.now = 100.0

    def __call__(self):
        return self.now


def _announcer(executor, synthesizer=None, sink=None):
    clock = FakeClock()
    announcer = Announcer(
        synthesizer or FakeSynthesizer(),
        executor,
        audio_sink=sink,
        moving_reminder_seconds=8.0,
        stationary_reminder_seconds=20.0,
        clock=clock,
    )
    return announcer, clock


def test_disabled_without_synthesizer(executor):
    announcer = Announcer(None, executor)
    assert not announcer.enabled
    assert not announcer.announce("hello", "urgent")
    assert executor.calls == []


def test_priority_rate_limit(executor):
    announcer, clock = _announcer(executor)

    assert announcer.announce("first", "normal")
    clock.now += 1.5
    assert not announcer.announce("second", "normal")
    assert announcer.announce("third", "high")
    assert announcer.announce("fourth", "urgent")
    clock.now += 4.0
    assert not announcer.announce("fifth", "low")
    clock.now += 1.0
    assert announcer.announce("sixth", "low")


def test_repeat_is_suppressed_briefly(executor):
    announcer, clock = _announcer(executor)

    assert announcer.announce("Turn left", "urgent")
    clock.now += 1.0
    assert not announcer.announce("Turn left", "urgent")
    clock.now += 3.0
    assert announcer.announce("Turn left", "urgent")


def test_reminders_are_paced_by_movement(executor):
    announcer, clock = _announcer(executor)

    assert announcer.reminder_interval(WALKING) == 8.0
    assert announcer.reminder_interval(NEUTRAL_SAMPLE) == 20.0

    assert announcer.remind("Head towards the library", WALKING)
    clock.now += 8.0
    assert announcer.remind("Head towards the library", WALKING)
    clock.now += 8.0
    assert not announcer.remind("Head towards the library", NEUTRAL_SAMPLE)
    clock.now += 12.0
    assert announcer.remind("Head towards the library", NEUTRAL_SAMPLE)


def test_synthesized_audio_reaches_sink(executor):
    received = []
    synthesizer = FakeSynthesizer()
    announcer, _ = _announcer(executor, synthesizer, sink=received.append)

    announcer.announce("Welcome", "high")
    executor.run_all(announcer._synthesize)

    assert synthesizer.spoken == ["Welcome"]
    assert received == [b"audio"]


def test_synthesis_errors_are_contained(executor):
    class Broken:
        def speak(self, text):
            raise RuntimeError("quota exceeded")

    announcer, _ = _announcer(executor, Broken())
    announcer.announce("Welcome", "high")
    call = executor.calls[0]
    executor.run(call)

    assert call[3].exception() is None
