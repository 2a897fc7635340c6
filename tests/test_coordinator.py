import threading

import pytest

from campusnav.navigation import (
    ArrivalVerdict,
    Channel,
    DetectionResult,
    NavigationCoordinator,
    NavigationIssue,
    NavigationState,
    Role,
)
from campusnav.navigation.coordinator import FALLBACK_GUIDANCE, RETRY_TIPS
from conftest import FakeInstructionGenerator, FakeSynthesizer, FakeVerifier

IMAGE = b"\xff\xd8fake-jpeg"


@pytest.fixture
def nav(campus, classifier, verifier, instruction_generator, executor):
    coordinator = NavigationCoordinator(
        campus, classifier, verifier, instruction_generator, executor=executor
    )
    yield coordinator
    coordinator.shutdown()


def _texts(nav):
    return [m.text for m in nav.feedback.messages]


def _locate(nav, executor, classifier, result):
    classifier.answers.append(result)
    nav.capture_location(IMAGE)
    executor.run_all(classifier.classify)
    return nav.process_responses()


def test_confident_location_is_applied(nav, executor, classifier):
    applied = _locate(nav, executor, classifier, DetectionResult("gate", 0.9, "I see the arch"))

    assert applied == 1
    assert nav.snapshot().current_location_id == "gate"
    assert "Identified your location: Main Gate. I see the arch" in _texts(nav)


def test_nothing_is_applied_until_processed(nav, executor, classifier):
    classifier.answers.append(DetectionResult("gate", 0.9))
    nav.capture_location(IMAGE)
    executor.run_all(classifier.classify)

    assert nav.snapshot().current_location_id is None
    nav.process_responses()
    assert nav.snapshot().current_location_id == "gate"


def test_stale_capture_does_not_overwrite_newer_one(nav, executor, classifier):
    first = nav.capture_location(IMAGE)
    second = nav.capture_location(IMAGE)
    assert second == first + 1

    old_call, new_call = executor.pending_for(classifier.classify)

    classifier.answers.append(DetectionResult("admin", 0.9))
    executor.run(new_call)
    assert nav.process_responses() == 1

    classifier.answers.append(DetectionResult("library", 0.95))
    executor.run(old_call)
    assert nav.process_responses() == 0

    assert nav.snapshot().current_location_id == "admin"


def test_manual_location_overrides_capture_in_flight(nav, executor, classifier):
    nav.capture_location(IMAGE)
    nav.set_location("admin")

    classifier.answers.append(DetectionResult("gate", 0.99))
    executor.run_all(classifier.classify)
    nav.process_responses()

    assert nav.snapshot().current_location_id == "admin"


def test_reset_drops_in_flight_responses(nav, executor, classifier):
    nav.set_location("gate")
    nav.capture_destination(IMAGE)
    nav.reset()

    classifier.answers.append(DetectionResult("library", 0.99))
    executor.run_all(classifier.classify)

    assert nav.process_responses() == 0
    snap = nav.snapshot()
    assert snap.state == NavigationState.IDLE
    assert snap.destination_id is None
    assert snap.current_location_id == "gate"


def test_low_confidence_asks_then_confirm_applies(nav, executor, classifier):
    _locate(nav, executor, classifier, DetectionResult("library", 0.5))

    last = nav.feedback.last()
    assert last.issue == NavigationIssue.LOW_CONFIDENCE
    assert last.text == "Are you at the Central Library? I'm 50% sure."
    assert nav.snapshot().pending_roles == (Role.LOCATE,)
    assert nav.snapshot().current_location_id is None

    assert nav.confirm_pending(Role.LOCATE)
    assert nav.snapshot().current_location_id == "library"
    assert nav.pending(Role.LOCATE) is None


def test_dismiss_pending_gives_retry_tip(nav, executor, classifier):
    _locate(nav, executor, classifier, DetectionResult("library", 0.5))

    assert nav.dismiss_pending(Role.LOCATE)
    assert nav.snapshot().current_location_id is None
    assert nav.feedback.last().text == f"Okay. {RETRY_TIPS[Role.LOCATE]}"
    assert not nav.dismiss_pending(Role.LOCATE)


def test_confirm_without_pending_reports_invalid_command(nav):
    assert not nav.confirm_pending(Role.DESTINATION)
    assert nav.feedback.last().issue == NavigationIssue.INVALID_COMMAND


def test_new_capture_clears_pending(nav, executor, classifier):
    _locate(nav, executor, classifier, DetectionResult("library", 0.5))
    nav.capture_location(IMAGE)
    assert nav.pending(Role.LOCATE) is None


def test_destination_pending_question(nav, executor, classifier):
    nav.set_location("gate")
    classifier.answers.append(DetectionResult("canteen", 0.3))
    nav.capture_destination(IMAGE)
    executor.run_all(classifier.classify)
    nav.process_responses()

    assert nav.feedback.last().text == "Do you want to go to the Canteen? I'm 30% sure."
    assert nav.snapshot().state == NavigationState.IDLE


def test_classifier_failure_gives_retry_tip(nav, executor, classifier):
    def broken(image_bytes, role):
        raise RuntimeError("model offline")

    classifier.classify = broken
    nav.capture_location(IMAGE)
    executor.run_all(broken)
    nav.process_responses()

    last = nav.feedback.last()
    assert last.text == RETRY_TIPS[Role.LOCATE]
    assert last.issue == NavigationIssue.DETECTION_FAILURE


def test_route_change_requests_instructions(nav, executor, instruction_generator):
    nav.set_location("gate")
    nav.set_destination("library")

    assert nav.snapshot().path == ("gate", "admin", "library")
    executor.run_all(instruction_generator.instructions)
    nav.process_responses()

    assert instruction_generator.requests == [["Main Gate", "Admin Block", "Central Library"]]
    assert nav.snapshot().guidance == ("Walk north.", "Turn left at the fountain.")


def test_instructions_for_old_route_are_dropped(nav, executor, instruction_generator):
    nav.set_location("gate")
    nav.set_destination("library")
    nav.set_location("admin")

    executor.run_all(instruction_generator.instructions)

    assert nav.process_responses() == 1
    assert instruction_generator.requests[-1] == ["Admin Block", "Central Library"]


def test_instruction_failure_falls_back_to_steps(campus, classifier, verifier, executor):
    generator = FakeInstructionGenerator(lines=[])
    nav = NavigationCoordinator(campus, classifier, verifier, generator, executor=executor)

    nav.set_location("gate")
    nav.set_destination("library")
    executor.run_all(generator.instructions)
    nav.process_responses()

    guidance = nav.snapshot().guidance
    assert guidance[0] == "Head towards the Admin Block"
    assert guidance[-1] == "You have arrived at the Central Library!"
    assert FALLBACK_GUIDANCE in _texts(nav)


def test_unreachable_destination_is_reported(nav, executor):
    nav.set_location("gate")
    nav.set_destination("island")

    snap = nav.snapshot()
    assert snap.state == NavigationState.UNREACHABLE
    assert nav.feedback.with_issue(NavigationIssue.UNREACHABLE_DESTINATION)
    assert executor.calls == []


def test_full_trip_with_arrival(nav, executor, verifier):
    nav.set_location("gate")
    nav.set_destination("admin")

    assert nav.verify_arrival(IMAGE) is None

    assert nav.advance_step()
    assert nav.snapshot().state == NavigationState.AWAITING_ARRIVAL_CHECK
    assert "Take a photo of your destination to confirm you've arrived." in _texts(nav)

    assert nav.verify_arrival(IMAGE) is not None
    executor.run_all(verifier.verify_arrival)
    nav.process_responses()

    snap = nav.snapshot()
    assert snap.state == NavigationState.ARRIVED
    assert snap.current_location_id == "admin"
    assert "You have arrived at the Admin Block!" in _texts(nav)


def test_arrival_answer_for_old_route_is_dropped(campus, classifier, instruction_generator, executor):
    verifier = FakeVerifier(ArrivalVerdict(arrived=True, confidence=1.0))
    nav = NavigationCoordinator(campus, classifier, verifier, instruction_generator, executor=executor)
    nav.set_location("gate")
    nav.set_destination("admin")
    nav.advance_step()
    nav.verify_arrival(IMAGE)

    nav.set_destination("library")
    generation = nav.generation(Channel.ARRIVAL)
    executor.run_all(verifier.verify_arrival)
    nav.process_responses()

    assert nav.generation(Channel.ARRIVAL) == generation
    assert nav.snapshot().state == NavigationState.IN_TRANSIT


def test_advance_in_idle_is_rejected(nav):
    assert not nav.advance_step()
    assert nav.feedback.last().issue == NavigationIssue.INVALID_COMMAND


def test_speech_follows_route(campus, classifier, verifier, instruction_generator, executor):
    synthesizer = FakeSynthesizer()
    nav = NavigationCoordinator(
        campus, classifier, verifier, instruction_generator,
        synthesizer=synthesizer, executor=executor,
    )

    nav.set_location("gate")
    nav.set_destination("library")
    executor.run_all(nav.announcer._synthesize)

    assert synthesizer.spoken[0] == "Head towards the Admin Block"


def test_sensor_samples_update_movement(nav):
    from campusnav.motion import MovementStatus, SensorReading

    for _ in range(10):
        sample = nav.on_sensor_sample(SensorReading(heading=370.0, acceleration=(0.0, 2.0, 2.0)))
    assert sample.status == MovementStatus.MOVING
    assert sample.bearing == pytest.approx(10.0)

    assert nav.on_sensor_sample(None).status == MovementStatus.STATIONARY
    assert nav.movement.speed == 0.0

    nav.on_sensor_sample(None)
    assert len(nav.feedback.with_issue(NavigationIssue.SENSOR_UNAVAILABLE)) == 1


# ---------- Waiting for a specific answer ----------


def _run_later(executor, call, delay=0.2):
    timer = threading.Timer(delay, executor.run, args=(call,))
    timer.start()
    return timer


def test_wait_for_skips_stale_answer(nav, executor, classifier):
    classifier.answers.extend([DetectionResult("gate", 0.9), DetectionResult("admin", 0.9)])
    nav.capture_location(IMAGE)
    latest = nav.capture_location(IMAGE)
    first, second = executor.pending_for(classifier.classify)

    executor.run(first)
    timer = _run_later(executor, second)
    try:
        assert nav.wait_for(Channel.LOCATE, latest, timeout=5.0)
    finally:
        timer.join()

    assert nav.snapshot().current_location_id == "admin"


def test_wait_for_ignores_other_channels(nav, executor, classifier, instruction_generator):
    nav.set_location("gate")
    nav.set_destination("library")
    classifier.answers.append(DetectionResult("admin", 0.9))
    generation = nav.capture_location(IMAGE)

    executor.run_all(instruction_generator.instructions)
    timer = _run_later(executor, executor.pending_for(classifier.classify)[0])
    try:
        assert nav.wait_for(Channel.LOCATE, generation, timeout=5.0)
    finally:
        timer.join()

    snap = nav.snapshot()
    assert snap.current_location_id == "admin"
    assert snap.path == ("admin", "library")


def test_wait_for_times_out(nav, classifier):
    generation = nav.capture_location(IMAGE)
    assert not nav.wait_for(Channel.LOCATE, generation, timeout=0.05)
    assert nav.snapshot().current_location_id is None


def test_blocking_process_keeps_waiting_after_stale_answer(nav, executor, classifier):
    classifier.answers.extend([DetectionResult("gate", 0.9), DetectionResult("admin", 0.9)])
    nav.capture_location(IMAGE)
    nav.capture_location(IMAGE)
    first, second = executor.pending_for(classifier.classify)

    executor.run(first)
    timer = _run_later(executor, second)
    try:
        assert nav.process_responses(timeout=5.0) == 1
    finally:
        timer.join()

    assert nav.snapshot().current_location_id == "admin"


# ---------- Confirmations ----------


def test_destination_capture_confirms_only_when_taken(nav, executor, classifier):
    nav.set_location("gate")
    nav.set_destination("admin")
    nav.advance_step()
    nav.verify_arrival(IMAGE)
    executor.run_all(nav.verifier.verify_arrival)
    nav.process_responses()
    assert nav.snapshot().state == NavigationState.ARRIVED
    before = len(nav.feedback.messages)

    classifier.answers.append(DetectionResult("library", 0.95))
    nav.capture_destination(IMAGE)
    executor.run_all(classifier.classify)
    nav.process_responses()

    new = _texts(nav)[before:]
    assert "Destination set: Central Library." not in new
    assert new == ["You have already arrived. Reset to start a new trip."]
    assert nav.snapshot().destination_id is None


def test_accepted_destination_is_confirmed(nav, executor, classifier):
    nav.set_location("gate")
    classifier.answers.append(DetectionResult("library", 0.95))
    nav.capture_destination(IMAGE)
    executor.run_all(classifier.classify)
    nav.process_responses()

    assert "Destination set: Central Library." in _texts(nav)
    assert nav.snapshot().destination_id == "library"
