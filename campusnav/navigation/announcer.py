"""Spoken feedback with priority rate limiting and movement-paced reminders."""

import time
from concurrent.futures import Executor
from typing import Callable, Optional

from .collaborators import SpeechSynthesizer
from campusnav.motion import MovementSample
from campusnav.utils.logger import get_logger

logger = get_logger(__name__)


class Announcer:
    """
    Speaks messages through a speech synthesizer without flooding the user.

    Synthesis runs on the shared executor and nobody waits for it; the
    resulting audio goes to an optional sink (a player, a websocket, ...).
    """

    # Priority levels and their minimum intervals
    PRIORITY_INTERVALS = {
        "urgent": 0.0,    # Immediate
        "high": 1.0,
        "normal": 2.0,
        "low": 5.0,
    }

    # Same text is not repeated within this many seconds
    REPEAT_SUPPRESS_SECONDS = 3.0

    def __init__(
        self,
        synthesizer: Optional[SpeechSynthesizer],
        executor: Executor,
        audio_sink: Optional[Callable[[bytes], None]] = None,
        enabled: bool = True,
        moving_reminder_seconds: float = 8.0,
        stationary_reminder_seconds: float = 20.0,
        clock: Callable[[], float] = time.monotonic
    ):
        """
        Initialize announcer.

        Args:
            synthesizer: Text-to-speech service (None disables speech).
            executor: Executor that runs synthesis calls.
            audio_sink: Receives synthesized audio bytes.
            enabled: Whether speech is enabled.
            moving_reminder_seconds: Step reminder interval while walking.
            stationary_reminder_seconds: Step reminder interval while standing.
            clock: Monotonic time source.
        """
        self.synthesizer = synthesizer
        self.executor = executor
        self.audio_sink = audio_sink
        self.enabled = enabled and synthesizer is not None
        self.moving_reminder_seconds = moving_reminder_seconds
        self.stationary_reminder_seconds = stationary_reminder_seconds
        self._clock = clock

        self._last_message = ""
        self._last_time = float('-inf')
        self._last_reminder_time = float('-inf')

        if self.enabled:
            logger.info("Announcer initialized")
        else:
            logger.info("Announcer disabled (no speech)")

    def announce(self, message: str, priority: str = "normal") -> bool:
        """
        Speak a message with given priority.

        Args:
            message: Text to speak.
            priority: "urgent", "high", "normal", or "low".

        Returns:
            True if the message was sent for synthesis, False if skipped.
        """
        if not self.enabled or not message:
            return False

        now = self._clock()
        min_interval = self.PRIORITY_INTERVALS.get(priority, 2.0)
        since_last = now - self._last_time

        if since_last < min_interval and priority != "urgent":
            return False

        if message == self._last_message and since_last < self.REPEAT_SUPPRESS_SECONDS:
            return False

        self._dispatch(message)
        self._last_message = message
        self._last_time = now
        return True

    def reminder_interval(self, movement: MovementSample) -> float:
        """Seconds between step reminders for the given motion state."""
        if movement.is_moving:
            return self.moving_reminder_seconds
        return self.stationary_reminder_seconds

    def remind(self, message: str, movement: MovementSample) -> bool:
        """
        Repeat the current step if enough time has passed.

        Walking users hear reminders more often than users standing still.

        Returns:
            True if the reminder was spoken.
        """
        if not self.enabled or not message:
            return False

        now = self._clock()
        if now - self._last_reminder_time < self.reminder_interval(movement):
            return False
        if now - self._last_time < self.PRIORITY_INTERVALS["low"]:
            return False

        self._dispatch(message)
        self._last_reminder_time = now
        self._last_message = message
        self._last_time = now
        return True

    def _dispatch(self, message: str) -> None:
        logger.debug(f"TTS: {message}")
        self.executor.submit(self._synthesize, message)

    def _synthesize(self, message: str) -> None:
        """Runs on the executor."""
        try:
            audio = self.synthesizer.speak(message)
        except Exception as e:
            logger.error(f"TTS error: {e}")
            return

        if audio is None:
            logger.debug("TTS returned no audio")
            return

        if self.audio_sink is not None:
            try:
                self.audio_sink(audio)
            except Exception as e:
                logger.error(f"Audio sink error: {e}")
