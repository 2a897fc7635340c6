"""Single-actor coordinator tying detections, routing and feedback together."""

import time
from concurrent.futures import Executor, Future, ThreadPoolExecutor
from dataclasses import dataclass
from enum import Enum
from queue import Empty, Queue
from typing import Any, Callable, Dict, Optional

from .announcer import Announcer
from .arbiter import DetectionArbiter
from .collaborators import ArrivalVerifier, ImageClassifier, InstructionGenerator, SpeechSynthesizer
from .nav_types import (
    Decision,
    DecisionKind,
    DetectionResult,
    FeedbackLog,
    FeedbackMessage,
    NavigationIssue,
    NavigationState,
    Role,
    SessionSnapshot,
)
from .session import NavigationSession
from campusnav.campus import CampusGraph
from campusnav.config.settings import NavigationConfig, SpeechConfig
from campusnav.motion import NEUTRAL_SAMPLE, MovementFeed, MovementSample, SensorReading
from campusnav.utils.logger import get_logger

logger = get_logger(__name__)

# Shown when a capture yields nothing usable
RETRY_TIPS = {
    Role.LOCATE: (
        "I'm not sure where you are. Try to get a clearer view of a building "
        "sign or unique architecture."
    ),
    Role.DESTINATION: (
        "I couldn't read that. Point at a room number, office sign, or "
        "building entrance plaque."
    ),
}

FALLBACK_GUIDANCE = "Stay safe and follow the visible path indicators."


class Channel(Enum):
    """Independent streams of asynchronous requests."""
    LOCATE = "locate"
    DESTINATION = "destination"
    INSTRUCTIONS = "instructions"
    ARRIVAL = "arrival"


@dataclass
class _Response:
    """A finished external call waiting to be applied."""
    channel: Channel
    generation: int
    future: Future


class NavigationCoordinator:
    """
    Owns the navigation session and is the only thing that mutates it.

    External calls (classifier, verifier, instruction generator, speech)
    run on an executor. Their results are queued and only applied when
    process_responses() is called from the coordinator's own thread, so
    the session never sees concurrent writes.

    Every channel carries a generation counter. Starting a new request,
    a manual override or reset() bumps it; a response stamped with an
    older generation is dropped when it arrives. Nothing is aborted, late
    answers are just ignored.
    """

    def __init__(
        self,
        graph: CampusGraph,
        classifier: ImageClassifier,
        verifier: ArrivalVerifier,
        instruction_generator: InstructionGenerator,
        synthesizer: Optional[SpeechSynthesizer] = None,
        navigation_config: Optional[NavigationConfig] = None,
        speech_config: Optional[SpeechConfig] = None,
        movement_feed: Optional[MovementFeed] = None,
        executor: Optional[Executor] = None,
        audio_sink: Optional[Callable[[bytes], None]] = None
    ):
        """
        Initialize coordinator.

        Args:
            graph: Campus graph.
            classifier: Image classifier for location and destination captures.
            verifier: Arrival verifier.
            instruction_generator: Generates walking guidance for a route.
            synthesizer: Speech synthesizer (None = silent).
            navigation_config: Thresholds and instruction options.
            speech_config: Speech options and reminder pacing.
            movement_feed: Movement classifier (default feed if None).
            executor: Executor for external calls (a private thread pool if None).
            audio_sink: Receives synthesized audio.
        """
        nav = navigation_config or NavigationConfig()
        speech = speech_config or SpeechConfig()

        self.graph = graph
        self.classifier = classifier
        self.verifier = verifier
        self.instruction_generator = instruction_generator
        self.verbose_instructions = nav.verbose_instructions

        self._owns_executor = executor is None
        self._executor = executor or ThreadPoolExecutor(
            max_workers=nav.max_workers, thread_name_prefix="campusnav"
        )

        self.feedback = FeedbackLog()
        self.session = NavigationSession(
            graph,
            arrival_threshold=nav.arrival_threshold,
            notify=self._notify,
        )

        node_ids = [n.id for n in graph.nodes]
        self.arbiters: Dict[Role, DetectionArbiter] = {
            Role.LOCATE: DetectionArbiter(Role.LOCATE, nav.locate_threshold, node_ids),
            Role.DESTINATION: DetectionArbiter(Role.DESTINATION, nav.destination_threshold, node_ids),
        }

        self.announcer = Announcer(
            synthesizer,
            self._executor,
            audio_sink=audio_sink,
            enabled=speech.enabled,
            moving_reminder_seconds=speech.moving_reminder_seconds,
            stationary_reminder_seconds=speech.stationary_reminder_seconds,
        )

        self.movement_feed = movement_feed or MovementFeed()
        self.movement: MovementSample = NEUTRAL_SAMPLE

        self._generations: Dict[Channel, int] = {channel: 0 for channel in Channel}
        self._responses: Queue = Queue()

        logger.info(
            f"[COORD] Navigator ready ({len(graph)} nodes, "
            f"locate>={nav.locate_threshold}, destination>={nav.destination_threshold}, "
            f"arrival>={nav.arrival_threshold})"
        )

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def capture_location(self, image_bytes: bytes) -> int:
        """
        Ask the classifier where the user is.

        Returns:
            Generation of the request.
        """
        self.arbiters[Role.LOCATE].clear()
        return self._submit(Channel.LOCATE, self.classifier.classify, image_bytes, Role.LOCATE)

    def capture_destination(self, image_bytes: bytes) -> int:
        """
        Ask the classifier which destination a sign or entrance shows.

        Returns:
            Generation of the request.
        """
        self.arbiters[Role.DESTINATION].clear()
        return self._submit(
            Channel.DESTINATION, self.classifier.classify, image_bytes, Role.DESTINATION
        )

    def confirm_pending(self, role: Role) -> bool:
        """User answered yes to a low-confidence detection."""
        decision = self.arbiters[role].confirm()
        if decision.kind != DecisionKind.ACCEPT:
            self._notify(FeedbackMessage(text=decision.message, issue=decision.issue))
            return False
        return self._apply_accept(decision)

    def dismiss_pending(self, role: Role) -> bool:
        """User answered no to a low-confidence detection."""
        decision = self.arbiters[role].dismiss()
        if decision.result is None:
            return False
        self._notify(FeedbackMessage(text=f"Okay. {RETRY_TIPS[role]}"))
        return True

    def set_location(self, node_id: str) -> bool:
        """Manually set the current location, overriding any capture in flight."""
        self._bump(Channel.LOCATE)
        self.arbiters[Role.LOCATE].clear()
        return self._update_session(self.session.set_location, node_id)

    def set_destination(self, node_id: str) -> bool:
        """Manually pick a destination, overriding any capture in flight."""
        self._bump(Channel.DESTINATION)
        self.arbiters[Role.DESTINATION].clear()
        return self._update_session(self.session.set_destination, node_id)

    def advance_step(self) -> bool:
        """Move to the next step and announce it."""
        if not self.session.advance_step():
            return False

        step = self.session.current_step()
        if step is not None:
            text = step.instruction
            if step.landmark and step.direction != "arrive":
                text = f"{text}. {step.landmark}"
            self.announcer.announce(text, priority="high")

        if self.session.state == NavigationState.AWAITING_ARRIVAL_CHECK:
            self._notify(FeedbackMessage(
                text="Take a photo of your destination to confirm you've arrived."
            ))
        return True

    def verify_arrival(self, image_bytes: bytes) -> Optional[int]:
        """
        Send an arrival photo to the verifier.

        Returns:
            Generation of the request, or None if not at the last step.
        """
        if not self.session.begin_arrival_check():
            return None
        destination_name = self.graph.name_of(self.session.destination_id)
        return self._submit(
            Channel.ARRIVAL, self.verifier.verify_arrival, image_bytes, destination_name
        )

    def reset(self) -> None:
        """Clear the trip and lose interest in every outstanding response."""
        for channel in Channel:
            self._bump(channel)
        for arbiter in self.arbiters.values():
            arbiter.clear()
        self.session.reset()
        self._notify(FeedbackMessage(text="Navigation cleared.", priority="low"))

    def on_sensor_sample(self, reading: Optional[SensorReading]) -> MovementSample:
        """Feed one sensor reading into the movement classifier."""
        was_available = self.movement_feed.sensor_available
        self.movement = self.movement_feed.update(reading)
        if was_available and not self.movement_feed.sensor_available:
            self._notify(FeedbackMessage(
                text="Motion sensors unavailable. Reminders will assume you are standing still.",
                issue=NavigationIssue.SENSOR_UNAVAILABLE,
                priority="low",
            ))
        return self.movement

    def tick(self) -> bool:
        """
        Periodic housekeeping: repeat the current step, paced by movement.

        Returns:
            True if a reminder was spoken.
        """
        if self.session.state not in (
            NavigationState.IN_TRANSIT,
            NavigationState.AWAITING_ARRIVAL_CHECK,
        ):
            return False
        step = self.session.current_step()
        if step is None:
            return False
        return self.announcer.remind(step.instruction, self.movement)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def snapshot(self) -> SessionSnapshot:
        """Current session state for display."""
        pending = tuple(role for role, arbiter in self.arbiters.items() if arbiter.pending)
        return self.session.snapshot(pending_roles=pending)

    def pending(self, role: Role) -> Optional[DetectionResult]:
        """Detection waiting for the user's yes/no, if any."""
        return self.arbiters[role].pending

    def generation(self, channel: Channel) -> int:
        """Current generation of a channel."""
        return self._generations[channel]

    # ------------------------------------------------------------------
    # Response handling
    # ------------------------------------------------------------------

    def process_responses(self, timeout: Optional[float] = None) -> int:
        """
        Apply finished external calls.

        Args:
            timeout: Seconds to wait for a response that is not stale
                (None = don't wait).

        Returns:
            Number of responses applied (stale ones excluded).
        """
        deadline = None if timeout is None else time.monotonic() + timeout
        applied = 0

        while True:
            response = self._next_response(deadline if applied == 0 else None)
            if response is None:
                break
            if self._handle(response):
                applied += 1

        return applied

    def wait_for(self, channel: Channel, generation: int, timeout: float) -> bool:
        """
        Block until the response to one request has been applied.

        Other responses that arrive meanwhile are applied (or dropped as
        stale) as usual.

        Args:
            channel: Channel of the request.
            generation: Generation returned when the request was submitted.
            timeout: Seconds to wait.

        Returns:
            True if the answer was applied, False on timeout or if a newer
            request superseded it.
        """
        deadline = time.monotonic() + timeout

        while self._generations[channel] == generation:
            response = self._next_response(deadline)
            if response is None:
                return False
            applied = self._handle(response)
            if applied and response.channel == channel and response.generation == generation:
                self.process_responses()
                return True

        return False

    def shutdown(self) -> None:
        """Shutdown the background executor if this coordinator created it."""
        logger.info("[COORD] Shutting down navigator...")
        if self._owns_executor:
            self._executor.shutdown(wait=False)

    def _next_response(self, deadline: Optional[float]) -> Optional[_Response]:
        """Next queued response; waits until the deadline if one is given."""
        try:
            if deadline is None:
                return self._responses.get_nowait()
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                return self._responses.get_nowait()
            return self._responses.get(timeout=remaining)
        except Empty:
            return None

    def _handle(self, response: _Response) -> bool:
        """Apply one response unless it is stale."""
        if response.generation != self._generations[response.channel]:
            logger.debug(
                f"[COORD] {NavigationIssue.STALE_RESPONSE.value}: dropping {response.channel.value} response "
                f"(generation {response.generation}, current "
                f"{self._generations[response.channel]})"
            )
            return False

        try:
            result = response.future.result()
        except Exception as e:
            logger.error(f"[COORD] {response.channel.value} call failed: {e}")
            result = None

        self._apply(response.channel, result)
        return True

    def _apply(self, channel: Channel, result: Any) -> None:
        if channel == Channel.LOCATE:
            self._on_detection(Role.LOCATE, result)
        elif channel == Channel.DESTINATION:
            self._on_detection(Role.DESTINATION, result)
        elif channel == Channel.INSTRUCTIONS:
            self._on_instructions(result)
        elif channel == Channel.ARRIVAL:
            self.session.complete_arrival_check(result)

    def _on_detection(self, role: Role, result: Optional[DetectionResult]) -> None:
        decision = self.arbiters[role].arbitrate(result)

        if decision.kind == DecisionKind.ACCEPT:
            self._apply_accept(decision)
        elif decision.kind == DecisionKind.PENDING:
            name = self.graph.name_of(decision.node_id)
            if role == Role.LOCATE:
                question = f"Are you at the {name}?"
            else:
                question = f"Do you want to go to the {name}?"
            self._notify(FeedbackMessage(
                text=f"{question} I'm {decision.result.confidence:.0%} sure.",
                issue=NavigationIssue.LOW_CONFIDENCE,
                priority="high",
            ))
        else:
            self._notify(FeedbackMessage(
                text=RETRY_TIPS[role],
                issue=decision.issue or NavigationIssue.DETECTION_FAILURE,
            ))

    def _apply_accept(self, decision: Decision) -> bool:
        node_id = decision.node_id
        name = self.graph.name_of(node_id)
        rationale = decision.result.rationale if decision.result else ""

        if decision.role == Role.LOCATE:
            confirmation = FeedbackMessage(
                text=f"Identified your location: {name}. {rationale}".strip(),
                priority="high",
            )
            return self._update_session(self.session.set_location, node_id, confirmation)

        confirmation = FeedbackMessage(text=f"Destination set: {name}.", priority="high")
        return self._update_session(self.session.set_destination, node_id, confirmation)

    def _update_session(
        self,
        setter: Callable[[str], bool],
        node_id: str,
        confirmation: Optional[FeedbackMessage] = None
    ) -> bool:
        """Run a session setter and follow up if it produced a new route."""
        version = self.session.route_version
        ok = setter(node_id)
        # Only confirm what the session actually took
        if ok and confirmation is not None:
            self._notify(confirmation)
        if self.session.route_version != version:
            self._on_route_changed()
        return ok

    def _on_route_changed(self) -> None:
        # Arrival checks and guidance for the old route are void
        self._bump(Channel.ARRIVAL)
        self._bump(Channel.INSTRUCTIONS)

        if not self.session.path:
            return

        step = self.session.current_step()
        if step is not None:
            self.announcer.announce(step.instruction, priority="high")

        names = self.graph.names(self.session.path)
        self._submit(
            Channel.INSTRUCTIONS,
            self.instruction_generator.instructions,
            names,
            self.verbose_instructions,
        )

    def _on_instructions(self, lines: Optional[list]) -> None:
        if not self.session.path:
            return

        if lines:
            self.session.set_guidance(lines)
            self._notify(FeedbackMessage(text=" ".join(lines), priority="low"))
        else:
            logger.warning("[COORD] No generated instructions, using step list")
            self.session.set_guidance([s.instruction for s in self.session.steps()])
            self._notify(FeedbackMessage(text=FALLBACK_GUIDANCE, priority="low"))

    # ------------------------------------------------------------------
    # Plumbing
    # ------------------------------------------------------------------

    def _bump(self, channel: Channel) -> int:
        self._generations[channel] += 1
        return self._generations[channel]

    def _submit(self, channel: Channel, fn: Callable, *args) -> int:
        generation = self._bump(channel)
        future = self._executor.submit(fn, *args)
        future.add_done_callback(
            lambda f: self._responses.put(_Response(channel, generation, f))
        )
        logger.debug(f"[COORD] {channel.value} request submitted (generation {generation})")
        return generation

    def _notify(self, message: FeedbackMessage) -> None:
        if not message.text:
            return
        self.feedback.add(message)
        if message.issue is not None and message.issue != NavigationIssue.LOW_CONFIDENCE:
            logger.warning(f"[COORD] {message.issue.value}: {message.text}")
        else:
            logger.info(f"[COORD] {message.text}")
        self.announcer.announce(message.text, message.priority)
