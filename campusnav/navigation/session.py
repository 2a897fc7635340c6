"""Navigation session state machine."""

from typing import Callable, List, Optional, Tuple

from .nav_types import (
    ArrivalStatus,
    ArrivalVerdict,
    FeedbackMessage,
    NavigationIssue,
    NavigationState,
    NavigationStep,
    Role,
    SessionSnapshot,
)
from .steps import build_steps
from campusnav.campus import CampusGraph, route
from campusnav.utils.logger import get_logger

logger = get_logger(__name__)


class NavigationSession:
    """
    Owns location, destination, path and progress for one user.

    State flow:
        IDLE -> ROUTING -> IN_TRANSIT -> AWAITING_ARRIVAL_CHECK -> ARRIVED
    with UNREACHABLE when the router finds no path, and reset() returning
    to IDLE from anywhere. ROUTING only lasts for the duration of a
    recompute since routing is synchronous.

    A destination picked before the location is known is kept while the
    session stays IDLE; the route is computed on the next location fix.
    SessionSnapshot.awaiting_location reports that case.

    Every path recompute starts over at step 0. A new location fix in the
    middle of a trip always recomputes, so path[0] stays the current
    location.
    """

    def __init__(
        self,
        graph: CampusGraph,
        arrival_threshold: float = 0.7,
        notify: Optional[Callable[[FeedbackMessage], None]] = None
    ):
        """
        Initialize an empty session.

        Args:
            graph: Campus graph to route over.
            arrival_threshold: Verifier confidence needed to confirm arrival.
            notify: Receives user-facing messages emitted by transitions.
        """
        self.graph = graph
        self.arrival_threshold = arrival_threshold
        self._notify = notify

        self.state = NavigationState.IDLE
        self.current_location_id: Optional[str] = None
        self.destination_id: Optional[str] = None
        self.path: List[str] = []
        self.step_index = 0
        self.arrival_status = ArrivalStatus.NONE
        self.guidance: List[str] = []

        # Incremented on every recompute; lets callers tie async work to a route
        self.route_version = 0

    def set_location(self, node_id: str) -> bool:
        """
        Record where the user is, recomputing the route if a destination is set.

        Returns:
            False if the node is unknown.
        """
        if node_id not in self.graph:
            self._emit(f"Unknown location '{node_id}'.", NavigationIssue.INVALID_COMMAND)
            return False

        if node_id == self.current_location_id:
            return True

        previous = self.current_location_id
        self.current_location_id = node_id
        logger.info(f"[SESSION] Location {previous} -> {node_id}")

        if self.state == NavigationState.ARRIVED or self.destination_id is None:
            return True

        self._recompute()
        return True

    def set_destination(self, node_id: str) -> bool:
        """
        Set the target node, routing immediately if the location is known.

        Returns:
            False if the node is unknown or the trip has already ended.
        """
        if node_id not in self.graph:
            self._emit(f"Unknown destination '{node_id}'.", NavigationIssue.INVALID_COMMAND)
            return False

        if self.state == NavigationState.ARRIVED:
            self._emit(
                "You have already arrived. Reset to start a new trip.",
                NavigationIssue.INVALID_COMMAND,
            )
            return False

        if node_id == self.destination_id and self.state != NavigationState.IDLE:
            return True

        self.destination_id = node_id
        logger.info(f"[SESSION] Destination set to {node_id}")

        if self.current_location_id is None:
            self._emit("Destination saved. Scan your surroundings so I can find where you are.")
            return True

        self._recompute()
        return True

    def advance_step(self) -> bool:
        """
        Move to the next step of the path.

        Returns:
            False (without changing anything) outside IN_TRANSIT.
        """
        if self.state != NavigationState.IN_TRANSIT:
            logger.debug(f"[SESSION] advance_step ignored in {self.state.value}")
            self._emit("There is no next step right now.", NavigationIssue.INVALID_COMMAND)
            return False

        last = len(self.path) - 1
        self.step_index = max(0, min(self.step_index + 1, last))
        if self.step_index == last:
            self._transition(NavigationState.AWAITING_ARRIVAL_CHECK)
        return True

    def begin_arrival_check(self) -> bool:
        """
        Mark that an arrival photo is being verified.

        Returns:
            False outside AWAITING_ARRIVAL_CHECK.
        """
        if self.state != NavigationState.AWAITING_ARRIVAL_CHECK:
            self._emit(
                "Arrival can only be checked at the last step.",
                NavigationIssue.INVALID_COMMAND,
            )
            return False
        self.arrival_status = ArrivalStatus.VERIFYING
        return True

    def complete_arrival_check(self, verdict: Optional[ArrivalVerdict]) -> bool:
        """
        Apply the arrival verifier's answer.

        A confident "arrived" ends the trip: the destination becomes the
        current location and the route is cleared. Anything else leaves the
        session waiting for another try.

        Returns:
            True if arrival was confirmed.
        """
        if self.state != NavigationState.AWAITING_ARRIVAL_CHECK:
            return False

        if (
            verdict is not None
            and verdict.arrived
            and verdict.confidence >= self.arrival_threshold
        ):
            arrived_at = self.destination_id
            self.current_location_id = arrived_at
            self.destination_id = None
            self.path = []
            self.step_index = 0
            self.guidance = []
            self.arrival_status = ArrivalStatus.CONFIRMED
            self._transition(NavigationState.ARRIVED)
            self._emit(f"You have arrived at the {self.graph.name_of(arrived_at)}!", priority="high")
            return True

        self.arrival_status = ArrivalStatus.NONE
        self._emit(
            "I couldn't confirm you've arrived. Point the camera at the entrance "
            "or a sign and try again.",
            NavigationIssue.ARRIVAL_UNCONFIRMED,
        )
        return False

    def reset(self) -> None:
        """Clear the trip but keep the current location."""
        self.destination_id = None
        self.path = []
        self.step_index = 0
        self.arrival_status = ArrivalStatus.NONE
        self.guidance = []
        self._transition(NavigationState.IDLE)

    def set_guidance(self, lines: List[str]) -> None:
        """Attach generated instructions to the current route."""
        self.guidance = list(lines)

    def steps(self) -> List[NavigationStep]:
        """Steps for the current path, aligned with path indices."""
        return build_steps(self.graph, self.path)

    def current_step(self) -> Optional[NavigationStep]:
        """Step at the current index, if a route exists."""
        steps = self.steps()
        if not steps:
            return None
        return steps[self.step_index]

    def snapshot(self, pending_roles: Tuple[Role, ...] = ()) -> SessionSnapshot:
        """Immutable copy of the session for presentation."""
        return SessionSnapshot(
            state=self.state,
            current_location_id=self.current_location_id,
            destination_id=self.destination_id,
            path=tuple(self.path),
            step_index=self.step_index,
            arrival_status=self.arrival_status,
            guidance=tuple(self.guidance),
            pending_roles=tuple(pending_roles),
        )

    def _recompute(self) -> None:
        self._transition(NavigationState.ROUTING)
        self.path = route(self.graph, self.current_location_id, self.destination_id)
        self.step_index = 0
        self.arrival_status = ArrivalStatus.NONE
        self.guidance = []
        self.route_version += 1

        if not self.path:
            self._transition(NavigationState.UNREACHABLE)
            self._emit(
                f"There is no known way from the {self.graph.name_of(self.current_location_id)} "
                f"to the {self.graph.name_of(self.destination_id)}.",
                NavigationIssue.UNREACHABLE_DESTINATION,
            )
            return

        logger.info(f"[ROUTE] {' -> '.join(self.path)}")
        if len(self.path) == 1:
            self._transition(NavigationState.AWAITING_ARRIVAL_CHECK)
        else:
            self._transition(NavigationState.IN_TRANSIT)

    def _transition(self, new_state: NavigationState) -> None:
        if new_state != self.state:
            logger.debug(f"[SESSION] {self.state.value} -> {new_state.value}")
        self.state = new_state

    def _emit(
        self,
        text: str,
        issue: Optional[NavigationIssue] = None,
        priority: str = "normal"
    ) -> None:
        if self._notify is not None:
            self._notify(FeedbackMessage(text=text, issue=issue, priority=priority))
