"""Data types for detection arbitration and navigation sessions."""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Tuple


class Role(Enum):
    """What a camera capture is meant to identify."""
    LOCATE = "locate"            # Where am I
    DESTINATION = "destination"  # What is my target


class DecisionKind(Enum):
    """Outcome of arbitrating a detection."""
    ACCEPT = "accept"
    PENDING = "pending"
    REJECT = "reject"


class NavigationState(Enum):
    """States of the navigation session."""
    IDLE = "idle"
    ROUTING = "routing"
    IN_TRANSIT = "in_transit"
    AWAITING_ARRIVAL_CHECK = "awaiting_arrival_check"
    ARRIVED = "arrived"
    UNREACHABLE = "unreachable"


class ArrivalStatus(Enum):
    """Arrival verification sub-state."""
    NONE = "none"
    VERIFYING = "verifying"
    CONFIRMED = "confirmed"


class NavigationIssue(Enum):
    """Recoverable problems reported to the user, never raised."""
    DETECTION_FAILURE = "detection_failure"
    LOW_CONFIDENCE = "low_confidence"
    UNREACHABLE_DESTINATION = "unreachable_destination"
    STALE_RESPONSE = "stale_response"
    SENSOR_UNAVAILABLE = "sensor_unavailable"
    INVALID_COMMAND = "invalid_command"
    ARRIVAL_UNCONFIRMED = "arrival_unconfirmed"


@dataclass(frozen=True)
class DetectionResult:
    """A classifier's guess at which node an image shows."""
    node_id: str
    confidence: float
    rationale: str = ""


@dataclass(frozen=True)
class Decision:
    """Arbitration verdict for one detection."""
    kind: DecisionKind
    role: Role
    result: Optional[DetectionResult] = None
    issue: Optional[NavigationIssue] = None
    message: str = ""

    @property
    def node_id(self) -> Optional[str]:
        """Accepted or pending node id."""
        return self.result.node_id if self.result else None

    @property
    def accepted(self) -> bool:
        return self.kind == DecisionKind.ACCEPT


@dataclass(frozen=True)
class ArrivalVerdict:
    """Answer from the arrival verifier."""
    arrived: bool
    confidence: float


@dataclass(frozen=True)
class NavigationStep:
    """One instruction shown for a position along the path."""
    instruction: str
    direction: str  # 'left', 'right', 'straight', 'arrive'
    landmark: Optional[str] = None
    distance: Optional[str] = None


@dataclass(frozen=True)
class SessionSnapshot:
    """Read-only view of the session for the presentation layer."""
    state: NavigationState
    current_location_id: Optional[str]
    destination_id: Optional[str]
    path: Tuple[str, ...]
    step_index: int
    arrival_status: ArrivalStatus
    guidance: Tuple[str, ...] = ()
    pending_roles: Tuple[Role, ...] = ()

    @property
    def awaiting_location(self) -> bool:
        """Destination chosen but no location fix yet."""
        return (
            self.state == NavigationState.IDLE
            and self.destination_id is not None
            and self.current_location_id is None
        )


@dataclass
class FeedbackMessage:
    """A message shown (and maybe spoken) to the user."""
    text: str
    role: str = "model"
    issue: Optional[NavigationIssue] = None
    priority: str = "normal"


@dataclass
class FeedbackLog:
    """Chronological user-facing messages, capped in length."""
    max_messages: int = 200
    messages: List[FeedbackMessage] = field(default_factory=list)
    total: int = 0  # Messages ever added, including ones trimmed off

    def add(self, message: FeedbackMessage) -> None:
        self.messages.append(message)
        self.total += 1
        if len(self.messages) > self.max_messages:
            self.messages = self.messages[-self.max_messages:]

    def since(self, total: int) -> List[FeedbackMessage]:
        """Messages added after the log's total was `total`."""
        new = self.total - total
        return self.messages[-new:] if new > 0 else []

    def last(self) -> Optional[FeedbackMessage]:
        return self.messages[-1] if self.messages else None

    def with_issue(self, issue: NavigationIssue) -> List[FeedbackMessage]:
        return [m for m in self.messages if m.issue == issue]
