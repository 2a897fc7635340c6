"""Navigation core: arbitration, session state machine and coordination."""

from .announcer import Announcer
from .arbiter import DetectionArbiter
from .coordinator import Channel, NavigationCoordinator
from .nav_types import (
    ArrivalStatus,
    ArrivalVerdict,
    Decision,
    DecisionKind,
    DetectionResult,
    FeedbackLog,
    FeedbackMessage,
    NavigationIssue,
    NavigationState,
    NavigationStep,
    Role,
    SessionSnapshot,
)
from .session import NavigationSession
from .steps import build_steps

__all__ = [
    "Announcer",
    "ArrivalStatus",
    "ArrivalVerdict",
    "Channel",
    "Decision",
    "DecisionKind",
    "DetectionArbiter",
    "DetectionResult",
    "FeedbackLog",
    "FeedbackMessage",
    "NavigationCoordinator",
    "NavigationIssue",
    "NavigationSession",
    "NavigationState",
    "NavigationStep",
    "Role",
    "SessionSnapshot",
    "build_steps",
]
