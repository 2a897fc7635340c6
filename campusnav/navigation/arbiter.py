"""Turns raw classifier output into accept / pending / reject decisions."""

import math
from typing import Iterable, Optional

from .nav_types import Decision, DecisionKind, DetectionResult, NavigationIssue, Role
from campusnav.utils.logger import get_logger

logger = get_logger(__name__)


class DetectionArbiter:
    """
    Acceptance policy for one detection role.

    A detection at or above the threshold is accepted outright. Anything
    weaker but positive waits for the user to say yes or no; only the
    latest such candidate is kept. No result, a non-positive confidence or
    an unknown node id is rejected.
    """

    def __init__(
        self,
        role: Role,
        threshold: float,
        known_node_ids: Optional[Iterable[str]] = None
    ):
        """
        Initialize arbiter.

        Args:
            role: Which question this arbiter answers.
            threshold: Minimum confidence for immediate acceptance, in (0, 1].
            known_node_ids: Valid node ids; None accepts any id.
        """
        if not 0.0 < threshold <= 1.0:
            raise ValueError(f"threshold must be in (0, 1], got {threshold}")

        self.role = role
        self.threshold = threshold
        self._known = set(known_node_ids) if known_node_ids is not None else None
        self._pending: Optional[DetectionResult] = None

    @property
    def pending(self) -> Optional[DetectionResult]:
        """Candidate awaiting user confirmation, if any."""
        return self._pending

    def arbitrate(self, result: Optional[DetectionResult]) -> Decision:
        """
        Decide what to do with a detection.

        Any outstanding pending candidate is superseded, whatever the
        outcome for the new one.

        Args:
            result: Classifier output, or None if the classifier failed.

        Returns:
            Decision for this detection.
        """
        self._pending = None

        if result is None:
            return self._reject(None, "No location could be recognised in that image.")

        confidence = result.confidence
        if not isinstance(confidence, (int, float)) or not math.isfinite(confidence):
            return self._reject(result, "The recognition result was unreadable.")

        if self._known is not None and result.node_id not in self._known:
            logger.warning(f"[ARBITER] {self.role.value}: unknown node '{result.node_id}'")
            return self._reject(result, "That place is not on the campus map.")

        if confidence <= 0.0:
            return self._reject(result, "No location could be recognised in that image.")

        if confidence >= self.threshold:
            logger.info(
                f"[ARBITER] {self.role.value}: accept '{result.node_id}' "
                f"({confidence:.2f} >= {self.threshold:.2f})"
            )
            return Decision(kind=DecisionKind.ACCEPT, role=self.role, result=result)

        self._pending = result
        logger.info(
            f"[ARBITER] {self.role.value}: pending '{result.node_id}' "
            f"({confidence:.2f} < {self.threshold:.2f})"
        )
        return Decision(
            kind=DecisionKind.PENDING,
            role=self.role,
            result=result,
            issue=NavigationIssue.LOW_CONFIDENCE,
        )

    def confirm(self) -> Decision:
        """User said yes to the pending candidate."""
        result = self._pending
        self._pending = None
        if result is None:
            return Decision(
                kind=DecisionKind.REJECT,
                role=self.role,
                issue=NavigationIssue.INVALID_COMMAND,
                message="There is nothing waiting for confirmation.",
            )
        logger.info(f"[ARBITER] {self.role.value}: user confirmed '{result.node_id}'")
        return Decision(kind=DecisionKind.ACCEPT, role=self.role, result=result)

    def dismiss(self) -> Decision:
        """User said no to the pending candidate."""
        result = self._pending
        self._pending = None
        if result is not None:
            logger.info(f"[ARBITER] {self.role.value}: user dismissed '{result.node_id}'")
        return Decision(kind=DecisionKind.REJECT, role=self.role, result=result)

    def clear(self) -> None:
        """Drop any pending candidate without a decision."""
        self._pending = None

    def _reject(self, result: Optional[DetectionResult], message: str) -> Decision:
        logger.info(f"[ARBITER] {self.role.value}: reject ({message})")
        return Decision(
            kind=DecisionKind.REJECT,
            role=self.role,
            result=result,
            issue=NavigationIssue.DETECTION_FAILURE,
            message=message,
        )
