import math

import pytest

from campusnav.navigation import (
    DecisionKind,
    DetectionArbiter,
    DetectionResult,
    NavigationIssue,
    Role,
)


def _arbiter(threshold=0.8, known=("gate", "admin", "library")):
    return DetectionArbiter(Role.LOCATE, threshold, known)


def test_confident_detection_is_accepted():
    decision = _arbiter(0.8).arbitrate(DetectionResult("admin", 0.85))

    assert decision.kind == DecisionKind.ACCEPT
    assert decision.node_id == "admin"
    assert decision.accepted


@pytest.mark.parametrize("confidence, expected", [
    (1.0, DecisionKind.ACCEPT),
    (0.8, DecisionKind.ACCEPT),
    (0.7999, DecisionKind.PENDING),
    (0.3, DecisionKind.PENDING),
    (0.0001, DecisionKind.PENDING),
    (0.0, DecisionKind.REJECT),
    (-0.5, DecisionKind.REJECT),
    (math.nan, DecisionKind.REJECT),
    (math.inf, DecisionKind.REJECT),
])
def test_threshold_boundaries(confidence, expected):
    decision = _arbiter(0.8).arbitrate(DetectionResult("gate", confidence))
    assert decision.kind == expected


def test_low_confidence_is_held_for_confirmation():
    arbiter = _arbiter()
    decision = arbiter.arbitrate(DetectionResult("library", 0.5, "glass front"))

    assert decision.kind == DecisionKind.PENDING
    assert decision.issue == NavigationIssue.LOW_CONFIDENCE
    assert arbiter.pending == DetectionResult("library", 0.5, "glass front")


def test_missing_result_is_rejected():
    decision = _arbiter().arbitrate(None)

    assert decision.kind == DecisionKind.REJECT
    assert decision.issue == NavigationIssue.DETECTION_FAILURE


def test_unknown_node_is_rejected_even_when_confident():
    decision = _arbiter().arbitrate(DetectionResult("moon", 0.99))

    assert decision.kind == DecisionKind.REJECT
    assert decision.issue == NavigationIssue.DETECTION_FAILURE


def test_any_new_detection_supersedes_pending():
    arbiter = _arbiter()
    arbiter.arbitrate(DetectionResult("library", 0.5))

    arbiter.arbitrate(DetectionResult("gate", 0.6))
    assert arbiter.pending.node_id == "gate"

    arbiter.arbitrate(None)
    assert arbiter.pending is None

    arbiter.arbitrate(DetectionResult("admin", 0.4))
    arbiter.arbitrate(DetectionResult("admin", 0.95))
    assert arbiter.pending is None


def test_confirm_accepts_pending_and_clears_it():
    arbiter = _arbiter()
    arbiter.arbitrate(DetectionResult("library", 0.5))

    decision = arbiter.confirm()

    assert decision.kind == DecisionKind.ACCEPT
    assert decision.node_id == "library"
    assert arbiter.pending is None


def test_confirm_without_pending_is_invalid():
    decision = _arbiter().confirm()

    assert decision.kind == DecisionKind.REJECT
    assert decision.issue == NavigationIssue.INVALID_COMMAND
    assert decision.message


def test_dismiss_clears_pending():
    arbiter = _arbiter()
    arbiter.arbitrate(DetectionResult("library", 0.5))

    decision = arbiter.dismiss()

    assert decision.kind == DecisionKind.REJECT
    assert decision.node_id == "library"
    assert arbiter.pending is None
    assert arbiter.dismiss().result is None


def test_without_known_ids_any_node_is_allowed():
    arbiter = DetectionArbiter(Role.DESTINATION, 0.6)
    assert arbiter.arbitrate(DetectionResult("anywhere", 0.7)).accepted


@pytest.mark.parametrize("threshold", [0.0, -0.1, 1.01])
def test_threshold_must_be_in_range(threshold):
    with pytest.raises(ValueError):
        DetectionArbiter(Role.LOCATE, threshold)
