"""Turn a node path into spoken/displayed navigation steps."""

import math
from typing import List, Optional, Sequence

from .nav_types import NavigationStep
from campusnav.campus import CampusGraph

# Turns smaller than this are announced as "straight"
STRAIGHT_TOLERANCE_DEG = 30.0


def _heading(graph: CampusGraph, from_id: str, to_id: str) -> Optional[float]:
    """Map heading in degrees (0 = up, clockwise) from one node to another."""
    a = graph.node(from_id)
    b = graph.node(to_id)
    if a is None or b is None:
        return None
    dx = b.x - a.x
    dy = a.y - b.y  # Flip Y since map Y grows downward
    if dx == 0 and dy == 0:
        return None
    return math.degrees(math.atan2(dx, dy)) % 360.0


def turn_direction(graph: CampusGraph, prev_id: str, at_id: str, next_id: str) -> str:
    """
    Direction to take at at_id when arriving from prev_id and leaving to next_id.

    Returns:
        'left', 'right' or 'straight'.
    """
    incoming = _heading(graph, prev_id, at_id)
    outgoing = _heading(graph, at_id, next_id)
    if incoming is None or outgoing is None:
        return "straight"

    # Signed turn in (-180, 180], positive = right
    turn = (outgoing - incoming + 180.0) % 360.0 - 180.0
    if abs(turn) < STRAIGHT_TOLERANCE_DEG:
        return "straight"
    return "right" if turn > 0 else "left"


def _format_distance(meters: float) -> str:
    return f"{meters:.0f} m"


def build_steps(graph: CampusGraph, path: Sequence[str]) -> List[NavigationStep]:
    """
    One step per path node: head to the next node, then arrive.

    Args:
        graph: Campus graph the path was computed on.
        path: Node ids from current location to destination.

    Returns:
        Steps aligned with path indices; empty for an empty path.
    """
    steps: List[NavigationStep] = []
    if not path:
        return steps

    for i in range(len(path) - 1):
        here, target = path[i], path[i + 1]
        target_name = graph.name_of(target)

        if i == 0:
            direction = "straight"
        else:
            direction = turn_direction(graph, path[i - 1], here, target)

        if direction == "straight":
            instruction = f"Head towards the {target_name}"
        else:
            instruction = f"Turn {direction} and head towards the {target_name}"

        edge = graph.edge_between(here, target)
        landmark = None
        distance = None
        if edge is not None:
            landmark = edge.instruction
            distance = _format_distance(edge.distance)

        steps.append(NavigationStep(
            instruction=instruction,
            direction=direction,
            landmark=landmark,
            distance=distance,
        ))

    destination = graph.node(path[-1])
    steps.append(NavigationStep(
        instruction=f"You have arrived at the {graph.name_of(path[-1])}!",
        direction="arrive",
        landmark=destination.description if destination and destination.description else None,
    ))
    return steps
