"""Campus map drawing with the current route highlighted."""

import math
from typing import Dict, Optional, Sequence, Set, Tuple

import cv2
import numpy as np

from campusnav.campus import CampusGraph
from campusnav.navigation.nav_types import SessionSnapshot

# BGR colors
BACKGROUND = (42, 23, 15)
EDGE_COLOR = (85, 65, 51)
PATH_COLOR = (238, 211, 34)      # Cyan
NODE_COLOR = (139, 116, 100)
HERE_COLOR = (129, 185, 16)      # Green
DESTINATION_COLOR = (94, 63, 244)  # Rose
LABEL_COLOR = (225, 213, 203)


def _to_pixels(graph: CampusGraph, width: int, height: int) -> Dict[str, Tuple[int, int]]:
    """Map percent coordinates to pixel positions."""
    return {
        node.id: (int(node.x / 100.0 * width), int(node.y / 100.0 * height))
        for node in graph.nodes
    }


def _path_pairs(path: Sequence[str]) -> Set[frozenset]:
    return {frozenset(pair) for pair in zip(path, path[1:])}


def render_map(
    graph: CampusGraph,
    snapshot: Optional[SessionSnapshot] = None,
    size: Tuple[int, int] = (800, 600),
    show_labels: bool = True
) -> np.ndarray:
    """
    Draw the campus with location, destination and route.

    Args:
        graph: Campus graph.
        snapshot: Session state to overlay (None draws the bare map).
        size: (width, height) in pixels.
        show_labels: Draw node names.

    Returns:
        BGR image of shape (height, width, 3).
    """
    width, height = size
    view = np.full((height, width, 3), BACKGROUND, dtype=np.uint8)
    positions = _to_pixels(graph, width, height)

    path = snapshot.path if snapshot else ()
    on_path = _path_pairs(path)
    here = snapshot.current_location_id if snapshot else None
    destination = snapshot.destination_id if snapshot else None

    # Edges: dashed when off-route, solid and thick on it
    for edge in graph.edges:
        p1, p2 = positions[edge.a], positions[edge.b]
        if frozenset((edge.a, edge.b)) in on_path:
            cv2.line(view, p1, p2, PATH_COLOR, 4, cv2.LINE_AA)
        else:
            _draw_dashed_line(view, p1, p2, EDGE_COLOR, 1)

    # Direction arrow on each route leg
    for u, v in zip(path, path[1:]):
        _draw_leg_arrow(view, positions[u], positions[v])

    for node in graph.nodes:
        pos = positions[node.id]
        if node.id == here:
            color, radius = HERE_COLOR, 10
        elif node.id == destination:
            color, radius = DESTINATION_COLOR, 10
        elif node.id in path:
            color, radius = PATH_COLOR, 7
        else:
            color, radius = NODE_COLOR, 6
        cv2.circle(view, pos, radius, color, -1, cv2.LINE_AA)

        if show_labels:
            (tw, th), _ = cv2.getTextSize(node.name, cv2.FONT_HERSHEY_SIMPLEX, 0.4, 1)
            cv2.putText(
                view, node.name,
                (pos[0] - tw // 2, pos[1] - radius - 6),
                cv2.FONT_HERSHEY_SIMPLEX, 0.4, LABEL_COLOR, 1, cv2.LINE_AA
            )

    return view


def _draw_dashed_line(
    view: np.ndarray,
    p1: Tuple[int, int],
    p2: Tuple[int, int],
    color: Tuple[int, int, int],
    thickness: int,
    dash: int = 8
) -> None:
    length = math.hypot(p2[0] - p1[0], p2[1] - p1[1])
    if length < 1:
        return
    dashes = max(1, int(length // (2 * dash)))
    for i in range(dashes):
        t0 = (2 * i * dash) / length
        t1 = min(1.0, (2 * i + 1) * dash / length)
        a = (int(p1[0] + (p2[0] - p1[0]) * t0), int(p1[1] + (p2[1] - p1[1]) * t0))
        b = (int(p1[0] + (p2[0] - p1[0]) * t1), int(p1[1] + (p2[1] - p1[1]) * t1))
        cv2.line(view, a, b, color, thickness, cv2.LINE_AA)


def _draw_leg_arrow(view: np.ndarray, p1: Tuple[int, int], p2: Tuple[int, int]) -> None:
    """Small arrow at the middle of a route leg pointing towards p2."""
    dx, dy = p2[0] - p1[0], p2[1] - p1[1]
    length = math.sqrt(dx * dx + dy * dy)
    if length < 1:
        return
    dx, dy = dx / length, dy / length

    mx, my = (p1[0] + p2[0]) / 2, (p1[1] + p2[1]) / 2
    arrow_len = 10
    cv2.arrowedLine(
        view,
        (int(mx - dx * arrow_len), int(my - dy * arrow_len)),
        (int(mx + dx * arrow_len), int(my + dy * arrow_len)),
        PATH_COLOR, 2, tipLength=0.5
    )


def save_map(path: str, image: np.ndarray) -> bool:
    """Write the rendered map to an image file."""
    return bool(cv2.imwrite(path, image))
