"""Shortest-path routing over the campus graph."""

import heapq
from typing import Dict, List, Optional, Sequence

from .graph_types import CampusGraph


def route(graph: CampusGraph, start_id: str, end_id: str) -> List[str]:
    """
    Shortest path between two nodes by cumulative edge distance (Dijkstra).

    Ties are deterministic: nodes at equal distance are finalized in id
    order, and a node keeps the first predecessor that reached it unless a
    strictly shorter one turns up.

    Args:
        graph: Campus graph snapshot.
        start_id: Starting node id.
        end_id: Target node id.

    Returns:
        Node ids from start to end inclusive, or [] if either id is unknown
        or no path connects them.
    """
    if start_id not in graph or end_id not in graph:
        return []
    if start_id == end_id:
        return [start_id]

    distances: Dict[str, float] = {start_id: 0.0}
    previous: Dict[str, Optional[str]] = {start_id: None}
    finalized = set()
    heap = [(0.0, start_id)]

    while heap:
        dist, node_id = heapq.heappop(heap)
        if node_id in finalized:
            continue
        finalized.add(node_id)

        # Early exit once the target is settled
        if node_id == end_id:
            break

        for edge in graph.neighbors(node_id):
            neighbor = edge.other(node_id)
            if neighbor in finalized:
                continue
            candidate = dist + edge.distance
            if candidate < distances.get(neighbor, float('inf')):
                distances[neighbor] = candidate
                previous[neighbor] = node_id
                heapq.heappush(heap, (candidate, neighbor))

    if end_id not in finalized:
        return []

    path = []
    current: Optional[str] = end_id
    while current is not None:
        path.append(current)
        current = previous[current]
    path.reverse()
    return path


def path_distance(graph: CampusGraph, path: Sequence[str]) -> float:
    """
    Total distance along consecutive nodes of a path.

    Raises:
        ValueError: If two consecutive nodes are not connected.
    """
    total = 0.0
    for u, v in zip(path, path[1:]):
        edge = graph.edge_between(u, v)
        if edge is None:
            raise ValueError(f"No edge between '{u}' and '{v}'")
        total += edge.distance
    return total
