"""Data types for the campus routing graph."""

import math
from collections import defaultdict
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterable, List, Optional, Tuple


class CampusConfigError(Exception):
    """Exception raised for an invalid campus graph definition."""
    pass


class NodeCategory(Enum):
    """Kind of place a campus node represents."""
    OUTDOOR = "outdoor"
    INDOOR = "indoor"
    CABIN = "cabin"
    LAB = "lab"
    OFFICE = "office"
    ENTRANCE = "entrance"


@dataclass(frozen=True)
class CampusNode:
    """A named campus location."""
    id: str
    name: str
    category: NodeCategory
    x: float  # Percent of map width, drawing only
    y: float  # Percent of map height, drawing only
    description: str = ""


@dataclass(frozen=True)
class CampusEdge:
    """A walkable, undirected connection between two nodes."""
    a: str
    b: str
    distance: float
    instruction: Optional[str] = None

    def other(self, node_id: str) -> str:
        """Endpoint opposite to node_id."""
        return self.b if node_id == self.a else self.a

    def connects(self, u: str, v: str) -> bool:
        """Whether this edge joins u and v (in either order)."""
        return (self.a == u and self.b == v) or (self.a == v and self.b == u)


class CampusGraph:
    """
    Immutable snapshot of campus nodes and weighted edges.

    Parallel edges between the same pair are allowed; routing and lookups
    use the shortest one.
    """

    def __init__(self, nodes: Iterable[CampusNode], edges: Iterable[CampusEdge]):
        """
        Build and validate the graph.

        Args:
            nodes: Campus nodes (ids must be unique).
            edges: Edges between known nodes with positive distances.

        Raises:
            CampusConfigError: On duplicate ids, dangling or self-loop edges,
                or non-positive distances.
        """
        self._nodes: Dict[str, CampusNode] = {}
        for node in nodes:
            if node.id in self._nodes:
                raise CampusConfigError(f"Duplicate node id '{node.id}'")
            self._nodes[node.id] = node

        self._edges: Tuple[CampusEdge, ...] = tuple(edges)
        adjacency: Dict[str, List[CampusEdge]] = defaultdict(list)

        for edge in self._edges:
            for endpoint in (edge.a, edge.b):
                if endpoint not in self._nodes:
                    raise CampusConfigError(
                        f"Edge {edge.a}-{edge.b} references unknown node '{endpoint}'"
                    )
            if edge.a == edge.b:
                raise CampusConfigError(f"Self-loop on node '{edge.a}'")
            if not math.isfinite(edge.distance) or edge.distance <= 0:
                raise CampusConfigError(
                    f"Edge {edge.a}-{edge.b} has non-positive distance {edge.distance}"
                )
            adjacency[edge.a].append(edge)
            adjacency[edge.b].append(edge)

        self._adjacency = {node_id: tuple(adjacency.get(node_id, ())) for node_id in self._nodes}

    @property
    def nodes(self) -> List[CampusNode]:
        """All nodes in load order."""
        return list(self._nodes.values())

    @property
    def edges(self) -> List[CampusEdge]:
        """All edges in load order."""
        return list(self._edges)

    def __contains__(self, node_id: str) -> bool:
        return node_id in self._nodes

    def __len__(self) -> int:
        return len(self._nodes)

    def node(self, node_id: str) -> Optional[CampusNode]:
        """Node by id, or None."""
        return self._nodes.get(node_id)

    def find_node(self, id_or_name: str) -> Optional[CampusNode]:
        """
        Resolve an id or a display name (case-insensitive) to a node.

        Classifiers sometimes answer with the display name instead of the id.
        """
        if not id_or_name:
            return None
        if id_or_name in self._nodes:
            return self._nodes[id_or_name]
        wanted = id_or_name.strip().lower()
        for node in self._nodes.values():
            if node.id.lower() == wanted or node.name.lower() == wanted:
                return node
        return None

    def neighbors(self, node_id: str) -> Tuple[CampusEdge, ...]:
        """Edges incident to node_id."""
        return self._adjacency.get(node_id, ())

    def edge_between(self, u: str, v: str) -> Optional[CampusEdge]:
        """Shortest edge joining u and v, or None."""
        candidates = [e for e in self.neighbors(u) if e.connects(u, v)]
        if not candidates:
            return None
        return min(candidates, key=lambda e: e.distance)

    def name_of(self, node_id: Optional[str]) -> str:
        """Display name for node_id, falling back to the id itself."""
        if node_id is None:
            return ""
        node = self._nodes.get(node_id)
        return node.name if node else node_id

    def names(self, path: Iterable[str]) -> List[str]:
        """Display names along a path."""
        return [self.name_of(node_id) for node_id in path]
