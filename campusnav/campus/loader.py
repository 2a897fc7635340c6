"""Load the campus graph from YAML configuration."""

from pathlib import Path
from typing import Any, Dict

import yaml

from .graph_types import CampusConfigError, CampusEdge, CampusGraph, CampusNode, NodeCategory
from campusnav.utils.logger import get_logger

logger = get_logger(__name__)


def load_campus(path: Path) -> CampusGraph:
    """
    Load a campus graph from a YAML file.

    Args:
        path: YAML file with "nodes" and "edges" lists.

    Returns:
        Validated CampusGraph.

    Raises:
        CampusConfigError: If the file is missing or malformed.
    """
    path = Path(path)
    if not path.exists():
        raise CampusConfigError(f"Campus graph file not found: {path}")

    try:
        with open(path) as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise CampusConfigError(f"Invalid YAML in {path}: {e}")

    graph = campus_from_dict(data or {})
    logger.info(f"[CAMPUS] Loaded {len(graph)} nodes, {len(graph.edges)} edges from {path}")
    return graph


def campus_from_dict(data: Dict[str, Any]) -> CampusGraph:
    """
    Build a campus graph from plain node/edge dictionaries.

    Edge keys: "from", "to", "distance" and optional "instruction".
    """
    try:
        nodes = [
            CampusNode(
                id=str(raw["id"]),
                name=str(raw.get("name", raw["id"])),
                category=NodeCategory(raw.get("category", "outdoor")),
                x=float(raw.get("x", 0.0)),
                y=float(raw.get("y", 0.0)),
                description=str(raw.get("description", "")),
            )
            for raw in data.get("nodes", [])
        ]
        edges = [
            CampusEdge(
                a=str(raw["from"]),
                b=str(raw["to"]),
                distance=float(raw["distance"]),
                instruction=raw.get("instruction"),
            )
            for raw in data.get("edges", [])
        ]
    except (KeyError, TypeError, ValueError) as e:
        raise CampusConfigError(f"Malformed campus definition: {e}")

    if not nodes:
        raise CampusConfigError("Campus definition has no nodes")

    return CampusGraph(nodes, edges)
