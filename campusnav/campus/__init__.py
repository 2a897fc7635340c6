"""Campus graph model and shortest-path routing."""

from .graph_types import CampusConfigError, CampusEdge, CampusGraph, CampusNode, NodeCategory
from .loader import campus_from_dict, load_campus
from .router import path_distance, route

__all__ = [
    "CampusConfigError",
    "CampusEdge",
    "CampusGraph",
    "CampusNode",
    "NodeCategory",
    "campus_from_dict",
    "load_campus",
    "path_distance",
    "route",
]
