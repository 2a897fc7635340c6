"""Campus map rendering."""

from .map_renderer import render_map, save_map

__all__ = ["render_map", "save_map"]
