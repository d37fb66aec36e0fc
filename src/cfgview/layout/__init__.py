"""Hierarchical CFG layout and edge routing."""

from cfgview.layout.engine import full_layout, initial_view
from cfgview.layout.hierarchy import LevelAssignment, layout_blocks
from cfgview.layout.routing import route_edges
from cfgview.layout.types import DEFAULT_CONFIG, BlockLayout, LayoutConfig, LayoutResult, Point, RoutedEdge

__all__ = [
    "DEFAULT_CONFIG",
    "BlockLayout",
    "LayoutConfig",
    "LayoutResult",
    "LevelAssignment",
    "Point",
    "RoutedEdge",
    "full_layout",
    "initial_view",
    "layout_blocks",
    "route_edges",
]
