"""Layout pipeline: placement → edge routing → initial view."""

from __future__ import annotations

import logging

from cfgview.graph import ControlFlowGraph
from cfgview.layout.hierarchy import layout_blocks
from cfgview.layout.routing import route_edges
from cfgview.layout.types import DEFAULT_CANVAS, DEFAULT_CONFIG, FALLBACK_PAN, BlockLayout, LayoutConfig, LayoutResult, Point

logger = logging.getLogger(__name__)


def initial_view(
    entry: BlockLayout | None,
    canvas_width: float | None = None,
    config: LayoutConfig = DEFAULT_CONFIG,
) -> tuple[Point, float]:
    """Pan/zoom that puts the entry block's top edge centred near the top of the canvas."""
    zoom = config.initial_zoom
    if entry is None:
        return Point(*FALLBACK_PAN), zoom
    width = canvas_width or DEFAULT_CANVAS[0]
    pan_x = width / 2 - entry.center_x * zoom
    pan_y = config.initial_top_offset - entry.y * zoom
    return Point(pan_x, pan_y), zoom


def full_layout(
    cfg: ControlFlowGraph,
    canvas_width: float | None = None,
    config: LayoutConfig = DEFAULT_CONFIG,
) -> LayoutResult:
    """Place blocks, route edges and compute the initial view for ``cfg``."""
    layouts, levels = layout_blocks(cfg, config)
    routes = route_edges(cfg.edges, layouts, config)
    entry = cfg.entry
    pan, zoom = initial_view(layouts.get(entry.id) if entry else None, canvas_width, config)
    return LayoutResult(layouts=layouts, levels=levels, routes=routes, initial_pan=pan, initial_zoom=zoom)
