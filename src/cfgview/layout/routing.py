"""Edge routing (orthogonal polylines between placed blocks).

For each edge u → v:
  - exit = bottom-centre of u, entry = top-centre of v, both shifted
    sideways when several edges share the block
  - back edges (level(v) ≤ level(u)) drop below u's row, run up a side
    lane, and come into v from above
  - forward edges try down / across / down through the gap between rows;
    if that clips a block they take a side lane instead

Side lanes are placed outside every block whose rows the lane crosses, so a
detour never passes through a block. Routing is deterministic given the
layout.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence

from cfgview.graph import Edge
from cfgview.layout.types import DEFAULT_CONFIG, BlockLayout, LayoutConfig, Point, RoutedEdge

logger = logging.getLogger(__name__)

# ─── Collision Tests ─────────────────────────────────────────────────────────


def horizontal_hits(y: float, x1: float, x2: float, block: BlockLayout, margin: float) -> bool:
    """Does the horizontal segment (x1..x2 at y) pass through ``block`` grown by ``margin``?"""
    lo, hi = min(x1, x2), max(x1, x2)
    return block.y - margin < y < block.bottom + margin and hi > block.x - margin and lo < block.right + margin


def vertical_hits(x: float, y1: float, y2: float, block: BlockLayout, margin: float) -> bool:
    """Does the vertical segment (y1..y2 at x) pass through ``block`` grown by ``margin``?"""
    lo, hi = min(y1, y2), max(y1, y2)
    return block.x - margin < x < block.right + margin and hi > block.y - margin and lo < block.bottom + margin


def blocks_in_path(
    src: BlockLayout,
    tgt: BlockLayout,
    layouts: Sequence[BlockLayout],
    margin: float,
) -> list[BlockLayout]:
    """Blocks other than src/tgt overlapping the edge's margin-grown bounding box."""
    min_x = min(src.x, tgt.x) - margin
    max_x = max(src.right, tgt.right) + margin
    min_y = min(src.y, tgt.y) - margin
    max_y = max(src.bottom, tgt.bottom) + margin
    return [
        b
        for b in layouts
        if b.id not in (src.id, tgt.id)
        and not (b.right < min_x or b.x > max_x or b.bottom < min_y or b.y > max_y)
    ]


def blocks_in_band(layouts: Sequence[BlockLayout], y1: float, y2: float) -> list[BlockLayout]:
    """Blocks whose vertical extent intersects the open band (y1, y2)."""
    lo, hi = min(y1, y2), max(y1, y2)
    return [b for b in layouts if b.y < hi and b.bottom > lo]


# ─── Port Offsets ────────────────────────────────────────────────────────────


def port_offsets(
    edges: Sequence[Edge],
    spacing: float,
    widths: Mapping[str, float] | None = None,
    margin: float = 0.0,
) -> tuple[list[float], list[float]]:
    """Horizontal offsets of each edge's exit and entry port.

    Edges sharing a source (or target) fan out symmetrically around the
    block centre, ``spacing`` apart, in edge order. When the block's width
    is known the spacing shrinks so every port stays ``margin`` inside it.
    """
    by_source: dict[str, list[int]] = {}
    by_target: dict[str, list[int]] = {}
    for i, edge in enumerate(edges):
        by_source.setdefault(edge.from_id, []).append(i)
        by_target.setdefault(edge.to_id, []).append(i)

    def spread(groups: dict[str, list[int]]) -> list[float]:
        offsets = [0.0] * len(edges)
        for block_id, members in groups.items():
            n = len(members)
            if n < 2:
                continue
            step = spacing
            if widths is not None and block_id in widths:
                step = min(spacing, max(widths[block_id] - 2 * margin, 0.0) / (n - 1))
            for pos, i in enumerate(members):
                offsets[i] = (pos - (n - 1) / 2) * step
        return offsets

    return spread(by_source), spread(by_target)


# ─── Routing ─────────────────────────────────────────────────────────────────


def _side_x(obstacles: Sequence[BlockLayout], right: bool, clearance: float) -> float:
    if right:
        return max(b.right for b in obstacles) + clearance
    return min(b.x for b in obstacles) - clearance


def route_edge(
    edge: Edge,
    edge_index: int,
    src: BlockLayout,
    tgt: BlockLayout,
    layouts: Sequence[BlockLayout],
    row_bottom: dict[int, float],
    source_offset: float = 0.0,
    target_offset: float = 0.0,
    config: LayoutConfig = DEFAULT_CONFIG,
) -> RoutedEdge:
    """Route one edge. ``edge_index`` staggers lanes between sibling edges."""
    margin = config.edge_margin
    spacing = config.edge_spacing
    lane = edge_index * spacing
    stagger = (edge_index % 3) * spacing

    from_x = src.center_x + source_offset
    from_y = src.bottom
    to_x = tgt.center_x + target_offset
    to_y = tgt.y
    below_row = row_bottom.get(src.level, from_y)

    if tgt.level <= src.level:
        exit_y = below_row + margin + config.back_edge_clearance + stagger
        entry_y = to_y - margin - config.back_edge_clearance - stagger
        obstacles = [src, tgt, *blocks_in_band(layouts, entry_y, exit_y)]
        side_x = _side_x(obstacles, from_x > src.center_x, config.detour_margin + lane)
        waypoints = [
            Point(from_x, from_y),
            Point(from_x, exit_y),
            Point(side_x, exit_y),
            Point(side_x, entry_y),
            Point(to_x, entry_y),
            Point(to_x, to_y),
        ]
        return RoutedEdge(edge.from_id, edge.to_id, edge.type, waypoints, back_edge=True, detour=True)

    in_path = blocks_in_path(src, tgt, layouts, margin)
    mid_y = from_y + (to_y - from_y) / 2 + ((edge_index % 5) - 2) * spacing

    if not in_path:
        if abs(from_x - to_x) < config.straight_tolerance:
            waypoints = [Point(from_x, from_y), Point(to_x, to_y)]
        else:
            waypoints = [Point(from_x, from_y), Point(from_x, mid_y), Point(to_x, mid_y), Point(to_x, to_y)]
        return RoutedEdge(edge.from_id, edge.to_id, edge.type, waypoints)

    collides = any(
        vertical_hits(from_x, from_y, mid_y, b, margin)
        or horizontal_hits(mid_y, from_x, to_x, b, margin)
        or vertical_hits(to_x, mid_y, to_y, b, margin)
        for b in in_path
    )
    if not collides:
        waypoints = [Point(from_x, from_y), Point(from_x, mid_y), Point(to_x, mid_y), Point(to_x, to_y)]
        return RoutedEdge(edge.from_id, edge.to_id, edge.type, waypoints)

    # Detour past the nearer side of the obstruction.
    left_distance = min(from_x, to_x) - min(b.x for b in in_path)
    right_distance = max(b.right for b in in_path) - max(from_x, to_x)
    exit_y = below_row + margin + stagger
    entry_y = to_y - margin - stagger
    obstacles = [*in_path, *blocks_in_band(layouts, exit_y, entry_y)]
    side_x = _side_x(obstacles, right_distance < left_distance, config.detour_margin + lane)
    waypoints = [
        Point(from_x, from_y),
        Point(from_x, exit_y),
        Point(side_x, exit_y),
        Point(side_x, entry_y),
        Point(to_x, entry_y),
        Point(to_x, to_y),
    ]
    return RoutedEdge(edge.from_id, edge.to_id, edge.type, waypoints, detour=True)


def route_edges(
    edges: Sequence[Edge],
    layouts: dict[str, BlockLayout],
    config: LayoutConfig = DEFAULT_CONFIG,
) -> list[RoutedEdge]:
    """Route every edge whose endpoints were placed."""
    placed = list(layouts.values())
    row_bottom: dict[int, float] = {}
    for b in placed:
        row_bottom[b.level] = max(row_bottom.get(b.level, b.bottom), b.bottom)

    widths = {b.id: b.width for b in placed}
    source_offsets, target_offsets = port_offsets(edges, config.parallel_offset, widths, config.edge_margin)

    routes: list[RoutedEdge] = []
    for i, edge in enumerate(edges):
        src = layouts.get(edge.from_id)
        tgt = layouts.get(edge.to_id)
        if src is None or tgt is None:
            logger.warning("skipping edge %s -> %s: endpoint not placed", edge.from_id, edge.to_id)
            continue
        routes.append(
            route_edge(edge, i, src, tgt, placed, row_bottom, source_offsets[i], target_offsets[i], config)
        )

    logger.debug(
        "routed %d edges (%d back edges, %d detours)",
        len(routes),
        sum(r.back_edge for r in routes),
        sum(r.detour for r in routes),
    )
    return routes
