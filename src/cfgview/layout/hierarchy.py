"""Hierarchical block placement.

Phases:
  1. Block dimensions and address rank
  2. Level assignment (BFS baseline, corrected by address order)
  3. Layout ownership (single parent per block)
  4. Subtree widths
  5. Tree positioning, leftover slots, overlap resolution, level centering

Every phase is a plain function of its inputs; state lives in the dicts each
call builds and returns.
"""

from __future__ import annotations

import logging
from collections import deque

import networkx as nx

from cfgview.graph import BasicBlock, ControlFlowGraph, EdgeType
from cfgview.layout.types import DEFAULT_CONFIG, BlockLayout, LayoutConfig

logger = logging.getLogger(__name__)

# Left-to-right order of owned children by the edge that reaches them.
_CHILD_ORDER: dict[EdgeType, int] = {
    EdgeType.CONDITIONAL_TRUE: 0,
    EdgeType.UNCONDITIONAL: 1,
}

# ─── Dimensions and Address Rank ─────────────────────────────────────────────


def block_dimensions(block: BasicBlock, config: LayoutConfig = DEFAULT_CONFIG) -> tuple[int, int]:
    """(width, height): fixed width, height grows with instruction count."""
    return config.block_width, config.block_height(len(block.instructions))


def address_ranks(cfg: ControlFlowGraph) -> dict[str, int]:
    """Rank of every block in ascending address order (ties keep construction order)."""
    ordered = sorted(cfg.blocks, key=lambda b: (b.sort_address, b.index))
    return {block.id: rank for rank, block in enumerate(ordered)}


# ─── Level Assignment ────────────────────────────────────────────────────────


class LevelAssignment:
    """Each block's level (row), 0 being the entry row.

    Attributes:
        levels: Maps block id → level.
        ranks: Maps block id → address rank.
        bfs_levels: Edge distance from the entry (blocks unreachable from the
            entry are absent).
    """

    def __init__(self, levels: dict[str, int], ranks: dict[str, int], bfs_levels: dict[str, int]) -> None:
        self.levels = levels
        self.ranks = ranks
        self.bfs_levels = bfs_levels

    @property
    def level_count(self) -> int:
        return (max(self.levels.values()) + 1) if self.levels else 0

    def groups(self) -> dict[int, list[str]]:
        """Level → block ids on that level, in address order."""
        groups: dict[int, list[str]] = {}
        for block_id in sorted(self.levels, key=lambda b: self.ranks[b]):
            groups.setdefault(self.levels[block_id], []).append(block_id)
        return dict(sorted(groups.items()))

    @classmethod
    def assign(cls, cfg: ControlFlowGraph, entry_id: str) -> LevelAssignment:
        """Hybrid BFS + address-order leveling.

        Blocks are visited in address order with the entry pinned to level 0.
        A block's predecessors split into forward ones (lower address rank)
        and the rest (loop back edges). With at least one leveled forward
        predecessor the block sits one level below the deepest of them;
        otherwise it falls back to its BFS distance from the entry. Back
        edges therefore never pull a loop header down below its body.
        """
        ranks = address_ranks(cfg)
        bfs_levels: dict[str, int] = dict(nx.single_source_shortest_path_length(cfg.to_digraph(), entry_id))

        levels: dict[str, int] = {entry_id: 0}
        for block in sorted(cfg.blocks, key=lambda b: ranks[b.id]):
            if block.id == entry_id:
                continue
            my_rank = ranks[block.id]
            forward = [
                levels[p] for p in block.predecessors if p in levels and ranks.get(p, my_rank) < my_rank
            ]
            if forward:
                levels[block.id] = max(forward) + 1
            else:
                levels[block.id] = bfs_levels.get(block.id, 1)

        return cls(levels=levels, ranks=ranks, bfs_levels=bfs_levels)


# ─── Ownership and Subtree Widths ────────────────────────────────────────────


def assign_layout_parents(cfg: ControlFlowGraph, entry_id: str, levels: dict[str, int]) -> dict[str, str]:
    """Pick one owning parent per block to avoid double-counting merge points.

    BFS from the entry over successors in edge order; a successor on a
    strictly deeper level is owned by the first block that reaches it.
    Because ownership always points one or more levels down it is acyclic.
    """
    parents: dict[str, str] = {}
    visited = {entry_id}
    queue: deque[str] = deque([entry_id])
    while queue:
        block_id = queue.popleft()
        block = cfg.get(block_id)
        if block is None:
            continue
        my_level = levels.get(block_id, 0)
        for child_id in block.successors:
            if child_id not in levels or levels[child_id] <= my_level:
                continue
            parents.setdefault(child_id, block_id)
            if child_id not in visited:
                visited.add(child_id)
                queue.append(child_id)
    return parents


def owned_children(cfg: ControlFlowGraph, block_id: str, parents: dict[str, str]) -> list[str]:
    """Successors whose layout parent is ``block_id``, in successor order."""
    block = cfg.get(block_id)
    if block is None:
        return []
    return [s for s in block.successors if parents.get(s) == block_id]


def subtree_widths(
    cfg: ControlFlowGraph,
    levels: dict[str, int],
    parents: dict[str, str],
    widths: dict[str, float],
    gap: float,
) -> dict[str, float]:
    """width(b) = max(own width, Σ width(owned child) + gap × (children − 1)).

    Owned children always sit on deeper levels, so walking levels bottom-up
    sees every child before its parent.
    """
    result: dict[str, float] = {}
    for block in sorted(cfg.blocks, key=lambda b: levels.get(b.id, 0), reverse=True):
        children = owned_children(cfg, block.id, parents)
        own = widths[block.id]
        if not children:
            result[block.id] = own
            continue
        total = sum(result.get(c, widths[c]) for c in children) + gap * (len(children) - 1)
        result[block.id] = max(own, total)
    return result


# ─── Positioning ─────────────────────────────────────────────────────────────


def _child_sort_key(cfg: ControlFlowGraph, parent_id: str, child_id: str) -> int:
    edge = cfg.edge_between(parent_id, child_id)
    if edge is None:
        return 2
    return _CHILD_ORDER.get(edge.type, 2)


def position_tree(
    cfg: ControlFlowGraph,
    entry_id: str,
    parents: dict[str, str],
    widths: dict[str, float],
    subtree: dict[str, float],
    gap: float,
    margin: float,
) -> dict[str, float]:
    """Top-down placement of the ownership tree. Returns block id → left x.

    The entry is centred at ``subtree(entry) / 2 + margin``; each block's
    owned children are ordered true-branch, unconditional, then the rest, and
    each is centred in its own subtree-width slice.
    """
    xs: dict[str, float] = {}
    stack: list[tuple[str, float]] = [(entry_id, subtree[entry_id] / 2 + margin)]
    while stack:
        block_id, center_x = stack.pop()
        if block_id in xs:
            continue
        xs[block_id] = center_x - widths[block_id] / 2

        children = owned_children(cfg, block_id, parents)
        if not children:
            continue
        children.sort(key=lambda c: _child_sort_key(cfg, block_id, c))
        total = sum(subtree[c] for c in children) + gap * (len(children) - 1)
        child_x = center_x - total / 2
        for child_id in children:
            stack.append((child_id, child_x + subtree[child_id] / 2))
            child_x += subtree[child_id] + gap
    return xs


def place_leftovers(
    cfg: ControlFlowGraph,
    xs: dict[str, float],
    levels: dict[str, int],
    widths: dict[str, float],
    gap: float,
) -> list[str]:
    """Give every block the tree walk missed a slot right of its level's last block.

    Returns the ids placed this way.
    """
    placed: list[str] = []
    for block in cfg.blocks:
        if block.id in xs:
            continue
        level = levels.get(block.id, 0)
        right = max((xs[b] + widths[b] for b in xs if levels.get(b) == level), default=0.0)
        xs[block.id] = right + gap
        placed.append(block.id)
    return placed


def resolve_overlaps(
    groups: dict[int, list[str]],
    xs: dict[str, float],
    widths: dict[str, float],
    gap: float,
) -> None:
    """Within each level, push blocks right until neighbours are ``gap`` apart."""
    for ids in groups.values():
        ordered = sorted((b for b in ids if b in xs), key=lambda b: xs[b])
        for prev, curr in zip(ordered, ordered[1:]):
            min_x = xs[prev] + widths[prev] + gap
            if xs[curr] < min_x:
                xs[curr] = min_x


def center_levels(groups: dict[int, list[str]], xs: dict[str, float], widths: dict[str, float]) -> None:
    """Shift each level so its horizontal centre sits on the graph's centre."""
    if not xs:
        return
    graph_min = min(xs.values())
    graph_max = max(xs[b] + widths[b] for b in xs)
    graph_center = (graph_min + graph_max) / 2
    for ids in groups.values():
        present = [b for b in ids if b in xs]
        if not present:
            continue
        level_min = min(xs[b] for b in present)
        level_max = max(xs[b] + widths[b] for b in present)
        offset = graph_center - (level_min + level_max) / 2
        for b in present:
            xs[b] += offset


def level_offsets(groups: dict[int, list[str]], heights: dict[str, float], top: float, v_gap: float) -> dict[int, float]:
    """Top y of each level: cumulative max heights plus ``v_gap``."""
    ys: dict[int, float] = {}
    y = top
    for level, ids in groups.items():
        ys[level] = y
        y += max(heights[b] for b in ids) + v_gap
    return ys


# ─── Full Placement ──────────────────────────────────────────────────────────


def layout_blocks(
    cfg: ControlFlowGraph,
    config: LayoutConfig = DEFAULT_CONFIG,
) -> tuple[dict[str, BlockLayout], dict[str, int]]:
    """Place every block of ``cfg``. Returns (id → BlockLayout, id → level).

    Returns empty maps when the graph has no entry block.
    """
    entry = cfg.entry
    if entry is None:
        return {}, {}

    dims = {b.id: block_dimensions(b, config) for b in cfg.blocks}
    widths: dict[str, float] = {b: float(w) for b, (w, _) in dims.items()}
    heights: dict[str, float] = {b: float(h) for b, (_, h) in dims.items()}

    la = LevelAssignment.assign(cfg, entry.id)
    groups = la.groups()
    parents = assign_layout_parents(cfg, entry.id, la.levels)
    subtree = subtree_widths(cfg, la.levels, parents, widths, config.h_gap)

    xs = position_tree(cfg, entry.id, parents, widths, subtree, config.h_gap, config.left_margin)
    leftovers = place_leftovers(cfg, xs, la.levels, widths, config.h_gap)
    resolve_overlaps(groups, xs, widths, config.h_gap)
    center_levels(groups, xs, widths)
    ys = level_offsets(groups, heights, config.top_margin, config.v_gap)

    logger.debug(
        "placed %d blocks on %d levels (%d outside the ownership tree)",
        len(xs),
        len(groups),
        len(leftovers),
    )

    layouts = {
        b.id: BlockLayout(
            id=b.id,
            x=xs[b.id],
            y=ys[la.levels[b.id]],
            width=widths[b.id],
            height=heights[b.id],
            level=la.levels[b.id],
        )
        for b in cfg.blocks
    }
    return layouts, la.levels
