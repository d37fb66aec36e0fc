"""Prune blocks that cannot be reached from the function entry."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

import networkx as nx

from cfgview.graph import ControlFlowGraph

logger = logging.getLogger(__name__)


@dataclass
class ReachabilityResult:
    """Reachable part of a CFG.

    ``entry_id`` is None when the input had no entry block; ``graph`` is then
    empty. Callers decide whether that is an error.
    """

    graph: ControlFlowGraph
    entry_id: str | None
    removed: list[str] = field(default_factory=list)

    @property
    def has_entry(self) -> bool:
        return self.entry_id is not None


def filter_reachable(cfg: ControlFlowGraph) -> ReachabilityResult:
    """Keep the blocks reachable from the entry block, and the edges between them.

    Reachability follows each block's ``successors`` list, which for imported
    graphs may name more blocks than the typed edge list does.
    """
    entry = cfg.entry
    if entry is None:
        if cfg.blocks:
            logger.warning("CFG with %d blocks has no entry block", len(cfg.blocks))
        return ReachabilityResult(
            graph=ControlFlowGraph(),
            entry_id=None,
            removed=[b.id for b in cfg.blocks],
        )

    flow = nx.DiGraph()
    flow.add_nodes_from(b.id for b in cfg.blocks)
    flow.add_edges_from((b.id, s) for b in cfg.blocks for s in b.successors if s in cfg)
    reached = nx.descendants(flow, entry.id) | {entry.id}
    removed = [b.id for b in cfg.blocks if b.id not in reached]
    if removed:
        logger.debug("pruned %d unreachable blocks: %s", len(removed), ", ".join(removed))
    return ReachabilityResult(graph=cfg.subgraph(reached), entry_id=entry.id, removed=removed)
