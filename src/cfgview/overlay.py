"""Reachability overlay and block/edge colours.

The overlay comes from an external symbolic analyzer and only affects
colouring; topology and geometry never look at it.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any

from cfgview.graph import BasicBlock, EdgeType

logger = logging.getLogger(__name__)


class ReachabilityStatus(Enum):
    CURRENT = "current"
    REACHABLE = "reachable"
    UNREACHABLE = "unreachable"
    CONDITIONAL = "conditional"
    UNKNOWN = "unknown"

    @classmethod
    def parse(cls, text: str) -> ReachabilityStatus:
        try:
            return cls(text)
        except ValueError:
            return cls.UNKNOWN


@dataclass(frozen=True)
class BlockReachability:
    status: ReachabilityStatus
    condition: str = ""
    probability: float | None = None


Overlay = Mapping[str, BlockReachability]


def parse_overlay(records: Iterable[Mapping[str, Any]]) -> dict[str, BlockReachability]:
    """Build ``block id → BlockReachability`` from analyzer records.

    Records carry ``blockId``, ``status``, ``condition`` and optionally
    ``probability``. Records without a block id are ignored.
    """
    overlay: dict[str, BlockReachability] = {}
    for record in records:
        block_id = record.get("blockId")
        if block_id is None:
            logger.warning("ignoring reachability record without blockId: %r", record)
            continue
        probability = record.get("probability")
        overlay[str(block_id)] = BlockReachability(
            status=ReachabilityStatus.parse(str(record.get("status", "unknown"))),
            condition=str(record.get("condition", "")),
            probability=float(probability) if probability is not None else None,
        )
    return overlay


# ─── Colours ─────────────────────────────────────────────────────────────────

ENTRY_COLOR = "#4caf50"
EXIT_COLOR = "#ff5722"
NEUTRAL_BORDER = "#3c3c3c"
NEUTRAL_HEADER = "#1a1a1a"
UNKNOWN_BORDER = "#9e9e9e"
HEADER_ALPHA = 0.2

STATUS_COLORS: dict[ReachabilityStatus, str] = {
    ReachabilityStatus.CURRENT: "#2196f3",
    ReachabilityStatus.REACHABLE: "#4caf50",
    ReachabilityStatus.UNREACHABLE: "#f44336",
    ReachabilityStatus.CONDITIONAL: "#ff9800",
}

EDGE_COLORS: dict[EdgeType, str] = {
    EdgeType.CONDITIONAL_TRUE: "#4caf50",
    EdgeType.CONDITIONAL_FALSE: "#ff5722",
    EdgeType.UNCONDITIONAL: "#4fc1ff",
    EdgeType.NORMAL: "#808080",
}


def with_alpha(color: str, alpha: float) -> str:
    """``#rrggbb`` → ``rgba(r, g, b, alpha)``."""
    value = color.lstrip("#")
    r, g, b = (int(value[i : i + 2], 16) for i in (0, 2, 4))
    return f"rgba({r}, {g}, {b}, {alpha})"


def border_color(block: BasicBlock, overlay: Overlay | None = None) -> str:
    """Entry/exit colours without an overlay; status colours with one."""
    if overlay is None:
        if block.is_entry:
            return ENTRY_COLOR
        if block.is_exit:
            return EXIT_COLOR
        return NEUTRAL_BORDER
    reach = overlay.get(block.id)
    if reach is None:
        return NEUTRAL_BORDER
    return STATUS_COLORS.get(reach.status, UNKNOWN_BORDER)


def header_color(block: BasicBlock, overlay: Overlay | None = None) -> str:
    if overlay is None:
        if block.is_entry:
            return with_alpha(ENTRY_COLOR, HEADER_ALPHA)
        if block.is_exit:
            return with_alpha(EXIT_COLOR, HEADER_ALPHA)
        return NEUTRAL_HEADER
    reach = overlay.get(block.id)
    if reach is None or reach.status not in STATUS_COLORS:
        return NEUTRAL_HEADER
    return with_alpha(STATUS_COLORS[reach.status], HEADER_ALPHA)


def edge_color(edge_type: EdgeType) -> str:
    return EDGE_COLORS.get(edge_type, EDGE_COLORS[EdgeType.NORMAL])
