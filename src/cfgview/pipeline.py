"""End-to-end CFG build: instructions → blocks → reachable subset → layout → routes."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from cfgview.arch import OpcodeClassifier
from cfgview.errors import CfgError, NoEntryBlockError
from cfgview.graph import ControlFlowGraph
from cfgview.instructions import Instruction, instructions_from_json
from cfgview.layout.engine import full_layout
from cfgview.layout.types import DEFAULT_CONFIG, LayoutConfig, LayoutResult
from cfgview.reachability import filter_reachable
from cfgview.splitter import split_blocks
from cfgview.viewport import MinimapProjection

logger = logging.getLogger(__name__)


class CfgStatus(Enum):
    LOADING = "loading"
    ERROR = "error"
    LOADED = "loaded"


@dataclass
class CfgBuildResult:
    """Outcome of one CFG build.

    ``cfg`` holds only blocks reachable from the entry; ``removed`` names the
    pruned ones. On ``error`` the graph and layout are empty and ``error``
    carries the message.
    """

    status: CfgStatus = CfgStatus.LOADING
    cfg: ControlFlowGraph = field(default_factory=ControlFlowGraph)
    layout: LayoutResult = field(default_factory=LayoutResult)
    removed: list[str] = field(default_factory=list)
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.status is CfgStatus.LOADED

    def minimap(self, config: LayoutConfig = DEFAULT_CONFIG) -> MinimapProjection:
        return MinimapProjection.fit(self.layout.layouts.values(), config)


def _finish(
    full: ControlFlowGraph,
    canvas_width: float | None,
    config: LayoutConfig,
) -> CfgBuildResult:
    reach = filter_reachable(full)
    if not reach.has_entry:
        if not full.blocks:
            return CfgBuildResult(status=CfgStatus.LOADED)
        raise NoEntryBlockError(f"no entry block among {len(full.blocks)} blocks")
    layout = full_layout(reach.graph, canvas_width, config)
    return CfgBuildResult(status=CfgStatus.LOADED, cfg=reach.graph, layout=layout, removed=reach.removed)


def build_cfg(
    instructions: Sequence[Instruction] | str,
    arch: str | OpcodeClassifier = "auto",
    canvas_width: float | None = None,
    config: LayoutConfig = DEFAULT_CONFIG,
) -> CfgBuildResult:
    """Build, prune and lay out the CFG of one function's disassembly.

    ``instructions`` may also be the JSON text of an instruction array. An
    empty instruction list yields an empty, loaded result.
    """
    try:
        if isinstance(instructions, str):
            instructions = instructions_from_json(instructions)
        logger.debug("building CFG from %d instructions", len(instructions))
        return _finish(split_blocks(instructions, arch), canvas_width, config)
    except CfgError as exc:
        logger.warning("CFG build failed: %s", exc)
        return CfgBuildResult(status=CfgStatus.ERROR, error=str(exc))


def build_cfg_from_external(
    blocks: list[dict[str, Any]],
    edges: list[dict[str, Any]],
    canvas_width: float | None = None,
    config: LayoutConfig = DEFAULT_CONFIG,
) -> CfgBuildResult:
    """Lay out a CFG produced by an external analyzer (see ``ControlFlowGraph.from_external``)."""
    try:
        return _finish(ControlFlowGraph.from_external(blocks, edges), canvas_width, config)
    except CfgError as exc:
        logger.warning("external CFG build failed: %s", exc)
        return CfgBuildResult(status=CfgStatus.ERROR, error=str(exc))


def format_function_title(function_name: str) -> str:
    """``"libc.so@open64 + 0x10"`` → ``"libc.so@open64"``."""
    if not function_name:
        return ""
    plus = function_name.find(" + ")
    return function_name[:plus] if plus > 0 else function_name
