"""cfgview: control-flow graph construction and hierarchical layout for disassembled functions."""

from cfgview.arch import OpcodeClassifier, default_registry, get_classifier, register_classifier
from cfgview.errors import (
    CfgError,
    InvalidGraphError,
    InvalidInstructionError,
    NoEntryBlockError,
    UnknownArchitectureError,
)
from cfgview.graph import BasicBlock, ControlFlowGraph, Edge, EdgeType
from cfgview.instructions import Instruction, instructions_from_json
from cfgview.layout import BlockLayout, LayoutConfig, LayoutResult, Point, RoutedEdge, full_layout
from cfgview.overlay import BlockReachability, ReachabilityStatus, parse_overlay
from cfgview.pipeline import CfgBuildResult, CfgStatus, build_cfg, build_cfg_from_external
from cfgview.reachability import ReachabilityResult, filter_reachable
from cfgview.splitter import split_blocks
from cfgview.viewport import GraphBounds, MinimapProjection, ViewState

__version__ = "0.1.0"

__all__ = [
    "BasicBlock",
    "BlockLayout",
    "BlockReachability",
    "CfgBuildResult",
    "CfgError",
    "CfgStatus",
    "ControlFlowGraph",
    "Edge",
    "EdgeType",
    "GraphBounds",
    "Instruction",
    "InvalidGraphError",
    "InvalidInstructionError",
    "LayoutConfig",
    "LayoutResult",
    "MinimapProjection",
    "NoEntryBlockError",
    "OpcodeClassifier",
    "Point",
    "ReachabilityResult",
    "ReachabilityStatus",
    "RoutedEdge",
    "UnknownArchitectureError",
    "ViewState",
    "build_cfg",
    "build_cfg_from_external",
    "default_registry",
    "filter_reachable",
    "full_layout",
    "get_classifier",
    "instructions_from_json",
    "parse_overlay",
    "register_classifier",
    "split_blocks",
]
