"""Control-flow graph data model.

Blocks live in an arena (``ControlFlowGraph.blocks``) in construction order;
each block carries its integer position (``index``) and a stable string id
derived from it. Successor/predecessor lists hold block ids. A
``networkx.DiGraph`` view is available for traversal algorithms.
"""

from __future__ import annotations

import dataclasses
import logging
import re
from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

import networkx as nx

from cfgview.errors import InvalidGraphError
from cfgview.instructions import Instruction, parse_address

logger = logging.getLogger(__name__)

BLOCK_PREFIX = "block_"
_ADDRESS_ID = re.compile(r"block_(0x[0-9a-fA-F]+)")


class EdgeType(Enum):
    """Kind of control transfer an edge represents."""

    NORMAL = "normal"
    CONDITIONAL_TRUE = "conditional-true"
    CONDITIONAL_FALSE = "conditional-false"
    UNCONDITIONAL = "unconditional"

    @classmethod
    def from_text(cls, text: str) -> EdgeType:
        try:
            return cls(text)
        except ValueError:
            raise InvalidGraphError(f"unknown edge type: {text!r}") from None


def block_id_for(index: int) -> str:
    return f"{BLOCK_PREFIX}{index}"


@dataclass
class BasicBlock:
    """A maximal straight-line run of instructions."""

    index: int
    id: str
    instructions: list[Instruction]
    start_address: str = ""
    end_address: str = ""
    successors: list[str] = field(default_factory=list)
    predecessors: list[str] = field(default_factory=list)
    is_entry: bool = False
    is_exit: bool = False

    def __post_init__(self) -> None:
        if self.instructions:
            if not self.start_address:
                self.start_address = self.instructions[0].address
            if not self.end_address:
                self.end_address = self.instructions[-1].address

    @property
    def terminal(self) -> Instruction | None:
        return self.instructions[-1] if self.instructions else None

    @property
    def sort_address(self) -> int:
        """Numeric key for address ordering.

        Ids of the form ``block_0x…`` (used by external analyzers) win;
        otherwise the first instruction's address, otherwise 0.
        """
        match = _ADDRESS_ID.fullmatch(self.id)
        if match:
            return int(match.group(1), 16)
        if self.instructions:
            value = self.instructions[0].address_value
            if value is not None:
                return value
        return 0


@dataclass(frozen=True)
class Edge:
    """A directed control transfer between two blocks."""

    from_id: str
    to_id: str
    type: EdgeType = EdgeType.NORMAL


@dataclass
class ControlFlowGraph:
    """Blocks (in construction order) plus typed edges."""

    blocks: list[BasicBlock] = field(default_factory=list)
    edges: list[Edge] = field(default_factory=list)

    def __post_init__(self) -> None:
        self._by_id: dict[str, BasicBlock] = {b.id: b for b in self.blocks}

    def __len__(self) -> int:
        return len(self.blocks)

    def __contains__(self, block_id: object) -> bool:
        return block_id in self._by_id

    def block(self, block_id: str) -> BasicBlock:
        return self._by_id[block_id]

    def get(self, block_id: str) -> BasicBlock | None:
        return self._by_id.get(block_id)

    @property
    def entry(self) -> BasicBlock | None:
        for block in self.blocks:
            if block.is_entry:
                return block
        return None

    def instructions(self) -> list[Instruction]:
        """All instructions, concatenated in block order."""
        return [instr for block in self.blocks for instr in block.instructions]

    def edges_from(self, block_id: str) -> list[Edge]:
        return [e for e in self.edges if e.from_id == block_id]

    def edge_between(self, from_id: str, to_id: str) -> Edge | None:
        """First edge from ``from_id`` to ``to_id`` in edge order."""
        for edge in self.edges:
            if edge.from_id == from_id and edge.to_id == to_id:
                return edge
        return None

    def to_digraph(self) -> nx.DiGraph:
        """networkx view: one node per block (``data`` attr), one edge per distinct pair.

        Parallel edges between the same pair of blocks (a conditional branch whose
        target is also its fallthrough) collapse into one networkx edge whose
        ``types`` attr lists every edge type in order.
        """
        g: nx.DiGraph = nx.DiGraph()
        for block in self.blocks:
            g.add_node(block.id, data=block)
        for edge in self.edges:
            if edge.from_id not in self._by_id or edge.to_id not in self._by_id:
                continue
            if g.has_edge(edge.from_id, edge.to_id):
                g.edges[edge.from_id, edge.to_id]["types"].append(edge.type)
            else:
                g.add_edge(edge.from_id, edge.to_id, types=[edge.type])
        return g

    def subgraph(self, block_ids: Iterable[str]) -> ControlFlowGraph:
        """Copy restricted to ``block_ids``, keeping construction order.

        Edges survive only when both endpoints are kept; successor and
        predecessor lists are pruned to the kept ids and exit flags follow
        the pruned successor lists.
        """
        keep = set(block_ids)
        blocks = []
        for b in self.blocks:
            if b.id not in keep:
                continue
            successors = [s for s in b.successors if s in keep]
            blocks.append(
                dataclasses.replace(
                    b,
                    successors=successors,
                    predecessors=[p for p in b.predecessors if p in keep],
                    is_exit=not successors,
                )
            )
        edges = [e for e in self.edges if e.from_id in keep and e.to_id in keep]
        return ControlFlowGraph(blocks=blocks, edges=edges)

    @classmethod
    def from_external(cls, blocks: list[dict[str, Any]], edges: list[dict[str, Any]]) -> ControlFlowGraph:
        """Import a CFG built by an external analyzer.

        ``blocks`` entries carry ``id``, ``instructions`` and optionally
        ``startAddress``/``endAddress``, ``successors`` and ``isEntry``.
        ``edges`` entries carry ``from``, ``to`` and ``type``. Edges naming
        unknown blocks are dropped with a warning. Predecessor lists and exit
        flags are derived from the successor lists.
        """
        arena: list[BasicBlock] = []
        for index, raw in enumerate(blocks):
            if "id" not in raw:
                raise InvalidGraphError(f"external block #{index} has no id")
            instructions = [Instruction.from_dict(i) for i in raw.get("instructions", [])]
            arena.append(
                BasicBlock(
                    index=index,
                    id=str(raw["id"]),
                    instructions=instructions,
                    start_address=str(raw.get("startAddress", "")),
                    end_address=str(raw.get("endAddress", "")),
                    is_entry=bool(raw.get("isEntry", False)),
                )
            )
        known = {b.id for b in arena}

        typed_edges: list[Edge] = []
        for raw in edges:
            try:
                src, tgt = str(raw["from"]), str(raw["to"])
            except KeyError as exc:
                raise InvalidGraphError(f"external edge missing {exc.args[0]!r}: {raw!r}") from None
            if src not in known or tgt not in known:
                logger.warning("dropping external edge %s -> %s: unknown block", src, tgt)
                continue
            typed_edges.append(Edge(src, tgt, EdgeType.from_text(str(raw.get("type", "normal")))))

        by_id = {b.id: b for b in arena}
        for raw, block in zip(blocks, arena):
            if "successors" in raw:
                block.successors = [s for s in map(str, raw["successors"]) if s in known]
            else:
                block.successors = [e.to_id for e in typed_edges if e.from_id == block.id]
        for block in arena:
            for succ in block.successors:
                by_id[succ].predecessors.append(block.id)
        for block in arena:
            block.is_exit = not block.successors

        return cls(blocks=arena, edges=typed_edges)


def address_index(instructions: list[Instruction]) -> dict[int, int]:
    """Map parsed address → instruction index. Unparseable addresses are skipped."""
    index: dict[int, int] = {}
    for i, instr in enumerate(instructions):
        value = parse_address(instr.address)
        if value is None:
            logger.warning("instruction %d has unparseable address %r", i, instr.address)
            continue
        index[value] = i
    return index
