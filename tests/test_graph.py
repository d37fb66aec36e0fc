"""Tests for graph.py and reachability.py: networkx view, subgraphs, external import, pruning."""

from __future__ import annotations

import networkx as nx
import pytest

from cfgview.errors import InvalidGraphError
from cfgview.graph import BasicBlock, ControlFlowGraph, Edge, EdgeType
from cfgview.instructions import Instruction
from cfgview.reachability import filter_reachable
from cfgview.splitter import split_blocks

# ─── Helpers ──────────────────────────────────────────────────────────────────


def make_instructions(*ops: tuple[str, str], base: int = 0x1000) -> list[Instruction]:
    return [Instruction(f"0x{base + 4 * i:x}", "", op, operands) for i, (op, operands) in enumerate(ops)]


def loop_with_dead_code() -> ControlFlowGraph:
    """mov; header: cmp; b.ge exit; body: add; b header; dead: nop; exit: ret."""
    return split_blocks(
        make_instructions(
            ("mov", "x0, #0"),
            ("cmp", "x0, #10"),
            ("b.ge", "0x1018"),
            ("add", "x0, x0, #1"),
            ("b", "0x1004"),
            ("nop", ""),
            ("ret", ""),
        )
    )


def external_block(block_id: str, address: str, successors: list[str], entry: bool = False) -> dict:
    return {
        "id": block_id,
        "startAddress": address,
        "endAddress": address,
        "instructions": [{"address": address, "bytes": "", "opcode": "nop", "operands": ""}],
        "successors": successors,
        "isEntry": entry,
    }


# ─── ControlFlowGraph ─────────────────────────────────────────────────────────


class TestControlFlowGraph:
    def test_digraph_collapses_parallel_edges(self):
        """b.eq whose target is also the fallthrough → two typed edges, one networkx edge."""
        cfg = split_blocks(make_instructions(("b.eq", "0x1004"), ("ret", "")))
        assert len(cfg.edges) == 2
        g = cfg.to_digraph()
        assert g.number_of_edges() == 1
        assert g.edges["block_0", "block_1"]["types"] == [EdgeType.CONDITIONAL_TRUE, EdgeType.CONDITIONAL_FALSE]
        assert cfg.blocks[0].successors == ["block_1"]

    def test_digraph_nodes_carry_blocks(self):
        cfg = loop_with_dead_code()
        g = cfg.to_digraph()
        assert set(g.nodes) == {b.id for b in cfg.blocks}
        assert g.nodes["block_0"]["data"] is cfg.blocks[0]
        assert not nx.is_directed_acyclic_graph(g)

    def test_edge_lookup(self):
        cfg = loop_with_dead_code()
        assert cfg.edge_between("block_1", "block_4").type is EdgeType.CONDITIONAL_TRUE
        assert cfg.edge_between("block_4", "block_1") is None
        assert [e.to_id for e in cfg.edges_from("block_1")] == ["block_4", "block_2"]

    def test_subgraph_recomputes_exits(self):
        cfg = split_blocks(make_instructions(("cmp", ""), ("b.eq", "0x100c"), ("mov", ""), ("ret", "")))
        sub = cfg.subgraph({"block_0", "block_1"})
        assert sub.block("block_1").successors == []
        assert sub.block("block_1").is_exit
        assert not sub.block("block_0").is_exit
        assert not cfg.block("block_1").is_exit

    def test_sort_address_prefers_address_ids(self):
        block = BasicBlock(index=5, id="block_0x4000", instructions=[Instruction("0x10", "", "nop", "")])
        assert block.sort_address == 0x4000
        block = BasicBlock(index=5, id="block_5", instructions=[Instruction("0x10", "", "nop", "")])
        assert block.sort_address == 0x10
        assert BasicBlock(index=0, id="x", instructions=[]).sort_address == 0


class TestExternalImport:
    def test_from_external(self):
        blocks = [
            external_block("block_0x100", "0x100", ["block_0x110", "block_0x120"], entry=True),
            external_block("block_0x110", "0x110", ["block_0x120"]),
            external_block("block_0x120", "0x120", []),
        ]
        edges = [
            {"from": "block_0x100", "to": "block_0x120", "type": "conditional-true"},
            {"from": "block_0x100", "to": "block_0x110", "type": "conditional-false"},
            {"from": "block_0x110", "to": "block_0x120", "type": "normal"},
        ]
        cfg = ControlFlowGraph.from_external(blocks, edges)
        assert cfg.entry.id == "block_0x100"
        assert cfg.block("block_0x120").predecessors == ["block_0x100", "block_0x110"]
        assert cfg.block("block_0x120").is_exit
        assert cfg.edges[0] == Edge("block_0x100", "block_0x120", EdgeType.CONDITIONAL_TRUE)

    def test_unknown_endpoints_dropped(self):
        blocks = [external_block("a", "0x0", ["b", "ghost"], entry=True), external_block("b", "0x4", [])]
        edges = [{"from": "a", "to": "b", "type": "normal"}, {"from": "a", "to": "ghost", "type": "normal"}]
        cfg = ControlFlowGraph.from_external(blocks, edges)
        assert len(cfg.edges) == 1
        assert cfg.block("a").successors == ["b"]

    def test_successors_derived_from_edges(self):
        blocks = [external_block("a", "0x0", [], entry=True), external_block("b", "0x4", [])]
        for raw in blocks:
            del raw["successors"]
        cfg = ControlFlowGraph.from_external(blocks, [{"from": "a", "to": "b", "type": "unconditional"}])
        assert cfg.block("a").successors == ["b"]
        assert not cfg.block("a").is_exit

    def test_bad_edge_type(self):
        blocks = [external_block("a", "0x0", [], entry=True)]
        with pytest.raises(InvalidGraphError):
            ControlFlowGraph.from_external(blocks, [{"from": "a", "to": "a", "type": "sideways"}])


# ─── Reachability ─────────────────────────────────────────────────────────────


class TestReachabilityFilter:
    def test_dead_block_removed(self):
        cfg = loop_with_dead_code()
        assert [len(b.instructions) for b in cfg.blocks] == [1, 2, 2, 1, 1]
        result = filter_reachable(cfg)
        assert result.has_entry
        assert result.removed == ["block_3"]
        assert [b.id for b in result.graph.blocks] == ["block_0", "block_1", "block_2", "block_4"]
        assert all("block_3" not in (e.from_id, e.to_id) for e in result.graph.edges)
        assert result.graph.block("block_4").predecessors == ["block_1"]

    def test_everything_reachable(self):
        cfg = split_blocks(make_instructions(("cmp", ""), ("b.eq", "0x100c"), ("mov", ""), ("ret", "")))
        result = filter_reachable(cfg)
        assert result.removed == []
        assert len(result.graph.blocks) == 3
        assert len(result.graph.edges) == 3

    def test_reachable_instructions_in_order(self):
        cfg = loop_with_dead_code()
        result = filter_reachable(cfg)
        assert [i.opcode for i in result.graph.instructions()] == ["mov", "cmp", "b.ge", "add", "b", "ret"]

    def test_no_entry(self):
        cfg = ControlFlowGraph(blocks=[BasicBlock(index=0, id="a", instructions=[Instruction("0x0", "", "nop", "")])])
        result = filter_reachable(cfg)
        assert not result.has_entry
        assert result.graph.blocks == []
        assert result.removed == ["a"]

    def test_empty_graph(self):
        result = filter_reachable(ControlFlowGraph())
        assert not result.has_entry
        assert result.removed == []

    def test_follows_successor_lists(self):
        """Imported blocks may list successors that the typed edge list omits."""
        blocks = [
            external_block("block_0", "0x0", ["block_1"], entry=True),
            external_block("block_1", "0x4", ["block_2"]),
            external_block("block_2", "0x8", []),
        ]
        cfg = ControlFlowGraph.from_external(blocks, [{"from": "block_0", "to": "block_1", "type": "normal"}])
        result = filter_reachable(cfg)
        assert result.removed == []
        assert [b.id for b in result.graph.blocks] == ["block_0", "block_1", "block_2"]
        assert len(result.graph.edges) == 1
        for block in result.graph.blocks:
            assert block.is_exit == (not block.successors)

    def test_original_graph_untouched(self):
        cfg = loop_with_dead_code()
        filter_reachable(cfg)
        assert cfg.block("block_4").predecessors == ["block_1", "block_3"]
