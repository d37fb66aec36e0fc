"""Tests for overlay.py: reachability records and colour selection."""

from __future__ import annotations

from cfgview.graph import BasicBlock, EdgeType
from cfgview.overlay import (
    NEUTRAL_BORDER,
    NEUTRAL_HEADER,
    BlockReachability,
    ReachabilityStatus,
    border_color,
    edge_color,
    header_color,
    parse_overlay,
    with_alpha,
)


def block(block_id: str, entry: bool = False, exit: bool = False) -> BasicBlock:
    return BasicBlock(index=0, id=block_id, instructions=[], is_entry=entry, is_exit=exit)


class TestParseOverlay:
    def test_records(self):
        overlay = parse_overlay(
            [
                {"blockId": "block_0", "status": "current", "condition": ""},
                {"blockId": "block_1", "status": "conditional", "condition": "x0 == 0", "probability": "0.5"},
                {"blockId": "block_2", "status": "sideways"},
            ]
        )
        assert overlay["block_0"] == BlockReachability(ReachabilityStatus.CURRENT)
        assert overlay["block_1"].condition == "x0 == 0"
        assert overlay["block_1"].probability == 0.5
        assert overlay["block_2"].status is ReachabilityStatus.UNKNOWN

    def test_missing_block_id_ignored(self, caplog):
        overlay = parse_overlay([{"status": "reachable"}])
        assert overlay == {}
        assert "without blockId" in caplog.text


class TestColours:
    def test_with_alpha(self):
        assert with_alpha("#4caf50", 0.2) == "rgba(76, 175, 80, 0.2)"

    def test_entry_exit_without_overlay(self):
        assert border_color(block("a", entry=True)) == "#4caf50"
        assert border_color(block("a", exit=True)) == "#ff5722"
        assert border_color(block("a")) == NEUTRAL_BORDER
        assert header_color(block("a", exit=True)) == "rgba(255, 87, 34, 0.2)"
        assert header_color(block("a")) == NEUTRAL_HEADER

    def test_overlay_wins_over_entry(self):
        overlay = parse_overlay([{"blockId": "a", "status": "unreachable"}])
        assert border_color(block("a", entry=True), overlay) == "#f44336"
        assert header_color(block("a", entry=True), overlay) == "rgba(244, 67, 54, 0.2)"

    def test_overlay_unknown_and_absent(self):
        overlay = parse_overlay([{"blockId": "a", "status": "???"}])
        assert border_color(block("a"), overlay) == "#9e9e9e"
        assert header_color(block("a"), overlay) == NEUTRAL_HEADER
        assert border_color(block("b", entry=True), overlay) == NEUTRAL_BORDER

    def test_edge_colours(self):
        assert edge_color(EdgeType.CONDITIONAL_TRUE) == "#4caf50"
        assert edge_color(EdgeType.CONDITIONAL_FALSE) == "#ff5722"
        assert edge_color(EdgeType.UNCONDITIONAL) == "#4fc1ff"
        assert edge_color(EdgeType.NORMAL) == "#808080"
