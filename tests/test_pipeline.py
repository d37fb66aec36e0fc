"""Tests for pipeline.py: end-to-end builds and their failure modes."""

from __future__ import annotations

import json

import pytest

from cfgview import build_cfg, build_cfg_from_external
from cfgview.pipeline import CfgStatus, format_function_title

LOOP = [
    {"address": "0x1000", "bytes": "", "opcode": "mov", "operands": "x0, #0"},
    {"address": "0x1004", "bytes": "", "opcode": "cmp", "operands": "x0, #10"},
    {"address": "0x1008", "bytes": "", "opcode": "b.ge", "operands": "0x1018"},
    {"address": "0x100c", "bytes": "", "opcode": "add", "operands": "x0, x0, #1"},
    {"address": "0x1010", "bytes": "", "opcode": "b", "operands": "0x1004"},
    {"address": "0x1014", "bytes": "", "opcode": "nop", "operands": ""},
    {"address": "0x1018", "bytes": "", "opcode": "ret", "operands": ""},
]


class TestBuildCfg:
    def test_json_input(self):
        result = build_cfg(json.dumps(LOOP))
        assert result.ok
        assert result.removed == ["block_3"]
        assert set(result.layout.layouts) == {"block_0", "block_1", "block_2", "block_4"}
        assert len(result.layout.routes) == len(result.cfg.edges) == 4
        assert result.error is None

    def test_initial_view_uses_canvas(self):
        result = build_cfg(json.dumps(LOOP), canvas_width=1000)
        entry = result.layout.layouts["block_0"]
        assert result.layout.initial_zoom == 0.3
        assert result.layout.initial_pan.x == pytest.approx(500 - entry.center_x * 0.3)

    def test_empty_input(self):
        result = build_cfg([])
        assert result.status is CfgStatus.LOADED
        assert result.cfg.blocks == []
        assert result.layout.layouts == {}
        assert (result.layout.initial_pan.x, result.layout.initial_pan.y) == (50, 50)

    def test_bad_json_is_error(self):
        result = build_cfg("{not json")
        assert result.status is CfgStatus.ERROR
        assert result.error
        assert result.cfg.blocks == []

    def test_unknown_architecture_is_error(self, caplog):
        result = build_cfg(json.dumps(LOOP), arch="z80")
        assert result.status is CfgStatus.ERROR
        assert "z80" in result.error
        assert "CFG build failed" in caplog.text

    def test_minimap(self):
        result = build_cfg(json.dumps(LOOP))
        proj = result.minimap()
        assert proj.bounds.width * proj.scale <= 200 + 1e-9


class TestBuildFromExternal:
    @staticmethod
    def blocks(entry: bool = True) -> list[dict]:
        return [
            {"id": "block_0x10", "instructions": [LOOP[0]], "successors": ["block_0x20"], "isEntry": entry},
            {"id": "block_0x20", "instructions": [LOOP[-1]], "successors": []},
            {"id": "block_0x30", "instructions": [LOOP[-2]], "successors": ["block_0x20"]},
        ]

    EDGES = [
        {"from": "block_0x10", "to": "block_0x20", "type": "normal"},
        {"from": "block_0x30", "to": "block_0x20", "type": "normal"},
    ]

    def test_success(self):
        result = build_cfg_from_external(self.blocks(), self.EDGES)
        assert result.ok
        assert result.removed == ["block_0x30"]
        assert [e.from_id for e in result.cfg.edges] == ["block_0x10"]
        assert result.cfg.block("block_0x20").predecessors == ["block_0x10"]

    def test_no_entry_is_error(self):
        result = build_cfg_from_external(self.blocks(entry=False), self.EDGES)
        assert result.status is CfgStatus.ERROR
        assert "no entry block" in result.error

    def test_empty_is_loaded(self):
        assert build_cfg_from_external([], []).status is CfgStatus.LOADED


class TestFunctionTitle:
    @pytest.mark.parametrize(
        "name,expected",
        [
            ("libc.so@open64 + 0x10", "libc.so@open64"),
            ("main", "main"),
            ("", ""),
            (" + 0x10", " + 0x10"),
        ],
    )
    def test_format(self, name, expected):
        assert format_function_title(name) == expected
