"""Instruction records and the address helpers used to resolve branch targets.

Addresses arrive as hex text from the disassembler (``0x0000aaaa0000``,
``0xAAAA0000`` and ``aaaa0000`` all name the same location). Everything that
compares addresses goes through ``parse_address`` so that leading zeros and
letter case never matter.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from typing import Any

from cfgview.errors import InvalidInstructionError

logger = logging.getLogger(__name__)

# First hex literal in the operand text. Operands such as ``x0, #0x10`` or
# ``[rip + 0x20]`` also match, so target resolution is a heuristic.
_HEX_LITERAL = re.compile(r"0x[0-9a-fA-F]+")
_HEX_DIGITS = re.compile(r"[0-9a-fA-F]+")


def parse_address(text: str) -> int | None:
    """Parse hex address text into an integer, or None if it is not hex."""
    if not isinstance(text, str):
        return None
    s = text.strip()
    if s[:2] in ("0x", "0X"):
        s = s[2:]
    if not s or not _HEX_DIGITS.fullmatch(s):
        return None
    return int(s, 16)


def normalize_address(text: str) -> str | None:
    """Canonical ``0x…`` form: lower case, no leading zeros. None if unparseable."""
    value = parse_address(text)
    if value is None:
        return None
    return f"0x{value:x}"


def extract_jump_target(operands: str) -> int | None:
    """Return the first hex literal found in ``operands`` as an integer."""
    match = _HEX_LITERAL.search(operands or "")
    if match is None:
        return None
    return int(match.group(0), 16)


@dataclass(frozen=True)
class Instruction:
    """One disassembled instruction, as produced by the external disassembler."""

    address: str
    bytes: str
    opcode: str
    operands: str
    detail: str | None = None

    @property
    def mnemonic(self) -> str:
        return self.opcode.strip().lower()

    @property
    def address_value(self) -> int | None:
        return parse_address(self.address)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Instruction:
        """Build an Instruction from a ``{address, bytes, opcode, operands}`` mapping."""
        if not isinstance(data, dict):
            raise InvalidInstructionError(f"instruction record must be an object, got {type(data).__name__}")
        missing = [key for key in ("address", "opcode") if key not in data]
        if missing:
            raise InvalidInstructionError(f"instruction record missing {', '.join(missing)}: {data!r}")
        return cls(
            address=str(data["address"]),
            bytes=str(data.get("bytes", "")),
            opcode=str(data["opcode"]),
            operands=str(data.get("operands", "")),
            detail=data.get("detail"),
        )

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "address": self.address,
            "bytes": self.bytes,
            "opcode": self.opcode,
            "operands": self.operands,
        }
        if self.detail is not None:
            out["detail"] = self.detail
        return out


def instructions_from_json(text: str) -> list[Instruction]:
    """Decode a JSON array of instruction objects."""
    try:
        payload = json.loads(text)
    except json.JSONDecodeError as exc:
        raise InvalidInstructionError(f"instruction list is not valid JSON: {exc}") from exc
    if not isinstance(payload, list):
        raise InvalidInstructionError("instruction list must be a JSON array")
    instructions = [Instruction.from_dict(item) for item in payload]
    logger.debug("decoded %d instructions from JSON", len(instructions))
    return instructions
