"""Exception hierarchy for CFG construction and layout."""

from __future__ import annotations


class CfgError(Exception):
    """Base class for every error raised by cfgview."""


class InvalidInstructionError(CfgError):
    """An instruction record is structurally malformed (missing keys, wrong type)."""


class InvalidGraphError(CfgError):
    """An externally supplied CFG payload cannot be decoded."""


class UnknownArchitectureError(CfgError, KeyError):
    """No opcode classifier is registered under the requested architecture name."""

    def __str__(self) -> str:
        return f"unknown architecture: {self.args[0]!r}" if self.args else "unknown architecture"


class NoEntryBlockError(CfgError):
    """The graph has no block flagged as entry, so nothing is reachable."""
