"""Per-architecture opcode classification.

The block splitter only needs to know, for a mnemonic, whether it ends a
basic block and how: unconditional jump, conditional jump or return. Calls
(``bl``, ``blr``, ``call``) return to the next instruction and are never
block terminators.

Classifiers are looked up by architecture name so new instruction sets can be
plugged in with ``register_classifier`` without touching the graph code.
"""

from __future__ import annotations

from collections.abc import Mapping, MutableMapping
from dataclasses import dataclass, field

from cfgview.errors import UnknownArchitectureError


@dataclass(frozen=True)
class OpcodeClassifier:
    """Mnemonic tables for one instruction set. All mnemonics are lower case."""

    name: str
    unconditional: frozenset[str] = field(default_factory=frozenset)
    conditional: frozenset[str] = field(default_factory=frozenset)
    returns: frozenset[str] = field(default_factory=frozenset)
    calls: frozenset[str] = field(default_factory=frozenset)

    def is_branch(self, mnemonic: str) -> bool:
        """True for any block-terminating transfer (jump, conditional jump or return)."""
        if self.is_call(mnemonic):
            return False
        m = mnemonic.lower()
        return m in self.unconditional or m in self.conditional or m in self.returns

    def is_conditional(self, mnemonic: str) -> bool:
        return mnemonic.lower() in self.conditional

    def is_return(self, mnemonic: str) -> bool:
        return mnemonic.lower() in self.returns

    def is_call(self, mnemonic: str) -> bool:
        return mnemonic.lower() in self.calls

    def merge(self, other: OpcodeClassifier, name: str) -> OpcodeClassifier:
        """Union of two classifiers' tables."""
        return OpcodeClassifier(
            name=name,
            unconditional=self.unconditional | other.unconditional,
            conditional=self.conditional | other.conditional,
            returns=self.returns | other.returns,
            calls=self.calls | other.calls,
        )


_ARM64_CONDITIONS = ("eq", "ne", "cs", "cc", "mi", "pl", "vs", "vc", "hi", "ls", "ge", "lt", "gt", "le")

ARM64 = OpcodeClassifier(
    name="arm64",
    # b.al is "branch always", so it behaves like b.
    unconditional=frozenset({"b", "br", "b.al"}),
    conditional=frozenset({f"b.{cond}" for cond in _ARM64_CONDITIONS} | {"cbz", "cbnz", "tbz", "tbnz"}),
    returns=frozenset({"ret"}),
    calls=frozenset({"bl", "blr"}),
)

X86 = OpcodeClassifier(
    name="x86",
    unconditional=frozenset({"jmp"}),
    conditional=frozenset(
        {
            "je", "jne", "jz", "jnz", "jc", "jnc", "js", "jns", "jo", "jno",
            "jp", "jnp", "ja", "jae", "jb", "jbe", "jg", "jge", "jl", "jle",
        }
    ),
    returns=frozenset({"ret", "retn"}),
    calls=frozenset({"call"}),
)

# ARM64 and x86 mnemonics do not collide, so one table set can serve both.
AUTO = ARM64.merge(X86, name="auto")

_BUILTIN: dict[str, OpcodeClassifier] = {
    "auto": AUTO,
    "arm64": ARM64,
    "aarch64": ARM64,
    "x86": X86,
    "x86_64": X86,
    "x64": X86,
    "amd64": X86,
}

# Process-wide default table; see register_classifier.
_REGISTRY: dict[str, OpcodeClassifier] = dict(_BUILTIN)


def register_classifier(
    name: str,
    classifier: OpcodeClassifier,
    registry: MutableMapping[str, OpcodeClassifier] | None = None,
) -> None:
    """Register (or replace) the classifier used for architecture ``name``.

    Without ``registry`` this changes the process-wide default table that
    every later ``get_classifier`` call sees.
    """
    (_REGISTRY if registry is None else registry)[name.lower()] = classifier


def get_classifier(
    arch: str | OpcodeClassifier = "auto",
    registry: Mapping[str, OpcodeClassifier] | None = None,
) -> OpcodeClassifier:
    """Resolve an architecture name (or pass a classifier straight through).

    Names are looked up in ``registry``, or in the default table.
    """
    if isinstance(arch, OpcodeClassifier):
        return arch
    table = _REGISTRY if registry is None else registry
    try:
        return table[arch.lower()]
    except KeyError:
        raise UnknownArchitectureError(arch) from None


def default_registry() -> dict[str, OpcodeClassifier]:
    """A private copy of the built-in table, for callers that register their own classifiers."""
    return dict(_BUILTIN)


def available_architectures() -> list[str]:
    return sorted(_REGISTRY)
