"""Basic-block splitting: instruction stream → blocks + typed edges.

Input is a linear, address-ordered disassembly of one function. Leaders are
the first instruction, every instruction following a jump/return, and every
resolvable jump target. Each run between consecutive leaders becomes one
block named ``block_<n>`` by position.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence

from cfgview.arch import OpcodeClassifier, get_classifier
from cfgview.graph import BasicBlock, ControlFlowGraph, Edge, EdgeType, address_index, block_id_for
from cfgview.instructions import Instruction, extract_jump_target

logger = logging.getLogger(__name__)


def find_leaders(
    instructions: Sequence[Instruction],
    classifier: OpcodeClassifier,
    addr_to_index: dict[int, int],
) -> list[int]:
    """Return the sorted instruction indexes that start a basic block."""
    if not instructions:
        return []
    leaders: set[int] = {0}
    for idx, instr in enumerate(instructions):
        if not classifier.is_branch(instr.mnemonic):
            continue
        if idx + 1 < len(instructions):
            leaders.add(idx + 1)
        target = extract_jump_target(instr.operands)
        if target is not None and target in addr_to_index:
            leaders.add(addr_to_index[target])
    return sorted(leaders)


def split_blocks(
    instructions: Sequence[Instruction],
    arch: str | OpcodeClassifier = "auto",
    registry: Mapping[str, OpcodeClassifier] | None = None,
) -> ControlFlowGraph:
    """Partition ``instructions`` into basic blocks and connect them.

    Edge rules, by the block's last instruction:
      - return: exit block, no edges
      - unconditional jump: one ``unconditional`` edge to the resolved target
      - conditional jump: ``conditional-true`` to the resolved target and
        ``conditional-false`` to the next block
      - anything else: ``normal`` fallthrough to the next block

    Unresolvable targets drop only that edge. Blocks left without successors
    are exits. ``arch`` names are resolved in ``registry`` when given.
    """
    if not instructions:
        return ControlFlowGraph()

    classifier = get_classifier(arch, registry)
    addr_to_index = address_index(list(instructions))
    leaders = find_leaders(instructions, classifier, addr_to_index)

    blocks: list[BasicBlock] = []
    index_to_block: dict[int, BasicBlock] = {}
    for block_idx, start in enumerate(leaders):
        end = leaders[block_idx + 1] if block_idx + 1 < len(leaders) else len(instructions)
        block = BasicBlock(
            index=block_idx,
            id=block_id_for(block_idx),
            instructions=list(instructions[start:end]),
            is_entry=block_idx == 0,
        )
        blocks.append(block)
        for i in range(start, end):
            index_to_block[i] = block

    def target_block(instr: Instruction) -> BasicBlock | None:
        target = extract_jump_target(instr.operands)
        if target is None or target not in addr_to_index:
            return None
        return index_to_block[addr_to_index[target]]

    edges: list[Edge] = []

    def connect(src: BasicBlock, dst: BasicBlock, edge_type: EdgeType) -> None:
        edges.append(Edge(src.id, dst.id, edge_type))
        if dst.id not in src.successors:
            src.successors.append(dst.id)
        if src.id not in dst.predecessors:
            dst.predecessors.append(src.id)

    for pos, block in enumerate(blocks):
        last = block.terminal
        mnemonic = last.mnemonic
        next_block = blocks[pos + 1] if pos + 1 < len(blocks) else None

        if classifier.is_return(mnemonic):
            block.is_exit = True
            continue

        if classifier.is_branch(mnemonic):
            conditional = classifier.is_conditional(mnemonic)
            target = target_block(last)
            if target is not None:
                connect(block, target, EdgeType.CONDITIONAL_TRUE if conditional else EdgeType.UNCONDITIONAL)
            else:
                logger.debug("unresolved branch target at %s: %s %s", last.address, last.opcode, last.operands)
            if conditional and next_block is not None:
                connect(block, next_block, EdgeType.CONDITIONAL_FALSE)
        elif next_block is not None:
            connect(block, next_block, EdgeType.NORMAL)

    for block in blocks:
        if not block.successors:
            block.is_exit = True

    logger.debug("split %d instructions into %d blocks, %d edges", len(instructions), len(blocks), len(edges))
    return ControlFlowGraph(blocks=blocks, edges=edges)
