"""Abstract evaluation-stack simulation along enumerated paths.

The simulator does not track values, only *who produced them*: every stack
slot holds the offset of the instruction that pushed it.  Popping a slot
records a data-flow edge ``(consumer, position, producer)`` where position 0
is the top of the stack.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, List, Mapping, Optional, Sequence

from .dataflow import DataFlowMap
from .errors import UnsupportedStackBehaviourError
from .instruction import Instruction, format_offset
from .metadata import MetadataResolver
from .opcodes import POP_COUNTS, PUSH_COUNTS, OperandKind, StackBehaviour
from .runs import InstructionRun, index_runs


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StackEffect:
    """Resolved pop/push counts for one instruction."""

    pops: int
    pushes: int


class StackSimulator:
    """Replay paths and accumulate producer/consumer edges."""

    def __init__(
        self,
        runs: Iterable[InstructionRun],
        resolver: MetadataResolver,
        data_flow: Optional[DataFlowMap] = None,
    ) -> None:
        self._runs: Mapping[int, InstructionRun] = index_runs(runs)
        self.resolver = resolver
        self.data_flow = data_flow if data_flow is not None else DataFlowMap()
        self.underflows = 0

    def simulate_path(self, path: Sequence[int]) -> List[int]:
        """Replay ``path`` and return the abstract stack left at its end."""

        stack: List[int] = []
        for start in path:
            run = self._runs.get(start)
            if run is None:
                raise KeyError(f"path references unknown run {format_offset(start)}")
            for instruction in run.instructions:
                self.step(instruction, stack)
        return stack

    def simulate_paths(self, paths: Iterable[Sequence[int]]) -> DataFlowMap:
        for path in paths:
            self.simulate_path(path)
        return self.data_flow

    def step(self, instruction: Instruction, stack: List[int]) -> None:
        """Apply ``instruction`` to ``stack`` in place."""

        effect = self.stack_effect(instruction, len(stack))
        for position in range(effect.pops):
            if not stack:
                self.underflows += 1
                logger.warning(
                    "stack underflow at %s (%s pop #%d)",
                    format_offset(instruction.offset),
                    instruction.name,
                    position,
                )
                break
            producer = stack.pop()
            self.data_flow.record(instruction.offset, position, producer)
        for _ in range(effect.pushes):
            stack.append(instruction.offset)

    def stack_effect(self, instruction: Instruction, depth: int) -> StackEffect:
        """Pop/push counts of ``instruction`` given the current stack depth."""

        opcode = instruction.opcode
        pop = opcode.stack_pop
        push = opcode.stack_push

        signature = None
        if pop is StackBehaviour.VARPOP or push is StackBehaviour.VARPUSH:
            signature = self._call_signature(instruction)

        if pop in POP_COUNTS:
            pops = POP_COUNTS[pop]
        elif pop is StackBehaviour.POPALL:
            pops = depth
        elif pop is StackBehaviour.VARPOP:
            if signature is not None:
                pops = signature.pop_count
                if opcode.operand_kind is OperandKind.SIGNATURE:
                    # calli also consumes the function pointer.
                    pops += 1
            elif opcode.operand_kind is OperandKind.NONE:
                # ret: whatever the method leaves behind is the return value.
                pops = depth
            else:
                raise UnsupportedStackBehaviourError(opcode.name, pop, opcode.operand_kind.value)
        else:
            raise UnsupportedStackBehaviourError(opcode.name, pop)

        if push in PUSH_COUNTS:
            pushes = PUSH_COUNTS[push]
        elif push is StackBehaviour.VARPUSH:
            if signature is None:
                raise UnsupportedStackBehaviourError(opcode.name, push, opcode.operand_kind.value)
            pushes = signature.push_count
        else:
            raise UnsupportedStackBehaviourError(opcode.name, push)

        return StackEffect(pops, pushes)

    def _call_signature(self, instruction: Instruction):
        kind = instruction.opcode.operand_kind
        if kind in (OperandKind.METHOD, OperandKind.SIGNATURE):
            return self.resolver.resolve_method(instruction.token)
        return None


def simulate(
    runs: Iterable[InstructionRun],
    path: Sequence[int],
    data_flow: DataFlowMap,
    resolver: MetadataResolver,
) -> List[int]:
    """Replay one path, appending its edges to ``data_flow``."""

    return StackSimulator(runs, resolver, data_flow).simulate_path(path)


def simulate_all(
    runs: Iterable[InstructionRun],
    paths: Iterable[Sequence[int]],
    resolver: MetadataResolver,
) -> DataFlowMap:
    simulator = StackSimulator(runs, resolver)
    return simulator.simulate_paths(paths)


__all__ = [
    "StackEffect",
    "StackSimulator",
    "simulate",
    "simulate_all",
]
