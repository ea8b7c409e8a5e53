"""Partition decoded instructions into runs (basic blocks).

A run starts at every offset control can enter from somewhere other than the
previous instruction: the method entry, the beginning of every protected
region and handler, branch targets and the "not taken" side of conditional
branches.  Each run keeps the list of :class:`ControlFlowSource` records that
explain why it can be entered.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from .clauses import ClauseKind, ExceptionClause
from .errors import BranchTargetError, RunBoundaryError
from .instruction import Instruction, format_offset
from .opcodes import FlowControl


logger = logging.getLogger(__name__)


class SourceKind(Enum):
    METHOD_ENTRY = "method_entry"
    TRY_BEGIN = "try_begin"
    HANDLER_BEGIN = "handler_begin"
    FILTER_BEGIN = "filter_begin"
    BRANCH = "branch"
    CONDITIONAL_FALLTHROUGH = "conditional_fallthrough"


_SOURCE_ORDER = {kind: index for index, kind in enumerate(SourceKind)}


@dataclass(frozen=True)
class ControlFlowSource:
    """Why execution may enter a run."""

    kind: SourceKind
    clause_index: Optional[int] = None
    offset: Optional[int] = None

    def sort_key(self) -> Tuple[int, int, int]:
        return (
            _SOURCE_ORDER[self.kind],
            -1 if self.clause_index is None else self.clause_index,
            -1 if self.offset is None else self.offset,
        )

    def describe(self) -> str:
        if self.kind is SourceKind.METHOD_ENTRY:
            return "method entry"
        if self.offset is not None:
            return f"{self.kind.value} {format_offset(self.offset)}"
        return f"{self.kind.value} exception block #{self.clause_index}"


@dataclass(frozen=True)
class InstructionRun:
    """Contiguous instructions entered only at their first instruction."""

    start: int
    instructions: Tuple[Instruction, ...]
    sources: Tuple[ControlFlowSource, ...]

    @property
    def last(self) -> Instruction:
        return self.instructions[-1]

    @property
    def end(self) -> int:
        return self.last.next_offset

    def entered_from(self, kind: SourceKind) -> bool:
        return any(source.kind is kind for source in self.sources)

    def to_text(self) -> str:
        lines = [f"{format_offset(self.start)}:"]
        for source in self.sources:
            lines.append(f"\t// from {source.describe()}")
        for instruction in self.instructions:
            opcode = instruction.opcode
            lines.append(
                f" {opcode.name}\t// {opcode.flow_control.value} {opcode.operand_kind.value}"
            )
        return "\n".join(lines)


class RunBuilder:
    """Compute run boundaries from instruction semantics and clauses."""

    def build(
        self,
        instructions: Sequence[Instruction],
        il_length: int,
        clauses: Sequence[ExceptionClause] = (),
    ) -> List[InstructionRun]:
        if not instructions:
            return []

        il = instructions[0].il
        offsets = {instr.offset: idx for idx, instr in enumerate(instructions)}
        sources: Dict[int, List[ControlFlowSource]] = {}

        def append_source(target: int, source: ControlFlowSource, origin: int) -> None:
            if target not in offsets:
                raise BranchTargetError(
                    f"control transfer from {format_offset(origin)} to {format_offset(target)} "
                    "does not start an instruction",
                    il,
                    origin,
                )
            bucket = sources.setdefault(target, [])
            if source not in bucket:
                bucket.append(source)

        append_source(0, ControlFlowSource(SourceKind.METHOD_ENTRY), 0)
        self._add_clause_sources(clauses, append_source)
        for instr in instructions:
            self._add_instruction_sources(instr, append_source)

        runs = self._materialise_runs(instructions, offsets, sources, il_length)
        logger.debug("partitioned %d instruction(s) into %d run(s)", len(instructions), len(runs))
        return runs

    @staticmethod
    def _add_clause_sources(clauses: Sequence[ExceptionClause], append_source) -> None:
        for index, clause in enumerate(clauses):
            append_source(
                clause.try_offset,
                ControlFlowSource(SourceKind.TRY_BEGIN, clause_index=index),
                clause.try_offset,
            )
            append_source(
                clause.handler_offset,
                ControlFlowSource(SourceKind.HANDLER_BEGIN, clause_index=index),
                clause.handler_offset,
            )
            if clause.kind is ClauseKind.FILTER and clause.filter_offset is not None:
                append_source(
                    clause.filter_offset,
                    ControlFlowSource(SourceKind.FILTER_BEGIN, clause_index=index),
                    clause.filter_offset,
                )

    @staticmethod
    def _add_instruction_sources(instr: Instruction, append_source) -> None:
        flow = instr.opcode.flow_control
        if flow is FlowControl.BRANCH:
            append_source(
                instr.branch_target,
                ControlFlowSource(SourceKind.BRANCH, offset=instr.offset),
                instr.offset,
            )
        elif flow is FlowControl.COND_BRANCH:
            for target in instr.branch_targets:
                append_source(
                    target,
                    ControlFlowSource(SourceKind.BRANCH, offset=instr.offset),
                    instr.offset,
                )
            # Switch falls through when no case matches, like the binary forms
            # when the condition does not hold.
            append_source(
                instr.next_offset,
                ControlFlowSource(SourceKind.CONDITIONAL_FALLTHROUGH, offset=instr.offset),
                instr.offset,
            )

    @staticmethod
    def _materialise_runs(
        instructions: Sequence[Instruction],
        offsets: Dict[int, int],
        sources: Dict[int, List[ControlFlowSource]],
        il_length: int,
    ) -> List[InstructionRun]:
        il = instructions[0].il
        ordered_starts = sorted(sources)
        runs: List[InstructionRun] = []
        for pos, start in enumerate(ordered_starts):
            next_start = ordered_starts[pos + 1] if pos + 1 < len(ordered_starts) else il_length
            first = offsets[start]
            if pos + 1 < len(ordered_starts):
                stop = offsets[next_start]
            else:
                stop = len(instructions)
            run_instructions = tuple(instructions[first:stop])
            last = run_instructions[-1]
            if last.next_offset != next_start:
                raise RunBoundaryError(
                    f"run {format_offset(start)} ends at {format_offset(last.next_offset)} "
                    f"instead of {format_offset(next_start)}",
                    il,
                    last.offset,
                )
            ordered_sources = tuple(sorted(sources[start], key=ControlFlowSource.sort_key))
            runs.append(InstructionRun(start, run_instructions, ordered_sources))
        return runs


def build_runs(
    instructions: Iterable[Instruction],
    il_length: int,
    clauses: Sequence[ExceptionClause] = (),
) -> List[InstructionRun]:
    """Partition ``instructions`` into runs; see :class:`RunBuilder`."""

    return RunBuilder().build(list(instructions), il_length, clauses)


def index_runs(runs: Iterable[InstructionRun]) -> Dict[int, InstructionRun]:
    return {run.start: run for run in runs}


__all__ = [
    "SourceKind",
    "ControlFlowSource",
    "InstructionRun",
    "RunBuilder",
    "build_runs",
    "index_runs",
]
