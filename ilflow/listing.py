"""Text listings for analysed methods."""

from __future__ import annotations

from pathlib import Path
from typing import Iterable, List, Mapping, Optional, Sequence

from .analysis import MethodAnalysis
from .dataflow import DataFlowMap
from .expression import UNKNOWN_MARKER, ExpressionRenderer
from .instruction import Instruction, format_offset
from .metadata import MetadataResolver
from .opcodes import FlowControl
from .runs import InstructionRun


_LOCAL_STORES = frozenset({"stloc", "stloc.s", "stloc.0", "stloc.1", "stloc.2", "stloc.3"})
_CALLS = frozenset({"call", "callvirt", "calli"})


class ListingRenderer:
    """Render the intermediate results of :class:`MethodAnalysis` as text."""

    def __init__(self, resolver: Optional[MetadataResolver] = None) -> None:
        self.resolver = resolver

    def render(self, analysis: MethodAnalysis) -> str:
        sections = [
            ("; instructions", self.render_instructions(analysis.instructions)),
            ("; runs", self.render_runs(analysis.runs)),
            ("; paths", self.render_paths(analysis.paths)),
            ("; data flow", self.render_data_flow(analysis.runs, analysis.data_flow)),
            ("; statements", self.render_statements(analysis)),
        ]
        lines: List[str] = []
        for header, body in sections:
            lines.append(header)
            lines.extend(body)
            lines.append("")
        return "\n".join(lines)

    def write(self, analysis: MethodAnalysis, output_path: Path) -> None:
        output_path.write_text(self.render(analysis), "utf-8")

    def render_instructions(self, instructions: Iterable[Instruction]) -> List[str]:
        return [instruction.format(self.resolver) for instruction in instructions]

    def render_runs(self, runs: Iterable[InstructionRun]) -> List[str]:
        lines: List[str] = []
        for run in runs:
            lines.extend(run.to_text().splitlines())
        return lines

    def render_paths(self, paths: Mapping[str, Sequence[int]]) -> List[str]:
        lines = [f"{len(paths)} path(s) found"]
        lines.extend(paths)
        return lines

    def render_data_flow(
        self, runs: Iterable[InstructionRun], data_flow: DataFlowMap
    ) -> List[str]:
        lines: List[str] = []
        for run in runs:
            for instruction in run.instructions:
                lines.append(instruction.format(self.resolver))
                for position in data_flow.positions(instruction.offset):
                    lines.append(f"// pop #{position}")
                    for producer in data_flow.producers(instruction.offset, position):
                        lines.append(f"// using result of {format_offset(producer)}")
        return lines

    def render_statements(self, analysis: MethodAnalysis) -> List[str]:
        """Summarise each run as pseudo statements.

        Stores to locals, calls whose result is never consumed and control
        transfers are printed; every other instruction only shows up nested
        inside the expressions of those statements.
        """

        renderer = ExpressionRenderer(analysis.instructions, analysis.data_flow, self.resolver)
        lines: List[str] = []
        for run in analysis.runs:
            lines.append(f"{format_offset(run.start)}:")
            for instruction in run.instructions:
                statement = self._statement(instruction, renderer)
                if statement is not None:
                    lines.append(f"  {statement}")
        return lines

    @staticmethod
    def _statement(instruction: Instruction, renderer: ExpressionRenderer) -> Optional[str]:
        name = instruction.name
        flow = instruction.opcode.flow_control
        if name in _LOCAL_STORES:
            return f"local_{instruction.local_index} = {renderer.describe_argument(instruction.offset, 0)}"
        if name in _CALLS:
            if renderer.is_consumed(instruction.offset):
                return None
            return renderer.describe(instruction.offset)
        if flow is FlowControl.COND_BRANCH:
            arguments = renderer.describe_arguments(instruction.offset) or [UNKNOWN_MARKER]
            condition = f"{name}({', '.join(arguments)})"
            if instruction.opcode.is_switch:
                targets = ", ".join(format_offset(target) for target in instruction.switch_targets)
                return f"{condition} {targets}"
            return f"{condition} goto {format_offset(instruction.branch_target)}"
        if flow is FlowControl.BRANCH:
            return f"goto {format_offset(instruction.branch_target)}"
        return None


def render_listing(analysis: MethodAnalysis) -> str:
    return ListingRenderer(analysis.resolver).render(analysis)


__all__ = ["ListingRenderer", "render_listing"]
