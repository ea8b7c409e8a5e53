"""End-to-end analysis of a single method body."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence

from .clauses import ExceptionClause
from .dataflow import DataFlowMap
from .expression import ExpressionRenderer
from .instruction import Instruction, decode_method
from .metadata import MetadataCatalog, MetadataResolver
from .paths import DEFAULT_MAX_REVISITS, Path, PathEnumerator
from .runs import InstructionRun, RunBuilder
from .stack import StackSimulator


logger = logging.getLogger(__name__)


@dataclass
class MethodAnalysis:
    il: bytes
    clauses: Sequence[ExceptionClause]
    instructions: List[Instruction]
    runs: List[InstructionRun]
    paths: Dict[str, Path]
    data_flow: DataFlowMap
    resolver: MetadataResolver

    def renderer(self) -> ExpressionRenderer:
        return ExpressionRenderer(self.instructions, self.data_flow, self.resolver)

    def describe(self, offset: int) -> str:
        return self.renderer().describe(offset)


class MethodAnalyzer:
    """Decode, partition, enumerate paths and simulate the stack."""

    def __init__(
        self,
        resolver: Optional[MetadataResolver] = None,
        *,
        max_revisits: int = DEFAULT_MAX_REVISITS,
    ) -> None:
        self.resolver: MetadataResolver = resolver if resolver is not None else MetadataCatalog()
        self.enumerator = PathEnumerator(max_revisits=max_revisits)

    def analyze(self, il: bytes, clauses: Sequence[ExceptionClause] = ()) -> MethodAnalysis:
        il = bytes(il)
        instructions = decode_method(il)
        runs = RunBuilder().build(instructions, len(il), clauses)
        paths = self.enumerator.enumerate(runs, clauses)

        simulator = StackSimulator(runs, self.resolver)
        data_flow = simulator.simulate_paths(paths.values())
        if simulator.underflows:
            logger.warning("%d stack underflow(s) while simulating", simulator.underflows)

        logger.info(
            "analysed %d byte(s): %d instruction(s), %d run(s), %d path(s), %d consumer(s)",
            len(il),
            len(instructions),
            len(runs),
            len(paths),
            len(data_flow),
        )
        return MethodAnalysis(
            il=il,
            clauses=tuple(clauses),
            instructions=instructions,
            runs=runs,
            paths=paths,
            data_flow=data_flow,
            resolver=self.resolver,
        )


def analyze_method(
    il: bytes,
    clauses: Sequence[ExceptionClause] = (),
    resolver: Optional[MetadataResolver] = None,
    *,
    max_revisits: int = DEFAULT_MAX_REVISITS,
) -> MethodAnalysis:
    return MethodAnalyzer(resolver, max_revisits=max_revisits).analyze(il, clauses)


__all__ = ["MethodAnalysis", "MethodAnalyzer", "analyze_method"]
