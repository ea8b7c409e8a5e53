"""Render the value computed by an instruction as a nested expression."""

from __future__ import annotations

from typing import FrozenSet, Iterable, List, Optional

from .dataflow import DataFlowMap
from .instruction import Instruction, format_offset
from .metadata import MetadataResolver


UNKNOWN_MARKER = "/* unknown */"
ALTERNATIVE_SEPARATOR = " or "


def recursive_marker(offset: int) -> str:
    return f"/* recursive {format_offset(offset)} */"


class ExpressionRenderer:
    """Turn data-flow edges back into call-like expressions.

    ``add`` fed by two constants renders as ``add(ldc.i4.1, ldc.i4.2)``:
    arguments are listed from the deepest pop to the top of the stack, which
    is the order the values were pushed.  A slot fed by several producers
    lists them all, joined with ``" or "``.
    """

    def __init__(
        self,
        instructions: Iterable[Instruction],
        data_flow: DataFlowMap,
        resolver: Optional[MetadataResolver] = None,
    ) -> None:
        self._instructions = {instr.offset: instr for instr in instructions}
        self.data_flow = data_flow
        self.resolver = resolver

    def describe(self, offset: int) -> str:
        return self._describe(offset, frozenset())

    def describe_argument(self, offset: int, position: int) -> str:
        """Render the value popped by ``offset`` at stack ``position``."""

        return self._describe_slot(offset, position, frozenset({offset}))

    def describe_arguments(self, offset: int) -> List[str]:
        """Render every value popped by ``offset``, deepest first."""

        positions = self.data_flow.positions(offset)
        if not positions:
            return []
        return self._describe_arguments(offset, positions[-1], frozenset({offset}))

    def is_consumed(self, offset: int) -> bool:
        return self.data_flow.is_consumed(offset)

    def _describe(self, offset: int, ancestors: FrozenSet[int]) -> str:
        if offset in ancestors:
            return recursive_marker(offset)
        instruction = self._instructions[offset]
        text = instruction.text(self.resolver)
        positions = self.data_flow.positions(offset)
        if not positions:
            return text

        arguments = self._describe_arguments(offset, positions[-1], ancestors | {offset})
        return f"{text}({', '.join(arguments)})"

    def _describe_arguments(
        self, offset: int, deepest: int, ancestors: FrozenSet[int]
    ) -> List[str]:
        return [
            self._describe_slot(offset, position, ancestors)
            for position in range(deepest, -1, -1)
        ]

    def _describe_slot(self, offset: int, position: int, ancestors: FrozenSet[int]) -> str:
        producers = self.data_flow.producers(offset, position)
        if not producers:
            return UNKNOWN_MARKER
        return ALTERNATIVE_SEPARATOR.join(
            self._describe(producer, ancestors) for producer in producers
        )


__all__ = [
    "UNKNOWN_MARKER",
    "ExpressionRenderer",
    "recursive_marker",
]
