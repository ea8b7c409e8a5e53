"""Instruction views over a raw IL buffer and the lazy decoder."""

from __future__ import annotations

import struct
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Iterator, List, Optional, Tuple

from .errors import TruncatedInstructionError, UnknownOpCodeError, UnsupportedOperandError
from .opcodes import (
    BRANCH_OPERANDS,
    OPERAND_SIZES,
    TOKEN_OPERANDS,
    OpCode,
    OperandKind,
    lookup_opcode,
    lookup_two_byte_opcode,
)

if TYPE_CHECKING:  # pragma: no cover - imported for type checking only
    from .metadata import MetadataResolver


_LOCAL_SHORTHANDS = ("ldloc.", "stloc.")


def _read_int(il: bytes, offset: int, width: int, *, signed: bool) -> int:
    if offset < 0 or offset + width > len(il):
        raise TruncatedInstructionError(f"operand of {width} byte(s) exceeds buffer", il, offset)
    return int.from_bytes(il[offset : offset + width], "little", signed=signed)


def format_offset(offset: int) -> str:
    return f"IL_{offset:04X}"


@dataclass(frozen=True)
class Instruction:
    """A decoded instruction.

    The instance is only a view: the operand is read back from ``il`` on
    demand, so the object stays valid for as long as the buffer does.
    """

    il: bytes = field(repr=False, compare=False)
    offset: int
    opcode: OpCode

    @property
    def name(self) -> str:
        return self.opcode.name

    @property
    def operand_offset(self) -> int:
        return self.offset + self.opcode.size

    @property
    def size(self) -> int:
        """Encoded size including the operand."""

        kind = self.opcode.operand_kind
        if kind is OperandKind.SWITCH:
            count = self.switch_count
            return self.opcode.size + 4 + 4 * count
        return self.opcode.size + OPERAND_SIZES[kind]

    @property
    def next_offset(self) -> int:
        return self.offset + self.size

    @property
    def switch_count(self) -> int:
        if self.opcode.operand_kind is not OperandKind.SWITCH:
            raise UnsupportedOperandError(f"{self.name} has no switch table")
        count = _read_int(self.il, self.operand_offset, 4, signed=False)
        end = self.operand_offset + 4 + 4 * count
        if end > len(self.il):
            raise TruncatedInstructionError(
                f"switch table with {count} case(s) exceeds buffer", self.il, self.offset
            )
        return count

    @property
    def branch_target(self) -> int:
        """Absolute target of a single-target branch.

        Branch displacements are relative to the first byte after the
        instruction, not to the branch itself.
        """

        kind = self.opcode.operand_kind
        if kind is OperandKind.SHORT_BRANCH:
            delta = _read_int(self.il, self.operand_offset, 1, signed=True)
            return self.operand_offset + 1 + delta
        if kind is OperandKind.BRANCH:
            delta = _read_int(self.il, self.operand_offset, 4, signed=True)
            return self.operand_offset + 4 + delta
        raise UnsupportedOperandError(f"{self.name} does not encode a branch target")

    @property
    def switch_targets(self) -> Tuple[int, ...]:
        count = self.switch_count
        table = self.operand_offset + 4
        base = table + 4 * count
        return tuple(
            base + _read_int(self.il, table + 4 * index, 4, signed=True)
            for index in range(count)
        )

    @property
    def branch_targets(self) -> Tuple[int, ...]:
        kind = self.opcode.operand_kind
        if kind is OperandKind.SWITCH:
            return self.switch_targets
        if kind in BRANCH_OPERANDS:
            return (self.branch_target,)
        return ()

    @property
    def token(self) -> int:
        if self.opcode.operand_kind not in TOKEN_OPERANDS:
            raise UnsupportedOperandError(f"{self.name} does not carry a metadata token")
        return _read_int(self.il, self.operand_offset, 4, signed=False)

    @property
    def var_index(self) -> int:
        kind = self.opcode.operand_kind
        if kind is OperandKind.SHORT_VAR:
            return _read_int(self.il, self.operand_offset, 1, signed=False)
        if kind is OperandKind.VAR:
            return _read_int(self.il, self.operand_offset, 2, signed=False)
        raise UnsupportedOperandError(f"{self.name} does not reference a variable")

    @property
    def int_value(self) -> int:
        kind = self.opcode.operand_kind
        if kind is OperandKind.SHORT_INT:
            return _read_int(self.il, self.operand_offset, 1, signed=True)
        if kind is OperandKind.INT32:
            return _read_int(self.il, self.operand_offset, 4, signed=True)
        if kind is OperandKind.INT64:
            return _read_int(self.il, self.operand_offset, 8, signed=True)
        raise UnsupportedOperandError(f"{self.name} does not carry an integer literal")

    @property
    def float_value(self) -> float:
        kind = self.opcode.operand_kind
        start = self.operand_offset
        if kind is OperandKind.FLOAT32:
            _read_int(self.il, start, 4, signed=False)
            return struct.unpack_from("<f", self.il, start)[0]
        if kind is OperandKind.FLOAT64:
            _read_int(self.il, start, 8, signed=False)
            return struct.unpack_from("<d", self.il, start)[0]
        raise UnsupportedOperandError(f"{self.name} does not carry a float literal")

    @property
    def local_index(self) -> Optional[int]:
        """Local slot touched by ``ldloc``/``stloc`` forms, if any."""

        name = self.name
        if not name.startswith(_LOCAL_SHORTHANDS) and name not in ("ldloc", "stloc"):
            return None
        suffix = name.rsplit(".", 1)[-1]
        if suffix.isdigit():
            return int(suffix)
        return self.var_index

    def operand_text(self, resolver: Optional["MetadataResolver"] = None) -> str:
        kind = self.opcode.operand_kind
        if kind is OperandKind.NONE:
            return ""
        if kind in BRANCH_OPERANDS:
            return format_offset(self.branch_target)
        if kind is OperandKind.SWITCH:
            return "(" + ", ".join(format_offset(target) for target in self.switch_targets) + ")"
        if kind in (OperandKind.SHORT_INT, OperandKind.INT32, OperandKind.INT64):
            return str(self.int_value)
        if kind in (OperandKind.FLOAT32, OperandKind.FLOAT64):
            return repr(self.float_value)
        if kind in (OperandKind.SHORT_VAR, OperandKind.VAR):
            return str(self.var_index)

        token = self.token
        if resolver is None:
            name = f"token_{token:08X}"
        else:
            name = resolver.resolve_name(token)
        if kind is OperandKind.STRING:
            return '"' + name + '"'
        return name

    def text(self, resolver: Optional["MetadataResolver"] = None) -> str:
        operand = self.operand_text(resolver)
        if operand:
            return f"{self.name} {operand}"
        return self.name

    def format(self, resolver: Optional["MetadataResolver"] = None) -> str:
        return f"{format_offset(self.offset)}: {self.text(resolver)}"


def read_instructions(il: bytes) -> Iterator[Instruction]:
    """Lazily decode ``il`` into :class:`Instruction` views.

    Each call returns a fresh generator, so the sequence can be replayed any
    number of times.  Unknown encodings and operands that run past the end of
    the buffer abort decoding.
    """

    il = bytes(il)
    index = 0
    total = len(il)
    while index < total:
        start = index
        opcode = lookup_opcode(il[index])
        index += 1
        if opcode is None:
            if index >= total:
                raise UnknownOpCodeError(il, start)
            opcode = lookup_two_byte_opcode(il[start], il[index])
            index += 1
            if opcode is None:
                raise UnknownOpCodeError(il, start)

        instruction = Instruction(il, start, opcode)
        size = instruction.size
        if start + size > total:
            raise TruncatedInstructionError(
                f"{opcode.name} operand exceeds buffer", il, start
            )
        yield instruction
        index = start + size


def decode_method(il: bytes) -> List[Instruction]:
    """Decode the whole buffer eagerly."""

    return list(read_instructions(il))


__all__ = [
    "Instruction",
    "read_instructions",
    "decode_method",
    "format_offset",
]
