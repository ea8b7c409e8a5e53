"""Fixed opcode table for ECMA-335 method bodies.

Every public (non-internal) opcode is described once with its encoding, the
shape of its operand, its control-flow class and its stack behaviour.  The
table is closed: the standard does not grow at runtime, so lookups never fall
back to heuristics.  Two-byte opcodes share the ``0xFE`` escape prefix and are
keyed by their big-endian 16-bit value (``0xFE01`` for ``ceq``).
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Mapping, Optional, Tuple


TWO_BYTE_PREFIX = 0xFE


class OperandKind(Enum):
    """Shape of the payload that follows an opcode."""

    NONE = "InlineNone"
    SHORT_INT = "ShortInlineI"
    SHORT_VAR = "ShortInlineVar"
    SHORT_BRANCH = "ShortInlineBrTarget"
    BRANCH = "InlineBrTarget"
    INT32 = "InlineI"
    INT64 = "InlineI8"
    FLOAT32 = "ShortInlineR"
    FLOAT64 = "InlineR"
    VAR = "InlineVar"
    TYPE = "InlineType"
    FIELD = "InlineField"
    METHOD = "InlineMethod"
    TOKEN = "InlineTok"
    STRING = "InlineString"
    SIGNATURE = "InlineSig"
    SWITCH = "InlineSwitch"


class FlowControl(Enum):
    NEXT = "next"
    BRANCH = "branch"
    COND_BRANCH = "cond_branch"
    CALL = "call"
    RETURN = "return"
    THROW = "throw"
    BREAK = "break"
    META = "meta"


class StackBehaviour(Enum):
    POP0 = "Pop0"
    POP1 = "Pop1"
    POP1_POP1 = "Pop1_pop1"
    POPI = "Popi"
    POPI_POP1 = "Popi_pop1"
    POPI_POPI = "Popi_popi"
    POPI_POPI8 = "Popi_popi8"
    POPI_POPI_POPI = "Popi_popi_popi"
    POPI_POPR4 = "Popi_popr4"
    POPI_POPR8 = "Popi_popr8"
    POPREF = "Popref"
    POPREF_POP1 = "Popref_pop1"
    POPREF_POPI = "Popref_popi"
    POPREF_POPI_POPI = "Popref_popi_popi"
    POPREF_POPI_POPI8 = "Popref_popi_popi8"
    POPREF_POPI_POPR4 = "Popref_popi_popr4"
    POPREF_POPI_POPR8 = "Popref_popi_popr8"
    POPREF_POPI_POPREF = "Popref_popi_popref"
    POPREF_POPI_POP1 = "Popref_popi_pop1"
    VARPOP = "Varpop"
    POPALL = "PopAll"
    PUSH0 = "Push0"
    PUSH1 = "Push1"
    PUSH1_PUSH1 = "Push1_push1"
    PUSHI = "Pushi"
    PUSHI8 = "Pushi8"
    PUSHR4 = "Pushr4"
    PUSHR8 = "Pushr8"
    PUSHREF = "Pushref"
    VARPUSH = "Varpush"


# Payload size in bytes for every fixed-size operand kind.  Switch tables are
# variable and sized from the case count stored in the buffer.
OPERAND_SIZES: Mapping[OperandKind, int] = {
    OperandKind.NONE: 0,
    OperandKind.SHORT_INT: 1,
    OperandKind.SHORT_VAR: 1,
    OperandKind.SHORT_BRANCH: 1,
    OperandKind.VAR: 2,
    OperandKind.BRANCH: 4,
    OperandKind.INT32: 4,
    OperandKind.FLOAT32: 4,
    OperandKind.TYPE: 4,
    OperandKind.FIELD: 4,
    OperandKind.METHOD: 4,
    OperandKind.TOKEN: 4,
    OperandKind.STRING: 4,
    OperandKind.SIGNATURE: 4,
    OperandKind.INT64: 8,
    OperandKind.FLOAT64: 8,
}

TOKEN_OPERANDS = frozenset(
    {
        OperandKind.TYPE,
        OperandKind.FIELD,
        OperandKind.METHOD,
        OperandKind.TOKEN,
        OperandKind.STRING,
        OperandKind.SIGNATURE,
    }
)

BRANCH_OPERANDS = frozenset({OperandKind.SHORT_BRANCH, OperandKind.BRANCH})


POP_COUNTS: Mapping[StackBehaviour, int] = {
    StackBehaviour.POP0: 0,
    StackBehaviour.POP1: 1,
    StackBehaviour.POPI: 1,
    StackBehaviour.POPREF: 1,
    StackBehaviour.POP1_POP1: 2,
    StackBehaviour.POPI_POP1: 2,
    StackBehaviour.POPI_POPI: 2,
    StackBehaviour.POPI_POPI8: 2,
    StackBehaviour.POPI_POPR4: 2,
    StackBehaviour.POPI_POPR8: 2,
    StackBehaviour.POPREF_POP1: 2,
    StackBehaviour.POPREF_POPI: 2,
    StackBehaviour.POPI_POPI_POPI: 3,
    StackBehaviour.POPREF_POPI_POPI: 3,
    StackBehaviour.POPREF_POPI_POPI8: 3,
    StackBehaviour.POPREF_POPI_POPR4: 3,
    StackBehaviour.POPREF_POPI_POPR8: 3,
    StackBehaviour.POPREF_POPI_POPREF: 3,
    StackBehaviour.POPREF_POPI_POP1: 3,
}

PUSH_COUNTS: Mapping[StackBehaviour, int] = {
    StackBehaviour.PUSH0: 0,
    StackBehaviour.PUSH1: 1,
    StackBehaviour.PUSHI: 1,
    StackBehaviour.PUSHI8: 1,
    StackBehaviour.PUSHR4: 1,
    StackBehaviour.PUSHR8: 1,
    StackBehaviour.PUSHREF: 1,
    StackBehaviour.PUSH1_PUSH1: 2,
}


@dataclass(frozen=True)
class OpCode:
    """Immutable descriptor for a single opcode."""

    name: str
    value: int
    operand_kind: OperandKind
    flow_control: FlowControl
    stack_pop: StackBehaviour
    stack_push: StackBehaviour

    @property
    def size(self) -> int:
        """Encoding size of the opcode itself, excluding the operand."""

        return 2 if self.value > 0xFF else 1

    @property
    def is_switch(self) -> bool:
        return self.operand_kind is OperandKind.SWITCH

    def label(self) -> str:
        if self.size == 2:
            return f"{self.value:04X}"
        return f"{self.value:02X}"


_N = OperandKind.NONE
_SI = OperandKind.SHORT_INT
_SV = OperandKind.SHORT_VAR
_SB = OperandKind.SHORT_BRANCH
_B = OperandKind.BRANCH
_I = OperandKind.INT32
_I8 = OperandKind.INT64
_R4 = OperandKind.FLOAT32
_R8 = OperandKind.FLOAT64
_V = OperandKind.VAR
_TYPE = OperandKind.TYPE
_FIELD = OperandKind.FIELD
_METHOD = OperandKind.METHOD
_TOK = OperandKind.TOKEN
_STR = OperandKind.STRING
_SIG = OperandKind.SIGNATURE
_SW = OperandKind.SWITCH

_NEXT = FlowControl.NEXT
_BR = FlowControl.BRANCH
_COND = FlowControl.COND_BRANCH
_CALL = FlowControl.CALL
_RET = FlowControl.RETURN
_THROW = FlowControl.THROW
_BREAK = FlowControl.BREAK
_META = FlowControl.META

_S = StackBehaviour

# (name, value, operand, flow control, pop, push)
_OPCODE_TABLE: Tuple[Tuple[str, int, OperandKind, FlowControl, StackBehaviour, StackBehaviour], ...] = (
    ("nop", 0x00, _N, _NEXT, _S.POP0, _S.PUSH0),
    ("break", 0x01, _N, _BREAK, _S.POP0, _S.PUSH0),
    ("ldarg.0", 0x02, _N, _NEXT, _S.POP0, _S.PUSH1),
    ("ldarg.1", 0x03, _N, _NEXT, _S.POP0, _S.PUSH1),
    ("ldarg.2", 0x04, _N, _NEXT, _S.POP0, _S.PUSH1),
    ("ldarg.3", 0x05, _N, _NEXT, _S.POP0, _S.PUSH1),
    ("ldloc.0", 0x06, _N, _NEXT, _S.POP0, _S.PUSH1),
    ("ldloc.1", 0x07, _N, _NEXT, _S.POP0, _S.PUSH1),
    ("ldloc.2", 0x08, _N, _NEXT, _S.POP0, _S.PUSH1),
    ("ldloc.3", 0x09, _N, _NEXT, _S.POP0, _S.PUSH1),
    ("stloc.0", 0x0A, _N, _NEXT, _S.POP1, _S.PUSH0),
    ("stloc.1", 0x0B, _N, _NEXT, _S.POP1, _S.PUSH0),
    ("stloc.2", 0x0C, _N, _NEXT, _S.POP1, _S.PUSH0),
    ("stloc.3", 0x0D, _N, _NEXT, _S.POP1, _S.PUSH0),
    ("ldarg.s", 0x0E, _SV, _NEXT, _S.POP0, _S.PUSH1),
    ("ldarga.s", 0x0F, _SV, _NEXT, _S.POP0, _S.PUSHI),
    ("starg.s", 0x10, _SV, _NEXT, _S.POP1, _S.PUSH0),
    ("ldloc.s", 0x11, _SV, _NEXT, _S.POP0, _S.PUSH1),
    ("ldloca.s", 0x12, _SV, _NEXT, _S.POP0, _S.PUSHI),
    ("stloc.s", 0x13, _SV, _NEXT, _S.POP1, _S.PUSH0),
    ("ldnull", 0x14, _N, _NEXT, _S.POP0, _S.PUSHREF),
    ("ldc.i4.m1", 0x15, _N, _NEXT, _S.POP0, _S.PUSHI),
    ("ldc.i4.0", 0x16, _N, _NEXT, _S.POP0, _S.PUSHI),
    ("ldc.i4.1", 0x17, _N, _NEXT, _S.POP0, _S.PUSHI),
    ("ldc.i4.2", 0x18, _N, _NEXT, _S.POP0, _S.PUSHI),
    ("ldc.i4.3", 0x19, _N, _NEXT, _S.POP0, _S.PUSHI),
    ("ldc.i4.4", 0x1A, _N, _NEXT, _S.POP0, _S.PUSHI),
    ("ldc.i4.5", 0x1B, _N, _NEXT, _S.POP0, _S.PUSHI),
    ("ldc.i4.6", 0x1C, _N, _NEXT, _S.POP0, _S.PUSHI),
    ("ldc.i4.7", 0x1D, _N, _NEXT, _S.POP0, _S.PUSHI),
    ("ldc.i4.8", 0x1E, _N, _NEXT, _S.POP0, _S.PUSHI),
    ("ldc.i4.s", 0x1F, _SI, _NEXT, _S.POP0, _S.PUSHI),
    ("ldc.i4", 0x20, _I, _NEXT, _S.POP0, _S.PUSHI),
    ("ldc.i8", 0x21, _I8, _NEXT, _S.POP0, _S.PUSHI8),
    ("ldc.r4", 0x22, _R4, _NEXT, _S.POP0, _S.PUSHR4),
    ("ldc.r8", 0x23, _R8, _NEXT, _S.POP0, _S.PUSHR8),
    ("dup", 0x25, _N, _NEXT, _S.POP1, _S.PUSH1_PUSH1),
    ("pop", 0x26, _N, _NEXT, _S.POP1, _S.PUSH0),
    ("jmp", 0x27, _METHOD, _CALL, _S.POP0, _S.PUSH0),
    ("call", 0x28, _METHOD, _CALL, _S.VARPOP, _S.VARPUSH),
    ("calli", 0x29, _SIG, _CALL, _S.VARPOP, _S.VARPUSH),
    ("ret", 0x2A, _N, _RET, _S.VARPOP, _S.PUSH0),
    ("br.s", 0x2B, _SB, _BR, _S.POP0, _S.PUSH0),
    ("brfalse.s", 0x2C, _SB, _COND, _S.POPI, _S.PUSH0),
    ("brtrue.s", 0x2D, _SB, _COND, _S.POPI, _S.PUSH0),
    ("beq.s", 0x2E, _SB, _COND, _S.POP1_POP1, _S.PUSH0),
    ("bge.s", 0x2F, _SB, _COND, _S.POP1_POP1, _S.PUSH0),
    ("bgt.s", 0x30, _SB, _COND, _S.POP1_POP1, _S.PUSH0),
    ("ble.s", 0x31, _SB, _COND, _S.POP1_POP1, _S.PUSH0),
    ("blt.s", 0x32, _SB, _COND, _S.POP1_POP1, _S.PUSH0),
    ("bne.un.s", 0x33, _SB, _COND, _S.POP1_POP1, _S.PUSH0),
    ("bge.un.s", 0x34, _SB, _COND, _S.POP1_POP1, _S.PUSH0),
    ("bgt.un.s", 0x35, _SB, _COND, _S.POP1_POP1, _S.PUSH0),
    ("ble.un.s", 0x36, _SB, _COND, _S.POP1_POP1, _S.PUSH0),
    ("blt.un.s", 0x37, _SB, _COND, _S.POP1_POP1, _S.PUSH0),
    ("br", 0x38, _B, _BR, _S.POP0, _S.PUSH0),
    ("brfalse", 0x39, _B, _COND, _S.POPI, _S.PUSH0),
    ("brtrue", 0x3A, _B, _COND, _S.POPI, _S.PUSH0),
    ("beq", 0x3B, _B, _COND, _S.POP1_POP1, _S.PUSH0),
    ("bge", 0x3C, _B, _COND, _S.POP1_POP1, _S.PUSH0),
    ("bgt", 0x3D, _B, _COND, _S.POP1_POP1, _S.PUSH0),
    ("ble", 0x3E, _B, _COND, _S.POP1_POP1, _S.PUSH0),
    ("blt", 0x3F, _B, _COND, _S.POP1_POP1, _S.PUSH0),
    ("bne.un", 0x40, _B, _COND, _S.POP1_POP1, _S.PUSH0),
    ("bge.un", 0x41, _B, _COND, _S.POP1_POP1, _S.PUSH0),
    ("bgt.un", 0x42, _B, _COND, _S.POP1_POP1, _S.PUSH0),
    ("ble.un", 0x43, _B, _COND, _S.POP1_POP1, _S.PUSH0),
    ("blt.un", 0x44, _B, _COND, _S.POP1_POP1, _S.PUSH0),
    ("switch", 0x45, _SW, _COND, _S.POPI, _S.PUSH0),
    ("ldind.i1", 0x46, _N, _NEXT, _S.POPI, _S.PUSHI),
    ("ldind.u1", 0x47, _N, _NEXT, _S.POPI, _S.PUSHI),
    ("ldind.i2", 0x48, _N, _NEXT, _S.POPI, _S.PUSHI),
    ("ldind.u2", 0x49, _N, _NEXT, _S.POPI, _S.PUSHI),
    ("ldind.i4", 0x4A, _N, _NEXT, _S.POPI, _S.PUSHI),
    ("ldind.u4", 0x4B, _N, _NEXT, _S.POPI, _S.PUSHI),
    ("ldind.i8", 0x4C, _N, _NEXT, _S.POPI, _S.PUSHI8),
    ("ldind.i", 0x4D, _N, _NEXT, _S.POPI, _S.PUSHI),
    ("ldind.r4", 0x4E, _N, _NEXT, _S.POPI, _S.PUSHR4),
    ("ldind.r8", 0x4F, _N, _NEXT, _S.POPI, _S.PUSHR8),
    ("ldind.ref", 0x50, _N, _NEXT, _S.POPI, _S.PUSHREF),
    ("stind.ref", 0x51, _N, _NEXT, _S.POPI_POPI, _S.PUSH0),
    ("stind.i1", 0x52, _N, _NEXT, _S.POPI_POPI, _S.PUSH0),
    ("stind.i2", 0x53, _N, _NEXT, _S.POPI_POPI, _S.PUSH0),
    ("stind.i4", 0x54, _N, _NEXT, _S.POPI_POPI, _S.PUSH0),
    ("stind.i8", 0x55, _N, _NEXT, _S.POPI_POPI8, _S.PUSH0),
    ("stind.r4", 0x56, _N, _NEXT, _S.POPI_POPR4, _S.PUSH0),
    ("stind.r8", 0x57, _N, _NEXT, _S.POPI_POPR8, _S.PUSH0),
    ("add", 0x58, _N, _NEXT, _S.POP1_POP1, _S.PUSH1),
    ("sub", 0x59, _N, _NEXT, _S.POP1_POP1, _S.PUSH1),
    ("mul", 0x5A, _N, _NEXT, _S.POP1_POP1, _S.PUSH1),
    ("div", 0x5B, _N, _NEXT, _S.POP1_POP1, _S.PUSH1),
    ("div.un", 0x5C, _N, _NEXT, _S.POP1_POP1, _S.PUSH1),
    ("rem", 0x5D, _N, _NEXT, _S.POP1_POP1, _S.PUSH1),
    ("rem.un", 0x5E, _N, _NEXT, _S.POP1_POP1, _S.PUSH1),
    ("and", 0x5F, _N, _NEXT, _S.POP1_POP1, _S.PUSH1),
    ("or", 0x60, _N, _NEXT, _S.POP1_POP1, _S.PUSH1),
    ("xor", 0x61, _N, _NEXT, _S.POP1_POP1, _S.PUSH1),
    ("shl", 0x62, _N, _NEXT, _S.POP1_POP1, _S.PUSH1),
    ("shr", 0x63, _N, _NEXT, _S.POP1_POP1, _S.PUSH1),
    ("shr.un", 0x64, _N, _NEXT, _S.POP1_POP1, _S.PUSH1),
    ("neg", 0x65, _N, _NEXT, _S.POP1, _S.PUSH1),
    ("not", 0x66, _N, _NEXT, _S.POP1, _S.PUSH1),
    ("conv.i1", 0x67, _N, _NEXT, _S.POP1, _S.PUSHI),
    ("conv.i2", 0x68, _N, _NEXT, _S.POP1, _S.PUSHI),
    ("conv.i4", 0x69, _N, _NEXT, _S.POP1, _S.PUSHI),
    ("conv.i8", 0x6A, _N, _NEXT, _S.POP1, _S.PUSHI8),
    ("conv.r4", 0x6B, _N, _NEXT, _S.POP1, _S.PUSHR4),
    ("conv.r8", 0x6C, _N, _NEXT, _S.POP1, _S.PUSHR8),
    ("conv.u4", 0x6D, _N, _NEXT, _S.POP1, _S.PUSHI),
    ("conv.u8", 0x6E, _N, _NEXT, _S.POP1, _S.PUSHI8),
    ("callvirt", 0x6F, _METHOD, _CALL, _S.VARPOP, _S.VARPUSH),
    ("cpobj", 0x70, _TYPE, _NEXT, _S.POPI_POPI, _S.PUSH0),
    ("ldobj", 0x71, _TYPE, _NEXT, _S.POPI, _S.PUSH1),
    ("ldstr", 0x72, _STR, _NEXT, _S.POP0, _S.PUSHREF),
    ("newobj", 0x73, _METHOD, _CALL, _S.VARPOP, _S.PUSHREF),
    ("castclass", 0x74, _TYPE, _NEXT, _S.POPREF, _S.PUSHREF),
    ("isinst", 0x75, _TYPE, _NEXT, _S.POPREF, _S.PUSHI),
    ("conv.r.un", 0x76, _N, _NEXT, _S.POP1, _S.PUSHR8),
    ("unbox", 0x79, _TYPE, _NEXT, _S.POPREF, _S.PUSHI),
    ("throw", 0x7A, _N, _THROW, _S.POPREF, _S.PUSH0),
    ("ldfld", 0x7B, _FIELD, _NEXT, _S.POPREF, _S.PUSH1),
    ("ldflda", 0x7C, _FIELD, _NEXT, _S.POPREF, _S.PUSHI),
    ("stfld", 0x7D, _FIELD, _NEXT, _S.POPREF_POP1, _S.PUSH0),
    ("ldsfld", 0x7E, _FIELD, _NEXT, _S.POP0, _S.PUSH1),
    ("ldsflda", 0x7F, _FIELD, _NEXT, _S.POP0, _S.PUSHI),
    ("stsfld", 0x80, _FIELD, _NEXT, _S.POP1, _S.PUSH0),
    ("stobj", 0x81, _TYPE, _NEXT, _S.POPI_POP1, _S.PUSH0),
    ("conv.ovf.i1.un", 0x82, _N, _NEXT, _S.POP1, _S.PUSHI),
    ("conv.ovf.i2.un", 0x83, _N, _NEXT, _S.POP1, _S.PUSHI),
    ("conv.ovf.i4.un", 0x84, _N, _NEXT, _S.POP1, _S.PUSHI),
    ("conv.ovf.i8.un", 0x85, _N, _NEXT, _S.POP1, _S.PUSHI8),
    ("conv.ovf.u1.un", 0x86, _N, _NEXT, _S.POP1, _S.PUSHI),
    ("conv.ovf.u2.un", 0x87, _N, _NEXT, _S.POP1, _S.PUSHI),
    ("conv.ovf.u4.un", 0x88, _N, _NEXT, _S.POP1, _S.PUSHI),
    ("conv.ovf.u8.un", 0x89, _N, _NEXT, _S.POP1, _S.PUSHI8),
    ("conv.ovf.i.un", 0x8A, _N, _NEXT, _S.POP1, _S.PUSHI),
    ("conv.ovf.u.un", 0x8B, _N, _NEXT, _S.POP1, _S.PUSHI),
    ("box", 0x8C, _TYPE, _NEXT, _S.POP1, _S.PUSHREF),
    ("newarr", 0x8D, _TYPE, _NEXT, _S.POPI, _S.PUSHREF),
    ("ldlen", 0x8E, _N, _NEXT, _S.POPREF, _S.PUSHI),
    ("ldelema", 0x8F, _TYPE, _NEXT, _S.POPREF_POPI, _S.PUSHI),
    ("ldelem.i1", 0x90, _N, _NEXT, _S.POPREF_POPI, _S.PUSHI),
    ("ldelem.u1", 0x91, _N, _NEXT, _S.POPREF_POPI, _S.PUSHI),
    ("ldelem.i2", 0x92, _N, _NEXT, _S.POPREF_POPI, _S.PUSHI),
    ("ldelem.u2", 0x93, _N, _NEXT, _S.POPREF_POPI, _S.PUSHI),
    ("ldelem.i4", 0x94, _N, _NEXT, _S.POPREF_POPI, _S.PUSHI),
    ("ldelem.u4", 0x95, _N, _NEXT, _S.POPREF_POPI, _S.PUSHI),
    ("ldelem.i8", 0x96, _N, _NEXT, _S.POPREF_POPI, _S.PUSHI8),
    ("ldelem.i", 0x97, _N, _NEXT, _S.POPREF_POPI, _S.PUSHI),
    ("ldelem.r4", 0x98, _N, _NEXT, _S.POPREF_POPI, _S.PUSHR4),
    ("ldelem.r8", 0x99, _N, _NEXT, _S.POPREF_POPI, _S.PUSHR8),
    ("ldelem.ref", 0x9A, _N, _NEXT, _S.POPREF_POPI, _S.PUSHREF),
    ("stelem.i", 0x9B, _N, _NEXT, _S.POPREF_POPI_POPI, _S.PUSH0),
    ("stelem.i1", 0x9C, _N, _NEXT, _S.POPREF_POPI_POPI, _S.PUSH0),
    ("stelem.i2", 0x9D, _N, _NEXT, _S.POPREF_POPI_POPI, _S.PUSH0),
    ("stelem.i4", 0x9E, _N, _NEXT, _S.POPREF_POPI_POPI, _S.PUSH0),
    ("stelem.i8", 0x9F, _N, _NEXT, _S.POPREF_POPI_POPI8, _S.PUSH0),
    ("stelem.r4", 0xA0, _N, _NEXT, _S.POPREF_POPI_POPR4, _S.PUSH0),
    ("stelem.r8", 0xA1, _N, _NEXT, _S.POPREF_POPI_POPR8, _S.PUSH0),
    ("stelem.ref", 0xA2, _N, _NEXT, _S.POPREF_POPI_POPREF, _S.PUSH0),
    ("ldelem", 0xA3, _TYPE, _NEXT, _S.POPREF_POPI, _S.PUSH1),
    ("stelem", 0xA4, _TYPE, _NEXT, _S.POPREF_POPI_POP1, _S.PUSH0),
    ("unbox.any", 0xA5, _TYPE, _NEXT, _S.POPREF, _S.PUSH1),
    ("conv.ovf.i1", 0xB3, _N, _NEXT, _S.POP1, _S.PUSHI),
    ("conv.ovf.u1", 0xB4, _N, _NEXT, _S.POP1, _S.PUSHI),
    ("conv.ovf.i2", 0xB5, _N, _NEXT, _S.POP1, _S.PUSHI),
    ("conv.ovf.u2", 0xB6, _N, _NEXT, _S.POP1, _S.PUSHI),
    ("conv.ovf.i4", 0xB7, _N, _NEXT, _S.POP1, _S.PUSHI),
    ("conv.ovf.u4", 0xB8, _N, _NEXT, _S.POP1, _S.PUSHI),
    ("conv.ovf.i8", 0xB9, _N, _NEXT, _S.POP1, _S.PUSHI8),
    ("conv.ovf.u8", 0xBA, _N, _NEXT, _S.POP1, _S.PUSHI8),
    ("refanyval", 0xC2, _TYPE, _NEXT, _S.POP1, _S.PUSHI),
    ("ckfinite", 0xC3, _N, _NEXT, _S.POP1, _S.PUSHR8),
    ("mkrefany", 0xC6, _TYPE, _NEXT, _S.POPI, _S.PUSH1),
    ("ldtoken", 0xD0, _TOK, _NEXT, _S.POP0, _S.PUSHI),
    ("conv.u2", 0xD1, _N, _NEXT, _S.POP1, _S.PUSHI),
    ("conv.u1", 0xD2, _N, _NEXT, _S.POP1, _S.PUSHI),
    ("conv.i", 0xD3, _N, _NEXT, _S.POP1, _S.PUSHI),
    ("conv.ovf.i", 0xD4, _N, _NEXT, _S.POP1, _S.PUSHI),
    ("conv.ovf.u", 0xD5, _N, _NEXT, _S.POP1, _S.PUSHI),
    ("add.ovf", 0xD6, _N, _NEXT, _S.POP1_POP1, _S.PUSH1),
    ("add.ovf.un", 0xD7, _N, _NEXT, _S.POP1_POP1, _S.PUSH1),
    ("mul.ovf", 0xD8, _N, _NEXT, _S.POP1_POP1, _S.PUSH1),
    ("mul.ovf.un", 0xD9, _N, _NEXT, _S.POP1_POP1, _S.PUSH1),
    ("sub.ovf", 0xDA, _N, _NEXT, _S.POP1_POP1, _S.PUSH1),
    ("sub.ovf.un", 0xDB, _N, _NEXT, _S.POP1_POP1, _S.PUSH1),
    ("endfinally", 0xDC, _N, _RET, _S.POP0, _S.PUSH0),
    ("leave", 0xDD, _B, _BR, _S.POPALL, _S.PUSH0),
    ("leave.s", 0xDE, _SB, _BR, _S.POPALL, _S.PUSH0),
    ("stind.i", 0xDF, _N, _NEXT, _S.POPI_POPI, _S.PUSH0),
    ("conv.u", 0xE0, _N, _NEXT, _S.POP1, _S.PUSHI),
    ("arglist", 0xFE00, _N, _NEXT, _S.POP0, _S.PUSHI),
    ("ceq", 0xFE01, _N, _NEXT, _S.POP1_POP1, _S.PUSHI),
    ("cgt", 0xFE02, _N, _NEXT, _S.POP1_POP1, _S.PUSHI),
    ("cgt.un", 0xFE03, _N, _NEXT, _S.POP1_POP1, _S.PUSHI),
    ("clt", 0xFE04, _N, _NEXT, _S.POP1_POP1, _S.PUSHI),
    ("clt.un", 0xFE05, _N, _NEXT, _S.POP1_POP1, _S.PUSHI),
    ("ldftn", 0xFE06, _METHOD, _NEXT, _S.POP0, _S.PUSHI),
    ("ldvirtftn", 0xFE07, _METHOD, _NEXT, _S.POPREF, _S.PUSHI),
    ("ldarg", 0xFE09, _V, _NEXT, _S.POP0, _S.PUSH1),
    ("ldarga", 0xFE0A, _V, _NEXT, _S.POP0, _S.PUSHI),
    ("starg", 0xFE0B, _V, _NEXT, _S.POP1, _S.PUSH0),
    ("ldloc", 0xFE0C, _V, _NEXT, _S.POP0, _S.PUSH1),
    ("ldloca", 0xFE0D, _V, _NEXT, _S.POP0, _S.PUSHI),
    ("stloc", 0xFE0E, _V, _NEXT, _S.POP1, _S.PUSH0),
    ("localloc", 0xFE0F, _N, _NEXT, _S.POPI, _S.PUSHI),
    ("endfilter", 0xFE11, _N, _RET, _S.POPI, _S.PUSH0),
    ("unaligned.", 0xFE12, _SI, _META, _S.POP0, _S.PUSH0),
    ("volatile.", 0xFE13, _N, _META, _S.POP0, _S.PUSH0),
    ("tail.", 0xFE14, _N, _META, _S.POP0, _S.PUSH0),
    ("initobj", 0xFE15, _TYPE, _NEXT, _S.POPI, _S.PUSH0),
    ("constrained.", 0xFE16, _TYPE, _META, _S.POP0, _S.PUSH0),
    ("cpblk", 0xFE17, _N, _NEXT, _S.POPI_POPI_POPI, _S.PUSH0),
    ("initblk", 0xFE18, _N, _NEXT, _S.POPI_POPI_POPI, _S.PUSH0),
    ("no.", 0xFE19, _SI, _META, _S.POP0, _S.PUSH0),
    ("rethrow", 0xFE1A, _N, _THROW, _S.POP0, _S.PUSH0),
    ("sizeof", 0xFE1C, _TYPE, _NEXT, _S.POP0, _S.PUSHI),
    ("refanytype", 0xFE1D, _N, _NEXT, _S.POP1, _S.PUSHI),
    ("readonly.", 0xFE1E, _N, _META, _S.POP0, _S.PUSH0),
)


def _build_tables() -> Tuple[Dict[int, OpCode], Dict[int, OpCode], Dict[str, OpCode]]:
    one_byte: Dict[int, OpCode] = {}
    two_byte: Dict[int, OpCode] = {}
    by_name: Dict[str, OpCode] = {}
    for name, value, operand, flow, pop, push in _OPCODE_TABLE:
        opcode = OpCode(name, value, operand, flow, pop, push)
        table = two_byte if opcode.size == 2 else one_byte
        if value in table or name in by_name:
            raise ValueError(f"duplicate opcode definition for {name}")
        table[value] = opcode
        by_name[name] = opcode
    return one_byte, two_byte, by_name


_ONE_BYTE, _TWO_BYTE, _BY_NAME = _build_tables()


def lookup_opcode(value: int) -> Optional[OpCode]:
    """Return the single-byte opcode encoded by ``value``."""

    return _ONE_BYTE.get(value)


def lookup_two_byte_opcode(first: int, second: int) -> Optional[OpCode]:
    """Return the opcode encoded by the big-endian pair ``first``/``second``."""

    return _TWO_BYTE.get((first << 8) | second)


def opcode_by_name(name: str) -> OpCode:
    try:
        return _BY_NAME[name]
    except KeyError:
        raise KeyError(f"unknown opcode name {name!r}") from None


def iter_opcodes() -> Tuple[OpCode, ...]:
    return tuple(_BY_NAME.values())


__all__ = [
    "TWO_BYTE_PREFIX",
    "OperandKind",
    "FlowControl",
    "StackBehaviour",
    "OPERAND_SIZES",
    "TOKEN_OPERANDS",
    "BRANCH_OPERANDS",
    "POP_COUNTS",
    "PUSH_COUNTS",
    "OpCode",
    "lookup_opcode",
    "lookup_two_byte_opcode",
    "opcode_by_name",
    "iter_opcodes",
]
