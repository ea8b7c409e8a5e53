import pytest

from ilflow.opcodes import (
    OPERAND_SIZES,
    TWO_BYTE_PREFIX,
    FlowControl,
    OperandKind,
    StackBehaviour,
    iter_opcodes,
    lookup_opcode,
    lookup_two_byte_opcode,
    opcode_by_name,
)


def test_table_covers_public_opcodes() -> None:
    opcodes = iter_opcodes()
    two_byte = [opcode for opcode in opcodes if opcode.size == 2]

    assert len(opcodes) == 219
    assert len(two_byte) == 28
    assert len({opcode.name for opcode in opcodes}) == len(opcodes)


def test_two_byte_opcodes_share_prefix() -> None:
    for opcode in iter_opcodes():
        if opcode.size == 2:
            assert opcode.value >> 8 == TWO_BYTE_PREFIX
            assert lookup_two_byte_opcode(TWO_BYTE_PREFIX, opcode.value & 0xFF) is opcode
        else:
            assert lookup_opcode(opcode.value) is opcode


@pytest.mark.parametrize(
    "name, value, operand_kind, flow_control",
    [
        ("nop", 0x00, OperandKind.NONE, FlowControl.NEXT),
        ("ldc.i4", 0x20, OperandKind.INT32, FlowControl.NEXT),
        ("br.s", 0x2B, OperandKind.SHORT_BRANCH, FlowControl.BRANCH),
        ("brtrue", 0x3A, OperandKind.BRANCH, FlowControl.COND_BRANCH),
        ("switch", 0x45, OperandKind.SWITCH, FlowControl.COND_BRANCH),
        ("call", 0x28, OperandKind.METHOD, FlowControl.CALL),
        ("ret", 0x2A, OperandKind.NONE, FlowControl.RETURN),
        ("throw", 0x7A, OperandKind.NONE, FlowControl.THROW),
        ("ceq", 0xFE01, OperandKind.NONE, FlowControl.NEXT),
        ("endfilter", 0xFE11, OperandKind.NONE, FlowControl.RETURN),
        ("rethrow", 0xFE1A, OperandKind.NONE, FlowControl.THROW),
    ],
)
def test_known_encodings(name, value, operand_kind, flow_control) -> None:
    opcode = opcode_by_name(name)

    assert opcode.value == value
    assert opcode.operand_kind is operand_kind
    assert opcode.flow_control is flow_control


def test_stack_behaviour_of_variable_opcodes() -> None:
    assert opcode_by_name("ret").stack_pop is StackBehaviour.VARPOP
    assert opcode_by_name("newobj").stack_push is StackBehaviour.PUSHREF
    assert opcode_by_name("callvirt").stack_push is StackBehaviour.VARPUSH
    assert opcode_by_name("leave.s").stack_pop is StackBehaviour.POPALL
    assert opcode_by_name("dup").stack_push is StackBehaviour.PUSH1_PUSH1


def test_unused_encodings_are_absent() -> None:
    assert lookup_opcode(0x24) is None
    assert lookup_opcode(TWO_BYTE_PREFIX) is None
    assert lookup_two_byte_opcode(TWO_BYTE_PREFIX, 0x08) is None


def test_every_fixed_operand_has_a_size() -> None:
    for opcode in iter_opcodes():
        if opcode.operand_kind is not OperandKind.SWITCH:
            assert opcode.operand_kind in OPERAND_SIZES


def test_unknown_name_raises() -> None:
    with pytest.raises(KeyError, match="no.such"):
        opcode_by_name("no.such")


def test_label_formats_encoding() -> None:
    assert opcode_by_name("add").label() == "58"
    assert opcode_by_name("ceq").label() == "FE01"
