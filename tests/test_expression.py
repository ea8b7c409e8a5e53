from ilflow.dataflow import DataFlowMap
from ilflow.expression import UNKNOWN_MARKER, ExpressionRenderer
from ilflow.instruction import decode_method
from ilflow.metadata import MetadataCatalog, MethodSignature
from ilflow.paths import enumerate_paths
from ilflow.runs import build_runs
from ilflow.stack import simulate_all


def _renderer(il: bytes, resolver=None) -> ExpressionRenderer:
    instructions = decode_method(il)
    runs = build_runs(instructions, len(il))
    data_flow = simulate_all(runs, enumerate_paths(runs).values(), resolver or MetadataCatalog())
    return ExpressionRenderer(instructions, data_flow, resolver)


def test_leaf_renders_name_and_operand() -> None:
    renderer = _renderer(b"\x20" + (5).to_bytes(4, "little") + b"\x2A")

    assert renderer.describe(0) == "ldc.i4 5"
    assert renderer.describe(5) == "ret(ldc.i4 5)"


def test_arguments_read_in_push_order() -> None:
    renderer = _renderer(bytes.fromhex("17 18 58 0A 2A"))

    assert renderer.describe(2) == "add(ldc.i4.1, ldc.i4.2)"
    assert renderer.describe_argument(3, 0) == "add(ldc.i4.1, ldc.i4.2)"
    assert renderer.describe(3) == "stloc.0(add(ldc.i4.1, ldc.i4.2))"
    assert renderer.describe_arguments(2) == ["ldc.i4.1", "ldc.i4.2"]


def test_subtraction_keeps_operand_order() -> None:
    renderer = _renderer(bytes.fromhex("1F 0A 19 59 2A"))

    assert renderer.describe(3) == "sub(ldc.i4.s 10, ldc.i4.3)"


def test_alternative_producers_are_joined() -> None:
    il = b"".join(
        [
            b"\x20" + (0).to_bytes(4, "little"),
            b"\x3A" + (10).to_bytes(4, "little"),
            b"\x20" + (1).to_bytes(4, "little"),
            b"\x38" + (5).to_bytes(4, "little"),
            b"\x20" + (2).to_bytes(4, "little"),
            b"\x0A",
            b"\x2A",
        ]
    )
    renderer = _renderer(il)

    assert renderer.describe(0x19) == "stloc.0(ldc.i4 1 or ldc.i4 2)"
    assert renderer.describe(0x05) == "brtrue IL_0014(ldc.i4 0)"


def test_loop_carried_values_are_cut_at_cycles() -> None:
    renderer = _renderer(bytes.fromhex("16 17 58 25 1F 0A 32 F9 0A 2A"))

    assert renderer.describe(2) == "add(ldc.i4.0 or dup(/* recursive IL_0002 */), ldc.i4.1)"
    assert renderer.describe(8) == (
        "stloc.0(dup(add(ldc.i4.0 or /* recursive IL_0003 */, ldc.i4.1)))"
    )


def test_call_uses_resolved_names() -> None:
    catalog = MetadataCatalog({0x70000001: "hi"})
    catalog.add_method(
        0x0A000001, MethodSignature("WriteLine", 1, is_static=True, returns_void=True)
    )
    il = (
        b"\x72" + (0x70000001).to_bytes(4, "little")
        + b"\x28" + (0x0A000001).to_bytes(4, "little")
        + b"\x2A"
    )

    renderer = _renderer(il, catalog)

    assert renderer.describe(5) == 'call WriteLine(ldstr "hi")'
    assert not renderer.is_consumed(5)
    assert renderer.is_consumed(0)


def test_slot_without_producer_is_unknown() -> None:
    instructions = decode_method(bytes.fromhex("0A 2A"))
    renderer = ExpressionRenderer(instructions, DataFlowMap())

    assert renderer.describe(0) == "stloc.0"
    assert renderer.describe_argument(0, 0) == UNKNOWN_MARKER
    assert renderer.describe_arguments(0) == []


def test_gap_in_positions_renders_unknown() -> None:
    instructions = decode_method(bytes.fromhex("17 58 2A"))
    data_flow = DataFlowMap()
    data_flow.record(1, 1, 0)

    renderer = ExpressionRenderer(instructions, data_flow)

    assert renderer.describe(1) == "add(ldc.i4.1, /* unknown */)"
