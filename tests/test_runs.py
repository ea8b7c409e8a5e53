import pytest

from ilflow.clauses import ClauseKind, ExceptionClause
from ilflow.errors import BranchTargetError, RunBoundaryError
from ilflow.instruction import decode_method
from ilflow.runs import ControlFlowSource, RunBuilder, SourceKind, build_runs


def _i4(value: int) -> bytes:
    return value.to_bytes(4, "little", signed=True)


# if (0) x = 2 else x = 1, using the long branch forms
BRANCH_BODY = b"".join(
    [
        b"\x20" + _i4(0),  # IL_0000 ldc.i4 0
        b"\x3A" + _i4(10),  # IL_0005 brtrue IL_0014
        b"\x20" + _i4(1),  # IL_000A ldc.i4 1
        b"\x38" + _i4(5),  # IL_000F br IL_0019
        b"\x20" + _i4(2),  # IL_0014 ldc.i4 2
        b"\x0A",  # IL_0019 stloc.0
        b"\x2A",  # IL_001A ret
    ]
)

FINALLY_BODY = bytes.fromhex("17 0A DE 03 18 0B DC 2A")
FINALLY_CLAUSE = ExceptionClause(ClauseKind.FINALLY, 0, 4, 4, 3)


def _runs(il: bytes, clauses=()):
    return build_runs(decode_method(il), len(il), clauses)


def test_branch_body_runs() -> None:
    runs = _runs(BRANCH_BODY)

    assert [run.start for run in runs] == [0x00, 0x0A, 0x14, 0x19]
    assert runs[0].sources == (ControlFlowSource(SourceKind.METHOD_ENTRY),)
    assert runs[1].sources == (
        ControlFlowSource(SourceKind.CONDITIONAL_FALLTHROUGH, offset=0x05),
    )
    assert runs[2].sources == (ControlFlowSource(SourceKind.BRANCH, offset=0x05),)
    assert runs[3].sources == (ControlFlowSource(SourceKind.BRANCH, offset=0x0F),)
    assert [instr.name for instr in runs[3].instructions] == ["stloc.0", "ret"]


def test_runs_cover_every_instruction_once() -> None:
    instructions = decode_method(BRANCH_BODY)
    runs = build_runs(instructions, len(BRANCH_BODY))

    flattened = [instr for run in runs for instr in run.instructions]
    assert flattened == instructions
    for current, following in zip(runs, runs[1:]):
        assert current.end == following.start
    assert runs[-1].end == len(BRANCH_BODY)


def test_run_building_is_idempotent() -> None:
    instructions = decode_method(BRANCH_BODY)
    builder = RunBuilder()

    assert builder.build(instructions, len(BRANCH_BODY)) == builder.build(
        instructions, len(BRANCH_BODY)
    )


def test_clause_boundaries_start_runs() -> None:
    runs = _runs(FINALLY_BODY, [FINALLY_CLAUSE])

    assert [run.start for run in runs] == [0, 4, 7]
    assert [source.describe() for source in runs[0].sources] == [
        "method entry",
        "try_begin exception block #0",
    ]
    assert [source.describe() for source in runs[1].sources] == [
        "handler_begin exception block #0"
    ]
    assert [source.describe() for source in runs[2].sources] == ["branch IL_0002"]


def test_filter_begin_uses_filter_offset() -> None:
    il = bytes.fromhex("00 00 00 00 00 00 2A")
    clause = ExceptionClause(ClauseKind.FILTER, 0, 2, 4, 2, filter_offset=2)

    runs = _runs(il, [clause])

    assert [run.start for run in runs] == [0, 2, 4]
    assert runs[1].entered_from(SourceKind.FILTER_BEGIN)
    assert runs[2].entered_from(SourceKind.HANDLER_BEGIN)


def test_switch_targets_and_fallthrough_start_runs() -> None:
    il = (
        b"\x02"
        + b"\x45" + _i4(2) + _i4(2) + _i4(4)
        + bytes.fromhex("16 2A 17 2A 18 2A")
    )

    runs = _runs(il)

    assert [run.start for run in runs] == [0x00, 0x0E, 0x10, 0x12]
    assert runs[1].entered_from(SourceKind.CONDITIONAL_FALLTHROUGH)
    assert runs[2].entered_from(SourceKind.BRANCH)


def test_backward_branch_target_keeps_sources_sorted() -> None:
    # a single run reached by the method entry and a loop branch
    il = bytes.fromhex("00 2B FD 2A")

    runs = _runs(il)

    assert runs[0].sources == (
        ControlFlowSource(SourceKind.METHOD_ENTRY),
        ControlFlowSource(SourceKind.BRANCH, offset=1),
    )


def test_branch_into_operand_raises() -> None:
    il = b"\x38" + _i4(1) + b"\x20" + _i4(0) + b"\x2A"

    with pytest.raises(BranchTargetError, match="IL_0006") as excinfo:
        _runs(il)

    assert excinfo.value.offset == 0


def test_clause_inside_instruction_raises() -> None:
    il = b"\x20" + _i4(0) + b"\x2A"
    clause = ExceptionClause(ClauseKind.CATCH, 1, 2, 5, 1)

    with pytest.raises(BranchTargetError):
        _runs(il, [clause])


def test_short_length_raises_boundary_error() -> None:
    instructions = decode_method(bytes.fromhex("00 2A"))

    with pytest.raises(RunBoundaryError):
        build_runs(instructions, 5)


def test_empty_body_has_no_runs() -> None:
    assert build_runs([], 0) == []


def test_run_text() -> None:
    runs = _runs(bytes.fromhex("17 2A"))

    assert runs[0].to_text().splitlines() == [
        "IL_0000:",
        "\t// from method entry",
        " ldc.i4.1\t// next InlineNone",
        " ret\t// return InlineNone",
    ]
