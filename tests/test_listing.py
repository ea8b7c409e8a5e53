from pathlib import Path

from ilflow import analyze_method
from ilflow.clauses import ClauseKind, ExceptionClause
from ilflow.listing import ListingRenderer, render_listing
from ilflow.metadata import MetadataCatalog, MethodSignature


def _i4(value: int) -> bytes:
    return value.to_bytes(4, "little", signed=True)


BRANCH_BODY = b"".join(
    [
        b"\x20" + _i4(0),
        b"\x3A" + _i4(10),
        b"\x20" + _i4(1),
        b"\x38" + _i4(5),
        b"\x20" + _i4(2),
        b"\x0A",
        b"\x2A",
    ]
)


def test_render_paths() -> None:
    analysis = analyze_method(BRANCH_BODY)

    assert ListingRenderer().render_paths(analysis.paths) == [
        "2 path(s) found",
        "IL_0000=>IL_0014=>IL_0019",
        "IL_0000=>IL_000A=>IL_0019",
    ]


def test_render_data_flow() -> None:
    analysis = analyze_method(BRANCH_BODY)

    lines = ListingRenderer().render_data_flow(analysis.runs, analysis.data_flow)

    start = lines.index("IL_0019: stloc.0")
    assert lines[start : start + 5] == [
        "IL_0019: stloc.0",
        "// pop #0",
        "// using result of IL_000A",
        "// using result of IL_0014",
        "IL_001A: ret",
    ]


def test_render_statements_for_branches() -> None:
    analysis = analyze_method(BRANCH_BODY)

    assert ListingRenderer().render_statements(analysis) == [
        "IL_0000:",
        "  brtrue(ldc.i4 0) goto IL_0014",
        "IL_000A:",
        "  goto IL_0019",
        "IL_0014:",
        "IL_0019:",
        "  local_0 = ldc.i4 1 or ldc.i4 2",
    ]


def test_render_statements_for_calls_and_switches() -> None:
    catalog = MetadataCatalog()
    catalog.add_method(
        0x0A000001, MethodSignature("Print", 1, is_static=True, returns_void=True)
    )
    catalog.add_method(0x0A000002, MethodSignature("Compute", 0, is_static=True))
    il = (
        b"\x02"
        + b"\x45" + _i4(1) + _i4(7)
        + b"\x28" + (0x0A000002).to_bytes(4, "little")
        + b"\x26"
        + b"\x2A"
        + b"\x17"
        + b"\x28" + (0x0A000001).to_bytes(4, "little")
        + b"\x2A"
    )

    analysis = analyze_method(il, resolver=catalog)
    lines = ListingRenderer(catalog).render_statements(analysis)

    assert lines == [
        "IL_0000:",
        "  switch(ldarg.0) IL_0011",
        "IL_000A:",
        "IL_0011:",
        "  call Print(ldc.i4.1)",
    ]


def test_render_statements_with_finally() -> None:
    clause = ExceptionClause(ClauseKind.FINALLY, 0, 4, 4, 3)
    analysis = analyze_method(bytes.fromhex("17 0A DE 03 18 0B DC 2A"), [clause])

    lines = ListingRenderer().render_statements(analysis)

    assert lines == [
        "IL_0000:",
        "  local_0 = ldc.i4.1",
        "  goto IL_0007",
        "IL_0004:",
        "  local_1 = ldc.i4.2",
        "IL_0007:",
    ]


def test_render_and_write(tmp_path: Path) -> None:
    analysis = analyze_method(bytes.fromhex("17 2A"))
    output_path = tmp_path / "listing.txt"

    ListingRenderer().write(analysis, output_path)
    text = output_path.read_text("utf-8")

    assert text == render_listing(analysis)
    assert text.splitlines() == [
        "; instructions",
        "IL_0000: ldc.i4.1",
        "IL_0001: ret",
        "",
        "; runs",
        "IL_0000:",
        "\t// from method entry",
        " ldc.i4.1\t// next InlineNone",
        " ret\t// return InlineNone",
        "",
        "; paths",
        "1 path(s) found",
        "IL_0000",
        "",
        "; data flow",
        "IL_0000: ldc.i4.1",
        "IL_0001: ret",
        "// pop #0",
        "// using result of IL_0000",
        "",
        "; statements",
        "IL_0000:",
    ]


def test_store_in_unreached_catch_handler_is_unknown() -> None:
    clause = ExceptionClause(ClauseKind.CATCH, 0, 4, 4, 4)
    analysis = analyze_method(bytes.fromhex("17 0A DE 04 18 0B DE 00 2A"), [clause])

    assert ListingRenderer().render_statements(analysis) == [
        "IL_0000:",
        "  local_0 = ldc.i4.1",
        "  goto IL_0008",
        "IL_0004:",
        "  local_1 = /* unknown */",
        "  goto IL_0008",
        "IL_0008:",
    ]


def test_condition_in_unreached_catch_handler_is_unknown() -> None:
    clause = ExceptionClause(ClauseKind.CATCH, 0, 4, 4, 5)
    analysis = analyze_method(bytes.fromhex("17 0A DE 05 02 2D 00 DE 00 2A"), [clause])

    assert ListingRenderer().render_statements(analysis) == [
        "IL_0000:",
        "  local_0 = ldc.i4.1",
        "  goto IL_0009",
        "IL_0004:",
        "  brtrue.s(/* unknown */) goto IL_0007",
        "IL_0007:",
        "  goto IL_0009",
        "IL_0009:",
    ]
