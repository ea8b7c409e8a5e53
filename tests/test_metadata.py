import json
from pathlib import Path

import pytest

from ilflow.errors import UnresolvedTokenError
from ilflow.metadata import MetadataCatalog, MethodSignature


def _write_catalog(base: Path, payload) -> Path:
    path = base / "metadata.json"
    path.write_text(json.dumps(payload, indent=2), "utf-8")
    return path


def test_catalog_loads_names_and_methods(tmp_path: Path) -> None:
    path = _write_catalog(
        tmp_path,
        {
            "0x0A000001": {
                "name": "WriteLine",
                "parameters": ["string"],
                "static": True,
                "returns_void": True,
            },
            "0x0A000002": {"name": ".ctor", "parameters": 2, "constructor": True},
            "0x0A000003": {"name": "get_Length", "parameters": 0},
            "1879048193": "hello",
            "0x04000001": {"name": "field"},
        },
    )

    catalog = MetadataCatalog.load(path)

    assert len(catalog) == 5
    assert 0x70000001 in catalog
    assert catalog.resolve_name(0x70000001) == "hello"
    assert catalog.resolve_name(0x04000001) == "field"

    write_line = catalog.resolve_method(0x0A000001)
    assert (write_line.pop_count, write_line.push_count) == (1, 0)
    ctor = catalog.resolve_method(0x0A000002)
    assert (ctor.pop_count, ctor.push_count) == (2, 0)
    getter = catalog.resolve_method(0x0A000003)
    assert getter.has_this
    assert (getter.pop_count, getter.push_count) == (1, 1)


def test_missing_catalog_is_empty(tmp_path: Path) -> None:
    catalog = MetadataCatalog.load(tmp_path / "absent.json")

    assert len(catalog) == 0
    assert catalog.resolve_name(0x0A000001) == "token_0A000001"


def test_unknown_method_raises() -> None:
    catalog = MetadataCatalog({0x0A000001: "Name only"})

    with pytest.raises(UnresolvedTokenError, match="0x0A000001") as excinfo:
        catalog.resolve_method(0x0A000001)

    assert excinfo.value.token == 0x0A000001


@pytest.mark.parametrize(
    "payload, message",
    [
        ([], "JSON object"),
        ({"not-a-token": "x"}, "invalid metadata token"),
        ({"0x0A000001": 5}, "string or an object"),
        ({"0x0A000001": {"name": "M", "parameters": -1}}, "invalid parameter count"),
        ({"0x0A000001": {"name": "M", "parameters": True}}, "invalid parameter count"),
        ({"0x0A000001": {"name": "M", "static": "false"}}, "'static' must be a boolean"),
        ({"0x0A000001": {"name": "M", "returns_void": 0}}, "'returns_void' must be a boolean"),
    ],
)
def test_invalid_catalogs(tmp_path: Path, payload, message: str) -> None:
    path = _write_catalog(tmp_path, payload)

    with pytest.raises(ValueError, match=message):
        MetadataCatalog.load(path)


def test_add_method_registers_name() -> None:
    catalog = MetadataCatalog()
    catalog.add_method(0x0A000009, MethodSignature("Run", 0, is_static=True))
    catalog.add_name(0x70000002, "text")

    assert catalog.resolve_name(0x0A000009) == "Run"
    assert catalog.resolve_name(0x70000002) == "text"
    assert catalog.resolve_method(0x0A000009).pop_count == 0
