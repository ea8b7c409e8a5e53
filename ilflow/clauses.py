"""Exception-handling clauses attached to a method body."""

from __future__ import annotations

import json
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, List, Mapping, Optional, Sequence


class ClauseKind(Enum):
    CATCH = "catch"
    FILTER = "filter"
    FINALLY = "finally"
    FAULT = "fault"


@dataclass(frozen=True)
class ExceptionClause:
    """A protected ``try`` region and the handler guarding it."""

    kind: ClauseKind
    try_offset: int
    try_length: int
    handler_offset: int
    handler_length: int
    filter_offset: Optional[int] = None

    def __post_init__(self) -> None:
        if self.try_offset < 0 or self.handler_offset < 0:
            raise ValueError("exception clause offsets must be non-negative")
        if self.try_length <= 0 or self.handler_length <= 0:
            raise ValueError("exception clause regions must have a positive length")
        if self.kind is ClauseKind.FILTER and self.filter_offset is None:
            raise ValueError("filter clauses require a filter offset")

    @property
    def try_end(self) -> int:
        return self.try_offset + self.try_length

    @property
    def handler_end(self) -> int:
        return self.handler_offset + self.handler_length

    def protects(self, offset: int) -> bool:
        """Return :data:`True` if ``offset`` lies inside the ``try`` region."""

        return self.try_offset <= offset < self.try_end

    def describe(self) -> str:
        text = (
            f"{self.kind.value} try=[IL_{self.try_offset:04X}, IL_{self.try_end:04X}) "
            f"handler=[IL_{self.handler_offset:04X}, IL_{self.handler_end:04X})"
        )
        if self.filter_offset is not None:
            text += f" filter=IL_{self.filter_offset:04X}"
        return text

    @classmethod
    def from_json(cls, entry: Mapping[str, Any]) -> "ExceptionClause":
        raw_kind = str(entry.get("kind", "")).lower()
        try:
            kind = ClauseKind(raw_kind)
        except ValueError:
            raise ValueError(f"unknown exception clause kind {raw_kind!r}") from None

        filter_offset = entry.get("filter_offset")
        return cls(
            kind=kind,
            try_offset=_as_offset(entry, "try_offset"),
            try_length=_as_offset(entry, "try_length"),
            handler_offset=_as_offset(entry, "handler_offset"),
            handler_length=_as_offset(entry, "handler_length"),
            filter_offset=None if filter_offset is None else _parse_int(filter_offset, "filter_offset"),
        )


def _parse_int(value: Any, name: str) -> int:
    if isinstance(value, bool):
        raise ValueError(f"{name} must be an integer")
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return int(value, 0)
        except ValueError:
            pass
    raise ValueError(f"{name} must be an integer")


def _as_offset(entry: Mapping[str, Any], name: str) -> int:
    if name not in entry:
        raise ValueError(f"exception clause is missing {name}")
    return _parse_int(entry[name], name)


def load_clauses(path: Path) -> List[ExceptionClause]:
    """Read a JSON list of clauses; a missing file means no clauses."""

    if not path.exists():
        return []
    data = json.loads(path.read_text("utf-8"))
    if not isinstance(data, list):
        raise ValueError("exception clause file must contain a JSON list")
    clauses: List[ExceptionClause] = []
    for entry in data:
        if not isinstance(entry, Mapping):
            raise ValueError("exception clause entries must be JSON objects")
        clauses.append(ExceptionClause.from_json(entry))
    return clauses


def finally_clauses_exited_by(
    clauses: Sequence[ExceptionClause], source: int, target: int
) -> List[ExceptionClause]:
    """Finally clauses whose ``try`` region contains ``source`` but not ``target``."""

    return [
        clause
        for clause in clauses
        if clause.kind is ClauseKind.FINALLY
        and clause.protects(source)
        and not clause.protects(target)
    ]


__all__ = [
    "ClauseKind",
    "ExceptionClause",
    "load_clauses",
    "finally_clauses_exited_by",
]
