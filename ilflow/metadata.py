"""Metadata token resolution used by the simulator and the renderers.

Loading an assembly is outside the scope of this package.  Callers plug in any
object implementing :class:`MetadataResolver`; :class:`MetadataCatalog` is a
small JSON-backed implementation that is good enough for fixtures, tests and
the command-line tool.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Protocol

from .errors import UnresolvedTokenError


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MethodSignature:
    """Shape of a call target as far as the evaluation stack is concerned."""

    name: str
    parameter_count: int
    is_static: bool = False
    is_constructor: bool = False
    returns_void: bool = False

    @property
    def has_this(self) -> bool:
        return not self.is_static and not self.is_constructor

    @property
    def pop_count(self) -> int:
        return self.parameter_count + (1 if self.has_this else 0)

    @property
    def push_count(self) -> int:
        return 0 if self.returns_void else 1

    @classmethod
    def from_json(cls, name: str, entry: Mapping[str, Any]) -> "MethodSignature":
        parameters = entry.get("parameters", 0)
        if isinstance(parameters, list):
            parameters = len(parameters)
        if isinstance(parameters, bool) or not isinstance(parameters, int) or parameters < 0:
            raise ValueError(f"method {name!r} has an invalid parameter count")
        is_constructor = _parse_flag(entry, "constructor", name, False)
        return cls(
            name=name,
            parameter_count=parameters,
            is_static=_parse_flag(entry, "static", name, False),
            is_constructor=is_constructor,
            returns_void=_parse_flag(entry, "returns_void", name, is_constructor),
        )


def _parse_flag(entry: Mapping[str, Any], key: str, name: str, default: bool) -> bool:
    value = entry.get(key, default)
    if not isinstance(value, bool):
        raise ValueError(f"method {name!r} flag {key!r} must be a boolean")
    return value


class MetadataResolver(Protocol):
    """Narrow capability interface over an assembly's metadata tables."""

    def resolve_name(self, token: int) -> str:
        ...

    def resolve_method(self, token: int) -> MethodSignature:
        ...


def default_token_name(token: int) -> str:
    return f"token_{token:08X}"


class MetadataCatalog:
    """Resolve metadata tokens from an in-memory table.

    The JSON representation is an object keyed by token.  Keys may be written
    in hexadecimal (``"0x0A000001"``) or decimal.  Every entry carries a
    ``name``; method entries additionally describe their stack shape::

        {
          "0x0A000001": {"name": "WriteLine", "parameters": 1,
                         "static": true, "returns_void": true},
          "0x70000001": {"name": "hello"}
        }

    A ``parameters`` field (count or list) marks the entry as a method.
    """

    def __init__(
        self,
        names: Optional[Mapping[int, str]] = None,
        *,
        methods: Optional[Mapping[int, MethodSignature]] = None,
        path: Optional[Path] = None,
    ) -> None:
        self._names: Dict[int, str] = dict(names or {})
        self._methods: Dict[int, MethodSignature] = dict(methods or {})
        for token, signature in self._methods.items():
            self._names.setdefault(token, signature.name)
        self.path = path

    @classmethod
    def load(cls, path: Path) -> "MetadataCatalog":
        """Load a catalog from ``path``; a missing file yields an empty catalog."""

        if not path.exists():
            return cls(path=path)

        data = json.loads(path.read_text("utf-8"))
        if not isinstance(data, dict):
            raise ValueError("metadata catalog must contain a JSON object")

        names: Dict[int, str] = {}
        methods: Dict[int, MethodSignature] = {}
        for key, entry in data.items():
            token = _parse_token(key)
            if isinstance(entry, str):
                names[token] = entry
                continue
            if not isinstance(entry, Mapping):
                raise ValueError(f"metadata entry {key} must be a string or an object")
            name = str(entry.get("name") or default_token_name(token))
            names[token] = name
            if "parameters" in entry:
                methods[token] = MethodSignature.from_json(name, entry)
        return cls(names, methods=methods, path=path)

    def add_name(self, token: int, name: str) -> None:
        self._names[token] = name

    def add_method(self, token: int, signature: MethodSignature) -> None:
        self._methods[token] = signature
        self._names[token] = signature.name

    def resolve_name(self, token: int) -> str:
        name = self._names.get(token)
        if name is None:
            logger.warning("no display name for token 0x%08X", token)
            return default_token_name(token)
        return name

    def resolve_method(self, token: int) -> MethodSignature:
        signature = self._methods.get(token)
        if signature is None:
            raise UnresolvedTokenError(token)
        return signature

    def __len__(self) -> int:
        return len(self._names)

    def __contains__(self, token: object) -> bool:
        return token in self._names


def _parse_token(key: str) -> int:
    try:
        return int(str(key), 0)
    except ValueError:
        raise ValueError(f"invalid metadata token {key!r}") from None


__all__ = [
    "MethodSignature",
    "MetadataResolver",
    "MetadataCatalog",
    "default_token_name",
]
