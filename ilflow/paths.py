"""Enumerate entry-to-return paths through the run graph.

The search is a FIFO worklist carrying the run-start offsets visited so far.
Loops are unrolled a bounded number of times: a continuation into a run is
only queued while that run occurs at most ``max_revisits`` times in the path
accumulated so far.

Exception handling is modelled partially.  Leaving a finally-protected region
with a branch inserts the first matching finally handler into the path;
nested finally regions, filters and exceptional edges are not followed, and a
path ending in ``throw``/``rethrow`` is discarded.  A run ending in ``jmp``
transfers control to another method and completes its path like ``ret``.
"""

from __future__ import annotations

import logging
from collections import deque
from typing import Deque, Dict, Iterable, List, Optional, Sequence, Tuple

from .clauses import ExceptionClause, finally_clauses_exited_by
from .errors import RunBoundaryError
from .instruction import format_offset
from .opcodes import FlowControl
from .runs import InstructionRun, SourceKind, index_runs


logger = logging.getLogger(__name__)

PATH_SEPARATOR = "=>"
DEFAULT_MAX_REVISITS = 2

# Call-class opcodes that leave the method instead of falling through.
_METHOD_EXITS = frozenset({"jmp"})

Path = Tuple[int, ...]


def path_key(path: Iterable[int]) -> str:
    """Canonical textual identifier for a path, e.g. ``IL_0000=>IL_0007``."""

    return PATH_SEPARATOR.join(format_offset(offset) for offset in path)


class PathEnumerator:
    """Collect every distinct bounded path that reaches a return."""

    def __init__(self, *, max_revisits: int = DEFAULT_MAX_REVISITS) -> None:
        if max_revisits < 0:
            raise ValueError("max_revisits must be non-negative")
        self.max_revisits = max_revisits

    def enumerate(
        self,
        runs: Sequence[InstructionRun],
        clauses: Sequence[ExceptionClause] = (),
    ) -> Dict[str, Path]:
        if not runs:
            return {}

        run_map = index_runs(runs)
        entry = self._entry_run(runs)
        queue: Deque[Tuple[InstructionRun, Path]] = deque([(entry, ())])
        paths: Dict[str, Path] = {}
        dropped = 0

        while queue:
            current, prefix = queue.popleft()
            path: List[int] = list(prefix)
            path.append(current.start)
            last = current.last
            flow = last.opcode.flow_control

            if flow is FlowControl.BRANCH:
                target = last.branch_target
                exited = finally_clauses_exited_by(clauses, last.offset, target)
                if exited:
                    path.append(exited[0].handler_offset)
                successors = [target]
            elif flow is FlowControl.COND_BRANCH:
                successors = list(dict.fromkeys(last.branch_targets))
                successors.append(last.next_offset)
            elif flow is FlowControl.RETURN or last.name in _METHOD_EXITS:
                key = path_key(path)
                if key not in paths:
                    paths[key] = tuple(path)
                continue
            elif flow is FlowControl.THROW:
                continue
            else:
                successors = [last.next_offset]

            frozen = tuple(path)
            for target in successors:
                run = run_map.get(target)
                if run is None:
                    raise RunBoundaryError(
                        f"no run starts at {format_offset(target)}", last.il, last.offset
                    )
                if frozen.count(run.start) <= self.max_revisits:
                    queue.append((run, frozen))
                else:
                    dropped += 1

        logger.debug(
            "enumerated %d path(s); %d loop continuation(s) cut at the revisit bound",
            len(paths),
            dropped,
        )
        return paths

    @staticmethod
    def _entry_run(runs: Sequence[InstructionRun]) -> InstructionRun:
        entry: Optional[InstructionRun] = None
        for run in runs:
            if run.entered_from(SourceKind.METHOD_ENTRY):
                entry = run
                break
        if entry is None:
            raise ValueError("no run carries the method entry edge")
        return entry


def enumerate_paths(
    runs: Sequence[InstructionRun],
    clauses: Sequence[ExceptionClause] = (),
    *,
    max_revisits: int = DEFAULT_MAX_REVISITS,
) -> Dict[str, Path]:
    return PathEnumerator(max_revisits=max_revisits).enumerate(runs, clauses)


__all__ = [
    "PATH_SEPARATOR",
    "DEFAULT_MAX_REVISITS",
    "path_key",
    "PathEnumerator",
    "enumerate_paths",
]
