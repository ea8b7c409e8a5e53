"""Producer/consumer edges recovered by stack simulation."""

from __future__ import annotations

from typing import Dict, Iterator, List, Mapping, Sequence, Tuple


class DataFlowMap(Mapping[int, Sequence[Tuple[int, int]]]):
    """Append-only multimap ``consumer -> [(position, producer), ...]``.

    Position 0 is the value popped first, i.e. the one on top of the stack.
    The same slot may collect several producers when different paths compute
    it differently; identical edges are stored once.
    """

    def __init__(self) -> None:
        self._sources: Dict[int, List[Tuple[int, int]]] = {}

    def record(self, consumer: int, position: int, producer: int) -> bool:
        """Store an edge and return :data:`True` if it was new."""

        bucket = self._sources.setdefault(consumer, [])
        pair = (position, producer)
        if pair in bucket:
            return False
        bucket.append(pair)
        return True

    def merge(self, other: "DataFlowMap") -> None:
        """Fold another map in, keeping edges this one already holds."""

        for consumer, pairs in other._sources.items():
            for position, producer in pairs:
                self.record(consumer, position, producer)

    def positions(self, consumer: int) -> List[int]:
        return sorted({position for position, _ in self._sources.get(consumer, ())})

    def producers(self, consumer: int, position: int) -> List[int]:
        """Distinct producers of one slot, ordered by offset."""

        return sorted(
            {producer for pos, producer in self._sources.get(consumer, ()) if pos == position}
        )

    def is_consumed(self, producer: int) -> bool:
        return any(
            source == producer for pairs in self._sources.values() for _, source in pairs
        )

    def __getitem__(self, consumer: int) -> Sequence[Tuple[int, int]]:
        return tuple(self._sources[consumer])

    def __iter__(self) -> Iterator[int]:
        return iter(self._sources)

    def __len__(self) -> int:
        return len(self._sources)

    def __repr__(self) -> str:  # pragma: no cover - debugging helper
        return f"DataFlowMap({self._sources!r})"


__all__ = ["DataFlowMap"]
