"""Per-provider deduplication keyed on (provider, url)."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from .records import Record


@dataclass
class DeduplicationResult:
    records: tuple[Record, ...]
    dropped: int

    @property
    def had_duplicates(self) -> bool:
        return self.dropped > 0


class Deduplicator:
    """Drop repeated records while keeping first-seen order.

    Only records sharing both provider and URL collapse; the same story from
    two providers stays as two records.
    """

    def check(self, records: Iterable[Record]) -> DeduplicationResult:
        seen: set[tuple[str, str]] = set()
        kept: list[Record] = []
        dropped = 0
        for record in records:
            if record.key in seen:
                dropped += 1
                continue
            seen.add(record.key)
            kept.append(record)
        return DeduplicationResult(tuple(kept), dropped)

    def dedupe(self, records: Iterable[Record]) -> tuple[Record, ...]:
        return self.check(records).records


__all__ = ["DeduplicationResult", "Deduplicator"]
