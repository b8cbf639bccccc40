"""Static last-resort records used when a provider never produced live data."""

from __future__ import annotations

from types import MappingProxyType
from typing import Any, Iterable, Mapping

from ..config import normalise_provider_id
from .dedup import Deduplicator
from .records import Record


class FallbackStore:
    """Immutable provider -> records lookup, loaded once at startup."""

    def __init__(self, entries: Mapping[str, Iterable[Record]] | None = None) -> None:
        deduplicator = Deduplicator()
        frozen: dict[str, tuple[Record, ...]] = {}
        for provider, records in (entries or {}).items():
            frozen[normalise_provider_id(provider)] = deduplicator.dedupe(records)
        self._entries = MappingProxyType(frozen)

    @classmethod
    def from_payload(cls, payload: Mapping[str, Iterable[Mapping[str, Any]]]) -> "FallbackStore":
        entries = {
            provider: [Record.from_mapping(provider, item) for item in items]
            for provider, items in payload.items()
        }
        return cls(entries)

    def get(self, provider: str) -> tuple[Record, ...]:
        return self._entries.get(normalise_provider_id(provider), ())

    def providers(self) -> list[str]:
        return list(self._entries)

    def __contains__(self, provider: object) -> bool:
        return provider in self._entries

    def __len__(self) -> int:
        return len(self._entries)


__all__ = ["FallbackStore"]
