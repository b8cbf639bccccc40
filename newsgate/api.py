"""Wire payloads returned to HTTP handlers and the CLI."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Iterable

from pydantic import BaseModel

from .cache import CacheSnapshot
from .config import ProviderConfig


class RecordPayload(BaseModel):
    provider: str
    title: str
    url: str
    published_at: str | None = None
    summary: str | None = None


class NewsPayload(BaseModel):
    data: list[RecordPayload]
    last_updated: str
    source: str


class SourcePayload(BaseModel):
    id: str
    name: str


class SourcesPayload(BaseModel):
    sources: list[SourcePayload]


class ErrorPayload(BaseModel):
    error: str = "Failed to fetch news"
    message: str


def build_news_payload(snapshot: CacheSnapshot) -> dict[str, Any]:
    """Shape a cache snapshot as ``{"data", "last_updated", "source"}``.

    ``last_updated`` falls back to the current time when the cache has never
    been refreshed.
    """

    last = snapshot.last_refreshed_at or datetime.now(timezone.utc)
    payload = NewsPayload(
        data=[RecordPayload(**record.to_dict()) for record in snapshot.records],
        last_updated=last.isoformat(),
        source=snapshot.source,
    )
    return payload.model_dump()


def build_sources_payload(providers: Iterable[ProviderConfig]) -> dict[str, Any]:
    payload = SourcesPayload(
        sources=[
            SourcePayload(id=provider.provider_id.lower(), name=provider.display_name)
            for provider in providers
        ]
    )
    return payload.model_dump()


def build_error_payload(exc: BaseException) -> dict[str, Any]:
    return ErrorPayload(message=str(exc) or type(exc).__name__).model_dump()


__all__ = [
    "ErrorPayload",
    "NewsPayload",
    "RecordPayload",
    "SourcePayload",
    "SourcesPayload",
    "build_error_payload",
    "build_news_payload",
    "build_sources_payload",
]
