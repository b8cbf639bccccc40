"""Record and provider result types exchanged between engine components."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Mapping, Protocol, runtime_checkable


@dataclass(frozen=True, slots=True)
class Record:
    """One candidate article produced by a provider."""

    provider: str
    title: str
    url: str
    published_at: datetime | None = None
    summary: str | None = None

    @property
    def key(self) -> tuple[str, str]:
        """Identity of the record: same provider and same URL means same article."""

        return self.provider, self.url

    def to_dict(self) -> dict[str, Any]:
        return {
            "provider": self.provider,
            "title": self.title,
            "url": self.url,
            "published_at": self.published_at.isoformat() if self.published_at else None,
            "summary": self.summary,
        }

    @classmethod
    def from_mapping(cls, provider: str, payload: Mapping[str, Any]) -> "Record":
        published = payload.get("published_at")
        if isinstance(published, str) and published:
            text = published[:-1] + "+00:00" if published.endswith("Z") else published
            published = datetime.fromisoformat(text)
        if isinstance(published, datetime) and published.tzinfo is None:
            published = published.replace(tzinfo=timezone.utc)
        if not isinstance(published, datetime):
            published = None
        summary = payload.get("summary")
        return cls(
            provider=provider,
            title=str(payload["title"]),
            url=str(payload["url"]),
            published_at=published,
            summary=str(summary) if summary else None,
        )


class ProviderStatus(str, Enum):
    """Outcome of one refresh attempt for one provider."""

    OK = "ok"
    TIMED_OUT = "timed_out"
    FAILED = "failed"


@dataclass(slots=True)
class ProviderResult:
    """Records (possibly none) and status of a single provider attempt."""

    provider: str
    records: tuple[Record, ...] = field(default_factory=tuple)
    status: ProviderStatus = ProviderStatus.OK
    error: str | None = None

    @property
    def usable(self) -> bool:
        return self.status is ProviderStatus.OK and bool(self.records)

    @classmethod
    def ok(cls, provider: str, records: Any) -> "ProviderResult":
        return cls(provider=provider, records=tuple(records), status=ProviderStatus.OK)

    @classmethod
    def failed(cls, provider: str, error: str) -> "ProviderResult":
        return cls(provider=provider, status=ProviderStatus.FAILED, error=error)

    @classmethod
    def timed_out(cls, provider: str, deadline: float) -> "ProviderResult":
        return cls(
            provider=provider,
            status=ProviderStatus.TIMED_OUT,
            error=f"deadline of {deadline:.2f}s exceeded",
        )


@runtime_checkable
class Extractor(Protocol):
    """Capability that turns one provider's current content into records.

    ``deadline_hint`` is the number of seconds the caller is willing to wait.
    Implementations should pass it down to their network calls; the caller
    cancels the coroutine once the deadline elapses.
    """

    async def fetch(self, deadline_hint: float) -> ProviderResult:
        ...


__all__ = ["Extractor", "ProviderResult", "ProviderStatus", "Record"]
