"""Exception taxonomy shared by the engine, cache and CLI layers."""

from __future__ import annotations


class NewsgateError(Exception):
    """Base class for all newsgate errors."""


class ConfigError(NewsgateError):
    """Configuration could not be loaded or validated."""


class FetchError(NewsgateError):
    """A page request failed at the transport level or with an error status."""

    def __init__(self, url: str, reason: str, status_code: int | None = None) -> None:
        super().__init__(f"{url}: {reason}")
        self.url = url
        self.reason = reason
        self.status_code = status_code


class ExtractionFailure(NewsgateError):
    """An extractor raised or reported an error for one provider."""

    def __init__(self, provider: str, reason: str) -> None:
        super().__init__(f"{provider}: {reason}")
        self.provider = provider
        self.reason = reason


class ExtractionTimeout(NewsgateError):
    """A provider did not settle before its deadline."""

    def __init__(self, provider: str, deadline: float) -> None:
        super().__init__(f"{provider}: no result within {deadline:.2f}s")
        self.provider = provider
        self.deadline = deadline


class TotalProviderFailure(NewsgateError):
    """A provider never produced a live result and failed again."""

    def __init__(self, provider: str) -> None:
        super().__init__(f"{provider}: no live result has ever been obtained")
        self.provider = provider


class RefreshCycleError(NewsgateError):
    """Unexpected fault inside the refresh coordinator itself."""


class BoundaryError(NewsgateError):
    """The cache cannot be read; the only error surfaced to readers."""


__all__ = [
    "BoundaryError",
    "ConfigError",
    "ExtractionFailure",
    "ExtractionTimeout",
    "FetchError",
    "NewsgateError",
    "RefreshCycleError",
    "TotalProviderFailure",
]
