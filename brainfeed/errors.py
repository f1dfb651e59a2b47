"""Error types raised by source adapters and the feed aggregator."""

from __future__ import annotations


class FeedError(Exception):
    """Base class for BrainFeed errors."""


class ProviderError(FeedError):
    """A provider returned something we cannot use (bad JSON, wrong shape)."""

    def __init__(self, source: str, message: str):
        self.source = source
        super().__init__(f"[{source}] {message}")


class NetworkError(ProviderError):
    """Transport failure or non-2xx status from a provider."""

    def __init__(self, source: str, message: str, status_code: int | None = None):
        self.status_code = status_code
        super().__init__(source, message)


class RateLimitExhaustion(NetworkError):
    """Provider answered 429.

    The shared rate limiter only paces requests; it never raises this itself.
    """


class PartialSourceFailure(FeedError):
    """One source call failed while merging; the others carry on."""

    def __init__(self, source: str, query: str, cause: Exception):
        self.source = source
        self.query = query
        self.cause = cause
        super().__init__(f"{source} failed for {query!r}: {cause}")


class AggregationError(FeedError):
    """Every source call of an operation failed."""

    def __init__(self, failures: list[PartialSourceFailure]):
        self.failures = failures
        detail = "; ".join(str(f.cause) for f in failures) or "no sources"
        super().__init__(f"All sources failed: {detail}")
