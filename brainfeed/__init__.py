"""BrainFeed - multi-source research feed aggregation."""

from .aggregator import FeedAggregator, build_aggregator
from .errors import (
    AggregationError,
    FeedError,
    NetworkError,
    PartialSourceFailure,
    ProviderError,
    RateLimitExhaustion,
)
from .models import FeedPost, FeedState, SearchResult, SourceType
from .settings import FeedSettings, get_settings, load_settings

__all__ = [
    "FeedAggregator",
    "build_aggregator",
    "FeedPost",
    "FeedState",
    "SearchResult",
    "SourceType",
    "FeedSettings",
    "get_settings",
    "load_settings",
    "FeedError",
    "ProviderError",
    "NetworkError",
    "RateLimitExhaustion",
    "PartialSourceFailure",
    "AggregationError",
]
