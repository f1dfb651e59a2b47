"""Step 1: Fetch from paper-search providers through one shared rate limiter."""

from __future__ import annotations

import httpx

from ..settings import FeedSettings
from .base import PaperSource, cap_tags, format_authors, truncate
from .openalex import OpenAlexSource, reconstruct_abstract
from .rate_limiter import RateLimiter
from .semantic_scholar import SemanticScholarSource
from .topics import FIELD_QUERIES, TOPIC_CATALOG, field_query, pick_topics

__all__ = [
    "PaperSource",
    "OpenAlexSource",
    "SemanticScholarSource",
    "RateLimiter",
    "build_sources",
    "reconstruct_abstract",
    "format_authors",
    "truncate",
    "cap_tags",
    "FIELD_QUERIES",
    "TOPIC_CATALOG",
    "field_query",
    "pick_topics",
]


def build_sources(
    settings: FeedSettings,
    client: httpx.AsyncClient | None = None,
) -> tuple[OpenAlexSource, SemanticScholarSource]:
    """Create both adapters from settings (source A, source B)."""
    return (
        OpenAlexSource(settings.openalex, client=client),
        SemanticScholarSource(settings.semantic_scholar, client=client),
    )
