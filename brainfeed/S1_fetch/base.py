"""Common behaviour for paper-search source adapters.

Each adapter talks to one provider, either directly (public API, raw
response shape) or through a format-normalizing proxy that answers
``{"papers": [...], "total": N}``. Adapters never pace or retry requests:
callers schedule every call through the shared RateLimiter.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any

import httpx

from ..core import current_year, make_post_id, parse_year, thumbnail_for
from ..errors import NetworkError, ProviderError, RateLimitExhaustion
from ..models import ID_PREFIXES, FeedPost, SearchResult, SourceType
from ..settings import SourceSettings
from .topics import field_query

logger = logging.getLogger(__name__)

USER_AGENT = "BrainFeed/1.0 (educational-platform)"
MAX_DESCRIPTION = 300
MAX_AUTHORS = 3
MAX_TAGS = 5
DEFAULT_TAGS = ["Research", "Academic"]
NO_ABSTRACT = "No abstract available"


def format_authors(names: list[str], venue: str = "") -> str:
    """
    Join author names for display.

    Examples:
        ["A", "B"], "Nature"      -> "A, B • Nature"
        ["A", "B", "C", "D"], ""  -> "A, B, C et al."
    """
    names = [n.strip() for n in names if n and n.strip()]
    if not names:
        joined = "Unknown Author"
    elif len(names) > MAX_AUTHORS:
        joined = ", ".join(names[:MAX_AUTHORS]) + " et al."
    else:
        joined = ", ".join(names)

    venue = (venue or "").strip()
    return f"{joined} • {venue}" if venue else joined


def truncate(text: str | None, limit: int = MAX_DESCRIPTION) -> str:
    """Trim text to ``limit`` chars, marking the cut with '...'."""
    text = " ".join((text or "").split())
    if not text:
        return NO_ABSTRACT
    if len(text) <= limit:
        return text
    return text[:limit].rstrip() + "..."


def cap_tags(tags: list[Any] | None) -> list[str]:
    """Drop blanks and repeats, keep at most MAX_TAGS."""
    result: list[str] = []
    for tag in tags or []:
        if not isinstance(tag, str):
            continue
        tag = tag.strip()
        if tag and tag not in result:
            result.append(tag)
        if len(result) >= MAX_TAGS:
            break
    return result or list(DEFAULT_TAGS)


def as_int(value: Any, default: int = 0) -> int:
    if isinstance(value, bool):
        return default
    if isinstance(value, (int, float)):
        return int(value)
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    return default


class PaperSource(ABC):
    """One external paper-search provider."""

    source_type: SourceType
    name: str = ""

    def __init__(self, settings: SourceSettings, client: httpx.AsyncClient | None = None):
        self.settings = settings
        self.base_url = settings.base_url.rstrip("/")
        self._client = client
        self._owns_client = client is None

    @property
    def prefix(self) -> str:
        return ID_PREFIXES[self.source_type]

    @property
    def is_proxy(self) -> bool:
        return self.settings.mode == "proxy"

    def owns(self, post_id: str) -> bool:
        """Whether a post ID was issued by this source."""
        return post_id.startswith(self.prefix)

    # ─────────────────────────────────────────────────────────────
    # HTTP
    # ─────────────────────────────────────────────────────────────

    def _headers(self) -> dict[str, str]:
        return {"User-Agent": USER_AGENT, "Accept": "application/json"}

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.settings.timeout)
        return self._client

    async def aclose(self) -> None:
        """Close the HTTP client if this adapter created it."""
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def _get_json(self, url: str, params: dict[str, Any], *, allow_missing: bool = False) -> Any:
        """
        GET a JSON document.

        Raises:
            NetworkError: transport failure or non-2xx status
            RateLimitExhaustion: provider answered 429
            ProviderError: body is not JSON
        """
        try:
            resp = await self._get_client().get(url, params=params, headers=self._headers())
        except httpx.RequestError as e:
            raise NetworkError(self.name, f"Request failed: {e}") from e

        if allow_missing and resp.status_code == 404:
            return None
        if resp.status_code == 429:
            raise RateLimitExhaustion(self.name, "HTTP 429: provider throttled the request", 429)
        if not resp.is_success:
            raise NetworkError(self.name, f"HTTP {resp.status_code}: {_error_detail(resp)}", resp.status_code)

        try:
            return resp.json()
        except ValueError as e:
            raise ProviderError(self.name, f"Invalid JSON: {e}") from e

    # ─────────────────────────────────────────────────────────────
    # Contract
    # ─────────────────────────────────────────────────────────────

    @abstractmethod
    async def search(self, query: str, limit: int, offset: int = 0) -> SearchResult:
        """Search the provider and return normalized posts."""

    @abstractmethod
    async def get_by_id(self, post_id: str) -> FeedPost | None:
        """Fetch one post by its prefixed ID; None when the provider has no such work."""

    async def by_field(self, field: str, limit: int) -> SearchResult:
        """Search using the canned phrase for a field keyword."""
        return await self.search(field_query(field), limit, 0)

    # ─────────────────────────────────────────────────────────────
    # Proxy payloads (shared shape)
    # ─────────────────────────────────────────────────────────────

    def _check_error_payload(self, payload: Any) -> dict:
        if not isinstance(payload, dict):
            raise ProviderError(self.name, f"Unexpected payload type: {type(payload).__name__}")
        if "error" in payload:
            raise ProviderError(self.name, f"{payload.get('error')}: {payload.get('message', '')}")
        return payload

    def _parse_proxy_payload(self, payload: dict, offset: int) -> SearchResult:
        rows = payload.get("papers")
        if not isinstance(rows, list):
            raise ProviderError(self.name, "Proxy payload has no 'papers' list")
        posts = [p for p in (self._post_from_row(r) for r in rows) if p is not None]
        return SearchResult(posts=posts, total=as_int(payload.get("total")), offset=offset)

    def _post_from_row(self, row: Any) -> FeedPost | None:
        """Normalize a proxy row ({id, title, description, author, ...})."""
        if not isinstance(row, dict) or not row.get("id"):
            return None
        title = (row.get("title") or "").strip()
        if not title:
            return None

        post_id = make_post_id(self.prefix, str(row["id"]))
        citations = row.get("citation_count", row.get("citationCount"))
        if citations is None:
            # proxies only forward likes_count = citations // 10
            citation_count = as_int(row.get("likes_count")) * 10
        else:
            citation_count = as_int(citations)

        return FeedPost(
            id=post_id,
            title=title,
            description=truncate(row.get("description")),
            author=(row.get("author") or "Unknown Author").strip(),
            thumbnail_url=row.get("thumbnail_url") or thumbnail_for(post_id),
            tags=cap_tags(row.get("tags")),
            citation_count=max(citation_count, 0),
            year=parse_year(row.get("year") or row.get("published_at"), current_year()),
            url=row.get("content_url") or row.get("url"),
            source=self.source_type,
        )


def _error_detail(resp: httpx.Response) -> str:
    """Best-effort message from an error response ({error, message} or text)."""
    try:
        body = resp.json()
    except ValueError:
        return resp.text[:200]
    if isinstance(body, dict):
        return str(body.get("message") or body.get("error") or body)[:200]
    return str(body)[:200]
