"""OpenAlex source adapter.

OpenAlex is a free and open catalog of the world's scholarly works.
API documentation: https://docs.openalex.org/

Key features:
- Page-based pagination (page, per-page)
- Abstracts stored as an inverted index
- No API key required (but polite pool with email recommended)
"""

from __future__ import annotations

import logging
from typing import Any

from ..core import current_year, make_post_id, strip_prefix, thumbnail_for
from ..errors import ProviderError
from ..models import FeedPost, SearchResult, SourceType
from .base import PaperSource, as_int, cap_tags, format_authors, truncate

logger = logging.getLogger(__name__)

WORK_FIELDS = (
    "id,doi,title,authorships,publication_year,cited_by_count,"
    "open_access,primary_location,concepts,abstract_inverted_index"
)
MAX_CONCEPT_LEVEL = 2  # skip overly specific concepts
MAX_ABSTRACT_WORDS = 10_000


def reconstruct_abstract(inverted_index: dict | None) -> str:
    """
    Reconstruct abstract from OpenAlex inverted index format.

    OpenAlex stores abstracts as inverted index to save space:
    {"word1": [0, 5], "word2": [1, 3]} -> positions of each word
    """
    if not inverted_index or not isinstance(inverted_index, dict):
        return ""

    words: dict[int, str] = {}
    for word, positions in inverted_index.items():
        if not isinstance(positions, list):
            return ""
        for pos in positions:
            if isinstance(pos, bool) or not isinstance(pos, int):
                return ""
            # out-of-range positions are malformed; skip them
            if 0 <= pos < MAX_ABSTRACT_WORDS:
                words[pos] = word

    return " ".join(words[pos] for pos in sorted(words))


def _work_url(work: dict) -> str | None:
    """Prefer DOI, then the open-access copy, then the OpenAlex page."""
    doi = work.get("doi") or ""
    if doi:
        if doi.startswith("http"):
            return doi
        return f"https://doi.org/{doi}"
    open_access = work.get("open_access") or {}
    return open_access.get("oa_url") or work.get("id")


def _parse_authors(authorships: list | None) -> list[str]:
    names = []
    for authorship in authorships or []:
        author = (authorship or {}).get("author") or {}
        name = author.get("display_name", "")
        if name:
            names.append(name)
    return names


def _parse_concepts(concepts: list | None) -> list[str]:
    return [
        c.get("display_name", "")
        for c in concepts or []
        if isinstance(c, dict) and as_int(c.get("level"), 0) <= MAX_CONCEPT_LEVEL
    ]


class OpenAlexSource(PaperSource):
    """Source A: OpenAlex works search."""

    source_type = SourceType.OPENALEX
    name = "OpenAlex"

    def _headers(self) -> dict[str, str]:
        headers = super()._headers()
        if self.settings.mailto:
            headers["User-Agent"] += f" (mailto:{self.settings.mailto})"
        return headers

    async def search(self, query: str, limit: int, offset: int = 0) -> SearchResult:
        """
        Search works by text, most cited first.

        OpenAlex paginates by page, so ``offset`` is mapped to
        ``page = offset // limit + 1``.
        """
        limit = max(1, min(limit, 200))  # API max per-page is 200
        page = offset // limit + 1

        if self.is_proxy:
            params: dict[str, Any] = {
                "endpoint": "works",
                "query": query,
                "page": page,
                "per_page": limit,
            }
            url = self.base_url
        else:
            params = {
                "page": page,
                "per-page": limit,
                "sort": "cited_by_count:desc",
                "select": WORK_FIELDS,
            }
            if query:
                params["search"] = query
            if self.settings.mailto:
                params["mailto"] = self.settings.mailto
            url = f"{self.base_url}/works"

        logger.info(f"OpenAlex search: query={query!r} page={page} per_page={limit}")
        payload = self._check_error_payload(await self._get_json(url, params))
        result = self._parse_payload(payload, (page - 1) * limit)
        logger.info(f"OpenAlex search: {len(result.posts)} posts (total={result.total})")
        return result

    async def get_by_id(self, post_id: str) -> FeedPost | None:
        work_id = strip_prefix(post_id, self.prefix)
        if self.is_proxy:
            payload = await self._get_json(
                self.base_url, {"endpoint": "works", "workId": work_id}, allow_missing=True
            )
            if payload is None:
                return None
            paper = self._check_error_payload(payload).get("paper")
            return self._post_from_row(paper) if paper else None

        payload = await self._get_json(
            f"{self.base_url}/works/{work_id}", {"select": WORK_FIELDS}, allow_missing=True
        )
        if payload is None:
            return None
        return self._post_from_work(self._check_error_payload(payload))

    async def trending_topics(self, limit: int = 20) -> list[str]:
        """Most active research topics by works count."""
        if self.is_proxy:
            payload = await self._get_json(
                self.base_url, {"endpoint": "topics", "page": 1, "per_page": limit}
            )
            topics = self._check_error_payload(payload).get("topics")
        else:
            payload = await self._get_json(
                f"{self.base_url}/topics", {"per-page": limit, "sort": "works_count:desc"}
            )
            topics = self._check_error_payload(payload).get("results")

        if not isinstance(topics, list):
            raise ProviderError(self.name, "Topics payload has no topic list")
        return [t["display_name"] for t in topics if isinstance(t, dict) and t.get("display_name")]

    def _parse_payload(self, payload: dict, offset: int) -> SearchResult:
        if "papers" in payload:
            return self._parse_proxy_payload(payload, offset)

        results = payload.get("results")
        if not isinstance(results, list):
            raise ProviderError(self.name, "Payload has neither 'papers' nor 'results'")

        posts = [p for p in (self._post_from_work(w) for w in results) if p is not None]
        meta = payload.get("meta") or {}
        return SearchResult(posts=posts, total=as_int(meta.get("count")), offset=offset)

    def _post_from_work(self, work: Any) -> FeedPost | None:
        """Normalize a raw OpenAlex work."""
        if not isinstance(work, dict) or not work.get("id"):
            return None
        title = (work.get("title") or "").strip()
        if not title:
            return None

        post_id = make_post_id(self.prefix, str(work["id"]))
        primary_location = work.get("primary_location") or {}
        venue = (primary_location.get("source") or {}).get("display_name", "")

        return FeedPost(
            id=post_id,
            title=title,
            description=truncate(reconstruct_abstract(work.get("abstract_inverted_index"))),
            author=format_authors(_parse_authors(work.get("authorships")), venue),
            thumbnail_url=thumbnail_for(post_id),
            tags=cap_tags(_parse_concepts(work.get("concepts"))),
            citation_count=max(as_int(work.get("cited_by_count")), 0),
            year=as_int(work.get("publication_year"), current_year()),
            url=_work_url(work),
            source=self.source_type,
        )
