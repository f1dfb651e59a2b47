"""Semantic Scholar source adapter.

API documentation: https://api.semanticscholar.org/api-docs/graph

Offset-based pagination (offset, limit). Unauthenticated clients share a
small global quota, so an API key (x-api-key) is recommended.
"""

from __future__ import annotations

import logging
from typing import Any

from ..core import current_year, make_post_id, strip_prefix, thumbnail_for
from ..errors import ProviderError
from ..models import FeedPost, SearchResult, SourceType
from .base import PaperSource, as_int, cap_tags, format_authors, truncate

logger = logging.getLogger(__name__)

PAPER_FIELDS = "paperId,title,abstract,authors,year,citationCount,url,venue,fieldsOfStudy"
PAPER_PAGE = "https://www.semanticscholar.org/paper/"


class SemanticScholarSource(PaperSource):
    """Source B: Semantic Scholar paper search."""

    source_type = SourceType.SEMANTIC_SCHOLAR
    name = "SemanticScholar"

    def _headers(self) -> dict[str, str]:
        headers = super()._headers()
        if self.settings.api_key:
            headers["x-api-key"] = self.settings.api_key
        return headers

    async def search(self, query: str, limit: int, offset: int = 0) -> SearchResult:
        limit = max(1, min(limit, 100))  # API max limit is 100
        params: dict[str, Any] = {"query": query, "limit": limit, "offset": offset}
        if self.is_proxy:
            url = self.base_url
        else:
            params["fields"] = PAPER_FIELDS
            url = f"{self.base_url}/paper/search"

        logger.info(f"Semantic Scholar search: query={query!r} offset={offset} limit={limit}")
        payload = self._check_error_payload(await self._get_json(url, params))
        result = self._parse_payload(payload, offset)
        logger.info(f"Semantic Scholar search: {len(result.posts)} posts (total={result.total})")
        return result

    async def get_by_id(self, post_id: str) -> FeedPost | None:
        paper_id = strip_prefix(post_id, self.prefix)
        if self.is_proxy:
            payload = await self._get_json(self.base_url, {"paperId": paper_id}, allow_missing=True)
            if payload is None:
                return None
            paper = self._check_error_payload(payload).get("paper")
            return self._post_from_row(paper) if paper else None

        payload = await self._get_json(
            f"{self.base_url}/paper/{paper_id}", {"fields": PAPER_FIELDS}, allow_missing=True
        )
        if payload is None:
            return None
        return self._post_from_paper(self._check_error_payload(payload))

    def _parse_payload(self, payload: dict, offset: int) -> SearchResult:
        if "papers" in payload:
            return self._parse_proxy_payload(payload, offset)

        # 无结果时 API 可能省略 data 字段
        data = payload.get("data", [] if "total" in payload else None)
        if not isinstance(data, list):
            raise ProviderError(self.name, "Payload has neither 'papers' nor 'data'")

        posts = [p for p in (self._post_from_paper(d) for d in data) if p is not None]
        return SearchResult(posts=posts, total=as_int(payload.get("total")), offset=offset)

    def _post_from_paper(self, paper: Any) -> FeedPost | None:
        """Normalize a raw Semantic Scholar paper."""
        if not isinstance(paper, dict) or not paper.get("paperId"):
            return None
        title = (paper.get("title") or "").strip()
        if not title:
            return None

        post_id = make_post_id(self.prefix, str(paper["paperId"]))
        names = [a.get("name", "") for a in paper.get("authors") or [] if isinstance(a, dict)]

        return FeedPost(
            id=post_id,
            title=title,
            description=truncate(paper.get("abstract")),
            author=format_authors(names, paper.get("venue") or ""),
            thumbnail_url=thumbnail_for(post_id),
            tags=cap_tags(paper.get("fieldsOfStudy")),
            citation_count=max(as_int(paper.get("citationCount")), 0),
            year=as_int(paper.get("year"), current_year()),
            url=paper.get("url") or f"{PAPER_PAGE}{paper['paperId']}",
            source=self.source_type,
        )
