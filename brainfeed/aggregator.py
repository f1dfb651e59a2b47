"""Feed aggregation - merge both sources into one paginated, shuffled feed.

Every provider call is scheduled through the shared RateLimiter, one after
another. Results are merged, deduplicated against the feed's seen IDs,
shuffled and truncated before they replace or extend ``posts``.
"""

from __future__ import annotations

import asyncio
import logging
import random
from dataclasses import dataclass, field
from functools import partial
from typing import Awaitable, Callable

import httpx

from .errors import AggregationError, PartialSourceFailure, ProviderError
from .models import FeedPost, FeedState, SearchResult
from .S1_fetch import (
    TOPIC_CATALOG,
    OpenAlexSource,
    PaperSource,
    RateLimiter,
    build_sources,
    field_query,
    pick_topics,
)
from .S2_dedup import dedupe
from .S3_shuffle import shuffle
from .settings import FeedSettings

logger = logging.getLogger(__name__)

# (source, query label, request thunk)
SourceCall = tuple[PaperSource, str, Callable[[], Awaitable[SearchResult]]]


@dataclass
class FetchOutcome:
    """Everything one round of source calls produced."""
    posts: list[FeedPost] = field(default_factory=list)
    results: list[SearchResult] = field(default_factory=list)
    failures: list[PartialSourceFailure] = field(default_factory=list)

    @property
    def provider_has_more(self) -> bool:
        """At least one provider reported results beyond this page."""
        return any(not r.exhausted for r in self.results)


class FeedAggregator:
    """
    Stateful controller for one feed view.

    State (posts, seen_ids, current_page, current_query, has_more, loading,
    error) is owned here and only changed by the operations below. Only one
    operation runs at a time; a call made while ``loading`` is ignored.
    """

    def __init__(
        self,
        primary: PaperSource,
        secondary: PaperSource,
        limiter: RateLimiter,
        settings: FeedSettings | None = None,
        rng: random.Random | None = None,
        topics: list[str] | None = None,
    ):
        self.primary = primary        # source A
        self.secondary = secondary    # source B
        self.limiter = limiter
        self.settings = settings or FeedSettings()
        self.rng = rng or random.Random()
        self.topics = list(topics or TOPIC_CATALOG)

        self.posts: list[FeedPost] = []
        self.seen_ids: set[str] = set()
        self.current_page = 1
        self.current_query = ""
        self.has_more = False
        self.loading = False
        self.error: str | None = None
        self.failures: list[PartialSourceFailure] = []
        self._activated = False

    @property
    def sources(self) -> tuple[PaperSource, PaperSource]:
        return (self.primary, self.secondary)

    @property
    def queue_length(self) -> int:
        return self.limiter.queue_length

    def state(self) -> FeedState:
        """Snapshot for rendering."""
        return FeedState(
            posts=list(self.posts),
            loading=self.loading,
            error=self.error,
            has_more=self.has_more,
            queue_length=self.queue_length,
            current_page=self.current_page,
            current_query=self.current_query,
        )

    # ─────────────────────────────────────────────────────────────
    # Operations
    # ─────────────────────────────────────────────────────────────

    async def activate(self) -> bool:
        """First load after a short debounce; later calls do nothing."""
        if self._activated or self.loading:
            return False
        if self.settings.initial_delay > 0:
            await asyncio.sleep(self.settings.initial_delay)
        # consumed only when the initial load actually starts
        if self._activated or self.loading:
            return False
        self._activated = True
        return await self.load_initial()

    async def load_initial(self) -> bool:
        """Mixed feed from random catalog topics."""
        return await self._run("load_initial", self._plan, append=False, query="")

    async def load_more(self) -> bool:
        """Append the next page for the current query."""
        if not self.has_more or self.loading:
            return False
        return await self._run("load_more", self._plan, append=True)

    async def refresh(self) -> bool:
        """Start over with the current query (empty means mixed topics)."""
        return await self._run("refresh", self._plan, append=False)

    async def search_by_query(self, query: str) -> bool:
        """New feed for a free-text query; empty query means mixed topics."""
        return await self._run("search", self._plan, append=False, query=query.strip())

    async def filter_by_field(self, field_name: str) -> bool:
        """New feed for a field keyword (e.g. "physics")."""
        phrase = field_query(field_name)
        limit = self.settings.search_batch_size

        def plan(page: int, query: str) -> list[SourceCall]:
            return [(s, query, partial(s.by_field, field_name, limit)) for s in self.sources]

        # load_more continues with the mapped phrase
        return await self._run("filter", plan, append=False, query=phrase)

    async def get_post(self, post_id: str) -> FeedPost | None:
        """Look a post up in the feed, else ask the source that issued the ID."""
        for post in self.posts:
            if post.id == post_id:
                return post
        for source in self.sources:
            if source.owns(post_id):
                return await self.limiter.schedule(partial(source.get_by_id, post_id))
        return None

    async def trending_topics(self, limit: int = 20) -> list[str]:
        """Trending topics from OpenAlex, or the static catalog when unavailable."""
        source = next((s for s in self.sources if isinstance(s, OpenAlexSource)), None)
        if source is not None:
            try:
                topics = await self.limiter.schedule(partial(source.trending_topics, limit))
            except ProviderError as e:
                logger.warning(f"Trending topics unavailable, using catalog: {e}")
            else:
                if topics:
                    return topics
        return self.topics[:limit]

    async def aclose(self) -> None:
        for source in self.sources:
            await source.aclose()

    # ─────────────────────────────────────────────────────────────
    # Internals
    # ─────────────────────────────────────────────────────────────

    def _plan(self, page: int, query: str) -> list[SourceCall]:
        """Calls for one page of ``query`` (empty means mixed topics)."""
        if query:
            limit = self.settings.search_batch_size
            offset = (page - 1) * limit
            return [(s, query, partial(s.search, query, limit, offset)) for s in self.sources]

        limit = self.settings.batch_size
        offset = (page - 1) * limit
        topics = pick_topics(self.settings.topics_per_load, self.rng, self.topics)
        calls: list[SourceCall] = []
        for i, topic in enumerate(topics):
            source = self.primary if i < self.settings.primary_calls else self.secondary
            calls.append((source, topic, partial(source.search, topic, limit, offset)))
        return calls

    async def _collect(self, calls: list[SourceCall]) -> FetchOutcome:
        """Run calls one by one through the limiter; a failed call yields nothing."""
        outcome = FetchOutcome()
        for source, label, request in calls:
            try:
                result = await self.limiter.schedule(request)
            except Exception as e:
                failure = PartialSourceFailure(source.name, label, e)
                logger.warning(f"Partial failure: {failure}")
                outcome.failures.append(failure)
                continue
            outcome.results.append(result)
            outcome.posts.extend(result.posts)

        if calls and not outcome.results:
            raise AggregationError(outcome.failures)
        return outcome

    async def _run(
        self,
        name: str,
        plan: Callable[[int, str], list[SourceCall]],
        *,
        append: bool,
        query: str | None = None,
    ) -> bool:
        if self.loading:
            logger.info(f"{name} ignored: another operation is in flight")
            return False

        self.loading = True
        self.error = None
        # current_query changes only together with posts, in _commit
        if query is None:
            query = self.current_query
        page = self.current_page + 1 if append else 1

        try:
            outcome = await self._collect(plan(page, query))
            self.failures = outcome.failures
            merged = dedupe(outcome.posts, self.seen_ids if append else set())
            kept = shuffle(merged, self.rng)[: self.settings.max_posts]
        except Exception as e:
            # total failure: posts stay as they were
            self.failures = getattr(e, "failures", [])
            self.error = str(e) or e.__class__.__name__
            logger.error(f"{name} failed: {self.error}")
            return False
        else:
            self._commit(kept, outcome, page, append, query)
            logger.info(
                f"{name}: kept {len(kept)}/{len(outcome.posts)} posts "
                f"(page={page}, failures={len(outcome.failures)}, has_more={self.has_more})"
            )
            return True
        finally:
            self.loading = False

    def _commit(self, kept: list[FeedPost], outcome: FetchOutcome, page: int, append: bool, query: str) -> None:
        new_ids = {p.id for p in kept}
        if append:
            self.posts = self.posts + kept
            self.seen_ids = self.seen_ids | new_ids
        else:
            self.posts = kept
            self.seen_ids = new_ids
        self.current_page = page
        self.current_query = query
        self.has_more = (
            len(kept) >= self.settings.has_more_threshold and outcome.provider_has_more
        )


def build_aggregator(
    settings: FeedSettings,
    limiter: RateLimiter | None = None,
    client: httpx.AsyncClient | None = None,
    rng: random.Random | None = None,
) -> FeedAggregator:
    """
    Wire an aggregator with both adapters.

    Pass the process-wide ``limiter`` when several feeds exist; a new one is
    created otherwise.
    """
    primary, secondary = build_sources(settings, client=client)
    limiter = limiter or RateLimiter(settings.min_interval)
    return FeedAggregator(primary, secondary, limiter, settings=settings, rng=rng)
