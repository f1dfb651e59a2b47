"""In-memory feed sessions sharing one rate limiter."""

from __future__ import annotations

import logging
import random
import threading
import time
from typing import Callable, Optional

from .aggregator import FeedAggregator
from .S1_fetch import PaperSource, RateLimiter
from .settings import FeedSettings

logger = logging.getLogger(__name__)

DEFAULT_SESSION = "default"
DEFAULT_MAX_IDLE_HOURS = 24


class FeedSessionStore:
    """
    简单的内存 feed 会话存储（单进程适用）

    每个会话一个 FeedAggregator; 所有会话共享同一组 source adapter 和
    同一个 RateLimiter, 因为 provider 的限流是按进程计算的。
    只读请求 (详情/主题) 在会话不存在时走共享的 lookup, 不创建会话。
    超过 max_idle_hours 未访问的会话在创建新会话时被清理。

    Usage:
        store = FeedSessionStore(openalex, semantic, RateLimiter(1.0), settings)
        feed = store.get_or_create("session-1")
        await feed.activate()
        store.discard("session-1")
    """

    def __init__(
        self,
        primary: PaperSource,
        secondary: PaperSource,
        limiter: RateLimiter,
        settings: FeedSettings,
        rng_factory=random.Random,
        max_idle_hours: float = DEFAULT_MAX_IDLE_HOURS,
        clock: Callable[[], float] = time.time,
    ):
        self.primary = primary
        self.secondary = secondary
        self.limiter = limiter
        self.settings = settings
        self.max_idle_hours = max_idle_hours
        self._rng_factory = rng_factory
        self._clock = clock
        self._feeds: dict[str, FeedAggregator] = {}
        self._last_access: dict[str, float] = {}
        self._lock = threading.Lock()
        self.lookup = self._new_feed()

    def _new_feed(self) -> FeedAggregator:
        return FeedAggregator(
            self.primary,
            self.secondary,
            self.limiter,
            settings=self.settings,
            rng=self._rng_factory(),
        )

    def get(self, session_id: str) -> Optional[FeedAggregator]:
        """获取会话的 feed (不存在时返回 None, 不创建)"""
        with self._lock:
            feed = self._feeds.get(session_id)
            if feed is not None:
                self._last_access[session_id] = self._clock()
            return feed

    def reader(self, session_id: str) -> FeedAggregator:
        """只读查询用的 feed: 会话存在时用会话, 否则用共享 lookup"""
        feed = self.get(session_id)
        return feed if feed is not None else self.lookup

    def get_or_create(self, session_id: str = DEFAULT_SESSION) -> FeedAggregator:
        """获取或创建会话的 feed"""
        with self._lock:
            feed = self._feeds.get(session_id)
            if feed is None:
                self._evict_idle()
                feed = self._new_feed()
                self._feeds[session_id] = feed
                logger.info(f"Created feed session {session_id}")
            self._last_access[session_id] = self._clock()
            return feed

    def discard(self, session_id: str) -> bool:
        """丢弃会话状态（视图卸载）; 已排队的请求照常执行"""
        with self._lock:
            removed = self._feeds.pop(session_id, None)
            self._last_access.pop(session_id, None)
        if removed is not None:
            logger.info(f"Discarded feed session {session_id}")
        return removed is not None

    def cleanup_old(self, max_idle_hours: Optional[float] = None) -> int:
        """清理长时间未访问的会话，返回清理数量"""
        with self._lock:
            return self._evict_idle(max_idle_hours)

    def _evict_idle(self, max_idle_hours: Optional[float] = None) -> int:
        hours = self.max_idle_hours if max_idle_hours is None else max_idle_hours
        cutoff = self._clock() - hours * 3600
        to_delete = [sid for sid, seen in self._last_access.items() if seen < cutoff]
        for session_id in to_delete:
            del self._feeds[session_id]
            del self._last_access[session_id]
        if to_delete:
            logger.info(f"Evicted {len(to_delete)} idle feed sessions")
        return len(to_delete)

    def __len__(self) -> int:
        return len(self._feeds)

    async def aclose(self) -> None:
        """Close the shared adapters' HTTP clients."""
        await self.primary.aclose()
        await self.secondary.aclose()
