#!/usr/bin/env python
"""Feed sessions - 单元测试"""

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))
sys.path.insert(0, str(Path(__file__).parent))

from brainfeed.models import SourceType
from brainfeed.S1_fetch import RateLimiter
from brainfeed.sessions import FeedSessionStore
from feed_fakes import FakeSource, fast_settings

HOUR = 3600


def make_store(now, max_idle_hours=24):
    return FeedSessionStore(
        FakeSource(SourceType.OPENALEX),
        FakeSource(SourceType.SEMANTIC_SCHOLAR),
        RateLimiter(0.0),
        fast_settings(),
        max_idle_hours=max_idle_hours,
        clock=lambda: now[0],
    )


class TestSessionStore:
    """测试会话存储"""

    def test_get_does_not_create(self):
        store = make_store([0.0])
        assert store.get("s1") is None
        assert len(store) == 0

    def test_get_or_create_reuses(self):
        store = make_store([0.0])
        assert store.get_or_create("s1") is store.get_or_create("s1")
        assert len(store) == 1

    def test_reader_falls_back_to_lookup(self):
        """会话不存在时返回共享 lookup, 不创建会话"""
        store = make_store([0.0])
        assert store.reader("nobody") is store.lookup
        assert len(store) == 0

        feed = store.get_or_create("s1")
        assert store.reader("s1") is feed

    def test_sessions_share_limiter(self):
        store = make_store([0.0])
        assert store.get_or_create("a").limiter is store.get_or_create("b").limiter

    def test_discard(self):
        store = make_store([0.0])
        store.get_or_create("s1")
        assert store.discard("s1") is True
        assert store.discard("s1") is False


class TestCleanup:
    """测试过期会话清理"""

    def test_cleanup_old_removes_idle(self):
        now = [0.0]
        store = make_store(now)
        store.get_or_create("old")
        now[0] = 20 * HOUR
        store.get_or_create("recent")

        now[0] = 30 * HOUR
        removed = store.cleanup_old()

        assert removed == 1
        assert store.get("old") is None
        assert store.get("recent") is not None

    def test_access_keeps_session_alive(self):
        """最近访问过的会话不被清理"""
        now = [0.0]
        store = make_store(now)
        store.get_or_create("s1")
        now[0] = 20 * HOUR
        store.get("s1")

        now[0] = 30 * HOUR
        assert store.cleanup_old() == 0
        assert store.get("s1") is not None

    def test_new_session_evicts_idle(self):
        """创建新会话时顺带清理过期会话"""
        now = [0.0]
        store = make_store(now, max_idle_hours=1)
        for i in range(5):
            store.get_or_create(f"s{i}")

        now[0] = 2 * HOUR
        store.get_or_create("fresh")

        assert len(store) == 1
        assert store.get("fresh") is not None
