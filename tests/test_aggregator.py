#!/usr/bin/env python
"""Feed aggregator - 单元测试"""

import asyncio
import random
import sys
from pathlib import Path

import httpx

sys.path.insert(0, str(Path(__file__).parent.parent))
sys.path.insert(0, str(Path(__file__).parent))

from brainfeed import FeedAggregator
from brainfeed.errors import NetworkError
from brainfeed.models import SourceType
from brainfeed.S1_fetch import TOPIC_CATALOG, OpenAlexSource, RateLimiter
from brainfeed.settings import SourceSettings
from feed_fakes import CountingLimiter, FakeSource, fast_settings, make_post, make_posts

A = SourceType.OPENALEX
B = SourceType.SEMANTIC_SCHOLAR


def make_feed(a=None, b=None, limiter=None, **overrides) -> FeedAggregator:
    return FeedAggregator(
        a or FakeSource(A),
        b or FakeSource(B),
        limiter or RateLimiter(0.0),
        settings=fast_settings(**overrides),
        rng=random.Random(0),
    )


def run(coro):
    return asyncio.run(coro)


class TestScenarios:
    """端到端场景"""

    def test_eight_posts_reach_has_more_threshold(self):
        """A/B 各返回 4 条且标题不重复 → 8 条, 达到阈值 has_more=True"""
        a = FakeSource(A, posts=make_posts(4, A, tag="a"))
        b = FakeSource(B, posts=make_posts(4, B, tag="b"))
        feed = make_feed(a, b)

        assert run(feed.load_initial()) is True

        assert len(feed.posts) == 8
        assert feed.has_more is True
        assert feed.error is None

    def test_seven_posts_below_threshold(self):
        a = FakeSource(A, posts=make_posts(4, A, tag="a"))
        b = FakeSource(B, posts=make_posts(3, B, tag="b"))
        feed = make_feed(a, b)

        run(feed.load_initial())

        assert len(feed.posts) == 7
        assert feed.has_more is False

    def test_partial_failure_is_swallowed(self):
        """B 抛出 NetworkError, A 返回 5 条 → 5 条, 无错误"""
        a = FakeSource(A, posts=make_posts(5, A, tag="a"))
        b = FakeSource(B, error=NetworkError("FakeB", "HTTP 500: down", 500))
        feed = make_feed(a, b)

        assert run(feed.search_by_query("graph")) is True

        assert len(feed.posts) == 5
        assert feed.error is None
        assert feed.loading is False
        assert len(feed.failures) == 1
        assert feed.failures[0].source == "FakeB"

    def test_cross_source_title_duplicate(self):
        """标题仅大小写/标点不同的两篇论文只保留一篇"""
        a = FakeSource(A, posts=[make_post("W1", "Deep Learning Basics", source=A)])
        b = FakeSource(B, posts=[make_post("s1", "deep learning basics!!", source=B)])
        feed = make_feed(a, b)

        run(feed.search_by_query("deep learning"))

        assert len(feed.posts) == 1

    def test_field_filter_issues_one_call_per_source(self):
        """filter_by_field('physics') 对每个来源各发一次请求"""
        a, b = FakeSource(A), FakeSource(B)
        feed = make_feed(a, b)

        run(feed.filter_by_field("physics"))

        phrase = "quantum physics theoretical physics"
        assert a.calls == [("search", phrase, 6, 0)]
        assert b.calls == [("search", phrase, 6, 0)]
        assert feed.current_query == phrase


class TestLoadInitial:
    """测试首次加载"""

    def test_topic_split_between_sources(self):
        """3 个主题: 前 2 个给 A, 第 3 个给 B, 每次 4 条"""
        a, b = FakeSource(A), FakeSource(B)
        feed = make_feed(a, b)

        run(feed.load_initial())

        assert len(a.calls) == 2
        assert len(b.calls) == 1
        for _, topic, limit, offset in a.calls + b.calls:
            assert topic in TOPIC_CATALOG
            assert (limit, offset) == (4, 0)
        assert len(feed.posts) == 12
        assert feed.current_query == ""
        assert feed.current_page == 1

    def test_truncated_to_max_posts(self):
        feed = make_feed(max_posts=5)
        run(feed.load_initial())
        assert len(feed.posts) == 5
        assert feed.seen_ids == {p.id for p in feed.posts}

    def test_every_call_goes_through_limiter(self):
        limiter = CountingLimiter()
        feed = make_feed(limiter=limiter)

        run(feed.load_initial())

        assert limiter.scheduled == 3

    def test_seeded_rng_reproducible(self):
        """同一种子应得到同一主题与顺序"""
        first = make_feed()
        second = make_feed()
        run(first.load_initial())
        run(second.load_initial())
        assert [p.id for p in first.posts] == [p.id for p in second.posts]

    def test_no_more_when_providers_exhausted(self):
        """providers 的 total 已耗尽时 has_more=False"""
        a, b = FakeSource(A, total=4), FakeSource(B, total=4)
        feed = make_feed(a, b)

        run(feed.search_by_query("graph"))

        assert len(feed.posts) == 12
        assert feed.has_more is False


class TestLoadMore:
    """测试分页追加"""

    def test_appends_next_page(self):
        """已有帖子保持不变, 新帖子追加在后"""
        a, b = FakeSource(A), FakeSource(B)
        feed = make_feed(a, b)
        run(feed.search_by_query("graph"))
        first_page = list(feed.posts)
        first_seen = set(feed.seen_ids)

        assert run(feed.load_more()) is True

        assert feed.posts[: len(first_page)] == first_page
        assert len(feed.posts) == 24
        assert feed.current_page == 2
        assert first_seen < feed.seen_ids
        assert a.calls[-1] == ("search", "graph", 6, 6)
        assert b.calls[-1] == ("search", "graph", 6, 6)

    def test_no_op_without_more(self):
        a, b = FakeSource(A), FakeSource(B)
        feed = make_feed(a, b)

        assert run(feed.load_more()) is False
        assert a.calls == [] and b.calls == []

    def test_repeated_results_add_nothing(self):
        """再次返回相同论文时不追加, has_more 变为 False"""
        a = FakeSource(A, posts=make_posts(6, A, tag="a"))
        b = FakeSource(B, posts=make_posts(6, B, tag="b"))
        feed = make_feed(a, b)
        run(feed.search_by_query("graph"))
        assert feed.has_more is True

        assert run(feed.load_more()) is True

        assert len(feed.posts) == 12
        assert feed.has_more is False
        assert len(feed.posts) == len({p.id for p in feed.posts})

    def test_field_filter_continues_with_phrase(self):
        a, b = FakeSource(A), FakeSource(B)
        feed = make_feed(a, b)
        run(feed.filter_by_field("ai"))

        run(feed.load_more())

        assert a.calls[-1] == ("search", "artificial intelligence machine learning", 6, 6)


class TestQueryChanges:
    """测试搜索/刷新/重置"""

    def test_new_query_replaces_posts(self):
        feed = make_feed()
        run(feed.search_by_query("graph"))
        run(feed.load_more())

        run(feed.search_by_query("vision"))

        assert len(feed.posts) == 12
        assert feed.current_page == 1
        assert feed.current_query == "vision"
        assert feed.seen_ids == {p.id for p in feed.posts}
        assert all("vision" in p.title for p in feed.posts)

    def test_refresh_uses_current_query(self):
        a, b = FakeSource(A), FakeSource(B)
        feed = make_feed(a, b)
        run(feed.search_by_query("  graph  "))
        a.calls.clear()

        run(feed.refresh())

        assert feed.current_query == "graph"
        assert a.calls == [("search", "graph", 6, 0)]

    def test_empty_query_means_mixed_topics(self):
        a, b = FakeSource(A), FakeSource(B)
        feed = make_feed(a, b)

        run(feed.search_by_query("   "))

        assert feed.current_query == ""
        assert len(a.calls) == 2
        assert all(call[1] in TOPIC_CATALOG for call in a.calls)


class TestErrors:
    """测试错误处理"""

    def test_total_failure_keeps_posts(self):
        """所有来源都失败: 设置 error, 保留已有帖子"""
        a, b = FakeSource(A), FakeSource(B)
        feed = make_feed(a, b)
        run(feed.search_by_query("graph"))
        before = list(feed.posts)

        a.error = NetworkError("FakeA", "HTTP 500: down", 500)
        b.error = NetworkError("FakeB", "Request failed: timeout")
        assert run(feed.search_by_query("vision")) is False

        assert feed.posts == before
        assert feed.error.startswith("All sources failed")
        assert len(feed.failures) == 2
        assert feed.loading is False
        assert feed.state().view == "error"

    def test_failed_search_keeps_current_query(self):
        """搜索全部失败: current_query 不变, load_more 继续原来的查询"""
        a, b = FakeSource(A), FakeSource(B)
        feed = make_feed(a, b)
        run(feed.search_by_query("graph"))

        a.error = NetworkError("FakeA", "down")
        b.error = NetworkError("FakeB", "down")
        run(feed.search_by_query("vision"))

        assert feed.current_query == "graph"
        assert feed.state().current_query == "graph"

        a.error = b.error = None
        assert run(feed.load_more()) is True

        assert a.calls[-1] == ("search", "graph", 6, 6)
        assert all("graph" in p.title for p in feed.posts)

    def test_failed_filter_keeps_current_query(self):
        a = FakeSource(A, error=NetworkError("FakeA", "down"))
        b = FakeSource(B, error=NetworkError("FakeB", "down"))
        feed = make_feed(a, b)

        run(feed.filter_by_field("physics"))

        assert feed.current_query == ""

    def test_error_cleared_on_next_operation(self):
        a = FakeSource(A, error=NetworkError("FakeA", "down"))
        b = FakeSource(B, error=NetworkError("FakeB", "down"))
        feed = make_feed(a, b)
        run(feed.load_initial())
        assert feed.error is not None

        a.error = b.error = None
        run(feed.refresh())

        assert feed.error is None
        assert feed.state().view == "ready"

    def test_unexpected_exception_is_partial(self):
        """非 ProviderError 的异常同样只影响对应来源"""
        a = FakeSource(A, error=ValueError("bad row"))
        feed = make_feed(a)

        run(feed.search_by_query("graph"))

        assert feed.error is None
        assert len(feed.posts) == 6


class TestConcurrency:
    """测试加载状态与并发"""

    def test_loading_visible_during_calls(self):
        observed = []
        feed = None

        def on_call(source):
            observed.append(feed.loading)

        a, b = FakeSource(A, on_call=on_call), FakeSource(B, on_call=on_call)
        feed = make_feed(a, b)

        run(feed.search_by_query("graph"))

        assert observed == [True, True]
        assert feed.loading is False

    def test_concurrent_operation_ignored(self):
        """加载中的第二个操作被忽略"""
        a, b = FakeSource(A), FakeSource(B)
        feed = make_feed(a, b)

        async def main():
            return await asyncio.gather(feed.search_by_query("graph"), feed.search_by_query("vision"))

        assert run(main()) == [True, False]
        assert feed.current_query == "graph"
        assert all(call[1] == "graph" for call in a.calls + b.calls)

    def test_activate_runs_once(self):
        a, b = FakeSource(A), FakeSource(B)
        feed = make_feed(a, b)

        assert run(feed.activate()) is True
        assert run(feed.activate()) is False
        assert len(a.calls) + len(b.calls) == 3

    def test_activate_while_busy_not_consumed(self):
        """其他操作进行中时 activate 不生效, 之后仍可执行首次加载"""
        a, b = FakeSource(A), FakeSource(B)
        feed = make_feed(a, b)

        async def main():
            search = asyncio.create_task(feed.search_by_query("graph"))
            await asyncio.sleep(0)  # search 已在加载中
            busy = await feed.activate()
            await search
            later = await feed.activate()
            return busy, later

        assert run(main()) == (False, True)
        assert feed.current_query == ""
        assert len(a.calls) == 1 + 2
        assert len(b.calls) == 1 + 1


class TestLookups:
    """测试详情与热门主题"""

    def test_get_post_from_feed(self):
        a, b = FakeSource(A), FakeSource(B)
        feed = make_feed(a, b)
        run(feed.search_by_query("graph"))
        target = feed.posts[3]
        a.calls.clear()
        b.calls.clear()

        assert run(feed.get_post(target.id)) == target
        assert a.calls == [] and b.calls == []

    def test_get_post_routes_by_prefix(self):
        limiter = CountingLimiter()
        a, b = FakeSource(A), FakeSource(B)
        feed = make_feed(a, b, limiter=limiter)

        post = run(feed.get_post("semantic_xyz"))

        assert post.id == "semantic_xyz"
        assert b.calls == [("get_by_id", "semantic_xyz")]
        assert a.calls == []
        assert limiter.scheduled == 1

    def test_get_post_missing(self):
        feed = make_feed()
        assert run(feed.get_post("openalex_missing")) is None
        assert run(feed.get_post("arxiv_1234")) is None

    def test_trending_falls_back_to_catalog(self):
        """OpenAlex 不可用时返回内置目录"""
        transport = httpx.MockTransport(lambda r: httpx.Response(500, text="down"))
        source = OpenAlexSource(
            SourceSettings(base_url="https://api.openalex.org"),
            client=httpx.AsyncClient(transport=transport),
        )
        feed = make_feed(a=source)

        assert run(feed.trending_topics(5)) == TOPIC_CATALOG[:5]

    def test_trending_from_openalex(self):
        transport = httpx.MockTransport(
            lambda r: httpx.Response(200, json={"results": [{"display_name": "Graph Learning"}]})
        )
        source = OpenAlexSource(
            SourceSettings(base_url="https://api.openalex.org"),
            client=httpx.AsyncClient(transport=transport),
        )
        feed = make_feed(a=source)

        assert run(feed.trending_topics(5)) == ["Graph Learning"]
