"""BrainFeed API - feed 接口."""

import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Optional

from fastapi import Depends, FastAPI, Header, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel

from brainfeed import FeedPost, FeedState, ProviderError, get_settings
from brainfeed.S1_fetch import FIELD_QUERIES, RateLimiter, build_sources
from brainfeed.sessions import DEFAULT_SESSION, FeedSessionStore

# ─────────────────────────────────────────────────────────────
# 日志配置
# ─────────────────────────────────────────────────────────────

def setup_api_logging():
    """Configure logging for API process."""
    log_dir = Path("logs")
    log_dir.mkdir(exist_ok=True)

    log_file = log_dir / "api.log"

    # File handler
    file_handler = logging.FileHandler(log_file, encoding="utf-8")
    file_handler.setLevel(logging.INFO)
    file_handler.setFormatter(logging.Formatter(
        "%(asctime)s | %(name)s | %(levelname)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S"
    ))

    # Configure root logger
    root_logger = logging.getLogger()
    root_logger.setLevel(logging.INFO)
    root_logger.addHandler(file_handler)

    return log_file

# 初始化日志
_log_file = setup_api_logging()
logger = logging.getLogger(__name__)


# ─────────────────────────────────────────────────────────────
# 请求/响应模型
# ─────────────────────────────────────────────────────────────

class SearchRequest(BaseModel):
    """搜索请求 (空字符串 = 混合主题)"""
    query: str = ""


class FilterRequest(BaseModel):
    """领域过滤请求"""
    field: str


class QueueResponse(BaseModel):
    """限流队列长度 (前端每 ~500ms 轮询)"""
    queue_length: int


class TopicsResponse(BaseModel):
    topics: list[str]


# ─────────────────────────────────────────────────────────────
# App
# ─────────────────────────────────────────────────────────────

def build_store() -> FeedSessionStore:
    """Build the process-wide session store from settings."""
    settings = get_settings()
    primary, secondary = build_sources(settings)
    return FeedSessionStore(primary, secondary, RateLimiter(settings.min_interval), settings)


def create_app(store: Optional[FeedSessionStore] = None) -> FastAPI:
    """
    Create the API app.

    Args:
        store: Session store to serve; built from settings when omitted
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        app.state.store = store if store is not None else build_store()
        yield
        await app.state.store.aclose()

    app = FastAPI(
        title="BrainFeed API",
        description="研究论文 feed 聚合接口",
        version="0.1.0",
        lifespan=lifespan,
    )

    # 允许跨域 (网页调用)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    _register_routes(app)
    return app


# ─────────────────────────────────────────────────────────────
# 会话依赖
# ─────────────────────────────────────────────────────────────

def get_store(request: Request) -> FeedSessionStore:
    return request.app.state.store


async def get_session_id(
    x_session_id: Optional[str] = Header(None),
) -> str:
    """从 X-Session-Id header 获取会话, 缺省为 default"""
    return x_session_id or DEFAULT_SESSION


# ─────────────────────────────────────────────────────────────
# API 端点
# ─────────────────────────────────────────────────────────────

def _register_routes(app: FastAPI) -> None:

    @app.get("/api/health")
    async def health_check():
        """健康检查"""
        return {
            "service": "BrainFeed API",
            "version": "0.1.0",
            "status": "ok",
        }

    @app.get("/api/feed", response_model=FeedState)
    async def get_feed(
        session_id: str = Depends(get_session_id),
        store: FeedSessionStore = Depends(get_store),
    ):
        """当前 feed 状态 (会话不存在时返回空状态, 不创建会话)"""
        feed = store.get(session_id)
        return feed.state() if feed is not None else FeedState()

    @app.post("/api/feed/init", response_model=FeedState)
    async def init_feed(
        session_id: str = Depends(get_session_id),
        store: FeedSessionStore = Depends(get_store),
    ):
        """首次加载 (只执行一次, 之后返回现有状态)"""
        feed = store.get_or_create(session_id)
        await feed.activate()
        return feed.state()

    @app.post("/api/feed/more", response_model=FeedState)
    async def load_more(
        session_id: str = Depends(get_session_id),
        store: FeedSessionStore = Depends(get_store),
    ):
        """加载下一页"""
        feed = store.get_or_create(session_id)
        await feed.load_more()
        return feed.state()

    @app.post("/api/feed/refresh", response_model=FeedState)
    async def refresh_feed(
        session_id: str = Depends(get_session_id),
        store: FeedSessionStore = Depends(get_store),
    ):
        """刷新"""
        feed = store.get_or_create(session_id)
        await feed.refresh()
        return feed.state()

    @app.post("/api/feed/search", response_model=FeedState)
    async def search_feed(
        request: SearchRequest,
        session_id: str = Depends(get_session_id),
        store: FeedSessionStore = Depends(get_store),
    ):
        """按关键词搜索"""
        feed = store.get_or_create(session_id)
        await feed.search_by_query(request.query)
        return feed.state()

    @app.post("/api/feed/filter", response_model=FeedState)
    async def filter_feed(
        request: FilterRequest,
        session_id: str = Depends(get_session_id),
        store: FeedSessionStore = Depends(get_store),
    ):
        """按领域过滤"""
        feed = store.get_or_create(session_id)
        await feed.filter_by_field(request.field)
        return feed.state()

    @app.get("/api/feed/queue", response_model=QueueResponse)
    async def get_queue(store: FeedSessionStore = Depends(get_store)):
        """限流队列长度"""
        return QueueResponse(queue_length=store.limiter.queue_length)

    @app.delete("/api/feed")
    async def discard_feed(
        session_id: str = Depends(get_session_id),
        store: FeedSessionStore = Depends(get_store),
    ):
        """丢弃会话状态"""
        return {"discarded": store.discard(session_id)}

    @app.get("/api/papers/{post_id}", response_model=FeedPost)
    async def get_paper(
        post_id: str,
        session_id: str = Depends(get_session_id),
        store: FeedSessionStore = Depends(get_store),
    ):
        """论文详情"""
        feed = store.reader(session_id)
        try:
            post = await feed.get_post(post_id)
        except ProviderError as e:
            logger.warning(f"Paper lookup failed for {post_id}: {e}")
            raise HTTPException(status_code=502, detail=str(e))
        if post is None:
            raise HTTPException(status_code=404, detail="Paper not found")
        return post

    @app.get("/api/topics", response_model=TopicsResponse)
    async def get_topics(
        limit: int = Query(20, ge=1, le=200, description="最多返回多少个主题"),
        session_id: str = Depends(get_session_id),
        store: FeedSessionStore = Depends(get_store),
    ):
        """热门主题 (失败时回退到内置目录)"""
        feed = store.reader(session_id)
        return TopicsResponse(topics=await feed.trending_topics(limit))

    @app.get("/api/fields")
    async def get_fields():
        """领域关键词 → 搜索短语"""
        return FIELD_QUERIES


app = create_app()


# ─────────────────────────────────────────────────────────────
# 启动
# ─────────────────────────────────────────────────────────────

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8080)
