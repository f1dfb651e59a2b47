"""Data models for BrainFeed."""

from enum import Enum

from pydantic import BaseModel, Field, computed_field

from .core import avatar_for, time_ago


class SourceType(str, Enum):
    """Paper-search provider."""
    OPENALEX = "openalex"                  # source A
    SEMANTIC_SCHOLAR = "semantic_scholar"  # source B


# id 前缀, 保证不同来源的原生 ID 不会冲突
ID_PREFIXES = {
    SourceType.OPENALEX: "openalex_",
    SourceType.SEMANTIC_SCHOLAR: "semantic_",
}


class FeedPost(BaseModel):
    """
    一条 feed 帖子 - 与来源无关的统一结构
    id 在整个会话内稳定, 同时用于去重和渲染 key
    """

    # === 核心内容 ===
    id: str
    title: str
    description: str = ""       # 摘要 (已重建/截断)
    author: str = ""            # "A, B, C et al. • Venue"

    # === 元数据 ===
    thumbnail_url: str | None = None
    tags: list[str] = []
    citation_count: int = Field(default=0, ge=0)
    year: int
    url: str | None = None

    # === 溯源 ===
    source: SourceType

    @computed_field
    @property
    def time_ago(self) -> str:
        """Human-readable publication age."""
        return time_ago(self.year)

    @computed_field
    @property
    def likes(self) -> int:
        """Display like count derived from citations."""
        return self.citation_count // 10

    @computed_field
    @property
    def author_avatar(self) -> str:
        return avatar_for(self.author)

    @computed_field
    @property
    def content_type(self) -> str:
        return "paper"

    class Config:
        use_enum_values = True


class SearchResult(BaseModel):
    """One page returned by a source adapter."""
    posts: list[FeedPost] = []
    total: int = 0
    offset: int = 0

    @property
    def exhausted(self) -> bool:
        """True when the provider has nothing beyond this page."""
        return self.offset + len(self.posts) >= self.total


class FeedState(BaseModel):
    """Observable snapshot of a feed aggregator."""
    posts: list[FeedPost] = []
    loading: bool = False
    error: str | None = None
    has_more: bool = False
    queue_length: int = 0
    current_page: int = 1
    current_query: str = ""

    @computed_field
    @property
    def view(self) -> str:
        """Which of the distinct UI states to render."""
        if self.loading:
            return "loading"
        if self.error:
            return "error"
        if not self.posts:
            return "empty"
        return "ready"
