"""Deduplication filter for merged source batches."""

from collections.abc import Iterable, Set

from ..models import FeedPost
from .fingerprint import normalize_title


def dedupe(posts: Iterable[FeedPost], already_seen: Set[str] = frozenset()) -> list[FeedPost]:
    """
    Drop duplicate papers from a merged batch.

    The two providers assign unrelated IDs to the same paper, so the
    normalized title is the primary duplicate signal; ``already_seen`` also
    drops posts already shown in this feed. First occurrence wins.
    Blank titles all normalize to "" and collapse into one post.

    Args:
        posts: Merged posts from all sources, in arrival order
        already_seen: Post IDs already in the feed (not modified)

    Returns:
        Kept posts, order preserved
    """
    seen_titles: set[str] = set()
    seen_ids: set[str] = set()
    kept: list[FeedPost] = []

    for post in posts:
        key = normalize_title(post.title)
        if key in seen_titles or post.id in seen_ids or post.id in already_seen:
            continue
        seen_titles.add(key)
        seen_ids.add(post.id)
        kept.append(post)

    return kept
