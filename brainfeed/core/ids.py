"""Post ID and placeholder image utilities."""

import hashlib

THUMBNAILS = [
    "https://images.pexels.com/photos/8386440/pexels-photo-8386440.jpeg?auto=compress&cs=tinysrgb&w=800",
    "https://images.pexels.com/photos/3861969/pexels-photo-3861969.jpeg?auto=compress&cs=tinysrgb&w=800",
    "https://images.pexels.com/photos/159711/books-bookstore-book-reading-159711.jpeg?auto=compress&cs=tinysrgb&w=800",
    "https://images.pexels.com/photos/256541/pexels-photo-256541.jpeg?auto=compress&cs=tinysrgb&w=800",
    "https://images.pexels.com/photos/207662/pexels-photo-207662.jpeg?auto=compress&cs=tinysrgb&w=800",
    "https://images.pexels.com/photos/373543/pexels-photo-373543.jpeg?auto=compress&cs=tinysrgb&w=800",
    "https://images.pexels.com/photos/546819/pexels-photo-546819.jpeg?auto=compress&cs=tinysrgb&w=800",
    "https://images.pexels.com/photos/1181671/pexels-photo-1181671.jpeg?auto=compress&cs=tinysrgb&w=800",
    "https://images.pexels.com/photos/1181677/pexels-photo-1181677.jpeg?auto=compress&cs=tinysrgb&w=800",
    "https://images.pexels.com/photos/2280571/pexels-photo-2280571.jpeg?auto=compress&cs=tinysrgb&w=800",
    "https://images.pexels.com/photos/590020/pexels-photo-590020.jpeg?auto=compress&cs=tinysrgb&w=800",
    "https://images.pexels.com/photos/669615/pexels-photo-669615.jpeg?auto=compress&cs=tinysrgb&w=800",
]

AVATARS = [
    "https://images.pexels.com/photos/2379004/pexels-photo-2379004.jpeg?auto=compress&cs=tinysrgb&w=150",
    "https://images.pexels.com/photos/1239291/pexels-photo-1239291.jpeg?auto=compress&cs=tinysrgb&w=150",
    "https://images.pexels.com/photos/2182970/pexels-photo-2182970.jpeg?auto=compress&cs=tinysrgb&w=150",
    "https://images.pexels.com/photos/1181686/pexels-photo-1181686.jpeg?auto=compress&cs=tinysrgb&w=150",
    "https://images.pexels.com/photos/1222271/pexels-photo-1222271.jpeg?auto=compress&cs=tinysrgb&w=150",
    "https://images.pexels.com/photos/1300402/pexels-photo-1300402.jpeg?auto=compress&cs=tinysrgb&w=150",
    "https://images.pexels.com/photos/1043471/pexels-photo-1043471.jpeg?auto=compress&cs=tinysrgb&w=150",
    "https://images.pexels.com/photos/1040880/pexels-photo-1040880.jpeg?auto=compress&cs=tinysrgb&w=150",
]


def make_post_id(prefix: str, native_id: str) -> str:
    """
    Build a session-stable post ID from a provider's native ID.

    URL-style native IDs are reduced to their last path segment:
        ("openalex_", "https://openalex.org/W123") -> "openalex_W123"
        ("semantic_", "abc123")                     -> "semantic_abc123"
    """
    native = native_id.strip().rstrip("/").split("/")[-1]
    if native.startswith(prefix):
        return native
    return f"{prefix}{native}"


def strip_prefix(post_id: str, prefix: str) -> str:
    """Return the native ID for a prefixed post ID."""
    return post_id[len(prefix):] if post_id.startswith(prefix) else post_id


def _pick(key: str, choices: list[str]) -> str:
    # md5 rather than hash(): hash() is salted per process
    digest = hashlib.md5(key.encode()).hexdigest()
    return choices[int(digest, 16) % len(choices)]


def thumbnail_for(post_id: str) -> str:
    """Deterministic fallback thumbnail for a post without one."""
    return _pick(post_id, THUMBNAILS)


def avatar_for(author: str) -> str:
    """Deterministic avatar for an author string."""
    return _pick(author or "unknown", AVATARS)
