"""Step 2: Title-based deduplication across sources."""

from .fingerprint import normalize_title
from .filter import dedupe

__all__ = [
    "normalize_title",
    "dedupe",
]
