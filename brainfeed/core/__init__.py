"""Core utilities for BrainFeed."""

from .dates import (
    current_year,
    parse_year,
    time_ago,
)
from .ids import AVATARS, THUMBNAILS, avatar_for, make_post_id, strip_prefix, thumbnail_for

__all__ = [
    # IDs
    "make_post_id",
    "strip_prefix",
    "thumbnail_for",
    "avatar_for",
    "THUMBNAILS",
    "AVATARS",
    # Dates
    "current_year",
    "parse_year",
    "time_ago",
]
