"""Step 3: Shuffle merged posts so source order is not visible."""

from .shuffle import shuffle

__all__ = ["shuffle"]
