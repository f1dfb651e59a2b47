"""Title normalization for cross-source deduplication."""

import re


def normalize_title(title: str | None) -> str:
    """
    Normalize title for comparison.

    - Lowercase
    - Remove punctuation
    - Collapse whitespace

    Examples:
        "Deep Learning Basics"   -> "deep learning basics"
        "deep  learning basics!!" -> "deep learning basics"
    """
    if not title:
        return ""

    title = title.lower()
    title = re.sub(r'[^\w\s]', '', title)  # Remove punctuation
    title = re.sub(r'\s+', ' ', title)      # Collapse whitespace
    return title.strip()
