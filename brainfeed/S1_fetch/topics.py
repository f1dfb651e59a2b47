"""Topic catalog and field filters used to build provider queries."""

from __future__ import annotations

import random

# Canonical topics for the mixed "no query" feed
TOPIC_CATALOG = [
    "artificial intelligence",
    "machine learning",
    "deep learning",
    "neural networks",
    "computer vision",
    "natural language processing",
    "quantum computing",
    "robotics",
    "data science",
    "climate change",
    "renewable energy",
    "gene editing",
    "neuroscience",
    "astrophysics",
    "materials science",
    "cognitive science",
]

# Field filter keyword -> search phrase
FIELD_QUERIES = {
    "ai": "artificial intelligence machine learning",
    "ml": "machine learning neural networks",
    "physics": "quantum physics theoretical physics",
    "biology": "molecular biology genetics",
    "chemistry": "organic chemistry materials science",
    "neuroscience": "neuroscience brain cognitive science",
    "computer-science": "computer science algorithms",
    "data-science": "data science statistics analytics",
    "robotics": "robotics automation control systems",
    "quantum": "quantum computing quantum information",
}


def field_query(field: str) -> str:
    """Map a field keyword to its search phrase; unknown fields pass through."""
    return FIELD_QUERIES.get(field.strip().lower(), field)


def pick_topics(count: int, rng: random.Random | None = None, catalog: list[str] | None = None) -> list[str]:
    """Pick ``count`` distinct topics at random."""
    rng = rng or random.Random()
    catalog = catalog or TOPIC_CATALOG
    return rng.sample(catalog, min(count, len(catalog)))
