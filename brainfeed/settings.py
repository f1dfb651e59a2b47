"""Feed settings loaded from config/settings.yaml with environment overrides."""

from __future__ import annotations

import logging
import os
from functools import lru_cache
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field

load_dotenv()

logger = logging.getLogger(__name__)

CONFIG_PATH = Path(__file__).resolve().parents[1] / "config" / "settings.yaml"

OPENALEX_BASE_URL = "https://api.openalex.org"
SEMANTIC_SCHOLAR_BASE_URL = "https://api.semanticscholar.org/graph/v1"


class SourceSettings(BaseModel):
    """Connection settings for one paper-search provider."""

    base_url: str
    mode: str = Field(default="direct", description="'direct' (public API) or 'proxy'")
    api_key: str = ""
    mailto: str = ""
    timeout: float = 30.0


class FeedSettings(BaseModel):
    """Aggregation and pacing parameters."""

    min_interval: float = Field(default=1.0, description="Seconds between provider requests")
    batch_size: int = Field(default=4, description="Posts requested per topic call")
    search_batch_size: int = Field(default=6, description="Posts requested per source on search/filter")
    max_posts: int = Field(default=12, description="Cap on posts kept per load")
    has_more_threshold: int = Field(default=8, description="Minimum kept posts to offer another page")
    topics_per_load: int = 3
    primary_calls: int = Field(default=2, description="Topic calls sent to source A; the rest go to source B")
    initial_delay: float = Field(default=0.3, description="Debounce before the first load")

    openalex: SourceSettings = Field(
        default_factory=lambda: SourceSettings(base_url=OPENALEX_BASE_URL)
    )
    semantic_scholar: SourceSettings = Field(
        default_factory=lambda: SourceSettings(base_url=SEMANTIC_SCHOLAR_BASE_URL)
    )


def _read_yaml(path: Path) -> dict[str, Any]:
    if not path.exists():
        return {}
    try:
        return yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        logger.warning(f"Failed to parse {path}: {e}")
        return {}


def _env_overrides(data: dict[str, Any]) -> dict[str, Any]:
    """Apply environment variables on top of the yaml data."""
    env_map = {
        "OPENALEX_BASE_URL": ("openalex", "base_url"),
        "OPENALEX_MODE": ("openalex", "mode"),
        "OPENALEX_MAILTO": ("openalex", "mailto"),
        "SEMANTIC_SCHOLAR_BASE_URL": ("semantic_scholar", "base_url"),
        "SEMANTIC_SCHOLAR_MODE": ("semantic_scholar", "mode"),
        "SEMANTIC_SCHOLAR_API_KEY": ("semantic_scholar", "api_key"),
    }
    for env_name, (section, key) in env_map.items():
        value = os.environ.get(env_name)
        if value:
            data.setdefault(section, {})[key] = value

    interval = os.environ.get("FEED_MIN_INTERVAL")
    if interval:
        try:
            data["min_interval"] = float(interval)
        except ValueError:
            logger.warning(f"Ignoring invalid FEED_MIN_INTERVAL={interval!r}")
    return data


def load_settings(path: Path | str | None = None) -> FeedSettings:
    """
    Load feed settings.

    Args:
        path: Optional yaml path. Defaults to config/settings.yaml

    Returns:
        FeedSettings with defaults for anything not configured
    """
    raw = _read_yaml(Path(path) if path else CONFIG_PATH)

    data: dict[str, Any] = dict(raw.get("feed") or {})
    sources = raw.get("sources") or {}
    defaults = {
        "openalex": OPENALEX_BASE_URL,
        "semantic_scholar": SEMANTIC_SCHOLAR_BASE_URL,
    }
    for name, base_url in defaults.items():
        section = dict(sources.get(name) or {})
        section.setdefault("base_url", base_url)
        data[name] = section

    return FeedSettings(**_env_overrides(data))


@lru_cache(maxsize=1)
def get_settings() -> FeedSettings:
    """Process-wide settings, loaded once."""
    return load_settings()
