"""BrainFeed - research feed aggregation from the command line."""

import argparse
import asyncio
import json
import logging
import random
import sys
from datetime import datetime
from pathlib import Path

from brainfeed import FeedAggregator, FeedState, build_aggregator, load_settings


# ─────────────────────────────────────────────────────────────
# Logging setup
# ─────────────────────────────────────────────────────────────

def setup_logging(verbose: bool = False):
    """Configure logging to file (and console with --verbose)."""
    log_dir = Path("logs")
    log_dir.mkdir(exist_ok=True)

    today = datetime.now().strftime("%Y-%m-%d")
    log_file = log_dir / f"{today}.log"

    # File handler (detailed)
    file_handler = logging.FileHandler(log_file, encoding="utf-8")
    file_handler.setLevel(logging.DEBUG if verbose else logging.INFO)
    file_handler.setFormatter(logging.Formatter(
        "%(asctime)s | %(name)s | %(levelname)s | %(message)s",
        datefmt="%H:%M:%S"
    ))

    handlers: list[logging.Handler] = [file_handler]
    if verbose:
        handlers.append(logging.StreamHandler())

    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        handlers=handlers,
    )

    return log_file


# ─────────────────────────────────────────────────────────────
# Output formatting
# ─────────────────────────────────────────────────────────────

def print_header(mode: str):
    """Print run header."""
    now = datetime.now().strftime("%Y-%m-%d %H:%M")
    print()
    print("=" * 62)
    print("                BrainFeed - Research Feed                   ")
    print(f"                     {now}                       ")
    print("=" * 62)
    print(f"  Mode: {mode}")
    print()


def print_page(page: int, before: int, state: FeedState):
    """Print one page summary."""
    added = len(state.posts) - before
    print(f"[Page {page}] +{added} posts (total {len(state.posts)}, has_more={state.has_more})")
    if state.error:
        print(f"|  - error: {state.error}")
    print("-" * 50)


def print_posts(state: FeedState, limit: int):
    """Print feed posts."""
    if state.view == "empty":
        print("No papers found.")
        return

    for i, post in enumerate(state.posts[:limit], 1):
        title = post.title[:60] + "..." if len(post.title) > 60 else post.title
        print(f"  {i:>2}. [{post.source}] {title}")
        print(f"      {post.author} | {post.time_ago} | {post.citation_count} citations")
        if post.tags:
            print(f"      tags: {', '.join(post.tags)}")
    if len(state.posts) > limit:
        print(f"  ... and {len(state.posts) - limit} more")
    print()


def parse_args(argv=None):
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="BrainFeed - mixed research feed from OpenAlex and Semantic Scholar",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py                           # Mixed random topics
  python main.py --query "graph neural"    # Free-text search
  python main.py --field physics --pages 2 # Field filter, two pages
  python main.py --seed 42 --json          # Reproducible order, JSON output
        """
    )

    group = parser.add_mutually_exclusive_group()
    group.add_argument("--query", type=str, default=None, help="Free-text search query")
    group.add_argument("--field", type=str, default=None, help="Field filter keyword (e.g. ai, physics)")

    parser.add_argument("--pages", type=int, default=1, help="Number of pages to load (default: 1)")
    parser.add_argument("--seed", type=int, default=None, help="Seed for topic selection and shuffling")
    parser.add_argument("--config", type=str, default=None, help="Settings yaml (default: config/settings.yaml)")
    parser.add_argument("--json", action="store_true", help="Print the final feed state as JSON")
    parser.add_argument("--top", type=int, default=20, help="Number of posts to print (default: 20)")
    parser.add_argument("--verbose", action="store_true", help="Log to console as well")

    return parser.parse_args(argv)


async def collect(feed: FeedAggregator, args) -> FeedState:
    """Run the first load and then load more pages."""
    if args.field:
        await feed.filter_by_field(args.field)
    elif args.query:
        await feed.search_by_query(args.query)
    else:
        await feed.load_initial()

    if not args.json:
        print_page(1, 0, feed.state())

    for page in range(2, args.pages + 1):
        before = len(feed.posts)
        if not await feed.load_more():
            break
        if not args.json:
            print_page(page, before, feed.state())

    return feed.state()


async def run_async(args) -> FeedState:
    settings = load_settings(args.config)
    rng = random.Random(args.seed) if args.seed is not None else None
    feed = build_aggregator(settings, rng=rng)
    try:
        return await collect(feed, args)
    finally:
        await feed.aclose()


def run(argv=None) -> int:
    """Run the CLI; returns the exit code."""
    args = parse_args(argv)
    log_file = setup_logging(args.verbose)
    logger = logging.getLogger(__name__)

    if args.field:
        mode = f"field={args.field}"
    elif args.query:
        mode = f"query={args.query!r}"
    else:
        mode = "mixed topics"

    logger.info("=" * 60)
    logger.info(f"BrainFeed started ({mode})")

    if not args.json:
        print_header(mode)

    state = asyncio.run(run_async(args))

    if args.json:
        print(json.dumps(state.model_dump(), ensure_ascii=False, indent=2, default=str))
    else:
        print_posts(state, args.top)
        print(f"[OK] Done! (log: {log_file})")

    logger.info(f"BrainFeed finished: {len(state.posts)} posts, error={state.error}")
    return 1 if state.error else 0


if __name__ == "__main__":
    try:
        sys.exit(run())
    except KeyboardInterrupt:
        print("\n\nInterrupted by user")
        sys.exit(1)
