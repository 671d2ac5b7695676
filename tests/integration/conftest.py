from __future__ import annotations

import os
from dataclasses import dataclass

import pytest

from arxivkit.models import Entry, RateLimitConfig
from arxivkit.throttle import TokenBucketLimiter

MODULARITY_PAPER_ID = "2507.17541"
MODULARITY_PAPER_TITLE = "Approximating temporal modularity on graphs of small underlying treewidth"
MODULARITY_PAPER_CATEGORY = "math.CO"

# arXiv asks for one request every three seconds
LIVE_RATE_LIMIT = RateLimitConfig(tokens_per_interval=1, interval_ms=3000)

requires_live = pytest.mark.skipif(
    os.environ.get("ARXIV_INTEGRATION") != "1",
    reason="ARXIV_INTEGRATION=1 not set",
)


@pytest.fixture(scope="session")
def limiter() -> TokenBucketLimiter:
    return TokenBucketLimiter(LIVE_RATE_LIMIT.tokens_per_interval, LIVE_RATE_LIMIT.interval_ms)


@dataclass(frozen=True)
class EntryExpectation:
    title_contains: str | None = None
    author_contains: str | None = None
    category: str | None = None
    has_summary: bool = True


def assert_entry_satisfies(entry: Entry, expect: EntryExpectation) -> None:
    assert entry.id.startswith("http"), f"Entry id should be a URL, got: {entry.id}"
    assert entry.arxiv_id, "Entry must have an arXiv id"

    if expect.title_contains:
        assert expect.title_contains.lower() in entry.title.lower(), (
            f"Title should contain '{expect.title_contains}', got: {entry.title}"
        )

    if expect.author_contains:
        names = [a.name for a in entry.authors]
        assert expect.author_contains.lower() in " ".join(names).lower(), (
            f"Authors should contain '{expect.author_contains}', got: {names}"
        )

    if expect.category:
        assert expect.category in entry.categories, (
            f"Categories should contain '{expect.category}', got: {entry.categories}"
        )

    if expect.has_summary:
        assert entry.summary, "Entry must have a summary"
