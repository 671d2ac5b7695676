# arxivkit/__init__.py
"""arxivkit - An async client for the arXiv export API."""

from arxivkit.atom import parse_entries, parse_feed, parse_feed_meta
from arxivkit.client import (
    Arxiv,
    get_arxiv_entries,
    get_arxiv_entries_by_id,
    iter_arxiv_entries,
    iter_arxiv_pages,
)
from arxivkit.errors import (
    ArxivError,
    EmptyResponseError,
    FeedParseError,
    HttpStatusError,
    MalformedFeedWarning,
    TransportError,
)
from arxivkit.http import RetryScheduler, fetch_with_retry
from arxivkit.models import (
    Author,
    Entry,
    FeedMeta,
    Link,
    QueryOptions,
    QueryResult,
    RateLimitConfig,
)
from arxivkit.query import (
    DateRange,
    SearchFilters,
    abstract,
    all_fields,
    author,
    build_search_query,
    category,
    comment,
    exact,
    journal_ref,
    submitted_between,
    title,
)
from arxivkit.search import collect, take
from arxivkit.throttle import TokenBucketLimiter, throttle

__all__ = [
    # Filters
    "SearchFilters",
    "DateRange",
    "all_fields",
    "title",
    "author",
    "abstract",
    "comment",
    "journal_ref",
    "category",
    "submitted_between",
    "exact",
    "build_search_query",
    # Models
    "QueryOptions",
    "RateLimitConfig",
    "QueryResult",
    "FeedMeta",
    "Entry",
    "Author",
    "Link",
    # Client
    "Arxiv",
    "get_arxiv_entries",
    "get_arxiv_entries_by_id",
    "iter_arxiv_entries",
    "iter_arxiv_pages",
    "take",
    "collect",
    # Network
    "RetryScheduler",
    "fetch_with_retry",
    "TokenBucketLimiter",
    "throttle",
    # Feed parsing
    "parse_feed",
    "parse_feed_meta",
    "parse_entries",
    # Errors
    "ArxivError",
    "TransportError",
    "HttpStatusError",
    "EmptyResponseError",
    "FeedParseError",
    "MalformedFeedWarning",
]
