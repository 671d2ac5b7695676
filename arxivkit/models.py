# arxivkit/models.py
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any, Literal

from arxivkit.query.combinators import SearchFilters

SortBy = Literal["relevance", "lastUpdatedDate", "submittedDate"]
SortOrder = Literal["ascending", "descending"]

DEFAULT_TIMEOUT_MS = 10_000
DEFAULT_RETRIES = 3


@dataclass(frozen=True)
class RateLimitConfig:
    """Token bucket settings: at most `tokens_per_interval` requests per `interval_ms`."""

    tokens_per_interval: int
    interval_ms: int


@dataclass(frozen=True)
class QueryOptions:
    """Everything needed to issue one request against the arXiv query endpoint."""

    id_list: tuple[str, ...] = ()
    search: SearchFilters | None = None

    # Pagination and ordering
    start: int | None = None
    max_results: int | None = None
    sort_by: SortBy | None = None
    sort_order: SortOrder | None = None

    # Network tuning
    timeout_ms: int = DEFAULT_TIMEOUT_MS
    retries: int = DEFAULT_RETRIES
    rate_limit: RateLimitConfig | None = None
    user_agent: str | None = None


@dataclass(frozen=True)
class Author:
    """Paper author with optional affiliation."""

    name: str
    affiliation: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return _compact({"name": self.name, "affiliation": self.affiliation})


@dataclass(frozen=True)
class Link:
    """Link attached to an entry (abstract page, PDF, DOI resolver...)."""

    href: str
    rel: str | None = None
    type: str | None = None
    title: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return _compact(
            {"href": self.href, "rel": self.rel, "type": self.type, "title": self.title}
        )


@dataclass(frozen=True)
class FeedMeta:
    """Feed-level metadata and pagination counters."""

    id: str = ""
    updated: str = ""
    title: str = ""
    link: str = ""
    total_results: int = 0
    start_index: int = 0
    items_per_page: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "updated": self.updated,
            "title": self.title,
            "link": self.link,
            "total_results": self.total_results,
            "start_index": self.start_index,
            "items_per_page": self.items_per_page,
        }


@dataclass(frozen=True)
class Entry:
    """Normalized arXiv paper record."""

    # Required fields
    id: str  # Abstract page URL
    arxiv_id: str  # Short identifier with version, e.g. "2507.17541v1"
    title: str
    summary: str
    published: str
    updated: str
    authors: tuple[Author, ...] = ()
    categories: tuple[str, ...] = ()
    links: tuple[Link, ...] = ()

    # Optional fields, None when the feed does not carry them
    primary_category: str | None = None
    doi: str | None = None
    journal_ref: str | None = None
    comment: str | None = None

    @property
    def published_at(self) -> datetime | None:
        return _parse_timestamp(self.published)

    @property
    def updated_at(self) -> datetime | None:
        return _parse_timestamp(self.updated)

    @property
    def pdf_url(self) -> str | None:
        for link in self.links:
            if link.type == "application/pdf" or link.title == "pdf":
                return link.href
        return None

    def to_dict(self) -> dict[str, Any]:
        """Plain dict view; optional fields the feed lacked are left out entirely."""
        return _compact(
            {
                "id": self.id,
                "arxiv_id": self.arxiv_id,
                "title": self.title,
                "summary": self.summary,
                "published": self.published,
                "updated": self.updated,
                "authors": [a.to_dict() for a in self.authors],
                "categories": list(self.categories),
                "primary_category": self.primary_category,
                "links": [link.to_dict() for link in self.links],
                "doi": self.doi,
                "journal_ref": self.journal_ref,
                "comment": self.comment,
            }
        )


@dataclass(frozen=True)
class QueryResult:
    """Feed metadata plus the entries of one response page."""

    feed: FeedMeta
    entries: tuple[Entry, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "feed": self.feed.to_dict(),
            "entries": [e.to_dict() for e in self.entries],
        }


def _compact(data: dict[str, Any]) -> dict[str, Any]:
    return {k: v for k, v in data.items() if v is not None}


def _parse_timestamp(value: str) -> datetime | None:
    if not value:
        return None
    try:
        dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC)
