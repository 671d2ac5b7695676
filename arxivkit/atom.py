# arxivkit/atom.py
"""Normalize arXiv Atom feeds into FeedMeta and Entry records."""

import logging
import re
import xml.etree.ElementTree as ET

from arxivkit.errors import FeedParseError
from arxivkit.models import Author, Entry, FeedMeta, Link, QueryResult

logger = logging.getLogger(__name__)

ATOM_NS = "http://www.w3.org/2005/Atom"
ARXIV_NS = "http://arxiv.org/schemas/atom"
OPENSEARCH_NS = "http://a9.com/-/spec/opensearch/1.1/"

# Namespaces treated as "unprefixed"; anything else (arxiv:, opensearch:) is a fallback
_UNPREFIXED = frozenset({"", ATOM_NS})

_ABS_MARKER = "/abs/"
_WHITESPACE = re.compile(r"\s+")
_LEADING_INT = re.compile(r"\s*([+-]?\d+)")
_ARXIV_PREFIX = re.compile(r"^arxiv:", re.IGNORECASE)


def _split_tag(tag: str) -> tuple[str, str]:
    if tag.startswith("{"):
        ns, _, local = tag[1:].partition("}")
        return ns, local
    return "", tag


def _children(parent: ET.Element | None, name: str) -> list[ET.Element]:
    """Direct children with local name `name`, unprefixed ones first.

    Always a list, so a single element and a repeated one read the same way.
    """
    if parent is None:
        return []
    primary: list[ET.Element] = []
    fallback: list[ET.Element] = []
    for child in parent:
        if not isinstance(child.tag, str):
            continue
        ns, local = _split_tag(child.tag)
        if local != name:
            continue
        (primary if ns in _UNPREFIXED else fallback).append(child)
    return primary + fallback


def _first(parent: ET.Element | None, name: str) -> ET.Element | None:
    found = _children(parent, name)
    return found[0] if found else None


def _text(element: ET.Element | None) -> str:
    if element is None:
        return ""
    return "".join(element.itertext()).strip()


def _optional_text(parent: ET.Element, name: str) -> str | None:
    for element in _children(parent, name):
        value = _text(element)
        if value:
            return value
    return None


def _int(value: str) -> int:
    match = _LEADING_INT.match(value)
    return int(match.group(1)) if match else 0


def normalize_whitespace(value: str) -> str:
    return _WHITESPACE.sub(" ", value).strip()


def extract_arxiv_id(url: str) -> str:
    """Short identifier from an abstract URL.

    >>> extract_arxiv_id("http://arxiv.org/abs/2507.17541v1")
    '2507.17541v1'
    """
    if not url:
        return ""
    cleaned = url.split("#", 1)[0].split("?", 1)[0]
    last = cleaned.rsplit("/", 1)[-1]
    return _ARXIV_PREFIX.sub("", last)


def _parse_document(xml: str | bytes) -> ET.Element | None:
    """Parse the document and return its feed element, None when the root is something else."""
    try:
        root = ET.fromstring(xml)
    except ET.ParseError as e:
        raise FeedParseError(f"Response is not well-formed XML: {e}") from e
    _, local = _split_tag(root.tag)
    if local != "feed":
        logger.debug("Unexpected root element: %s", root.tag)
        return None
    return root


def _feed_meta(feed: ET.Element | None) -> FeedMeta:
    links = _children(feed, "link")
    self_link = next((link.get("href") for link in links if link.get("rel") == "self"), None)
    first_link = links[0].get("href") if links else None

    return FeedMeta(
        id=_text(_first(feed, "id")),
        updated=_text(_first(feed, "updated")),
        title=_text(_first(feed, "title")),
        link=self_link or first_link or "",
        total_results=_int(_text(_first(feed, "totalResults"))),
        start_index=_int(_text(_first(feed, "startIndex"))),
        items_per_page=_int(_text(_first(feed, "itemsPerPage"))),
    )


def _parse_author(element: ET.Element) -> Author:
    return Author(
        name=_text(_first(element, "name")),
        affiliation=_optional_text(element, "affiliation"),
    )


def _parse_link(element: ET.Element) -> Link | None:
    href = element.get("href")
    if not href:
        return None
    return Link(
        href=href,
        rel=element.get("rel") or None,
        type=element.get("type") or None,
        title=element.get("title") or None,
    )


def _abs_link(links: list[Link]) -> str | None:
    for link in links:
        if link.rel in (None, "alternate") and _ABS_MARKER in link.href:
            return link.href
    for link in links:
        if _ABS_MARKER in link.href:
            return link.href
    return None


def _parse_entry(element: ET.Element) -> Entry:
    links = [link for link in map(_parse_link, _children(element, "link")) if link]
    categories = [
        term for term in (c.get("term") for c in _children(element, "category")) if term
    ]

    primary = _first(element, "primary_category")
    primary_category = primary.get("term") if primary is not None else None

    comment = normalize_whitespace(_optional_text(element, "comment") or "")
    entry_id = _text(_first(element, "id")) or _abs_link(links) or ""

    return Entry(
        id=entry_id,
        arxiv_id=extract_arxiv_id(entry_id),
        title=normalize_whitespace(_text(_first(element, "title"))),
        summary=normalize_whitespace(_text(_first(element, "summary"))),
        published=_text(_first(element, "published")),
        updated=_text(_first(element, "updated")),
        authors=tuple(_parse_author(a) for a in _children(element, "author")),
        categories=tuple(categories),
        links=tuple(links),
        primary_category=primary_category or None,
        doi=_optional_text(element, "doi"),
        journal_ref=_optional_text(element, "journal_ref"),
        comment=comment or None,
    )


def parse_feed_meta(xml: str | bytes) -> FeedMeta:
    """Feed-level metadata; missing fields default to empty strings and zeros."""
    return _feed_meta(_parse_document(xml))


def parse_entries(xml: str | bytes) -> list[Entry]:
    """All entries of the feed, in document order."""
    return [_parse_entry(e) for e in _children(_parse_document(xml), "entry")]


def parse_feed(xml: str | bytes) -> QueryResult:
    """Parse once and return both the feed metadata and its entries."""
    feed = _parse_document(xml)
    entries = tuple(_parse_entry(e) for e in _children(feed, "entry"))
    logger.debug("Parsed %d entries", len(entries))
    return QueryResult(feed=_feed_meta(feed), entries=entries)
