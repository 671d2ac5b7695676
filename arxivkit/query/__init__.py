from arxivkit.query.combinators import (
    DateRange,
    SearchFilters,
    abstract,
    all_fields,
    author,
    category,
    comment,
    exact,
    journal_ref,
    submitted_between,
    title,
)
from arxivkit.query.compiler import build_search_query, encode_search_query

__all__ = [
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
    "encode_search_query",
]
