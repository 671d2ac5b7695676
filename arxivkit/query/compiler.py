# arxivkit/query/compiler.py
"""Compile a SearchFilters tree into arXiv's search_query grammar.

The output uses `+` for spaces around the boolean operators, e.g.

    au:"Adrian DelMaestro"+AND+(ti:"checkerboard"+OR+ti:"Pyrochlore")

Percent-encoding for the URL is a separate step, see `encode_search_query`.
"""

from dataclasses import replace
from urllib.parse import quote

from arxivkit.query.combinators import SearchFilters

# (attribute, arXiv field prefix), in emission order
FIELD_PREFIXES: tuple[tuple[str, str], ...] = (
    ("all", "all"),
    ("title", "ti"),
    ("author", "au"),
    ("abstract", "abs"),
    ("comment", "co"),
    ("journal_ref", "jr"),
)


def _quote(term: str) -> str:
    return f'"{term.strip()}"'


def _field_clauses(prefix: str, terms: tuple[str, ...]) -> list[str]:
    # Every scalar term is quoted, so a multi-word term stays a single clause
    # whether or not phrase_exact is set.
    return [f"{prefix}:{_quote(t)}" for t in terms if t.strip()]


def _category_clauses(codes: tuple[str, ...]) -> list[str]:
    return [f"cat:{c.strip()}" for c in codes if c.strip()]


def _range_clause(field: str, start: str, end: str) -> str:
    return f"{field}:[{start}+TO+{end}]"


def _group_or(clauses: list[str]) -> str:
    if not clauses:
        return ""
    if len(clauses) == 1:
        return clauses[0]
    return f"({'+OR+'.join(clauses)})"


def _join_and(parts: list[str]) -> str:
    return "+AND+".join(p for p in parts if p)


def _flatten(filters: SearchFilters) -> SearchFilters:
    return replace(filters, or_=(), and_not=None)


def build_search_query(filters: SearchFilters) -> str:
    """Build the search_query value for `filters`.

    Never raises; an empty filter yields an empty string.
    """
    parts: list[str] = []
    for attr, prefix in FIELD_PREFIXES:
        parts.extend(_field_clauses(prefix, getattr(filters, attr)))
    parts.extend(_category_clauses(filters.category))

    if filters.submitted_date_range is not None:
        date_range = filters.submitted_date_range
        parts.append(_range_clause("submittedDate", date_range.start, date_range.end))

    if filters.or_:
        or_clauses = [build_search_query(_flatten(sub)) for sub in filters.or_]
        parts.append(_group_or([c for c in or_clauses if c]))

    base = _join_and(parts)

    if filters.and_not is not None:
        negated = build_search_query(_flatten(filters.and_not))
        if negated:
            if base:
                return f"{base}+ANDNOT+({negated})"
            return f"ANDNOT+({negated})"

    return base


def encode_search_query(query: str) -> str:
    """Percent-encode a compiled query, keeping `+` so the server reads it as a space."""
    return quote(query, safe="").replace("%2B", "+")
