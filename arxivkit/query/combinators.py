# arxivkit/query/combinators.py
from dataclasses import dataclass, fields, replace

_TERM_FIELDS = ("all", "title", "author", "abstract", "comment", "journal_ref", "category")


@dataclass(frozen=True)
class DateRange:
    """Submission date window, endpoints in arXiv's YYYYMMDDTTTT (GMT) format."""

    start: str
    end: str


@dataclass(frozen=True)
class SearchFilters:
    """Filter tree for an arXiv search.

    Terms inside a field and the fields themselves are ANDed. `or_` holds
    sub-filters ORed together as one extra AND term, and `and_not` holds a
    single sub-filter to exclude. Sub-filters are compiled one level deep:
    their own `or_` and `and_not` are ignored, and the `|` and `~`
    operators raise `ValueError` rather than build such a tree.
    """

    all: tuple[str, ...] = ()
    title: tuple[str, ...] = ()
    author: tuple[str, ...] = ()
    abstract: tuple[str, ...] = ()
    comment: tuple[str, ...] = ()
    journal_ref: tuple[str, ...] = ()
    category: tuple[str, ...] = ()
    submitted_date_range: DateRange | None = None

    # Composition
    or_: tuple["SearchFilters", ...] = ()
    and_not: "SearchFilters | None" = None

    phrase_exact: bool = False

    def __post_init__(self) -> None:
        # Accept lists from callers but keep the record hashable
        for name in (*_TERM_FIELDS, "or_"):
            value = getattr(self, name)
            if not isinstance(value, tuple):
                object.__setattr__(self, name, tuple(value))

    def __and__(self, other: "SearchFilters") -> "SearchFilters":
        if self.or_ and other.or_:
            raise ValueError("Both filters carry an OR group; merge them with | first")
        if self.and_not is not None and other.and_not is not None:
            raise ValueError("Both filters carry a negation; only one ANDNOT is supported")
        if self.submitted_date_range is not None and other.submitted_date_range is not None:
            raise ValueError("Both filters carry a submitted date range")

        merged = {name: getattr(self, name) + getattr(other, name) for name in _TERM_FIELDS}
        return SearchFilters(
            **merged,
            submitted_date_range=self.submitted_date_range or other.submitted_date_range,
            or_=self.or_ or other.or_,
            and_not=self.and_not if self.and_not is not None else other.and_not,
            phrase_exact=self.phrase_exact or other.phrase_exact,
        )

    def __or__(self, other: "SearchFilters") -> "SearchFilters":
        members = self._or_members() + other._or_members()
        for member in members:
            if member.or_ or member.and_not is not None:
                raise ValueError(
                    "An OR member cannot carry its own OR group or negation; "
                    "arXiv queries nest only one level"
                )
        return SearchFilters(or_=members)

    def __invert__(self) -> "SearchFilters":
        if self.or_ or self.and_not is not None:
            raise ValueError(
                "A negated filter cannot carry an OR group or negation; "
                "arXiv queries nest only one level"
            )
        return SearchFilters(and_not=self)

    def is_empty(self) -> bool:
        """True when the filter would compile to an empty query."""
        return all(not getattr(self, f.name) for f in fields(self) if f.name != "phrase_exact")

    def _or_members(self) -> tuple["SearchFilters", ...]:
        # A bare OR group is flattened into its members
        if self.or_ and replace(self, or_=()).is_empty():
            return self.or_
        return (self,)


# Factory functions (public API)
def all_fields(*terms: str) -> SearchFilters:
    return SearchFilters(all=terms)


def title(*terms: str) -> SearchFilters:
    return SearchFilters(title=terms)


def author(*terms: str) -> SearchFilters:
    return SearchFilters(author=terms)


def abstract(*terms: str) -> SearchFilters:
    return SearchFilters(abstract=terms)


def comment(*terms: str) -> SearchFilters:
    return SearchFilters(comment=terms)


def journal_ref(*terms: str) -> SearchFilters:
    return SearchFilters(journal_ref=terms)


def category(*codes: str) -> SearchFilters:
    return SearchFilters(category=codes)


def submitted_between(start: str, end: str) -> SearchFilters:
    return SearchFilters(submitted_date_range=DateRange(start, end))


def exact(filters: SearchFilters) -> SearchFilters:
    """Mark a filter for exact phrase matching."""
    return replace(filters, phrase_exact=True)
