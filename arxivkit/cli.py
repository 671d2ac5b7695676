# arxivkit/cli.py
import asyncio
import logging
import sys
from contextlib import aclosing
from pathlib import Path
from typing import Annotated

import cyclopts

from arxivkit.client import (
    get_arxiv_entries,
    get_arxiv_entries_by_id,
    iter_arxiv_entries,
    iter_arxiv_pages,
)
from arxivkit.errors import ArxivError
from arxivkit.export import Exporter, get_exporter
from arxivkit.export.tree import TreeExporter
from arxivkit.models import (
    DEFAULT_RETRIES,
    DEFAULT_TIMEOUT_MS,
    Entry,
    FeedMeta,
    QueryOptions,
    QueryResult,
    RateLimitConfig,
    SortBy,
    SortOrder,
)
from arxivkit.query.combinators import DateRange, SearchFilters

app = cyclopts.App(
    name="arxivkit",
    help="Search the arXiv export API.",
)

# arXiv asks clients to wait 3 seconds between requests
DEFAULT_RATE_LIMIT = RateLimitConfig(tokens_per_interval=1, interval_ms=3000)


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _build_filters(
    all_: list[str] | None,
    title: list[str] | None,
    author: list[str] | None,
    abstract: list[str] | None,
    comment: list[str] | None,
    journal_ref: list[str] | None,
    category: list[str] | None,
    date_from: str | None,
    date_to: str | None,
    exclude_title: list[str] | None,
    exclude_author: list[str] | None,
    phrase: bool,
) -> SearchFilters:
    exclusions = SearchFilters(title=exclude_title or (), author=exclude_author or ())
    date_range = DateRange(date_from, date_to) if date_from and date_to else None
    return SearchFilters(
        all=all_ or (),
        title=title or (),
        author=author or (),
        abstract=abstract or (),
        comment=comment or (),
        journal_ref=journal_ref or (),
        category=category or (),
        submitted_date_range=date_range,
        and_not=None if exclusions.is_empty() else exclusions,
        phrase_exact=phrase,
    )


def _emit(result: QueryResult, exporter: Exporter, output: Path | None) -> None:
    if output:
        exporter.export(result, output)
        print(f"Exported {len(result.entries)} entries to {output}")
    else:
        print(exporter.to_string(result))


async def _stream_entries(options: QueryOptions, page_size: int, total: int) -> int:
    """Print each entry as it arrives."""
    tree = TreeExporter()
    count = 0
    async for entry in iter_arxiv_entries(options, page_size=page_size, max_total=total):
        if count > 0:
            print()
        print(tree.format_entry(entry))
        count += 1
    return count


async def _collect_entries(options: QueryOptions, page_size: int, total: int) -> QueryResult:
    """Gather up to `total` entries, keeping the first page's feed metadata."""
    feed: FeedMeta | None = None
    entries: list[Entry] = []
    async with aclosing(iter_arxiv_pages(options, page_size=page_size)) as pages:
        async for page in pages:
            if feed is None:
                feed = page.feed
            entries.extend(page.entries[: total - len(entries)])
            if len(entries) >= total:
                break
    return QueryResult(feed=feed or FeedMeta(), entries=tuple(entries))


@app.command(name="search")
def search(
    all_: Annotated[
        list[str] | None,
        cyclopts.Parameter(name="--all", help="Terms matched in any field"),
    ] = None,
    title: Annotated[
        list[str] | None,
        cyclopts.Parameter(name=["--title", "-t"], help="Title terms (ti:)"),
    ] = None,
    author: Annotated[
        list[str] | None,
        cyclopts.Parameter(name=["--author", "-a"], help="Author names (au:)"),
    ] = None,
    abstract: Annotated[
        list[str] | None,
        cyclopts.Parameter(name="--abstract", help="Abstract terms (abs:)"),
    ] = None,
    comment: Annotated[
        list[str] | None,
        cyclopts.Parameter(name="--comment", help="Comment terms (co:)"),
    ] = None,
    journal_ref: Annotated[
        list[str] | None,
        cyclopts.Parameter(name="--journal-ref", help="Journal reference terms (jr:)"),
    ] = None,
    category: Annotated[
        list[str] | None,
        cyclopts.Parameter(name=["--category", "-c"], help="Category codes, e.g. cs.LG"),
    ] = None,
    date_from: Annotated[
        str | None,
        cyclopts.Parameter(name="--from", help="Submitted on or after, YYYYMMDDTTTT (GMT)"),
    ] = None,
    date_to: Annotated[
        str | None,
        cyclopts.Parameter(name="--to", help="Submitted on or before, YYYYMMDDTTTT (GMT)"),
    ] = None,
    exclude_title: Annotated[
        list[str] | None,
        cyclopts.Parameter(name="--exclude-title", help="Drop papers with these title terms"),
    ] = None,
    exclude_author: Annotated[
        list[str] | None,
        cyclopts.Parameter(name="--exclude-author", help="Drop papers by these authors"),
    ] = None,
    phrase: Annotated[
        bool,
        cyclopts.Parameter(name="--phrase", help="Match terms as exact phrases"),
    ] = False,
    ids: Annotated[
        list[str] | None,
        cyclopts.Parameter(name="--id", help="Restrict to these arXiv identifiers"),
    ] = None,
    start: Annotated[
        int,
        cyclopts.Parameter(name="--start", help="Offset of the first result"),
    ] = 0,
    max_results: Annotated[
        int,
        cyclopts.Parameter(name=["--max", "-n"], help="Results per request"),
    ] = 100,
    total: Annotated[
        int | None,
        cyclopts.Parameter(name="--total", help="Page through results up to this many"),
    ] = None,
    sort_by: Annotated[
        SortBy | None,
        cyclopts.Parameter(name="--sort-by", help="relevance, lastUpdatedDate, submittedDate"),
    ] = None,
    sort_order: Annotated[
        SortOrder | None,
        cyclopts.Parameter(name="--sort-order", help="ascending or descending"),
    ] = None,
    output: Annotated[
        Path | None,
        cyclopts.Parameter(name=["--output", "-o"], help="Output file path"),
    ] = None,
    format: Annotated[
        str,
        cyclopts.Parameter(name=["--format", "-f"], help="Output format: tree, json"),
    ] = "tree",
    timeout: Annotated[
        int,
        cyclopts.Parameter(name="--timeout", help="Per-attempt timeout in milliseconds"),
    ] = DEFAULT_TIMEOUT_MS,
    retries: Annotated[
        int,
        cyclopts.Parameter(name="--retries", help="Retries after the first attempt"),
    ] = DEFAULT_RETRIES,
    verbose: Annotated[
        bool,
        cyclopts.Parameter(name=["--verbose", "-v"], help="Debug logging"),
    ] = False,
) -> None:
    """Search arXiv papers."""
    _configure_logging(verbose)

    if bool(date_from) != bool(date_to):
        print("Error: --from and --to must be given together.", file=sys.stderr)
        sys.exit(1)
    if total is not None and max_results < 1:
        print("Error: --max must be at least 1 when paging with --total.", file=sys.stderr)
        sys.exit(1)

    filters = _build_filters(
        all_,
        title,
        author,
        abstract,
        comment,
        journal_ref,
        category,
        date_from,
        date_to,
        exclude_title,
        exclude_author,
        phrase,
    )
    if filters.is_empty() and not ids:
        print("Error: No search terms or ids given.", file=sys.stderr)
        sys.exit(1)

    # Auto-switch to JSON when piping
    if format == "tree" and output is None and not sys.stdout.isatty():
        format = "json"

    try:
        exporter = get_exporter(format)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    options = QueryOptions(
        id_list=tuple(ids or ()),
        search=None if filters.is_empty() else filters,
        start=start,
        max_results=max_results,
        sort_by=sort_by,
        sort_order=sort_order,
        timeout_ms=timeout,
        retries=retries,
        rate_limit=DEFAULT_RATE_LIMIT,
    )

    try:
        if total is not None and format == "tree" and output is None:
            count = asyncio.run(_stream_entries(options, max_results, total))
            print(f"\nTotal: {count} entries", file=sys.stderr)
            return

        if total is not None:
            result = asyncio.run(_collect_entries(options, max_results, total))
        else:
            result = asyncio.run(get_arxiv_entries(options))
    except ArxivError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    _emit(result, exporter, output)
    print(
        f"\nTotal: {len(result.entries)} entries ({result.feed.total_results} matching)",
        file=sys.stderr,
    )


@app.command(name="fetch")
def fetch(
    ids: Annotated[list[str], cyclopts.Parameter(help="arXiv identifiers, e.g. 2507.17541")],
    output: Annotated[
        Path | None,
        cyclopts.Parameter(name=["--output", "-o"], help="Output file path"),
    ] = None,
    format: Annotated[
        str,
        cyclopts.Parameter(name=["--format", "-f"], help="Output format: tree, json"),
    ] = "tree",
    verbose: Annotated[
        bool,
        cyclopts.Parameter(name=["--verbose", "-v"], help="Debug logging"),
    ] = False,
) -> None:
    """Fetch papers by arXiv identifier."""
    _configure_logging(verbose)

    if format == "tree" and output is None and not sys.stdout.isatty():
        format = "json"

    try:
        exporter = get_exporter(format)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    try:
        result = asyncio.run(
            get_arxiv_entries_by_id(ids, QueryOptions(max_results=len(ids)))
        )
    except ArxivError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    _emit(result, exporter, output)


def main() -> None:
    app()


if __name__ == "__main__":
    main()
