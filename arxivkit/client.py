# arxivkit/client.py
import logging
import os
import warnings
from collections.abc import AsyncIterator, Iterable
from dataclasses import replace

import httpx
import streamish as st

from arxivkit.atom import parse_feed
from arxivkit.errors import EmptyResponseError, HttpStatusError, MalformedFeedWarning
from arxivkit.http import RetryScheduler
from arxivkit.models import Entry, QueryOptions, QueryResult
from arxivkit.query.compiler import build_search_query, encode_search_query
from arxivkit.search import take
from arxivkit.throttle import TokenBucketLimiter

logger = logging.getLogger(__name__)

DEFAULT_USER_AGENT = "arxivkit/0.1 (+https://export.arxiv.org)"


class Arxiv:
    """arXiv export API client.

    Use as an async context manager. Pass `limiter` to share admission
    control across calls; otherwise each call that sets
    `QueryOptions.rate_limit` gets a limiter of its own.
    """

    name = "arxiv"
    BASE_URL = "https://export.arxiv.org/api/query"
    PREVIEW_CHARS = 500

    def __init__(
        self,
        *,
        base_url: str | None = None,
        user_agent: str | None = None,
        limiter: TokenBucketLimiter | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        env_url, env_agent = self._load_from_env()
        self.base_url = base_url or env_url or self.BASE_URL
        self.user_agent = user_agent or env_agent or DEFAULT_USER_AGENT
        self.limiter = limiter
        self._client = client
        self._owns_client = client is None

    def _load_from_env(self) -> tuple[str | None, str | None]:
        """Load base URL and default user agent from environment variables."""
        return os.getenv("ARXIV_API_URL"), os.getenv("ARXIV_USER_AGENT")

    async def __aenter__(self) -> "Arxiv":
        if self._client is None:
            # Deadlines are enforced per attempt by RetryScheduler
            self._client = httpx.AsyncClient(timeout=None, follow_redirects=True)
            self._owns_client = True
        return self

    async def __aexit__(self, *_: object) -> None:
        if self._client and self._owns_client:
            await self._client.aclose()
            self._client = None

    def build_url(self, options: QueryOptions) -> str:
        """Request URL for `options`; parameters are emitted only when set."""
        params: list[str] = []
        if options.id_list:
            params.append("id_list=" + encode_search_query(",".join(options.id_list)))
        if options.search is not None:
            query = build_search_query(options.search)
            logger.debug("Compiled query: %s", query)
            params.append("search_query=" + encode_search_query(query))
        if options.start is not None:
            params.append(f"start={options.start}")
        if options.max_results is not None:
            params.append(f"max_results={options.max_results}")
        if options.sort_by:
            params.append("sortBy=" + encode_search_query(options.sort_by))
        if options.sort_order:
            params.append("sortOrder=" + encode_search_query(options.sort_order))
        return f"{self.base_url}?{'&'.join(params)}"

    def _limiter_for(self, options: QueryOptions) -> TokenBucketLimiter | None:
        if self.limiter is not None:
            return self.limiter
        if options.rate_limit is not None:
            return TokenBucketLimiter(
                options.rate_limit.tokens_per_interval, options.rate_limit.interval_ms
            )
        return None

    async def query(self, options: QueryOptions) -> QueryResult:
        """Run one request and return the normalized feed.

        Raises:
            TransportError: connection failures or timeouts outlasted the retries.
            HttpStatusError: arXiv answered with a non-2xx status.
            EmptyResponseError: the body was blank.
            FeedParseError: the body was not XML.
        """
        return await self._query(options, self._limiter_for(options))

    async def _query(
        self, options: QueryOptions, limiter: TokenBucketLimiter | None
    ) -> QueryResult:
        if self._client is None:
            raise RuntimeError("Client not initialized. Use 'async with Arxiv():'")

        url = self.build_url(options)
        if limiter is not None:
            await limiter.acquire()

        scheduler = RetryScheduler(
            retries=options.retries,
            timeout_ms=options.timeout_ms,
            user_agent=options.user_agent or self.user_agent,
        )
        logger.debug("Requesting: %s", url)
        response = await scheduler.execute(
            self._client, url, headers={"Accept": "application/atom+xml"}
        )

        if not response.is_success:
            raise HttpStatusError(url, response.status_code, response.reason_phrase, response.text)

        text = response.text
        if not text.strip():
            logger.error(
                "Empty response from arXiv API. URL: %s, status: %s", url, response.status_code
            )
            raise EmptyResponseError(url, response.status_code)

        result = parse_feed(response.content)
        logger.debug("Results count: %s of %s", len(result.entries), result.feed.total_results)

        if result.feed.total_results == 0 and not result.entries:
            logger.warning(
                "Parsed empty results from non-empty response. URL: %s, length: %d",
                url,
                len(text),
            )
            logger.debug("Response preview: %s", text[: self.PREVIEW_CHARS])
            warnings.warn(
                f"Feed from {url} normalized to no entries and no total results",
                MalformedFeedWarning,
                stacklevel=3,
            )

        return result

    async def get_by_id(
        self, ids: Iterable[str], options: QueryOptions | None = None
    ) -> QueryResult:
        """Fetch specific papers, e.g. `["2101.01234", "2101.05678v2"]`."""
        base = options or QueryOptions()
        return await self.query(replace(base, id_list=tuple(ids), search=None))

    async def iter_pages(
        self, options: QueryOptions, page_size: int = 100
    ) -> AsyncIterator[QueryResult]:
        """Yield result pages, starting at `options.start`.

        One limiter gates every page request. Stops after an empty or short
        page, or once the reported total is reached. Pages are not
        de-duplicated.

        Raises:
            ValueError: `page_size` is less than 1.
        """
        _check_page_size(page_size)
        limiter = self._limiter_for(options)
        start = options.start or 0
        while True:
            page = await self._query(replace(options, start=start, max_results=page_size), limiter)
            yield page

            fetched = len(page.entries)
            start += fetched
            total = page.feed.total_results
            if fetched == 0 or fetched < page_size or (total and start >= total):
                break

    async def iter_entries(
        self,
        options: QueryOptions,
        page_size: int = 100,
        max_total: int | None = None,
    ) -> AsyncIterator[Entry]:
        """Yield entries across pages, see `iter_pages`; `max_total` caps the count."""
        _check_page_size(page_size)
        logger.info("Starting paginated search, page size %d", page_size)
        stream = st.stream(self.iter_pages(options, page_size)).flat_map(
            lambda page: list(page.entries)
        )
        if max_total is not None:
            stream = take(max_total, stream)

        count = 0
        async for entry in stream:
            count += 1
            yield entry
        logger.info("Paginated search complete: %d entries", count)


def _check_page_size(page_size: int) -> None:
    if page_size < 1:
        raise ValueError(f"page_size must be at least 1, got {page_size}")


async def get_arxiv_entries(
    options: QueryOptions,
    *,
    client: httpx.AsyncClient | None = None,
    limiter: TokenBucketLimiter | None = None,
) -> QueryResult:
    """Query arXiv once.

    Examples:
        result = await get_arxiv_entries(
            QueryOptions(search=title("quantum computing") & author("John Doe"), max_results=10)
        )
        for entry in result.entries:
            print(entry.arxiv_id, entry.title)
    """
    async with Arxiv(client=client, limiter=limiter) as arxiv:
        return await arxiv.query(options)


async def get_arxiv_entries_by_id(
    ids: Iterable[str],
    options: QueryOptions | None = None,
    *,
    client: httpx.AsyncClient | None = None,
    limiter: TokenBucketLimiter | None = None,
) -> QueryResult:
    """Fetch papers by arXiv identifier."""
    async with Arxiv(client=client, limiter=limiter) as arxiv:
        return await arxiv.get_by_id(ids, options)


async def iter_arxiv_entries(
    options: QueryOptions,
    *,
    page_size: int = 100,
    max_total: int | None = None,
    client: httpx.AsyncClient | None = None,
    limiter: TokenBucketLimiter | None = None,
) -> AsyncIterator[Entry]:
    """Stream entries across result pages."""
    async with Arxiv(client=client, limiter=limiter) as arxiv:
        async for entry in arxiv.iter_entries(options, page_size, max_total):
            yield entry


async def iter_arxiv_pages(
    options: QueryOptions,
    *,
    page_size: int = 100,
    client: httpx.AsyncClient | None = None,
    limiter: TokenBucketLimiter | None = None,
) -> AsyncIterator[QueryResult]:
    """Stream result pages, each with its feed metadata."""
    async with Arxiv(client=client, limiter=limiter) as arxiv:
        async for page in arxiv.iter_pages(options, page_size):
            yield page
