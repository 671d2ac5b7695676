from pathlib import Path

import httpx
import pytest

from arxivkit.client import (
    DEFAULT_USER_AGENT,
    Arxiv,
    get_arxiv_entries,
    get_arxiv_entries_by_id,
    iter_arxiv_entries,
    iter_arxiv_pages,
)
from arxivkit.errors import EmptyResponseError, HttpStatusError, MalformedFeedWarning
from arxivkit.models import QueryOptions, RateLimitConfig
from arxivkit.query import author, title
from arxivkit.search import collect
from arxivkit.throttle import TokenBucketLimiter

FIXTURES = Path(__file__).parent / "fixtures"
SINGLE = (FIXTURES / "2507.17541.xml").read_bytes()
SEARCH = (FIXTURES / "search_agdur.xml").read_bytes()


def make_client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


def page_feed(start: int, count: int, total: int) -> str:
    entries = "".join(
        f"<entry><id>http://arxiv.org/abs/2101.{n:05d}v1</id><title>Paper {n}</title></entry>"
        for n in range(start, start + count)
    )
    return (
        '<feed xmlns="http://www.w3.org/2005/Atom" '
        'xmlns:opensearch="http://a9.com/-/spec/opensearch/1.1/">'
        f"<opensearch:totalResults>{total}</opensearch:totalResults>"
        f"<opensearch:startIndex>{start}</opensearch:startIndex>"
        f"{entries}</feed>"
    )


def paging_handler(total: int, requests: list[httpx.Request]):
    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        start = int(request.url.params["start"])
        size = int(request.url.params["max_results"])
        count = max(0, min(size, total - start))
        return httpx.Response(200, text=page_feed(start, count, total))

    return handler


class TestBuildUrl:
    def test_parameter_order_and_encoding(self):
        arxiv = Arxiv(base_url="https://example.test/api/query")
        options = QueryOptions(
            id_list=("2101.00001", "2101.00002v2"),
            search=title("x"),
            start=0,
            max_results=5,
            sort_by="submittedDate",
            sort_order="descending",
        )
        assert arxiv.build_url(options) == (
            "https://example.test/api/query?id_list=2101.00001%2C2101.00002v2"
            "&search_query=ti%3A%22x%22&start=0&max_results=5"
            "&sortBy=submittedDate&sortOrder=descending"
        )

    def test_unset_parameters_are_omitted(self):
        arxiv = Arxiv(base_url="https://example.test/q")
        url = arxiv.build_url(QueryOptions(search=author("Ada Lovelace") & title("analysis")))
        assert url == (
            "https://example.test/q?search_query="
            "au%3A%22Ada%20Lovelace%22+AND+ti%3A%22analysis%22"
        )


class TestConfiguration:
    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("ARXIV_API_URL", raising=False)
        monkeypatch.delenv("ARXIV_USER_AGENT", raising=False)
        arxiv = Arxiv()
        assert arxiv.base_url == Arxiv.BASE_URL
        assert arxiv.user_agent == DEFAULT_USER_AGENT

    def test_env_overrides(self, monkeypatch):
        monkeypatch.setenv("ARXIV_API_URL", "http://localhost:8080/api/query")
        monkeypatch.setenv("ARXIV_USER_AGENT", "env-agent/1.0")
        arxiv = Arxiv()
        assert arxiv.base_url == "http://localhost:8080/api/query"
        assert arxiv.user_agent == "env-agent/1.0"

    def test_arguments_win_over_env(self, monkeypatch):
        monkeypatch.setenv("ARXIV_API_URL", "http://localhost:8080/api/query")
        arxiv = Arxiv(base_url="https://example.test/q", user_agent="arg-agent")
        assert arxiv.base_url == "https://example.test/q"
        assert arxiv.user_agent == "arg-agent"

    @pytest.mark.asyncio
    async def test_query_requires_context(self):
        with pytest.raises(RuntimeError, match="not initialized"):
            await Arxiv().query(QueryOptions(search=title("x")))


class TestQuery:
    @pytest.mark.asyncio
    async def test_success(self):
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, content=SINGLE)

        async with make_client(handler) as http:
            result = await get_arxiv_entries(
                QueryOptions(search=title("temporal modularity"), max_results=10), client=http
            )

        assert result.feed.total_results == 1
        assert result.entries[0].arxiv_id == "2507.17541v1"
        assert len(seen) == 1
        assert seen[0].headers["Accept"] == "application/atom+xml"
        assert seen[0].headers["User-Agent"]
        assert seen[0].url.params["search_query"] == 'ti:"temporal modularity"'

    @pytest.mark.asyncio
    async def test_user_agent_from_options(self):
        agents: list[str] = []

        def handler(request: httpx.Request) -> httpx.Response:
            agents.append(request.headers["User-Agent"])
            return httpx.Response(200, content=SINGLE)

        async with make_client(handler) as http:
            async with Arxiv(client=http, user_agent="client-agent") as arxiv:
                await arxiv.query(QueryOptions(search=title("x")))
                await arxiv.query(QueryOptions(search=title("x"), user_agent="call-agent"))

        assert agents == ["client-agent", "call-agent"]

    @pytest.mark.asyncio
    async def test_caller_client_is_not_closed(self):
        async with make_client(lambda request: httpx.Response(200, content=SINGLE)) as http:
            await get_arxiv_entries(QueryOptions(search=title("x")), client=http)
            assert not http.is_closed

    @pytest.mark.asyncio
    async def test_http_status_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(400, text="Malformed query: " + "x" * 1000)

        async with make_client(handler) as http:
            with pytest.raises(HttpStatusError) as exc_info:
                await get_arxiv_entries(QueryOptions(search=title("x")), client=http)

        err = exc_info.value
        assert err.status_code == 400
        assert err.reason == "Bad Request"
        assert err.body.startswith("Malformed query")
        assert len(err.body) == HttpStatusError.BODY_EXCERPT
        assert "400" in str(err)

    @pytest.mark.asyncio
    async def test_retryable_status_surfaces_after_last_attempt(self):
        calls = 0

        def handler(request: httpx.Request) -> httpx.Response:
            nonlocal calls
            calls += 1
            return httpx.Response(503, text="busy")

        async with make_client(handler) as http:
            with pytest.raises(HttpStatusError) as exc_info:
                await get_arxiv_entries(QueryOptions(search=title("x"), retries=0), client=http)

        assert calls == 1
        assert exc_info.value.status_code == 503

    @pytest.mark.asyncio
    async def test_blank_body(self):
        async with make_client(lambda request: httpx.Response(200, text="  \n ")) as http:
            with pytest.raises(EmptyResponseError) as exc_info:
                await get_arxiv_entries(QueryOptions(search=title("x")), client=http)
        assert exc_info.value.status_code == 200

    @pytest.mark.asyncio
    async def test_feed_without_results_warns(self):
        body = '<feed xmlns="http://www.w3.org/2005/Atom"><title>odd</title></feed>'
        async with make_client(lambda request: httpx.Response(200, text=body)) as http:
            with pytest.warns(MalformedFeedWarning):
                result = await get_arxiv_entries(QueryOptions(search=title("x")), client=http)
        assert result.entries == ()

    @pytest.mark.asyncio
    async def test_search_feed(self):
        async with make_client(lambda request: httpx.Response(200, content=SEARCH)) as http:
            result = await get_arxiv_entries(
                QueryOptions(search=author("Vilhelm Agdur"), max_results=2), client=http
            )
        assert result.feed.total_results == 4
        assert [e.comment for e in result.entries] == [
            "33 pages, 2 figures. Originally as Master's Thesis at Gothenburg University",
            "31 pages, 11 figures",
        ]


class TestRateLimiting:
    @pytest.mark.asyncio
    async def test_shared_limiter_is_consumed(self):
        limiter = TokenBucketLimiter(5, 60_000)
        async with make_client(lambda request: httpx.Response(200, content=SINGLE)) as http:
            async with Arxiv(client=http, limiter=limiter) as arxiv:
                await arxiv.query(QueryOptions(search=title("x")))
                await arxiv.query(QueryOptions(search=title("y")))
        assert limiter.tokens == 3

    @pytest.mark.asyncio
    async def test_shared_limiter_wins_over_rate_limit(self):
        limiter = TokenBucketLimiter(2, 60_000)
        arxiv = Arxiv(limiter=limiter)
        options = QueryOptions(rate_limit=RateLimitConfig(1, 1000))
        assert arxiv._limiter_for(options) is limiter

    def test_per_call_limiter(self):
        arxiv = Arxiv()
        options = QueryOptions(rate_limit=RateLimitConfig(4, 2000))
        first = arxiv._limiter_for(options)
        second = arxiv._limiter_for(options)
        assert first is not second
        assert first.capacity == 4
        assert first.interval_ms == 2000
        assert arxiv._limiter_for(QueryOptions()) is None

    @pytest.mark.asyncio
    async def test_per_call_limiters_do_not_share_tokens(self):
        options = QueryOptions(search=title("x"), rate_limit=RateLimitConfig(1, 60_000))
        async with make_client(lambda request: httpx.Response(200, content=SINGLE)) as http:
            # each call starts with a full bucket of one token
            await get_arxiv_entries(options, client=http)
            await get_arxiv_entries(options, client=http)


class TestGetById:
    @pytest.mark.asyncio
    async def test_requests_id_list_only(self):
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, content=SINGLE)

        async with make_client(handler) as http:
            result = await get_arxiv_entries_by_id(
                ["2507.17541"], QueryOptions(search=title("ignored"), max_results=1), client=http
            )

        assert result.entries[0].title.startswith("Approximating temporal modularity")
        params = seen[0].url.params
        assert params["id_list"] == "2507.17541"
        assert params["max_results"] == "1"
        assert "search_query" not in params

    @pytest.mark.asyncio
    async def test_several_ids(self):
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, content=SEARCH)

        async with make_client(handler) as http:
            async with Arxiv(client=http) as arxiv:
                await arxiv.get_by_id(["1906.03709", "2404.03332v2"])

        assert seen[0].url.params["id_list"] == "1906.03709,2404.03332v2"


class TestPagination:
    @pytest.mark.asyncio
    async def test_stops_on_short_page(self):
        requests: list[httpx.Request] = []
        async with make_client(paging_handler(5, requests)) as http:
            entries = await collect(
                iter_arxiv_entries(QueryOptions(search=title("x")), page_size=2, client=http)
            )

        assert [e.title for e in entries] == [f"Paper {n}" for n in range(5)]
        assert [r.url.params["start"] for r in requests] == ["0", "2", "4"]

    @pytest.mark.asyncio
    async def test_stops_at_reported_total(self):
        requests: list[httpx.Request] = []
        async with make_client(paging_handler(4, requests)) as http:
            entries = await collect(
                iter_arxiv_entries(QueryOptions(search=title("x")), page_size=2, client=http)
            )

        assert len(entries) == 4
        assert len(requests) == 2

    @pytest.mark.asyncio
    async def test_max_total(self):
        requests: list[httpx.Request] = []
        async with make_client(paging_handler(50, requests)) as http:
            entries = await collect(
                iter_arxiv_entries(
                    QueryOptions(search=title("x")), page_size=2, max_total=3, client=http
                )
            )

        assert [e.title for e in entries] == ["Paper 0", "Paper 1", "Paper 2"]
        assert len(requests) <= 3

    @pytest.mark.asyncio
    async def test_starts_at_offset(self):
        requests: list[httpx.Request] = []
        async with make_client(paging_handler(7, requests)) as http:
            options = QueryOptions(search=title("x"), start=5)
            entries = await collect(iter_arxiv_entries(options, page_size=10, client=http))

        assert [e.title for e in entries] == ["Paper 5", "Paper 6"]
        assert requests[0].url.params["start"] == "5"

    @pytest.mark.asyncio
    async def test_pages_share_one_limiter(self):
        requests: list[httpx.Request] = []
        limiter = TokenBucketLimiter(10, 60_000)
        async with make_client(paging_handler(5, requests)) as http:
            await collect(
                iter_arxiv_entries(
                    QueryOptions(search=title("x")), page_size=2, client=http, limiter=limiter
                )
            )
        assert limiter.tokens == 7

    @pytest.mark.asyncio
    @pytest.mark.parametrize("page_size", [0, -1])
    async def test_rejects_page_size_below_one(self, page_size):
        requests: list[httpx.Request] = []
        async with make_client(paging_handler(5, requests)) as http:
            with pytest.raises(ValueError, match="page_size"):
                await collect(
                    iter_arxiv_entries(
                        QueryOptions(search=title("x")), page_size=page_size, client=http
                    )
                )
        assert requests == []

    @pytest.mark.asyncio
    async def test_stops_on_empty_page_below_total(self):
        requests: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(200, text=page_feed(0, 0, 10))

        async with make_client(handler) as http:
            entries = await collect(
                iter_arxiv_entries(QueryOptions(search=title("x")), page_size=2, client=http)
            )

        assert entries == []
        assert len(requests) == 1

    @pytest.mark.asyncio
    async def test_pages_carry_feed_metadata(self):
        requests: list[httpx.Request] = []
        async with make_client(paging_handler(5, requests)) as http:
            pages = await collect(
                iter_arxiv_pages(QueryOptions(search=title("x")), page_size=2, client=http)
            )

        assert [p.feed.start_index for p in pages] == [0, 2, 4]
        assert all(p.feed.total_results == 5 for p in pages)
        assert [len(p.entries) for p in pages] == [2, 2, 1]
