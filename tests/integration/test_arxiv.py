from __future__ import annotations

import pytest

from arxivkit import (
    get_arxiv_entries,
    get_arxiv_entries_by_id,
    iter_arxiv_entries,
)
from arxivkit.models import QueryOptions
from arxivkit.query import author, category, submitted_between, title
from arxivkit.search import collect
from tests.integration.conftest import (
    MODULARITY_PAPER_CATEGORY,
    MODULARITY_PAPER_ID,
    MODULARITY_PAPER_TITLE,
    EntryExpectation,
    assert_entry_satisfies,
    requires_live,
)

pytestmark = [pytest.mark.integration, requires_live]


class TestSearchByTitle:
    @pytest.mark.asyncio
    async def test_title_filter_returns_matching_entries(self, limiter):
        result = await get_arxiv_entries(
            QueryOptions(search=title("transformer"), max_results=10), limiter=limiter
        )

        assert len(result.entries) == 10
        assert result.feed.total_results >= 10
        for entry in result.entries:
            assert_entry_satisfies(entry, EntryExpectation(title_contains="transformer"))


class TestSearchByAuthor:
    @pytest.mark.asyncio
    async def test_author_and_category(self, limiter):
        q = author("Vilhelm Agdur") & category("math.CO")
        result = await get_arxiv_entries(QueryOptions(search=q, max_results=10), limiter=limiter)

        assert len(result.entries) >= 1
        for entry in result.entries:
            assert_entry_satisfies(
                entry, EntryExpectation(author_contains="Agdur", category="math.CO")
            )

    @pytest.mark.asyncio
    async def test_negation_drops_author(self, limiter):
        q = author("Vilhelm Agdur") & ~title("modularity")
        result = await get_arxiv_entries(QueryOptions(search=q, max_results=20), limiter=limiter)

        for entry in result.entries:
            assert "modularity" not in entry.title.lower()


class TestDateRange:
    @pytest.mark.asyncio
    async def test_submitted_between(self, limiter):
        q = category("cs.LG") & submitted_between("202301010000", "202301312359")
        result = await get_arxiv_entries(
            QueryOptions(search=q, max_results=5, sort_by="submittedDate"), limiter=limiter
        )

        assert len(result.entries) >= 1
        for entry in result.entries:
            assert entry.published.startswith("2023-01")


class TestGetById:
    @pytest.mark.asyncio
    async def test_known_paper(self, limiter):
        result = await get_arxiv_entries_by_id([MODULARITY_PAPER_ID], limiter=limiter)

        assert len(result.entries) == 1
        entry = result.entries[0]
        assert entry.arxiv_id.startswith(MODULARITY_PAPER_ID)
        assert entry.title == MODULARITY_PAPER_TITLE
        assert entry.primary_category == MODULARITY_PAPER_CATEGORY
        assert len(entry.authors) == 6
        assert entry.pdf_url


class TestPagination:
    @pytest.mark.asyncio
    async def test_pages_until_max_total(self, limiter):
        entries = await collect(
            iter_arxiv_entries(
                QueryOptions(search=title("graph")), page_size=5, max_total=12, limiter=limiter
            )
        )

        assert len(entries) == 12
        assert len({e.id for e in entries}) >= 10
