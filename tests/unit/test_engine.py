"""
Unit tests for page-wise execution: the QueryEngine over a fake backend, and the SQLAlchemy backend over SQLite.
"""

import pytest
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool

from query_gateway.query.backend import PageRange, SqlAlchemyPagedBackend, split_into_pages
from query_gateway.query.builder import QueryBuilder
from query_gateway.query.engine import QueryEngine
from query_gateway.query.errors import ExecutionFailure
from query_gateway.query.filters import normalize_filters
from query_gateway.query.plan import QueryPlan
from query_gateway.query.schemas import PageDescriptor, QueryParameters


class FakeSearch:
    def __init__(self, total, page_size, fail_on=None):
        self.page_ranges = split_into_pages(total, page_size)
        self.page_size = page_size
        self.total = total
        self.fail_on = fail_on
        self.fetched = []

    def fetch(self, index):
        if index == self.fail_on:
            raise ExecutionFailure(f"page {index} failed")
        self.fetched.append(index)
        start = index * self.page_size
        return [{"id": row_id} for row_id in range(start, min(start + self.page_size, self.total))]


class FakeBackend:
    def __init__(self, total, fail_on=None):
        self.total = total
        self.fail_on = fail_on
        self.searches = []

    def run_paged(self, plan, page_size):
        search = FakeSearch(self.total, page_size, self.fail_on)
        self.searches.append(search)
        return search


PLAN = QueryPlan(record_type="customer", from_table="customer", alias="c", select_fields=["c.*"])


class TestPagination:
    """238 rows in pages of 10"""

    @pytest.fixture
    def engine(self):
        return QueryEngine(FakeBackend(238))

    def test_first_page(self, engine):
        envelope = engine.execute(PLAN, PageDescriptor(page_size=10, page_index=0))
        assert envelope.success
        assert envelope.record_count == 10
        assert envelope.data[0] == {"id": 0}
        pagination = envelope.pagination
        assert (pagination.total_records, pagination.total_pages, pagination.has_more) == (238, 24, True)

    @pytest.mark.parametrize("page_index", range(0, 23))
    def test_has_more_before_last_page(self, engine, page_index):
        assert engine.execute(PLAN, PageDescriptor(page_size=10, page_index=page_index)).pagination.has_more

    def test_last_page_is_short(self, engine):
        envelope = engine.execute(PLAN, PageDescriptor(page_size=10, page_index=23))
        assert envelope.record_count == 8
        assert envelope.pagination.has_more is False

    def test_index_past_the_end_serves_last_page(self, engine):
        envelope = engine.execute(PLAN, PageDescriptor(page_size=10, page_index=40))
        assert envelope.data[0] == {"id": 230}
        assert envelope.pagination.page_index == 40
        assert envelope.pagination.has_more is False

    def test_only_the_requested_page_is_fetched(self):
        backend = FakeBackend(238)
        QueryEngine(backend).execute(PLAN, PageDescriptor(page_size=10, page_index=5))
        assert backend.searches[0].fetched == [5]

    def test_fetch_all_without_pagination(self):
        backend = FakeBackend(238)
        envelope = QueryEngine(backend).execute(PLAN, PageDescriptor(page_size=10, page_index=3, use_pagination=False))
        assert envelope.record_count == 238
        assert envelope.pagination is None
        assert backend.searches[0].fetched == list(range(24))

    def test_no_rows(self):
        envelope = QueryEngine(FakeBackend(0)).execute(PLAN, PageDescriptor(page_size=10, page_index=0))
        assert envelope.data == []
        pagination = envelope.pagination
        assert (pagination.total_records, pagination.total_pages, pagination.has_more) == (0, 0, False)

    def test_engine_ceiling_applies(self):
        backend = FakeBackend(50)
        envelope = QueryEngine(backend, max_page_size=20).execute(PLAN, PageDescriptor(page_size=1000, page_index=0))
        assert envelope.pagination.page_size == 20
        assert envelope.pagination.total_pages == 3

    def test_fetch_failure_propagates(self):
        with pytest.raises(ExecutionFailure):
            QueryEngine(FakeBackend(30, fail_on=1)).execute(PLAN, PageDescriptor(10, 0, use_pagination=False))


class TestPageDescriptor:
    @pytest.mark.parametrize(
        "page_size, expected",
        [(None, 1000), (0, 1000), (-5, 1), (10, 10), (5000, 1000)],
    )
    def test_page_size_clamping(self, page_size, expected):
        assert PageDescriptor.from_request(page_size, 0, True).page_size == expected

    def test_configured_ceiling(self):
        assert PageDescriptor.from_request(None, 0, None, max_page_size=200).page_size == 200
        assert PageDescriptor.from_request(500, 0, None, max_page_size=5000).page_size == 500

    def test_index_and_flag_defaults(self):
        page = PageDescriptor.from_request(10, -3, None)
        assert page.page_index == 0
        assert page.use_pagination is True
        assert PageDescriptor.from_request(10, 2, False).use_pagination is False


def test_split_into_pages():
    assert split_into_pages(0, 10) == []
    assert split_into_pages(25, 10) == [PageRange(0, 10), PageRange(1, 10), PageRange(2, 5)]
    assert split_into_pages(20, 10) == [PageRange(0, 10), PageRange(1, 10)]


class TestSqlAlchemyBackend:
    """Runs compiled plans against the seeded SQLite data platform"""

    @pytest.fixture
    def backend(self, data_engine):
        return SqlAlchemyPagedBackend(data_engine)

    def build(self, fixture_catalog, record_type, filters=None, **kwargs):
        return QueryBuilder(fixture_catalog).build(
            QueryParameters(record_type=record_type, filters=normalize_filters(filters), **kwargs)
        )

    def test_pages_and_lower_cased_rows(self, backend, fixture_catalog):
        search = backend.run_paged(self.build(fixture_catalog, "customer", fields=["ID", "CompanyName"]), 2)
        assert search.page_ranges == [PageRange(0, 2), PageRange(1, 2), PageRange(2, 1)]
        assert search.fetch(0) == [{"id": 1, "companyname": "Acme Corp"}, {"id": 2, "companyname": "Globex 100% Ltd"}]
        assert search.fetch(2) == [{"id": 5, "companyname": "Hooli"}]

    def test_bound_parameters(self, backend, fixture_catalog):
        plan = self.build(fixture_catalog, "invoice", [{"field": "trandate", "operator": "=", "value": "2024-06-01"}])
        search = backend.run_paged(plan, 10)
        assert [row["id"] for row in search.fetch(0)] == [10]

    def test_fetch_outside_range(self, backend, fixture_catalog):
        search = backend.run_paged(self.build(fixture_catalog, "customer"), 10)
        with pytest.raises(ExecutionFailure):
            search.fetch(1)

    def test_database_errors_become_execution_failures(self, backend, fixture_catalog):
        plan = self.build(fixture_catalog, "customer", {"no_such_column": 1})
        with pytest.raises(ExecutionFailure, match="Query execution failed"):
            backend.run_paged(plan, 10)

    def test_missing_table_and_bad_page_size(self):
        engine = create_engine("sqlite:///:memory:", poolclass=StaticPool, connect_args={"check_same_thread": False})
        backend = SqlAlchemyPagedBackend(engine)
        plan = QueryPlan(record_type="x", from_table="x", alias="x", select_fields=["x.*"])
        with pytest.raises(ExecutionFailure):
            backend.run_paged(plan, 10)
        with pytest.raises(ValueError):
            backend.run_paged(plan, 0)
