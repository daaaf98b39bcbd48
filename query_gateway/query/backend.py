# query_gateway/query/backend.py
"""
Backend data platform collaborators.

The engine only needs two things from a backend: the page ranges a query
produces for a given page size, and the rows of one page. ``PagedQueryBackend``
describes that contract; ``SqlAlchemyPagedBackend`` implements it on top of a
SQLAlchemy engine using a COUNT over the query and LIMIT/OFFSET per page.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Protocol

from sqlalchemy import text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from .errors import ExecutionFailure
from .plan import QueryPlan

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PageRange:
    index: int
    size: int


class PagedSearch(Protocol):
    """A query that has been run once and can hand out individual pages."""

    page_ranges: List[PageRange]

    def fetch(self, index: int) -> List[Dict[str, Any]]:
        ...


class PagedQueryBackend(Protocol):
    def run_paged(self, plan: QueryPlan, page_size: int) -> PagedSearch:
        ...


def split_into_pages(total: int, page_size: int) -> List[PageRange]:
    """Page ranges covering ``total`` rows; only the last page may be short."""
    if total <= 0:
        return []
    full_pages, remainder = divmod(total, page_size)
    ranges = [PageRange(index, page_size) for index in range(full_pages)]
    if remainder:
        ranges.append(PageRange(full_pages, remainder))
    return ranges


def normalize_row(row: Any) -> Dict[str, Any]:
    """Row mapping with lower-cased column names."""
    return {str(key).lower(): value for key, value in row._mapping.items()}


class SqlAlchemyPagedSearch:
    """Pages of one rendered query, fetched lazily with LIMIT/OFFSET."""

    def __init__(self, engine: Engine, sql: str, params: Dict[str, Any], page_size: int, total: int):
        self.engine = engine
        self.sql = sql
        self.params = params
        self.page_size = page_size
        self.total = total
        self.page_ranges = split_into_pages(total, page_size)

    def fetch(self, index: int) -> List[Dict[str, Any]]:
        if index < 0 or index >= len(self.page_ranges):
            raise ExecutionFailure(f"Page index {index} is outside the result set ({len(self.page_ranges)} pages)")
        page_sql = f"{self.sql} LIMIT :page_limit OFFSET :page_offset"
        page_params = dict(self.params, page_limit=self.page_size, page_offset=index * self.page_size)
        try:
            with self.engine.connect() as connection:
                result = connection.execute(text(page_sql), page_params)
                return [normalize_row(row) for row in result]
        except SQLAlchemyError as e:
            logger.error(f"Failed to fetch page {index}: {e}")
            raise ExecutionFailure(f"Query execution failed: {e}") from e


class SqlAlchemyPagedBackend:
    """Runs rendered query plans on a SQLAlchemy engine."""

    def __init__(self, engine: Engine):
        self.engine = engine

    def run_paged(self, plan: QueryPlan, page_size: int) -> SqlAlchemyPagedSearch:
        if page_size < 1:
            raise ValueError(f"page_size must be positive, got {page_size}")
        params = plan.named_params()
        count_sql = f"SELECT COUNT(*) FROM ({plan.render('named', include_order=False)}) paged_source"
        try:
            with self.engine.connect() as connection:
                total = connection.execute(text(count_sql), params).scalar_one()
        except SQLAlchemyError as e:
            logger.error(f"Failed to count rows for {plan.record_type}: {e}")
            raise ExecutionFailure(f"Query execution failed: {e}") from e

        return SqlAlchemyPagedSearch(
            engine=self.engine,
            sql=plan.render("named"),
            params=params,
            page_size=page_size,
            total=int(total or 0),
        )
