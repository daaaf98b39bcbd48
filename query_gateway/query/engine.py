# query_gateway/query/engine.py
"""
QueryEngine: page-wise execution of compiled query plans.

The engine never builds SQL and never retries; it asks the backend for page
ranges, fetches what the page descriptor asks for and reports pagination
metadata in a ResultEnvelope.
"""

import logging
import math
from typing import Any, Dict, List

from .backend import PagedQueryBackend, PagedSearch
from .plan import QueryPlan
from .schemas import HARD_PAGE_SIZE_LIMIT, PageDescriptor, Pagination, ResultEnvelope

logger = logging.getLogger(__name__)


class QueryEngine:
    """Unified interface for running query plans against a paged backend."""

    def __init__(self, backend: PagedQueryBackend, max_page_size: int = HARD_PAGE_SIZE_LIMIT):
        self.backend = backend
        self.max_page_size = max(1, min(max_page_size, HARD_PAGE_SIZE_LIMIT))

    def execute(self, plan: QueryPlan, page: PageDescriptor) -> ResultEnvelope:
        """Execute a plan and return a successful envelope; backend errors propagate as ExecutionFailure."""
        page_size = max(1, min(page.page_size, self.max_page_size))
        search = self.backend.run_paged(plan, page_size)

        if not page.use_pagination:
            return self._fetch_all(search)
        return self._fetch_page(search, page_size, page.page_index)

    # ===== EXECUTION MODES =====

    @staticmethod
    def _fetch_all(search: PagedSearch) -> ResultEnvelope:
        rows: List[Dict[str, Any]] = []
        for page_range in search.page_ranges:
            rows.extend(search.fetch(page_range.index))
        logger.debug(f"Fetched {len(rows)} rows across {len(search.page_ranges)} pages")
        return ResultEnvelope(success=True, data=rows, record_count=len(rows))

    @staticmethod
    def _fetch_page(search: PagedSearch, page_size: int, page_index: int) -> ResultEnvelope:
        ranges = search.page_ranges
        total_records = sum(page_range.size for page_range in ranges)

        rows: List[Dict[str, Any]] = []
        if ranges:
            # Requests past the end are served the last page
            target = ranges[min(page_index, len(ranges) - 1)]
            rows = search.fetch(target.index)

        pagination = Pagination(
            page_size=page_size,
            page_index=page_index,
            total_records=total_records,
            total_pages=math.ceil(total_records / page_size) if total_records else 0,
            has_more=(page_index + 1) * page_size < total_records,
        )
        return ResultEnvelope(success=True, data=rows, record_count=len(rows), pagination=pagination)
