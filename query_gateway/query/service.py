# query_gateway/query/service.py
"""
Query request service.

Runs one request through normalize -> build -> execute and always answers
with a ResultEnvelope: compile and execution errors become ``success: false``
envelopes, and every POST execution is written to the execution log.
"""

import logging
import time
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError

from .builder import QueryBuilder
from .engine import QueryEngine
from .errors import ExecutionFailure, QueryError, QueryValidationError, UnsafeIdentifier, UnsupportedRecordType
from .execution_log_dao import QueryExecutionLogDAO
from .filters import describe_terms, normalize_filters
from .identifiers import safe_identifier
from .plan import QueryPlan
from .schemas import (
    HARD_PAGE_SIZE_LIMIT,
    OPERATOR_SYMBOLS,
    FilterOperator,
    OrderDirection,
    PageDescriptor,
    QueryExecutionLogRead,
    QueryParameters,
    QueryRequest,
    ResultEnvelope,
)

logger = logging.getLogger(__name__)

ERROR_PREFIX = "Request processing failed: "

STAGE_COMPILE = "compile"
STAGE_EXECUTE = "execute"

CAPABILITY_EXAMPLES = {
    "uniformFilter": [
        {"field": "startdate", "operator": ">=", "value": "01-01-2024"},
        {"field": "startdate", "operator": "<=", "value": "31-12-2024"},
    ],
    "singleKeyFilter": [{"status": {"operator": "in", "values": ["open", "pendingApproval"]}}],
    "legacyFilter": {"entity": 1234, "trandate_startdate": "01-01-2024", "trandate_enddate": "31-12-2024"},
    "headerFilterOnLines": {
        "recordType": "transactionline",
        "filters": [
            {"field": "trandate", "operator": "date_range", "startdate": "2024-01-01", "enddate": "2024-03-31"},
            {"field": "item", "operator": "equals", "value": 42},
        ],
    },
}


def _utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


def _requested_record_type(request: Optional[QueryRequest]) -> Optional[str]:
    if request is None or request.record_type is None:
        return None
    return str(request.record_type).strip() or None


def _field_list(fields: Any) -> Optional[List[str]]:
    """Validated ``fields`` list; a missing or empty list selects every column."""
    if fields is None or fields == "" or fields == []:
        return None
    if not isinstance(fields, list):
        raise UnsafeIdentifier(f"Unsafe fields: {fields!r} (expected a list of field names)")
    return [safe_identifier(field_name, "field in fields") for field_name in fields]


def _page_number(value: Any, name: str) -> Optional[int]:
    """Whole page size/index from a number or numeric string; fractions are truncated."""
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        raise QueryValidationError(f"{name} must be a number, got {value!r}")
    try:
        return int(float(value))
    except (TypeError, ValueError, OverflowError):
        raise QueryValidationError(f"{name} must be a number, got {value!r}") from None


class QueryService:
    """Service for compiling and executing record queries."""

    def __init__(
        self,
        builder: QueryBuilder,
        engine: QueryEngine,
        execution_log_dao: Optional[QueryExecutionLogDAO] = None,
        version: str = "",
        max_page_size: int = HARD_PAGE_SIZE_LIMIT,
    ):
        self.builder = builder
        self.engine = engine
        self.execution_log_dao = execution_log_dao
        self.version = version
        self.max_page_size = max_page_size

    # ===== POST =====

    def execute(self, request: Optional[QueryRequest]) -> Dict[str, Any]:
        """Run one query request and return the response body."""
        start_time = time.perf_counter()
        debug = bool(request is not None and request.debug)
        record_type = _requested_record_type(request)
        stage = STAGE_COMPILE
        page: Optional[PageDescriptor] = None

        try:
            params, page = self._parse(request)
            plan = self.builder.build(params)
            if debug:
                logger.debug(f"Compiled {plan.record_type}: {plan.render()} params={plan.params}")

            stage = STAGE_EXECUTE
            envelope = self.engine.execute(plan, page)
        except QueryError as e:
            return self._failure(request, record_type, stage, page, start_time, e)
        except Exception as e:
            logger.exception(f"Unexpected error while running query for recordType={record_type!r}")
            failure = ExecutionFailure(str(e) or type(e).__name__)
            return self._failure(request, record_type, stage, page, start_time, failure)

        execution_time_ms = (time.perf_counter() - start_time) * 1000
        total_records = envelope.pagination.total_records if envelope.pagination else envelope.record_count
        self._log_execution(
            record_type=plan.record_type,
            page=page,
            success=True,
            row_count=envelope.record_count,
            total_records=total_records,
            execution_time_ms=execution_time_ms,
        )

        envelope.record_type = plan.record_type
        envelope.timestamp = _utc_timestamp()
        envelope.version = self.version
        if debug:
            envelope.debug = self._debug_block(plan, page, envelope, total_records, execution_time_ms)
        return envelope.to_response()

    def _parse(self, request: Optional[QueryRequest]):
        record_type = _requested_record_type(request)
        if record_type is None:
            raise UnsupportedRecordType("recordType is required")

        terms = normalize_filters(request.filters)
        logger.debug(f"Normalized filters for {record_type}: {describe_terms(terms)}")
        params = QueryParameters(
            record_type=record_type,
            filters=terms,
            fields=_field_list(request.fields),
            order_by=request.order_by or None,
            order_direction=OrderDirection.parse(request.order_dir),
        )
        page = PageDescriptor.from_request(
            page_size=_page_number(request.page_size, "pageSize"),
            page_index=_page_number(request.page_index, "pageIndex"),
            use_pagination=request.use_pagination,
            max_page_size=self.max_page_size,
        )
        return params, page

    def _debug_block(
        self,
        plan: QueryPlan,
        page: PageDescriptor,
        envelope: ResultEnvelope,
        total_records: int,
        execution_time_ms: float,
    ) -> Dict[str, Any]:
        return {
            "sql": plan.render(),
            "params": plan.params,
            "baseTable": plan.from_table,
            "alias": plan.alias,
            "executionInfo": {
                "pageSize": page.page_size,
                "pageIndex": page.page_index,
                "totalRecords": total_records,
                "returnedRecords": envelope.record_count,
                "usePagination": page.use_pagination,
                "executionTimeMs": round(execution_time_ms, 3),
            },
        }

    def _failure(
        self,
        request: Optional[QueryRequest],
        record_type: Optional[str],
        stage: str,
        page: Optional[PageDescriptor],
        start_time: float,
        error: QueryError,
    ) -> Dict[str, Any]:
        execution_time_ms = (time.perf_counter() - start_time) * 1000
        log = logger.error if isinstance(error, ExecutionFailure) else logger.warning
        log(f"Query failed at {stage} stage for recordType={record_type!r}: {error.error_type}: {error.message}")

        self._log_execution(
            record_type=record_type,
            page=page,
            success=False,
            execution_time_ms=execution_time_ms,
            error_type=error.error_type,
            error_message=error.message,
        )

        envelope = ResultEnvelope(
            success=False,
            record_type=record_type,
            error=ERROR_PREFIX + error.message,
            error_type=error.error_type,
            timestamp=_utc_timestamp(),
            version=self.version,
        )
        if request is not None and request.debug:
            envelope.debug = {"context": request.model_dump(by_alias=True), "stage": stage}
        payload = envelope.to_response()
        # Failed requests carry no result rows
        payload.pop("data", None)
        payload.pop("recordCount", None)
        return payload

    def _log_execution(self, record_type: Optional[str], page: Optional[PageDescriptor], **metrics) -> None:
        if self.execution_log_dao is None:
            return
        try:
            self.execution_log_dao.log_execution(
                record_type=record_type or "",
                page_size=page.page_size if page else None,
                page_index=page.page_index if page else None,
                use_pagination=page.use_pagination if page else True,
                **metrics,
            )
        except SQLAlchemyError as e:
            self.execution_log_dao.db.rollback()
            logger.warning(f"Failed to write query execution log: {e}")

    # ===== GET =====

    def describe(self) -> Dict[str, Any]:
        """Capabilities of the query endpoint."""
        return {
            "success": True,
            "message": "Record query gateway (uniform filters, header filters on line tables, paginated results)",
            "version": self.version,
            "supportedOperators": [operator.value for operator in FilterOperator],
            "operatorSymbols": {symbol: operator.value for symbol, operator in OPERATOR_SYMBOLS.items()},
            "recordTypes": self.builder.catalog.record_types(),
            "examples": CAPABILITY_EXAMPLES,
        }

    def recent_executions(
        self, limit: int = 100, record_type: Optional[str] = None, success: Optional[bool] = None
    ) -> List[QueryExecutionLogRead]:
        if self.execution_log_dao is None:
            return []
        logs = self.execution_log_dao.get_recent_executions(limit=limit, record_type=record_type, success=success)
        return [QueryExecutionLogRead.model_validate(log) for log in logs]
