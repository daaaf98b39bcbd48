# query_gateway/query/schemas.py
"""
Query compiler schemas and types.

This module defines the core types used by the QueryBuilder and QueryEngine:
the closed operator vocabulary, normalized filter terms, page descriptors and
the request/response models exposed by the query endpoint.
"""

from typing import Any, Dict, List, Optional, Tuple
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from pydantic import BaseModel, ConfigDict, Field

HARD_PAGE_SIZE_LIMIT = 1000


class FilterOperator(str, Enum):
    """Closed vocabulary of filter operators."""

    # Comparison
    EQUALS = "equals"
    NOT_EQUALS = "not_equals"
    GREATER_THAN = "greater_than"
    LESS_THAN = "less_than"
    GREATER_THAN_OR_EQUAL = "greater_than_or_equal"
    LESS_THAN_OR_EQUAL = "less_than_or_equal"

    # Pattern
    CONTAINS = "contains"
    STARTS_WITH = "starts_with"
    ENDS_WITH = "ends_with"
    NOT_CONTAINS = "not_contains"

    # Set membership
    IN = "in"
    NOT_IN = "not_in"

    # Null checks
    IS_NULL = "is_null"
    IS_NOT_NULL = "is_not_null"

    # Explicit date forms
    DATE_RANGE = "date_range"
    DATE_EQUALS = "date_equals"
    DATE_BEFORE = "date_before"
    DATE_AFTER = "date_after"

    # Single-character boolean flags
    IS_TRUE = "is_true"
    IS_FALSE = "is_false"


# Symbolic tokens callers may send instead of the named operators
OPERATOR_SYMBOLS: Dict[str, FilterOperator] = {
    "=": FilterOperator.EQUALS,
    "!=": FilterOperator.NOT_EQUALS,
    "<>": FilterOperator.NOT_EQUALS,
    ">": FilterOperator.GREATER_THAN,
    "<": FilterOperator.LESS_THAN,
    ">=": FilterOperator.GREATER_THAN_OR_EQUAL,
    "<=": FilterOperator.LESS_THAN_OR_EQUAL,
}


class OrderDirection(str, Enum):
    ASC = "ASC"
    DESC = "DESC"

    @classmethod
    def parse(cls, value: Any) -> "OrderDirection":
        """Anything other than a case-insensitive 'desc' sorts ascending."""
        return cls.DESC if str(value or "").strip().upper() == "DESC" else cls.ASC


@dataclass(frozen=True)
class NormalizedFilterTerm:
    """Canonical representation of one filter condition."""

    field_name: str
    operator: FilterOperator
    value: Any = None
    values: Optional[Tuple[Any, ...]] = None
    start_date: Optional[str] = None
    end_date: Optional[str] = None


@dataclass(frozen=True)
class QueryParameters:
    """Validated inputs for building a query plan."""

    record_type: str
    filters: List[NormalizedFilterTerm]
    fields: Optional[List[str]] = None
    order_by: Optional[str] = None
    order_direction: OrderDirection = OrderDirection.ASC


@dataclass(frozen=True)
class PageDescriptor:
    """Page request, always clamped to the hard page-size ceiling."""

    page_size: int
    page_index: int
    use_pagination: bool = True

    @classmethod
    def from_request(
        cls,
        page_size: Optional[int],
        page_index: Optional[int],
        use_pagination: Any,
        max_page_size: int = HARD_PAGE_SIZE_LIMIT,
    ) -> "PageDescriptor":
        ceiling = max(1, min(max_page_size, HARD_PAGE_SIZE_LIMIT))
        # A missing or zero page size means "as large as allowed"
        requested = page_size or ceiling
        return cls(
            page_size=min(max(1, requested), ceiling),
            page_index=max(0, page_index or 0),
            use_pagination=use_pagination is not False,
        )


# ===== API MODELS =====


class QueryRequest(BaseModel):
    """
    Body of a POST to the query endpoint.

    Fields are accepted as sent; QueryService validates them so that a badly
    typed field is reported in a result envelope rather than a 422.
    """

    record_type: Any = Field(default=None, alias="recordType")
    filters: Any = None
    fields: Any = None
    order_by: Any = Field(default=None, alias="orderBy")
    order_dir: Any = Field(default=None, alias="orderDir")
    page_size: Any = Field(default=None, alias="pageSize")
    page_index: Any = Field(default=None, alias="pageIndex")
    use_pagination: Any = Field(default=None, alias="usePagination")
    debug: Any = False

    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class Pagination(BaseModel):
    page_size: int = Field(alias="pageSize")
    page_index: int = Field(alias="pageIndex")
    total_records: int = Field(alias="totalRecords")
    total_pages: int = Field(alias="totalPages")
    has_more: bool = Field(alias="hasMore")

    model_config = ConfigDict(populate_by_name=True)


class ResultEnvelope(BaseModel):
    """Response body for every query request, successful or not."""

    success: bool
    data: List[Dict[str, Any]] = []
    record_count: int = Field(default=0, alias="recordCount")
    record_type: Optional[str] = Field(default=None, alias="recordType")
    pagination: Optional[Pagination] = None
    error: Optional[str] = None
    error_type: Optional[str] = Field(default=None, alias="errorType")
    timestamp: Optional[str] = None
    version: Optional[str] = None
    debug: Optional[Dict[str, Any]] = None

    model_config = ConfigDict(populate_by_name=True)

    def to_response(self) -> Dict[str, Any]:
        """Serialize with public (camelCase) keys, dropping unset optional blocks."""
        payload = self.model_dump(by_alias=True)
        return {key: value for key, value in payload.items() if value is not None}


class QueryExecutionLogRead(BaseModel):
    id: int
    record_type: str
    page_size: Optional[int] = None
    page_index: Optional[int] = None
    use_pagination: bool = True
    row_count: Optional[int] = None
    total_records: Optional[int] = None
    execution_time_ms: Optional[float] = None
    success: bool
    error_type: Optional[str] = None
    error_message: Optional[str] = None
    executed_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)
