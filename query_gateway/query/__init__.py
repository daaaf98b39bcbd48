"""
Query module for the record query gateway.

This module provides the filter-to-query compiler and its execution path:
- Filter normalization from every accepted request shape
- Record catalog lookup and deterministic table aliases
- Operator compilation into parameterized, date-aware predicates
- Header/line resolution through correlated subqueries
- Page-wise execution with pagination metadata

Main Components:
- QueryBuilder: Builds a QueryPlan from validated parameters
- QueryEngine: Executes plans page by page against a backend
- QueryService: Request handling and response envelopes
"""

from .builder import QueryBuilder
from .catalog import CatalogEntry, ImplicitFilter, RecordCatalog, default_catalog
from .engine import QueryEngine
from .errors import (
    ExecutionFailure,
    MissingOperand,
    QueryError,
    QueryValidationError,
    UnsafeIdentifier,
    UnsupportedOperator,
    UnsupportedRecordType,
)
from .filters import normalize_filters
from .operators import OperatorCompiler
from .plan import CompiledPredicate, OrderBy, QueryPlan
from .schemas import (
    # Core types
    QueryParameters,
    NormalizedFilterTerm,
    PageDescriptor,
    ResultEnvelope,
    # Enums
    FilterOperator,
    OrderDirection,
)

__all__ = [
    # Main classes
    "QueryBuilder",
    "QueryEngine",
    "OperatorCompiler",
    "RecordCatalog",
    "CatalogEntry",
    "ImplicitFilter",
    "default_catalog",
    "normalize_filters",
    # Plan types
    "CompiledPredicate",
    "OrderBy",
    "QueryPlan",
    # Core parameter and result types
    "QueryParameters",
    "NormalizedFilterTerm",
    "PageDescriptor",
    "ResultEnvelope",
    # Enums
    "FilterOperator",
    "OrderDirection",
    # Errors
    "QueryError",
    "QueryValidationError",
    "UnsupportedRecordType",
    "UnsafeIdentifier",
    "UnsupportedOperator",
    "MissingOperand",
    "ExecutionFailure",
]
