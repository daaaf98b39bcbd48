# query_gateway/query/errors.py
"""Error taxonomy for the filter-to-query compiler."""


class QueryError(Exception):
    """Base class for every error surfaced in a query response envelope."""

    error_type = "QueryError"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class QueryValidationError(QueryError):
    """Raised while compiling a request, before any backend call is made."""

    error_type = "ValidationError"


class UnsupportedRecordType(QueryValidationError):
    error_type = "UnsupportedRecordType"


class UnsafeIdentifier(QueryValidationError):
    error_type = "UnsafeIdentifier"


class UnsupportedOperator(QueryValidationError):
    error_type = "UnsupportedOperator"


class MissingOperand(QueryValidationError):
    error_type = "MissingOperand"


class ExecutionFailure(QueryError):
    """Raised when the backend data platform fails to run a compiled query."""

    error_type = "ExecutionFailure"
