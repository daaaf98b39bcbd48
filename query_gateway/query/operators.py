# query_gateway/query/operators.py
"""
Operator compiler: one normalized filter term to one parameterized predicate.

Each operator has its own compile function, registered in a dispatch table
keyed by FilterOperator. Whether an operand gets whole-day semantics is
decided in one place (``_operand_day``) and shared by every operator.
"""

from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from .dates import next_day, normalize_date, parse_canonical_date
from .errors import MissingOperand, UnsupportedOperator
from .identifiers import safe_identifier
from .plan import PLACEHOLDER, CompiledPredicate
from .schemas import OPERATOR_SYMBOLS, FilterOperator, NormalizedFilterTerm

TRUE_FLAG = "T"
FALSE_FLAG = "F"
LIKE_ESCAPE_CHAR = "\\"

_TRUTHY_FLAGS = {"t", "true", "1", "yes"}

# (scalar operator, date operator, date bound is the following day)
_COMPARISONS: Dict[FilterOperator, Tuple[str, str, bool]] = {
    FilterOperator.GREATER_THAN: (">", ">=", True),
    FilterOperator.LESS_THAN: ("<", "<", False),
    FilterOperator.GREATER_THAN_OR_EQUAL: (">=", ">=", False),
    FilterOperator.LESS_THAN_OR_EQUAL: ("<=", "<", True),
}

# (keyword, leading wildcard, trailing wildcard)
_PATTERNS: Dict[FilterOperator, Tuple[str, bool, bool]] = {
    FilterOperator.CONTAINS: ("LIKE", True, True),
    FilterOperator.STARTS_WITH: ("LIKE", False, True),
    FilterOperator.ENDS_WITH: ("LIKE", True, False),
    FilterOperator.NOT_CONTAINS: ("NOT LIKE", True, True),
}


def resolve_operator(token: Any) -> FilterOperator:
    """Map a symbolic or named operator token onto the closed vocabulary."""
    if isinstance(token, FilterOperator):
        return token
    raw = str(token if token is not None else "").strip()
    if raw in OPERATOR_SYMBOLS:
        return OPERATOR_SYMBOLS[raw]
    try:
        return FilterOperator(raw.lower())
    except ValueError:
        raise UnsupportedOperator(f"Unsupported operator: {token}") from None


def escape_like(value: Any) -> str:
    """Escape the LIKE wildcards and the escape character itself."""
    text = str(value)
    for special in (LIKE_ESCAPE_CHAR, "%", "_"):
        text = text.replace(special, LIKE_ESCAPE_CHAR + special)
    return text


def to_flag(value: Any) -> str:
    """Single-character flag the data platform stores booleans as."""
    return TRUE_FLAG if str(value).strip().lower() in _TRUTHY_FLAGS else FALSE_FLAG


class OperatorCompiler:
    """Compiles NormalizedFilterTerm objects into CompiledPredicate objects."""

    def __init__(self, date_placeholder: str = PLACEHOLDER):
        if date_placeholder.count(PLACEHOLDER) != 1:
            raise ValueError(f"Date placeholder must contain exactly one '?': {date_placeholder!r}")
        self.date_placeholder = date_placeholder
        self._dispatch: Dict[FilterOperator, Callable[[str, NormalizedFilterTerm], CompiledPredicate]] = {
            FilterOperator.EQUALS: self._compile_equals,
            FilterOperator.NOT_EQUALS: self._compile_not_equals,
            FilterOperator.GREATER_THAN: self._compile_comparison,
            FilterOperator.LESS_THAN: self._compile_comparison,
            FilterOperator.GREATER_THAN_OR_EQUAL: self._compile_comparison,
            FilterOperator.LESS_THAN_OR_EQUAL: self._compile_comparison,
            FilterOperator.CONTAINS: self._compile_pattern,
            FilterOperator.STARTS_WITH: self._compile_pattern,
            FilterOperator.ENDS_WITH: self._compile_pattern,
            FilterOperator.NOT_CONTAINS: self._compile_pattern,
            FilterOperator.IN: self._compile_membership,
            FilterOperator.NOT_IN: self._compile_membership,
            FilterOperator.IS_NULL: self._compile_is_null,
            FilterOperator.IS_NOT_NULL: self._compile_is_not_null,
            FilterOperator.DATE_RANGE: self._compile_date_range,
            FilterOperator.DATE_EQUALS: self._compile_date_equals,
            FilterOperator.DATE_BEFORE: self._compile_date_before,
            FilterOperator.DATE_AFTER: self._compile_date_after,
            FilterOperator.IS_TRUE: self._compile_is_true,
            FilterOperator.IS_FALSE: self._compile_is_false,
        }

    @property
    def supported_operators(self) -> List[FilterOperator]:
        return list(self._dispatch)

    def compile(self, term: NormalizedFilterTerm, alias: str) -> CompiledPredicate:
        """Compile one term against a table alias."""
        handler = self._dispatch.get(term.operator)
        if handler is None:
            raise UnsupportedOperator(f"Unsupported operator: {term.operator}")
        column = f"{safe_identifier(alias, 'alias')}.{safe_identifier(term.field_name, 'field_name')}"
        return handler(column, term)

    def compile_all(self, terms: Sequence[NormalizedFilterTerm], alias: str) -> List[CompiledPredicate]:
        return [self.compile(term, alias) for term in terms]

    # ===== SHARED HELPERS =====

    @staticmethod
    def _operand_day(value: Any) -> Optional[str]:
        """Canonical day for string operands that name a calendar date, else None."""
        if not isinstance(value, str):
            return None
        normalized = normalize_date(value)
        return normalized if parse_canonical_date(normalized) is not None else None

    @staticmethod
    def _require_value(term: NormalizedFilterTerm) -> Any:
        if term.value is None:
            raise MissingOperand(f"{term.operator.value} requires a value for field '{term.field_name}'")
        return term.value

    def _require_day(self, value: Any, term: NormalizedFilterTerm, operand: str = "value") -> str:
        day = self._operand_day(value)
        if day is None:
            raise MissingOperand(
                f"{term.operator.value} requires a date {operand} (YYYY-MM-DD, D-M-YYYY or M/D/YYYY) "
                f"for field '{term.field_name}'"
            )
        return day

    def _day_window(self, column: str, first_day: str, last_day: str) -> CompiledPredicate:
        """Inclusive whole-day range [first_day, last_day + 1)."""
        placeholder = self.date_placeholder
        return CompiledPredicate(
            sql=f"{column} >= {placeholder} AND {column} < {placeholder}",
            params=(first_day, next_day(last_day)),
        )

    def _date_bound(self, column: str, sql_operator: str, day: str) -> CompiledPredicate:
        return CompiledPredicate(sql=f"{column} {sql_operator} {self.date_placeholder}", params=(day,))

    @staticmethod
    def _scalar_operand(value: Any) -> Any:
        # Native booleans are stored as single-character flags
        if isinstance(value, bool):
            return to_flag(value)
        return value

    # ===== COMPARISON =====

    def _compile_equals(self, column: str, term: NormalizedFilterTerm) -> CompiledPredicate:
        value = self._require_value(term)
        day = self._operand_day(value)
        if day is not None:
            return self._day_window(column, day, day)
        return CompiledPredicate(sql=f"{column} = ?", params=(self._scalar_operand(value),))

    def _compile_not_equals(self, column: str, term: NormalizedFilterTerm) -> CompiledPredicate:
        value = self._require_value(term)
        day = self._operand_day(value)
        if day is not None:
            window = self._day_window(column, day, day)
            return CompiledPredicate(sql=f"NOT ({window.sql})", params=window.params)
        return CompiledPredicate(sql=f"{column} != ?", params=(self._scalar_operand(value),))

    def _compile_comparison(self, column: str, term: NormalizedFilterTerm) -> CompiledPredicate:
        value = self._require_value(term)
        scalar_operator, date_operator, use_next_day = _COMPARISONS[term.operator]
        day = self._operand_day(value)
        if day is not None:
            return self._date_bound(column, date_operator, next_day(day) if use_next_day else day)
        return CompiledPredicate(sql=f"{column} {scalar_operator} ?", params=(self._scalar_operand(value),))

    # ===== PATTERN =====

    def _compile_pattern(self, column: str, term: NormalizedFilterTerm) -> CompiledPredicate:
        value = self._require_value(term)
        keyword, leading, trailing = _PATTERNS[term.operator]
        pattern = f"{'%' if leading else ''}{escape_like(value)}{'%' if trailing else ''}"
        return CompiledPredicate(sql=f"{column} {keyword} ? ESCAPE '{LIKE_ESCAPE_CHAR}'", params=(pattern,))

    # ===== SET MEMBERSHIP =====

    def _compile_membership(self, column: str, term: NormalizedFilterTerm) -> CompiledPredicate:
        values = term.values
        if values is None and isinstance(term.value, (list, tuple)):
            values = tuple(term.value)
        if not values:
            # An empty list is refused rather than compiled to an always-true/false test
            raise MissingOperand(f"{term.operator.value} requires a non-empty 'values' list for field '{term.field_name}'")
        keyword = "IN" if term.operator == FilterOperator.IN else "NOT IN"
        placeholders = ", ".join("?" for _ in values)
        return CompiledPredicate(
            sql=f"{column} {keyword} ({placeholders})",
            params=tuple(self._scalar_operand(value) for value in values),
        )

    # ===== NULL CHECKS =====

    def _compile_is_null(self, column: str, term: NormalizedFilterTerm) -> CompiledPredicate:
        return CompiledPredicate(sql=f"{column} IS NULL")

    def _compile_is_not_null(self, column: str, term: NormalizedFilterTerm) -> CompiledPredicate:
        return CompiledPredicate(sql=f"{column} IS NOT NULL")

    # ===== EXPLICIT DATES =====

    def _compile_date_range(self, column: str, term: NormalizedFilterTerm) -> CompiledPredicate:
        if term.start_date is None or term.end_date is None:
            raise MissingOperand(f"date_range requires startdate and enddate for field '{term.field_name}'")
        first_day = self._require_day(term.start_date, term, "startdate")
        last_day = self._require_day(term.end_date, term, "enddate")
        return self._day_window(column, first_day, last_day)

    def _compile_date_equals(self, column: str, term: NormalizedFilterTerm) -> CompiledPredicate:
        day = self._require_day(self._require_value(term), term)
        return self._day_window(column, day, day)

    def _compile_date_before(self, column: str, term: NormalizedFilterTerm) -> CompiledPredicate:
        day = self._require_day(self._require_value(term), term)
        return self._date_bound(column, "<", day)

    def _compile_date_after(self, column: str, term: NormalizedFilterTerm) -> CompiledPredicate:
        day = self._require_day(self._require_value(term), term)
        return self._date_bound(column, ">=", next_day(day))

    # ===== BOOLEAN FLAGS =====

    def _compile_is_true(self, column: str, term: NormalizedFilterTerm) -> CompiledPredicate:
        return CompiledPredicate(sql=f"{column} = ?", params=(TRUE_FLAG,))

    def _compile_is_false(self, column: str, term: NormalizedFilterTerm) -> CompiledPredicate:
        return CompiledPredicate(sql=f"{column} = ?", params=(FALSE_FLAG,))
