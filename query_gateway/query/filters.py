# query_gateway/query/filters.py
"""
Filter normalizer.

Callers send filters in several shapes; everything downstream works on one:
a list of NormalizedFilterTerm. Shapes are tried in a fixed order:

1. ``[{"field": "x", "operator": "=", "value": 1}, ...]``
2. ``[{"x": {"operator": "=", "value": 1}}, ...]``
3. ``{"x": 1, "y": {"operator": ">", "value": 2}, "d_startdate": "1-1-2024"}``
4. ``[{"field_name": "x", "operator": "equals", "value": 1}, ...]``
"""

import logging
import re
from dataclasses import replace
from typing import Any, Dict, List, Mapping, Optional, Tuple

from .dates import normalize_date
from .identifiers import safe_identifier
from .operators import resolve_operator
from .schemas import FilterOperator, NormalizedFilterTerm

logger = logging.getLogger(__name__)

_START_SUFFIX = re.compile(r"(.*)_startdate", re.IGNORECASE)
_END_SUFFIX = re.compile(r"(.*)_enddate", re.IGNORECASE)


def _first_present(spec: Mapping[str, Any], *keys: str) -> Any:
    for key in keys:
        if spec.get(key) is not None:
            return spec[key]
    return None


def _make_term(field_name: Any, spec: Mapping[str, Any], operator: Any = None) -> NormalizedFilterTerm:
    """Build one validated term from a field name and an operand mapping."""
    values = spec.get("values")
    return NormalizedFilterTerm(
        field_name=safe_identifier(str(field_name) if field_name is not None else "", "field_name"),
        operator=resolve_operator(spec.get("operator") if operator is None else operator),
        value=spec.get("value"),
        values=tuple(values) if isinstance(values, (list, tuple)) else None,
        start_date=_first_present(spec, "startdate", "start_date"),
        end_date=_first_present(spec, "enddate", "end_date"),
    )


def _is_field_list(raw: List[Any]) -> bool:
    return all(isinstance(item, Mapping) and "field" in item for item in raw)


def _is_single_key_list(raw: List[Any]) -> bool:
    return all(isinstance(item, Mapping) and len(item) == 1 for item in raw)


def _normalize_single_key_list(raw: List[Mapping[str, Any]]) -> List[NormalizedFilterTerm]:
    terms = []
    for item in raw:
        field_name, spec = next(iter(item.items()))
        if not field_name or not isinstance(spec, Mapping):
            logger.debug(f"Skipping filter entry without an operator record: {item!r}")
            continue
        terms.append(_make_term(field_name, spec))
    return terms


def _normalize_field_mapping(raw: Mapping[str, Any]) -> List[NormalizedFilterTerm]:
    terms: List[NormalizedFilterTerm] = []
    # field -> [start, end], insertion-ordered by first sighting
    bounds: Dict[str, List[Optional[str]]] = {}

    for key, value in raw.items():
        key = str(key)
        start_match = _START_SUFFIX.fullmatch(key)
        end_match = _END_SUFFIX.fullmatch(key)
        if start_match:
            bounds.setdefault(start_match.group(1), [None, None])[0] = normalize_date(value)
            continue
        if end_match:
            bounds.setdefault(end_match.group(1), [None, None])[1] = normalize_date(value)
            continue

        if isinstance(value, Mapping) and "operator" in value:
            terms.append(_make_term(key, value))
        else:
            terms.append(_make_term(key, {"value": value}, FilterOperator.EQUALS))

    for field_name, (start, end) in bounds.items():
        if start:
            terms.append(_make_term(field_name, {"value": start}, FilterOperator.GREATER_THAN_OR_EQUAL))
        if end:
            terms.append(_make_term(field_name, {"value": end}, FilterOperator.LESS_THAN_OR_EQUAL))
    return terms


def _normalize_internal_list(raw: List[Any]) -> List[NormalizedFilterTerm]:
    terms = []
    for item in raw:
        if isinstance(item, NormalizedFilterTerm):
            terms.append(replace(item, field_name=safe_identifier(item.field_name, "field_name")))
            continue
        spec = item if isinstance(item, Mapping) else {}
        # An item without a usable field name is rejected as an unsafe identifier
        terms.append(_make_term(spec.get("field_name"), spec))
    return terms


def normalize_filters(raw: Any) -> List[NormalizedFilterTerm]:
    """
    Convert any accepted filter shape into a list of NormalizedFilterTerm.

    Empty or unrecognised input means "no filtering". Field names are
    validated and operator tokens resolved here, so the compiler only ever
    sees canonical terms.
    """
    if not raw:
        return []

    if isinstance(raw, (list, tuple)):
        items = list(raw)
        if _is_field_list(items):
            return [_make_term(item.get("field"), item) for item in items]
        if _is_single_key_list(items):
            return _normalize_single_key_list(items)
        return _normalize_internal_list(items)

    if isinstance(raw, Mapping):
        return _normalize_field_mapping(raw)

    logger.debug(f"Ignoring filters of unsupported type {type(raw).__name__}")
    return []


def has_filter_on(terms: List[NormalizedFilterTerm], field_name: str) -> bool:
    """True when any term targets ``field_name`` (case-insensitive)."""
    wanted = field_name.lower()
    return any(term.field_name.lower() == wanted for term in terms)


def describe_terms(terms: List[NormalizedFilterTerm]) -> List[Tuple[str, str]]:
    """(field, operator) pairs for log lines."""
    return [(term.field_name, term.operator.value) for term in terms]
