# query_gateway/query/joins.py
"""
Header/line join resolution.

Line record types (transaction lines, planned revenue lines) carry only some
of the fields callers filter on; the rest live on the owning header row.
Header-only terms are compiled against the header table inside a correlated
``IN (SELECT ...)`` subquery on the foreign key, which keeps one row per line
without joining the header into the outer query.
"""

from dataclasses import dataclass
from typing import List, Optional, Sequence

from .catalog import CatalogEntry
from .identifiers import safe_identifier
from .operators import OperatorCompiler
from .plan import CompiledPredicate
from .schemas import NormalizedFilterTerm


@dataclass(frozen=True)
class LinePredicates:
    """Predicates for a line query: the header subquery (if any) comes first."""

    header_subquery: Optional[CompiledPredicate]
    line_predicates: List[CompiledPredicate]

    def all(self) -> List[CompiledPredicate]:
        if self.header_subquery is None:
            return list(self.line_predicates)
        return [self.header_subquery, *self.line_predicates]


class HeaderLineResolver:
    """Splits a line record's terms between the header and line tables."""

    def __init__(self, compiler: OperatorCompiler):
        self.compiler = compiler

    @staticmethod
    def partition(entry: CatalogEntry, terms: Sequence[NormalizedFilterTerm]):
        header_terms = [term for term in terms if entry.is_header_field(term.field_name)]
        line_terms = [term for term in terms if not entry.is_header_field(term.field_name)]
        return header_terms, line_terms

    def resolve(self, entry: CatalogEntry, line_alias: str, terms: Sequence[NormalizedFilterTerm]) -> LinePredicates:
        header_terms, line_terms = self.partition(entry, terms)
        line_predicates = self.compiler.compile_all(line_terms, line_alias)
        if not header_terms:
            return LinePredicates(header_subquery=None, line_predicates=line_predicates)

        header_where = CompiledPredicate.combine(self.compiler.compile_all(header_terms, entry.header_alias))
        subquery = CompiledPredicate(
            sql=(
                f"{self.foreign_key_column(entry, line_alias)} IN "
                f"(SELECT {entry.header_alias}.id FROM {entry.header_table} {entry.header_alias} "
                f"WHERE {header_where.sql})"
            ),
            params=header_where.params,
        )
        return LinePredicates(header_subquery=subquery, line_predicates=line_predicates)

    @staticmethod
    def foreign_key_column(entry: CatalogEntry, line_alias: str) -> str:
        return f"{line_alias}.{entry.foreign_key_field}"

    def order_expression(self, entry: CatalogEntry, line_alias: str, order_by: Optional[str]) -> str:
        """
        ORDER BY expression for a line query.

        Without an explicit field, lines are grouped by their header. A
        header-only field is read from the owning header row through a
        correlated scalar subquery, since the header alias is not in scope
        in the outer query.
        """
        if not order_by:
            return self.foreign_key_column(entry, line_alias)
        field_name = safe_identifier(order_by, "orderBy")
        if entry.is_header_field(field_name):
            header = entry.header_alias
            return (
                f"(SELECT {header}.{field_name} FROM {entry.header_table} {header} "
                f"WHERE {header}.id = {self.foreign_key_column(entry, line_alias)})"
            )
        return f"{line_alias}.{field_name}"
