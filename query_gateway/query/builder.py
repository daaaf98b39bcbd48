# query_gateway/query/builder.py
"""
Core QueryBuilder class for turning validated query parameters into a QueryPlan.

This is the single source of truth for query construction. The debug output
of a request and the SQL the engine executes come from the same plan.
"""

import logging
from typing import List, Optional

from .catalog import CatalogEntry, RecordCatalog
from .filters import has_filter_on
from .identifiers import safe_identifier
from .joins import HeaderLineResolver
from .operators import OperatorCompiler
from .plan import CompiledPredicate, OrderBy, QueryPlan
from .schemas import FilterOperator, NormalizedFilterTerm, QueryParameters

logger = logging.getLogger(__name__)


class QueryBuilder:
    """
    Builds one SELECT per request against the record catalog.

    The catalog and operator compiler are injected so that deployments and
    tests can swap the table mapping or the date placeholder template.
    """

    def __init__(self, catalog: RecordCatalog, compiler: Optional[OperatorCompiler] = None):
        self.catalog = catalog
        self.compiler = compiler or OperatorCompiler()
        self.join_resolver = HeaderLineResolver(self.compiler)

    def build(self, params: QueryParameters) -> QueryPlan:
        """
        Build a complete QueryPlan from parameters.

        Raises a QueryValidationError subclass for anything that cannot be
        compiled; nothing here touches the backend.
        """
        entry = self.catalog.resolve(params.record_type)
        alias = safe_identifier(self.catalog.alias(params.record_type), "alias")

        select_fields = self._build_select_list(alias, params.fields)

        if entry.is_line_record:
            where = self.join_resolver.resolve(entry, alias, params.filters).all()
            order_expression = self.join_resolver.order_expression(entry, alias, params.order_by)
        else:
            where = self.compiler.compile_all(params.filters, alias)
            order_expression = self._order_expression(alias, params.order_by)

        where.extend(self._implicit_predicates(entry, alias, params.filters))

        plan = QueryPlan(
            record_type=entry.record_type,
            from_table=entry.base_table,
            alias=alias,
            select_fields=select_fields,
            where=where,
            order_by=OrderBy(order_expression, params.order_direction),
        )
        logger.debug(f"Built plan for {entry.record_type}: {plan.render()} params={plan.params}")
        return plan

    # ===== HELPERS =====

    @staticmethod
    def _build_select_list(alias: str, fields: Optional[List[str]]) -> List[str]:
        if not fields:
            return [f"{alias}.*"]
        return [f"{alias}.{safe_identifier(field_name, 'field')}" for field_name in fields]

    @staticmethod
    def _order_expression(alias: str, order_by: Optional[str]) -> str:
        if not order_by:
            return f"{alias}.id"
        return f"{alias}.{safe_identifier(order_by, 'orderBy')}"

    def _implicit_predicates(
        self, entry: CatalogEntry, alias: str, terms: List[NormalizedFilterTerm]
    ) -> List[CompiledPredicate]:
        """Catalog-level filters, skipped for fields the caller already filters on."""
        predicates = []
        for implicit in entry.implicit_filters:
            if has_filter_on(terms, implicit.field_name):
                continue
            term = NormalizedFilterTerm(
                field_name=implicit.field_name, operator=FilterOperator.EQUALS, value=implicit.value
            )
            predicates.append(self.compiler.compile(term, alias))
        return predicates
