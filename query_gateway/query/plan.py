# query_gateway/query/plan.py
"""
Small query AST: compiled predicates and the plan they are assembled into.

Predicates carry ``?`` placeholders together with their bound values. Text is
only produced by ``QueryPlan.render``, which numbers placeholders from the same
predicate list that supplies the parameters.
"""

import itertools
import re
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Tuple

from .schemas import OrderDirection

PLACEHOLDER = "?"
_PLACEHOLDER_PATTERN = re.compile(r"\?")


@dataclass(frozen=True)
class CompiledPredicate:
    """One WHERE fragment and the values bound to its placeholders, in order."""

    sql: str
    params: Tuple[Any, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, "params", tuple(self.params))
        placeholder_count = self.sql.count(PLACEHOLDER)
        if placeholder_count != len(self.params):
            raise ValueError(
                f"Predicate has {placeholder_count} placeholders but {len(self.params)} parameters: {self.sql}"
            )

    @classmethod
    def combine(cls, predicates: Iterable["CompiledPredicate"], joiner: str = " AND ") -> "CompiledPredicate":
        predicates = list(predicates)
        return cls(
            sql=joiner.join(predicate.sql for predicate in predicates),
            params=tuple(itertools.chain.from_iterable(predicate.params for predicate in predicates)),
        )


@dataclass(frozen=True)
class OrderBy:
    expression: str
    direction: OrderDirection = OrderDirection.ASC

    def render(self) -> str:
        return f"{self.expression} {self.direction.value}"


@dataclass
class QueryPlan:
    """Everything needed to render one SELECT against the data platform."""

    record_type: str
    from_table: str
    alias: str
    select_fields: List[str]
    where: List[CompiledPredicate] = field(default_factory=list)
    order_by: Optional[OrderBy] = None

    @property
    def params(self) -> List[Any]:
        return [param for predicate in self.where for param in predicate.params]

    def named_params(self) -> Dict[str, Any]:
        """Parameters keyed the way ``render(paramstyle="named")`` numbers them."""
        return {f"p{index}": value for index, value in enumerate(self.params)}

    def render(self, paramstyle: str = "qmark", include_order: bool = True) -> str:
        """
        Render the plan to SQL text.

        ``qmark`` keeps ``?`` placeholders; ``named`` rewrites them to
        ``:p0, :p1, ...`` matching ``named_params``.
        """
        sql = f"SELECT {', '.join(self.select_fields)} FROM {self.from_table} {self.alias}"
        if self.where:
            sql += " WHERE " + " AND ".join(predicate.sql for predicate in self.where)
        if include_order and self.order_by is not None:
            sql += " ORDER BY " + self.order_by.render()

        if paramstyle == "qmark":
            return sql
        if paramstyle == "named":
            counter = itertools.count()
            return _PLACEHOLDER_PATTERN.sub(lambda _match: f":p{next(counter)}", sql)
        raise ValueError(f"Unsupported paramstyle: {paramstyle}")
