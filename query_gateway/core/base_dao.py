# query_gateway/core/base_dao.py
"""Generic base DAO for common database operations."""

from abc import ABC
from typing import Generic, List, Type, TypeVar

from sqlalchemy import and_, desc, select
from sqlalchemy.orm import Session

from query_gateway.core.database import Base

ModelType = TypeVar("ModelType", bound=Base)


class BaseDAO(Generic[ModelType], ABC):
    """Generic DAO for common database operations."""

    def __init__(self, model: Type[ModelType], db: Session):
        self.model = model
        self.db = db

    def _filter_conditions(self, filters: dict) -> list:
        return [
            getattr(self.model, key) == value
            for key, value in filters.items()
            if hasattr(self.model, key) and value is not None
        ]

    def get_recent(self, order_field: str, limit: int = 100, **filters) -> List[ModelType]:
        """Most recent records first, ordered by ``order_field``."""
        query = select(self.model)
        conditions = self._filter_conditions(filters)
        if conditions:
            query = query.where(and_(*conditions))
        query = query.order_by(desc(getattr(self.model, order_field)), desc(self.model.id)).limit(limit)
        return list(self.db.execute(query).scalars().all())

    def create(self, db_obj: ModelType) -> ModelType:
        """Persist a new record."""
        self.db.add(db_obj)
        self.db.commit()
        self.db.refresh(db_obj)
        return db_obj
