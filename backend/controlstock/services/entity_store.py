"""
Entity Store - thin CRUD wrapper over a SQLAlchemy session.

Every database failure leaves the session rolled back and surfaces as
StoreIOError; unique-constraint violations surface as Conflict.
"""
import logging
from typing import Any, Dict, Iterable, List, Optional, Type

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from controlstock.exceptions import Conflict, NotFound, StoreIOError

logger = logging.getLogger(__name__)


class EntityStore:
    """CRUD over mapped models. One store per request-scoped session."""

    def __init__(self, db: Session):
        self.db = db

    def get(self, model: Type, entity_id) -> Any:
        """Return the row or raise NotFound."""
        try:
            row = self.db.get(model, entity_id)
        except SQLAlchemyError as e:
            self._fail("get", model, e)
        if row is None:
            logger.warning("%s %s not found", model.__name__, entity_id)
            raise NotFound(model.__name__, entity_id)
        return row

    def find(self, model: Type, entity_id) -> Optional[Any]:
        """Like get() but returns None when absent."""
        try:
            return self.db.get(model, entity_id)
        except SQLAlchemyError as e:
            self._fail("get", model, e)

    def list(
        self,
        model: Type,
        filters: Optional[Iterable] = None,
        order: Optional[Iterable] = None,
        limit: Optional[int] = None,
    ) -> List[Any]:
        query = self.db.query(model)
        for criterion in filters or ():
            query = query.filter(criterion)
        if order:
            query = query.order_by(*order)
        if limit:
            query = query.limit(limit)
        try:
            return query.all()
        except SQLAlchemyError as e:
            self._fail("list", model, e)

    def insert(self, record) -> Any:
        """Persist a new record and return its id."""
        self.db.add(record)
        self._commit("insert", type(record))
        self.db.refresh(record)
        return record.id

    def update(self, model: Type, entity_id, changes: Dict[str, Any]) -> Any:
        row = self.get(model, entity_id)
        for key, value in changes.items():
            setattr(row, key, value)
        self._commit("update", model)
        self.db.refresh(row)
        return row

    def delete(self, model: Type, entity_id) -> None:
        row = self.get(model, entity_id)
        self.db.delete(row)
        self._commit("delete", model)

    def _commit(self, op: str, model: Type) -> None:
        try:
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            logger.info("%s %s rejected by constraint: %s", op, model.__name__, e.orig)
            raise Conflict(f"{model.__name__} conflicts with an existing record")
        except SQLAlchemyError as e:
            self._fail(op, model, e)

    def _fail(self, op: str, model: Type, exc: Exception):
        self.db.rollback()
        logger.exception("Store %s on %s failed", op, model.__name__)
        raise StoreIOError(f"Database error during {op} of {model.__name__}") from exc
