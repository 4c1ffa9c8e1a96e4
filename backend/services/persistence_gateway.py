"""
Persistence Gateway

Owns the SQLAlchemy session for a data store and exposes the small set of
primitives the layers above rely on: open a session, fetch records, insert a
record and save. Nothing above this module touches the engine directly.
"""

import logging
from typing import Any, List, Optional, Sequence, Type, TypeVar

from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from database import make_session_factory
from exceptions import StorageError, ValidationError
from repositories.specifications import Specification

logger = logging.getLogger(__name__)

T = TypeVar('T')


class PersistenceGateway:
    """
    Single-session gateway over an embedded SQLite database.

    One gateway holds at most one open session; ``begin_session`` returns it,
    opening it on first use.
    """

    def __init__(self, engine: Engine, session_factory: Optional[sessionmaker] = None):
        """
        Initialize the gateway.

        Args:
            engine: Engine created by database.create_store_engine
            session_factory: Optional factory, defaults to one bound to engine
        """
        self.engine = engine
        self._session_factory = session_factory or make_session_factory(engine)
        self._session: Optional[Session] = None

    def begin_session(self) -> Session:
        """Return the working session, opening it if needed."""
        if self._session is None:
            self._session = self._session_factory()
        return self._session

    @property
    def session(self) -> Session:
        return self.begin_session()

    def fetch(
        self,
        model: Type[T],
        spec: Optional[Specification[T]] = None,
        order_by: Sequence[Any] = (),
        offset: int = 0,
        limit: Optional[int] = None
    ) -> List[T]:
        """
        Fetch records of one kind.

        Args:
            model: Mapped class to query
            spec: Optional specification filtering the records
            order_by: Column expressions to sort by, in priority order
            offset: Number of records to skip
            limit: Maximum number of records, None for no bound

        Returns:
            List of matching records

        Raises:
            ValidationError: If offset or limit is negative
            StorageError: If the query fails
        """
        if offset < 0:
            raise ValidationError("Offset must not be negative", {"offset": offset})
        if limit is not None and limit < 0:
            raise ValidationError("Limit must not be negative", {"limit": limit})
        if limit == 0:
            return []

        query = self.session.query(model)
        if spec is not None:
            query = query.filter(spec.to_sql_filter())
        if order_by:
            query = query.order_by(*order_by)
        if offset:
            query = query.offset(offset)
        if limit is not None:
            query = query.limit(limit)
        try:
            return query.all()
        except SQLAlchemyError as e:
            self.session.rollback()
            logger.error(f"Fetch of {model.__name__} failed: {e}", exc_info=True)
            raise StorageError(f"fetch {model.__name__}", str(e)) from e

    def insert(self, obj: T) -> T:
        """Add a new record to the working set."""
        self.session.add(obj)
        return obj

    def flush(self, operation: str = "flush") -> None:
        """
        Push pending changes to the database without committing.

        Raises:
            StorageError: If a constraint is violated; the transaction is rolled back
        """
        try:
            self.session.flush()
        except SQLAlchemyError as e:
            self.session.rollback()
            logger.error(f"{operation} - Database error: {e}", exc_info=True)
            raise StorageError(operation, str(e)) from e

    def save(self, operation: str = "save") -> None:
        """
        Commit all pending mutations.

        On failure the transaction is rolled back so previously committed
        state stays intact, then the error is raised.

        Raises:
            StorageError: If the commit fails
        """
        try:
            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            logger.error(f"{operation} - Database error: {e}", exc_info=True)
            raise StorageError(operation, str(e)) from e

    def close(self) -> None:
        """Close the working session, if one is open."""
        if self._session is not None:
            self._session.close()
            self._session = None
