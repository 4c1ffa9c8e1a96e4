"""
Base repository providing common data access operations.
"""

from typing import TYPE_CHECKING, Any, Generic, List, Optional, Sequence, Type, TypeVar

from sqlalchemy import func

from .specifications import Specification

if TYPE_CHECKING:
    from services.persistence_gateway import PersistenceGateway

T = TypeVar('T')


class BaseRepository(Generic[T]):
    """
    Generic base repository providing common operations.
    All specific repositories should inherit from this class.
    """

    def __init__(self, gateway: "PersistenceGateway", model: Type[T]):
        """
        Initialize the repository.

        Args:
            gateway: Persistence gateway owning the session
            model: SQLAlchemy model class
        """
        self.gateway = gateway
        self.model = model

    @property
    def db(self):
        return self.gateway.session

    def create(self, obj: T) -> T:
        """
        Add a new record and flush it so generated keys are populated.

        Args:
            obj: Model instance to create

        Returns:
            Created model instance
        """
        self.gateway.insert(obj)
        self.gateway.flush(f"create {self.model.__name__}")
        return obj

    def get_by_id(self, id: Any) -> Optional[T]:
        """
        Retrieve a record by its primary key.

        Args:
            id: Primary key value

        Returns:
            Model instance or None if not found
        """
        return self.db.get(self.model, id)

    def get_page(
        self,
        order_by: Sequence[Any],
        offset: int = 0,
        limit: Optional[int] = None
    ) -> List[T]:
        """
        Retrieve one page of records in a stable order.

        Args:
            order_by: Column expressions to sort by
            offset: Number of records to skip
            limit: Maximum number of records to return, None for all

        Returns:
            List of model instances
        """
        return self.gateway.fetch(self.model, order_by=order_by, offset=offset, limit=limit)

    def count(self) -> int:
        """
        Count total records.

        Returns:
            Total number of records
        """
        return self.db.query(func.count()).select_from(self.model).scalar()

    def find(
        self,
        spec: Specification[T],
        order_by: Sequence[Any] = (),
        offset: int = 0,
        limit: Optional[int] = None
    ) -> List[T]:
        """
        Find records matching a specification.

        Args:
            spec: Specification to match records against
            order_by: Column expressions to sort by
            offset: Number of records to skip
            limit: Maximum number of records to return

        Returns:
            List of matching records
        """
        return self.gateway.fetch(self.model, spec, order_by, offset, limit)

    def find_one(self, spec: Specification[T], order_by: Sequence[Any] = ()) -> Optional[T]:
        """
        First record matching a specification, or None.
        """
        results = self.gateway.fetch(self.model, spec, order_by, limit=1)
        return results[0] if results else None
