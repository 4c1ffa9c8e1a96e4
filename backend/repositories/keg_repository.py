"""
Keg repository for keg-specific data access operations.
"""

from typing import List, Optional

from models import Keg as KegModel
from .base_repository import BaseRepository


class KegRepository(BaseRepository[KegModel]):
    """Repository for Keg model operations."""

    def __init__(self, gateway):
        super().__init__(gateway, KegModel)

    def get_at_position(self, position: int) -> Optional[KegModel]:
        """
        Get the keg mounted at a tap position.

        Args:
            position: Tap slot index

        Returns:
            Keg instance or None if the slot is empty
        """
        if position is None:
            return None
        return self.db.query(self.model).filter(
            self.model.position == position
        ).first()

    def get_page_ordered(self, offset: int = 0, limit: Optional[int] = None) -> List[KegModel]:
        """
        Get kegs ordered by position, with unmounted kegs last.

        Ties (unmounted kegs) fall back to creation time, then id.

        Args:
            offset: Number of kegs to skip
            limit: Maximum number of kegs to return

        Returns:
            List of kegs
        """
        order_by = (
            self.model.position.is_(None),
            self.model.position,
            self.model.created_at,
            self.model.id,
        )
        return self.get_page(order_by=order_by, offset=offset, limit=limit)
