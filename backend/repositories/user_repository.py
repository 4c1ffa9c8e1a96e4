"""
User repository for user-specific data access operations.
"""

from typing import List, Optional

from models import User as UserModel
from .base_repository import BaseRepository


class UserRepository(BaseRepository[UserModel]):
    """Repository for User model operations."""

    def __init__(self, gateway):
        super().__init__(gateway, UserModel)

    def get_by_rfid(self, rfid: str) -> Optional[UserModel]:
        """
        Find a user by RFID tag.

        Args:
            rfid: RFID identifier

        Returns:
            User instance or None if not found
        """
        return self.get_by_id(rfid)

    def get_page_ordered(self, offset: int = 0, limit: Optional[int] = None) -> List[UserModel]:
        """Users ordered by RFID."""
        return self.get_page(order_by=(self.model.rfid,), offset=offset, limit=limit)

    def get_top_by_pour(self, offset: int = 0, limit: Optional[int] = None) -> List[UserModel]:
        """
        Get users ranked by total volume poured, largest first.

        Ties are broken by RFID so the ranking is deterministic.

        Args:
            offset: Number of users to skip
            limit: Maximum number of users to return

        Returns:
            List of users
        """
        order_by = (self.model.volume_poured.desc(), self.model.rfid)
        return self.get_page(order_by=order_by, offset=offset, limit=limit)
