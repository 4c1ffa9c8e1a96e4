"""
Temperature repository for keg temperature readings.
"""

from typing import List, Optional

from models import KegTemperature as KegTemperatureModel
from .base_repository import BaseRepository


class TemperatureRepository(BaseRepository[KegTemperatureModel]):
    """Repository for KegTemperature model operations."""

    def __init__(self, gateway):
        super().__init__(gateway, KegTemperatureModel)

    def get_recent_for_keg(self, keg_id: str, limit: Optional[int] = None) -> List[KegTemperatureModel]:
        """
        Get a keg's readings, most recent first.

        Args:
            keg_id: Keg identifier
            limit: Maximum number of readings

        Returns:
            List of temperature readings
        """
        query = self.db.query(self.model).filter(
            self.model.keg_id == keg_id
        ).order_by(self.model.created_at.desc(), self.model.id.desc())
        if limit is not None:
            query = query.limit(limit)
        return query.all()

    def get_latest_for_keg(self, keg_id: str) -> Optional[KegTemperatureModel]:
        """Most recent reading for a keg, or None."""
        readings = self.get_recent_for_keg(keg_id, limit=1)
        return readings[0] if readings else None
