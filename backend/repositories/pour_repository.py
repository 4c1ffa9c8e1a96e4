"""
Pour repository for queries and aggregates over the keg pour log.
"""

from typing import Dict, List, Optional

from sqlalchemy import func

from models import KegPour as KegPourModel
from .base_repository import BaseRepository
from .specifications import MatchAllSpecification, Specification


class PourRepository(BaseRepository[KegPourModel]):
    """Repository for KegPour model operations."""

    def __init__(self, gateway):
        super().__init__(gateway, KegPourModel)

    def _chronological(self, ascending: bool):
        if ascending:
            return (self.model.created_at.asc(), self.model.id.asc())
        return (self.model.created_at.desc(), self.model.id.desc())

    def get_recent(self, limit: int, ascending: bool = False) -> List[KegPourModel]:
        """
        Get pours sorted by time, bounded by ``limit``.

        Descending returns the newest pours, ascending the oldest.

        Args:
            limit: Maximum number of pours
            ascending: Oldest first when True

        Returns:
            List of pours
        """
        return self.get_page(order_by=self._chronological(ascending), limit=limit)

    def get_latest(self) -> Optional[KegPourModel]:
        """Newest pour in the log, or None when nothing has been poured."""
        return self.find_one(MatchAllSpecification(), order_by=self._chronological(False))

    def get_in_range(self, spec: Specification[KegPourModel]) -> List[KegPourModel]:
        """Pours matching a specification, oldest first."""
        return self.find(spec, order_by=self._chronological(True))

    def sum_amount(self, spec: Optional[Specification[KegPourModel]] = None) -> float:
        """
        Total liters over pours matching a specification.

        Args:
            spec: Filter, or None for the whole log

        Returns:
            Sum of amounts, 0.0 when nothing matches
        """
        query = self.db.query(func.coalesce(func.sum(self.model.amount), 0.0))
        if spec is not None:
            query = query.filter(spec.to_sql_filter())
        return float(query.scalar())

    def sum_by_user(self) -> Dict[str, float]:
        """
        Total liters per user across the whole log.

        Returns:
            Mapping of RFID to liters; anonymous pours are excluded
        """
        rows = self.db.query(
            self.model.user_rfid,
            func.sum(self.model.amount).label('total')
        ).filter(
            self.model.user_rfid.isnot(None)
        ).group_by(self.model.user_rfid).all()
        return {row.user_rfid: float(row.total) for row in rows}

    def count_for_keg(self, keg_id: str) -> int:
        return self.db.query(func.count(self.model.id)).filter(
            self.model.keg_id == keg_id
        ).scalar()
