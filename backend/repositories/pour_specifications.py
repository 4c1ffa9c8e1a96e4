"""
Pour-specific Specifications

Concrete specifications for querying the keg pour log.
"""

from datetime import datetime
from typing import Optional
from models import KegPour
from .specifications import Specification, MatchAllSpecification


class PoursByUserSpec(Specification[KegPour]):
    """Pours attributed to one user."""

    def __init__(self, rfid: str):
        """
        Initialize specification.

        Args:
            rfid: RFID of the user the pours belong to
        """
        self.rfid = rfid

    def is_satisfied_by(self, pour: KegPour) -> bool:
        return pour.user_rfid == self.rfid

    def to_sql_filter(self):
        return KegPour.user_rfid == self.rfid


class PoursByKegSpec(Specification[KegPour]):
    """Pours drawn from one keg."""

    def __init__(self, keg_id: str):
        self.keg_id = keg_id

    def is_satisfied_by(self, pour: KegPour) -> bool:
        return pour.keg_id == self.keg_id

    def to_sql_filter(self):
        return KegPour.keg_id == self.keg_id


class PoursFromDateSpec(Specification[KegPour]):
    """Pours at or after a point in time (inclusive)."""

    def __init__(self, date: datetime):
        self.date = date

    def is_satisfied_by(self, pour: KegPour) -> bool:
        return pour.created_at >= self.date

    def to_sql_filter(self):
        return KegPour.created_at >= self.date


class PoursToDateSpec(Specification[KegPour]):
    """Pours at or before a point in time (inclusive)."""

    def __init__(self, date: datetime):
        self.date = date

    def is_satisfied_by(self, pour: KegPour) -> bool:
        return pour.created_at <= self.date

    def to_sql_filter(self):
        return KegPour.created_at <= self.date


def pours_in_range_spec(
    from_date: datetime,
    to_date: datetime,
    rfid: Optional[str] = None
) -> Specification[KegPour]:
    """
    Build the specification for pours within ``[from_date, to_date]``.

    Args:
        from_date: Earliest timestamp, inclusive
        to_date: Latest timestamp, inclusive
        rfid: Restrict to one user; None matches every user and anonymous pours

    Returns:
        Composed specification
    """
    user_spec = PoursByUserSpec(rfid) if rfid is not None else MatchAllSpecification()
    return PoursFromDateSpec(from_date) & PoursToDateSpec(to_date) & user_spec
