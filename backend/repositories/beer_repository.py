"""
Beer repository for beer-specific data access operations.
"""

from models import Beer as BeerModel
from .base_repository import BaseRepository


class BeerRepository(BaseRepository[BeerModel]):
    """Repository for Beer model operations."""

    def __init__(self, gateway):
        super().__init__(gateway, BeerModel)
