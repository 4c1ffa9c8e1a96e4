"""
Repository layer for data access abstraction.

This package contains repository classes that encapsulate database queries
and provide a clean interface for data access operations.
"""

from .base_repository import BaseRepository
from .beer_repository import BeerRepository
from .keg_repository import KegRepository
from .user_repository import UserRepository
from .pour_repository import PourRepository
from .temperature_repository import TemperatureRepository

__all__ = [
    "BaseRepository",
    "BeerRepository",
    "KegRepository",
    "UserRepository",
    "PourRepository",
    "TemperatureRepository",
]
