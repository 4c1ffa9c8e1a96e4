"""
Response DTOs

Read models returned by the data store, carrying derived fields the
database models do not store.
"""

from .keg_response import KegStatusResponse, LeaderboardEntry

__all__ = ["KegStatusResponse", "LeaderboardEntry"]
