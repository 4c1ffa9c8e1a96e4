"""
Keg Response DTOs

Read models summarizing kegs and drinkers.
"""

from pydantic import BaseModel, ConfigDict, Field
from datetime import datetime
from typing import Optional


class KegStatusResponse(BaseModel):
    """
    Snapshot of a keg's volumes and latest reading.

    ``volume_remaining`` is derived from the pour log and may be negative
    when more was poured than the counters allow for.
    """

    keg_id: str = Field(description="Keg identifier")
    position: Optional[int] = Field(None, description="Tap position, None when unmounted")
    beer_id: Optional[str] = Field(None, description="Beer on tap")
    beer_name: Optional[str] = Field(None, description="Beer name")
    volume_total: float = Field(description="Capacity in liters")
    volume_adjusted: float = Field(description="Liters written off outside the pour log")
    volume_poured: float = Field(description="Liters poured")
    volume_remaining: float = Field(description="Liters left")
    pour_count: int = Field(description="Number of pours")
    temperature: Optional[float] = Field(None, description="Latest temperature in Celsius")
    temperature_at: Optional[datetime] = Field(None, description="When the latest temperature was read")

    @property
    def percent_remaining(self) -> float:
        """Remaining volume as a percentage of capacity, 0 for an empty keg record."""
        if self.volume_total <= 0:
            return 0.0
        return 100.0 * self.volume_remaining / self.volume_total


class LeaderboardEntry(BaseModel):
    """One ranked row of the top drinkers list."""

    model_config = ConfigDict(from_attributes=True)

    rank: int = Field(description="1-based rank")
    rfid: str = Field(description="RFID tag identifier")
    display_name: Optional[str] = Field(None, description="Name shown on the leaderboard")
    volume_poured: float = Field(description="Total liters poured")
