"""
Store Request DTOs

DTOs validating input to data store write operations.
"""

from pydantic import BaseModel, Field, field_validator
from typing import Optional


def _require_identifier(v: str) -> str:
    if v is None or not v.strip():
        raise ValueError("Identifier must not be empty")
    return v


class BeerUpdateRequest(BaseModel):
    """
    Request DTO for adding or overwriting a beer.

    Every field is written on update; omitted text fields clear the stored value.
    """

    id: str = Field(description="Beer identifier")
    name: str = Field("", description="Name, e.g. 'Stella Artois'")
    info: Optional[str] = Field(None, description="Description")
    type: Optional[str] = Field(None, description="Style, e.g. 'Lager / Pilsner'")
    country: Optional[str] = Field(None, description="Country of origin")
    image_name: Optional[str] = Field(None, description="Name of image in resources")
    abv: float = Field(0.0, ge=0, allow_inf_nan=False, description="Alcohol by volume")

    @field_validator("id")
    @classmethod
    def validate_id(cls, v):
        return _require_identifier(v)


class KegUpdateRequest(BaseModel):
    """Request DTO for adding or overwriting a keg's beer and volumes."""

    id: str = Field(description="Keg identifier")
    volume_adjusted: float = Field(0.0, allow_inf_nan=False, description="Liters subtracted from the total")
    volume_total: float = Field(0.0, ge=0, allow_inf_nan=False, description="Keg capacity in liters")

    @field_validator("id")
    @classmethod
    def validate_id(cls, v):
        return _require_identifier(v)


class UserUpdateRequest(BaseModel):
    """Request DTO for adding or renaming a user."""

    rfid: str = Field(description="RFID tag identifier")
    display_name: Optional[str] = Field(None, description="Name shown on the leaderboard")

    @field_validator("rfid")
    @classmethod
    def validate_rfid(cls, v):
        return _require_identifier(v)


class PourRequest(BaseModel):
    """Request DTO for recording a pour."""

    amount: float = Field(gt=0, allow_inf_nan=False, description="Liters poured")


class PageRequest(BaseModel):
    """
    Request DTO for paginated listings.

    A limit of None returns every remaining record.
    """

    offset: int = Field(0, ge=0, description="Number of records to skip")
    limit: Optional[int] = Field(None, ge=0, description="Maximum number of records")
