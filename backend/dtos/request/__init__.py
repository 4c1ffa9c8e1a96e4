"""
Request DTOs

DTOs for input to data store write operations. Validation happens here,
at the store boundary, so the ORM models stay free of input rules.
"""

from .store_request import (
    BeerUpdateRequest,
    KegUpdateRequest,
    PageRequest,
    PourRequest,
    UserUpdateRequest,
)

__all__ = [
    "BeerUpdateRequest",
    "KegUpdateRequest",
    "PageRequest",
    "PourRequest",
    "UserUpdateRequest",
]
