"""
Specification Pattern Implementation

Query criteria expressed as small objects that can be composed with ``&``.
Each specification works both as a SQL filter for repository queries and as
an in-memory predicate over loaded records.
"""

from abc import ABC, abstractmethod
from typing import Generic, TypeVar
from sqlalchemy import and_, true


T = TypeVar('T')


class Specification(ABC, Generic[T]):
    """
    Abstract base class for specifications.

    A specification encapsulates a single query criterion.
    """

    @abstractmethod
    def is_satisfied_by(self, candidate: T) -> bool:
        """
        Check if a loaded record satisfies this specification.

        Args:
            candidate: Record to check

        Returns:
            True if candidate satisfies specification
        """

    @abstractmethod
    def to_sql_filter(self):
        """
        Convert specification to a SQLAlchemy filter expression.
        """

    def __and__(self, other: "Specification[T]") -> "AndSpecification[T]":
        return AndSpecification(self, other)


class MatchAllSpecification(Specification[T]):
    """Specification every record satisfies."""

    def is_satisfied_by(self, candidate: T) -> bool:
        return True

    def to_sql_filter(self):
        return true()


class AndSpecification(Specification[T]):
    """Both specifications must hold."""

    def __init__(self, left: Specification[T], right: Specification[T]):
        self.left = left
        self.right = right

    def is_satisfied_by(self, candidate: T) -> bool:
        return self.left.is_satisfied_by(candidate) and self.right.is_satisfied_by(candidate)

    def to_sql_filter(self):
        return and_(self.left.to_sql_filter(), self.right.to_sql_filter())
