"""
Specification Pattern

Query criteria as small composable objects. Each specification can test an
in-memory candidate and render itself as a SQLAlchemy filter, so the same
rule is used by repository queries and by unit tests.
"""

from abc import ABC, abstractmethod
from typing import Generic, TypeVar

from sqlalchemy import and_, true


T = TypeVar('T')


class Specification(ABC, Generic[T]):
    """A single query criterion."""

    @abstractmethod
    def is_satisfied_by(self, candidate: T) -> bool:
        """Check if a candidate object satisfies this specification."""

    @abstractmethod
    def to_sql_filter(self):
        """Render as a SQLAlchemy filter expression."""

    def __and__(self, other: "Specification[T]") -> "AndSpecification[T]":
        return AndSpecification(self, other)


class AndSpecification(Specification[T]):
    def __init__(self, left: Specification[T], right: Specification[T]):
        self.left = left
        self.right = right

    def is_satisfied_by(self, candidate: T) -> bool:
        return self.left.is_satisfied_by(candidate) and self.right.is_satisfied_by(candidate)

    def to_sql_filter(self):
        return and_(self.left.to_sql_filter(), self.right.to_sql_filter())


class MatchAllSpecification(Specification[T]):
    """Neutral element for AND-folding optional filters."""

    def is_satisfied_by(self, candidate: T) -> bool:
        return True

    def to_sql_filter(self):
        return true()
