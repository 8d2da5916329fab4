"""
Specification Pattern Implementation

Query criteria as small composable objects. Each specification renders
itself as an SQLAlchemy filter; specifications combine with ``&`` so a
repository query can be assembled from reusable pieces.
"""

from abc import ABC, abstractmethod
from typing import Generic, TypeVar

from sqlalchemy import and_


T = TypeVar('T')


class Specification(ABC, Generic[T]):
    """A single query criterion over objects of type T."""

    @abstractmethod
    def to_sql_filter(self):
        """Render the criterion as an SQLAlchemy filter expression."""

    def __and__(self, other: "Specification[T]") -> "AndSpecification[T]":
        return AndSpecification(self, other)


class AndSpecification(Specification[T]):
    def __init__(self, left: Specification[T], right: Specification[T]):
        self.left = left
        self.right = right

    def to_sql_filter(self):
        return and_(self.left.to_sql_filter(), self.right.to_sql_filter())
