"""
Internal Lending DTOs

Snapshots the lending rules evaluate, detached from the ORM session.
"""

from dataclasses import dataclass
from typing import FrozenSet

from domain.aggregates.book_stock import BookStock


@dataclass(frozen=True)
class BorrowCandidate:
    """
    A book requested in a borrow session.

    Captured once per evaluation, so every rule sees the same counters and
    domain assignment.
    """

    book_id: int
    title: str
    stock: BookStock
    domain_ids: FrozenSet[int]

    @classmethod
    def from_book(cls, book) -> "BorrowCandidate":
        return cls(
            book_id=book.id,
            title=book.title,
            stock=BookStock.from_book(book),
            domain_ids=frozenset(d.id for d in book.domains),
        )
