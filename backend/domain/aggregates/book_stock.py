"""
BookStock Aggregate

Copy counters of a single book and the availability rules derived from them.
"""

from dataclasses import dataclass

from constants import LendingDefaults


@dataclass(frozen=True)
class BookStock:
    """
    Immutable snapshot of a book's copy counters.

    The borrowable fund is every copy that may leave the building. A book is
    lendable only while at least 10% of that fund (rounded up) is still on the
    shelf; the reserve is a floor, so lending at exactly the floor is allowed.
    """

    total: int
    reading_room: int
    available: int

    def __post_init__(self):
        """Validate counters."""
        if self.total < 0 or self.reading_room < 0 or self.available < 0:
            raise ValueError(
                f"Copy counters cannot be negative: total={self.total}, "
                f"reading_room={self.reading_room}, available={self.available}"
            )
        if self.reading_room > self.total:
            raise ValueError(
                f"Reading room copies ({self.reading_room}) exceed total copies ({self.total})"
            )
        if self.available > self.total:
            raise ValueError(
                f"Available copies ({self.available}) exceed total copies ({self.total})"
            )

    @property
    def borrowable_fund(self) -> int:
        return self.total - self.reading_room

    @property
    def minimum_reserve(self) -> int:
        """ceil(fund * 10%) in integer arithmetic."""
        fund = self.borrowable_fund
        if fund <= 0:
            return 0
        return -(-fund * LendingDefaults.AVAILABILITY_RESERVE_PERCENT // 100)

    def can_be_borrowed(self) -> bool:
        """At least one copy is not reading-room only."""
        return self.total > self.reading_room

    def has_available_copies_to_borrow(self) -> bool:
        if self.borrowable_fund <= 0:
            return False
        return self.available >= self.minimum_reserve

    def after_borrow(self) -> "BookStock":
        """Stock after one copy leaves the shelf."""
        if self.available == 0:
            raise ValueError("No available copy to lend")
        return BookStock(self.total, self.reading_room, self.available - 1)

    def after_return(self) -> "BookStock":
        """Stock after one copy comes back (capped at the total)."""
        return BookStock(self.total, self.reading_room, min(self.available + 1, self.total))

    @classmethod
    def from_book(cls, book) -> "BookStock":
        """Create BookStock from anything exposing the book counter attributes."""
        return cls(
            total=book.total_copies,
            reading_room=book.reading_room_copies,
            available=book.available_copies,
        )


def can_be_borrowed(book) -> bool:
    return BookStock.from_book(book).can_be_borrowed()


def has_available_copies_to_borrow(book) -> bool:
    return BookStock.from_book(book).has_available_copies_to_borrow()
