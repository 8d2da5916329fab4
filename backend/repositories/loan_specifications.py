"""
Loan and Extension Specifications

Concrete specifications for the borrowing-history queries the lending rules
run. Date ranges are half-open: ``start <= date < end``.
"""

from datetime import datetime
from typing import Iterable

from domain.value_objects.loan_state import LoanState
from models import Book, Domain, Extension, Loan
from .specifications import Specification


class LoansByReaderSpec(Specification[Loan]):
    """Loans of one reader."""

    def __init__(self, reader_id: int):
        self.reader_id = reader_id

    def to_sql_filter(self):
        return Loan.reader_id == self.reader_id


class LoansByBookSpec(Specification[Loan]):
    """Loans of one book."""

    def __init__(self, book_id: int):
        self.book_id = book_id

    def to_sql_filter(self):
        return Loan.book_id == self.book_id


class LoansLentBySpec(Specification[Loan]):
    """Loans handed out by one staff member."""

    def __init__(self, staff_id: int):
        self.staff_id = staff_id

    def to_sql_filter(self):
        return Loan.lent_by_id == self.staff_id


class OpenLoansSpec(Specification[Loan]):
    """Loans that have not been returned."""

    def to_sql_filter(self):
        return Loan.state == LoanState.OPEN.value


class LoansStartedBetweenSpec(Specification[Loan]):
    """Loans whose borrow_start falls in [start, end)."""

    def __init__(self, start: datetime, end: datetime):
        self.start = start
        self.end = end

    def to_sql_filter(self):
        return (Loan.borrow_start >= self.start) & (Loan.borrow_start < self.end)


class LoansInDomainsSpec(Specification[Loan]):
    """Loans of books assigned to at least one of the given domains."""

    def __init__(self, domain_ids: Iterable[int]):
        self.domain_ids = frozenset(domain_ids)

    def to_sql_filter(self):
        return Loan.book.has(Book.domains.any(Domain.id.in_(self.domain_ids)))


class ExtensionsByReaderSpec(Specification[Extension]):
    """Extensions requested by one reader."""

    def __init__(self, reader_id: int):
        self.reader_id = reader_id

    def to_sql_filter(self):
        return Extension.reader_id == self.reader_id


class ExtensionsRequestedBetweenSpec(Specification[Extension]):
    """Extensions whose request_date falls in [start, end)."""

    def __init__(self, start: datetime, end: datetime):
        self.start = start
        self.end = end

    def to_sql_filter(self):
        return (Extension.request_date >= self.start) & (Extension.request_date < self.end)
