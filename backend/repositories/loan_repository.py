"""
Loan repository for borrowing-history queries.
"""

from datetime import datetime
from typing import Iterable, List, Optional
from sqlalchemy.orm import Session, selectinload

from models import Book, Loan
from .base_repository import BaseRepository
from .loan_specifications import (
    LoansByBookSpec,
    LoansByReaderSpec,
    LoansInDomainsSpec,
    LoansLentBySpec,
    LoansStartedBetweenSpec,
    OpenLoansSpec,
)


class LoanRepository(BaseRepository[Loan]):
    """Repository for Loan model operations."""

    def __init__(self, db: Session):
        super().__init__(db, Loan)

    def get_open_loan(self, reader_id: int, book_id: int) -> Optional[Loan]:
        spec = LoansByReaderSpec(reader_id) & LoansByBookSpec(book_id) & OpenLoansSpec()
        return self.db.query(self.model).filter(spec.to_sql_filter()).first()

    def get_open_by_reader(self, reader_id: int) -> List[Loan]:
        return self.find(LoansByReaderSpec(reader_id) & OpenLoansSpec(), order_by=self.model.id)

    def get_all_open(self) -> List[Loan]:
        return self.find(OpenLoansSpec(), order_by=self.model.id)

    def get_by_reader_in_range(self, reader_id: int, start: datetime, end: datetime) -> List[Loan]:
        """Loans (open or closed) the reader started in [start, end), with book domains loaded."""
        spec = LoansByReaderSpec(reader_id) & LoansStartedBetweenSpec(start, end)
        return self.db.query(self.model).options(
            selectinload(self.model.book).selectinload(Book.domains)
        ).filter(spec.to_sql_filter()).order_by(self.model.borrow_start).all()

    def get_by_reader_and_book_in_range(
        self, reader_id: int, book_id: int, start: datetime, end: datetime
    ) -> List[Loan]:
        spec = (
            LoansByReaderSpec(reader_id)
            & LoansByBookSpec(book_id)
            & LoansStartedBetweenSpec(start, end)
        )
        return self.find(spec, order_by=self.model.borrow_start)

    def get_by_reader_in_domains(
        self, reader_id: int, domain_ids: Iterable[int], start: datetime, end: datetime
    ) -> List[Loan]:
        """Loans the reader started in [start, end) of books in any of the given domains."""
        spec = (
            LoansByReaderSpec(reader_id)
            & LoansStartedBetweenSpec(start, end)
            & LoansInDomainsSpec(domain_ids)
        )
        return self.find(spec, order_by=self.model.borrow_start)

    def get_lent_by_in_range(self, staff_id: int, start: datetime, end: datetime) -> List[Loan]:
        spec = LoansLentBySpec(staff_id) & LoansStartedBetweenSpec(start, end)
        return self.find(spec, order_by=self.model.borrow_start)
