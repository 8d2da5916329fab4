"""
Reader repository for reader-specific data access operations.
"""

from typing import List, Optional
from sqlalchemy.orm import Session

from domain.value_objects.loan_state import LoanState
from models import Loan, Reader
from .base_repository import BaseRepository


class ReaderRepository(BaseRepository[Reader]):
    """Repository for Reader model operations."""

    def __init__(self, db: Session):
        super().__init__(db, Reader)

    def get_by_email(self, email: str) -> Optional[Reader]:
        return self.db.query(self.model).filter(
            self.model.email == email
        ).first()

    def get_employees(self) -> List[Reader]:
        return self.db.query(self.model).filter(
            self.model.is_employee.is_(True)
        ).order_by(self.model.id).all()

    def has_open_loans(self, reader_id: int) -> bool:
        return self.db.query(Loan.id).filter(
            Loan.reader_id == reader_id,
            Loan.state == LoanState.OPEN.value
        ).first() is not None

    def delete_with_history(self, reader: Reader) -> None:
        """Delete a reader with their closed loans and extensions."""
        for loan in self.db.query(Loan).filter(Loan.reader_id == reader.id).all():
            for extension in loan.extensions:
                self.db.delete(extension)
            self.db.delete(loan)
        for loan in self.db.query(Loan).filter(Loan.lent_by_id == reader.id).all():
            loan.lent_by_id = None
        self.db.flush()
        self.db.expire(reader, ["loans"])
        self.delete(reader)
