"""
Book repository for catalog data access.
"""

from typing import List, Optional
from sqlalchemy.orm import Session, selectinload

from domain.value_objects.loan_state import LoanState
from models import Book, Loan
from .base_repository import BaseRepository


class BookRepository(BaseRepository[Book]):
    """Repository for Book model operations."""

    def __init__(self, db: Session):
        super().__init__(db, Book)

    def get_with_details(self, book_id: int) -> Optional[Book]:
        """Get a book with domains, authors and edition eagerly loaded."""
        return self.db.query(self.model).options(
            selectinload(self.model.domains),
            selectinload(self.model.authors),
            selectinload(self.model.edition),
        ).filter(self.model.id == book_id).first()

    def get_many_with_domains(self, book_ids: List[int]) -> List[Book]:
        if not book_ids:
            return []
        return self.db.query(self.model).options(
            selectinload(self.model.domains)
        ).filter(self.model.id.in_(book_ids)).order_by(self.model.id).all()

    def search_by_title(self, fragment: str) -> List[Book]:
        return self.db.query(self.model).filter(
            self.model.title.ilike(f"%{fragment}%")
        ).order_by(self.model.title).all()

    def has_open_loans(self, book_id: int) -> bool:
        return self.db.query(Loan.id).filter(
            Loan.book_id == book_id,
            Loan.state == LoanState.OPEN.value
        ).first() is not None

    def delete_with_history(self, book: Book) -> None:
        """Delete a book together with its closed loans and their extensions."""
        for loan in self.db.query(Loan).filter(Loan.book_id == book.id).all():
            for extension in loan.extensions:
                self.db.delete(extension)
            self.db.delete(loan)
        self.db.flush()
        self.db.expire(book, ["loans"])
        self.delete(book)
