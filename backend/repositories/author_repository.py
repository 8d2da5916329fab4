"""
Author repository.
"""

from sqlalchemy.orm import Session

from models import Author, book_authors
from .base_repository import BaseRepository


class AuthorRepository(BaseRepository[Author]):
    """Repository for Author model operations."""

    def __init__(self, db: Session):
        super().__init__(db, Author)

    def has_books(self, author_id: int) -> bool:
        return self.db.query(book_authors.c.book_id).filter(
            book_authors.c.author_id == author_id
        ).first() is not None
