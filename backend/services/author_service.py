"""
Author Service
"""

from typing import List
import logging

from sqlalchemy.orm import Session

from constants import EntityType
from exceptions import InUseError, NotFoundError
from models import Author
from repositories.author_repository import AuthorRepository
from schemas import AuthorCreate, parse_payload
from utils.error_handlers import commit_or_rollback, handle_service_errors

logger = logging.getLogger(__name__)


class AuthorService:
    """Service for author catalog operations."""

    def __init__(self, db: Session):
        self.db = db
        self.author_repo = AuthorRepository(db)

    @handle_service_errors("Add author")
    def add_author(self, first_name: str, last_name: str) -> Author:
        payload = parse_payload(AuthorCreate, first_name=first_name, last_name=last_name)
        author = Author(first_name=payload.first_name, last_name=payload.last_name)
        with commit_or_rollback(self.db, "add author"):
            self.author_repo.create(author)
        logger.info(f"Created author {author.id} {author.full_name}")
        return author

    def get_author(self, author_id: int) -> Author:
        author = self.author_repo.get_by_id(author_id)
        if author is None:
            raise NotFoundError(EntityType.AUTHOR, author_id)
        return author

    def list_authors(self) -> List[Author]:
        return self.author_repo.get_all()

    @handle_service_errors("Delete author")
    def delete_author(self, author_id: int) -> None:
        """
        Raises:
            NotFoundError: If the author does not exist
            InUseError: If books still credit the author
        """
        author = self.get_author(author_id)
        if self.author_repo.has_books(author_id):
            raise InUseError(EntityType.AUTHOR, author_id, "books still credit this author")

        with commit_or_rollback(self.db, "delete author"):
            self.author_repo.delete(author)
