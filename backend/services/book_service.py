"""
Book Service

Catalog maintenance for books: creation with authors, domains and edition,
counter updates, domain reassignment and guarded deletion.
"""

from itertools import combinations
from typing import List, Optional, Sequence
import logging

from sqlalchemy.orm import Session

from constants import EntityType
from domain.aggregates.book_stock import BookStock
from exceptions import InUseError, InvariantError, NotFoundError, ValidationError
from models import Author, Book, Domain, Edition
from repositories.author_repository import AuthorRepository
from repositories.book_repository import BookRepository
from repositories.domain_repository import DomainRepository
from schemas import BookCreate, BookUpdate, EditionUpdate, parse_payload
from services.configuration_service import ConfigurationService
from services.interfaces import IConfigurationProvider
from utils.error_handlers import commit_or_rollback, handle_service_errors

logger = logging.getLogger(__name__)


class BookService:
    """Service for book catalog business logic."""

    def __init__(self, db: Session, configuration: Optional[IConfigurationProvider] = None):
        """
        Initialize BookService.

        Args:
            db: Database session
            configuration: Policy source for the per-book domain cap
                (defaults to a ConfigurationService on the same session)
        """
        self.db = db
        self.book_repo = BookRepository(db)
        self.domain_repo = DomainRepository(db)
        self.author_repo = AuthorRepository(db)
        if configuration is None:
            configuration = ConfigurationService(db)
        self.configuration = configuration

    def _require(self, book_id: int) -> Book:
        book = self.book_repo.get_with_details(book_id)
        if book is None:
            raise NotFoundError(EntityType.BOOK, book_id)
        return book

    def _load_authors(self, author_ids: Sequence[int]) -> List[Author]:
        authors = self.author_repo.get_many(author_ids)
        found = {a.id for a in authors}
        for author_id in author_ids:
            if author_id not in found:
                raise NotFoundError(EntityType.AUTHOR, author_id)
        return authors

    def _load_domains(self, domain_ids: Sequence[int]) -> List[Domain]:
        """
        Load the domains a book is filed under and check the assignment rules.

        Raises:
            ValidationError: If no domain is given or an id repeats
            InvariantError: If there are too many domains, or two of them are
                in an ancestor/descendant relationship
            NotFoundError: If a domain does not exist
        """
        if not domain_ids:
            raise ValidationError("A book needs at least one domain", invalid_fields={"domain_ids": "empty"})
        if len(set(domain_ids)) != len(domain_ids):
            raise ValidationError("Duplicate domain ids", invalid_fields={"domain_ids": "duplicates"})

        max_domains = self.configuration.get_configuration().max_domains_per_book
        if len(domain_ids) > max_domains:
            raise InvariantError(
                f"A book can be filed under at most {max_domains} domains, got {len(domain_ids)}",
                {"max_domains_per_book": max_domains, "domain_ids": list(domain_ids)},
            )

        domains = self.domain_repo.get_many(domain_ids)
        found = {d.id for d in domains}
        for domain_id in domain_ids:
            if domain_id not in found:
                raise NotFoundError(EntityType.DOMAIN, domain_id)

        forest = self.domain_repo.load_forest()
        for first_id, second_id in combinations(sorted(domain_ids), 2):
            if forest.related(first_id, second_id):
                raise InvariantError(
                    f"Domains {first_id} and {second_id} are on the same branch of the hierarchy",
                    {"domain_ids": [first_id, second_id]},
                )
        return domains

    @handle_service_errors("Add book")
    def add_book(
        self,
        title: str,
        author_ids: List[int],
        domain_ids: List[int],
        edition: dict,
        total_copies: int,
        reading_room_copies: int = 0,
        available_copies: Optional[int] = None,
    ) -> Book:
        """
        Create a book with its edition.

        Args:
            edition: publisher, number_of_pages, year_of_publishing, type

        Raises:
            ValidationError: If a field is out of range or counters are inconsistent
            NotFoundError: If an author or domain does not exist
            InvariantError: If the domain assignment breaks the hierarchy rules
        """
        payload = parse_payload(
            BookCreate,
            title=title,
            author_ids=author_ids,
            domain_ids=domain_ids,
            edition=edition,
            total_copies=total_copies,
            reading_room_copies=reading_room_copies,
            available_copies=available_copies,
        )
        authors = self._load_authors(payload.author_ids)
        domains = self._load_domains(payload.domain_ids)

        book = Book(
            title=payload.title,
            total_copies=payload.total_copies,
            reading_room_copies=payload.reading_room_copies,
            available_copies=payload.available_copies,
            authors=authors,
            domains=domains,
            edition=Edition(**payload.edition.model_dump()),
        )
        with commit_or_rollback(self.db, "add book"):
            self.book_repo.create(book)

        logger.info(
            f"Created book {book.id} '{book.title}' "
            f"(total={book.total_copies}, reading_room={book.reading_room_copies}, domains={sorted(book.domain_ids)})"
        )
        return book

    @handle_service_errors("Update book")
    def update_book(self, book_id: int, **changes) -> Book:
        """
        Change title, authors or copy counters.

        Raises:
            ValidationError: If the resulting counters are inconsistent
            NotFoundError: If the book or an author does not exist
        """
        payload = parse_payload(BookUpdate, **changes)
        book = self._require(book_id)

        total = payload.total_copies if payload.total_copies is not None else book.total_copies
        reading_room = (
            payload.reading_room_copies if payload.reading_room_copies is not None
            else book.reading_room_copies
        )
        available = payload.available_copies if payload.available_copies is not None else book.available_copies
        try:
            BookStock(total=total, reading_room=reading_room, available=available)
        except ValueError as e:
            raise ValidationError(str(e), invalid_fields={"copies": str(e)}) from e

        authors = self._load_authors(payload.author_ids) if payload.author_ids is not None else None

        with commit_or_rollback(self.db, "update book"):
            if payload.title is not None:
                book.title = payload.title
            if authors is not None:
                book.authors = authors
            book.total_copies = total
            book.reading_room_copies = reading_room
            book.available_copies = available

        return book

    @handle_service_errors("Update edition")
    def update_edition(self, book_id: int, **changes) -> Edition:
        payload = parse_payload(EditionUpdate, **changes)
        book = self._require(book_id)

        with commit_or_rollback(self.db, "update edition"):
            for field, value in payload.model_dump(exclude_none=True).items():
                setattr(book.edition, field, value)
        return book.edition

    @handle_service_errors("Set book domains")
    def set_book_domains(self, book_id: int, domain_ids: List[int]) -> Book:
        """
        Replace the domains a book is filed under.

        Raises:
            NotFoundError, ValidationError, InvariantError
        """
        book = self._require(book_id)
        domains = self._load_domains(list(domain_ids))

        with commit_or_rollback(self.db, "set book domains"):
            book.domains = domains

        logger.info(f"Book {book_id} filed under domains {sorted(book.domain_ids)}")
        return book

    @handle_service_errors("Delete book")
    def delete_book(self, book_id: int) -> None:
        """
        Delete a book with its edition and borrowing history.

        Raises:
            NotFoundError: If the book does not exist
            InUseError: If a copy is still on loan
        """
        book = self._require(book_id)
        if self.book_repo.has_open_loans(book_id):
            raise InUseError(EntityType.BOOK, book_id, "copies are still on loan")

        with commit_or_rollback(self.db, "delete book"):
            self.book_repo.delete_with_history(book)
        logger.info(f"Deleted book {book_id}")

    def get_book(self, book_id: int) -> Book:
        return self._require(book_id)

    def list_books(self, limit: Optional[int] = None, offset: int = 0) -> List[Book]:
        return self.book_repo.get_all(limit=limit, offset=offset)

    def search_books(self, title_fragment: str) -> List[Book]:
        return self.book_repo.search_by_title(title_fragment)
