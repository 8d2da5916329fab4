"""
SQLAlchemy-backed record store used by the lending core.
"""

from contextlib import contextmanager
from datetime import datetime
from typing import Iterable, List, Optional

from sqlalchemy.orm import Session

from domain.aggregates.domain_forest import DomainForest
from models import Book, Extension, Loan, Reader
from services.interfaces import IRecordStore
from utils.error_handlers import commit_or_rollback, translate_store_errors
from .book_repository import BookRepository
from .domain_repository import DomainRepository
from .extension_repository import ExtensionRepository
from .loan_repository import LoanRepository
from .reader_repository import ReaderRepository


class SqlAlchemyRecordStore(IRecordStore):
    """
    Record store over one SQLAlchemy session.

    Composes the per-entity repositories behind the named operations of
    IRecordStore. Book and Reader rows are version-counted, so a transaction
    that read stale counters fails at commit instead of overwriting them.
    """

    def __init__(self, db: Session):
        self.db = db
        self.books = BookRepository(db)
        self.readers = ReaderRepository(db)
        self.domains = DomainRepository(db)
        self.loans = LoanRepository(db)
        self.extensions = ExtensionRepository(db)

    @contextmanager
    def transaction(self, operation: str):
        with commit_or_rollback(self.db, operation):
            yield self

    def get_reader(self, reader_id: int) -> Optional[Reader]:
        return self.readers.get_by_id(reader_id)

    def get_book(self, book_id: int) -> Optional[Book]:
        return self.books.get_by_id(book_id)

    def get_books(self, book_ids: Iterable[int]) -> List[Book]:
        return self.books.get_many_with_domains(sorted(set(book_ids)))

    def add_loan(self, loan: Loan) -> Loan:
        with translate_store_errors("add loan"):
            return self.loans.create(loan)

    def add_extension(self, extension: Extension) -> Extension:
        with translate_store_errors("add extension"):
            return self.extensions.create(extension)

    def save(self, obj):
        with translate_store_errors(f"save {type(obj).__name__}"):
            self.db.flush()
        return obj

    def open_loan(self, reader_id: int, book_id: int) -> Optional[Loan]:
        return self.loans.get_open_loan(reader_id, book_id)

    def open_loans(self, reader_id: Optional[int] = None) -> List[Loan]:
        if reader_id is None:
            return self.loans.get_all_open()
        return self.loans.get_open_by_reader(reader_id)

    def loans_by_reader(self, reader_id: int, start: datetime, end: datetime) -> List[Loan]:
        return self.loans.get_by_reader_in_range(reader_id, start, end)

    def loans_by_reader_and_book(self, reader_id: int, book_id: int, start: datetime, end: datetime) -> List[Loan]:
        return self.loans.get_by_reader_and_book_in_range(reader_id, book_id, start, end)

    def loans_by_reader_in_domain(self, reader_id: int, domain_id: int, start: datetime, end: datetime) -> List[Loan]:
        subtree = self.domain_forest().subtree(domain_id)
        return self.loans.get_by_reader_in_domains(reader_id, subtree, start, end)

    def loans_lent_by(self, staff_id: int, start: datetime, end: datetime) -> List[Loan]:
        return self.loans.get_lent_by_in_range(staff_id, start, end)

    def extensions_by_reader(self, reader_id: int, start: datetime, end: datetime) -> List[Extension]:
        return self.extensions.get_by_reader_in_range(reader_id, start, end)

    def extensions_for_loan(self, loan_id: int) -> List[Extension]:
        return self.extensions.get_by_loan(loan_id)

    def domain_forest(self) -> DomainForest:
        return self.domains.load_forest()

    def descendant_domains(self, domain_id: int) -> List[int]:
        return self.domains.get_descendant_ids(domain_id)

    def is_ancestor(self, ancestor_id: int, descendant_id: int) -> bool:
        return self.domains.is_ancestor(ancestor_id, descendant_id)
