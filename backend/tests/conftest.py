import sys
from pathlib import Path

# Add backend directory to Python path FIRST
backend_dir = Path(__file__).parent.parent
sys.path.insert(0, str(backend_dir))

# Now import after path is set
from datetime import datetime, timedelta
from itertools import count

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from models import Base, Book, Loan
from domain.value_objects.loan_state import LoanState
from repositories.record_store import SqlAlchemyRecordStore
from services.author_service import AuthorService
from services.book_service import BookService
from services.configuration_service import ConfigurationService
from services.domain_service import DomainService
from services.lending_service import LendingService
from services.reader_service import ReaderService

FROZEN_NOW = datetime(2024, 6, 15, 12, 0, 0)

EDITION = {
    "publisher": "Editura Tehnica",
    "number_of_pages": 320,
    "year_of_publishing": 2019,
    "type": "Hardcover",
}


class FrozenClock:
    """Clock that only moves when a test moves it"""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **delta) -> datetime:
        self.now += timedelta(**delta)
        return self.now


class CatalogBuilder:
    """Creates catalog records through the services, with valid defaults"""

    def __init__(self, db, configuration):
        self.db = db
        self.domain_service = DomainService(db)
        self.book_service = BookService(db, configuration)
        self.reader_service = ReaderService(db)
        self.author_service = AuthorService(db)
        self._sequence = count(1)
        self._author = None

    def domain(self, name, parent=None):
        return self.domain_service.add_domain(name, parent.id if parent is not None else None)

    def author(self):
        if self._author is None:
            self._author = self.author_service.add_author("Mircea", "Eliade")
        return self._author

    def book(self, *domains, total=10, reading_room=0, available=None, title=None):
        number = next(self._sequence)
        return self.book_service.add_book(
            title=title or f"Book number {number}",
            author_ids=[self.author().id],
            domain_ids=[d.id for d in domains],
            edition=dict(EDITION),
            total_copies=total,
            reading_room_copies=reading_room,
            available_copies=available,
        )

    def books(self, n, *domains, **kwargs):
        return [self.book(*domains, **kwargs) for _ in range(n)]

    def bare_book(self, total=10):
        """A book filed under no domain (only possible by writing the row directly)"""
        book = Book(title="Uncatalogued", total_copies=total, reading_room_copies=0, available_copies=total)
        self.db.add(book)
        self.db.commit()
        return book

    def reader(self, employee=False):
        number = next(self._sequence)
        return self.reader_service.register_reader(
            first_name="Ana",
            last_name="Popescu",
            address="Strada Lunga 12",
            email=f"reader{number}@example.com",
            is_employee=employee,
        )

    def past_loan(self, reader, book, borrow_start, returned=True, lent_by=None):
        """Write a loan directly into the history"""
        loan = Loan(
            book_id=book.id,
            reader_id=reader.id,
            lent_by_id=lent_by.id if lent_by is not None else None,
            borrow_start=borrow_start,
            borrow_end=borrow_start + timedelta(days=14),
            state=LoanState.CLOSED.value if returned else LoanState.OPEN.value,
            returned_at=borrow_start + timedelta(days=7) if returned else None,
        )
        self.db.add(loan)
        self.db.commit()
        return loan


@pytest.fixture
def db_session():
    """Create in-memory database for testing"""
    engine = create_engine('sqlite:///:memory:')
    Base.metadata.create_all(engine)
    SessionLocal = sessionmaker(bind=engine)
    session = SessionLocal()
    yield session
    session.close()
    engine.dispose()


@pytest.fixture
def clock():
    return FrozenClock(FROZEN_NOW)


@pytest.fixture
def policy_overrides():
    """Override in a test module to run with different thresholds"""
    return {}


@pytest.fixture
def configuration(db_session, policy_overrides):
    return ConfigurationService(db_session, overrides=policy_overrides, environ={})


@pytest.fixture
def store(db_session):
    return SqlAlchemyRecordStore(db_session)


@pytest.fixture
def lending(store, configuration, clock):
    return LendingService(store, configuration, clock=clock)


@pytest.fixture
def catalog(db_session, configuration):
    return CatalogBuilder(db_session, configuration)


@pytest.fixture
def lending_with(db_session, store, clock):
    """Build a LendingService with some thresholds overridden"""
    def _build(**overrides):
        configuration = ConfigurationService(db_session, overrides=overrides, environ={})
        return LendingService(store, configuration, clock=clock)
    return _build
