from sqlalchemy import (
    Column, String, Integer, Boolean, Text, DateTime, ForeignKey, Table,
    CheckConstraint, UniqueConstraint, Index, text,
)
from sqlalchemy.orm import relationship
from datetime import datetime

from database import Base
from domain.value_objects.loan_state import LoanState


book_authors = Table(
    'book_authors',
    Base.metadata,
    Column('book_id', Integer, ForeignKey('books.id', ondelete='CASCADE'), primary_key=True),
    Column('author_id', Integer, ForeignKey('authors.id'), primary_key=True),
)

book_domains = Table(
    'book_domains',
    Base.metadata,
    Column('book_id', Integer, ForeignKey('books.id', ondelete='CASCADE'), primary_key=True),
    Column('domain_id', Integer, ForeignKey('domains.id'), primary_key=True),
    Index('idx_book_domains_domain', 'domain_id'),
)


class Domain(Base):
    """
    Subject category in the domain hierarchy.

    Only the child -> parent link is stored. Children and descendants are
    derived by query, so a domain never owns its subtree.
    """
    __tablename__ = 'domains'

    id = Column(Integer, primary_key=True)
    name = Column(String(50), nullable=False, unique=True)
    parent_id = Column(Integer, ForeignKey('domains.id'), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    parent = relationship("Domain", remote_side="Domain.id")
    books = relationship("Book", secondary=book_domains, back_populates="domains")

    __table_args__ = (
        CheckConstraint("name != ''"),
        CheckConstraint("parent_id IS NULL OR parent_id != id", name='ck_domain_not_own_parent'),
        Index('idx_domains_parent', 'parent_id'),
    )

    @property
    def is_root(self) -> bool:
        return self.parent_id is None

    def __repr__(self):
        return f"<Domain {self.id} {self.name!r} parent={self.parent_id}>"


class Author(Base):
    __tablename__ = 'authors'

    id = Column(Integer, primary_key=True)
    first_name = Column(String(50), nullable=False)
    last_name = Column(String(50), nullable=False)

    books = relationship("Book", secondary=book_authors, back_populates="authors")

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"


class Edition(Base):
    """Publishing details of a book (exactly one per book)"""
    __tablename__ = 'editions'

    id = Column(Integer, primary_key=True)
    book_id = Column(Integer, ForeignKey('books.id', ondelete='CASCADE'), nullable=False, unique=True)
    publisher = Column(String(50), nullable=False)
    number_of_pages = Column(Integer, nullable=False)
    year_of_publishing = Column(Integer, nullable=False)
    type = Column(String(50), nullable=False)

    book = relationship("Book", back_populates="edition")

    __table_args__ = (
        CheckConstraint("number_of_pages >= 3"),
        CheckConstraint("year_of_publishing BETWEEN 1400 AND 2100"),
    )


class Book(Base):
    """
    Catalog entry with its copy counters.

    Counters:
    - total_copies: every physical copy the library owns
    - reading_room_copies: copies that never leave the reading room
    - available_copies: copies currently on the shelf and lendable

    ``version`` is bumped on every update; two transactions that both read the
    same version and write the counters cannot both commit.
    """
    __tablename__ = 'books'

    id = Column(Integer, primary_key=True)
    title = Column(String(50), nullable=False)
    total_copies = Column(Integer, nullable=False, default=0)
    reading_room_copies = Column(Integer, nullable=False, default=0)
    available_copies = Column(Integer, nullable=False, default=0)
    version = Column(Integer, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    authors = relationship("Author", secondary=book_authors, back_populates="books")
    domains = relationship("Domain", secondary=book_domains, back_populates="books")
    edition = relationship("Edition", back_populates="book", uselist=False, cascade="all, delete-orphan")
    loans = relationship("Loan", back_populates="book")

    __mapper_args__ = {"version_id_col": version}

    __table_args__ = (
        CheckConstraint("title != ''"),
        CheckConstraint("total_copies >= 0"),
        CheckConstraint("reading_room_copies >= 0 AND reading_room_copies <= total_copies"),
        CheckConstraint("available_copies >= 0 AND available_copies <= total_copies"),
    )

    @property
    def domain_ids(self) -> frozenset:
        return frozenset(d.id for d in self.domains)

    def __repr__(self):
        return (
            f"<Book {self.id} {self.title!r} total={self.total_copies} "
            f"reading_room={self.reading_room_copies} available={self.available_copies}>"
        )


class Reader(Base):
    __tablename__ = 'readers'

    id = Column(Integer, primary_key=True)
    first_name = Column(String(50), nullable=False)
    last_name = Column(String(50), nullable=False)
    address = Column(String(200), nullable=False)
    email = Column(String(100), nullable=True)
    phone = Column(String(20), nullable=True)
    is_employee = Column(Boolean, nullable=False, default=False)
    number_of_extensions = Column(Integer, nullable=False, default=0)
    last_borrowed_at = Column(DateTime, nullable=True)  # touched on every borrow to serialize the reader's loan set
    version = Column(Integer, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)

    loans = relationship("Loan", back_populates="reader", foreign_keys="Loan.reader_id")

    __mapper_args__ = {"version_id_col": version}

    __table_args__ = (
        CheckConstraint("email IS NOT NULL OR phone IS NOT NULL", name='ck_reader_contact'),
        CheckConstraint("number_of_extensions >= 0"),
        UniqueConstraint('email', name='uq_reader_email'),
    )

    def has_valid_contact(self) -> bool:
        return bool((self.email or '').strip() or (self.phone or '').strip())

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"


class Loan(Base):
    """
    A book lent to a reader.

    Loan States:
    - OPEN: lent out, optionally extended any number of times
    - CLOSED: returned (terminal); the row stays as borrowing history

    ``borrow_end_extended`` is NULL until the first extension. Each extension
    adds its days to the current extended end, never to "now".
    """
    __tablename__ = 'borrowed_books'

    id = Column(Integer, primary_key=True)
    book_id = Column(Integer, ForeignKey('books.id'), nullable=False)
    reader_id = Column(Integer, ForeignKey('readers.id'), nullable=False)
    lent_by_id = Column(Integer, ForeignKey('readers.id'), nullable=True)
    borrow_start = Column(DateTime, nullable=False)
    borrow_end = Column(DateTime, nullable=False)
    borrow_end_extended = Column(DateTime, nullable=True)
    state = Column(String, nullable=False, default=LoanState.OPEN.value)
    returned_at = Column(DateTime, nullable=True)

    book = relationship("Book", back_populates="loans")
    reader = relationship("Reader", back_populates="loans", foreign_keys=[reader_id])
    lent_by = relationship("Reader", foreign_keys=[lent_by_id])
    extensions = relationship("Extension", back_populates="loan", order_by="Extension.id")

    __table_args__ = (
        CheckConstraint("borrow_end > borrow_start", name='ck_loan_end_after_start'),
        CheckConstraint(
            "borrow_end_extended IS NULL OR borrow_end_extended > borrow_end",
            name='ck_loan_extended_after_end',
        ),
        CheckConstraint("state IN ('OPEN', 'CLOSED')", name='ck_loan_state'),
        # A reader holds at most one open loan per book
        Index(
            'uq_open_loan_per_reader_book', 'book_id', 'reader_id',
            unique=True,
            sqlite_where=text("state = 'OPEN'"),
            postgresql_where=text("state = 'OPEN'"),
        ),
        Index('idx_loans_reader_start', 'reader_id', 'borrow_start'),
        Index('idx_loans_lent_by_start', 'lent_by_id', 'borrow_start'),
    )

    @property
    def loan_state(self) -> LoanState:
        return LoanState.from_string(self.state)

    @property
    def is_open(self) -> bool:
        return self.state == LoanState.OPEN.value

    @property
    def is_extended(self) -> bool:
        return self.borrow_end_extended is not None

    @property
    def effective_end_date(self) -> datetime:
        """Due date, taking extensions into account"""
        return self.borrow_end_extended or self.borrow_end

    def is_overdue(self, now: datetime) -> bool:
        return now >= self.effective_end_date


class Extension(Base):
    """Immutable record of one granted extension"""
    __tablename__ = 'extensions'

    id = Column(Integer, primary_key=True)
    loan_id = Column(Integer, ForeignKey('borrowed_books.id'), nullable=False)
    book_id = Column(Integer, ForeignKey('books.id'), nullable=False)
    reader_id = Column(Integer, ForeignKey('readers.id'), nullable=False)
    request_date = Column(DateTime, nullable=False)
    extension_days = Column(Integer, nullable=False)

    loan = relationship("Loan", back_populates="extensions")

    __table_args__ = (
        CheckConstraint("extension_days BETWEEN 1 AND 90", name='ck_extension_days'),
        Index('idx_extensions_reader_date', 'reader_id', 'request_date'),
    )


class Setting(Base):
    __tablename__ = 'settings'

    key = Column(String, primary_key=True)
    value = Column(Text, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
