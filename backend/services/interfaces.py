"""
Service Interfaces

Abstract base classes for the collaborators of the lending core, following
the Dependency Inversion Principle. The policy engine and the lending
workflow only talk to these contracts, so any storage technology can back
them and tests can swap in their own implementations.
"""

from abc import ABC, abstractmethod
from contextlib import AbstractContextManager
from datetime import datetime
from typing import Iterable, List, Optional

from config.policy_config import PolicyConfiguration
from domain.aggregates.domain_forest import DomainForest
from domain.value_objects.reader_limits import ReaderLimits


class IRecordStore(ABC):
    """
    Storage port of the lending core.

    Every history query takes a half-open ``[start, end)`` range on the
    record's date (``borrow_start`` for loans, ``request_date`` for
    extensions) and returns loans in any state.
    """

    @abstractmethod
    def transaction(self, operation: str) -> AbstractContextManager:
        """
        Run the enclosed reads and writes as one atomic unit.

        Commits when the block exits normally and rolls back otherwise.

        Raises:
            ConflictError: If a concurrent update won the race at commit time
        """

    # --- entities -------------------------------------------------------

    @abstractmethod
    def get_reader(self, reader_id: int):
        """Reader or None."""

    @abstractmethod
    def get_book(self, book_id: int):
        """Book or None."""

    @abstractmethod
    def get_books(self, book_ids: Iterable[int]) -> List:
        """Existing books among book_ids (domains loaded), in id order."""

    @abstractmethod
    def add_loan(self, loan):
        """Persist a new loan."""

    @abstractmethod
    def add_extension(self, extension):
        """Persist a new extension record."""

    @abstractmethod
    def save(self, obj):
        """Write pending changes of an already persisted entity."""

    # --- loans ----------------------------------------------------------

    @abstractmethod
    def open_loan(self, reader_id: int, book_id: int):
        """The reader's open loan for a book, or None."""

    @abstractmethod
    def open_loans(self, reader_id: Optional[int] = None) -> List:
        """Open loans of one reader, or of everybody."""

    @abstractmethod
    def loans_by_reader(self, reader_id: int, start: datetime, end: datetime) -> List:
        """Loans the reader started in [start, end)."""

    @abstractmethod
    def loans_by_reader_and_book(self, reader_id: int, book_id: int, start: datetime, end: datetime) -> List:
        """Loans of one book the reader started in [start, end)."""

    @abstractmethod
    def loans_by_reader_in_domain(self, reader_id: int, domain_id: int, start: datetime, end: datetime) -> List:
        """Loans in [start, end) of books filed under domain_id or any of its descendants."""

    @abstractmethod
    def loans_lent_by(self, staff_id: int, start: datetime, end: datetime) -> List:
        """Loans handed out by a staff member in [start, end)."""

    # --- extensions -----------------------------------------------------

    @abstractmethod
    def extensions_by_reader(self, reader_id: int, start: datetime, end: datetime) -> List:
        """Extensions the reader requested in [start, end)."""

    @abstractmethod
    def extensions_for_loan(self, loan_id: int) -> List:
        """Extensions granted on one loan, oldest first."""

    # --- domain hierarchy -----------------------------------------------

    @abstractmethod
    def domain_forest(self) -> DomainForest:
        """Snapshot of the domain hierarchy."""

    @abstractmethod
    def descendant_domains(self, domain_id: int) -> List[int]:
        """Ids of every domain below domain_id."""

    @abstractmethod
    def is_ancestor(self, ancestor_id: int, descendant_id: int) -> bool:
        """True iff ancestor_id is in descendant_id's parent chain."""


class IConfigurationProvider(ABC):
    """Source of the lending policy thresholds."""

    @abstractmethod
    def get_configuration(self) -> PolicyConfiguration:
        """The process-wide threshold set."""

    @abstractmethod
    def get_reader_limits(self, reader) -> ReaderLimits:
        """Thresholds adjusted for the reader's role, derived fresh on every call."""


class ILendingService(ABC):
    """Lending workflow exposed to the host application."""

    @abstractmethod
    def borrow(self, reader_id: int, book_ids: List[int], lent_by_id: Optional[int] = None) -> List:
        """
        Lend every requested book or none of them.

        Raises:
            ValidationError, NotFoundError, PolicyViolation, ConflictError
        """

    @abstractmethod
    def extend(self, reader_id: int, book_id: int, extension_days: int):
        """
        Push back the due date of an open loan.

        Raises:
            ValidationError, NotFoundError, PolicyViolation, ConflictError
        """

    @abstractmethod
    def return_book(self, reader_id: int, book_id: int):
        """
        Close an open loan and put the copy back on the shelf.

        Raises:
            NotFoundError, ConflictError
        """

    @abstractmethod
    def get_open_loans_by_reader(self, reader_id: int) -> List:
        """Open loans of one reader."""

    @abstractmethod
    def get_all_open_loans(self) -> List:
        """Every open loan."""
