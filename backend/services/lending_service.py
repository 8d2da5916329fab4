"""
Lending Service

The borrow / extend / return workflow. Each operation validates its input,
evaluates the lending rules against fresh history and applies its writes in
a single store transaction. A transaction that loses a race with a
concurrent update is retried from the start; every other failure is final.
"""

from datetime import datetime, timedelta
from typing import Callable, List, Optional, TypeVar

from constants import EntityType, LendingDefaults, PolicyRule
from domain.aggregates.book_stock import BookStock
from domain.value_objects.loan_state import LoanState
from dtos.internal.lending_dto import BorrowCandidate
from exceptions import ConflictError, InvariantError, NotFoundError, PolicyViolation, ValidationError
from models import Extension, Loan
from schemas import BorrowRequest, ExtensionRequest, ReturnRequest, parse_payload
from services.borrow_validation import BorrowValidationEngine
from services.interfaces import IConfigurationProvider, ILendingService, IRecordStore
from utils.error_handlers import handle_service_errors
from utils.logging_utils import StructuredLogger, log_operation

logger = StructuredLogger(__name__)

T = TypeVar("T")


class LendingService(ILendingService):
    """Lending workflow over an IRecordStore."""

    def __init__(
        self,
        store: IRecordStore,
        configuration: IConfigurationProvider,
        clock: Callable[[], datetime] = datetime.now,
        max_attempts: int = LendingDefaults.COMMIT_ATTEMPTS,
    ):
        """
        Args:
            store: Record store the workflow reads and writes
            configuration: Source of the policy thresholds
            clock: Returns the current time (injectable for tests)
            max_attempts: Total tries for an operation that hits ConflictError
        """
        self.store = store
        self.configuration = configuration
        self.clock = clock
        self.max_attempts = max(1, max_attempts)
        self.validator = BorrowValidationEngine(store, configuration, clock)

    def _with_retry(self, operation: str, attempt: Callable[[], T]) -> T:
        for attempt_number in range(1, self.max_attempts + 1):
            try:
                return attempt()
            except ConflictError:
                if attempt_number == self.max_attempts:
                    raise
                logger.warning(
                    f"{operation} lost a concurrent update, retrying",
                    extra={"attempt": attempt_number, "max_attempts": self.max_attempts},
                )
        raise ConflictError(operation)

    def _require_reader(self, reader_id: int):
        reader = self.store.get_reader(reader_id)
        if reader is None:
            raise NotFoundError(EntityType.READER, reader_id)
        return reader

    def _require_open_loan(self, reader_id: int, book_id: int) -> Loan:
        loan = self.store.open_loan(reader_id, book_id)
        if loan is None:
            raise NotFoundError(
                EntityType.LOAN, book_id,
                f"Reader {reader_id} has no open loan for book {book_id}",
            )
        return loan

    # --- borrow ---------------------------------------------------------

    @handle_service_errors("Borrow books")
    @log_operation("borrow")
    def borrow(self, reader_id: int, book_ids: List[int], lent_by_id: Optional[int] = None) -> List[Loan]:
        """
        Lend every requested book to the reader, or none of them.

        Raises:
            ValidationError: Empty request, a book without domains, or a
                lender who is not a staff member
            NotFoundError: Unknown reader, book or lender
            PolicyViolation: The first lending rule that rejects the request
            ConflictError: Still losing to concurrent updates after every retry
        """
        request = parse_payload(
            BorrowRequest, reader_id=reader_id, book_ids=list(book_ids), lent_by_id=lent_by_id
        )
        return self._with_retry("borrow", lambda: self._borrow_once(request))

    def _borrow_once(self, request: BorrowRequest) -> List[Loan]:
        with self.store.transaction("borrow"):
            now = self.clock()
            reader = self._require_reader(request.reader_id)

            if request.lent_by_id is not None:
                lender = self.store.get_reader(request.lent_by_id)
                if lender is None:
                    raise NotFoundError(EntityType.READER, request.lent_by_id)
                if not lender.is_employee:
                    raise ValidationError(
                        f"Reader {lender.id} is not a staff member and cannot lend books",
                        invalid_fields={"lent_by_id": "not a staff member"},
                    )

            books = {book.id: book for book in self.store.get_books(request.book_ids)}
            for book_id in request.book_ids:
                if book_id not in books:
                    raise NotFoundError(EntityType.BOOK, book_id)

            candidates = [BorrowCandidate.from_book(books[book_id]) for book_id in request.book_ids]
            for candidate in candidates:
                if not candidate.domain_ids:
                    raise ValidationError(
                        f"Book {candidate.book_id} is not filed under any domain",
                        invalid_fields={"book_ids": f"book {candidate.book_id} has no domain"},
                    )

            self.validator.validate_borrow(reader, candidates, request.lent_by_id, now)

            loans = []
            for book_id in request.book_ids:
                book = books[book_id]
                try:
                    book.available_copies = BookStock.from_book(book).after_borrow().available
                except ValueError as e:
                    raise InvariantError(
                        f"Lending book {book_id} would make its available copies negative",
                        {"book_id": book_id},
                    ) from e

                loan = Loan(
                    book_id=book_id,
                    reader_id=reader.id,
                    lent_by_id=request.lent_by_id,
                    borrow_start=now,
                    borrow_end=now + timedelta(days=LendingDefaults.LOAN_PERIOD_DAYS),
                    state=LoanState.OPEN.value,
                )
                loans.append(self.store.add_loan(loan))

            # Touch the reader row so its version changes with every borrow
            reader.last_borrowed_at = now
            self.store.save(reader)

        logger.info(
            f"Reader {request.reader_id} borrowed {len(loans)} book(s)",
            extra={"loan_ids": [loan.id for loan in loans]},
        )
        return loans

    # --- extend ---------------------------------------------------------

    @handle_service_errors("Extend loan")
    @log_operation("extend")
    def extend(self, reader_id: int, book_id: int, extension_days: int) -> Loan:
        """
        Push the due date of an open loan back by extension_days.

        Extensions stack: each one starts from the current extended due date.

        Raises:
            ValidationError: extension_days outside 1..90
            NotFoundError: Unknown reader, or no open loan for the book
            PolicyViolation: LOAN_OVERDUE or EXTENSION_LIMIT
            ConflictError: Still losing to concurrent updates after every retry
        """
        request = parse_payload(
            ExtensionRequest, reader_id=reader_id, book_id=book_id, extension_days=extension_days
        )
        return self._with_retry("extend", lambda: self._extend_once(request))

    def _extend_once(self, request: ExtensionRequest) -> Loan:
        with self.store.transaction("extend"):
            now = self.clock()
            reader = self._require_reader(request.reader_id)
            loan = self._require_open_loan(request.reader_id, request.book_id)

            if loan.is_overdue(now):
                raise PolicyViolation(
                    PolicyRule.LOAN_OVERDUE,
                    f"Loan {loan.id} was due on {loan.effective_end_date:%Y-%m-%d %H:%M} "
                    f"and can no longer be extended",
                    EntityType.LOAN, loan.id,
                )

            self.validator.validate_extension(reader, request.extension_days, now)

            loan.borrow_end_extended = loan.effective_end_date + timedelta(days=request.extension_days)
            self.store.add_extension(Extension(
                loan_id=loan.id,
                book_id=loan.book_id,
                reader_id=reader.id,
                request_date=now,
                extension_days=request.extension_days,
            ))
            reader.number_of_extensions = (reader.number_of_extensions or 0) + 1
            self.store.save(loan)

        logger.info(
            f"Loan {loan.id} extended by {request.extension_days} days",
            extra={"due": loan.borrow_end_extended.isoformat()},
        )
        return loan

    # --- return ---------------------------------------------------------

    @handle_service_errors("Return book")
    @log_operation("return_book")
    def return_book(self, reader_id: int, book_id: int) -> Loan:
        """
        Close the reader's open loan for a book and shelve the copy.

        Raises:
            NotFoundError: No open loan for the reader and book
            ConflictError: Still losing to concurrent updates after every retry
        """
        request = parse_payload(ReturnRequest, reader_id=reader_id, book_id=book_id)
        return self._with_retry("return", lambda: self._return_once(request))

    def _return_once(self, request: ReturnRequest) -> Loan:
        with self.store.transaction("return"):
            now = self.clock()
            loan = self._require_open_loan(request.reader_id, request.book_id)
            if not loan.loan_state.can_transition_to(LoanState.CLOSED):
                raise InvariantError(f"Loan {loan.id} cannot be closed from state {loan.state}")

            book = loan.book
            if book.available_copies >= book.total_copies:
                logger.warning(
                    f"Book {book.id} already has every copy on the shelf; available count left at total",
                    extra={"book_id": book.id, "loan_id": loan.id},
                )
            book.available_copies = BookStock.from_book(book).after_return().available

            loan.state = LoanState.CLOSED.value
            loan.returned_at = now
            self.store.save(loan)

        logger.info(f"Loan {loan.id} closed", extra={"loan_id": loan.id})
        return loan

    # --- queries --------------------------------------------------------

    def get_open_loans_by_reader(self, reader_id: int) -> List[Loan]:
        return self.store.open_loans(reader_id)

    def get_all_open_loans(self) -> List[Loan]:
        return self.store.open_loans()

    def get_extensions_for_loan(self, loan_id: int) -> List[Extension]:
        return self.store.extensions_for_loan(loan_id)
