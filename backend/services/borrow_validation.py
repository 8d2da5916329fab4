"""
Borrow Validation Engine

The lending policy as a fixed sequence of named rules. Each rule is a pure
function of the request, the reader's limits and the borrowing history
fetched for this evaluation; the first failing rule raises PolicyViolation
and nothing after it runs.

Rule order for a borrow session:
    1. BOOK_NOT_BORROWABLE / INSUFFICIENT_COPIES, per book in request order
    2. SESSION_LIMIT
    3. DOMAIN_DIVERSITY
    4. DAILY_LIMIT
    5. PERIOD_LIMIT
    6. DOMAIN_LIMIT
    7. REBORROW_COOLDOWN
    8. STAFF_LENDING_LIMIT (only when a lending staff member is given)

Extensions are checked separately against EXTENSION_LIMIT.
"""

from datetime import datetime, timedelta
from typing import Callable, Iterable, List, Mapping, Optional, Sequence, Set
import logging

from constants import EntityType, LendingDefaults, PolicyRule
from domain.aggregates.domain_forest import DomainForest
from domain.value_objects.reader_limits import ReaderLimits
from dtos.internal.lending_dto import BorrowCandidate
from exceptions import PolicyViolation
from services.interfaces import IConfigurationProvider, IRecordStore
from utils.date_helpers import start_of_day, start_of_next_day, subtract_months

logger = logging.getLogger(__name__)


# --- pure rules ---------------------------------------------------------

def check_books_lendable(candidates: Sequence[BorrowCandidate]) -> None:
    for candidate in candidates:
        if not candidate.stock.can_be_borrowed():
            raise PolicyViolation(
                PolicyRule.BOOK_NOT_BORROWABLE,
                f"'{candidate.title}' is only available in the reading room",
                EntityType.BOOK, candidate.book_id,
            )
        if not candidate.stock.has_available_copies_to_borrow():
            raise PolicyViolation(
                PolicyRule.INSUFFICIENT_COPIES,
                f"'{candidate.title}' has reached its minimum shelf reserve "
                f"({candidate.stock.available} of {candidate.stock.borrowable_fund} lendable copies left)",
                EntityType.BOOK, candidate.book_id,
            )


def check_session_limit(candidates: Sequence[BorrowCandidate], limits: ReaderLimits) -> None:
    if len(candidates) > limits.session_max:
        raise PolicyViolation(
            PolicyRule.SESSION_LIMIT,
            f"At most {limits.session_max} books can be borrowed at once, requested {len(candidates)}",
        )


def check_domain_diversity(candidates: Sequence[BorrowCandidate], forest: DomainForest) -> None:
    """Three or more books must span at least two domains, ancestors included."""
    if len(candidates) < LendingDefaults.DOMAIN_DIVERSITY_MIN_BOOKS:
        return
    touched = forest.closure(d for c in candidates for d in c.domain_ids)
    if len(touched) < LendingDefaults.DOMAIN_DIVERSITY_MIN_DOMAINS:
        raise PolicyViolation(
            PolicyRule.DOMAIN_DIVERSITY,
            f"Borrowing {len(candidates)} books requires at least "
            f"{LendingDefaults.DOMAIN_DIVERSITY_MIN_DOMAINS} different domains",
        )


def check_daily_limit(requested: int, borrowed_today: int, limits: ReaderLimits) -> None:
    if not limits.allows_daily(borrowed_today + requested):
        raise PolicyViolation(
            PolicyRule.DAILY_LIMIT,
            f"Daily limit of {limits.daily_max} books reached "
            f"({borrowed_today} already borrowed today, {requested} requested)",
        )


def check_period_limit(requested: int, borrowed_in_period: int, limits: ReaderLimits) -> None:
    if borrowed_in_period + requested > limits.period_max:
        raise PolicyViolation(
            PolicyRule.PERIOD_LIMIT,
            f"Limit of {limits.period_max} books per {limits.period_length_days} days reached "
            f"({borrowed_in_period} already borrowed, {requested} requested)",
        )


def candidate_counts_by_domain(
    candidates: Sequence[BorrowCandidate], forest: DomainForest
) -> Mapping[int, int]:
    """
    How many candidates fall under each domain of their closure, in the order
    the domains are first reached walking each candidate up to its root.

    A candidate counts once per domain even when several of its domains share
    that ancestor.
    """
    counts = {}
    for candidate in candidates:
        for domain_id in forest.ordered_closure(sorted(candidate.domain_ids)):
            counts[domain_id] = counts.get(domain_id, 0) + 1
    return counts


def check_domain_limit(
    candidate_counts: Mapping[int, int],
    history_counts: Mapping[int, int],
    limits: ReaderLimits,
) -> None:
    for domain_id, requested in candidate_counts.items():
        borrowed = history_counts.get(domain_id, 0)
        if borrowed + requested > limits.domain_max:
            raise PolicyViolation(
                PolicyRule.DOMAIN_LIMIT,
                f"Limit of {limits.domain_max} books from domain {domain_id} per "
                f"{limits.domain_window_months} months reached "
                f"({borrowed} already borrowed, {requested} requested)",
                EntityType.DOMAIN, domain_id,
            )


def first_duplicate(book_ids: Iterable[int]) -> Optional[int]:
    seen: Set[int] = set()
    for book_id in book_ids:
        if book_id in seen:
            return book_id
        seen.add(book_id)
    return None


def check_reborrow_cooldown(
    book_ids: Sequence[int],
    held_open: Iterable[int],
    borrowed_recently: Iterable[int],
    limits: ReaderLimits,
) -> None:
    """
    A book cannot be requested twice in one session, while the reader still
    holds it, or again within the cooldown period.
    """
    duplicate = first_duplicate(book_ids)
    if duplicate is not None:
        raise PolicyViolation(
            PolicyRule.REBORROW_COOLDOWN,
            f"Book {duplicate} is requested more than once",
            EntityType.BOOK, duplicate,
        )

    held_open = set(held_open)
    borrowed_recently = set(borrowed_recently)
    for book_id in book_ids:
        if book_id in held_open:
            raise PolicyViolation(
                PolicyRule.REBORROW_COOLDOWN,
                f"Book {book_id} is already on loan to this reader",
                EntityType.BOOK, book_id,
            )
        if book_id in borrowed_recently:
            raise PolicyViolation(
                PolicyRule.REBORROW_COOLDOWN,
                f"Book {book_id} was borrowed within the last {limits.cooldown_days} days",
                EntityType.BOOK, book_id,
            )


def check_extension_limit(requested_days: int, extended_days: int, limits: ReaderLimits) -> None:
    if extended_days + requested_days > limits.extension_max:
        raise PolicyViolation(
            PolicyRule.EXTENSION_LIMIT,
            f"Limit of {limits.extension_max} extension days per "
            f"{LendingDefaults.EXTENSION_WINDOW_MONTHS} months reached "
            f"({extended_days} already used, {requested_days} requested)",
        )


def check_staff_lending_limit(requested: int, lent_today: int, cap: int, staff_id: int) -> None:
    if lent_today + requested > cap:
        raise PolicyViolation(
            PolicyRule.STAFF_LENDING_LIMIT,
            f"Staff member {staff_id} can hand out at most {cap} books per day "
            f"({lent_today} already lent, {requested} requested)",
            EntityType.READER, staff_id,
        )


# --- engine -------------------------------------------------------------

class BorrowValidationEngine:
    """
    Evaluates the lending rules for one reader against fresh history.

    Limits are derived from the configuration on every call, so a reader's
    role is never cached between evaluations.
    """

    def __init__(
        self,
        store: IRecordStore,
        configuration: IConfigurationProvider,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.store = store
        self.configuration = configuration
        self.clock = clock

    def validate_borrow(
        self,
        reader,
        candidates: Sequence[BorrowCandidate],
        lent_by_id: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> None:
        """
        Run every borrow rule in order.

        Args:
            reader: The borrowing reader (needs id and is_employee)
            candidates: One snapshot per requested book, in request order
                (a repeated id appears twice)
            lent_by_id: Staff member handing out the books, if any
            now: Evaluation time (defaults to the engine clock)

        Raises:
            PolicyViolation: From the first rule that fails
        """
        now = now or self.clock()
        limits = self.configuration.get_reader_limits(reader)
        requested = len(candidates)
        tomorrow = start_of_next_day(now)

        check_books_lendable(candidates)
        check_session_limit(candidates, limits)

        forest = self.store.domain_forest()
        check_domain_diversity(candidates, forest)

        if limits.has_daily_limit:
            borrowed_today = len(self.store.loans_by_reader(reader.id, start_of_day(now), tomorrow))
            check_daily_limit(requested, borrowed_today, limits)

        period_start = now - timedelta(days=limits.period_length_days)
        borrowed_in_period = len(self.store.loans_by_reader(reader.id, period_start, tomorrow))
        check_period_limit(requested, borrowed_in_period, limits)

        domain_window_start = subtract_months(now, limits.domain_window_months)
        candidate_counts = candidate_counts_by_domain(candidates, forest)
        history_counts = {
            domain_id: len(self.store.loans_by_reader_in_domain(
                reader.id, domain_id, domain_window_start, tomorrow
            ))
            for domain_id in candidate_counts
        }
        check_domain_limit(candidate_counts, history_counts, limits)

        book_ids = [c.book_id for c in candidates]
        held_open = {loan.book_id for loan in self.store.open_loans(reader.id)}
        cooldown_start = now - timedelta(days=limits.cooldown_days)
        borrowed_recently = {
            book_id for book_id in set(book_ids)
            if self.store.loans_by_reader_and_book(reader.id, book_id, cooldown_start, tomorrow)
        }
        check_reborrow_cooldown(book_ids, held_open, borrowed_recently, limits)

        if lent_by_id is not None:
            self.validate_staff_daily_lending_limit(lent_by_id, requested, now)

        logger.debug(f"Borrow of {book_ids} by reader {reader.id} passed all lending rules")

    def validate_staff_daily_lending_limit(
        self, staff_id: int, requested: int, now: Optional[datetime] = None
    ) -> None:
        now = now or self.clock()
        cap = self.configuration.get_configuration().staff_daily_lending_cap
        lent_today = len(self.store.loans_lent_by(staff_id, start_of_day(now), start_of_next_day(now)))
        check_staff_lending_limit(requested, lent_today, cap, staff_id)

    def validate_extension(self, reader, extension_days: int, now: Optional[datetime] = None) -> None:
        """
        Check the requested days against the reader's extension allowance over
        the trailing three months.

        Raises:
            PolicyViolation: EXTENSION_LIMIT
        """
        now = now or self.clock()
        limits = self.configuration.get_reader_limits(reader)
        window_start = subtract_months(now, LendingDefaults.EXTENSION_WINDOW_MONTHS)
        extensions = self.store.extensions_by_reader(reader.id, window_start, start_of_next_day(now))
        extended_days = sum(e.extension_days for e in extensions)
        check_extension_limit(extension_days, extended_days, limits)
