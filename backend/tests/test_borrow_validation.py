from datetime import timedelta

import pytest

from constants import PolicyRule
from domain.aggregates.book_stock import BookStock
from domain.aggregates.domain_forest import DomainForest
from domain.value_objects.reader_limits import ReaderLimits
from dtos.internal.lending_dto import BorrowCandidate
from exceptions import PolicyViolation
from models import Loan
from services.borrow_validation import (
    candidate_counts_by_domain,
    check_books_lendable,
    check_domain_diversity,
    check_reborrow_cooldown,
)


def candidate(book_id, *domain_ids, total=10, reading_room=0, available=10):
    return BorrowCandidate(
        book_id=book_id,
        title=f"Book {book_id}",
        stock=BookStock(total, reading_room, available),
        domain_ids=frozenset(domain_ids),
    )


LIMITS = ReaderLimits(
    session_max=5, daily_max=6, period_max=10, period_length_days=30,
    domain_max=3, domain_window_months=6, extension_max=30, cooldown_days=14,
)


# --- pure rules ---------------------------------------------------------

def test_first_unlendable_book_is_reported():
    with pytest.raises(PolicyViolation) as exc_info:
        check_books_lendable([
            candidate(1, 1),
            candidate(2, 1, total=10, reading_room=2, available=0),
            candidate(3, 1, total=2, reading_room=2, available=2),
        ])

    assert exc_info.value.rule == PolicyRule.INSUFFICIENT_COPIES
    assert exc_info.value.entity_id == 2


def test_diversity_counts_ancestors():
    forest = DomainForest({1: None, 2: 1, 3: 1, 4: None})

    check_domain_diversity([candidate(1, 2), candidate(2, 2), candidate(3, 2)], forest)
    with pytest.raises(PolicyViolation):
        check_domain_diversity([candidate(1, 4), candidate(2, 4), candidate(3, 4)], forest)
    # fewer than three books are never checked
    check_domain_diversity([candidate(1, 4), candidate(2, 4)], forest)


def test_candidate_counts_share_ancestors_once_per_book():
    forest = DomainForest({1: None, 2: 1, 3: 1})

    counts = candidate_counts_by_domain([candidate(1, 2, 3), candidate(2, 2)], forest)

    assert counts == {2: 2, 1: 2, 3: 1}
    assert list(counts) == [2, 1, 3]


def test_cooldown_reports_duplicates_before_history():
    with pytest.raises(PolicyViolation) as exc_info:
        check_reborrow_cooldown([5, 7, 5], held_open=[7], borrowed_recently=[], limits=LIMITS)

    assert exc_info.value.rule == PolicyRule.REBORROW_COOLDOWN
    assert exc_info.value.entity_id == 5


# --- rules against stored history ----------------------------------------

@pytest.fixture
def shelves(catalog):
    """Five root domains plus one root with two leaves"""
    roots = [catalog.domain(name) for name in ("History", "Poetry", "Drama", "Novels", "Essays")]
    science = catalog.domain("Science")
    physics = catalog.domain("Physics", science)
    biology = catalog.domain("Biology", science)
    return roots, science, physics, biology


def assert_violation(exc_info, rule, entity_id=None):
    assert exc_info.value.rule == rule
    if entity_id is not None:
        assert exc_info.value.entity_id == entity_id


def test_reading_room_book_not_borrowable(catalog, lending, shelves):
    roots, _, _, _ = shelves
    book = catalog.book(roots[0], total=2, reading_room=2)
    reader = catalog.reader()

    with pytest.raises(PolicyViolation) as exc_info:
        lending.borrow(reader.id, [book.id])

    assert_violation(exc_info, PolicyRule.BOOK_NOT_BORROWABLE, book.id)


def test_reserve_floor_blocks_last_copies(catalog, lending, shelves):
    roots, _, _, _ = shelves
    reader = catalog.reader()
    at_floor = catalog.book(roots[0], total=10, reading_room=2, available=1)
    below_floor = catalog.book(roots[1], total=10, reading_room=2, available=0)

    lending.borrow(reader.id, [at_floor.id])

    with pytest.raises(PolicyViolation) as exc_info:
        lending.borrow(reader.id, [below_floor.id])
    assert_violation(exc_info, PolicyRule.INSUFFICIENT_COPIES, below_floor.id)


def test_session_limit_for_regular_reader(catalog, lending, shelves):
    roots, _, physics, biology = shelves
    books = [catalog.book(d) for d in roots] + [catalog.book(physics)]
    reader = catalog.reader()

    with pytest.raises(PolicyViolation) as exc_info:
        lending.borrow(reader.id, [b.id for b in books])

    assert_violation(exc_info, PolicyRule.SESSION_LIMIT)


def test_staff_session_limit_is_doubled(db_session, catalog, lending, shelves):
    roots, _, physics, _ = shelves
    books = [catalog.book(d) for d in roots for _ in range(2)]
    one_too_many = books + [catalog.book(physics)]
    staff = catalog.reader(employee=True)
    reader = catalog.reader()

    with pytest.raises(PolicyViolation) as exc_info:
        lending.borrow(staff.id, [b.id for b in one_too_many])
    assert_violation(exc_info, PolicyRule.SESSION_LIMIT)

    with pytest.raises(PolicyViolation) as exc_info:
        lending.borrow(reader.id, [b.id for b in books[:6]])
    assert_violation(exc_info, PolicyRule.SESSION_LIMIT)

    loans = lending.borrow(staff.id, [b.id for b in books])

    assert len(loans) == 10
    assert db_session.query(Loan).count() == 10


def test_three_books_from_one_root_domain_fail_diversity(catalog, lending, shelves):
    roots, _, _, _ = shelves
    books = catalog.books(3, roots[0])
    reader = catalog.reader()

    with pytest.raises(PolicyViolation) as exc_info:
        lending.borrow(reader.id, [b.id for b in books])

    assert_violation(exc_info, PolicyRule.DOMAIN_DIVERSITY)


def test_two_leaves_under_one_root_satisfy_diversity(catalog, lending, shelves):
    _, _, physics, biology = shelves
    books = [catalog.book(physics), catalog.book(physics), catalog.book(biology)]
    reader = catalog.reader()

    assert len(lending.borrow(reader.id, [b.id for b in books])) == 3


def test_one_leaf_under_a_root_satisfies_diversity(catalog, lending, shelves):
    _, _, physics, _ = shelves
    books = catalog.books(3, physics)
    reader = catalog.reader()

    assert len(lending.borrow(reader.id, [b.id for b in books])) == 3


def test_daily_limit(catalog, lending_with, shelves):
    roots, _, _, _ = shelves
    lending = lending_with(max_books_per_day=2)
    books = [catalog.book(d) for d in roots[:3]]
    reader = catalog.reader()

    lending.borrow(reader.id, [books[0].id, books[1].id])

    with pytest.raises(PolicyViolation) as exc_info:
        lending.borrow(reader.id, [books[2].id])
    assert_violation(exc_info, PolicyRule.DAILY_LIMIT)


def test_daily_limit_resets_next_day(catalog, lending_with, clock, shelves):
    roots, _, _, _ = shelves
    lending = lending_with(max_books_per_day=2)
    books = [catalog.book(d) for d in roots[:3]]
    reader = catalog.reader()
    lending.borrow(reader.id, [books[0].id, books[1].id])

    clock.advance(days=1)

    assert len(lending.borrow(reader.id, [books[2].id])) == 1


def test_staff_have_no_daily_limit(catalog, lending_with, shelves):
    roots, _, _, _ = shelves
    lending = lending_with(max_books_per_day=1)
    books = [catalog.book(d) for d in roots[:3]]
    staff = catalog.reader(employee=True)

    assert len(lending.borrow(staff.id, [b.id for b in books])) == 3


def test_period_limit_counts_trailing_window(catalog, lending_with, clock, shelves):
    roots, _, _, _ = shelves
    lending = lending_with(max_books_per_period=3, borrowing_period_days=30)
    books = [catalog.book(d) for d in roots[:4]]
    reader = catalog.reader()
    catalog.past_loan(reader, books[0], clock() - timedelta(days=10))
    catalog.past_loan(reader, books[1], clock() - timedelta(days=20))
    catalog.past_loan(reader, books[2], clock() - timedelta(days=40))

    lending.borrow(reader.id, [books[3].id])

    with pytest.raises(PolicyViolation) as exc_info:
        lending.borrow(reader.id, [books[2].id])
    assert_violation(exc_info, PolicyRule.PERIOD_LIMIT)


def test_domain_limit_counts_whole_subtree(catalog, lending, clock, shelves):
    _, science, physics, biology = shelves
    reader = catalog.reader()
    history = [catalog.book(physics), catalog.book(biology)]
    for book in history:
        catalog.past_loan(reader, book, clock() - timedelta(days=60))
    candidates = [catalog.book(physics), catalog.book(biology)]

    with pytest.raises(PolicyViolation) as exc_info:
        lending.borrow(reader.id, [b.id for b in candidates])

    # 2 historical + 2 requested under Science exceeds 3
    assert_violation(exc_info, PolicyRule.DOMAIN_LIMIT, science.id)


def test_domain_limit_ignores_loans_outside_window(catalog, lending, clock, shelves):
    _, _, physics, biology = shelves
    reader = catalog.reader()
    for book in (catalog.book(physics), catalog.book(biology)):
        catalog.past_loan(reader, book, clock() - timedelta(days=200))
    candidates = [catalog.book(physics), catalog.book(biology)]

    assert len(lending.borrow(reader.id, [b.id for b in candidates])) == 2


def test_domain_limit_reports_leaf_first(catalog, lending, shelves):
    _, _, physics, _ = shelves
    books = catalog.books(4, physics)
    reader = catalog.reader()

    with pytest.raises(PolicyViolation) as exc_info:
        lending.borrow(reader.id, [b.id for b in books])

    assert_violation(exc_info, PolicyRule.DOMAIN_LIMIT, physics.id)


def test_duplicate_book_in_request(catalog, lending, shelves):
    roots, _, _, _ = shelves
    book = catalog.book(roots[0])
    reader = catalog.reader()

    with pytest.raises(PolicyViolation) as exc_info:
        lending.borrow(reader.id, [book.id, book.id])

    assert_violation(exc_info, PolicyRule.REBORROW_COOLDOWN, book.id)


def test_cannot_borrow_a_book_already_held(catalog, lending, clock, shelves):
    roots, _, _, _ = shelves
    book = catalog.book(roots[0])
    reader = catalog.reader()
    catalog.past_loan(reader, book, clock() - timedelta(days=40), returned=False)

    with pytest.raises(PolicyViolation) as exc_info:
        lending.borrow(reader.id, [book.id])

    assert_violation(exc_info, PolicyRule.REBORROW_COOLDOWN, book.id)


def test_reborrow_cooldown(catalog, lending, clock, shelves):
    roots, _, _, _ = shelves
    book = catalog.book(roots[0])
    reader = catalog.reader()
    lending.borrow(reader.id, [book.id])
    lending.return_book(reader.id, book.id)

    clock.advance(days=10)
    with pytest.raises(PolicyViolation) as exc_info:
        lending.borrow(reader.id, [book.id])
    assert_violation(exc_info, PolicyRule.REBORROW_COOLDOWN, book.id)

    clock.advance(days=5)
    assert len(lending.borrow(reader.id, [book.id])) == 1


def test_staff_cooldown_is_halved(catalog, lending, clock, shelves):
    roots, _, _, _ = shelves
    book = catalog.book(roots[0])
    staff = catalog.reader(employee=True)
    lending.borrow(staff.id, [book.id])
    lending.return_book(staff.id, book.id)

    clock.advance(days=8)

    assert len(lending.borrow(staff.id, [book.id])) == 1


def test_staff_daily_lending_cap(catalog, lending_with, shelves):
    roots, _, _, _ = shelves
    lending = lending_with(staff_daily_lending_cap=2)
    books = [catalog.book(d) for d in roots[:3]]
    staff = catalog.reader(employee=True)
    first, second = catalog.reader(), catalog.reader()

    lending.borrow(first.id, [books[0].id, books[1].id], lent_by_id=staff.id)

    with pytest.raises(PolicyViolation) as exc_info:
        lending.borrow(second.id, [books[2].id], lent_by_id=staff.id)
    assert_violation(exc_info, PolicyRule.STAFF_LENDING_LIMIT, staff.id)

    # without a lending staff member the cap does not apply
    assert len(lending.borrow(second.id, [books[2].id])) == 1


def test_rules_stop_at_first_failure(catalog, lending, shelves):
    roots, _, _, _ = shelves
    reading_room_only = catalog.book(roots[0], total=1, reading_room=1)
    others = catalog.books(5, roots[1])
    reader = catalog.reader()

    with pytest.raises(PolicyViolation) as exc_info:
        lending.borrow(reader.id, [reading_room_only.id] + [b.id for b in others])

    assert_violation(exc_info, PolicyRule.BOOK_NOT_BORROWABLE, reading_room_only.id)
