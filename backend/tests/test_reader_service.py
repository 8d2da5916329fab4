import pytest

from exceptions import InUseError, NotFoundError, ValidationError
from models import Loan
from services.reader_service import ReaderService


@pytest.fixture
def service(db_session):
    return ReaderService(db_session)


def register(service, **changes):
    fields = dict(
        first_name="Ioana",
        last_name="Ionescu",
        address="Bulevardul Unirii 3",
        email="ioana@example.com",
        phone=None,
    )
    fields.update(changes)
    return service.register_reader(**fields)


def test_register_reader(service):
    reader = register(service)

    assert reader.id is not None
    assert reader.full_name == "Ioana Ionescu"
    assert not reader.is_employee
    assert reader.number_of_extensions == 0


def test_phone_alone_is_enough(service):
    reader = register(service, email=None, phone="0722000000")

    assert reader.email is None
    assert reader.has_valid_contact()


@pytest.mark.parametrize("changes", [
    {"email": None, "phone": None},
    {"email": "   ", "phone": ""},
    {"email": "not-an-email"},
    {"address": "Str"},
    {"first_name": "I"},
    {"phone": "0" * 21},
])
def test_invalid_registration(service, changes):
    with pytest.raises(ValidationError):
        register(service, **changes)


def test_email_must_be_unique(service):
    register(service)

    with pytest.raises(ValidationError):
        register(service, first_name="Other")


def test_update_reader(service):
    reader = register(service)

    updated = service.update_reader(reader.id, phone="0722000000", is_employee=True)

    assert updated.phone == "0722000000"
    assert updated.is_employee


def test_update_cannot_remove_last_contact(service):
    reader = register(service)

    with pytest.raises(ValidationError):
        service.update_reader(reader.id, email=None)


def test_update_can_swap_contact(service):
    reader = register(service, phone="0722000000")

    updated = service.update_reader(reader.id, email=None)

    assert updated.email is None
    assert updated.phone == "0722000000"


def test_delete_reader_with_open_loan_refused(catalog, lending):
    domain = catalog.domain("Science")
    book = catalog.book(domain)
    reader = catalog.reader()
    lending.borrow(reader.id, [book.id])

    with pytest.raises(InUseError):
        catalog.reader_service.delete_reader(reader.id)


def test_delete_reader_keeps_loans_they_lent(db_session, catalog, lending):
    domain = catalog.domain("Science")
    book = catalog.book(domain)
    staff = catalog.reader(employee=True)
    reader = catalog.reader()
    lending.borrow(reader.id, [book.id], lent_by_id=staff.id)

    catalog.reader_service.delete_reader(staff.id)

    loan = db_session.query(Loan).one()
    assert loan.reader_id == reader.id
    assert loan.lent_by_id is None
    with pytest.raises(NotFoundError):
        catalog.reader_service.get_reader(staff.id)
