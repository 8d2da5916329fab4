import pytest

from exceptions import InUseError, NotFoundError, ValidationError


def test_add_and_list_authors(catalog):
    author = catalog.author_service.add_author("Liviu", "Rebreanu")

    assert author.full_name == "Liviu Rebreanu"
    assert [a.id for a in catalog.author_service.list_authors()] == [author.id]


def test_author_name_length(catalog):
    with pytest.raises(ValidationError):
        catalog.author_service.add_author("L", "Rebreanu")


def test_delete_author(catalog):
    author = catalog.author_service.add_author("Liviu", "Rebreanu")

    catalog.author_service.delete_author(author.id)

    with pytest.raises(NotFoundError):
        catalog.author_service.get_author(author.id)


def test_credited_author_cannot_be_deleted(catalog):
    book = catalog.book(catalog.domain("Novels"))

    with pytest.raises(InUseError):
        catalog.author_service.delete_author(book.authors[0].id)
