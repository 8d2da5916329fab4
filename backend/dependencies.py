"""
Dependency providers.

Factory functions that assemble repositories and services around a database
session, following the Dependency Inversion Principle: callers receive the
interfaces and tests can pass their own session, configuration or clock.
"""

from datetime import datetime
from typing import Callable, Mapping, Optional

from sqlalchemy.orm import Session

from repositories.record_store import SqlAlchemyRecordStore
from services.author_service import AuthorService
from services.book_service import BookService
from services.configuration_service import ConfigurationService
from services.domain_service import DomainService
from services.interfaces import IConfigurationProvider, ILendingService, IRecordStore
from services.lending_service import LendingService
from services.reader_service import ReaderService


def get_record_store(db: Session) -> IRecordStore:
    return SqlAlchemyRecordStore(db)


def get_configuration_provider(
    db: Session, overrides: Optional[Mapping[str, object]] = None
) -> IConfigurationProvider:
    """
    Args:
        db: Database session used to read the settings table
        overrides: Field name -> value applied on top of stored settings
    """
    return ConfigurationService(db, overrides=overrides)


def get_lending_service(
    db: Session,
    configuration: Optional[IConfigurationProvider] = None,
    clock: Callable[[], datetime] = datetime.now,
) -> ILendingService:
    """
    Factory function for the lending workflow.

    Args:
        db: Database session shared by the store and the configuration
        configuration: Policy source (defaults to the settings table)
        clock: Current-time source

    Returns:
        ILendingService implementation
    """
    return LendingService(
        get_record_store(db),
        configuration or get_configuration_provider(db),
        clock=clock,
    )


def get_domain_service(db: Session) -> DomainService:
    return DomainService(db)


def get_book_service(db: Session, configuration: Optional[IConfigurationProvider] = None) -> BookService:
    return BookService(db, configuration or get_configuration_provider(db))


def get_reader_service(db: Session) -> ReaderService:
    return ReaderService(db)


def get_author_service(db: Session) -> AuthorService:
    return AuthorService(db)
