"""
Repository layer for data access abstraction.

This package contains repository classes that encapsulate database queries
and provide a clean interface for data access operations.
"""

from .base_repository import BaseRepository
from .author_repository import AuthorRepository
from .book_repository import BookRepository
from .domain_repository import DomainRepository
from .extension_repository import ExtensionRepository
from .loan_repository import LoanRepository
from .reader_repository import ReaderRepository
from .record_store import SqlAlchemyRecordStore

__all__ = [
    "BaseRepository",
    "AuthorRepository",
    "BookRepository",
    "DomainRepository",
    "ExtensionRepository",
    "LoanRepository",
    "ReaderRepository",
    "SqlAlchemyRecordStore",
]
