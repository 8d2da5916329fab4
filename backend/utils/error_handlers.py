"""
Error handling decorators and utilities for the service layer.

Centralizes how services log failures and how storage exceptions are turned
into the application error taxonomy, instead of repeating try/except blocks
in every service method.
"""

from contextlib import contextmanager
from functools import wraps
from typing import Callable
import logging

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm.exc import StaleDataError

from exceptions import (
    ApplicationError,
    ConflictError,
    DatabaseError,
    InvariantError,
    NotFoundError,
    PolicyViolation,
    ValidationError,
)

logger = logging.getLogger(__name__)

# Errors the caller can fix by changing the request; logged without tracebacks
CALLER_ERRORS = (ValidationError, PolicyViolation, NotFoundError, InvariantError)


def handle_service_errors(operation_name: str):
    """
    Decorator that logs failures of a service operation and re-raises them.

    Application errors propagate unchanged. Raw SQLAlchemy errors that escaped
    the store are wrapped in DatabaseError.

    Args:
        operation_name: Human-readable name of the operation (e.g., "Add domain")

    Example:
        @handle_service_errors("Delete domain")
        def delete_domain(self, domain_id: int) -> None:
            ...
    """
    def decorator(func: Callable):
        @wraps(func)
        def wrapper(*args, **kwargs):
            try:
                return func(*args, **kwargs)
            except CALLER_ERRORS as e:
                logger.warning(f"{operation_name} rejected: {e.message}")
                raise
            except ConflictError as e:
                logger.warning(f"{operation_name} - Conflict: {e.message}")
                raise
            except ApplicationError as e:
                logger.error(f"{operation_name} - Application error: {e.message}", exc_info=True)
                raise
            except SQLAlchemyError as e:
                logger.error(f"{operation_name} - Database error: {e}", exc_info=True)
                raise DatabaseError(operation_name, f"{operation_name} failed: {e}") from e

        return wrapper

    return decorator


@contextmanager
def translate_store_errors(operation: str):
    """
    Translate storage exceptions raised inside the block.

    A stale version counter or a violated unique index means another request
    committed first, so both become ConflictError; anything else from
    SQLAlchemy becomes DatabaseError.
    """
    try:
        yield
    except StaleDataError as e:
        raise ConflictError(operation, f"{operation}: record changed concurrently") from e
    except IntegrityError as e:
        raise ConflictError(operation, f"{operation}: constraint violated by a concurrent update") from e
    except SQLAlchemyError as e:
        raise DatabaseError(operation, f"{operation} failed: {e}") from e


@contextmanager
def commit_or_rollback(db, operation: str):
    """
    Commit the session when the block succeeds, roll it back otherwise.

    Example:
        with commit_or_rollback(self.db, "add domain"):
            self.domain_repo.create(domain)
    """
    try:
        with translate_store_errors(operation):
            yield
            db.commit()
    except Exception:
        db.rollback()
        raise
