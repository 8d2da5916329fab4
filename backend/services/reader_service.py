"""
Reader Service

Registration and maintenance of library readers (members and staff).
"""

from typing import List, Optional
import logging

from sqlalchemy.orm import Session

from constants import EntityType
from exceptions import InUseError, NotFoundError, ValidationError
from models import Reader
from repositories.reader_repository import ReaderRepository
from schemas import ReaderCreate, ReaderUpdate, parse_payload
from utils.error_handlers import commit_or_rollback, handle_service_errors

logger = logging.getLogger(__name__)


class ReaderService:
    """Service for reader-related business logic."""

    def __init__(self, db: Session):
        self.db = db
        self.reader_repo = ReaderRepository(db)

    def _require(self, reader_id: int) -> Reader:
        reader = self.reader_repo.get_by_id(reader_id)
        if reader is None:
            raise NotFoundError(EntityType.READER, reader_id)
        return reader

    def _check_email_free(self, email: Optional[str], reader_id: Optional[int] = None) -> None:
        if email is None:
            return
        existing = self.reader_repo.get_by_email(email)
        if existing is not None and existing.id != reader_id:
            raise ValidationError(
                f"Email {email} is already registered",
                invalid_fields={"email": "already registered"},
            )

    @handle_service_errors("Register reader")
    def register_reader(
        self,
        first_name: str,
        last_name: str,
        address: str,
        email: Optional[str] = None,
        phone: Optional[str] = None,
        is_employee: bool = False,
    ) -> Reader:
        """
        Raises:
            ValidationError: If a field is malformed, both email and phone are
                missing, or the email is already registered
        """
        payload = parse_payload(
            ReaderCreate,
            first_name=first_name,
            last_name=last_name,
            address=address,
            email=email,
            phone=phone,
            is_employee=is_employee,
        )
        self._check_email_free(payload.email)

        reader = Reader(**payload.model_dump())
        with commit_or_rollback(self.db, "register reader"):
            self.reader_repo.create(reader)

        logger.info(f"Registered {'staff member' if reader.is_employee else 'reader'} {reader.id}")
        return reader

    @handle_service_errors("Update reader")
    def update_reader(self, reader_id: int, **changes) -> Reader:
        """
        Update reader details. Pass email=None or phone=None to clear a contact.

        Raises:
            ValidationError: If the update leaves the reader without any contact
            NotFoundError: If the reader does not exist
        """
        payload = parse_payload(ReaderUpdate, **changes)
        reader = self._require(reader_id)

        updates = payload.model_dump(exclude_unset=True)
        email = updates.get("email", reader.email)
        phone = updates.get("phone", reader.phone)
        if email is None and phone is None:
            raise ValidationError(
                "Either email or phone must be provided",
                invalid_fields={"email": "missing", "phone": "missing"},
            )
        if "email" in updates:
            self._check_email_free(email, reader_id)

        with commit_or_rollback(self.db, "update reader"):
            for field, value in updates.items():
                if value is None and field not in ("email", "phone"):
                    continue
                setattr(reader, field, value)
        return reader

    @handle_service_errors("Delete reader")
    def delete_reader(self, reader_id: int) -> None:
        """
        Delete a reader and their borrowing history.

        Raises:
            NotFoundError: If the reader does not exist
            InUseError: If the reader still holds books
        """
        reader = self._require(reader_id)
        if self.reader_repo.has_open_loans(reader_id):
            raise InUseError(EntityType.READER, reader_id, "reader still holds borrowed books")

        with commit_or_rollback(self.db, "delete reader"):
            self.reader_repo.delete_with_history(reader)
        logger.info(f"Deleted reader {reader_id}")

    def get_reader(self, reader_id: int) -> Reader:
        return self._require(reader_id)

    def list_readers(self, limit: Optional[int] = None, offset: int = 0) -> List[Reader]:
        return self.reader_repo.get_all(limit=limit, offset=offset)

    def list_employees(self) -> List[Reader]:
        return self.reader_repo.get_employees()
