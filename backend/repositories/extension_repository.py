"""
Extension repository. Extensions are append-only history.
"""

from datetime import datetime
from typing import List
from sqlalchemy.orm import Session

from models import Extension
from .base_repository import BaseRepository
from .loan_specifications import ExtensionsByReaderSpec, ExtensionsRequestedBetweenSpec


class ExtensionRepository(BaseRepository[Extension]):
    """Repository for Extension model operations."""

    def __init__(self, db: Session):
        super().__init__(db, Extension)

    def get_by_loan(self, loan_id: int) -> List[Extension]:
        return self.db.query(self.model).filter(
            self.model.loan_id == loan_id
        ).order_by(self.model.id).all()

    def get_by_reader_in_range(self, reader_id: int, start: datetime, end: datetime) -> List[Extension]:
        spec = ExtensionsByReaderSpec(reader_id) & ExtensionsRequestedBetweenSpec(start, end)
        return self.find(spec, order_by=self.model.request_date)
