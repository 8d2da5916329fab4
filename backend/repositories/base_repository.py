"""
Base repository providing common CRUD operations.
"""

from typing import Generic, Iterable, List, Optional, Type, TypeVar
from sqlalchemy.orm import Session

from .specifications import Specification

T = TypeVar('T')


class BaseRepository(Generic[T]):
    """
    Generic repository over one mapped model.

    Writes only flush; committing is the caller's decision, so several
    repository calls can share one transaction.
    """

    def __init__(self, db: Session, model: Type[T]):
        """
        Args:
            db: SQLAlchemy database session
            model: SQLAlchemy model class
        """
        self.db = db
        self.model = model

    def create(self, obj: T) -> T:
        self.db.add(obj)
        self.db.flush()
        return obj

    def get_by_id(self, id: int) -> Optional[T]:
        return self.db.get(self.model, id)

    def get_many(self, ids: Iterable[int]) -> List[T]:
        """Fetch records by id, skipping unknown ids, ordered by id."""
        ids = list(ids)
        if not ids:
            return []
        return self.db.query(self.model).filter(
            self.model.id.in_(ids)
        ).order_by(self.model.id).all()

    def get_all(self, limit: Optional[int] = None, offset: int = 0) -> List[T]:
        query = self.db.query(self.model).order_by(self.model.id)
        if limit:
            query = query.limit(limit)
        if offset:
            query = query.offset(offset)
        return query.all()

    def update(self, obj: T) -> T:
        self.db.flush()
        return obj

    def delete(self, obj: T) -> None:
        self.db.delete(obj)
        self.db.flush()

    def find(self, spec: Specification[T], order_by=None) -> List[T]:
        """Fetch every record matching a specification."""
        query = self.db.query(self.model).filter(spec.to_sql_filter())
        if order_by is not None:
            query = query.order_by(order_by)
        return query.all()
