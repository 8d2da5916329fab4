"""
Domain repository: storage and traversal of the domain hierarchy.
"""

from typing import Dict, Iterable, List, Optional
from sqlalchemy.orm import Session

from domain.aggregates.domain_forest import DomainForest
from models import Domain, book_domains
from .base_repository import BaseRepository


class DomainRepository(BaseRepository[Domain]):
    """
    Repository for Domain model operations.

    Traversals load the (id, parent_id) pairs once per call into a
    DomainForest and walk that snapshot, so a single query serves any depth.
    """

    def __init__(self, db: Session):
        super().__init__(db, Domain)

    def get_by_name(self, name: str) -> Optional[Domain]:
        return self.db.query(self.model).filter(self.model.name == name).first()

    def load_forest(self) -> DomainForest:
        rows = self.db.query(self.model.id, self.model.parent_id).all()
        return DomainForest({domain_id: parent_id for domain_id, parent_id in rows})

    def _ordered(self, ids: List[int]) -> List[Domain]:
        by_id = {d.id: d for d in self.get_many(ids)}
        return [by_id[i] for i in ids if i in by_id]

    def get_ancestors(self, domain_id: int) -> List[Domain]:
        """Parent chain, nearest first."""
        return self._ordered(self.load_forest().ancestors(domain_id))

    def get_descendants(self, domain_id: int) -> List[Domain]:
        return self._ordered(self.load_forest().descendants(domain_id))

    def get_descendant_ids(self, domain_id: int) -> List[int]:
        return self.load_forest().descendants(domain_id)

    def get_root_domains(self) -> List[Domain]:
        return self.db.query(self.model).filter(
            self.model.parent_id.is_(None)
        ).order_by(self.model.id).all()

    def get_leaf_domains(self) -> List[Domain]:
        return self._ordered(self.load_forest().leaves())

    def has_children(self, domain_id: int) -> bool:
        return self.db.query(self.model.id).filter(
            self.model.parent_id == domain_id
        ).first() is not None

    def has_books(self, domain_id: int) -> bool:
        return self.db.query(book_domains.c.book_id).filter(
            book_domains.c.domain_id == domain_id
        ).first() is not None

    def is_ancestor(self, potential_ancestor_id: int, descendant_id: int) -> bool:
        return self.load_forest().is_ancestor(potential_ancestor_id, descendant_id)

    def get_book_assignments(self, domain_ids: Iterable[int]) -> Dict[int, List[int]]:
        """Every domain of each book filed under any of the given domains, keyed by book id."""
        filed = self.db.query(book_domains.c.book_id).filter(
            book_domains.c.domain_id.in_(list(domain_ids))
        )
        rows = self.db.query(book_domains.c.book_id, book_domains.c.domain_id).filter(
            book_domains.c.book_id.in_(filed.scalar_subquery())
        ).order_by(book_domains.c.book_id, book_domains.c.domain_id).all()

        assignments: Dict[int, List[int]] = {}
        for book_id, domain_id in rows:
            assignments.setdefault(book_id, []).append(domain_id)
        return assignments
