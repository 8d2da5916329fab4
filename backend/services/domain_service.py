"""
Domain Service

Maintains the subject-category hierarchy: creation, renaming, re-parenting
(rejected when it would close a cycle or put two domains of one book on the
same branch), and deletion guarded against books and subdomains.
"""

from itertools import combinations
from typing import List, Optional, Set
import logging

from sqlalchemy.orm import Session

from constants import EntityType
from domain.aggregates.domain_forest import DomainForest
from exceptions import CycleError, InUseError, InvariantError, NotFoundError, ValidationError
from models import Domain
from repositories.domain_repository import DomainRepository
from schemas import DomainCreate, DomainRename, parse_payload
from utils.error_handlers import commit_or_rollback, handle_service_errors

logger = logging.getLogger(__name__)


class DomainService:
    """Service for domain hierarchy business logic."""

    def __init__(self, db: Session):
        """
        Initialize DomainService.

        Args:
            db: Database session
        """
        self.db = db
        self.domain_repo = DomainRepository(db)

    def _require(self, domain_id: int) -> Domain:
        domain = self.domain_repo.get_by_id(domain_id)
        if domain is None:
            raise NotFoundError(EntityType.DOMAIN, domain_id)
        return domain

    def _check_name_free(self, name: str, domain_id: Optional[int] = None) -> None:
        existing = self.domain_repo.get_by_name(name)
        if existing is not None and existing.id != domain_id:
            raise ValidationError(
                f"Domain name '{name}' is already used by domain {existing.id}",
                invalid_fields={"name": "already exists"},
            )

    @handle_service_errors("Add domain")
    def add_domain(self, name: str, parent_id: Optional[int] = None) -> Domain:
        """
        Create a domain, optionally below an existing parent.

        Raises:
            ValidationError: If the name is not 5..50 characters or already taken
            NotFoundError: If parent_id does not exist
        """
        payload = parse_payload(DomainCreate, name=name, parent_id=parent_id)
        if payload.parent_id is not None:
            self._require(payload.parent_id)
        self._check_name_free(payload.name)

        domain = Domain(name=payload.name, parent_id=payload.parent_id)
        with commit_or_rollback(self.db, "add domain"):
            self.domain_repo.create(domain)

        logger.info(f"Created domain {domain.id} '{domain.name}' under {domain.parent_id}")
        return domain

    @handle_service_errors("Rename domain")
    def rename_domain(self, domain_id: int, name: str) -> Domain:
        payload = parse_payload(DomainRename, name=name)
        domain = self._require(domain_id)
        self._check_name_free(payload.name, domain_id)

        with commit_or_rollback(self.db, "rename domain"):
            domain.name = payload.name
        return domain

    def _check_book_assignments(self, moved: Set[int], forest: DomainForest) -> None:
        for book_id, domain_ids in self.domain_repo.get_book_assignments(moved).items():
            for first_id, second_id in combinations(domain_ids, 2):
                if forest.related(first_id, second_id):
                    raise InvariantError(
                        f"Book {book_id} is filed under domains {first_id} and {second_id}, "
                        f"which the move would put on the same branch",
                        {"book_id": book_id, "domain_ids": [first_id, second_id]},
                    )

    @handle_service_errors("Set domain parent")
    def set_parent(self, domain_id: int, new_parent_id: Optional[int]) -> Domain:
        """
        Move a domain (with its whole subtree) below another parent.

        Passing None turns the domain into a root.

        Raises:
            NotFoundError: If either domain does not exist
            CycleError: If the new parent is the domain itself or one of its descendants
            InvariantError: If a book filed under the moved subtree would end up
                with two domains on the same branch
        """
        domain = self._require(domain_id)
        if new_parent_id is not None:
            self._require(new_parent_id)

        forest = self.domain_repo.load_forest()
        if forest.would_create_cycle(domain_id, new_parent_id):
            raise CycleError(domain_id, new_parent_id)
        self._check_book_assignments(forest.subtree(domain_id), forest.with_parent(domain_id, new_parent_id))

        with commit_or_rollback(self.db, "set domain parent"):
            domain.parent_id = new_parent_id

        logger.info(f"Domain {domain_id} moved under {new_parent_id}")
        return domain

    @handle_service_errors("Delete domain")
    def delete_domain(self, domain_id: int) -> None:
        """
        Raises:
            NotFoundError: If the domain does not exist
            InUseError: If it has subdomains or books are filed under it
        """
        domain = self._require(domain_id)
        if self.domain_repo.has_children(domain_id):
            raise InUseError(EntityType.DOMAIN, domain_id, "domain has subdomains")
        if self.domain_repo.has_books(domain_id):
            raise InUseError(EntityType.DOMAIN, domain_id, "books are assigned to it")

        with commit_or_rollback(self.db, "delete domain"):
            self.domain_repo.delete(domain)
        logger.info(f"Deleted domain {domain_id}")

    def get_domain(self, domain_id: int) -> Domain:
        return self._require(domain_id)

    def list_domains(self) -> List[Domain]:
        return self.domain_repo.get_all()

    def get_roots(self) -> List[Domain]:
        return self.domain_repo.get_root_domains()

    def get_leaves(self) -> List[Domain]:
        return self.domain_repo.get_leaf_domains()

    def get_ancestors(self, domain_id: int) -> List[Domain]:
        """Parent chain of a domain, nearest first. Empty for unknown ids."""
        return self.domain_repo.get_ancestors(domain_id)

    def get_descendants(self, domain_id: int) -> List[Domain]:
        """Every domain below domain_id. Empty for unknown ids."""
        return self.domain_repo.get_descendants(domain_id)

    def is_ancestor(self, ancestor_id: int, descendant_id: int) -> bool:
        return self.domain_repo.is_ancestor(ancestor_id, descendant_id)
