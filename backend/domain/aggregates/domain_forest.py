"""
DomainForest Aggregate

The domain hierarchy as an arena of nodes addressed by integer id. Each node
stores only its parent id; children are derived on demand, so there are no
owning child pointers and no reference cycles to manage.
"""

from typing import Dict, Iterable, List, Mapping, Optional, Set

from exceptions import InvariantError


class DomainForest:
    """
    Read-only snapshot of the domain hierarchy.

    The hierarchy is kept acyclic at write time, not re-checked on every read.
    Every upward walk is therefore bounded by the node count and fails loudly
    if the stored graph turns out to be corrupted.
    """

    def __init__(self, parents: Mapping[int, Optional[int]]):
        """
        Args:
            parents: domain id -> parent id (None for roots)
        """
        self._parents: Dict[int, Optional[int]] = dict(parents)
        self._children: Dict[int, List[int]] = {}
        for node_id in sorted(self._parents):
            parent_id = self._parents[node_id]
            if parent_id is not None:
                self._children.setdefault(parent_id, []).append(node_id)

    def ancestors(self, domain_id: int) -> List[int]:
        """
        Parent chain of a domain, nearest first.

        Returns an empty list for unknown ids and for roots.

        Raises:
            InvariantError: If the chain is longer than the forest (cycle)
        """
        chain: List[int] = []
        if domain_id not in self._parents:
            return chain

        current = self._parents[domain_id]
        while current is not None:
            chain.append(current)
            if len(chain) > len(self._parents):
                raise InvariantError(
                    f"Domain hierarchy is corrupted: parent chain of domain {domain_id} does not terminate",
                    {"domain_id": domain_id},
                )
            current = self._parents.get(current)
        return chain

    def is_ancestor(self, ancestor_id: int, descendant_id: int) -> bool:
        """True iff ancestor_id is in descendant_id's parent chain (never for itself)."""
        if ancestor_id == descendant_id:
            return False

        steps = 0
        current = self._parents.get(descendant_id)
        while current is not None:
            if current == ancestor_id:
                return True
            steps += 1
            if steps > len(self._parents):
                raise InvariantError(
                    f"Domain hierarchy is corrupted: parent chain of domain {descendant_id} does not terminate",
                    {"domain_id": descendant_id},
                )
            current = self._parents.get(current)
        return False

    def descendants(self, domain_id: int) -> List[int]:
        """All domains below domain_id, depth-first in id order."""
        result: List[int] = []
        seen: Set[int] = {domain_id}
        stack = list(reversed(self._children.get(domain_id, [])))
        while stack:
            node_id = stack.pop()
            if node_id in seen:
                raise InvariantError(
                    f"Domain hierarchy is corrupted: domain {node_id} reached twice below {domain_id}",
                    {"domain_id": domain_id},
                )
            seen.add(node_id)
            result.append(node_id)
            stack.extend(reversed(self._children.get(node_id, [])))
        return result

    def subtree(self, domain_id: int) -> Set[int]:
        """The domain itself plus every descendant."""
        return {domain_id, *self.descendants(domain_id)}

    def roots(self) -> List[int]:
        return sorted(node_id for node_id, parent_id in self._parents.items() if parent_id is None)

    def leaves(self) -> List[int]:
        return sorted(node_id for node_id in self._parents if node_id not in self._children)

    def closure(self, domain_ids: Iterable[int]) -> Set[int]:
        """The given domains plus all of their ancestors."""
        result: Set[int] = set()
        for domain_id in domain_ids:
            result.add(domain_id)
            result.update(self.ancestors(domain_id))
        return result

    def ordered_closure(self, domain_ids: Iterable[int]) -> List[int]:
        """Like closure(), in first-seen order walking each domain up to its root."""
        result: List[int] = []
        for domain_id in domain_ids:
            for node_id in [domain_id, *self.ancestors(domain_id)]:
                if node_id not in result:
                    result.append(node_id)
        return result

    def would_create_cycle(self, domain_id: int, new_parent_id: Optional[int]) -> bool:
        """Check whether making new_parent_id the parent of domain_id closes a loop."""
        if new_parent_id is None:
            return False
        return new_parent_id == domain_id or self.is_ancestor(domain_id, new_parent_id)

    def with_parent(self, domain_id: int, new_parent_id: Optional[int]) -> "DomainForest":
        """The forest as it would look after moving domain_id under new_parent_id."""
        parents = dict(self._parents)
        parents[domain_id] = new_parent_id
        return DomainForest(parents)

    def related(self, first_id: int, second_id: int) -> bool:
        """True when one domain is an ancestor of the other."""
        return self.is_ancestor(first_id, second_id) or self.is_ancestor(second_id, first_id)
