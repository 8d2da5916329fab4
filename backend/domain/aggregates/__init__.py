"""
Domain Aggregates

Pure, in-memory views over catalog data that enforce the catalog invariants.

- BookStock: copy counters of a book and the availability arithmetic
- DomainForest: the domain hierarchy as an arena of id -> parent id
"""

from .book_stock import BookStock, can_be_borrowed, has_available_copies_to_borrow
from .domain_forest import DomainForest

__all__ = [
    "BookStock",
    "DomainForest",
    "can_be_borrowed",
    "has_available_copies_to_borrow",
]
