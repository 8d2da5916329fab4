"""
Domain Value Objects

Value objects are immutable types compared by value, not by ID.

- LoanState: state of a loan in the lending workflow
- ReaderLimits: policy thresholds adjusted for one reader's role
"""

from .loan_state import LoanState
from .reader_limits import ReaderLimits

__all__ = ["LoanState", "ReaderLimits"]
