"""
Internal DTOs

DTOs for service-to-service communication within the backend.
These are not exposed outside the package.
"""

from .lending_dto import BorrowCandidate

__all__ = ["BorrowCandidate"]
