"""
Custom exception classes for the application.

This module defines the error taxonomy of the lending backend. Every error
carries a human-readable message plus a ``details`` dict describing the
entities involved, so callers can report failures without parsing strings.
"""


class ApplicationError(Exception):
    """Base exception for all application errors"""

    def __init__(self, message: str, details: dict | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


class ConfigurationError(ApplicationError):
    """Raised when the policy configuration is missing or invalid"""

    def __init__(self, message: str, invalid_keys: list[str] | None = None):
        details = {"invalid_keys": invalid_keys} if invalid_keys else {}
        super().__init__(message, details)


class ValidationError(ApplicationError):
    """Raised when request input is malformed (checked before any store access)"""

    def __init__(self, message: str, invalid_fields: dict | None = None):
        details = {"invalid_fields": invalid_fields} if invalid_fields else {}
        super().__init__(message, details)


class PolicyViolation(ApplicationError):
    """
    Raised when a named lending rule rejects a borrow or extension request.

    The request is terminal: nothing has been written, and the caller must
    change the request (for example drop a book) before trying again.
    """

    def __init__(
        self,
        rule: str,
        message: str,
        entity_type: str | None = None,
        entity_id: int | None = None,
    ):
        self.rule = rule
        self.entity_type = entity_type
        self.entity_id = entity_id
        details = {"rule": rule}
        if entity_type:
            details["entity_type"] = entity_type
            details["entity_id"] = entity_id
        super().__init__(message, details)


class NotFoundError(ApplicationError):
    """Raised when a referenced entity does not exist"""

    def __init__(self, entity_type: str, entity_id, message: str | None = None):
        self.entity_type = entity_type
        self.entity_id = entity_id
        msg = message or f"{entity_type} with ID {entity_id} not found"
        super().__init__(msg, {"entity_type": entity_type, "entity_id": entity_id})


class InvariantError(ApplicationError):
    """Raised when a change would break a structural invariant of the catalog"""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message, details)


class CycleError(InvariantError):
    """Raised when a parent assignment would create a cycle in the domain hierarchy"""

    def __init__(self, domain_id: int, parent_id: int, message: str | None = None):
        msg = message or (
            f"Cannot set domain {parent_id} as parent of domain {domain_id} "
            f"(circular reference)"
        )
        super().__init__(msg, {"domain_id": domain_id, "parent_id": parent_id})


class InUseError(InvariantError):
    """Raised when an entity cannot be deleted because other records reference it"""

    def __init__(self, entity_type: str, entity_id: int, reason: str):
        super().__init__(
            f"Cannot delete {entity_type} {entity_id}: {reason}",
            {"entity_type": entity_type, "entity_id": entity_id, "reason": reason},
        )


class ConflictError(ApplicationError):
    """Raised when a concurrent update won the race at commit time"""

    def __init__(self, operation: str, message: str | None = None):
        msg = message or f"Concurrent update detected during {operation}"
        super().__init__(msg, {"operation": operation})


class DatabaseError(ApplicationError):
    """Raised when database operations fail"""

    def __init__(self, operation: str, message: str):
        details = {"operation": operation}
        super().__init__(message, details)
