"""
LoanState Value Object

Immutable representation of a loan's position in the lending workflow.
"""

from enum import Enum


class LoanState(str, Enum):
    """
    Loan state enum.

    A loan is created OPEN at borrow time, stays OPEN through any number of
    extensions, and becomes CLOSED on return. CLOSED is never left again.
    """

    OPEN = "OPEN"
    CLOSED = "CLOSED"

    def is_terminal(self) -> bool:
        """Check if this state is terminal (no further transitions)."""
        return self is LoanState.CLOSED

    def can_transition_to(self, new_state: "LoanState") -> bool:
        """
        Check if transition to new state is valid.

        Extending keeps the loan OPEN, so OPEN -> OPEN is allowed.

        Args:
            new_state: Target state

        Returns:
            True if transition is allowed
        """
        valid_transitions = {
            LoanState.OPEN: {LoanState.OPEN, LoanState.CLOSED},
            LoanState.CLOSED: set(),
        }

        return new_state in valid_transitions.get(self, set())

    @classmethod
    def from_string(cls, value: str) -> "LoanState":
        """
        Create LoanState from string value.

        Raises:
            ValueError: If value is not a valid state
        """
        try:
            return cls(value)
        except ValueError:
            raise ValueError(f"Invalid loan state: {value}")
