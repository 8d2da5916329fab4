"""
ReaderLimits Value Object

Policy thresholds as they apply to one reader, after the staff adjustment.
"""

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class ReaderLimits:
    """
    Role-adjusted lending limits.

    ``daily_max`` is None when the reader has no daily cap (staff members).
    """

    session_max: int            # C
    daily_max: Optional[int]    # NCZ
    period_max: int             # NMC
    period_length_days: int     # PER
    domain_max: int             # D
    domain_window_months: int   # L
    extension_max: int          # LIM
    cooldown_days: int          # DELTA

    def __post_init__(self):
        for name in ("session_max", "period_max", "period_length_days", "domain_max",
                     "domain_window_months", "extension_max", "cooldown_days"):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} cannot be negative: {getattr(self, name)}")
        if self.daily_max is not None and self.daily_max < 0:
            raise ValueError(f"daily_max cannot be negative: {self.daily_max}")

    @property
    def has_daily_limit(self) -> bool:
        return self.daily_max is not None

    def allows_daily(self, count: int) -> bool:
        """Check a same-day loan count against the daily cap."""
        return self.daily_max is None or count <= self.daily_max
