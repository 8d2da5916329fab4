"""
Lending Policy Configuration

Named numeric thresholds of the lending policy and the pure derivation of the
limits that apply to a single reader.

Values come from the ``settings`` table (see ConfigurationService), fall back
to PolicyDefaults, and can be overridden per process with environment
variables named ``LIBRARY_POLICY_<FIELD>`` (e.g. LIBRARY_POLICY_MAX_BOOKS_PER_DAY).
"""
import os
import logging
from typing import Dict, Mapping

from pydantic import BaseModel, ConfigDict, Field, ValidationError as PydanticValidationError

from constants import POLICY_SETTING_FIELDS, PolicyDefaults
from domain.value_objects.reader_limits import ReaderLimits
from exceptions import ConfigurationError

logger = logging.getLogger(__name__)

ENV_PREFIX = "LIBRARY_POLICY_"


class PolicyConfiguration(BaseModel):
    """Process-wide lending thresholds (read-only once loaded)."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    max_domains_per_book: int = Field(PolicyDefaults.MAX_DOMAINS_PER_BOOK, gt=0)      # DOMENII
    max_books_per_period: int = Field(PolicyDefaults.MAX_BOOKS_PER_PERIOD, gt=0)      # NMC
    borrowing_period_days: int = Field(PolicyDefaults.BORROWING_PERIOD_DAYS, gt=0)    # PER
    max_books_per_session: int = Field(PolicyDefaults.MAX_BOOKS_PER_SESSION, gt=0)    # C
    max_books_per_domain: int = Field(PolicyDefaults.MAX_BOOKS_PER_DOMAIN, gt=0)      # D
    domain_window_months: int = Field(PolicyDefaults.DOMAIN_WINDOW_MONTHS, gt=0)      # L
    max_extension_days: int = Field(PolicyDefaults.MAX_EXTENSION_DAYS, ge=0)          # LIM
    reborrow_cooldown_days: int = Field(PolicyDefaults.REBORROW_COOLDOWN_DAYS, ge=0)  # DELTA
    max_books_per_day: int = Field(PolicyDefaults.MAX_BOOKS_PER_DAY, gt=0)            # NCZ
    staff_daily_lending_cap: int = Field(PolicyDefaults.STAFF_DAILY_LENDING_CAP, gt=0)  # PERSIMP

    @classmethod
    def from_settings(cls, settings: Mapping[str, str]) -> "PolicyConfiguration":
        """
        Build a configuration from setting key -> value pairs.

        Unknown keys are ignored; missing keys keep their defaults.

        Raises:
            ConfigurationError: If a value is not a valid threshold
        """
        values: Dict[str, str] = {}
        for key, field_name in POLICY_SETTING_FIELDS.items():
            if key in settings and settings[key] not in (None, ""):
                values[field_name] = settings[key]
        return cls.from_values(values)

    @classmethod
    def from_values(cls, values: Mapping[str, object]) -> "PolicyConfiguration":
        try:
            return cls(**values)
        except PydanticValidationError as e:
            invalid = sorted({str(err["loc"][0]) for err in e.errors() if err.get("loc")})
            raise ConfigurationError(
                f"Invalid lending policy configuration: {', '.join(invalid) or e}",
                invalid_keys=invalid,
            ) from e

    def with_overrides(self, overrides: Mapping[str, object]) -> "PolicyConfiguration":
        if not overrides:
            return self
        merged = self.model_dump()
        merged.update(overrides)
        return PolicyConfiguration.from_values(merged)


def env_overrides(environ: Mapping[str, str] | None = None) -> Dict[str, str]:
    """Collect LIBRARY_POLICY_* overrides from the environment."""
    environ = os.environ if environ is None else environ
    overrides = {}
    for field_name in PolicyConfiguration.model_fields:
        value = environ.get(f"{ENV_PREFIX}{field_name.upper()}")
        if value:
            overrides[field_name] = value
    if overrides:
        logger.info(f"Lending policy overridden from environment: {sorted(overrides)}")
    return overrides


def limits_for(config: PolicyConfiguration, is_employee: bool) -> ReaderLimits:
    """
    Derive the limits for a reader.

    Regular readers get the base configuration. Staff get the session,
    per-domain, per-period and extension caps doubled, the cooldown and the
    period length halved (integer division, so 15 -> 7) and no daily cap.
    """
    if is_employee:
        return ReaderLimits(
            session_max=config.max_books_per_session * 2,
            daily_max=None,
            period_max=config.max_books_per_period * 2,
            period_length_days=config.borrowing_period_days // 2,
            domain_max=config.max_books_per_domain * 2,
            domain_window_months=config.domain_window_months,
            extension_max=config.max_extension_days * 2,
            cooldown_days=config.reborrow_cooldown_days // 2,
        )

    return ReaderLimits(
        session_max=config.max_books_per_session,
        daily_max=config.max_books_per_day,
        period_max=config.max_books_per_period,
        period_length_days=config.borrowing_period_days,
        domain_max=config.max_books_per_domain,
        domain_window_months=config.domain_window_months,
        extension_max=config.max_extension_days,
        cooldown_days=config.reborrow_cooldown_days,
    )
