"""
Configuration Service

Loads the lending policy thresholds once from the settings table, applies
environment and explicit overrides, and derives per-reader limits on demand.
"""
from typing import Dict, Mapping, Optional
import logging

from sqlalchemy.orm import Session

from config.policy_config import PolicyConfiguration, env_overrides, limits_for
from constants import POLICY_SETTING_FIELDS, PolicyDefaults
from domain.value_objects.reader_limits import ReaderLimits
from exceptions import ConfigurationError
from models import Setting
from services.interfaces import IConfigurationProvider

logger = logging.getLogger(__name__)


class ConfigurationService(IConfigurationProvider):
    """
    Process-wide source of the lending policy.

    Precedence, lowest first: PolicyDefaults, the ``settings`` table,
    ``LIBRARY_POLICY_*`` environment variables, explicit overrides. The merged
    configuration is validated and cached on first use and never changes
    afterwards; ReaderLimits are derived from it fresh on every call.
    """

    def __init__(
        self,
        db: Session,
        overrides: Optional[Mapping[str, object]] = None,
        environ: Optional[Mapping[str, str]] = None,
    ):
        """
        Args:
            db: Database session used to read the settings table
            overrides: Field name -> value, applied last (tests, embedding hosts)
            environ: Environment mapping (defaults to os.environ)
        """
        self.db = db
        self._overrides = dict(overrides or {})
        self._environ = environ
        self._configuration: Optional[PolicyConfiguration] = None

    def _stored_settings(self) -> Dict[str, str]:
        rows = self.db.query(Setting).filter(
            Setting.key.in_(list(POLICY_SETTING_FIELDS))
        ).all()
        return {row.key: row.value for row in rows}

    def get_configuration(self) -> PolicyConfiguration:
        """
        Raises:
            ConfigurationError: If a stored or overridden value is invalid
        """
        if self._configuration is None:
            configuration = PolicyConfiguration.from_settings(self._stored_settings())
            configuration = configuration.with_overrides(env_overrides(self._environ))
            configuration = configuration.with_overrides(self._overrides)
            self._configuration = configuration
            logger.info(f"Lending policy loaded: {configuration.model_dump()}")
        return self._configuration

    def get_reader_limits(self, reader) -> ReaderLimits:
        return limits_for(self.get_configuration(), bool(reader.is_employee))

    @staticmethod
    def save_setting(db: Session, key: str, value) -> Setting:
        """
        Store a policy threshold in the settings table.

        The value is validated before it is written. Running services keep the
        configuration they already loaded.

        Raises:
            ConfigurationError: If the key is unknown or the value invalid
        """
        field_name = POLICY_SETTING_FIELDS.get(key)
        if field_name is None:
            raise ConfigurationError(f"Unknown policy setting: {key}", invalid_keys=[key])

        PolicyConfiguration.from_values({field_name: value})

        setting = db.query(Setting).filter(Setting.key == key).first()
        if setting:
            setting.value = str(value)
        else:
            setting = Setting(key=key, value=str(value))
            db.add(setting)
        db.commit()
        logger.info(f"Policy setting {key} set to {value}")
        return setting

    @staticmethod
    def seed_default_settings(db: Session) -> int:
        """
        Insert default thresholds for every policy key that has no row yet.

        Returns:
            Number of settings created
        """
        existing = {row.key for row in db.query(Setting.key).all()}
        created = 0
        for key, value in PolicyDefaults.as_settings().items():
            if key not in existing:
                db.add(Setting(key=key, value=value))
                created += 1
        if created:
            db.commit()
            logger.info(f"Seeded {created} default policy settings")
        return created
