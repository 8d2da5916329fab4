import pytest
from pydantic import ValidationError as PydanticValidationError

from config.policy_config import PolicyConfiguration, env_overrides, limits_for
from constants import PolicyDefaults, SettingKeys
from exceptions import ConfigurationError
from models import Setting
from services.configuration_service import ConfigurationService


def test_defaults():
    config = PolicyConfiguration()

    assert config.max_books_per_session == PolicyDefaults.MAX_BOOKS_PER_SESSION
    assert config.reborrow_cooldown_days == PolicyDefaults.REBORROW_COOLDOWN_DAYS
    assert config.staff_daily_lending_cap == PolicyDefaults.STAFF_DAILY_LENDING_CAP


def test_regular_reader_gets_base_limits():
    config = PolicyConfiguration()
    limits = limits_for(config, is_employee=False)

    assert limits.session_max == config.max_books_per_session
    assert limits.daily_max == config.max_books_per_day
    assert limits.period_max == config.max_books_per_period
    assert limits.period_length_days == config.borrowing_period_days
    assert limits.domain_max == config.max_books_per_domain
    assert limits.extension_max == config.max_extension_days
    assert limits.cooldown_days == config.reborrow_cooldown_days


def test_staff_limits_double_caps_and_halve_windows():
    config = PolicyConfiguration(reborrow_cooldown_days=14, borrowing_period_days=30)
    limits = limits_for(config, is_employee=True)

    assert limits.session_max == 2 * config.max_books_per_session
    assert limits.period_max == 2 * config.max_books_per_period
    assert limits.domain_max == 2 * config.max_books_per_domain
    assert limits.extension_max == 2 * config.max_extension_days
    assert limits.cooldown_days == 7
    assert limits.period_length_days == 15
    assert limits.domain_window_months == config.domain_window_months
    assert limits.daily_max is None
    assert not limits.has_daily_limit


def test_staff_halving_truncates():
    config = PolicyConfiguration(reborrow_cooldown_days=15, borrowing_period_days=31)
    limits = limits_for(config, is_employee=True)

    assert limits.cooldown_days == 7
    assert limits.period_length_days == 15


def test_invalid_threshold_raises_configuration_error():
    with pytest.raises(ConfigurationError) as exc_info:
        PolicyConfiguration.from_values({"max_books_per_session": 0})

    assert exc_info.value.details["invalid_keys"] == ["max_books_per_session"]


def test_configuration_is_read_only():
    config = PolicyConfiguration()

    with pytest.raises(PydanticValidationError):
        config.max_books_per_session = 99


def test_from_settings_ignores_unknown_and_blank_keys():
    config = PolicyConfiguration.from_settings({
        SettingKeys.MAX_BOOKS_PER_DAY: "4",
        SettingKeys.MAX_BOOKS_PER_SESSION: "",
        "opening_hours": "ignored",
    })

    assert config.max_books_per_day == 4
    assert config.max_books_per_session == PolicyDefaults.MAX_BOOKS_PER_SESSION


def test_env_overrides_use_field_names():
    overrides = env_overrides({"LIBRARY_POLICY_MAX_BOOKS_PER_DAY": "2", "UNRELATED": "1"})

    assert overrides == {"max_books_per_day": "2"}


def test_service_layers_settings_environment_and_overrides(db_session):
    db_session.add(Setting(key=SettingKeys.MAX_BOOKS_PER_DAY, value="4"))
    db_session.add(Setting(key=SettingKeys.MAX_BOOKS_PER_PERIOD, value="8"))
    db_session.commit()

    service = ConfigurationService(
        db_session,
        overrides={"max_books_per_session": 2},
        environ={"LIBRARY_POLICY_MAX_BOOKS_PER_PERIOD": "12"},
    )
    config = service.get_configuration()

    assert config.max_books_per_day == 4
    assert config.max_books_per_period == 12
    assert config.max_books_per_session == 2


def test_service_loads_configuration_once(db_session):
    service = ConfigurationService(db_session, environ={})
    first = service.get_configuration()

    ConfigurationService.save_setting(db_session, SettingKeys.MAX_BOOKS_PER_DAY, 1)

    assert service.get_configuration() is first
    assert ConfigurationService(db_session, environ={}).get_configuration().max_books_per_day == 1


def test_save_setting_validates(db_session):
    with pytest.raises(ConfigurationError):
        ConfigurationService.save_setting(db_session, SettingKeys.MAX_BOOKS_PER_DAY, -3)
    with pytest.raises(ConfigurationError):
        ConfigurationService.save_setting(db_session, "policy_unknown", 3)


def test_reader_limits_follow_role(db_session, catalog):
    service = ConfigurationService(db_session, environ={})
    member = catalog.reader()
    staff = catalog.reader(employee=True)

    assert service.get_reader_limits(member).daily_max == PolicyDefaults.MAX_BOOKS_PER_DAY
    assert service.get_reader_limits(staff).daily_max is None
