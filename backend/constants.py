"""
Application-wide constants and configuration keys.

This module centralizes the setting keys, policy defaults and rule names used
throughout the lending backend.
"""
from enum import Enum


class PolicyRule(str, Enum):
    """
    Names of the lending rules a request can violate.

    The value is stored in ``PolicyViolation.rule`` so callers can branch on
    the specific rule without parsing messages.
    """

    BOOK_NOT_BORROWABLE = 'BOOK_NOT_BORROWABLE'    # every copy is reading-room only
    INSUFFICIENT_COPIES = 'INSUFFICIENT_COPIES'    # 10% circulating reserve reached
    SESSION_LIMIT = 'SESSION_LIMIT'                # C
    DOMAIN_DIVERSITY = 'DOMAIN_DIVERSITY'          # >= 3 books need >= 2 domains
    DAILY_LIMIT = 'DAILY_LIMIT'                    # NCZ
    PERIOD_LIMIT = 'PERIOD_LIMIT'                  # NMC within PER days
    DOMAIN_LIMIT = 'DOMAIN_LIMIT'                  # D within L months
    REBORROW_COOLDOWN = 'REBORROW_COOLDOWN'        # DELTA
    EXTENSION_LIMIT = 'EXTENSION_LIMIT'            # LIM within 3 months
    STAFF_LENDING_LIMIT = 'STAFF_LENDING_LIMIT'    # PERSIMP
    LOAN_OVERDUE = 'LOAN_OVERDUE'                  # extension after the due date


class EntityType:
    """Entity names used in error details and log context"""

    BOOK = "Book"
    DOMAIN = "Domain"
    READER = "Reader"
    AUTHOR = "Author"
    LOAN = "Loan"
    EXTENSION = "Extension"


class SettingKeys:
    """Database setting keys used for the lending policy"""

    MAX_DOMAINS_PER_BOOK = "policy_max_domains_per_book"        # DOMENII
    MAX_BOOKS_PER_PERIOD = "policy_max_books_per_period"        # NMC
    BORROWING_PERIOD_DAYS = "policy_borrowing_period_days"      # PER
    MAX_BOOKS_PER_SESSION = "policy_max_books_per_session"      # C
    MAX_BOOKS_PER_DOMAIN = "policy_max_books_per_domain"        # D
    DOMAIN_WINDOW_MONTHS = "policy_domain_window_months"        # L
    MAX_EXTENSION_DAYS = "policy_max_extension_days"            # LIM
    REBORROW_COOLDOWN_DAYS = "policy_reborrow_cooldown_days"    # DELTA
    MAX_BOOKS_PER_DAY = "policy_max_books_per_day"              # NCZ
    STAFF_DAILY_LENDING_CAP = "policy_staff_daily_lending_cap"  # PERSIMP


# Setting key -> PolicyConfiguration field name
POLICY_SETTING_FIELDS = {
    SettingKeys.MAX_DOMAINS_PER_BOOK: "max_domains_per_book",
    SettingKeys.MAX_BOOKS_PER_PERIOD: "max_books_per_period",
    SettingKeys.BORROWING_PERIOD_DAYS: "borrowing_period_days",
    SettingKeys.MAX_BOOKS_PER_SESSION: "max_books_per_session",
    SettingKeys.MAX_BOOKS_PER_DOMAIN: "max_books_per_domain",
    SettingKeys.DOMAIN_WINDOW_MONTHS: "domain_window_months",
    SettingKeys.MAX_EXTENSION_DAYS: "max_extension_days",
    SettingKeys.REBORROW_COOLDOWN_DAYS: "reborrow_cooldown_days",
    SettingKeys.MAX_BOOKS_PER_DAY: "max_books_per_day",
    SettingKeys.STAFF_DAILY_LENDING_CAP: "staff_daily_lending_cap",
}


class PolicyDefaults:
    """Default values for the lending policy thresholds"""

    MAX_DOMAINS_PER_BOOK = 3
    MAX_BOOKS_PER_PERIOD = 10
    BORROWING_PERIOD_DAYS = 30
    MAX_BOOKS_PER_SESSION = 5
    MAX_BOOKS_PER_DOMAIN = 3
    DOMAIN_WINDOW_MONTHS = 6
    MAX_EXTENSION_DAYS = 30
    REBORROW_COOLDOWN_DAYS = 14
    MAX_BOOKS_PER_DAY = 6
    STAFF_DAILY_LENDING_CAP = 20

    @classmethod
    def as_settings(cls) -> dict:
        """Default policy as a setting key -> string value mapping"""
        return {
            SettingKeys.MAX_DOMAINS_PER_BOOK: str(cls.MAX_DOMAINS_PER_BOOK),
            SettingKeys.MAX_BOOKS_PER_PERIOD: str(cls.MAX_BOOKS_PER_PERIOD),
            SettingKeys.BORROWING_PERIOD_DAYS: str(cls.BORROWING_PERIOD_DAYS),
            SettingKeys.MAX_BOOKS_PER_SESSION: str(cls.MAX_BOOKS_PER_SESSION),
            SettingKeys.MAX_BOOKS_PER_DOMAIN: str(cls.MAX_BOOKS_PER_DOMAIN),
            SettingKeys.DOMAIN_WINDOW_MONTHS: str(cls.DOMAIN_WINDOW_MONTHS),
            SettingKeys.MAX_EXTENSION_DAYS: str(cls.MAX_EXTENSION_DAYS),
            SettingKeys.REBORROW_COOLDOWN_DAYS: str(cls.REBORROW_COOLDOWN_DAYS),
            SettingKeys.MAX_BOOKS_PER_DAY: str(cls.MAX_BOOKS_PER_DAY),
            SettingKeys.STAFF_DAILY_LENDING_CAP: str(cls.STAFF_DAILY_LENDING_CAP),
        }


class LendingDefaults:
    """Fixed lending parameters that are not part of the configurable policy"""

    LOAN_PERIOD_DAYS = 14
    MIN_EXTENSION_DAYS = 1
    MAX_EXTENSION_DAYS_PER_REQUEST = 90
    EXTENSION_WINDOW_MONTHS = 3
    AVAILABILITY_RESERVE_PERCENT = 10   # circulating stock kept on the shelf
    DOMAIN_DIVERSITY_MIN_BOOKS = 3
    DOMAIN_DIVERSITY_MIN_DOMAINS = 2
    COMMIT_ATTEMPTS = 3                 # total tries for a commit that lost a race


class FieldLimits:
    """Length and range limits for catalog and reader fields"""

    DOMAIN_NAME_MIN = 5
    DOMAIN_NAME_MAX = 50
    BOOK_TITLE_MIN = 5
    BOOK_TITLE_MAX = 50
    PERSON_NAME_MIN = 2
    PERSON_NAME_MAX = 50
    ADDRESS_MIN = 5
    ADDRESS_MAX = 200
    EMAIL_MAX = 100
    PHONE_MAX = 20
    PUBLISHER_MIN = 5
    PUBLISHER_MAX = 50
    EDITION_TYPE_MIN = 5
    EDITION_TYPE_MAX = 50
    MIN_PAGES = 3
    MIN_YEAR = 1400
    MAX_YEAR = 2100
