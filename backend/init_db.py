from database import engine, Base, SessionLocal
from services.configuration_service import ConfigurationService
from pathlib import Path
from utils.logging_utils import configure_logging
from sqlalchemy.orm import sessionmaker
import logging
import os

import models  # noqa: F401  (registers the tables on Base.metadata)

logger = logging.getLogger(__name__)


def _ensure_sqlite_directory(bind) -> None:
    """Create the folder of a file-based SQLite database"""
    if bind.url.get_backend_name() != "sqlite":
        return
    database = bind.url.database
    if database and database != ":memory:":
        Path(database).expanduser().parent.mkdir(parents=True, exist_ok=True)


def init_database(bind=None) -> int:
    """
    Create all tables and insert the default lending policy settings.

    Existing settings are left untouched, so running it again is safe.

    Args:
        bind: Engine to initialize (defaults to the application engine)

    Returns:
        Number of settings created
    """
    bind = bind or engine
    _ensure_sqlite_directory(bind)
    Base.metadata.create_all(bind=bind)

    session_factory = SessionLocal if bind is engine else sessionmaker(bind=bind)
    db = session_factory()
    try:
        created = ConfigurationService.seed_default_settings(db)
        logger.info(f"Database initialized ({created} default settings added)")
        return created
    finally:
        db.close()


def main(bind=None, log_file=None) -> int:
    """Command-line entry point: set up logging, then initialize the database."""
    configure_logging(log_file=log_file or os.environ.get("LIBRARY_LOG_FILE"))
    return init_database(bind)


if __name__ == "__main__":
    main()
