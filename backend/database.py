from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker, declarative_base
from pathlib import Path
import os

# Database location (override with LIBRARY_DATABASE_URL)
DB_PATH = Path.home() / ".library-lending" / "library.db"
DATABASE_URL = os.environ.get("LIBRARY_DATABASE_URL", f"sqlite:///{DB_PATH}")

engine = create_engine(
    DATABASE_URL,
    connect_args={'check_same_thread': False} if DATABASE_URL.startswith("sqlite") else {},
    echo=False,
    pool_pre_ping=True,  # Verify connections are alive before using
    pool_recycle=3600  # Recycle connections after 1 hour to prevent stale connections
)


# Enable WAL mode and foreign keys on SQLite connections
@event.listens_for(engine, "connect")
def set_sqlite_pragma(dbapi_conn, connection_record):
    if not DATABASE_URL.startswith("sqlite"):
        return
    cursor = dbapi_conn.cursor()
    cursor.execute("PRAGMA journal_mode=WAL")
    cursor.execute("PRAGMA synchronous=NORMAL")
    cursor.execute("PRAGMA busy_timeout=5000")  # Wait up to 5s for locks instead of failing immediately
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


SessionLocal = sessionmaker(bind=engine)
Base = declarative_base()


def get_db():
    """Yield a session and always close it afterwards"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
