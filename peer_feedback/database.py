from pathlib import Path

from sqlalchemy import create_engine
from sqlalchemy.engine import make_url
from sqlalchemy.orm import sessionmaker, declarative_base
from peer_feedback.core.config import settings

DATABASE_URL = settings.database_url

if DATABASE_URL.startswith("sqlite"):
    # SQLite is shared between FastAPI's worker threads
    engine = create_engine(
        DATABASE_URL, connect_args={"check_same_thread": False}
    )
else:
    engine = create_engine(DATABASE_URL)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def get_db():
    """
    Session Provider: Provides a database session per request.
    Transaction management is handled explicitly in the Service Layer.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def ensure_data_directory(url: str = DATABASE_URL) -> None:
    """Create the parent directory of a file-backed SQLite database."""
    parsed = make_url(url)
    if parsed.get_backend_name() != "sqlite":
        return
    database = parsed.database
    if not database or database == ":memory:":
        return
    Path(database).parent.mkdir(parents=True, exist_ok=True)


def init_db(bind=None):
    """
    Registers all domain models and initializes the database schema.
    Safe to call on every start: existing tables are left as they are.
    """
    # Import all models to ensure they are registered with Base.metadata before create_all
    from peer_feedback.models import feedback, ledger  # noqa: F401

    if bind is None:
        ensure_data_directory()
        bind = engine
    Base.metadata.create_all(bind=bind)
