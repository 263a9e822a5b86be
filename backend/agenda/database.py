from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker

from .config import settings
from .models.generated import Base


def make_engine(url: str, **kwargs) -> Engine:
    """Create an engine; sqlite gets cross-thread access and FK enforcement."""
    if url.startswith("sqlite"):
        # check_same_thread=False — sessions are opened from worker threads
        kwargs.setdefault("connect_args", {"check_same_thread": False})

    eng = create_engine(url, **kwargs)

    if url.startswith("sqlite"):
        @event.listens_for(eng, "connect")
        def enable_sqlite_fk(dbapi_connection, _):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

    return eng


engine = make_engine(settings.resolved_database_url)

SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
)


def init_db(bind: Engine | None = None) -> None:
    """Create missing tables (slots, bookings, providers)."""
    Base.metadata.create_all(bind=bind or engine)
