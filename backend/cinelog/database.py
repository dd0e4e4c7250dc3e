"""Engine, session factory and the store primitives the services rely on.

Storage contract: the backing database must offer an atomic
insert-or-update keyed by a unique constraint
(``INSERT ... ON CONFLICT ... DO UPDATE / DO NOTHING ... RETURNING``) and
must report unique violations as ``IntegrityError``. The movie reconciler and
the watchlist/favourites upserts depend on this for race safety; there is no
application-level lock. PostgreSQL (production) and SQLite (tests) both
qualify.
"""

from sqlalchemy import create_engine, event
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from .config import Settings
from .errors import ConfigurationError


def build_engine(url: str, **kwargs):
    if url.startswith("sqlite"):
        kwargs.setdefault("connect_args", {"check_same_thread": False})
    engine = create_engine(url, future=True, **kwargs)

    if engine.dialect.name == "sqlite":
        @event.listens_for(engine, "connect")
        def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

    return engine


engine = build_engine(Settings.DATABASE_URL)

SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
    future=True,
)

Base = declarative_base()


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def upsert_insert(db: Session, model):
    """Return a dialect ``insert`` construct that supports ``on_conflict_*``."""
    dialect = db.get_bind().dialect.name
    if dialect == "postgresql":
        return postgresql.insert(model)
    if dialect == "sqlite":
        return sqlite.insert(model)
    raise ConfigurationError(f"Unsupported database dialect for upserts: {dialect}")
