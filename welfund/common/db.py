"""Engine and session factory for the shared welfund database."""

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import DeclarativeBase, sessionmaker

from welfund.common.config import settings


def build_engine(database_url: str) -> Engine:
    """Postgres in deployments; SQLite for local runs and the test suite.

    SQLite needs foreign keys switched on per connection, and FastAPI runs sync
    handlers on a thread pool, so the same-thread check is disabled.
    """

    if make_url(database_url).get_backend_name() != "sqlite":
        return create_engine(database_url, pool_pre_ping=True)

    sqlite_engine = create_engine(database_url, connect_args={"check_same_thread": False})

    @event.listens_for(sqlite_engine, "connect")
    def _enable_foreign_keys(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    return sqlite_engine


engine = build_engine(settings.database_url)
# Payment and ledger rows are returned to handlers after commit.
SessionLocal = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


class Base(DeclarativeBase):
    pass
