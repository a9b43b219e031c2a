"""
core/database.py -- SQLAlchemy Engine factory shared by the auth and posts stores.

Both repositories may point at the same database URL; each creates its own
tables with metadata.create_all() and owns its own Engine.

Layer rule: core/ is the kernel. No imports from api/, auth/, or posts/.
"""

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine


def _set_sqlite_pragmas(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode and a busy timeout on every new connection.

    WAL lets readers proceed while a writer holds the lock; the busy timeout
    makes a second writer wait instead of failing immediately. Set
    per-connection because SQLite PRAGMAs are not inherited from the pool.
    """
    dbapi_conn.execute("PRAGMA journal_mode=WAL")
    dbapi_conn.execute("PRAGMA busy_timeout=5000")


def make_engine(db_url: str) -> Engine:
    """Create an Engine, applying the SQLite connection settings when relevant."""
    connect_args: dict = {}
    if db_url.startswith("sqlite"):
        # FastAPI runs sync handlers in a thread pool, so one pooled
        # connection may be used from several threads over its lifetime.
        connect_args["check_same_thread"] = False
    engine = create_engine(db_url, connect_args=connect_args)
    if db_url.startswith("sqlite"):
        event.listen(engine, "connect", _set_sqlite_pragmas)
    return engine
