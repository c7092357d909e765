"""
Database engine and sessions for the food alert pipeline.

The engine is built lazily from `PipelineConfig.database_url` the first time
a session is needed. Tests swap in their own engine with `set_engine`.
"""

from contextlib import contextmanager
from pathlib import Path
from typing import Generator, Optional

from sqlalchemy import Engine, create_engine, make_url
from sqlalchemy.orm import Session, sessionmaker

from food_alerts.config import load_config
from util.logging_util import setup_logger

logger = setup_logger(__name__)

# Seconds SQLite waits on a locked database before giving up
SQLITE_BUSY_TIMEOUT = 30

_engine: Optional[Engine] = None
_session_factory: Optional[sessionmaker] = None


def build_engine(database_url: str) -> Engine:
    """Create an engine for `database_url`.

    For file-backed SQLite the parent directory is created, so a fresh
    checkout can run the jobs without setting anything up first.
    """
    url = make_url(database_url)
    connect_args = {}
    if url.get_backend_name() == "sqlite":
        connect_args["timeout"] = SQLITE_BUSY_TIMEOUT
        if url.database and url.database != ":memory:":
            Path(url.database).expanduser().parent.mkdir(parents=True, exist_ok=True)

    logger.info(f"Connecting to {url.render_as_string(hide_password=True)}")
    return create_engine(url, connect_args=connect_args)


def _bind(engine: Engine):
    global _engine, _session_factory
    _engine = engine
    # Rows are converted to dataclasses before the session closes, so
    # nothing needs reloading after commit
    _session_factory = sessionmaker(bind=engine, expire_on_commit=False)


def get_engine() -> Engine:
    if _engine is None:
        _bind(build_engine(load_config().database_url))
    return _engine


def set_engine(engine: Engine) -> None:
    """Use `engine` for every following session (for testing)."""
    _bind(engine)


def reset_engine() -> None:
    """Drop the current engine; the next session rebuilds it from config."""
    global _engine, _session_factory
    if _engine is not None:
        _engine.dispose()
    _engine = None
    _session_factory = None


@contextmanager
def get_session() -> Generator[Session, None, None]:
    """Session that commits on success and rolls back on any exception.

    Usage:
        with get_session() as session:
            session.add(obj)
    """
    if _session_factory is None:
        get_engine()

    session = _session_factory()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
