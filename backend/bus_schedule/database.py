import logging
import shutil
import threading
from pathlib import Path
from typing import Optional

from sqlalchemy import create_engine, inspect
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import declarative_base, sessionmaker

from .config import settings

logger = logging.getLogger(__name__)

SCHEDULE_TABLE = "schedule"

Base = declarative_base()

_engine: Optional[Engine] = None
_session_factory: Optional[sessionmaker] = None
_lock = threading.Lock()


class StoreUnavailableError(RuntimeError):
    """The schedule database could not be opened."""


def _sqlite_file(database_url: str) -> Optional[Path]:
    """Path of a file-backed SQLite database, or None for anything else."""
    url = make_url(database_url)
    if url.get_backend_name() != "sqlite":
        return None
    if not url.database or url.database == ":memory:":
        return None
    return Path(url.database)


def _install_asset(db_file: Path) -> None:
    """Copy the bundled database into place if nothing is there yet."""
    if db_file.exists():
        return
    asset = Path(settings.database_asset) if settings.database_asset else None
    if asset is None or not asset.is_file():
        raise StoreUnavailableError(
            f"Schedule database {db_file} does not exist and no bundled asset is available"
        )
    db_file.parent.mkdir(parents=True, exist_ok=True)
    shutil.copyfile(asset, db_file)
    logger.info("Installed schedule database from asset %s to %s", asset, db_file)


def _open_engine(database_url: str) -> Engine:
    # SQLite needs check_same_thread=False since queries run on worker threads
    connect_args = {}
    if database_url.startswith("sqlite"):
        connect_args = {"check_same_thread": False}

    db_file = _sqlite_file(database_url)
    if db_file is not None:
        _install_asset(db_file)

    engine = create_engine(database_url, echo=False, connect_args=connect_args)
    try:
        tables = inspect(engine).get_table_names()
    except SQLAlchemyError as e:
        engine.dispose()
        raise StoreUnavailableError(f"Cannot open schedule database: {e}") from e

    if SCHEDULE_TABLE not in tables:
        engine.dispose()
        raise StoreUnavailableError(f"Schedule database has no '{SCHEDULE_TABLE}' table")

    logger.info("Opened schedule database %s", engine.url.render_as_string(hide_password=True))
    return engine


def get_engine() -> Engine:
    """Return the process-wide engine, opening it on first use."""
    global _engine, _session_factory
    if _engine is None:
        with _lock:
            if _engine is None:
                engine = _open_engine(settings.database_url)
                _session_factory = sessionmaker(autocommit=False, autoflush=False, bind=engine)
                _engine = engine
    return _engine


def get_session_factory() -> sessionmaker:
    get_engine()
    return _session_factory


def reset_engine() -> None:
    """Dispose the engine so the next access opens the store again."""
    global _engine, _session_factory
    with _lock:
        if _engine is not None:
            _engine.dispose()
        _engine = None
        _session_factory = None


def get_db():
    """Dependency for getting database session"""
    db = get_session_factory()()
    try:
        yield db
    finally:
        db.close()
