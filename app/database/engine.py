"""
Database engine configuration.
"""
import logging
from typing import Any, Dict, Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.pool import StaticPool

from app.services.config_service import config_service

logger = logging.getLogger("app.database")

DEFAULT_DB_URL = "sqlite:///./answerscope.db"


def engine_options(database_url: str) -> Dict[str, Any]:
    """
    Backend-specific keyword arguments for create_engine.

    SQLite connections may be shared across threads; an in-memory SQLite
    database must also live on a single connection or every new connection
    would see an empty database. Server databases get a connection pool.
    """
    url = make_url(database_url)
    if url.get_backend_name() == "sqlite":
        options: Dict[str, Any] = {"connect_args": {"check_same_thread": False}}
        if url.database in (None, "", ":memory:"):
            options["poolclass"] = StaticPool
        return options

    return {
        "pool_size": config_service.get_int("DB_POOL_SIZE", 10),
        "max_overflow": 20,
        "pool_pre_ping": True,
        "pool_recycle": 3600,
    }


def create_database_engine(database_url: Optional[str] = None) -> Engine:
    """
    Create the SQLAlchemy engine for the record store.

    Args:
        database_url: Database URL, defaults to the DB_URL setting

    Returns:
        Configured SQLAlchemy engine
    """
    if database_url is None:
        database_url = config_service.get_setting("DB_URL", DEFAULT_DB_URL)
    echo = str(config_service.get_setting("DB_ECHO", "false")).lower() == "true"

    logger.info(f"Creating database engine: backend={make_url(database_url).get_backend_name()}")
    return create_engine(database_url, echo=echo, **engine_options(database_url))


engine = create_database_engine()
