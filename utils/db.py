"""
Database utilities for SQL Server operations.

Provides engine creation, backend validation and connection management for
the synchronizer. Connections are opened in autocommit mode: every DDL
statement commits on its own.
"""

import logging
from contextlib import contextmanager
from typing import Iterator, Optional, Union

from sqlalchemy import create_engine
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import OperationalError
from tenacity import (
    before_sleep_log,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from utils.config import settings
from utils.errors import ConfigurationError, UnsupportedBackendError

logger = logging.getLogger(__name__)

SUPPORTED_DIALECTS = frozenset({"mssql"})

Bind = Union[Engine, Connection]


def get_engine(database_url: Optional[str] = None) -> Engine:
    """
    Create a SQLAlchemy engine for the configured database.

    Args:
        database_url: SQLAlchemy URL, defaults to settings.DATABASE_URL

    Returns:
        Engine with autocommit isolation

    Raises:
        ConfigurationError: If no URL is configured
    """
    url = database_url or settings.DATABASE_URL
    if not url:
        raise ConfigurationError("DATABASE_URL is not configured")

    return create_engine(
        url,
        isolation_level="AUTOCOMMIT",
        pool_pre_ping=True,
        connect_args=_connect_args(url),
    )


def _connect_args(url: str) -> dict:
    if "+pyodbc" in url:
        return {"timeout": settings.DB_CONNECT_TIMEOUT}
    return {}


def ensure_supported_backend(bind: Optional[Bind]) -> None:
    """
    Fail fast unless the bind targets SQL Server.

    Raises:
        ConfigurationError: If bind is None
        UnsupportedBackendError: If the dialect is not SQL Server
    """
    if bind is None:
        raise ConfigurationError("A database engine or connection is required")

    dialect = bind.dialect.name
    if dialect not in SUPPORTED_DIALECTS:
        raise UnsupportedBackendError(
            f"Database object synchronization is only supported for SQL Server databases (got '{dialect}')"
        )


def _open(engine: Engine) -> Connection:
    return engine.connect()


def connect(engine: Engine, attempts: Optional[int] = None) -> Connection:
    """
    Open a connection, retrying transient connection failures.

    Args:
        engine: Engine to connect with
        attempts: Total attempts, defaults to settings.DB_CONNECT_RETRIES

    Raises:
        sqlalchemy.exc.OperationalError: If every attempt fails
    """
    retrying = retry(
        retry=retry_if_exception_type(OperationalError),
        stop=stop_after_attempt(attempts or settings.DB_CONNECT_RETRIES),
        wait=wait_exponential(multiplier=1, min=1, max=10),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    )
    return retrying(_open)(engine)


@contextmanager
def get_conn(bind: Bind) -> Iterator[Connection]:
    """
    Scoped connection acquisition.

    An Engine gets a fresh connection that is closed on exit. An already-open
    Connection is yielded as-is and left open for its owner.
    """
    if isinstance(bind, Connection):
        if bind.closed:
            raise ConfigurationError("The supplied database connection is closed")
        yield bind
        return

    conn = connect(bind)
    try:
        yield conn
    finally:
        conn.close()
        logger.debug("Database connection closed")
