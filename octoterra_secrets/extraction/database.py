"""Read-only access to the source Octopus SQL Server database.

Connections come from a small bounded SQLAlchemy pool so extraction never
exhausts the source server. Timeouts are enforced by the pymssql driver:
``login_timeout`` bounds connection validation and ``timeout`` bounds every
query, so a stuck table surfaces as a ConnectivityError instead of a hang.
"""

import logging
from typing import Any, Sequence

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Connection, Engine, URL
from sqlalchemy.exc import SQLAlchemyError

from octoterra_secrets.exceptions import ConnectivityError
from octoterra_secrets.extraction.models import DatabaseConnectionConfig

logger = logging.getLogger(__name__)

DRIVER_NAME = "mssql+pymssql"


def build_url(db_config: DatabaseConnectionConfig) -> URL:
    """Build the SQLAlchemy URL; credentials are escaped by SQLAlchemy."""
    return URL.create(
        DRIVER_NAME,
        username=db_config.user,
        password=db_config.password,
        host=db_config.server,
        port=db_config.port,
        database=db_config.database,
    )


def create_source_engine(db_config: DatabaseConnectionConfig) -> Engine:
    """Create a pooled engine for the source database.

    The pool holds at most ``pool_size`` connections, all of which may stay
    idle, and connections are never recycled by age.
    """
    return create_engine(
        build_url(db_config),
        pool_size=db_config.pool_size,
        max_overflow=0,
        pool_recycle=-1,
        pool_pre_ping=True,
        pool_timeout=db_config.login_timeout,
        connect_args={
            "login_timeout": db_config.login_timeout,
            "timeout": db_config.query_timeout,
        },
    )


def ping_database(engine: Engine) -> None:
    """Check the database is reachable before committing to a run.

    Raises:
        ConnectivityError: If no connection can be made or validated
    """
    try:
        with engine.connect() as connection:
            connection.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        raise ConnectivityError(
            f"Failed to connect to the Octopus database: {type(e).__name__}",
            details={"host": engine.url.host, "database": engine.url.database},
        ) from e
    logger.info(f"Connected to Octopus database {engine.url.database} on {engine.url.host}")


def fetch_rows(connection: Connection, query: str, table: str) -> Sequence[Any]:
    """Run one read-only table query and return all rows.

    Raises:
        ConnectivityError: If the query fails or times out
    """
    logger.debug(f"Querying {table}")
    try:
        return connection.execute(text(query)).fetchall()
    except SQLAlchemyError as e:
        raise ConnectivityError(
            f"Failed to query table {table}: {type(e).__name__}",
            details={"table": table},
        ) from e


def validate_database(db_config: DatabaseConnectionConfig) -> None:
    """Confirm the connection details are correct by pinging the database.

    Raises:
        ConnectivityError: If the database cannot be reached
    """
    engine = create_source_engine(db_config)
    try:
        ping_database(engine)
    finally:
        engine.dispose()
