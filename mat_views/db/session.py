"""Engine construction shared by repositories and DDL services."""

from sqlalchemy import Engine, create_engine
from sqlalchemy.engine import make_url

DEFAULT_APPLICATION_NAME = "mat-views"


def db_create_engine(database_url: str, application_name: str = DEFAULT_APPLICATION_NAME) -> Engine:
    """Create the PostgreSQL engine used for catalog reads, DDL and run bookkeeping.

    Connections are tagged with `application_name` so lifecycle sessions are
    visible in `pg_stat_activity` while a long refresh holds its locks.

    Args:
        database_url: SQLAlchemy PostgreSQL URL.
        application_name: Name reported to the server for each connection.

    Returns:
        Engine: Configured SQLAlchemy engine.

    Raises:
        ValueError: Raised when the URL is blank or does not target PostgreSQL.
    """

    if not database_url.strip():
        raise ValueError("database_url must not be blank")
    if make_url(database_url).get_backend_name() != "postgresql":
        raise ValueError("database_url must point to a PostgreSQL database")

    return create_engine(
        database_url,
        pool_pre_ping=True,
        connect_args={"application_name": application_name},
    )
