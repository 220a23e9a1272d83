"""Short-lived database connectivity check.

SQLAlchemy Core with ``NullPool``: the engine opens exactly one
connection for ``SELECT 1`` and nothing is kept after the check.
"""

from __future__ import annotations

from typing import Any

from sqlalchemy import create_engine, make_url, text
from sqlalchemy.pool import NullPool


def verify_connection(url: str, *, connect_timeout: int | None = None) -> str:
    """Open a connection, run ``SELECT 1`` and close it.

    Returns the dialect name on success. Raises whatever the driver
    raises (``SQLAlchemyError`` subclasses, or ``ImportError`` when the
    DBAPI module is not installed).
    """
    parsed = make_url(url)
    connect_args: dict[str, Any] = {}
    # Only libpq accepts connect_timeout.
    if connect_timeout is not None and parsed.get_backend_name() == "postgresql":
        connect_args["connect_timeout"] = connect_timeout
    engine = create_engine(parsed, poolclass=NullPool, connect_args=connect_args)
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        return engine.dialect.name
    finally:
        engine.dispose()
