"""SQLAlchemy engine construction and health checks.

SQLAlchemy owns connection pooling, the DBAPI drivers and statement
execution. This module is the only place that creates engines, so tests can
swap it out through ``ConnectionRegistry(engine_factory=...)``.

The DBAPI driver for each dialect is an optional dependency:
    pip install db-operator[postgres]
"""

from typing import Callable, Dict, Tuple

from sqlalchemy import create_engine, literal_column, select
from sqlalchemy.engine import Engine, make_url

from dboperator.dbx.config import DBConfig
from dboperator.errors import InvalidConfigError
from dboperator.global_models import DBType

EngineFactory = Callable[[DBConfig], Engine]

# SQLAlchemy backend names a DSN may use for each dialect
BACKEND_NAMES: Dict[DBType, Tuple[str, ...]] = {
    DBType.MYSQL: ("mysql", "mariadb"),
    DBType.POSTGRES: ("postgresql",),
    DBType.ORACLE: ("oracle",),
    DBType.SQLSERVER: ("mssql",),
}


def create_db_engine(config: DBConfig) -> Engine:
    """Create a pooled engine for a configuration.

    Pool limits map onto SQLAlchemy's QueuePool: idle connections are kept
    up to ``max_idle_conn`` and up to ``max_open_conn`` may be open at once.

    Args:
        config: Configuration with pool defaults already applied.

    Returns:
        A lazily connecting SQLAlchemy Engine.

    Raises:
        InvalidConfigError: If the DSN names a backend other than
            ``config.db_type``.
    """
    dsn = config.resolve_dsn()
    backend = make_url(dsn).get_backend_name()
    expected = BACKEND_NAMES[DBType.parse(config.db_type)]
    if backend not in expected:
        raise InvalidConfigError(
            f"DSN for '{config.db_name}' uses backend '{backend}', "
            f"but db_type is '{config.db_type}'"
        )

    max_overflow = max(config.max_open_conn - config.max_idle_conn, 0)
    return create_engine(
        dsn,
        pool_size=config.max_idle_conn,
        max_overflow=max_overflow,
        pool_recycle=int(config.conn_max_lifetime.total_seconds()),
    )


def ping_engine(engine: Engine) -> None:
    """Check out a connection and run a trivial query.

    The select is compiled per dialect, so Oracle gets ``FROM DUAL``.
    Driver exceptions propagate to the caller.
    """
    with engine.connect() as conn:
        conn.execute(select(literal_column("1")))
