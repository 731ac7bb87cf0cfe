"""Connection layer: configuration, engine construction and the registry.

Example:
    >>> from dboperator.dbx import ConnectionRegistry, DBConfig
    >>> registry = ConnectionRegistry()
    >>> registry.init_config(DBConfig(db_name="main", db_type="postgres",
    ...                               host="localhost", database="app"))
    >>> registry.ping("main")
"""

from dboperator.dbx.config import DBConfig
from dboperator.dbx.engine import EngineFactory, create_db_engine, ping_engine
from dboperator.dbx.registry import (
    ConnectionRegistry,
    DBHandle,
    close,
    default_registry,
    get_config,
    get_db,
    init_config,
    ping,
)

__all__ = [
    "ConnectionRegistry",
    "DBConfig",
    "DBHandle",
    "EngineFactory",
    "close",
    "create_db_engine",
    "default_registry",
    "get_config",
    "get_db",
    "init_config",
    "ping",
    "ping_engine",
]
