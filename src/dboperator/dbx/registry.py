"""Registry of pooled connections keyed by logical database name.

A ConnectionRegistry guarantees that at most one engine is ever opened per
logical name, even when ``init_config`` races on several threads. The module
also exposes a process-wide default registry and thin functions over it for
callers that do not need isolation.

Example:
    >>> from dboperator.dbx import DBConfig, init_config, ping
    >>> init_config(DBConfig(db_name="main", db_type="postgres",
    ...                      dsn="postgresql+psycopg://app@localhost/app"))
    >>> ping("main")
"""

import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Dict, Iterator, List, Optional

from sqlalchemy.engine import Engine

from dboperator.dbx.config import DBConfig
from dboperator.dbx.engine import EngineFactory, create_db_engine, ping_engine
from dboperator.errors import (
    DBConnectionError,
    DBOperatorError,
    InvalidArgumentError,
    InvalidConfigError,
    NotFoundError,
)
from dboperator.global_models import DBType

logger = logging.getLogger(__name__)


class _NameLock:
    __slots__ = ("lock", "users")

    def __init__(self) -> None:
        self.lock = threading.Lock()
        self.users = 0


@dataclass(frozen=True)
class DBHandle:
    """A pooled engine together with the configuration it was built from."""

    engine: Engine
    config: DBConfig


class ConnectionRegistry:
    """Thread-safe mapping from logical database name to DBHandle.

    Lookups and inserts are guarded by one lock; opening an engine is
    serialized per name so concurrent first calls for the same name open
    exactly one engine, while different names open in parallel.

    ``close`` is not transactionally fenced against concurrent users: a
    query already running on the closed engine is not waited for.
    """

    def __init__(self, engine_factory: EngineFactory = create_db_engine) -> None:
        self._engine_factory = engine_factory
        self._handles: Dict[str, DBHandle] = {}
        self._lock = threading.Lock()
        self._name_locks: Dict[str, _NameLock] = {}

    @contextmanager
    def _name_lock(self, name: str) -> Iterator[None]:
        # Entries live only while a thread holds or waits for the lock
        with self._lock:
            entry = self._name_locks.get(name)
            if entry is None:
                entry = self._name_locks[name] = _NameLock()
            entry.users += 1
        try:
            with entry.lock:
                yield
        finally:
            with self._lock:
                entry.users -= 1
                if entry.users == 0:
                    del self._name_locks[name]

    def _lookup(self, name: str) -> Optional[DBHandle]:
        with self._lock:
            return self._handles.get(name)

    def init_config(self, config: Optional[DBConfig]) -> None:
        """Open and register a pooled connection for ``config.db_name``.

        Registering a name that already exists is a no-op: the first
        configuration wins and nothing is reopened.

        Args:
            config: The database configuration.

        Raises:
            InvalidConfigError: If config is None, has no name or DSN, or its
                DSN names a different backend than ``db_type``.
            UnsupportedDialectError: If ``config.db_type`` is unknown.
            DBConnectionError: If the engine cannot be created or reached.
        """
        if config is None:
            raise InvalidConfigError("No db config")
        if not config.db_name:
            raise InvalidConfigError("No db name")
        if not config.resolve_dsn():
            raise InvalidConfigError(f"No db dsn for '{config.db_name}'")

        if self._lookup(config.db_name) is not None:
            return

        with self._name_lock(config.db_name):
            # Another thread may have finished opening while we waited
            if self._lookup(config.db_name) is not None:
                return

            DBType.parse(config.db_type)
            effective = config.with_pool_defaults()
            engine = self._open(effective)

            with self._lock:
                self._handles[config.db_name] = DBHandle(
                    engine=engine, config=effective
                )
            logger.debug(
                "Registered database '%s' (%s)", config.db_name, config.db_type
            )

    def _open(self, config: DBConfig) -> Engine:
        try:
            engine = self._engine_factory(config)
        except DBOperatorError:
            raise
        except Exception as e:
            logger.warning("Failed to create engine for '%s': %s", config.db_name, e)
            raise DBConnectionError(
                f"Failed to open database '{config.db_name}': {e}"
            ) from e

        try:
            ping_engine(engine)
        except Exception as e:
            engine.dispose()
            logger.warning("Failed to connect to '%s': %s", config.db_name, e)
            raise DBConnectionError(
                f"Failed to connect to database '{config.db_name}': {e}"
            ) from e

        return engine

    def get_db(self, name: str) -> DBHandle:
        """Return the handle registered under ``name``.

        Raises:
            NotFoundError: If no connection is registered under the name.
        """
        handle = self._lookup(name)
        if handle is None:
            raise NotFoundError(f"No db instance named '{name}'")
        return handle

    def get_config(self, name: str) -> DBConfig:
        """Return the effective configuration registered under ``name``.

        Raises:
            NotFoundError: If no connection is registered under the name.
        """
        return self.get_db(name).config

    def ping(self, name: str) -> None:
        """Verify the connection registered under ``name`` is reachable.

        Raises:
            NotFoundError: If no connection is registered under the name.
            DBConnectionError: If the ping fails.
        """
        handle = self.get_db(name)
        try:
            ping_engine(handle.engine)
        except Exception as e:
            raise DBConnectionError(f"Ping to database '{name}' failed: {e}") from e
        logger.debug("Ping to '%s' succeeded", name)

    def close(self, name: str) -> None:
        """Remove ``name`` from the registry and dispose its pool.

        Closing an unregistered name is not an error. Once closed, the name
        may be registered again.

        Raises:
            InvalidArgumentError: If name is empty.
            DBConnectionError: If disposing the pool fails.
        """
        if not name:
            raise InvalidArgumentError("Empty db name")

        with self._name_lock(name):
            with self._lock:
                handle = self._handles.pop(name, None)
            if handle is None:
                return
            try:
                handle.engine.dispose()
            except Exception as e:
                raise DBConnectionError(
                    f"Failed to close database '{name}': {e}"
                ) from e
        logger.debug("Closed database '%s'", name)

    def names(self) -> List[str]:
        """Return the registered logical names, sorted."""
        with self._lock:
            return sorted(self._handles)

    def close_all(self) -> None:
        """Close every registered connection."""
        for name in self.names():
            self.close(name)


_default_registry = ConnectionRegistry()


def default_registry() -> ConnectionRegistry:
    """Return the process-wide connection registry."""
    return _default_registry


def init_config(config: Optional[DBConfig]) -> None:
    """Register a connection in the default registry."""
    _default_registry.init_config(config)


def get_db(name: str) -> DBHandle:
    """Look up a connection in the default registry."""
    return _default_registry.get_db(name)


def get_config(name: str) -> DBConfig:
    """Look up a configuration in the default registry."""
    return _default_registry.get_config(name)


def ping(name: str) -> None:
    """Ping a connection in the default registry."""
    _default_registry.ping(name)


def close(name: str) -> None:
    """Close a connection in the default registry."""
    _default_registry.close(name)
