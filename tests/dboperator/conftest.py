"""Shared fixtures: SQLite-backed engines injected through the engine factory."""

import threading
import time
from typing import List

import pytest
from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.pool import StaticPool

from dboperator.dbx.config import DBConfig
from dboperator.dbx.registry import ConnectionRegistry


class CountingEngineFactory:
    """Engine factory that opens in-memory SQLite engines and counts opens."""

    def __init__(self, delay: float = 0.0) -> None:
        self.delay = delay
        self.configs: List[DBConfig] = []
        self.engines: List[Engine] = []
        self._lock = threading.Lock()

    @property
    def calls(self) -> int:
        return len(self.configs)

    def __call__(self, config: DBConfig) -> Engine:
        if self.delay:
            time.sleep(self.delay)
        engine = create_engine(
            "sqlite://",
            poolclass=StaticPool,
            connect_args={"check_same_thread": False},
        )
        with self._lock:
            self.configs.append(config)
            self.engines.append(engine)
        return engine


@pytest.fixture
def engine_factory() -> CountingEngineFactory:
    return CountingEngineFactory()


@pytest.fixture
def connections(engine_factory: CountingEngineFactory) -> ConnectionRegistry:
    registry = ConnectionRegistry(engine_factory=engine_factory)
    yield registry
    registry.close_all()


@pytest.fixture
def pg_config() -> DBConfig:
    return DBConfig(db_name="main", db_type="postgres", dsn="sqlite://")


@pytest.fixture
def people_db(
    connections: ConnectionRegistry, pg_config: DBConfig
) -> ConnectionRegistry:
    """Registry with "main" registered and a 25-row people table."""
    connections.init_config(pg_config)
    engine = connections.get_db("main").engine
    with engine.begin() as conn:
        conn.execute(text("CREATE TABLE people (id INTEGER PRIMARY KEY, name TEXT)"))
        for i in range(1, 26):
            conn.execute(
                text("INSERT INTO people (id, name) VALUES (:id, :name)"),
                {"id": i, "name": f"person-{i}"},
            )
    return connections


@pytest.fixture
def make_engine_factory():
    """Return the factory class so tests can build ones with a delay."""
    return CountingEngineFactory


@pytest.fixture
def slow_query() -> str:
    """A SQLite statement that runs for tens of seconds unless interrupted."""
    return (
        "WITH RECURSIVE c(n) AS "
        "(SELECT 1 UNION ALL SELECT n + 1 FROM c WHERE n < 200000000) "
        "SELECT COUNT(*) AS n FROM c"
    )
