"""Connection configuration for a logical database."""

from datetime import timedelta
from typing import Dict, Optional

from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.engine import URL

from dboperator.errors import UnsupportedDialectError
from dboperator.global_models import DBType

DEFAULT_MAX_OPEN_CONN = 100
DEFAULT_MAX_IDLE_CONN = 10
DEFAULT_CONN_MAX_LIFETIME = timedelta(hours=1)

# SQLAlchemy driver names used when a DSN is derived from structured fields
DEFAULT_DRIVERS: Dict[DBType, str] = {
    DBType.MYSQL: "mysql+pymysql",
    DBType.POSTGRES: "postgresql+psycopg",
    DBType.ORACLE: "oracle+oracledb",
    DBType.SQLSERVER: "mssql+pymssql",
}


class DBConfig(BaseModel):
    """Describes how to reach one logical database.

    Either ``dsn`` (a SQLAlchemy URL) is given directly, or it is derived
    from the structured fields. Zero pool settings mean "use the default".

    ``db_type`` is kept as a plain string so that an unknown dialect is
    reported as UnsupportedDialectError at registration time rather than
    as a validation error here.
    """

    model_config = ConfigDict(frozen=True)

    db_name: str = Field(..., description="Logical name, unique per registry")
    db_type: str = Field(..., description="mysql, postgres, oracle or sqlserver")
    dsn: str = Field(default="", description="SQLAlchemy URL; derived if empty")
    host: Optional[str] = None
    port: Optional[int] = None
    user: Optional[str] = None
    password: Optional[str] = None
    database: Optional[str] = None
    driver: Optional[str] = Field(
        default=None, description="SQLAlchemy driver name overriding the default"
    )
    query: Dict[str, str] = Field(default_factory=dict)
    max_open_conn: int = 0
    max_idle_conn: int = 0
    conn_max_lifetime: timedelta = timedelta(0)

    def gen_dsn(self) -> str:
        """Build a DSN from the structured fields.

        Returns:
            The URL string, or "" when host is missing or the dialect is
            unknown and no driver override is set.
        """
        if not self.host:
            return ""
        drivername = self.driver
        if not drivername:
            try:
                drivername = DEFAULT_DRIVERS[DBType.parse(self.db_type)]
            except UnsupportedDialectError:
                return ""
        url = URL.create(
            drivername,
            username=self.user,
            password=self.password,
            host=self.host,
            port=self.port,
            database=self.database,
            query=self.query,
        )
        return url.render_as_string(hide_password=False)

    def resolve_dsn(self) -> str:
        """Return the explicit DSN, else the derived one, else ""."""
        return self.dsn or self.gen_dsn()

    def with_pool_defaults(self) -> "DBConfig":
        """Return a copy with zero pool settings replaced by defaults."""
        return self.model_copy(
            update={
                "max_open_conn": self.max_open_conn or DEFAULT_MAX_OPEN_CONN,
                "max_idle_conn": self.max_idle_conn or DEFAULT_MAX_IDLE_CONN,
                "conn_max_lifetime": self.conn_max_lifetime
                or DEFAULT_CONN_MAX_LIFETIME,
            }
        )
