"""PostgreSQL operator.

Catalog queries read ``pg_tables``, ``information_schema.columns`` and
``pg_description``. Tables whose names start with ``pg``, ``gp`` or ``sql_``
are treated as engine-owned and skipped.

Requires the optional 'postgres' dependency:
    pip install db-operator[postgres]
"""

from typing import List, Optional

from sqlalchemy.engine import Connection

from dboperator.global_models import DBType
from dboperator.operators.base import Operator

_TABLE_SELECT = (
    "SELECT tb.schemaname AS table_schema, "
    "tb.tablename AS table_name, "
    "d.description AS comments "
    "FROM pg_tables tb "
    "JOIN pg_class c ON c.relname = tb.tablename "
    "LEFT JOIN pg_description d ON d.objoid = c.oid AND d.objsubid = '0' "
)

_SYSTEM_TABLE_FILTER = (
    "AND tablename NOT LIKE 'pg%' "
    "AND tablename NOT LIKE 'gp%' "
    "AND tablename NOT LIKE 'sql_%' "
)

_COLUMN_SELECT = (
    "SELECT ic.table_schema AS table_schema, "
    "ic.table_name AS table_name, "
    "ic.column_name AS column_name, "
    "ic.udt_name AS data_type, "
    "d.description AS comments "
    "FROM information_schema.columns ic "
    "JOIN pg_class c ON c.relname = ic.table_name "
    "LEFT JOIN pg_description d "
    "ON d.objoid = c.oid AND d.objsubid = ic.ordinal_position "
)


class PostgresOperator(Operator):
    """Operator for PostgreSQL (and Greenplum) databases.

    Statements run inside a transaction, so an execution context deadline
    is enforced server-side with ``SET LOCAL statement_timeout``.
    """

    @property
    def db_type(self) -> DBType:
        """Return the dialect this operator serves."""
        return DBType.POSTGRES

    @property
    def sqlglot_dialect(self) -> str:
        """Return the sqlglot dialect name."""
        return "postgres"

    def tables_under_schema_sql(self) -> str:
        return (
            _TABLE_SELECT
            + "WHERE schemaname IN :schemas "
            + _SYSTEM_TABLE_FILTER
            + "ORDER BY tb.schemaname, tb.tablename"
        )

    def tables_under_db_sql(self) -> str:
        return (
            _TABLE_SELECT
            + "WHERE schemaname <> 'information_schema' "
            + _SYSTEM_TABLE_FILTER
            + "ORDER BY tb.schemaname, tb.tablename"
        )

    def columns_sql(self) -> str:
        return (
            _COLUMN_SELECT
            + "WHERE ic.table_name NOT LIKE 'pg%' "
            "AND ic.table_name NOT LIKE 'gp%' "
            "AND ic.table_name NOT LIKE 'sql_%' "
            "AND ic.table_schema <> 'information_schema' "
            "ORDER BY ic.table_schema, ic.table_name, ic.ordinal_position"
        )

    def columns_under_tables_sql(self) -> str:
        return (
            _COLUMN_SELECT
            + "WHERE ic.table_schema = :schema "
            "AND ic.table_name IN :table_names "
            "ORDER BY ic.table_name, ic.ordinal_position"
        )

    def page_sql(self, table_ref: str) -> str:
        return f"SELECT * FROM {table_ref} LIMIT :limit OFFSET :offset"

    def create_schema_statements(self, schema_name: str, comment: str) -> List[str]:
        schema = self.quote_identifier(schema_name)
        return [
            f"CREATE SCHEMA IF NOT EXISTS {schema}",
            f"COMMENT ON SCHEMA {schema} IS {self.quote_literal(comment)}",
        ]

    def apply_timeout(self, conn: Connection, seconds: Optional[float]) -> None:
        if seconds is None:
            return
        milliseconds = max(int(seconds * 1000), 1)
        conn.exec_driver_sql(f"SET LOCAL statement_timeout = {milliseconds}")
