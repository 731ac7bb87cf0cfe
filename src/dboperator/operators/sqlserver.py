"""SQL Server operator.

Table listings read ``sys.tables`` with ``MS_Description``-style extended
properties as comments; tables without one report ``'-'``. Column listings
read ``INFORMATION_SCHEMA.COLUMNS`` and carry no comments.

Requires the optional 'sqlserver' dependency:
    pip install db-operator[sqlserver]
"""

from typing import List

from dboperator.global_models import DBType
from dboperator.operators.base import Operator

NO_COMMENT = "-"

_TABLE_SELECT = (
    "SELECT a.name AS table_name, "
    "b.name AS table_schema, "
    f"CONVERT(NVARCHAR(100), ISNULL(c.[value], '{NO_COMMENT}')) AS comments "
    "FROM sys.tables a "
    "LEFT JOIN sys.schemas b ON a.schema_id = b.schema_id "
    "LEFT JOIN sys.extended_properties c "
    "ON (a.object_id = c.major_id AND c.minor_id = 0) "
)

_COLUMN_SELECT = (
    "SELECT TABLE_SCHEMA AS table_schema, "
    "TABLE_NAME AS table_name, "
    "COLUMN_NAME AS column_name, "
    "DATA_TYPE AS data_type "
    "FROM INFORMATION_SCHEMA.COLUMNS "
)


class SqlServerOperator(Operator):
    """Operator for Microsoft SQL Server databases.

    SQL Server has no transaction-scoped statement timeout, so an execution
    context deadline is enforced client-side: when it passes, the running
    statement is cancelled through the driver connection.
    """

    @property
    def db_type(self) -> DBType:
        """Return the dialect this operator serves."""
        return DBType.SQLSERVER

    @property
    def sqlglot_dialect(self) -> str:
        """Return the sqlglot dialect name."""
        return "tsql"

    def tables_under_schema_sql(self) -> str:
        return _TABLE_SELECT + "WHERE b.name IN :schemas ORDER BY b.name, a.name"

    def tables_under_db_sql(self) -> str:
        return (
            _TABLE_SELECT
            + "WHERE b.name NOT LIKE 'db_%' "
            "AND b.name NOT IN ('sys', 'INFORMATION_SCHEMA') "
            "ORDER BY b.name, a.name"
        )

    def columns_sql(self) -> str:
        return (
            _COLUMN_SELECT
            + "WHERE TABLE_SCHEMA NOT IN ('sys', 'INFORMATION_SCHEMA') "
            "ORDER BY TABLE_SCHEMA, TABLE_NAME, ORDINAL_POSITION"
        )

    def columns_under_tables_sql(self) -> str:
        return (
            _COLUMN_SELECT
            + "WHERE TABLE_SCHEMA = :schema "
            "AND TABLE_NAME IN :table_names "
            "ORDER BY TABLE_NAME, ORDINAL_POSITION"
        )

    def page_sql(self, table_ref: str) -> str:
        # OFFSET/FETCH requires an ORDER BY clause
        return (
            f"SELECT * FROM {table_ref} ORDER BY (SELECT NULL) "
            "OFFSET :offset ROWS FETCH NEXT :limit ROWS ONLY"
        )

    def create_schema_statements(self, schema_name: str, comment: str) -> List[str]:
        # CREATE SCHEMA must be the only statement in its batch, hence EXEC
        create = f"CREATE SCHEMA {self.quote_identifier(schema_name)}"
        return [
            f"IF NOT EXISTS (SELECT 1 FROM sys.schemas "
            f"WHERE name = {self.quote_literal(schema_name)}) "
            f"EXEC({self.quote_literal(create)})"
        ]
