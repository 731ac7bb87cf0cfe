"""Tests for the SQL Server operator."""

import time

import pytest

from dboperator.context import ExecutionContext
from dboperator.errors import OperationCancelledError
from dboperator.global_models import DBType
from dboperator.operators.sqlserver import NO_COMMENT, SqlServerOperator


@pytest.fixture
def operator(connections):
    return SqlServerOperator(connections)


class TestIdentity:
    def test_db_type(self, operator):
        assert operator.db_type == DBType.SQLSERVER

    def test_quote_table_uses_brackets(self, operator):
        """Test T-SQL bracket quoting of schema-qualified names."""
        assert operator.quote_table("dbo", "users") == "[dbo].[users]"


class TestCatalogQueries:
    """Tests for the SQL Server catalog SQL."""

    def test_tables_under_db_filters(self, operator):
        sql = operator.tables_under_db_sql()

        assert "sys.tables" in sql
        assert "NOT LIKE 'db_%'" in sql
        assert "NOT IN ('sys', 'INFORMATION_SCHEMA')" in sql

    def test_missing_comment_placeholder(self, operator):
        """Test that tables without a description report '-'."""
        sql = operator.tables_under_schema_sql()
        assert f"ISNULL(c.[value], '{NO_COMMENT}')" in sql

    def test_tables_keep_placeholder_comment(self, operator, mocker):
        mocker.patch.object(
            operator,
            "_fetch",
            return_value=[
                {"table_schema": "dbo", "table_name": "users", "comments": NO_COMMENT},
            ],
        )

        result = operator.get_tables_under_schema("dw", ["dbo"])

        assert result["dbo"].table_info_list[0].comment == "-"

    def test_columns_have_no_comments(self, operator, mocker):
        """Test that column rows without a comments field decode."""
        fetch = mocker.patch.object(
            operator,
            "_fetch",
            return_value=[
                {
                    "table_schema": "dbo",
                    "table_name": "users",
                    "column_name": "id",
                    "data_type": "int",
                },
            ],
        )

        result = operator.get_columns("dw")

        assert "INFORMATION_SCHEMA.COLUMNS" in fetch.call_args[0][1].text
        column = result["dbo"]["users"].column_info_list[0]
        assert column.data_type == "int"
        assert column.comment == ""


class TestStatements:
    def test_page_sql(self, operator):
        """Test OFFSET/FETCH pagination with a neutral ordering."""
        sql = operator.page_sql("[dbo].[users]")

        assert sql == (
            "SELECT * FROM [dbo].[users] ORDER BY (SELECT NULL) "
            "OFFSET :offset ROWS FETCH NEXT :limit ROWS ONLY"
        )

    def test_create_schema_is_guarded(self, operator, mocker):
        """Test that creation is skipped when the schema exists."""
        execute = mocker.patch.object(operator, "_execute")

        operator.create_schema("dw", "sales", "Sales data")

        statements = execute.call_args[0][1]
        assert len(statements) == 1
        assert statements[0].startswith("IF NOT EXISTS")
        assert "WHERE name = 'sales'" in statements[0]
        assert "EXEC('CREATE SCHEMA [sales]')" in statements[0]


class TestDeadline:
    """Tests for the client-side deadline on SQL Server connections."""

    def test_deadline_interrupts_running_statement(self, people_db, slow_query):
        """Test that a statement outliving the context deadline is cancelled."""
        operator = SqlServerOperator(people_db)
        ctx = ExecutionContext(timeout=0.3)
        started = time.monotonic()

        with pytest.raises(OperationCancelledError, match="deadline"):
            operator.get_data_by_sql("main", slow_query, ctx=ctx)

        assert time.monotonic() - started < 10
