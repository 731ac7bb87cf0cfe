"""Tests for the PostgreSQL operator.

Catalog queries are checked by intercepting ``_fetch``; execution paths run
against the SQLite engines provided by the shared fixtures.
"""

import threading
import time
from unittest.mock import MagicMock

import pytest

from dboperator.context import ExecutionContext
from dboperator.errors import (
    DBConnectionError,
    InvalidArgumentError,
    NotFoundError,
    OperationCancelledError,
)
from dboperator.global_models import DBType
from dboperator.operators.models import Pagination
from dboperator.operators.postgres import PostgresOperator


@pytest.fixture
def operator(connections):
    return PostgresOperator(connections)


@pytest.fixture
def people_operator(people_db):
    return PostgresOperator(people_db)


class TestIdentity:
    """Tests for dialect identity and quoting."""

    def test_db_type(self, operator):
        assert operator.db_type == DBType.POSTGRES

    def test_quote_table_with_schema(self, operator):
        """Test schema-qualified, double-quoted table references."""
        assert operator.quote_table("public", "users") == '"public"."users"'

    def test_quote_table_without_schema(self, operator):
        assert operator.quote_table("", "users") == '"users"'

    def test_quote_identifier_escapes_quotes(self, operator):
        """Test that embedded double quotes are doubled."""
        assert operator.quote_identifier('we"ird') == '"we""ird"'

    def test_quote_literal_escapes_quotes(self, operator):
        assert operator.quote_literal("o'brien") == "'o''brien'"


class TestCatalogQueries:
    """Tests for the catalog SQL and its grouping."""

    def test_tables_under_schema_binds_schema_list(self, operator, mocker):
        """Test that schemas are bound as a list and rows are grouped."""
        fetch = mocker.patch.object(
            operator,
            "_fetch",
            return_value=[
                {"table_schema": "public", "table_name": "orders", "comments": None},
                {"table_schema": "public", "table_name": "users", "comments": "people"},
                {"table_schema": "sales", "table_name": "leads", "comments": ""},
            ],
        )

        result = operator.get_tables_under_schema("main", ["public", "sales"])

        db_name, statement, params, _ = fetch.call_args[0]
        assert db_name == "main"
        assert "FROM pg_tables" in statement.text
        assert "IN :schemas" in statement.text
        assert "NOT LIKE 'pg%'" in statement.text
        assert params == {"schemas": ["public", "sales"]}
        assert list(result) == ["public", "sales"]
        assert [t.table_name for t in result["public"].table_info_list] == [
            "orders",
            "users",
        ]
        assert result["public"].table_info_list[0].comment == ""
        assert result["public"].table_info_list[1].comment == "people"

    def test_tables_under_db_excludes_system_tables(self, operator, mocker):
        """Test the all-schema listing filters engine-owned objects."""
        fetch = mocker.patch.object(operator, "_fetch", return_value=[])

        result = operator.get_tables_under_db("main")

        statement = fetch.call_args[0][1]
        for pattern in ("'pg%'", "'gp%'", "'sql_%'", "'information_schema'"):
            assert pattern in statement.text
        assert result == {}

    def test_columns_group_by_schema_and_table(self, operator, mocker):
        """Test database-wide column listing."""
        fetch = mocker.patch.object(
            operator,
            "_fetch",
            return_value=[
                {
                    "table_schema": "public",
                    "table_name": "users",
                    "column_name": "id",
                    "data_type": "int8",
                    "comments": None,
                },
                {
                    "table_schema": "public",
                    "table_name": "users",
                    "column_name": "email",
                    "data_type": "text",
                    "comments": "login",
                },
            ],
        )

        result = operator.get_columns("main")

        assert "information_schema.columns" in fetch.call_args[0][1].text
        columns = result["public"]["users"].column_info_list
        assert [c.column_name for c in columns] == ["id", "email"]
        assert columns[0].data_type == "int8"
        assert columns[1].comment == "login"

    def test_columns_under_tables_params(self, operator, mocker):
        """Test that the schema and table list are bound."""
        fetch = mocker.patch.object(
            operator,
            "_fetch",
            return_value=[
                {
                    "table_schema": "public",
                    "table_name": "users",
                    "column_name": "id",
                    "data_type": "int8",
                    "comments": None,
                },
            ],
        )

        result = operator.get_columns_under_tables(
            "main", "public", ["users", "orders"]
        )

        _, statement, params, _ = fetch.call_args[0]
        assert "ic.table_schema = :schema" in statement.text
        assert params == {"schema": "public", "table_names": ["users", "orders"]}
        assert list(result) == ["users"]

    def test_columns_under_tables_rejects_empty_list(self, operator, mocker):
        """Test that an empty table list fails before any query."""
        fetch = mocker.patch.object(operator, "_fetch")

        with pytest.raises(InvalidArgumentError):
            operator.get_columns_under_tables("main", "public", [])

        fetch.assert_not_called()

    @pytest.mark.parametrize(
        "call",
        [
            lambda op: op.get_tables_under_schema("", ["public"]),
            lambda op: op.get_tables_under_db(""),
            lambda op: op.get_columns(""),
            lambda op: op.get_columns_under_tables("", "public", ["users"]),
            lambda op: op.execute_ddl("", "SELECT 1"),
        ],
    )
    def test_empty_db_name_rejected(self, operator, mocker, call):
        """Test that an empty database name is an argument error."""
        fetch = mocker.patch.object(operator, "_fetch")

        with pytest.raises(InvalidArgumentError):
            call(operator)

        fetch.assert_not_called()

    def test_unregistered_name(self, operator):
        """Test that catalog calls on an unknown name raise NotFoundError."""
        with pytest.raises(NotFoundError):
            operator.get_tables_under_db("missing")


class TestTableData:
    """Tests for paginated table reads."""

    def test_second_page(self, people_operator):
        """Test reading page 2 of a 25-row table."""
        pagination = Pagination(page_index=2, page_size=10)

        rows = people_operator.get_table_data("main", "", "people", pagination)

        assert [row["id"] for row in rows] == list(range(11, 21))
        assert pagination.total == 25
        assert pagination.page_count == 3

    def test_last_partial_page(self, people_operator):
        pagination = Pagination(page_index=3, page_size=10)

        rows = people_operator.get_table_data("main", "", "people", pagination)

        assert [row["id"] for row in rows] == list(range(21, 26))

    def test_page_past_end_is_empty(self, people_operator):
        """Test that a page beyond the data returns no rows but the total."""
        pagination = Pagination(page_index=9, page_size=10)

        rows = people_operator.get_table_data("main", "", "people", pagination)

        assert rows == []
        assert pagination.total == 25

    def test_missing_table_leaves_total_unset(self, people_operator):
        """Test that a failed count does not populate the pagination."""
        pagination = Pagination(page_index=1, page_size=10)

        with pytest.raises(DBConnectionError):
            people_operator.get_table_data("main", "", "nope", pagination)

        assert pagination.total is None
        assert pagination.page_count is None


class TestExecution:
    """Tests for verbatim execution."""

    def test_get_data_by_sql(self, people_operator):
        """Test that rows come back as column-name mappings in order."""
        rows = people_operator.get_data_by_sql(
            "main", "SELECT id, name FROM people WHERE id <= 2 ORDER BY id"
        )

        assert rows == [
            {"id": 1, "name": "person-1"},
            {"id": 2, "name": "person-2"},
        ]

    def test_get_data_by_sql_keeps_percent_signs(self, people_operator):
        """Test that the statement is not parameter-formatted."""
        rows = people_operator.get_data_by_sql(
            "main", "SELECT COUNT(*) AS n FROM people WHERE name LIKE 'person-1%'"
        )

        assert rows == [{"n": 11}]

    def test_invalid_sql(self, people_operator):
        with pytest.raises(DBConnectionError):
            people_operator.get_data_by_sql("main", "SELEC nonsense")

    def test_execute_ddl(self, people_operator):
        """Test that DDL is applied and committed."""
        people_operator.execute_ddl("main", "CREATE TABLE audit (id INTEGER)")

        rows = people_operator.get_data_by_sql(
            "main",
            "SELECT name FROM sqlite_master WHERE type = 'table' AND name = 'audit'",
        )
        assert rows == [{"name": "audit"}]

    def test_execute_ddl_on_unknown_name(self, operator):
        with pytest.raises(NotFoundError):
            operator.execute_ddl("missing", "CREATE TABLE t (id INTEGER)")

    def test_cancelled_context(self, people_operator):
        """Test that a cancelled context stops the statement."""
        ctx = ExecutionContext()
        ctx.cancel()

        with pytest.raises(OperationCancelledError):
            people_operator.get_data_by_sql("main", "SELECT 1", ctx=ctx)

    def test_cancelled_context_skips_ddl(self, people_operator):
        ctx = ExecutionContext()
        ctx.cancel()

        with pytest.raises(OperationCancelledError):
            people_operator.execute_ddl(
                "main", "CREATE TABLE skipped (id INTEGER)", ctx=ctx
            )

        rows = people_operator.get_data_by_sql(
            "main", "SELECT name FROM sqlite_master WHERE name = 'skipped'"
        )
        assert rows == []


class TestCreateSchema:
    """Tests for schema creation."""

    def test_statements_with_comment(self, operator, mocker):
        execute = mocker.patch.object(operator, "_execute")

        operator.create_schema("main", "sales", "Sales data")

        db_name, statements, _ = execute.call_args[0]
        assert db_name == "main"
        assert statements == [
            'CREATE SCHEMA IF NOT EXISTS "sales"',
            "COMMENT ON SCHEMA \"sales\" IS 'Sales data'",
        ]

    def test_blank_comment_defaults_to_schema_name(self, operator, mocker):
        """Test that a blank comment is replaced by the schema name."""
        execute = mocker.patch.object(operator, "_execute")

        operator.create_schema("main", "sales", "   ")

        statements = execute.call_args[0][1]
        assert statements[1] == "COMMENT ON SCHEMA \"sales\" IS 'sales'"

    def test_empty_schema_name(self, operator, mocker):
        execute = mocker.patch.object(operator, "_execute")

        with pytest.raises(InvalidArgumentError):
            operator.create_schema("main", "")

        execute.assert_not_called()


class TestTimeout:
    """Tests for the server-side statement timeout."""

    def test_sets_local_statement_timeout(self, operator):
        conn = MagicMock()

        operator.apply_timeout(conn, 1.5)

        conn.exec_driver_sql.assert_called_once_with(
            "SET LOCAL statement_timeout = 1500"
        )

    def test_no_deadline_no_statement(self, operator):
        conn = MagicMock()

        operator.apply_timeout(conn, None)

        conn.exec_driver_sql.assert_not_called()

    def test_expired_deadline_uses_minimum(self, operator):
        """Test that an exhausted deadline never disables the timeout."""
        conn = MagicMock()

        operator.apply_timeout(conn, 0)

        conn.exec_driver_sql.assert_called_once_with("SET LOCAL statement_timeout = 1")


class TestFormatParamstyleDriver:
    """Tests that verbatim SQL reaches a %-placeholder driver untouched."""

    @pytest.fixture
    def driver_calls(self, people_db, mocker):
        """Stand in for a psycopg-style driver and record what it receives.

        Drivers with ``format`` placeholders interpolate the statement
        whenever they are handed a parameter set, even an empty one, so an
        unescaped ``%`` fails there. Statements sent without parameters are
        recorded with ``None``.
        """
        dialect = people_db.get_db("main").engine.dialect
        calls = []

        def do_execute(cursor, statement, parameters, context=None):
            calls.append((statement % parameters, parameters))

        def do_execute_no_params(cursor, statement, context=None):
            calls.append((statement, None))

        mocker.patch.object(dialect, "do_execute", do_execute)
        mocker.patch.object(dialect, "do_execute_no_params", do_execute_no_params)
        return calls

    def test_get_data_by_sql(self, people_operator, driver_calls):
        statement = "SELECT * FROM people WHERE name LIKE 'a%'"

        people_operator.get_data_by_sql("main", statement)

        assert driver_calls == [(statement, None)]

    def test_execute_ddl(self, people_operator, driver_calls):
        statement = "CREATE VIEW ones AS SELECT name FROM people WHERE name LIKE '%1'"

        people_operator.execute_ddl("main", statement)

        assert driver_calls == [(statement, None)]

    def test_create_schema_comment_with_percent(self, people_operator, driver_calls):
        """Test that a schema comment containing % is sent as written."""
        people_operator.create_schema("main", "sales", "50% off")

        assert driver_calls == [
            ('CREATE SCHEMA IF NOT EXISTS "sales"', None),
            ("COMMENT ON SCHEMA \"sales\" IS '50% off'", None),
        ]


class TestCancellation:
    """Tests for cancelling a statement while it runs."""

    def test_cancel_interrupts_running_statement(self, people_operator, slow_query):
        """Test that cancelling from another thread stops the statement."""
        ctx = ExecutionContext()
        timer = threading.Timer(0.2, ctx.cancel)
        started = time.monotonic()
        timer.start()
        try:
            with pytest.raises(OperationCancelledError, match="cancelled"):
                people_operator.get_data_by_sql("main", slow_query, ctx=ctx)
        finally:
            timer.cancel()

        assert time.monotonic() - started < 10
        assert people_operator.get_data_by_sql(
            "main", "SELECT COUNT(*) AS n FROM people"
        ) == [{"n": 25}]

    def test_interrupt_prefers_driver_cancel(self, operator):
        """Test that interrupt calls cancel() where the driver offers it."""
        driver_connection = MagicMock(spec=["cancel"])

        operator.interrupt(driver_connection)

        driver_connection.cancel.assert_called_once_with()

    def test_interrupt_falls_back_to_sqlite_interrupt(self, operator):
        driver_connection = MagicMock(spec=["interrupt"])

        operator.interrupt(driver_connection)

        driver_connection.interrupt.assert_called_once_with()
