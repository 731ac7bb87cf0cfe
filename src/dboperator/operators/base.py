"""Base class for dialect operators.

An Operator is the single interface callers use to execute statements and
introspect a registered database. The base class implements every contract
method once; a dialect only supplies its catalog SQL, pagination clause,
schema creation statements and identifier quoting dialect.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Mapping, Optional, Sequence, Union

from sqlalchemy import bindparam, text
from sqlalchemy.engine import Connection
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.sql.elements import TextClause
from sqlglot import exp

from dboperator.context import ExecutionContext
from dboperator.dbx.config import DBConfig
from dboperator.dbx.registry import ConnectionRegistry, DBHandle, default_registry
from dboperator.errors import DBConnectionError, InvalidArgumentError
from dboperator.global_models import DBType
from dboperator.operators.folding import (
    fold_columns,
    fold_table_columns,
    fold_tables,
)
from dboperator.operators.models import (
    CatalogColumnRow,
    CatalogTableRow,
    LogicDBInfo,
    Pagination,
    TableColInfo,
)

Row = Dict[str, Any]
Statement = Union[str, TextClause]

# Sends caller SQL with no parameter set, so format-style drivers such as
# psycopg and pymssql do not parse its % signs
VERBATIM = {"no_parameters": True}


class Operator(ABC):
    """Abstract base class for dialect operators.

    Operators hold no state besides the ConnectionRegistry they resolve
    logical names against, so one instance per dialect serves all callers.

    Every method accepts an optional ``ctx``. Cancelling it, or passing its
    deadline, interrupts the running statement and makes the call raise
    OperationCancelledError.

    Example:
        >>> class MyOperator(Operator):
        ...     @property
        ...     def db_type(self) -> DBType:
        ...         return DBType.MYSQL
        ...
        ...     @property
        ...     def sqlglot_dialect(self) -> str:
        ...         return "mysql"
        ...     # plus the catalog SQL hooks
    """

    def __init__(self, connections: Optional[ConnectionRegistry] = None) -> None:
        self._connections = connections or default_registry()

    @property
    @abstractmethod
    def db_type(self) -> DBType:
        """Return the dialect this operator serves."""
        pass

    @property
    @abstractmethod
    def sqlglot_dialect(self) -> str:
        """Return the sqlglot dialect name used for identifier quoting."""
        pass

    @property
    def connections(self) -> ConnectionRegistry:
        """The registry logical names are resolved against."""
        return self._connections

    # Dialect hooks

    @abstractmethod
    def tables_under_schema_sql(self) -> str:
        """Table listing filtered to the ``:schemas`` list parameter.

        Must select ``table_schema``, ``table_name`` and ``comments``.
        """
        pass

    @abstractmethod
    def tables_under_db_sql(self) -> str:
        """Table listing across all user schemas."""
        pass

    @abstractmethod
    def columns_sql(self) -> str:
        """Column listing across all user schemas.

        Must select ``table_schema``, ``table_name``, ``column_name``,
        ``data_type`` and optionally ``comments``.
        """
        pass

    @abstractmethod
    def columns_under_tables_sql(self) -> str:
        """Column listing for ``:schema`` and the ``:table_names`` list."""
        pass

    @abstractmethod
    def page_sql(self, table_ref: str) -> str:
        """Select one page of ``table_ref`` using ``:offset`` and ``:limit``."""
        pass

    @abstractmethod
    def create_schema_statements(self, schema_name: str, comment: str) -> List[str]:
        """Statements that create ``schema_name`` if it does not exist."""
        pass

    def apply_timeout(self, conn: Connection, seconds: Optional[float]) -> None:
        """Bound the statements of the current transaction to ``seconds``.

        The default does nothing; dialects with a transaction-scoped
        statement timeout override it.
        """
        pass

    def interrupt(self, driver_connection: Any) -> None:
        """Abort the statement running on a raw driver connection.

        Called from the cancelling thread. psycopg and pymssql connections
        expose ``cancel()``, sqlite3 connections ``interrupt()``.
        """
        abort = getattr(driver_connection, "cancel", None) or getattr(
            driver_connection, "interrupt", None
        )
        if abort is not None:
            abort()

    def quote_table(self, schema_name: str, table_name: str) -> str:
        """Render a quoted ``schema.table`` reference, or bare ``table``."""
        table = exp.table_(table_name, db=schema_name or None, quoted=True)
        return table.sql(dialect=self.sqlglot_dialect)

    def quote_identifier(self, name: str) -> str:
        """Render a single quoted identifier."""
        return exp.to_identifier(name, quoted=True).sql(dialect=self.sqlglot_dialect)

    def quote_literal(self, value: str) -> str:
        """Render a string literal with dialect escaping."""
        return exp.Literal.string(value).sql(dialect=self.sqlglot_dialect)

    # Connection registry delegation

    def open(self, config: DBConfig) -> None:
        """Register a connection; see ConnectionRegistry.init_config."""
        self._connections.init_config(config)

    def ping(self, db_name: str) -> None:
        """Ping a registered connection."""
        self._connections.ping(db_name)

    def close(self, db_name: str) -> None:
        """Close a registered connection."""
        self._connections.close(db_name)

    def get_db(self, db_name: str) -> DBHandle:
        """Return the handle registered under ``db_name``."""
        return self._connections.get_db(db_name)

    # Execution

    def _fetch(
        self,
        db_name: str,
        statement: Statement,
        params: Optional[Mapping[str, Any]] = None,
        ctx: Optional[ExecutionContext] = None,
    ) -> List[Row]:
        """Run one statement and return its rows as dicts.

        Plain strings go to the driver verbatim, without a parameter set, so
        ``%`` and ``:name`` reach the server untouched; TextClause statements
        are bound with ``params``.
        """
        ctx = ctx or ExecutionContext()
        handle = self.get_db(db_name)
        ctx.check()
        try:
            with handle.engine.begin() as conn:
                driver_connection = conn.connection.driver_connection
                with ctx.watch(lambda: self.interrupt(driver_connection)):
                    ctx.check()
                    self.apply_timeout(conn, ctx.remaining())
                    if isinstance(statement, str):
                        result = conn.exec_driver_sql(
                            statement, execution_options=VERBATIM
                        )
                    else:
                        result = conn.execute(statement, dict(params or {}))
                    rows = (
                        [dict(row) for row in result.mappings()]
                        if result.returns_rows
                        else []
                    )
                ctx.check()
                return rows
        except SQLAlchemyError as e:
            # An interrupted statement surfaces as a driver error
            ctx.check()
            raise DBConnectionError(f"Query on database '{db_name}' failed: {e}") from e

    def _execute(
        self,
        db_name: str,
        statements: Sequence[str],
        ctx: Optional[ExecutionContext] = None,
    ) -> None:
        """Run statements verbatim in a single transaction."""
        ctx = ctx or ExecutionContext()
        handle = self.get_db(db_name)
        try:
            with handle.engine.begin() as conn:
                driver_connection = conn.connection.driver_connection
                with ctx.watch(lambda: self.interrupt(driver_connection)):
                    self.apply_timeout(conn, ctx.remaining())
                    for statement in statements:
                        ctx.check()
                        conn.exec_driver_sql(statement, execution_options=VERBATIM)
                ctx.check()
        except SQLAlchemyError as e:
            ctx.check()
            raise DBConnectionError(
                f"Statement on database '{db_name}' failed: {e}"
            ) from e

    def get_data_by_sql(
        self, db_name: str, statement: str, ctx: Optional[ExecutionContext] = None
    ) -> List[Row]:
        """Execute caller-supplied SQL verbatim and return the rows.

        The statement is trusted: nothing is escaped or validated.

        Args:
            db_name: Logical database name.
            statement: SQL to run as-is.
            ctx: Optional execution context.

        Returns:
            One column-name to value mapping per result row, in order.

        Raises:
            NotFoundError: If ``db_name`` is not registered.
            DBConnectionError: If execution fails.
        """
        return self._fetch(db_name, statement, ctx=ctx)

    def get_table_data(
        self,
        db_name: str,
        schema_name: str,
        table_name: str,
        pagination: Pagination,
        ctx: Optional[ExecutionContext] = None,
    ) -> List[Row]:
        """Fetch one page of a table and record its size on ``pagination``.

        A count query runs first, then the page query. The two are separate
        reads, so a concurrent change can make ``total`` disagree with the
        rows returned. ``total`` stays unset if the count fails.

        Args:
            db_name: Logical database name.
            schema_name: Schema of the table; empty for an unqualified name.
            table_name: Table to read.
            pagination: Page request; ``total`` and ``page_count`` are set.
            ctx: Optional execution context.

        Returns:
            The rows of the requested page.

        Raises:
            NotFoundError: If ``db_name`` is not registered.
            DBConnectionError: If either query fails.
        """
        table_ref = self.quote_table(schema_name, table_name)
        count_rows = self._fetch(
            db_name, text(f"SELECT COUNT(*) AS total FROM {table_ref}"), ctx=ctx
        )
        pagination.total = int(count_rows[0]["total"]) if count_rows else 0
        pagination.set_page_count()
        return self._fetch(
            db_name,
            text(self.page_sql(table_ref)),
            {
                "offset": pagination.get_offset(),
                "limit": max(pagination.page_size, 0),
            },
            ctx=ctx,
        )

    def _table_rows(
        self,
        db_name: str,
        statement: Statement,
        params: Optional[Mapping[str, Any]],
        ctx: Optional[ExecutionContext],
    ) -> List[CatalogTableRow]:
        rows = self._fetch(db_name, statement, params, ctx)
        return [CatalogTableRow.model_validate(row) for row in rows]

    def _column_rows(
        self,
        db_name: str,
        statement: Statement,
        params: Optional[Mapping[str, Any]],
        ctx: Optional[ExecutionContext],
    ) -> List[CatalogColumnRow]:
        rows = self._fetch(db_name, statement, params, ctx)
        return [CatalogColumnRow.model_validate(row) for row in rows]

    def get_tables_under_schema(
        self,
        db_name: str,
        schemas: Sequence[str],
        ctx: Optional[ExecutionContext] = None,
    ) -> Dict[str, LogicDBInfo]:
        """List user tables of the given schemas, grouped by schema.

        Raises:
            InvalidArgumentError: If ``db_name`` is empty.
            NotFoundError: If ``db_name`` is not registered.
            DBConnectionError: If the catalog query fails.
        """
        if not db_name:
            raise InvalidArgumentError("Empty db name")
        statement = text(self.tables_under_schema_sql()).bindparams(
            bindparam("schemas", expanding=True)
        )
        rows = self._table_rows(db_name, statement, {"schemas": list(schemas)}, ctx)
        return fold_tables(rows)

    def get_tables_under_db(
        self, db_name: str, ctx: Optional[ExecutionContext] = None
    ) -> Dict[str, LogicDBInfo]:
        """List user tables of every user schema, grouped by schema.

        Raises:
            InvalidArgumentError: If ``db_name`` is empty.
            NotFoundError: If ``db_name`` is not registered.
            DBConnectionError: If the catalog query fails.
        """
        if not db_name:
            raise InvalidArgumentError("Empty db name")
        rows = self._table_rows(db_name, text(self.tables_under_db_sql()), None, ctx)
        return fold_tables(rows)

    def get_columns(
        self, db_name: str, ctx: Optional[ExecutionContext] = None
    ) -> Dict[str, Dict[str, TableColInfo]]:
        """List columns of every user table, grouped by schema then table.

        Raises:
            InvalidArgumentError: If ``db_name`` is empty.
            NotFoundError: If ``db_name`` is not registered.
            DBConnectionError: If the catalog query fails.
        """
        if not db_name:
            raise InvalidArgumentError("Empty db name")
        rows = self._column_rows(db_name, text(self.columns_sql()), None, ctx)
        return fold_columns(rows)

    def get_columns_under_tables(
        self,
        db_name: str,
        logic_db_name: str,
        table_names: Sequence[str],
        ctx: Optional[ExecutionContext] = None,
    ) -> Dict[str, TableColInfo]:
        """List columns of the named tables in one schema, grouped by table.

        Raises:
            InvalidArgumentError: If ``db_name`` or ``table_names`` is empty.
            NotFoundError: If ``db_name`` is not registered.
            DBConnectionError: If the catalog query fails.
        """
        if not db_name:
            raise InvalidArgumentError("Empty db name")
        if not table_names:
            raise InvalidArgumentError("Empty table names")
        statement = text(self.columns_under_tables_sql()).bindparams(
            bindparam("table_names", expanding=True)
        )
        params = {"schema": logic_db_name, "table_names": list(table_names)}
        rows = self._column_rows(db_name, statement, params, ctx)
        return fold_table_columns(rows)

    def create_schema(
        self,
        db_name: str,
        schema_name: str,
        comment: str = "",
        ctx: Optional[ExecutionContext] = None,
    ) -> None:
        """Create a schema if it does not exist.

        Where the dialect supports schema comments, ``comment`` is applied,
        defaulting to the schema name when blank.

        Raises:
            InvalidArgumentError: If ``db_name`` or ``schema_name`` is empty.
            NotFoundError: If ``db_name`` is not registered.
            DBConnectionError: If a statement fails.
        """
        if not db_name:
            raise InvalidArgumentError("Empty db name")
        if not schema_name:
            raise InvalidArgumentError("Empty schema name")
        statements = self.create_schema_statements(
            schema_name, comment.strip() or schema_name
        )
        self._execute(db_name, statements, ctx)

    def execute_ddl(
        self, db_name: str, statement: str, ctx: Optional[ExecutionContext] = None
    ) -> None:
        """Execute a DDL statement verbatim.

        Atomicity is whatever the single statement itself guarantees.

        Raises:
            InvalidArgumentError: If ``db_name`` is empty.
            NotFoundError: If ``db_name`` is not registered.
            DBConnectionError: If the statement fails.
        """
        if not db_name:
            raise InvalidArgumentError("Empty db name")
        self._execute(db_name, [statement], ctx)
