"""CLI entry point for dboperator."""

from pathlib import Path
from typing import List, NoReturn, Optional, Tuple

import typer
from rich.console import Console

from dboperator.context import ExecutionContext
from dboperator.errors import DBOperatorError
from dboperator.formatters import (
    ColumnsFormatter,
    RowsFormatter,
    TablesFormatter,
    format_page_summary,
)
from dboperator.operators import (
    Operator,
    Pagination,
    get_operator,
    list_operators,
    register_builtin_operators,
)
from dboperator.utils.config import load_config

app = typer.Typer(
    name="dboperator",
    help="Connect to, introspect and query SQL databases by logical name.",
    invoke_without_command=False,
)
console = Console()
err_console = Console(stderr=True)

OUTPUT_FORMATS = ["text", "json"]


def _connect(
    ctx: typer.Context, db_name: str
) -> Tuple[Operator, ExecutionContext]:
    """Open the named database from dboperator.toml and return its operator.

    Args:
        ctx: Typer context holding the --config path.
        db_name: Logical database name defined in the config file.

    Returns:
        The dialect operator with the database opened, and an execution
        context using the configured default timeout.
    """
    config_path = (ctx.obj or {}).get("config_path")
    settings = load_config(config_path)
    db_config = settings.database(db_name)
    operator = get_operator(db_config.db_type)
    operator.open(db_config)
    return operator, ExecutionContext(timeout=settings.default_timeout)


def _check_format(output_format: str) -> None:
    if output_format not in OUTPUT_FORMATS:
        err_console.print(
            f"[red]Error:[/red] Invalid output format '{output_format}'. "
            "Use 'text' or 'json'."
        )
        raise typer.Exit(1)


def _fail(error: Exception) -> NoReturn:
    err_console.print(f"[red]Error:[/red] {error}")
    raise typer.Exit(1)


@app.callback()
def main(
    ctx: typer.Context,
    config: Optional[Path] = typer.Option(
        None,
        "--config",
        "-c",
        exists=True,
        dir_okay=False,
        help="Path to config file (default: dboperator.toml in current directory)",
    ),
) -> None:
    """dboperator - uniform access to heterogeneous SQL databases."""
    ctx.obj = {"config_path": config}
    # The CLI builds the dialect lookup table once per process
    if not list_operators():
        register_builtin_operators()


@app.command("list-dialects")
def list_dialects() -> None:
    """List dialects that have a registered operator."""
    available = list_operators()
    if available:
        console.print("[bold]Available dialects:[/bold]")
        for name in available:
            console.print(f"  - {name}")
    else:
        console.print("[yellow]No dialects available[/yellow]")


@app.command()
def ping(
    ctx: typer.Context,
    db_name: str = typer.Argument(..., help="Logical database name"),
) -> None:
    """
    Check that a configured database is reachable.

    Examples:

        dboperator ping main
    """
    try:
        operator, _ = _connect(ctx, db_name)
        operator.ping(db_name)
        console.print(f"[green]Success:[/green] '{db_name}' is reachable")
    except DBOperatorError as e:
        _fail(e)


@app.command()
def tables(
    ctx: typer.Context,
    db_name: str = typer.Argument(..., help="Logical database name"),
    schema: Optional[List[str]] = typer.Option(
        None,
        "--schema",
        "-s",
        help="Limit to a schema (can be repeated). Default: all user schemas",
    ),
    output_format: str = typer.Option(
        "text", "--output-format", "-f", help="Output format: 'text' or 'json'"
    ),
) -> None:
    """
    List tables grouped by schema.

    Examples:

        dboperator tables main

        dboperator tables main --schema public --schema sales -f json
    """
    _check_format(output_format)
    try:
        operator, exec_ctx = _connect(ctx, db_name)
        if schema:
            result = operator.get_tables_under_schema(db_name, schema, ctx=exec_ctx)
        else:
            result = operator.get_tables_under_db(db_name, ctx=exec_ctx)
    except DBOperatorError as e:
        _fail(e)

    if output_format == "json":
        print(TablesFormatter.format_json(result))
    else:
        TablesFormatter.format_text(result, console)


@app.command()
def columns(
    ctx: typer.Context,
    db_name: str = typer.Argument(..., help="Logical database name"),
    schema: Optional[str] = typer.Option(
        None, "--schema", "-s", help="Schema of the tables given with --table"
    ),
    table: Optional[List[str]] = typer.Option(
        None, "--table", "-t", help="Table to describe (can be repeated)"
    ),
    output_format: str = typer.Option(
        "text", "--output-format", "-f", help="Output format: 'text' or 'json'"
    ),
) -> None:
    """
    List columns, either database-wide or for specific tables.

    Examples:

        dboperator columns main

        dboperator columns main --schema public --table users --table orders
    """
    _check_format(output_format)
    if table and not schema:
        err_console.print("[red]Error:[/red] --table requires --schema.")
        raise typer.Exit(1)

    try:
        operator, exec_ctx = _connect(ctx, db_name)
        if table:
            by_schema = {
                schema: operator.get_columns_under_tables(
                    db_name, schema, table, ctx=exec_ctx
                )
            }
        else:
            by_schema = operator.get_columns(db_name, ctx=exec_ctx)
    except DBOperatorError as e:
        _fail(e)

    if output_format == "json":
        print(ColumnsFormatter.format_json(by_schema))
        return
    for schema_name, cols in by_schema.items():
        ColumnsFormatter.format_text(cols, console, schema_name=schema_name)


@app.command()
def query(
    ctx: typer.Context,
    db_name: str = typer.Argument(..., help="Logical database name"),
    sql: str = typer.Argument(..., help="SQL statement, executed verbatim"),
    output_format: str = typer.Option(
        "text", "--output-format", "-f", help="Output format: 'text' or 'json'"
    ),
) -> None:
    """
    Run a SQL statement and print the rows.

    Examples:

        dboperator query main "SELECT * FROM public.users"
    """
    _check_format(output_format)
    try:
        operator, exec_ctx = _connect(ctx, db_name)
        rows = operator.get_data_by_sql(db_name, sql, ctx=exec_ctx)
    except DBOperatorError as e:
        _fail(e)

    if output_format == "json":
        print(RowsFormatter.format_json(rows))
    else:
        RowsFormatter.format_text(rows, console)


@app.command()
def data(
    ctx: typer.Context,
    db_name: str = typer.Argument(..., help="Logical database name"),
    table_name: str = typer.Argument(..., help="Table to read"),
    schema: str = typer.Option("", "--schema", "-s", help="Schema of the table"),
    page: int = typer.Option(1, "--page", "-p", min=1, help="1-based page number"),
    page_size: int = typer.Option(10, "--page-size", min=1, help="Rows per page"),
    output_format: str = typer.Option(
        "text", "--output-format", "-f", help="Output format: 'text' or 'json'"
    ),
) -> None:
    """
    Print one page of a table.

    Examples:

        dboperator data main users --schema public --page 2 --page-size 50
    """
    _check_format(output_format)
    pagination = Pagination(page_index=page, page_size=page_size)
    try:
        operator, exec_ctx = _connect(ctx, db_name)
        rows = operator.get_table_data(
            db_name, schema, table_name, pagination, ctx=exec_ctx
        )
    except DBOperatorError as e:
        _fail(e)

    if output_format == "json":
        print(RowsFormatter.format_json(rows))
    else:
        RowsFormatter.format_text(rows, console, title=format_page_summary(pagination))


if __name__ == "__main__":
    app()
