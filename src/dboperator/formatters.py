"""Output formatters for query rows and introspection results."""

import json
from typing import Any, Dict, List

from rich.console import Console
from rich.table import Table

from dboperator.operators.models import LogicDBInfo, Pagination, TableColInfo


class RowsFormatter:
    """Format query result rows."""

    @staticmethod
    def format_text(
        rows: List[Dict[str, Any]], console: Console, title: str = ""
    ) -> None:
        """Print rows as a Rich table, one column per result key."""
        if not rows:
            console.print("[yellow]No rows returned.[/yellow]")
            return

        table = Table(title=title or None, title_style="bold")
        for key in rows[0]:
            table.add_column(str(key), style="cyan")
        for row in rows:
            table.add_row(*("" if v is None else str(v) for v in row.values()))
        console.print(table)

    @staticmethod
    def format_json(rows: List[Dict[str, Any]]) -> str:
        """Serialize rows to JSON; non-JSON values are stringified."""
        return json.dumps(rows, indent=2, default=str)


class TablesFormatter:
    """Format table listings grouped by schema."""

    @staticmethod
    def format_text(schemas: Dict[str, LogicDBInfo], console: Console) -> None:
        if not schemas:
            console.print("[yellow]No tables found.[/yellow]")
            return

        table = Table(title="Tables", title_style="bold")
        table.add_column("Schema", style="cyan")
        table.add_column("Table", style="green")
        table.add_column("Comment", style="dim")
        for schema_name, logic_db in schemas.items():
            for info in logic_db.table_info_list:
                table.add_row(schema_name, info.table_name, info.comment)
        console.print(table)

    @staticmethod
    def format_json(schemas: Dict[str, LogicDBInfo]) -> str:
        return json.dumps(
            {name: info.model_dump() for name, info in schemas.items()}, indent=2
        )


class ColumnsFormatter:
    """Format column listings grouped by table."""

    @staticmethod
    def format_text(
        tables: Dict[str, TableColInfo], console: Console, schema_name: str = ""
    ) -> None:
        if not tables:
            console.print("[yellow]No columns found.[/yellow]")
            return

        table = Table(title=f"Columns {schema_name}".strip(), title_style="bold")
        table.add_column("Table", style="cyan")
        table.add_column("Column", style="green")
        table.add_column("Type", style="yellow")
        table.add_column("Comment", style="dim")
        for table_name, col_info in tables.items():
            for column in col_info.column_info_list:
                table.add_row(
                    table_name, column.column_name, column.data_type, column.comment
                )
        console.print(table)

    @staticmethod
    def format_json(by_schema: Dict[str, Dict[str, TableColInfo]]) -> str:
        return json.dumps(
            {
                schema_name: {name: info.model_dump() for name, info in tables.items()}
                for schema_name, tables in by_schema.items()
            },
            indent=2,
        )


def format_page_summary(pagination: Pagination) -> str:
    """One-line description of a fetched page."""
    return (
        f"Page {pagination.page_index}/{pagination.page_count or 0} "
        f"({pagination.total or 0} rows, {pagination.page_size} per page)"
    )
