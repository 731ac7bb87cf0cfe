"""Fold flat catalog rows into the schema -> table -> column tree.

Rows are processed in arrival order and groups are created on first sight,
so the resulting dicts keep the catalog query's ordering. Repeated
(schema, table) rows are never deduplicated.
"""

from typing import Dict, Iterable

from dboperator.operators.models import (
    CatalogColumnRow,
    CatalogTableRow,
    ColumnInfo,
    LogicDBInfo,
    TableColInfo,
    TableInfo,
)


def fold_tables(rows: Iterable[CatalogTableRow]) -> Dict[str, LogicDBInfo]:
    """Group table rows by schema.

    Example:
        >>> rows = [CatalogTableRow(table_schema="s1", table_name="t1"),
        ...         CatalogTableRow(table_schema="s1", table_name="t2")]
        >>> [t.table_name for t in fold_tables(rows)["s1"].table_info_list]
        ['t1', 't2']
    """
    result: Dict[str, LogicDBInfo] = {}
    for row in rows:
        table = TableInfo(table_name=row.table_name, comment=row.comments)
        logic_db = result.get(row.table_schema)
        if logic_db is None:
            result[row.table_schema] = LogicDBInfo(
                schema_name=row.table_schema, table_info_list=[table]
            )
        else:
            logic_db.table_info_list.append(table)
    return result


def _column(row: CatalogColumnRow) -> ColumnInfo:
    return ColumnInfo(
        column_name=row.column_name, data_type=row.data_type, comment=row.comments
    )


def fold_columns(
    rows: Iterable[CatalogColumnRow],
) -> Dict[str, Dict[str, TableColInfo]]:
    """Group column rows by schema, then by table."""
    result: Dict[str, Dict[str, TableColInfo]] = {}
    for row in rows:
        tables = result.get(row.table_schema)
        if tables is None:
            result[row.table_schema] = {
                row.table_name: TableColInfo(
                    table_name=row.table_name, column_info_list=[_column(row)]
                )
            }
            continue
        table = tables.get(row.table_name)
        if table is None:
            tables[row.table_name] = TableColInfo(
                table_name=row.table_name, column_info_list=[_column(row)]
            )
        else:
            table.column_info_list.append(_column(row))
    return result


def fold_table_columns(rows: Iterable[CatalogColumnRow]) -> Dict[str, TableColInfo]:
    """Group column rows by table, ignoring the schema."""
    result: Dict[str, TableColInfo] = {}
    for row in rows:
        table = result.get(row.table_name)
        if table is None:
            result[row.table_name] = TableColInfo(
                table_name=row.table_name, column_info_list=[_column(row)]
            )
        else:
            table.column_info_list.append(_column(row))
    return result
