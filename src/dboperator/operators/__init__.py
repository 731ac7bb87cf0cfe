"""Dialect operators for introspecting and querying registered databases.

This module provides one Operator per supported dialect behind a common
interface, and a registry that maps a dialect name to its operator.

Example:
    >>> from dboperator.operators import (
    ...     get_operator, list_operators, register_builtin_operators)
    >>> register_builtin_operators()
    >>> print(list_operators())
    ['postgres', 'sqlserver']
    >>> operator = get_operator("postgres")
    >>> tables = operator.get_tables_under_schema("main", ["public"])
"""

from dboperator.operators.base import Operator
from dboperator.operators.models import (
    ColumnInfo,
    LogicDBInfo,
    Pagination,
    TableColInfo,
    TableInfo,
)
from dboperator.operators.postgres import PostgresOperator
from dboperator.operators.registry import (
    OperatorRegistry,
    clear_registry,
    default_operator_registry,
    get_operator,
    list_operators,
    register_builtin_operators,
    register_ds,
)
from dboperator.operators.sqlserver import SqlServerOperator

__all__ = [
    "ColumnInfo",
    "LogicDBInfo",
    "Operator",
    "OperatorRegistry",
    "Pagination",
    "PostgresOperator",
    "SqlServerOperator",
    "TableColInfo",
    "TableInfo",
    "clear_registry",
    "default_operator_registry",
    "get_operator",
    "list_operators",
    "register_builtin_operators",
    "register_ds",
]
