"""dboperator - one API for connecting to and introspecting SQL databases."""

from dboperator.context import ExecutionContext
from dboperator.dbx import ConnectionRegistry, DBConfig, DBHandle
from dboperator.errors import (
    DBConnectionError,
    DBOperatorError,
    DuplicateRegistrationError,
    InvalidArgumentError,
    InvalidConfigError,
    NotFoundError,
    OperationCancelledError,
    UnsupportedDialectError,
)
from dboperator.global_models import DBType
from dboperator.operators import (
    Operator,
    OperatorRegistry,
    Pagination,
    get_operator,
    register_builtin_operators,
    register_ds,
)

__version__ = "0.1.0"

__all__ = [
    "ConnectionRegistry",
    "DBConfig",
    "DBConnectionError",
    "DBHandle",
    "DBOperatorError",
    "DBType",
    "DuplicateRegistrationError",
    "ExecutionContext",
    "InvalidArgumentError",
    "InvalidConfigError",
    "NotFoundError",
    "OperationCancelledError",
    "Operator",
    "OperatorRegistry",
    "Pagination",
    "UnsupportedDialectError",
    "get_operator",
    "register_builtin_operators",
    "register_ds",
]
