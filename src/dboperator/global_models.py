"""Shared models and enums used across dboperator modules."""

from enum import Enum
from typing import Union

from dboperator.errors import UnsupportedDialectError


class DBType(str, Enum):
    """Supported database dialects."""

    MYSQL = "mysql"
    POSTGRES = "postgres"
    ORACLE = "oracle"
    SQLSERVER = "sqlserver"

    @classmethod
    def parse(cls, value: Union["DBType", str]) -> "DBType":
        """Resolve a dialect identifier to a DBType member.

        Args:
            value: A DBType member or its string value (case-insensitive).

        Returns:
            The matching DBType.

        Raises:
            UnsupportedDialectError: If the value names no known dialect.
        """
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            supported = ", ".join(member.value for member in cls)
            raise UnsupportedDialectError(
                f"Unsupported db type '{value}'. Supported types: {supported}"
            ) from None
