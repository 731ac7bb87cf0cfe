"""Operator registry mapping a dialect to its operator instance.

The lookup table is built explicitly at start-up with
:func:`register_builtin_operators`; nothing registers itself on import.
Registering the same dialect twice is an error, never a silent overwrite.

The module-level functions operate on a default registry that starts
empty; call ``register_builtin_operators()`` once at start-up to fill it.
"""

import threading
from typing import Dict, List, Optional, Union

from dboperator.dbx.registry import ConnectionRegistry
from dboperator.errors import DuplicateRegistrationError, UnsupportedDialectError
from dboperator.global_models import DBType
from dboperator.operators.base import Operator
from dboperator.operators.postgres import PostgresOperator
from dboperator.operators.sqlserver import SqlServerOperator


class OperatorRegistry:
    """Lookup table from DBType to Operator.

    Writes are locked so that two concurrent registrations of one dialect
    cannot both succeed. Reads after start-up need no coordination.
    """

    def __init__(self) -> None:
        self._operators: Dict[DBType, Operator] = {}
        self._lock = threading.Lock()

    def register(self, db_type: Union[DBType, str], operator: Operator) -> None:
        """Register ``operator`` for ``db_type``.

        Raises:
            UnsupportedDialectError: If db_type is not a known dialect.
            DuplicateRegistrationError: If db_type already has an operator.
            ValueError: If operator is not an Operator instance.
        """
        key = DBType.parse(db_type)
        if not isinstance(operator, Operator):
            raise ValueError(f"{operator!r} must be an Operator instance")

        with self._lock:
            if key in self._operators:
                raise DuplicateRegistrationError(
                    f"Operator for '{key.value}' is already registered"
                )
            self._operators[key] = operator

    def get(self, db_type: Union[DBType, str]) -> Operator:
        """Return the operator registered for ``db_type``.

        Raises:
            UnsupportedDialectError: If db_type is unknown or unregistered.
        """
        key = DBType.parse(db_type)
        operator = self._operators.get(key)
        if operator is None:
            available = ", ".join(self.list())
            raise UnsupportedDialectError(
                f"No operator registered for '{key.value}'. "
                f"Available operators: {available or 'none'}"
            )
        return operator

    def list(self) -> List[str]:
        """Return the registered dialect names, sorted."""
        return sorted(key.value for key in self._operators)

    def clear(self) -> None:
        """Remove every registration."""
        with self._lock:
            self._operators.clear()


def register_builtin_operators(
    registry: Optional[OperatorRegistry] = None,
    connections: Optional[ConnectionRegistry] = None,
) -> OperatorRegistry:
    """Register the bundled PostgreSQL and SQL Server operators.

    Args:
        registry: Registry to populate; defaults to the process-wide one.
        connections: Connection registry for the operators; defaults to the
            process-wide one.

    Returns:
        The populated registry, for chaining.

    Raises:
        DuplicateRegistrationError: If either dialect is already registered.
    """
    registry = registry if registry is not None else _default_registry
    registry.register(DBType.POSTGRES, PostgresOperator(connections))
    registry.register(DBType.SQLSERVER, SqlServerOperator(connections))
    return registry


_default_registry = OperatorRegistry()


def default_operator_registry() -> OperatorRegistry:
    """Return the process-wide operator registry."""
    return _default_registry


def register_ds(db_type: Union[DBType, str], operator: Operator) -> None:
    """Register an operator in the default registry.

    Raises:
        DuplicateRegistrationError: If db_type already has an operator.
    """
    _default_registry.register(db_type, operator)


def get_operator(db_type: Union[DBType, str]) -> Operator:
    """Get the operator for a dialect from the default registry.

    Example:
        >>> register_builtin_operators()
        >>> operator = get_operator("postgres")
        >>> operator.get_tables_under_db("main")
    """
    return _default_registry.get(db_type)


def list_operators() -> List[str]:
    """List the dialects registered in the default registry."""
    return _default_registry.list()


def clear_registry() -> None:
    """Remove every operator from the default registry.

    This is primarily useful for testing.
    """
    _default_registry.clear()
