"""Exception hierarchy for dboperator.

Every public operation raises one of these instead of leaking driver
exceptions. Driver failures are wrapped in DBConnectionError with the
original exception chained as ``__cause__``.
"""


class DBOperatorError(Exception):
    """Base class for all dboperator errors."""

    pass


class InvalidConfigError(DBOperatorError):
    """Database configuration is missing or unusable."""


class InvalidArgumentError(DBOperatorError):
    """A required name or list argument was empty."""


class NotFoundError(DBOperatorError):
    """No connection is registered under the logical name."""


class UnsupportedDialectError(DBOperatorError):
    """The database type is unknown or has no operator registered."""


class DuplicateRegistrationError(DBOperatorError):
    """An operator is already registered for the database type."""


class DBConnectionError(DBOperatorError):
    """Opening, pinging or executing against a database failed."""


class OperationCancelledError(DBOperatorError):
    """The execution context was cancelled or its deadline passed."""
