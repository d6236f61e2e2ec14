"""
Exception classes for statement binding, execution and the worker pool.
"""
import re
import sqlite3

import psycopg

RETRYABLE_PATTERNS = [
    # SSL/TLS errors
    r'ssl',
    r'tls',
    # Connection drops
    r'connection.*(closed|reset|refused|lost|terminated|broken)',
    r'server closed',
    r'eof detected',
    r'broken pipe',
    r'connection reset',
    # Timeouts
    r'timeout',
    r'timed out',
    # Network issues
    r'could not connect',
    r'no route to host',
    r'network.*(unreachable|error)',
    r'host.*(unreachable|down)',
    # Database unavailable
    r'database.*unavailable',
    r'database is locked',
    r'too many connections',
]

_RETRYABLE_REGEX = re.compile('|'.join(RETRYABLE_PATTERNS), re.IGNORECASE)


def is_retryable_error(exc: BaseException) -> bool:
    """Check if an exception represents a transient error worth retrying.

    Returns True for errors that are likely transient and may succeed on retry:
    - SSL/TLS errors
    - Connection drops/resets
    - Timeouts
    - Network issues
    - Database temporarily unavailable or locked

    Returns False for errors that will definitely fail again, such as syntax
    errors, missing tables and constraint violations.

    :param exc: The exception to check.
    :returns: True if the error is likely transient and worth retrying.
    """
    error_msg = str(exc).lower()
    return bool(_RETRYABLE_REGEX.search(error_msg))


class DatabaseError(Exception):
    """Base class for all sqlqueue errors.
    """


class ConnectionFailure(DatabaseError):
    """Error establishing or maintaining a database connection.
    """


class BindingError(DatabaseError):
    """A record broke the binding contract.

    Raised for out-of-range field indexes, nullable kinds not backed by a
    Nullable, fixed-size kinds without a size, values outside a field's
    domain and statements bound to the wrong record type. These are
    programming errors, not runtime conditions.
    """


class ExecutionError(DatabaseError):
    """The backend failed to execute a statement.

    The string form is the backend's own error text.
    """


class PoolError(DatabaseError):
    """The worker pool could not be brought up.
    """


DbConnectionError = (
    psycopg.OperationalError,
    psycopg.InterfaceError,
    sqlite3.OperationalError,
    sqlite3.InterfaceError,
    ConnectionFailure,
    )

IntegrityError = (
    psycopg.IntegrityError,
    sqlite3.IntegrityError,
    )

DriverError = (
    psycopg.Error,
    sqlite3.Error,
    )
