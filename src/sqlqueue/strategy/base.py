"""
Base strategy interface for dialect-specific statement execution.

The strategy pattern encapsulates what differs between backends: how an
engine is built from options, which placeholder style the driver expects,
how bound values are handed to the driver and how the last auto-increment
id is read back. SqlStatement works with any backend through this interface.
"""
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any

from sqlqueue.sql import standardize_placeholders
from sqlqueue.types import FieldType

if TYPE_CHECKING:
    from sqlqueue.options import ConnectionOptions

# Registry of dialect name -> strategy class
# Defined here to avoid circular imports (concrete strategies import from base)
_STRATEGY_REGISTRY: dict[str, type['DatabaseStrategy']] = {}


def register_strategy(dialect: str):
    """Decorator to register a strategy class for a dialect.

    Usage:
        @register_strategy('postgresql')
        class PostgresStrategy(DatabaseStrategy):
            ...
    """
    def decorator(cls: type['DatabaseStrategy']) -> type['DatabaseStrategy']:
        _STRATEGY_REGISTRY[dialect] = cls
        return cls
    return decorator


class DatabaseStrategy(ABC):
    """Base class for database-specific operations.
    """

    @property
    @abstractmethod
    def dialect_name(self) -> str:
        """Return the dialect identifier."""

    @abstractmethod
    def build_connection_url(self, options: 'ConnectionOptions') -> str:
        """Build the SQLAlchemy connection URL.

        Args:
            options: ConnectionOptions with connection parameters

        Returns
            str: SQLAlchemy URL string
        """

    @abstractmethod
    def get_engine_kwargs(self, options: 'ConnectionOptions') -> dict[str, Any]:
        """Return dialect-specific create_engine kwargs.

        Args:
            options: ConnectionOptions with connection parameters

        Returns
            dict: Keyword arguments merged into the create_engine call
        """

    @abstractmethod
    def last_insert_id(self, raw_conn: Any, cursor: Any) -> int | None:
        """Read the last auto-increment value produced on a connection.

        Called after the statement has been committed, before the cursor is
        closed.

        Args:
            raw_conn: DBAPI connection the statement ran on
            cursor: DBAPI cursor the statement ran on

        Returns
            The id, or None if the connection has produced none
        """

    @classmethod
    @abstractmethod
    def get_required_options(cls) -> list[str]:
        """Return list of required option field names for this dialect.

        Returns
            List of field names that must have non-None/non-zero values
        """

    @classmethod
    def validate_options(cls, options: 'ConnectionOptions') -> None:
        """Validate options for this dialect.

        Args:
            options: ConnectionOptions to validate

        Raises
            ValueError: If any required field is None or 0
        """
        for field in cls.get_required_options():
            if not getattr(options, field):
                raise ValueError(f'field {field} cannot be None or 0')

    def adapt_param(self, field_type: FieldType, value: Any) -> Any:
        """Adapt a converted, non-null parameter value for the driver.

        Default implementation passes values through unchanged.
        """
        return value

    def get_placeholder_style(self) -> str:
        """Return the positional placeholder used by the driver."""
        return '%s'

    def standardize_sql(self, sql: str) -> str:
        """Convert placeholders in SQL to `get_placeholder_style()`.

        Args:
            sql: SQL string potentially containing placeholders

        Returns
            str: SQL string with placeholders converted to this dialect's style
        """
        return standardize_placeholders(sql, self.get_placeholder_style())
