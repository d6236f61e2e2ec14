"""
SQLite-specific strategy implementation.

SQLite has no native temporal storage: times, dates and datetimes are bound
as ISO 8601 text and parsed back when results are read. Bits are stored as
integers.
"""
import logging
from typing import TYPE_CHECKING, Any

from sqlalchemy.pool import StaticPool
from sqlqueue.strategy.base import DatabaseStrategy, register_strategy
from sqlqueue.types import FieldType

if TYPE_CHECKING:
    from sqlqueue.options import ConnectionOptions

logger = logging.getLogger(__name__)

MEMORY_DATABASE = ':memory:'


@register_strategy('sqlite')
class SQLiteStrategy(DatabaseStrategy):
    """SQLite-specific operations.
    """

    @property
    def dialect_name(self) -> str:
        """Return the dialect identifier for SQLite."""
        return 'sqlite'

    def build_connection_url(self, options: 'ConnectionOptions') -> str:
        """Build the SQLAlchemy connection URL for SQLite."""
        return f'sqlite:///{options.database}'

    def get_engine_kwargs(self, options: 'ConnectionOptions') -> dict[str, Any]:
        """Return SQLAlchemy create_engine kwargs for SQLite.

        Worker threads share pooled connections, so the same-thread check is
        disabled. An in-memory database exists once per DBAPI connection;
        a single static connection keeps every worker on the same one.
        """
        kwargs: dict[str, Any] = {'connect_args': {'check_same_thread': False}}
        if options.database == MEMORY_DATABASE:
            logger.debug('In-memory SQLite database: sharing one connection across workers')
            kwargs['poolclass'] = StaticPool
        return kwargs

    def last_insert_id(self, raw_conn: Any, cursor: Any) -> int | None:
        """Return the rowid of the last inserted row."""
        return cursor.lastrowid

    def adapt_param(self, field_type: FieldType, value: Any) -> Any:
        """Store temporal values as ISO 8601 text and bits as integers."""
        kind = field_type.base
        if kind is FieldType.DATETIME:
            return value.isoformat(sep=' ')
        if kind in {FieldType.DATE, FieldType.TIME}:
            return value.isoformat()
        if kind is FieldType.BIT:
            return int(value)
        return value

    def get_placeholder_style(self) -> str:
        """SQLite uses ? placeholders."""
        return '?'

    @classmethod
    def get_required_options(cls) -> list[str]:
        """Return required options for SQLite connections."""
        return ['database']
