"""
PostgreSQL-specific strategy implementation.

psycopg adapts temporal and binary values natively, so bound values pass
through unchanged. The last insert id is the session's `lastval()`.
"""
import logging
from typing import TYPE_CHECKING, Any

import psycopg
from sqlqueue.strategy.base import DatabaseStrategy, register_strategy

if TYPE_CHECKING:
    from sqlqueue.options import ConnectionOptions

logger = logging.getLogger(__name__)


@register_strategy('postgresql')
class PostgresStrategy(DatabaseStrategy):
    """PostgreSQL-specific operations.
    """

    @property
    def dialect_name(self) -> str:
        """Return the dialect identifier for PostgreSQL."""
        return 'postgresql'

    def build_connection_url(self, options: 'ConnectionOptions') -> str:
        """Build the SQLAlchemy connection URL for PostgreSQL."""
        query_parts = []
        if options.timeout:
            query_parts.append(f'connect_timeout={options.timeout}')
        if options.appname:
            query_parts.append(f'application_name={options.appname}')

        url = (f'postgresql+psycopg://{options.username}:{options.password}'
               f'@{options.hostname}:{options.port}/{options.database}')

        if query_parts:
            url += '?' + '&'.join(query_parts)

        return url

    def get_engine_kwargs(self, options: 'ConnectionOptions') -> dict[str, Any]:
        """Return SQLAlchemy create_engine kwargs for PostgreSQL."""
        return {}

    def last_insert_id(self, raw_conn: Any, cursor: Any) -> int | None:
        """Return the session's lastval(), or None before any sequence use.

        lastval() survives the commit, so it is read on a fresh cursor whose
        transaction is rolled back afterwards.
        """
        lastval_cursor = raw_conn.cursor()
        try:
            lastval_cursor.execute('SELECT lastval()')
            row = lastval_cursor.fetchone()
            return row[0] if row else None
        except psycopg.errors.ObjectNotInPrerequisiteState:
            logger.debug('lastval is not yet defined in this session')
            return None
        finally:
            lastval_cursor.close()
            raw_conn.rollback()

    @classmethod
    def get_required_options(cls) -> list[str]:
        """Return required options for PostgreSQL connections."""
        return ['hostname', 'username', 'password', 'database', 'port', 'timeout']
