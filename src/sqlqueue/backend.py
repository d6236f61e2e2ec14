"""
Database-backed statements and connections with SQLAlchemy.

This module provides:
1. The `connect()` function for creating a queued connection from options
2. The `SqlConnection` class, a worker pool bound to a SQLAlchemy engine
3. The `SqlStatement` class executing one prepared SQL statement
4. Engine creation and management through a thread-safe registry
5. The `check_connection` retry decorator for transient connection errors

Statements run on pooled DBAPI connections (`engine.raw_connection()`), one
checkout per execution, so any number of worker threads can execute
statements of the same connection concurrently. An engine whose pool holds a
single shared DBAPI connection (in-memory SQLite) runs one statement at a time.
"""
import atexit
import contextlib
import logging
import threading
import time
from collections.abc import Callable, Sequence
from dataclasses import fields
from functools import wraps
from typing import Any, TypeVar

import sqlalchemy as sa
from sqlalchemy.engine import Engine
from sqlalchemy.pool import StaticPool
from sqlqueue.adapters import bind_parameters, bind_row
from sqlqueue.connection import Connection
from sqlqueue.container import ResultContainerBase
from sqlqueue.data import DataSet, Record
from sqlqueue.exceptions import BindingError, DbConnectionError, DriverError
from sqlqueue.exceptions import ExecutionError, is_retryable_error
from sqlqueue.options import ConnectionOptions
from sqlqueue.query import Output
from sqlqueue.sql import count_placeholders, has_named_placeholders
from sqlqueue.statement import Statement
from sqlqueue.strategy import DatabaseStrategy, get_strategy
from sqlqueue.utils import rollback_quietly

from libb import load_options

__all__ = [
    'SqlConnection',
    'SqlStatement',
    'connect',
    'check_connection',
    'dumpsql',
    'create_url_from_options',
    'get_engine_for_options',
    'dispose_all_engines',
]

logger = logging.getLogger(__name__)

T = TypeVar('T')
_engine_registry: dict[str, Engine] = {}
_engine_registry_lock = threading.RLock()


def create_url_from_options(options: ConnectionOptions) -> sa.URL:
    """Convert ConnectionOptions to SQLAlchemy URL.
    """
    strategy = get_strategy(options.drivername)
    return sa.make_url(strategy.build_connection_url(options))


def check_connection(func: Callable[..., T] | None = None, *, max_retries: int = 3,
                     retry_delay: float = 1, retry_errors: type | tuple[type, ...] | None = None,
                     retry_backoff: float = 1.5,
                     retry_if: Callable[[BaseException], bool] = is_retryable_error,
                     sleep_func: Callable[[float], None] = time.sleep) -> Callable[..., T]:
    """Connection retry decorator with backoff.

    Retries the wrapped call when it raises one of `retry_errors` (default:
    DbConnectionError) and `retry_if` classifies the error as transient.
    Anything else propagates on the first attempt.

    Supports both @check_connection and @check_connection() syntax.
    """
    def decorator(f: Callable[..., T]) -> Callable[..., T]:
        @wraps(f)
        def inner(*args: Any, **kwargs: Any) -> T:
            error_types = retry_errors if retry_errors is not None else DbConnectionError

            tries = 0
            delay = retry_delay
            while True:
                try:
                    return f(*args, **kwargs)
                except error_types as err:
                    if not retry_if(err):
                        raise
                    tries += 1
                    if tries >= max_retries:
                        logger.error(f'Maximum retries ({max_retries}) exceeded: {err}')
                        raise
                    logger.warning(f'Connection error (attempt {tries}/{max_retries}): {err}')
                    sleep_func(delay)
                    delay *= retry_backoff

        return inner

    if func is None:
        return decorator
    return decorator(func)


def dumpsql(func):
    """Decorator for logging statement SQL, parameters and timing."""
    @wraps(func)
    def wrapper(self: 'SqlStatement', params: Sequence[Any], *args: Any, **kwargs: Any):
        start = time.time()
        logger.debug(f'SQL:\n{self.sql}\nargs: {params}')
        try:
            return func(self, params, *args, **kwargs)
        except Exception:
            logger.error(f'Error with query:\nSQL:\n{self.sql}\nargs: {params}')
            raise
        finally:
            elapsed = time.time() - start
            self.connection.addcall(elapsed)
            logger.debug(f'Query time: {elapsed:.4f}s')
    return wrapper


def get_engine_for_options(options: ConnectionOptions,
                           engine_factory: Callable[..., Engine] = sa.create_engine,
                           **kwargs: Any) -> Engine:
    """Get or create a SQLAlchemy engine for the given options.

    The pool is sized to at least `max_threads` so every worker can hold a
    connection at the same time.
    """
    key = str(options)

    with _engine_registry_lock:
        if key in _engine_registry:
            logger.debug(f'Using existing engine for {options.drivername}')
            return _engine_registry[key]

        url = create_url_from_options(options)
        strategy = get_strategy(options.drivername)

        engine_kwargs: dict[str, Any] = {'echo': False}
        engine_kwargs.update(strategy.get_engine_kwargs(options))

        if 'poolclass' not in engine_kwargs:
            engine_kwargs['pool_size'] = max(options.pool_size, options.max_threads)
            engine_kwargs['pool_recycle'] = options.pool_recycle
            engine_kwargs['pool_timeout'] = options.pool_timeout
            engine_kwargs['pool_pre_ping'] = True

        engine_kwargs.update(kwargs)

        engine = engine_factory(url, **engine_kwargs)

        _engine_registry[key] = engine
        logger.debug(f'Created new engine for {options.drivername}')

        return engine


def dispose_all_engines() -> None:
    """Dispose all engines in the registry.
    """
    with _engine_registry_lock:
        for engine in list(_engine_registry.values()):
            engine.dispose()
        _engine_registry.clear()
        logger.debug('All database engines disposed')


atexit.register(dispose_all_engines)


class SqlConnection(Connection):
    """Worker pool executing SqlStatements against one database.

    Examples
        with connect('sqlite', database='app.db', max_threads=2) as cn:
            insert = cn.statement('insert into point values (?, ?)', Point)
            insert.queue(Point(x=1, y=2), callback=on_done)
    """

    def __init__(self, engine: Engine, options: ConnectionOptions,
                 sleep_func: Callable[[float], None] = time.sleep,
                 **kwargs: Any) -> None:
        super().__init__(message_type=options.message_type,
                         max_threads=options.max_threads,
                         terminate_policy=options.terminate_policy,
                         **kwargs)
        self.engine = engine
        self.options = options
        self.sleep_func = sleep_func
        if self.shares_connection:
            self.round_trip_lock = threading.Lock()
        else:
            self.round_trip_lock = contextlib.nullcontext()

    @property
    def dialect(self) -> str:
        return self.options.drivername

    @property
    def strategy(self) -> DatabaseStrategy:
        return get_strategy(self.dialect)

    @property
    def shares_connection(self) -> bool:
        """Whether every checkout returns the same DBAPI connection.

        Transactions on a shared connection would interleave across workers,
        so statements then hold `round_trip_lock` for their whole round trip.
        """
        return isinstance(self.engine.pool, StaticPool)

    def statement(self, sql: str, parameter_type: type[DataSet] | None = None,
                  result_type: type[DataSet] | None = None) -> 'SqlStatement':
        """Prepare a statement executed on this connection.
        """
        return SqlStatement(self, sql, parameter_type, result_type)

    def dispose(self) -> None:
        """Close the engine's pooled DBAPI connections.

        The engine stays usable and reconnects on the next statement.
        """
        self.engine.dispose()
        logger.debug(f'Disposed engine for {self.dialect}')

    def __repr__(self) -> str:
        return (f'SqlConnection(dialect={self.dialect!r}, threads={self.threads}/'
                f'{self.max_threads}, pending={self.pending})')


class SqlStatement(Statement):
    """One prepared SQL statement with positional placeholders.

    The SQL is prepared once: placeholders are converted to the dialect's
    style and counted. Parameters come from the fields of a parameter record
    in field order, results are written one record per row.
    """

    def __init__(self, connection: SqlConnection, sql: str,
                 parameter_type: type[DataSet] | None = None,
                 result_type: type[DataSet] | None = None) -> None:
        super().__init__(connection)
        if has_named_placeholders(sql):
            raise BindingError('Named placeholders are not supported, use positional placeholders')

        self.strategy = connection.strategy
        self.sql = self.strategy.standardize_sql(sql)
        self.placeholders = count_placeholders(self.sql)
        self.parameter_type = parameter_type
        self.result_type = result_type

        if isinstance(parameter_type, type) and issubclass(parameter_type, Record):
            field_count = len(parameter_type.descriptors())
            if field_count != self.placeholders:
                raise BindingError(
                    f'{parameter_type.__name__} binds {field_count} fields but the '
                    f'statement has {self.placeholders} placeholders')

    def __repr__(self) -> str:
        return f'SqlStatement({self.sql!r})'

    def _check_parameters(self, parameters: DataSet | None) -> None:
        if parameters is None:
            if self.placeholders:
                raise BindingError(f'Statement has {self.placeholders} placeholders but no parameters')
            return
        if self.parameter_type is not None and not isinstance(parameters, self.parameter_type):
            raise BindingError(
                f'Parameters must be {self.parameter_type.__name__}, '
                f'got {type(parameters).__name__}')
        if parameters.field_count() != self.placeholders:
            raise BindingError(
                f'{type(parameters).__name__} binds {parameters.field_count()} fields but the '
                f'statement has {self.placeholders} placeholders')

    def _check_results(self, results: ResultContainerBase | None) -> None:
        if results is None or self.result_type is None:
            return
        if results.record_type is not self.result_type:
            raise BindingError(
                f'Results must hold {self.result_type.__name__}, '
                f'got {results.record_type.__name__}')

    def execute(self, parameters: DataSet | None = None,
                results: ResultContainerBase | None = None,
                insert_id: Output | None = None,
                rows: Output | None = None) -> None:
        """Synchronously execute the statement.

        Raises
            BindingError: If a record breaks the binding contract
            ExecutionError: If the database rejects the statement
        """
        self._check_parameters(parameters)
        self._check_results(results)
        params = bind_parameters(parameters, self.strategy.adapt_param)

        options = self.connection.options
        run = check_connection(max_retries=options.max_retries,
                               retry_delay=options.retry_delay,
                               retry_backoff=options.retry_backoff,
                               sleep_func=self.connection.sleep_func)(self._run)
        try:
            fetched, rowcount, last_id = run(params, insert_id is not None)
        except (*DriverError, sa.exc.SQLAlchemyError) as err:
            raise ExecutionError(str(err)) from err

        if results is not None and fetched is not None:
            self._populate(results, fetched)

        if rows is not None:
            rows.value = len(fetched) if fetched is not None else rowcount
        if insert_id is not None:
            insert_id.value = last_id

    @dumpsql
    def _run(self, params: Sequence[Any], want_insert_id: bool) -> tuple[list | None, int, int | None]:
        """Run the SQL on a pooled connection and commit.

        Returns
            Fetched rows (None when the statement produces no result set),
            the driver rowcount and the last insert id if requested
        """
        with self.connection.round_trip_lock:
            raw_conn = self.connection.engine.raw_connection()
            try:
                cursor = raw_conn.cursor()
                try:
                    if params:
                        cursor.execute(self.sql, params)
                    else:
                        cursor.execute(self.sql)
                    fetched = cursor.fetchall() if cursor.description is not None else None
                    rowcount = cursor.rowcount
                    raw_conn.commit()
                    last_id = self.strategy.last_insert_id(raw_conn, cursor) if want_insert_id else None
                finally:
                    cursor.close()
            except Exception:
                rollback_quietly(raw_conn)
                raise
            finally:
                raw_conn.close()
        return fetched, rowcount, last_id

    def _populate(self, results: ResultContainerBase, fetched: list) -> None:
        for row in fetched:
            record = results.manufacture()
            try:
                bind_row(record, row)
            except Exception:
                results.trim()
                raise


@load_options(cls=ConnectionOptions)
def connect(options: ConnectionOptions | dict[str, Any] | str,
            config: Any | None = None, **kw: Any) -> SqlConnection:
    """Create a queued connection to a database.

    Args:
        options: Can be:
                - ConnectionOptions object
                - String path to configuration
                - Dictionary of options
                - Options specified as keyword arguments
        config: Configuration object (for loading from config files)
        **kw: Additional keyword arguments to override options

    Worker threads are not started until `start()` is called or the
    connection is used as a context manager.

    Returns
        SqlConnection bound to a (possibly shared) SQLAlchemy engine
    """
    if isinstance(options, ConnectionOptions):
        for field in fields(options):
            kw.pop(field.name, None)
    else:
        options_func = load_options(cls=ConnectionOptions)(lambda o, c: o)
        options = options_func(options, config, **kw)

    engine = get_engine_for_options(options)
    logger.debug(f'Connected to {options.drivername} database {options.database}')
    return SqlConnection(engine, options)
