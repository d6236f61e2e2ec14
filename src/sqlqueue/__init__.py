"""
Asynchronous SQL statement execution on a worker pool.

Statements are prepared against a connection and either executed
synchronously or queued; queued statements run on the connection's worker
threads and report back through a completion callback:

    with connect('sqlite', database='app.db', max_threads=2) as cn:
        insert = cn.statement('insert into point values (?, ?)', Point)
        insert.queue(Point(x=1, y=2), callback=on_done)
"""
__version__ = '0.1.0'

from sqlqueue.backend import SqlConnection, SqlStatement, connect
from sqlqueue.connection import Connection, TerminatePolicy
from sqlqueue.container import ResultContainer, ResultContainerBase
from sqlqueue.data import DataSet, FieldRef, Record, column
from sqlqueue.exceptions import BindingError, ConnectionFailure, DatabaseError
from sqlqueue.exceptions import DbConnectionError, ExecutionError
from sqlqueue.exceptions import IntegrityError, PoolError
from sqlqueue.message import Message
from sqlqueue.options import ConnectionOptions
from sqlqueue.query import EMPTY_CONTAINER, EMPTY_OUTPUT, EMPTY_SET, Output
from sqlqueue.query import Query
from sqlqueue.statement import Statement
from sqlqueue.types import FieldType, Nullable

__all__ = [
    'BindingError',
    'Connection',
    'ConnectionFailure',
    'ConnectionOptions',
    'DataSet',
    'DatabaseError',
    'DbConnectionError',
    'EMPTY_CONTAINER',
    'EMPTY_OUTPUT',
    'EMPTY_SET',
    'ExecutionError',
    'FieldRef',
    'FieldType',
    'IntegrityError',
    'Message',
    'Nullable',
    'Output',
    'PoolError',
    'Query',
    'Record',
    'ResultContainer',
    'ResultContainerBase',
    'SqlConnection',
    'SqlStatement',
    'Statement',
    'TerminatePolicy',
    'column',
    'connect',
]
