"""
Statement interface shared by every backend.
"""
from abc import ABC, abstractmethod
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

from sqlqueue.container import ResultContainerBase
from sqlqueue.data import DataSet
from sqlqueue.message import Message
from sqlqueue.query import Output

if TYPE_CHECKING:
    from sqlqueue.connection import Connection


class Statement(ABC):
    """A prepared, parameterized operation bound to a connection.

    Statements can be executed synchronously with execute() or queued for
    execution on the connection's worker pool with queue().
    """

    def __init__(self, connection: 'Connection') -> None:
        self.connection = connection

    @abstractmethod
    def execute(self, parameters: DataSet | None = None,
                results: ResultContainerBase | None = None,
                insert_id: Output | None = None,
                rows: Output | None = None) -> None:
        """Synchronously execute the statement.

        Args:
            parameters: Record bound to the statement parameters, or None
            results: Container receiving one record per result row, or None
            insert_id: Output receiving the last auto-increment insert value, or None
            rows: Output receiving the number of rows affected/fetched, or None

        Raises
            ExecutionError: If the backend fails to execute the statement
            BindingError: If a record breaks the binding contract
        """

    def queue(self, parameters: DataSet | None = None,
              results: ResultContainerBase | None = None,
              insert_id: Output | None = None,
              rows: Output | None = None,
              callback: Callable[[Message], Any] | None = None) -> None:
        """Asynchronously execute the statement.

        Queues the statement on the owning connection and returns
        immediately. The arguments follow execute(); ownership of them passes
        to the queue until `callback` is called with the completion Message.
        Errors are never raised here, they arrive in the Message.
        """
        self.connection.queue(self, parameters, results, insert_id, rows, callback)
