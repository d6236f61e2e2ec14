"""
Work items for the statement queue.
"""
from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from sqlqueue.container import ResultContainerBase
from sqlqueue.data import DataSet
from sqlqueue.message import Message

if TYPE_CHECKING:
    from sqlqueue.statement import Statement

__all__ = [
    'Output',
    'Query',
    'EMPTY_SET',
    'EMPTY_CONTAINER',
    'EMPTY_OUTPUT',
]

# Placeholders for arguments a statement does not use
EMPTY_SET = None
EMPTY_CONTAINER = None
EMPTY_OUTPUT = None


class Output:
    """Mutable box for a scalar written by a statement.

    Used for the last auto-increment insert id and the affected row count.
    """

    __slots__ = ('value',)

    def __init__(self, value: Any = None) -> None:
        self.value = value

    def __int__(self) -> int:
        if self.value is None:
            raise ValueError('output has not been written')
        return int(self.value)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Output):
            return self.value == other.value
        return self.value == other

    __hash__ = None

    def __repr__(self) -> str:
        return f'Output({self.value!r})'


@dataclass
class Query:
    """One queued statement execution request.

    The enqueuing thread hands its buffers over to the item and must not
    touch them until the callback has been called.
    """
    statement: 'Statement'
    parameters: DataSet | None = None
    results: ResultContainerBase | None = None
    insert_id: Output | None = None
    rows: Output | None = None
    callback: Callable[[Message], Any] | None = None

    def run(self) -> None:
        """Execute the statement synchronously on the calling thread."""
        self.statement.execute(self.parameters, self.results, self.insert_id, self.rows)
