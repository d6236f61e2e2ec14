"""
Completion messages delivered by the worker pool.
"""
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from sqlqueue.query import Query


@dataclass
class Message:
    """Notification that a queued statement finished.

    Success and failure messages have the same shape: `data` is empty on
    success and holds the UTF-8 error text on failure, or the exception class
    name when the error has no text. `error` carries the exception itself and
    `query` hands the work item, with its parameter and result buffers, back
    to the caller.
    """
    type: int
    data: bytes = b''
    error: BaseException | None = None
    query: 'Query | None' = field(default=None, repr=False)

    @classmethod
    def failure(cls, type: int, error: BaseException, query: 'Query | None' = None) -> 'Message':
        text = str(error) or error.__class__.__name__
        return cls(type=type, data=text.encode('utf-8'), error=error, query=query)

    @property
    def size(self) -> int:
        return len(self.data)

    @property
    def succeeded(self) -> bool:
        return self.error is None and not self.data

    @property
    def text(self) -> str:
        return self.data.decode('utf-8', errors='replace')
