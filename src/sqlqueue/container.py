"""
Containers for multi-row statement results.

A ResultContainer holds records of a single DataSet type, appended one at a
time by the engine while it fetches rows. It is based on a linked sequence:
efficient appends and removal of the last element, forward and backward
iteration, no random access.
"""
import logging
from abc import ABC, abstractmethod
from collections import deque
from collections.abc import Iterator
from typing import Any, Generic, TypeVar

import pandas as pd
from sqlqueue.data import DataSet, Record
from sqlqueue.types import Nullable

__all__ = [
    'ResultContainerBase',
    'ResultContainer',
]

logger = logging.getLogger(__name__)

T = TypeVar('T', bound=DataSet)


class ResultContainerBase(ABC):
    """Type-erased view of a result container used by statements.

    Only one thread may mutate a container at a time. The worker executing
    a fetch is the sole writer until the completion callback fires.
    """

    def __init__(self) -> None:
        self._data: deque[DataSet] = deque()

    @property
    @abstractmethod
    def record_type(self) -> type[DataSet]:
        """Concrete DataSet type manufactured by this container."""

    @abstractmethod
    def manufacture(self) -> DataSet:
        """Append a new default record and return it."""

    def trim(self) -> None:
        """Remove the most recently appended record.

        Used to undo a speculative append when a row turns out invalid.
        """
        if not self._data:
            raise IndexError('trim from an empty result container')
        self._data.pop()

    def size(self) -> int:
        return len(self._data)

    def empty(self) -> bool:
        return not self._data

    def __len__(self) -> int:
        return len(self._data)

    def __bool__(self) -> bool:
        return bool(self._data)


class ResultContainer(ResultContainerBase, Generic[T]):
    """Container of records of one concrete type.

    >>> from dataclasses import dataclass
    >>> from sqlqueue.data import Record, column
    >>> from sqlqueue.types import FieldType
    >>> @dataclass
    ... class Point(Record):
    ...     x: int = column(FieldType.INT)
    >>> points = ResultContainer(Point)
    >>> points.manufacture().x = 3
    >>> [p.x for p in points]
    [3]
    """

    def __init__(self, record_type: type[T]) -> None:
        super().__init__()
        if not (isinstance(record_type, type) and issubclass(record_type, DataSet)):
            raise TypeError(f'{record_type!r} is not a DataSet type')
        self._record_type = record_type

    @property
    def record_type(self) -> type[T]:
        return self._record_type

    def manufacture(self) -> T:
        record = self._record_type()
        self._data.append(record)
        return record

    def front(self) -> T:
        if not self._data:
            raise IndexError('front of an empty result container')
        return self._data[0]

    def back(self) -> T:
        if not self._data:
            raise IndexError('back of an empty result container')
        return self._data[-1]

    def __iter__(self) -> Iterator[T]:
        return iter(self._data)

    def __reversed__(self) -> Iterator[T]:
        return reversed(self._data)

    def __repr__(self) -> str:
        return f'ResultContainer({self._record_type.__name__}, size={len(self._data)})'

    def to_dicts(self) -> list[dict[str, Any]]:
        """Records as dictionaries keyed by field name.

        Hand-written DataSets without names are keyed by field index.
        """
        if issubclass(self._record_type, Record):
            return [record.to_dict() for record in self._data]
        return [
            {index: _unwrap(record.get_field(index)) for index in range(record.field_count())}
            for record in self._data
        ]

    def to_frame(self) -> pd.DataFrame:
        """Records as a DataFrame with one column per field.

        Always returns a DataFrame, with columns preserved when empty.
        """
        if issubclass(self._record_type, Record):
            columns = self._record_type.field_names()
        elif self._data:
            columns = list(range(self._data[0].field_count()))
        else:
            columns = []
        df = pd.DataFrame.from_records(self.to_dicts(), columns=columns)
        logger.debug(f'Loaded {len(df)} {self._record_type.__name__} rows into DataFrame')
        return df


def _unwrap(value: Any) -> Any:
    if isinstance(value, Nullable):
        return value.get()
    return value
