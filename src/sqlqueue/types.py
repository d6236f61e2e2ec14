"""
Field types and value domains for bindable records.

This module provides:
- FieldType: runtime identification of every bindable value domain
- Nullable: a value wrapped with an explicit null flag
- Value domain tables: Python types and integer bounds per kind
- Temporal converters for ISO 8601 text coming back from drivers
"""
import datetime
import logging
from enum import IntEnum
from typing import Any, Generic, TypeVar

import dateutil.parser

logger = logging.getLogger(__name__)

T = TypeVar('T')

_NULLABLE_OFFSET = 19


class FieldType(IntEnum):
    """Supported field kinds.

    Kinds starting with ``U_`` are unsigned, kinds ending in ``_N`` may hold
    null values and must be backed by a :class:`Nullable`.
    """
    U_TINY = 0
    U_SHORT = 1
    U_INT = 2
    U_BIGINT = 3
    TINY = 4
    SHORT = 5
    INT = 6
    BIGINT = 7
    FLOAT = 8
    DOUBLE = 9
    TIME = 10
    DATE = 11
    DATETIME = 12
    BLOB = 13
    TEXT = 14
    WTEXT = 15
    CHAR = 16
    BINARY = 17
    BIT = 18
    U_TINY_N = 19
    U_SHORT_N = 20
    U_INT_N = 21
    U_BIGINT_N = 22
    TINY_N = 23
    SHORT_N = 24
    INT_N = 25
    BIGINT_N = 26
    FLOAT_N = 27
    DOUBLE_N = 28
    TIME_N = 29
    DATE_N = 30
    DATETIME_N = 31
    BLOB_N = 32
    TEXT_N = 33
    WTEXT_N = 34
    CHAR_N = 35
    BINARY_N = 36
    BIT_N = 37
    NOTHING = 38

    @property
    def nullable(self) -> bool:
        """True for kinds that may hold null values."""
        return _NULLABLE_OFFSET <= self < FieldType.NOTHING

    @property
    def base(self) -> 'FieldType':
        """The non-nullable counterpart of this kind."""
        if self.nullable:
            return FieldType(self - _NULLABLE_OFFSET)
        return self

    @property
    def as_nullable(self) -> 'FieldType':
        """The nullable counterpart of this kind."""
        if self is FieldType.NOTHING:
            raise ValueError('NOTHING has no nullable counterpart')
        if self.nullable:
            return self
        return FieldType(self + _NULLABLE_OFFSET)

    @property
    def fixed_size(self) -> bool:
        """True for kinds whose storage has a fixed byte size."""
        return self.base in {FieldType.CHAR, FieldType.BINARY}

    @property
    def integer(self) -> bool:
        return self.base in integer_bounds

    @property
    def python_type(self) -> type | None:
        """Python type of values stored in fields of this kind."""
        return python_types.get(self.base)

    @property
    def bounds(self) -> tuple[int, int] | None:
        """Inclusive (min, max) range for integer kinds."""
        return integer_bounds.get(self.base)


def _signed(bits: int) -> tuple[int, int]:
    return -(1 << (bits - 1)), (1 << (bits - 1)) - 1


def _unsigned(bits: int) -> tuple[int, int]:
    return 0, (1 << bits) - 1


integer_bounds: dict[FieldType, tuple[int, int]] = {
    FieldType.U_TINY: _unsigned(8),
    FieldType.U_SHORT: _unsigned(16),
    FieldType.U_INT: _unsigned(32),
    FieldType.U_BIGINT: _unsigned(64),
    FieldType.TINY: _signed(8),
    FieldType.SHORT: _signed(16),
    FieldType.INT: _signed(32),
    FieldType.BIGINT: _signed(64),
}

python_types: dict[FieldType, type] = {
    **{kind: int for kind in integer_bounds},
    FieldType.FLOAT: float,
    FieldType.DOUBLE: float,
    FieldType.TIME: datetime.time,
    FieldType.DATE: datetime.date,
    FieldType.DATETIME: datetime.datetime,
    FieldType.BLOB: bytes,
    FieldType.TEXT: str,
    FieldType.WTEXT: str,
    FieldType.CHAR: str,
    FieldType.BINARY: bytes,
    FieldType.BIT: bool,
}

# Defaults for non-nullable columns declared without an explicit default
default_values: dict[FieldType, Any] = {
    **{kind: 0 for kind in integer_bounds},
    FieldType.FLOAT: 0.0,
    FieldType.DOUBLE: 0.0,
    FieldType.BLOB: b'',
    FieldType.TEXT: '',
    FieldType.WTEXT: '',
    FieldType.CHAR: '',
    FieldType.BINARY: b'',
    FieldType.BIT: False,
}


class Nullable(Generic[T]):
    """Adds null capability to any value.

    A Nullable built without a value (or from None) is null. Built from a
    value it is not null and holds that value.

    >>> Nullable().is_null
    True
    >>> n = Nullable(5)
    >>> n.is_null, n.value
    (False, 5)
    >>> str(Nullable())
    'NULL'
    """

    __slots__ = ('value', 'nullness')

    def __init__(self, value: T | None = None) -> None:
        self.value = value
        self.nullness = value is None

    @property
    def is_null(self) -> bool:
        return self.nullness

    def get(self, default: Any = None) -> T | Any:
        """Return the stored value, or `default` when null."""
        if self.nullness:
            return default
        return self.value

    def set(self, value: T | None) -> None:
        """Store a value; storing None makes the field null."""
        self.value = value
        self.nullness = value is None

    def clear(self) -> None:
        """Make the field null."""
        self.value = None
        self.nullness = True

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Nullable):
            if self.nullness or other.nullness:
                return self.nullness and other.nullness
            return self.value == other.value
        if self.nullness:
            return other is None
        return self.value == other

    __hash__ = None

    def __repr__(self) -> str:
        if self.nullness:
            return 'Nullable()'
        return f'Nullable({self.value!r})'

    def __str__(self) -> str:
        if self.nullness:
            return 'NULL'
        return str(self.value)


def convert_date(val: str | bytes) -> datetime.date:
    """Convert ISO 8601 date string to date object."""
    if isinstance(val, bytes):
        val = val.decode()
    return dateutil.parser.isoparse(val).date()


def convert_datetime(val: str | bytes) -> datetime.datetime:
    """Convert ISO 8601 datetime string to datetime object."""
    if isinstance(val, bytes):
        val = val.decode()
    return dateutil.parser.isoparse(val)


def convert_time(val: str | bytes) -> datetime.time:
    """Convert ISO 8601 time string to time object."""
    if isinstance(val, bytes):
        val = val.decode()
    return dateutil.parser.isoparser().parse_isotime(val)
