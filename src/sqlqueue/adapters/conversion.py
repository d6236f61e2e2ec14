"""
Value conversion for bound record fields.

This module handles both directions of the binding protocol:
1. Parameters: field values -> driver values (`to_param`, `bind_parameters`)
2. Results: driver values -> field values (`from_result`, `bind_row`)

Conversion is driven by the FieldType each record reports for an index. It
checks values against the kind's domain (integer widths, fixed sizes, temporal
types) and unwraps NumPy scalars. Dialect-specific adaptation of the result
(e.g. ISO text for SQLite temporals) is applied afterwards by the strategy.
"""
import datetime
import logging
from collections.abc import Callable, Sequence
from typing import Any

import numpy as np
from sqlqueue.data import DataSet
from sqlqueue.exceptions import BindingError
from sqlqueue.types import FieldType, Nullable, convert_date, convert_datetime
from sqlqueue.types import convert_time

__all__ = [
    'to_param',
    'from_result',
    'bind_parameters',
    'bind_row',
]

logger = logging.getLogger(__name__)

BYTES_TYPES = (bytes, bytearray, memoryview)


def _unwrap_numpy(value: Any) -> Any:
    """Convert NumPy scalars to the equivalent Python value."""
    if isinstance(value, np.generic):
        return value.item()
    return value


def _check_bounds(kind: FieldType, value: int) -> int:
    low, high = kind.bounds
    if not low <= value <= high:
        raise BindingError(f'{value} out of range for {kind.name} [{low}, {high}]')
    return value


# Parameter direction: field value -> driver value

def _param_integer(kind: FieldType, value: Any, size: int) -> int:
    if not isinstance(value, int):
        raise BindingError(f'{kind.name} expects int, got {type(value).__name__}')
    return _check_bounds(kind, int(value))


def _param_float(kind: FieldType, value: Any, size: int) -> float:
    if isinstance(value, bool) or not isinstance(value, int | float):
        raise BindingError(f'{kind.name} expects float, got {type(value).__name__}')
    return float(value)


def _param_time(kind: FieldType, value: Any, size: int) -> datetime.time:
    if not isinstance(value, datetime.time):
        raise BindingError(f'TIME expects datetime.time, got {type(value).__name__}')
    return value


def _param_date(kind: FieldType, value: Any, size: int) -> datetime.date:
    if isinstance(value, datetime.datetime) or not isinstance(value, datetime.date):
        raise BindingError(f'DATE expects datetime.date, got {type(value).__name__}')
    return value


def _param_datetime(kind: FieldType, value: Any, size: int) -> datetime.datetime:
    if not isinstance(value, datetime.datetime):
        raise BindingError(f'DATETIME expects datetime.datetime, got {type(value).__name__}')
    return value


def _param_blob(kind: FieldType, value: Any, size: int) -> bytes:
    if not isinstance(value, BYTES_TYPES):
        raise BindingError(f'BLOB expects bytes, got {type(value).__name__}')
    return bytes(value)


def _param_text(kind: FieldType, value: Any, size: int) -> str:
    if not isinstance(value, str):
        raise BindingError(f'{kind.name} expects str, got {type(value).__name__}')
    return value


def _param_char(kind: FieldType, value: Any, size: int) -> str:
    value = _param_text(kind, value, size)
    if len(value.encode('utf-8')) > size:
        raise BindingError(f'CHAR value of {len(value.encode("utf-8"))} bytes exceeds size {size}')
    return value


def _param_binary(kind: FieldType, value: Any, size: int) -> bytes:
    if not isinstance(value, BYTES_TYPES):
        raise BindingError(f'BINARY expects bytes, got {type(value).__name__}')
    value = bytes(value)
    if len(value) > size:
        raise BindingError(f'BINARY value of {len(value)} bytes exceeds size {size}')
    return value.ljust(size, b'\x00')


def _param_bit(kind: FieldType, value: Any, size: int) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, int) and value in {0, 1}:
        return bool(value)
    raise BindingError(f'BIT expects bool, got {value!r}')


_PARAM_CONVERTERS: dict[FieldType, Callable[[FieldType, Any, int], Any]] = {
    **{kind: _param_integer for kind in FieldType if kind.integer and not kind.nullable},
    FieldType.FLOAT: _param_float,
    FieldType.DOUBLE: _param_float,
    FieldType.TIME: _param_time,
    FieldType.DATE: _param_date,
    FieldType.DATETIME: _param_datetime,
    FieldType.BLOB: _param_blob,
    FieldType.TEXT: _param_text,
    FieldType.WTEXT: _param_text,
    FieldType.CHAR: _param_char,
    FieldType.BINARY: _param_binary,
    FieldType.BIT: _param_bit,
}


def to_param(field_type: FieldType, value: Any, size: int = 0) -> Any:
    """Convert a field value to a driver parameter.

    Null Nullables (and None) become None for nullable kinds; binding null
    to a non-nullable kind is an error.

    Raises
        BindingError: If the value does not fit the field's domain
    """
    if isinstance(value, Nullable):
        if value.is_null:
            value = None
        else:
            value = value.value

    if value is None:
        if field_type.nullable:
            return None
        raise BindingError(f'NULL bound to non-nullable {field_type.name}')

    converter = _PARAM_CONVERTERS.get(field_type.base)
    if converter is None:
        raise BindingError(f'{field_type.name} cannot be bound')
    return converter(field_type.base, _unwrap_numpy(value), size)


# Result direction: driver value -> field value

def _result_integer(kind: FieldType, raw: Any, size: int) -> int:
    if isinstance(raw, BYTES_TYPES):
        raw = bytes(raw).decode()
    return _check_bounds(kind, int(raw))


def _result_float(kind: FieldType, raw: Any, size: int) -> float:
    return float(raw)


def _result_time(kind: FieldType, raw: Any, size: int) -> datetime.time:
    if isinstance(raw, datetime.time):
        return raw
    if isinstance(raw, datetime.timedelta):
        return (datetime.datetime.min + raw).time()
    return convert_time(raw)


def _result_date(kind: FieldType, raw: Any, size: int) -> datetime.date:
    if isinstance(raw, datetime.datetime):
        return raw.date()
    if isinstance(raw, datetime.date):
        return raw
    return convert_date(raw)


def _result_datetime(kind: FieldType, raw: Any, size: int) -> datetime.datetime:
    if isinstance(raw, datetime.datetime):
        return raw
    if isinstance(raw, datetime.date):
        return datetime.datetime.combine(raw, datetime.time())
    return convert_datetime(raw)


def _result_blob(kind: FieldType, raw: Any, size: int) -> bytes:
    if isinstance(raw, str):
        return raw.encode('utf-8')
    return bytes(raw)


def _result_text(kind: FieldType, raw: Any, size: int) -> str:
    if isinstance(raw, BYTES_TYPES):
        return bytes(raw).decode('utf-8')
    return str(raw)


def _result_char(kind: FieldType, raw: Any, size: int) -> str:
    value = _result_text(kind, raw, size).rstrip('\x00 ')
    if len(value.encode('utf-8')) > size:
        raise BindingError(f'CHAR result of {len(value.encode("utf-8"))} bytes exceeds size {size}')
    return value


def _result_binary(kind: FieldType, raw: Any, size: int) -> bytes:
    value = _result_blob(kind, raw, size)
    if len(value) > size:
        raise BindingError(f'BINARY result of {len(value)} bytes exceeds size {size}')
    return value.ljust(size, b'\x00')


def _result_bit(kind: FieldType, raw: Any, size: int) -> bool:
    if isinstance(raw, str):
        raw = int(raw)
    return bool(raw)


_RESULT_CONVERTERS: dict[FieldType, Callable[[FieldType, Any, int], Any]] = {
    **{kind: _result_integer for kind in FieldType if kind.integer and not kind.nullable},
    FieldType.FLOAT: _result_float,
    FieldType.DOUBLE: _result_float,
    FieldType.TIME: _result_time,
    FieldType.DATE: _result_date,
    FieldType.DATETIME: _result_datetime,
    FieldType.BLOB: _result_blob,
    FieldType.TEXT: _result_text,
    FieldType.WTEXT: _result_text,
    FieldType.CHAR: _result_char,
    FieldType.BINARY: _result_binary,
    FieldType.BIT: _result_bit,
}


def from_result(field_type: FieldType, raw: Any, size: int = 0) -> Any:
    """Convert a driver value to a field value.

    Returns None for NULL in a nullable kind.

    Raises
        BindingError: If the value is NULL for a non-nullable kind or cannot
            be converted to the field's domain
    """
    if raw is None:
        if field_type.nullable:
            return None
        raise BindingError(f'NULL result for non-nullable {field_type.name}')

    converter = _RESULT_CONVERTERS.get(field_type.base)
    if converter is None:
        raise BindingError(f'{field_type.name} cannot be bound')
    try:
        return converter(field_type.base, _unwrap_numpy(raw), size)
    except BindingError:
        raise
    except (TypeError, ValueError, OverflowError) as err:
        raise BindingError(f'Cannot convert {raw!r} to {field_type.name}: {err}') from err


def bind_parameters(dataset: DataSet | None,
                    adapt: Callable[[FieldType, Any], Any] | None = None) -> tuple:
    """Convert every field of a parameter record into a driver parameter tuple.

    Args:
        dataset: Record bound to the parameters, or None for no parameters
        adapt: Dialect adaptation applied to each non-null converted value

    Returns
        Tuple of driver values in field order
    """
    if dataset is None:
        return ()

    params = []
    for index, (kind, size) in enumerate(dataset.describe()):
        value = to_param(kind, dataset.get_field(index), size)
        if value is not None and adapt is not None:
            value = adapt(kind, value)
        params.append(value)
    return tuple(params)


def bind_row(dataset: DataSet, row: Sequence[Any]) -> None:
    """Write one fetched row into a result record.

    Raises
        BindingError: If the row width differs from the record or a column
            cannot be converted
    """
    table = dataset.describe()
    if len(row) != len(table):
        raise BindingError(
            f'Row has {len(row)} columns but {type(dataset).__name__} binds {len(table)}')

    for index, (kind, size) in enumerate(table):
        dataset.pointer(index).set(from_result(kind, row[index], size))
