"""
Bindable record contract.

By deriving from DataSet any data structure can be bound to the parameters
or results of a statement. The record is treated as a container and its
member data indexed as elements: the engine asks for the number of fields,
the FieldType of each index, the fixed size of CHAR/BINARY fields and a
FieldRef through which it reads parameters and writes results.

The index order must match the parameter/result column order of the SQL.

Two ways to build a record:

- Subclass DataSet and implement the accessors by hand::

    class Measurement(DataSet):
        def __init__(self):
            self.fraction = Nullable()
            self.taken = datetime.date.today()
            self.chunk = bytes(16)

        def field_count(self):
            return 3

        def field_type(self, index):
            return (FieldType.DOUBLE_N, FieldType.DATE, FieldType.BINARY)[self.check_index(index)]

        def field_size(self, index):
            if index == 2:
                return 16
            return super().field_size(index)

        def get_field(self, index):
            return (self.fraction, self.taken, self.chunk)[self.check_index(index)]

        def set_field(self, index, value):
            setattr(self, ('fraction', 'taken', 'chunk')[self.check_index(index)], value)

- Declare a Record dataclass with column() fields::

    @dataclass
    class Measurement(Record):
        fraction: Nullable[float] = column(FieldType.DOUBLE_N)
        taken: datetime.date = column(FieldType.DATE, default=None)
        chunk: bytes = column(FieldType.BINARY, size=16)
"""
import dataclasses
import logging
from abc import ABC, abstractmethod
from typing import Any, NamedTuple

from sqlqueue.exceptions import BindingError
from sqlqueue.types import FieldType, Nullable, default_values

from libb import attrdict

__all__ = [
    'DataSet',
    'FieldRef',
    'FieldSpec',
    'Record',
    'column',
]

logger = logging.getLogger(__name__)

_METADATA_KEY = 'sqlqueue'


class DataSet(ABC):
    """Base data set class for communicating parameters and results.
    """

    @abstractmethod
    def field_count(self) -> int:
        """Total number of indexable fields."""

    @abstractmethod
    def field_type(self, index: int) -> FieldType:
        """FieldType associated with an index, starting at 0.

        Must return the same kind for an index on every call.
        """

    def field_size(self, index: int) -> int:
        """Fixed size in bytes of a CHAR/BINARY field.

        Only consulted for fixed-size kinds; any record reporting one of
        those kinds must override this for that index.
        """
        kind = self.field_type(self.check_index(index))
        if kind.fixed_size:
            raise BindingError(
                f'{type(self).__name__} field {index} is {kind.name} but declares no size')
        return 0

    @abstractmethod
    def get_field(self, index: int) -> Any:
        """Current value stored at an index."""

    @abstractmethod
    def set_field(self, index: int, value: Any) -> None:
        """Replace the value stored at an index."""

    def pointer(self, index: int) -> 'FieldRef':
        """Handle to the storage of a field.

        The handle stays valid for as long as the record is alive.
        """
        return FieldRef(self, self.check_index(index))

    def check_index(self, index: int) -> int:
        """Return `index` when it lies in [0, field_count()), else raise.
        """
        count = self.field_count()
        if not isinstance(index, int) or not 0 <= index < count:
            raise BindingError(
                f'{type(self).__name__} index {index!r} out of range [0, {count})')
        return index

    def describe(self) -> list[tuple[FieldType, int]]:
        """List of (field_type, field_size) for every index.

        Raises BindingError if a nullable kind is not backed by a Nullable.
        """
        table = []
        for index in range(self.field_count()):
            kind = self.field_type(index)
            if kind is FieldType.NOTHING:
                raise BindingError(f'{type(self).__name__} field {index} has no type')
            if kind.nullable and not isinstance(self.get_field(index), Nullable):
                raise BindingError(
                    f'{type(self).__name__} field {index} is {kind.name} but does not hold a Nullable')
            table.append((kind, self.field_size(index) if kind.fixed_size else 0))
        return table


class FieldRef:
    """Mutable reference to one field of a DataSet.

    Reading a nullable field yields its Nullable; writing through set()
    on a nullable field updates that Nullable in place so references held
    elsewhere observe the change.
    """

    __slots__ = ('dataset', 'index')

    def __init__(self, dataset: DataSet, index: int) -> None:
        self.dataset = dataset
        self.index = index

    @property
    def type(self) -> FieldType:
        return self.dataset.field_type(self.index)

    @property
    def size(self) -> int:
        if self.type.fixed_size:
            return self.dataset.field_size(self.index)
        return 0

    def get(self) -> Any:
        return self.dataset.get_field(self.index)

    def set(self, value: Any) -> None:
        if self.type.nullable:
            current = self.dataset.get_field(self.index)
            if not isinstance(current, Nullable):
                raise BindingError(
                    f'{type(self.dataset).__name__} field {self.index} is '
                    f'{self.type.name} but does not hold a Nullable')
            current.set(value.get() if isinstance(value, Nullable) else value)
            return
        self.dataset.set_field(self.index, value)

    def __repr__(self) -> str:
        return f'FieldRef({type(self.dataset).__name__}, {self.index}, {self.type.name})'


class FieldSpec(NamedTuple):
    """Binding metadata attached to a Record column."""
    type: FieldType
    size: int = 0


def column(field_type: FieldType, size: int = 0, default: Any = dataclasses.MISSING,
           default_factory: Any = dataclasses.MISSING, **kwargs: Any) -> Any:
    """Declare a bindable dataclass field on a Record.

    Nullable kinds default to an empty Nullable. Other kinds default to the
    zero value of their Python type, or None for temporal kinds.
    """
    if field_type is FieldType.NOTHING:
        raise BindingError('column type cannot be NOTHING')
    if field_type.fixed_size and size <= 0:
        raise BindingError(f'{field_type.name} column requires a positive size')

    if default is dataclasses.MISSING and default_factory is dataclasses.MISSING:
        if field_type.nullable:
            default_factory = Nullable
        else:
            default = default_values.get(field_type)

    metadata = dict(kwargs.pop('metadata', None) or {})
    metadata[_METADATA_KEY] = FieldSpec(field_type, size)
    return dataclasses.field(default=default, default_factory=default_factory,
                             metadata=metadata, **kwargs)


class Record(DataSet):
    """Declarative DataSet built from dataclass fields.

    Subclasses are dataclasses whose bindable fields are declared with
    column(). Fields declared without column() are ignored for binding.
    The descriptor table is computed once per class.
    """

    _descriptor_cache: dict[type, tuple[tuple[str, FieldSpec], ...]] = {}

    @classmethod
    def descriptors(cls) -> tuple[tuple[str, FieldSpec], ...]:
        """Tuple of (attribute name, FieldSpec) in binding order."""
        table = Record._descriptor_cache.get(cls)
        if table is None:
            if not dataclasses.is_dataclass(cls):
                raise BindingError(f'{cls.__name__} must be a dataclass to be used as a Record')
            table = tuple(
                (f.name, f.metadata[_METADATA_KEY])
                for f in dataclasses.fields(cls)
                if _METADATA_KEY in f.metadata
            )
            Record._descriptor_cache[cls] = table
            logger.debug(f'Built descriptor table for {cls.__name__}: {len(table)} fields')
        return table

    @classmethod
    def field_names(cls) -> list[str]:
        return [name for name, _ in cls.descriptors()]

    def field_count(self) -> int:
        return len(self.descriptors())

    def field_type(self, index: int) -> FieldType:
        return self.descriptors()[self.check_index(index)][1].type

    def field_size(self, index: int) -> int:
        spec = self.descriptors()[self.check_index(index)][1]
        if spec.type.fixed_size:
            return spec.size
        return 0

    def get_field(self, index: int) -> Any:
        return getattr(self, self.descriptors()[self.check_index(index)][0])

    def set_field(self, index: int, value: Any) -> None:
        setattr(self, self.descriptors()[self.check_index(index)][0], value)

    def to_dict(self) -> dict[str, Any]:
        """Field values by name, with Nullables unwrapped to value or None."""
        return {
            name: value.get() if isinstance(value, Nullable) else value
            for name, value in ((name, getattr(self, name)) for name, _ in self.descriptors())
        }

    def to_attrdict(self) -> attrdict:
        return attrdict(self.to_dict())
