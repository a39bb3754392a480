"""PackStream encoding of Bolt values and conversion to Python types."""

from __future__ import annotations

import datetime as dt
import struct
import typing
from collections.abc import Iterator, Mapping, Sequence
from dataclasses import dataclass
from typing import Any, Callable, NoReturn
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from .errors import (
    BytesTooBig,
    ConversionError,
    DeserializationError,
    InvalidTypeMarker,
    ListTooLong,
    MapTooBig,
    StringTooLong,
)

# Structure tags of the value types known to the protocol.
NODE = 0x4E
RELATIONSHIP = 0x52
UNBOUND_RELATIONSHIP = 0x72
PATH = 0x50
DATE = 0x44
TIME = 0x54
LOCAL_TIME = 0x74
DATE_TIME = 0x46
DATE_TIME_ZONE_ID = 0x66
LOCAL_DATE_TIME = 0x64
DURATION = 0x45
POINT_2D = 0x58
POINT_3D = 0x59

_NULL = 0xC0
_FLOAT = 0xC1
_FALSE = 0xC2
_TRUE = 0xC3
_INT_8 = 0xC8
_INT_16 = 0xC9
_INT_32 = 0xCA
_INT_64 = 0xCB
_BYTES = (0xCC, 0xCD, 0xCE)
_STRING = (0xD0, 0xD1, 0xD2)
_LIST = (0xD4, 0xD5, 0xD6)
_MAP = (0xD8, 0xD9, 0xDA)
_STRUCT_8 = 0xDC
_STRUCT_16 = 0xDD
_TINY_STRING = 0x80
_TINY_LIST = 0x90
_TINY_MAP = 0xA0
_TINY_STRUCT = 0xB0

_SIZE_FORMATS = (">B", ">H", ">I")
_FIXED_NUMBERS = {
    _FLOAT: (">d", 8),
    _INT_8: (">b", 1),
    _INT_16: (">h", 2),
    _INT_32: (">i", 4),
    _INT_64: (">q", 8),
}
_SIZED_KINDS: dict[int, tuple[str, str]] = {
    **{marker: ("bytes", fmt) for marker, fmt in zip(_BYTES, _SIZE_FORMATS)},
    **{marker: ("string", fmt) for marker, fmt in zip(_STRING, _SIZE_FORMATS)},
    **{marker: ("list", fmt) for marker, fmt in zip(_LIST, _SIZE_FORMATS)},
    **{marker: ("map", fmt) for marker, fmt in zip(_MAP, _SIZE_FORMATS)},
    _STRUCT_8: ("struct", ">B"),
    _STRUCT_16: ("struct", ">H"),
}

_EPOCH = dt.datetime(1970, 1, 1)
_EPOCH_DATE = dt.date(1970, 1, 1)
_NANOS_PER_DAY = 86_400 * 1_000_000_000


@dataclass(frozen=True)
class Structure:
    """A tagged structure, such as a node, a point or a temporal value."""

    tag: int
    fields: tuple = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "fields", tuple(self.fields))


# ---------------------------------------------------------------- encoding


def pack(value: Any) -> bytes:
    """Encode a Python value as PackStream bytes."""
    out = bytearray()
    _pack_into(out, value)
    return bytes(out)


def _pack_into(out: bytearray, value: Any) -> None:
    if value is None:
        out.append(_NULL)
    elif isinstance(value, bool):
        out.append(_TRUE if value else _FALSE)
    elif isinstance(value, int):
        _pack_int(out, value)
    elif isinstance(value, float):
        out.append(_FLOAT)
        out += struct.pack(">d", value)
    elif isinstance(value, str):
        encoded = value.encode("utf-8")
        _pack_size(out, len(encoded), _TINY_STRING, _STRING, StringTooLong)
        out += encoded
    elif isinstance(value, (bytes, bytearray, memoryview)):
        raw = bytes(value)
        _pack_size(out, len(raw), None, _BYTES, BytesTooBig)
        out += raw
    elif isinstance(value, Structure):
        _pack_structure(out, value)
    elif isinstance(value, dt.datetime):
        _pack_structure(out, _datetime_structure(value))
    elif isinstance(value, dt.date):
        _pack_structure(out, Structure(DATE, ((value - _EPOCH_DATE).days,)))
    elif isinstance(value, dt.time):
        _pack_structure(out, _time_structure(value))
    elif isinstance(value, dt.timedelta):
        seconds, nanos = _split_delta(value)
        _pack_structure(out, Structure(DURATION, (0, 0, seconds, nanos)))
    elif isinstance(value, Mapping):
        _pack_size(out, len(value), _TINY_MAP, _MAP, MapTooBig)
        for key, item in value.items():
            if not isinstance(key, str):
                raise ConversionError(f"map keys must be strings, not {type(key).__name__}")
            _pack_into(out, key)
            _pack_into(out, item)
    elif isinstance(value, Sequence):
        _pack_size(out, len(value), _TINY_LIST, _LIST, ListTooLong)
        for item in value:
            _pack_into(out, item)
    else:
        raise ConversionError(f"cannot encode value of type {type(value).__name__}")


def _pack_int(out: bytearray, value: int) -> None:
    if -16 <= value < 128:
        out.append(value & 0xFF)
    elif -0x80 <= value < 0x80:
        out.append(_INT_8)
        out += struct.pack(">b", value)
    elif -0x8000 <= value < 0x8000:
        out.append(_INT_16)
        out += struct.pack(">h", value)
    elif -0x8000_0000 <= value < 0x8000_0000:
        out.append(_INT_32)
        out += struct.pack(">i", value)
    elif -0x8000_0000_0000_0000 <= value < 0x8000_0000_0000_0000:
        out.append(_INT_64)
        out += struct.pack(">q", value)
    else:
        raise OverflowError(f"integer {value} does not fit in 64 bits")


def _pack_size(
    out: bytearray,
    size: int,
    tiny: int | None,
    markers: tuple[int, int, int],
    too_big: type[Exception],
) -> None:
    if tiny is not None and size < 0x10:
        out.append(tiny | size)
    elif size < 0x100:
        out += bytes((markers[0], size))
    elif size < 0x1_0000:
        out.append(markers[1])
        out += struct.pack(">H", size)
    elif size < 0x1_0000_0000:
        out.append(markers[2])
        out += struct.pack(">I", size)
    else:
        raise too_big()


def _pack_structure(out: bytearray, value: Structure) -> None:
    if len(value.fields) > 0x0F:
        raise ConversionError(f"structure has too many fields: {len(value.fields)}")
    if not 0 <= value.tag <= 0xFF:
        raise ConversionError(f"structure tag out of range: {value.tag}")
    out.append(_TINY_STRUCT | len(value.fields))
    out.append(value.tag)
    for item in value.fields:
        _pack_into(out, item)


def _split_delta(delta: dt.timedelta) -> tuple[int, int]:
    return delta.days * 86_400 + delta.seconds, delta.microseconds * 1000


def _datetime_structure(value: dt.datetime) -> Structure:
    seconds, nanos = _split_delta(value.replace(tzinfo=None) - _EPOCH)
    zone = value.tzinfo
    if isinstance(zone, ZoneInfo) and zone.key:
        return Structure(DATE_TIME_ZONE_ID, (seconds, nanos, zone.key))
    offset = value.utcoffset()
    if offset is None:
        return Structure(LOCAL_DATE_TIME, (seconds, nanos))
    return Structure(DATE_TIME, (seconds, nanos, int(offset.total_seconds())))


def _time_structure(value: dt.time) -> Structure:
    seconds = (value.hour * 60 + value.minute) * 60 + value.second
    nanos = seconds * 1_000_000_000 + value.microsecond * 1000
    offset = value.utcoffset()
    if offset is None:
        return Structure(LOCAL_TIME, (nanos,))
    return Structure(TIME, (nanos, int(offset.total_seconds())))


# ---------------------------------------------------------------- decoding


class _Reader:
    __slots__ = ("_data", "_pos")

    def __init__(self, data: bytes | bytearray | memoryview) -> None:
        self._data = bytes(data)
        self._pos = 0

    @property
    def exhausted(self) -> bool:
        return self._pos >= len(self._data)

    def take(self, size: int) -> bytes:
        end = self._pos + size
        if end > len(self._data):
            raise DeserializationError(
                f"unexpected end of data: needed {size} bytes at offset {self._pos}"
            )
        chunk = self._data[self._pos:end]
        self._pos = end
        return chunk

    def number(self, fmt: str) -> Any:
        return struct.unpack(fmt, self.take(struct.calcsize(fmt)))[0]

    def value(self) -> Any:
        marker = self.take(1)[0]
        if marker < 0x80:
            return marker
        if marker >= 0xF0:
            return marker - 0x100
        high, low = marker & 0xF0, marker & 0x0F
        if high == _TINY_STRING:
            return self._sized("string", low)
        if high == _TINY_LIST:
            return self._sized("list", low)
        if high == _TINY_MAP:
            return self._sized("map", low)
        if high == _TINY_STRUCT:
            return self._sized("struct", low)
        if marker == _NULL:
            return None
        if marker == _TRUE:
            return True
        if marker == _FALSE:
            return False
        if marker in _FIXED_NUMBERS:
            return self.number(_FIXED_NUMBERS[marker][0])
        if marker in _SIZED_KINDS:
            kind, fmt = _SIZED_KINDS[marker]
            return self._sized(kind, self.number(fmt))
        raise InvalidTypeMarker(f"invalid type marker 0x{marker:02X}")

    def _sized(self, kind: str, size: int) -> Any:
        if kind == "bytes":
            return self.take(size)
        if kind == "string":
            raw = self.take(size)
            try:
                return raw.decode("utf-8")
            except UnicodeDecodeError as exc:
                raise DeserializationError(f"invalid UTF-8 string: {exc}") from exc
        if kind == "list":
            return [self.value() for _ in range(size)]
        if kind == "map":
            result = {}
            for _ in range(size):
                key = self.value()
                if not isinstance(key, str):
                    raise DeserializationError(f"map key is not a string: {key!r}")
                result[key] = self.value()
            return result
        tag = self.take(1)[0]
        return Structure(tag, tuple(self.value() for _ in range(size)))


def unpack(data: bytes | bytearray | memoryview) -> Any:
    """Decode exactly one value from PackStream bytes."""
    reader = _Reader(data)
    if reader.exhausted:
        raise DeserializationError("no data to decode")
    value = reader.value()
    if not reader.exhausted:
        raise DeserializationError("trailing bytes after value")
    return value


def unpack_stream(data: bytes | bytearray | memoryview) -> Iterator[Any]:
    """Decode consecutive values until the data is used up."""
    reader = _Reader(data)
    while not reader.exhausted:
        yield reader.value()


# ---------------------------------------------------------------- conversion


def _mismatch(value: Any, kind: Any) -> NoReturn:
    name = getattr(kind, "__name__", repr(kind))
    raise ConversionError(f"cannot convert {type(value).__name__} to {name}")


def _fields(value: Any, tag: int, *kinds: type) -> tuple | None:
    if not isinstance(value, Structure) or value.tag != tag:
        return None
    if len(value.fields) != len(kinds):
        return None
    for item, kind in zip(value.fields, kinds):
        if isinstance(item, bool) or not isinstance(item, kind):
            return None
    return value.fields


def _local_datetime(seconds: int, nanos: int) -> dt.datetime:
    return _EPOCH + dt.timedelta(seconds=seconds, microseconds=nanos // 1000)


def _fixed_zone(offset_seconds: int) -> dt.timezone:
    return dt.timezone(dt.timedelta(seconds=offset_seconds))


def _time_of_day(nanos: int) -> dt.time:
    if not 0 <= nanos < _NANOS_PER_DAY:
        raise ConversionError(f"time of day out of range: {nanos} ns")
    seconds, micros = divmod(nanos // 1000, 1_000_000)
    minutes, seconds = divmod(seconds, 60)
    hours, minutes = divmod(minutes, 60)
    return dt.time(hours, minutes, seconds, micros)


def _to_date(value: Any) -> dt.date:
    if type(value) is dt.date:
        return value
    fields = _fields(value, DATE, int)
    if fields is None:
        _mismatch(value, dt.date)
    return _EPOCH_DATE + dt.timedelta(days=fields[0])


def _to_datetime(value: Any) -> dt.datetime:
    if isinstance(value, dt.datetime):
        return value
    if (fields := _fields(value, LOCAL_DATE_TIME, int, int)) is not None:
        return _local_datetime(*fields)
    if (fields := _fields(value, DATE_TIME, int, int, int)) is not None:
        seconds, nanos, offset = fields
        return _local_datetime(seconds, nanos).replace(tzinfo=_fixed_zone(offset))
    if (fields := _fields(value, DATE_TIME_ZONE_ID, int, int, str)) is not None:
        seconds, nanos, zone_id = fields
        try:
            zone = ZoneInfo(zone_id)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise ConversionError(f"unknown time zone: {zone_id}") from exc
        return _local_datetime(seconds, nanos).replace(tzinfo=zone)
    _mismatch(value, dt.datetime)


def _to_time(value: Any) -> dt.time:
    if isinstance(value, dt.time):
        return value
    if (fields := _fields(value, LOCAL_TIME, int)) is not None:
        return _time_of_day(fields[0])
    if (fields := _fields(value, TIME, int, int)) is not None:
        nanos, offset = fields
        time_of_day = _time_of_day(nanos)
        if offset == 0:
            return time_of_day
        return time_of_day.replace(tzinfo=_fixed_zone(offset))
    _mismatch(value, dt.time)


def _to_timedelta(value: Any) -> dt.timedelta:
    if isinstance(value, dt.timedelta):
        return value
    fields = _fields(value, DURATION, int, int, int, int)
    if fields is None:
        _mismatch(value, dt.timedelta)
    months, days, seconds, nanos = fields
    if months:
        raise ConversionError("a duration with months cannot be expressed as a timedelta")
    return dt.timedelta(days=days, seconds=seconds, microseconds=nanos // 1000)


def _checked(kind: type, accept: Callable[[Any], bool]) -> Callable[[Any], Any]:
    def check(value: Any) -> Any:
        if not accept(value):
            _mismatch(value, kind)
        return value

    return check


_CONVERTERS: dict[Any, Callable[[Any], Any]] = {
    bool: _checked(bool, lambda v: isinstance(v, bool)),
    int: _checked(int, lambda v: isinstance(v, int) and not isinstance(v, bool)),
    float: _checked(float, lambda v: isinstance(v, float)),
    str: _checked(str, lambda v: isinstance(v, str)),
    bytes: _checked(bytes, lambda v: isinstance(v, bytes)),
    Structure: _checked(Structure, lambda v: isinstance(v, Structure)),
    dt.date: _to_date,
    dt.datetime: _to_datetime,
    dt.time: _to_time,
    dt.timedelta: _to_timedelta,
}


def convert(value: Any, kind: Any) -> Any:
    """Convert a decoded value to the requested Python type.

    ``kind`` may be a scalar type, a temporal type, ``Structure``, ``list``,
    ``dict`` or a parametrised form such as ``list[int]``; a value of the
    wrong type raises ConversionError.
    """
    origin = typing.get_origin(kind) or kind
    args = typing.get_args(kind)
    if origin is list:
        if not isinstance(value, list):
            _mismatch(value, list)
        if not args:
            return list(value)
        return [convert(item, args[0]) for item in value]
    if origin is dict:
        if not isinstance(value, dict):
            _mismatch(value, dict)
        if len(args) != 2:
            return dict(value)
        return {key: convert(item, args[1]) for key, item in value.items()}
    converter = _CONVERTERS.get(kind)
    if converter is None:
        raise TypeError(f"unsupported target type: {kind!r}")
    try:
        return converter(value)
    except OverflowError as exc:
        raise ConversionError(f"value out of range for {kind.__name__}") from exc