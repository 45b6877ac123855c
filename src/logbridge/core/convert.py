"""Conversion of arbitrary Python values into the back-end Value model.

The conversion is total: whatever a caller hands to a logger, ``convert``
returns a Value and never raises. Types without a natural mapping are
rendered as ``unhandled: (<type>) <repr>``.

Integers outside the signed 64-bit range are rendered as decimal strings.
This is applied everywhere integers are converted (the converter, the
encoder, and both adapters).
"""

import dataclasses
import math
import numbers
import struct
from collections.abc import Iterable, Mapping, Sequence, Set
from datetime import UTC, datetime, timedelta

from opentelemetry.context import Context

from logbridge.core.models import (
    EMPTY,
    KeyValue,
    Value,
    bool_value,
    bytes_value,
    float64_value,
    int64_value,
    map_value,
    slice_value,
    string_value,
)

MIN_INT64 = -(1 << 63)
MAX_INT64 = (1 << 63) - 1

# LogValuer chains deeper than this are cut off.
_MAX_RESOLVE_DEPTH = 100

_EPOCH = datetime(1970, 1, 1, tzinfo=UTC)


@dataclasses.dataclass(frozen=True, slots=True)
class Attr:
    """A key/value attribute as supplied by a front-end.

    Attributes:
        key: Attribute key. An empty key triggers the inline/drop policies.
        value: Any Python value, including a GroupValue.
    """

    key: str
    value: object = None


@dataclasses.dataclass(frozen=True, slots=True)
class GroupValue:
    """The value of a group attribute: an ordered run of attributes."""

    attrs: tuple[Attr, ...] = ()


def group(key: str, *attrs: Attr, **kwargs: object) -> Attr:
    """Build a group attribute.

    Args:
        key: Group name. An empty name inlines the members into the
            enclosing scope.
        *attrs: Member attributes.
        **kwargs: Further members given as keyword arguments.

    Returns:
        Attr whose value is a GroupValue.
    """
    members = (*attrs, *(Attr(k, v) for k, v in kwargs.items()))
    return Attr(key, GroupValue(members))


def convert(v: object) -> Value:
    """Convert a Python value to a Value."""
    return _convert(v, 0)


def convert_int(v: int) -> Value:
    """Convert an integer, falling back to its decimal form outside int64."""
    if MIN_INT64 <= v <= MAX_INT64:
        return int64_value(v)
    return string_value(str(v))


def convert_float32(v: float) -> Value:
    """Convert a 4-byte float, keeping its shortest decimal representation."""
    return float64_value(shortest_float32(v))


def shortest_float32(v: float) -> float:
    """Return the float64 parsed from the shortest repr of float32(v)."""
    v = float(v)
    if math.isnan(v) or math.isinf(v):
        return v
    try:
        (single,) = struct.unpack("f", struct.pack("f", v))
    except OverflowError:
        return math.copysign(math.inf, v)
    for digits in range(1, 10):
        candidate = float(f"{single:.{digits}g}")
        if struct.unpack("f", struct.pack("f", candidate))[0] == single:
            return candidate
    return single


def time_to_nanos(t: datetime) -> int:
    """Nanoseconds since the Unix epoch. Naive datetimes are local time."""
    if t.tzinfo is None:
        t = t.astimezone()
    delta = t - _EPOCH
    return duration_to_nanos(delta)


def duration_to_nanos(d: timedelta) -> int:
    return ((d.days * 86_400 + d.seconds) * 1_000_000 + d.microseconds) * 1_000


def convert_time(t: datetime) -> Value:
    """Convert a datetime to Unix nanoseconds.

    A naive datetime the local timezone cannot resolve is rendered in ISO
    8601 form. Results outside int64 fall back as in convert_int.
    """
    try:
        nanos = time_to_nanos(t)
    except (ValueError, OverflowError, OSError):
        return string_value(t.isoformat())
    return convert_int(nanos)


def convert_duration(d: timedelta) -> Value:
    return convert_int(duration_to_nanos(d))


def error_message(err: BaseException) -> str:
    """Render an exception and the exceptions it wraps.

    Follows ``__cause__`` and, unless suppressed, ``__context__``; the
    messages are joined with ``": "``.
    """
    parts: list[str] = []
    seen: set[int] = set()
    cur: BaseException | None = err
    while cur is not None and id(cur) not in seen:
        seen.add(id(cur))
        parts.append(str(cur) or type(cur).__name__)
        if cur.__cause__ is not None:
            cur = cur.__cause__
        elif not cur.__suppress_context__:
            cur = cur.__context__
        else:
            cur = None
    return ": ".join(parts)


def convert_attrs(attrs: Iterable[Attr]) -> list[KeyValue]:
    """Convert front-end attributes, applying the empty-key policies.

    An empty-keyed group is inlined into the returned list and an
    empty-keyed attribute with an empty value is dropped.
    """
    out: list[KeyValue] = []
    for attr in attrs:
        out.extend(_convert_attr(attr, 0))
    return out


def _convert_attr(attr: Attr, depth: int, path: frozenset[int] = frozenset()) -> list[KeyValue]:
    value = _resolve(attr.value)
    if attr.key == "":
        if isinstance(value, GroupValue):
            return [kv for a in value.attrs for kv in _convert_attr(a, depth + 1, path)]
        if value is None or (isinstance(value, Value) and value.empty):
            return []
    return [KeyValue(attr.key, _convert(value, depth + 1, path))]


def _resolve(v: object) -> object:
    for _ in range(_MAX_RESOLVE_DEPTH):
        log_value = getattr(type(v), "log_value", None)
        if log_value is None or isinstance(v, type):
            return v
        try:
            v = v.log_value()  # type: ignore[attr-defined]
        except Exception as exc:  # noqa: BLE001
            return f"LogValue panicked: {error_message(exc)}"
    return v


def _convert(v: object, depth: int, path: frozenset[int] = frozenset()) -> Value:
    if depth > _MAX_RESOLVE_DEPTH:
        return string_value(f"unhandled: ({_type_name(v)}) nesting too deep")
    v = _resolve(v)
    match v:
        case Value():
            return v
        case None:
            return EMPTY
        case bool():
            return bool_value(v)
        case int():
            return convert_int(v)
        case float():
            return float64_value(v)
        case str():
            return string_value(v)
        case bytes() | bytearray() | memoryview():
            return bytes_value(v)
        case datetime():
            return convert_time(v)
        case timedelta():
            return convert_duration(v)
        case complex():
            return _complex(v)
        case Context():
            return string_value(_safe_repr(v))
        case BaseException():
            return string_value(error_message(v))
        case GroupValue():
            return map_value(*[kv for a in v.attrs for kv in _convert_attr(a, depth, path)])
    if hasattr(v, "marshal_log_object"):
        from logbridge.core.encoder import marshal_object

        value, _ = marshal_object(v)
        return value
    if hasattr(v, "marshal_log_array"):
        from logbridge.core.encoder import marshal_array

        value, _ = marshal_array(v)
        return value
    if isinstance(v, numbers.Integral):
        return convert_int(int(v))
    if isinstance(v, numbers.Real):
        if getattr(v, "itemsize", 8) == 4:
            return convert_float32(float(v))
        return float64_value(float(v))
    if isinstance(v, numbers.Complex):
        return _complex(complex(v))
    if isinstance(v, (Mapping, Sequence, Set)):
        if id(v) in path:
            return string_value(f"unhandled: ({_type_name(v)}) <cycle>")
        inner = path | {id(v)}
        if isinstance(v, Mapping):
            return map_value(*[KeyValue(_key(k), _convert(item, depth + 1, inner)) for k, item in v.items()])
        return slice_value(*[_convert(item, depth + 1, inner) for item in v])
    if dataclasses.is_dataclass(v) and not isinstance(v, type):
        return string_value(_safe_repr(v))
    return string_value(f"unhandled: ({_type_name(v)}) {_safe_repr(v)}")


def _complex(v: complex) -> Value:
    return map_value(
        KeyValue("r", float64_value(v.real)),
        KeyValue("i", float64_value(v.imag)),
    )


def _key(k: object) -> str:
    return k if isinstance(k, str) else _safe_str(k)


def _type_name(v: object) -> str:
    t = type(v)
    if t.__module__ == "builtins":
        return t.__qualname__
    return f"{t.__module__}.{t.__qualname__}"


def _safe_repr(v: object) -> str:
    try:
        return repr(v)
    except Exception:  # noqa: BLE001
        return f"<{_type_name(v)} object>"


def _safe_str(v: object) -> str:
    try:
        return str(v)
    except Exception:  # noqa: BLE001
        return _safe_repr(v)
