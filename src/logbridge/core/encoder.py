"""Encoders turning field additions into ordered KeyValues.

ObjectEncoder collects keyed values, ArrayEncoder collects elements. User
types take part through two small capabilities:

    class Ducks:
        def marshal_log_array(self, enc: ArrayEncoder) -> None:
            for d in self.ducks:
                enc.append_object(d)

A marshaler may raise. The partially encoded value is attached anyway and
the exception propagates to whoever drove the encoder.

Namespaces opened with ObjectEncoder.open_namespace are closed when the
encoder is finalised. A nested object gets its own encoder, so a namespace
opened inside a marshaler ends when that marshaler returns.
"""

import json
from datetime import datetime, timedelta
from typing import Protocol, runtime_checkable

from opentelemetry.context import Context

from logbridge.core.convert import (
    convert,
    convert_duration,
    convert_float32,
    convert_int,
    convert_time,
)
from logbridge.core.models import (
    KeyValue,
    Value,
    bool_value,
    bytes_value,
    float64_value,
    map_value,
    slice_value,
    string_value,
)


@runtime_checkable
class ObjectMarshaler(Protocol):
    """A type that can encode itself as a Map."""

    def marshal_log_object(self, enc: "ObjectEncoder") -> None: ...


@runtime_checkable
class ArrayMarshaler(Protocol):
    """A type that can encode itself as a Slice."""

    def marshal_log_array(self, enc: "ArrayEncoder") -> None: ...


def _complex(v: complex) -> Value:
    return map_value(KeyValue("r", float64_value(v.real)), KeyValue("i", float64_value(v.imag)))


def _reflect(v: object) -> Value:
    return string_value(json.dumps(v, ensure_ascii=False))


class ObjectEncoder:
    """Encodes keyed fields.

    Attributes:
        context: The last OpenTelemetry Context handed to add_reflected,
            or the one given at construction.
    """

    def __init__(self, context: Context | None = None) -> None:
        self.context = context
        self._root: list[KeyValue] = []
        # Open namespaces, outermost first.
        self._namespaces: list[tuple[str, list[KeyValue]]] = []

    @property
    def _cur(self) -> list[KeyValue]:
        return self._namespaces[-1][1] if self._namespaces else self._root

    def _add(self, key: str, value: Value) -> None:
        self._cur.append(KeyValue(key, value))

    def add_bool(self, key: str, v: bool) -> None:
        self._add(key, bool_value(v))

    def add_int(self, key: str, v: int) -> None:
        self._add(key, convert_int(int(v)))

    def add_float(self, key: str, v: float) -> None:
        self._add(key, float64_value(v))

    def add_float32(self, key: str, v: float) -> None:
        self._add(key, convert_float32(v))

    def add_complex(self, key: str, v: complex) -> None:
        self._add(key, _complex(complex(v)))

    def add_string(self, key: str, v: str) -> None:
        self._add(key, string_value(v))

    def add_byte_string(self, key: str, v: bytes) -> None:
        """Add text held in bytes; it is decoded as UTF-8."""
        self._add(key, string_value(bytes(v).decode("utf-8", errors="replace")))

    def add_binary(self, key: str, v: bytes) -> None:
        """Add opaque binary data."""
        self._add(key, bytes_value(v))

    def add_time(self, key: str, v: datetime) -> None:
        self._add(key, convert_time(v))

    def add_duration(self, key: str, v: timedelta) -> None:
        self._add(key, convert_duration(v))

    def add_any(self, key: str, v: object) -> None:
        """Add a value through the generic converter."""
        self._add(key, convert(v))

    def add_reflected(self, key: str, v: object) -> None:
        """Add a value serialised as JSON text.

        A Context is not added; it becomes the encoder's context.

        Raises:
            TypeError: v is not JSON serialisable.
            ValueError: v contains a reference cycle.
        """
        if isinstance(v, Context):
            self.context = v
            return
        self._add(key, _reflect(v))

    def add_object(self, key: str, v: ObjectMarshaler) -> None:
        """Add a Map built by v.marshal_log_object."""
        enc = ObjectEncoder()
        try:
            v.marshal_log_object(enc)
        finally:
            self._add(key, map_value(*enc.key_values()))

    def add_array(self, key: str, v: ArrayMarshaler) -> None:
        """Add a Slice built by v.marshal_log_array."""
        enc = ArrayEncoder()
        try:
            v.marshal_log_array(enc)
        finally:
            self._add(key, slice_value(*enc.values()))

    def open_namespace(self, key: str) -> None:
        """Nest all following fields of this encoder under key."""
        self._namespaces.append((key, []))

    def key_values(self) -> list[KeyValue]:
        """Return the encoded fields with open namespaces closed."""
        nested: KeyValue | None = None
        for key, fields in reversed(self._namespaces):
            items = [*fields, nested] if nested is not None else list(fields)
            nested = KeyValue(key, map_value(*items))
        if nested is None:
            return list(self._root)
        return [*self._root, nested]


class ArrayEncoder:
    """Encodes the elements of a Slice."""

    def __init__(self) -> None:
        self._elems: list[Value] = []

    def append_bool(self, v: bool) -> None:
        self._elems.append(bool_value(v))

    def append_int(self, v: int) -> None:
        self._elems.append(convert_int(int(v)))

    def append_float(self, v: float) -> None:
        self._elems.append(float64_value(v))

    def append_float32(self, v: float) -> None:
        self._elems.append(convert_float32(v))

    def append_complex(self, v: complex) -> None:
        self._elems.append(_complex(complex(v)))

    def append_string(self, v: str) -> None:
        self._elems.append(string_value(v))

    def append_byte_string(self, v: bytes) -> None:
        self._elems.append(string_value(bytes(v).decode("utf-8", errors="replace")))

    def append_binary(self, v: bytes) -> None:
        self._elems.append(bytes_value(v))

    def append_time(self, v: datetime) -> None:
        self._elems.append(convert_time(v))

    def append_duration(self, v: timedelta) -> None:
        self._elems.append(convert_duration(v))

    def append_any(self, v: object) -> None:
        self._elems.append(convert(v))

    def append_reflected(self, v: object) -> None:
        self._elems.append(_reflect(v))

    def append_object(self, v: ObjectMarshaler) -> None:
        enc = ObjectEncoder()
        try:
            v.marshal_log_object(enc)
        finally:
            self._elems.append(map_value(*enc.key_values()))

    def append_array(self, v: ArrayMarshaler) -> None:
        """Append a nested Slice built by v.marshal_log_array."""
        enc = ArrayEncoder()
        try:
            v.marshal_log_array(enc)
        finally:
            self._elems.append(slice_value(*enc.values()))

    def values(self) -> list[Value]:
        return list(self._elems)


def marshal_object(v: ObjectMarshaler) -> tuple[Value, Exception | None]:
    """Encode an object marshaler, returning the value and any error."""
    enc = ObjectEncoder()
    err: Exception | None = None
    try:
        v.marshal_log_object(enc)
    except Exception as exc:  # noqa: BLE001
        err = exc
    return map_value(*enc.key_values()), err


def marshal_array(v: ArrayMarshaler) -> tuple[Value, Exception | None]:
    """Encode an array marshaler, returning the value and any error."""
    enc = ArrayEncoder()
    err: Exception | None = None
    try:
        v.marshal_log_array(enc)
    except Exception as exc:  # noqa: BLE001
        err = exc
    return slice_value(*enc.values()), err
