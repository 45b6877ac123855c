"""Core domain models: the back-end value model and log records."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from opentelemetry._logs import SeverityNumber

# Severity is the back-end enum itself; UNSPECIFIED plays the "Undefined" role.
Severity = SeverityNumber


class Kind(Enum):
    """Discriminator of a Value."""

    EMPTY = "empty"
    BOOL = "bool"
    INT64 = "int64"
    FLOAT64 = "float64"
    STRING = "string"
    BYTES = "bytes"
    SLICE = "slice"
    MAP = "map"


@dataclass(frozen=True, slots=True)
class Value:
    """An immutable tagged union of log data.

    The kind uniquely determines which accessor is valid. Composite values
    own their children as tuples, so a Value can be shared freely.

    Attributes:
        kind: The discriminator.
        data: The payload matching kind (None for EMPTY).
    """

    kind: Kind = Kind.EMPTY
    data: Any = None

    def _expect(self, kind: Kind) -> Any:
        if self.kind is not kind:
            raise TypeError(f"value of kind {self.kind.value} is not {kind.value}")
        return self.data

    def as_bool(self) -> bool:
        return self._expect(Kind.BOOL)

    def as_int64(self) -> int:
        return self._expect(Kind.INT64)

    def as_float64(self) -> float:
        return self._expect(Kind.FLOAT64)

    def as_string(self) -> str:
        return self._expect(Kind.STRING)

    def as_bytes(self) -> bytes:
        return self._expect(Kind.BYTES)

    def as_slice(self) -> tuple["Value", ...]:
        return self._expect(Kind.SLICE)

    def as_map(self) -> tuple["KeyValue", ...]:
        return self._expect(Kind.MAP)

    @property
    def empty(self) -> bool:
        """True if this is the EMPTY value."""
        return self.kind is Kind.EMPTY

    def to_any(self) -> Any:
        """Lower the value to the OpenTelemetry AnyValue shape.

        Maps become dicts (a repeated key keeps its last value), slices
        become lists and EMPTY becomes None.
        """
        match self.kind:
            case Kind.SLICE:
                return [v.to_any() for v in self.data]
            case Kind.MAP:
                return {kv.key: kv.value.to_any() for kv in self.data}
            case _:
                return self.data


@dataclass(frozen=True, slots=True)
class KeyValue:
    """A named Value.

    Attributes:
        key: Attribute key. May be empty.
        value: Attribute value.
    """

    key: str
    value: Value = field(default_factory=Value)


EMPTY = Value()


def bool_value(v: bool) -> Value:
    return Value(Kind.BOOL, bool(v))


def int64_value(v: int) -> Value:
    return Value(Kind.INT64, int(v))


def float64_value(v: float) -> Value:
    return Value(Kind.FLOAT64, float(v))


def string_value(v: str) -> Value:
    return Value(Kind.STRING, v)


def bytes_value(v: bytes | bytearray | memoryview) -> Value:
    return Value(Kind.BYTES, bytes(v))


def slice_value(*values: Value) -> Value:
    return Value(Kind.SLICE, tuple(values))


def map_value(*kvs: KeyValue) -> Value:
    return Value(Kind.MAP, tuple(kvs))


@dataclass
class Record:
    """One log event handed to the back-end.

    Records are built per log call and never shared between calls.

    Attributes:
        timestamp: Event time in nanoseconds since the Unix epoch.
        observed_timestamp: Time the bridge saw the event, in nanoseconds.
        severity: Back-end severity.
        severity_text: The front-end's own level name.
        body: The log message.
        attributes: Ordered attributes.
    """

    timestamp: int | None = None
    observed_timestamp: int | None = None
    severity: Severity = Severity.UNSPECIFIED
    severity_text: str = ""
    body: Value = EMPTY
    attributes: list[KeyValue] = field(default_factory=list)

    def add_attributes(self, *kvs: KeyValue) -> None:
        """Append attributes, keeping their order."""
        self.attributes.extend(kvs)

    def attribute(self, key: str) -> Value | None:
        """Return the last attribute value stored under key, if any."""
        for kv in reversed(self.attributes):
            if kv.key == key:
                return kv.value
        return None
