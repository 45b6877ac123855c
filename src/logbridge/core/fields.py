"""Typed fields for the field-based front-end."""

from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum, auto

from opentelemetry.context import Context

from logbridge.core.convert import error_message
from logbridge.core.encoder import ObjectEncoder
from logbridge.errors import MarshalError


class FieldType(Enum):
    """How a Field adds itself to an encoder."""

    SKIP = auto()
    BOOL = auto()
    INT = auto()
    FLOAT = auto()
    FLOAT32 = auto()
    COMPLEX = auto()
    STRING = auto()
    BYTE_STRING = auto()
    BINARY = auto()
    TIME = auto()
    DURATION = auto()
    ERROR = auto()
    OBJECT = auto()
    ARRAY = auto()
    REFLECT = auto()
    NAMESPACE = auto()
    CONTEXT = auto()
    ANY = auto()


@dataclass(frozen=True, slots=True)
class Field:
    """A typed key/value pair.

    Use Field.of to infer the type from a value, or one of the explicit
    constructors when the value's Python type is ambiguous (text in bytes,
    4-byte floats, JSON rendering, namespaces).
    """

    key: str
    type: FieldType
    value: object = None

    @classmethod
    def of(cls, key: str, value: object) -> "Field":
        match value:
            case Field():
                return value
            case Context():
                return cls(key, FieldType.CONTEXT, value)
            case bool():
                return cls(key, FieldType.BOOL, value)
            case int():
                return cls(key, FieldType.INT, value)
            case float():
                return cls(key, FieldType.FLOAT, value)
            case complex():
                return cls(key, FieldType.COMPLEX, value)
            case str():
                return cls(key, FieldType.STRING, value)
            case bytes() | bytearray() | memoryview():
                return cls(key, FieldType.BINARY, value)
            case datetime():
                return cls(key, FieldType.TIME, value)
            case timedelta():
                return cls(key, FieldType.DURATION, value)
            case BaseException():
                return cls(key, FieldType.ERROR, value)
        if hasattr(value, "marshal_log_object"):
            return cls(key, FieldType.OBJECT, value)
        if hasattr(value, "marshal_log_array"):
            return cls(key, FieldType.ARRAY, value)
        return cls(key, FieldType.ANY, value)

    @classmethod
    def byte_string(cls, key: str, value: bytes) -> "Field":
        return cls(key, FieldType.BYTE_STRING, value)

    @classmethod
    def float32(cls, key: str, value: float) -> "Field":
        return cls(key, FieldType.FLOAT32, value)

    @classmethod
    def reflect(cls, key: str, value: object) -> "Field":
        """Field rendered as JSON text."""
        return cls(key, FieldType.REFLECT, value)

    @classmethod
    def namespace(cls, key: str) -> "Field":
        """Field nesting every following field under key."""
        return cls(key, FieldType.NAMESPACE)

    @classmethod
    def context(cls, ctx: Context, key: str = "context") -> "Field":
        """Field carrying the OpenTelemetry context to emit with."""
        return cls(key, FieldType.CONTEXT, ctx)

    @classmethod
    def of_object(cls, key: str, value: object) -> "Field":
        if not hasattr(value, "marshal_log_object"):
            raise MarshalError(f"{type(value).__qualname__} has no marshal_log_object method")
        return cls(key, FieldType.OBJECT, value)

    @classmethod
    def of_array(cls, key: str, value: object) -> "Field":
        if not hasattr(value, "marshal_log_array"):
            raise MarshalError(f"{type(value).__qualname__} has no marshal_log_array method")
        return cls(key, FieldType.ARRAY, value)

    @classmethod
    def skip(cls) -> "Field":
        """Field that adds nothing."""
        return cls("", FieldType.SKIP)

    def add_to(self, enc: ObjectEncoder) -> None:
        """Add the field to enc.

        Raises:
            Exception: Whatever a marshaler or JSON rendering raised. The
                partial value has been added already.
        """
        k, v = self.key, self.value
        match self.type:
            case FieldType.SKIP:
                pass
            case FieldType.BOOL:
                enc.add_bool(k, v)  # type: ignore[arg-type]
            case FieldType.INT:
                enc.add_int(k, v)  # type: ignore[arg-type]
            case FieldType.FLOAT:
                enc.add_float(k, v)  # type: ignore[arg-type]
            case FieldType.FLOAT32:
                enc.add_float32(k, v)  # type: ignore[arg-type]
            case FieldType.COMPLEX:
                enc.add_complex(k, v)  # type: ignore[arg-type]
            case FieldType.STRING:
                enc.add_string(k, v)  # type: ignore[arg-type]
            case FieldType.BYTE_STRING:
                enc.add_byte_string(k, v)  # type: ignore[arg-type]
            case FieldType.BINARY:
                enc.add_binary(k, v)  # type: ignore[arg-type]
            case FieldType.TIME:
                enc.add_time(k, v)  # type: ignore[arg-type]
            case FieldType.DURATION:
                enc.add_duration(k, v)  # type: ignore[arg-type]
            case FieldType.ERROR:
                enc.add_string(k, error_message(v))  # type: ignore[arg-type]
            case FieldType.OBJECT:
                enc.add_object(k, v)  # type: ignore[arg-type]
            case FieldType.ARRAY:
                enc.add_array(k, v)  # type: ignore[arg-type]
            case FieldType.REFLECT | FieldType.CONTEXT:
                enc.add_reflected(k, v)
            case FieldType.NAMESPACE:
                enc.open_namespace(k)
            case FieldType.ANY:
                enc.add_any(k, v)
