"""Bridges from Python logging front-ends to OpenTelemetry logs."""

__version__ = "0.1.0"

from logbridge.adapters.core import Caller, CheckedEntry, Core, Entry, Level
from logbridge.adapters.logging import OTelHandler, new_logger
from logbridge.config import Config
from logbridge.core.attrs import Attr, group
from logbridge.core.fields import Field
from logbridge.core.models import KeyValue, Record, Severity, Value
from logbridge.errors import BridgeError, MarshalError

__all__ = [
    "Attr",
    "BridgeError",
    "Caller",
    "CheckedEntry",
    "Config",
    "Core",
    "Entry",
    "Field",
    "KeyValue",
    "Level",
    "MarshalError",
    "OTelHandler",
    "Record",
    "Severity",
    "Value",
    "__version__",
    "group",
    "new_logger",
]
