"""Port interfaces for the logging back-end.

The adapters depend only on these protocols. The OpenTelemetry API is
plugged in through ``logbridge.adapters.otel``; tests and embedders can use
``logbridge.adapters.in_memory``.
"""

from typing import Protocol, runtime_checkable

from opentelemetry.context import Context

from logbridge.core.models import Record, Severity


@runtime_checkable
class LoggerPort(Protocol):
    """Port for emitting log records.

    Implementations must be safe for concurrent use: adapters call them
    from whatever thread logs.
    """

    def emit(self, context: Context | None, record: Record) -> None:
        """Hand a record to the back-end. Fire-and-forget."""
        ...

    def enabled(self, context: Context | None, severity: Severity) -> bool:
        """Report whether a record with this severity would be kept."""
        ...


@runtime_checkable
class LoggerProviderPort(Protocol):
    """Port for obtaining scoped loggers."""

    def get_logger(
        self,
        name: str,
        version: str = "",
        schema_url: str = "",
    ) -> LoggerPort:
        """Return a logger for the instrumentation scope name.

        Args:
            name: Identifies the instrumented code.
            version: Version of the instrumented code. Empty if unknown.
            schema_url: Schema URL of the emitted attributes. Empty if unknown.
        """
        ...
