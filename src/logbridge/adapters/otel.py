"""OpenTelemetry adapter implementing the logger ports.

Records are lowered to ``opentelemetry._logs.LogRecord`` at the last
moment. The emit context is handed to the record so that the SDK can lift
the trace and span ids of the active span onto it.
"""

import logging
import time

from opentelemetry import _logs
from opentelemetry.context import Context

from logbridge.core.models import KeyValue, Record, Severity

logger = logging.getLogger(__name__)


def _attributes(kvs: list[KeyValue]) -> dict[str, object]:
    return {kv.key: kv.value.to_any() for kv in kvs}


class OTelLogger:
    """LoggerPort backed by an OpenTelemetry API logger."""

    def __init__(self, otel_logger: _logs.Logger) -> None:
        self._logger = otel_logger

    @property
    def otel_logger(self) -> _logs.Logger:
        return self._logger

    def emit(self, context: Context | None, record: Record) -> None:
        """Emit a record through the OpenTelemetry logger."""
        self._logger.emit(
            _logs.LogRecord(
                timestamp=record.timestamp,
                observed_timestamp=record.observed_timestamp or time.time_ns(),
                context=context,
                severity_text=record.severity_text or None,
                severity_number=record.severity,
                body=record.body.to_any(),
                attributes=_attributes(record.attributes),
            )
        )

    def enabled(self, context: Context | None, severity: Severity) -> bool:
        """Report whether the OpenTelemetry logger would keep the record.

        The API no-op logger is never enabled. A logger exposing an
        ``is_enabled`` capability is asked; if the probe fails the record is
        considered enabled. Otherwise every severity is enabled.
        """
        if isinstance(self._logger, _logs.NoOpLogger):
            return False
        probe = getattr(self._logger, "is_enabled", None)
        if not callable(probe):
            return True
        try:
            return bool(probe(severity_number=severity, context=context))
        except Exception:  # noqa: BLE001
            logger.debug("is_enabled probe failed, treating as enabled", exc_info=True)
            return True


class OTelLoggerProvider:
    """LoggerProviderPort backed by an OpenTelemetry LoggerProvider."""

    def __init__(self, provider: _logs.LoggerProvider) -> None:
        self._provider = provider

    def get_logger(self, name: str, version: str = "", schema_url: str = "") -> OTelLogger:
        return OTelLogger(
            self._provider.get_logger(
                name,
                version=version or None,
                schema_url=schema_url or None,
            )
        )


def global_provider() -> OTelLoggerProvider:
    """Wrap the globally registered OpenTelemetry LoggerProvider."""
    return OTelLoggerProvider(_logs.get_logger_provider())
