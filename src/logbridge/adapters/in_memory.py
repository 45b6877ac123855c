"""In-memory logger adapters."""

import threading
from dataclasses import dataclass

from opentelemetry.context import Context

from logbridge.core.models import Record, Severity


@dataclass(frozen=True)
class Scope:
    """Instrumentation scope a logger was requested for."""

    name: str
    version: str = ""
    schema_url: str = ""


class InMemoryLogger:
    """In-memory implementation of LoggerPort.

    Stores emitted records and their contexts. Suitable for testing and
    for embedding where records are inspected in-process.

    Attributes:
        scope: The scope this logger was created for.
        min_severity: Records below this severity are reported as disabled.
    """

    def __init__(self, scope: Scope | None = None, min_severity: Severity = Severity.UNSPECIFIED) -> None:
        self.scope = scope or Scope("")
        self.min_severity = min_severity
        self._lock = threading.Lock()
        self._records: list[Record] = []
        self._contexts: list[Context | None] = []

    @property
    def records(self) -> list[Record]:
        with self._lock:
            return list(self._records)

    @property
    def contexts(self) -> list[Context | None]:
        with self._lock:
            return list(self._contexts)

    def emit(self, context: Context | None, record: Record) -> None:
        with self._lock:
            self._records.append(record)
            self._contexts.append(context)

    def enabled(self, context: Context | None, severity: Severity) -> bool:
        return severity.value >= self.min_severity.value

    def clear(self) -> None:
        with self._lock:
            self._records.clear()
            self._contexts.clear()


class InMemoryLoggerProvider:
    """In-memory implementation of LoggerProviderPort.

    Every get_logger call returns a new InMemoryLogger, also kept in
    ``loggers``. All loggers share ``min_severity`` at creation time.
    """

    def __init__(self, min_severity: Severity = Severity.UNSPECIFIED) -> None:
        self.min_severity = min_severity
        self.loggers: list[InMemoryLogger] = []

    def get_logger(self, name: str, version: str = "", schema_url: str = "") -> InMemoryLogger:
        logger = InMemoryLogger(Scope(name, version, schema_url), self.min_severity)
        self.loggers.append(logger)
        return logger

    @property
    def records(self) -> list[Record]:
        """Records emitted by every logger, grouped by logger."""
        return [r for logger in self.loggers for r in logger.records]
