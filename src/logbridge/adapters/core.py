"""Field-based logger core.

A Core receives log entries as an Entry plus a list of typed Fields, the
way a structured logging front-end (see logbridge.adapters.structlog)
hands them over, and emits them to a LoggerPort.

Example:
    ```python
    core = Core("myapp")
    entry = Entry(Level.INFO, "served")
    checked = core.check(entry)
    if checked is not None:
        checked.write(Field.of("status", 200))
    ```
"""

import copy
import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import IntEnum

from opentelemetry import context as otel_context
from opentelemetry.context import Context

from logbridge import __version__
from logbridge.config import DEFAULT_SCOPE_NAME, Config
from logbridge.core import semconv
from logbridge.core.convert import time_to_nanos
from logbridge.core.encoder import ObjectEncoder
from logbridge.core.fields import Field
from logbridge.core.models import KeyValue, Record, Severity, int64_value, string_value
from logbridge.core.ports import LoggerProviderPort

logger = logging.getLogger(__name__)


class Level(IntEnum):
    """Levels of the field-based front-end."""

    DEBUG = -1
    INFO = 0
    WARN = 1
    ERROR = 2
    DPANIC = 3
    PANIC = 4
    FATAL = 5

    @classmethod
    def parse(cls, name: str) -> "Level | None":
        """Parse a level name, as used by structlog method names.

        Returns None for names that are not levels.
        """
        return _LEVEL_NAMES.get(name.lower())


_LEVEL_NAMES = {
    "debug": Level.DEBUG,
    "info": Level.INFO,
    "msg": Level.INFO,
    "warn": Level.WARN,
    "warning": Level.WARN,
    "error": Level.ERROR,
    "exception": Level.ERROR,
    "dpanic": Level.DPANIC,
    "panic": Level.PANIC,
    "fatal": Level.FATAL,
    "critical": Level.FATAL,
}

_SEVERITIES = {
    Level.DEBUG: Severity.DEBUG,
    Level.INFO: Severity.INFO,
    Level.WARN: Severity.WARN,
    Level.ERROR: Severity.ERROR,
    # DPANIC is a development-time assertion level; it has no own severity.
    Level.DPANIC: Severity.FATAL,
    Level.PANIC: Severity.FATAL2,
    Level.FATAL: Severity.FATAL3,
}


def level_to_severity(level: int) -> Severity:
    """Map a level to a severity. Unknown levels are UNSPECIFIED."""
    return _SEVERITIES.get(level, Severity.UNSPECIFIED)  # type: ignore[call-overload]


def level_name(level: int) -> str:
    try:
        return Level(level).name.lower()
    except ValueError:
        return f"Level({level})"


@dataclass(frozen=True)
class Caller:
    """Where a log call was made.

    Attributes:
        file: Path of the source file.
        line: Line number.
        function: Qualified function name, e.g. ``myapp.server.Handler.serve``.
            Everything before the last dot is reported as code.namespace.
    """

    file: str
    line: int
    function: str = ""

    def key_values(self) -> list[KeyValue]:
        namespace, _, function = self.function.rpartition(".")
        return [
            KeyValue(semconv.CODE_FILEPATH, string_value(self.file)),
            KeyValue(semconv.CODE_LINENO, int64_value(self.line)),
            KeyValue(semconv.CODE_FUNCTION, string_value(function)),
            KeyValue(semconv.CODE_NAMESPACE, string_value(namespace)),
        ]


@dataclass(frozen=True)
class Entry:
    """A log entry without its fields.

    Attributes:
        level: Entry level.
        message: Log message, emitted as the body.
        time: When the entry was made.
        caller: Call site, when the front-end resolved it.
        stack: Formatted stack trace, when the front-end captured one.
    """

    level: int
    message: str
    time: datetime = field(default_factory=lambda: datetime.now(UTC))
    caller: Caller | None = None
    stack: str = ""


@dataclass
class CheckedEntry:
    """An entry that passed Core.check, with the cores that will write it."""

    entry: Entry
    cores: list["Core"] = field(default_factory=list)

    def add_core(self, core: "Core") -> "CheckedEntry":
        self.cores.append(core)
        return self

    def write(self, *fields: Field) -> None:
        """Write the entry to every core.

        All cores are written to; the first error is raised afterwards.
        """
        error: Exception | None = None
        for core in self.cores:
            try:
                core.write(self.entry, fields)
            except Exception as e:
                if error is None:
                    error = e
        if error is not None:
            raise error


def _encode(context: Context | None, fields: Iterable[Field]) -> tuple[ObjectEncoder, Exception | None]:
    enc = ObjectEncoder(context)
    error: Exception | None = None
    for f in fields:
        try:
            f.add_to(enc)
        except Exception as e:
            if error is None:
                error = e
    return enc, error


class Core:
    """Field-based core that sends entries to OpenTelemetry.

    Cores are immutable: with_ and named return new cores that share the
    back-end logger where they can.
    """

    def __init__(
        self,
        name: str | None = None,
        *,
        provider: LoggerProviderPort | object | None = None,
        version: str = __version__,
        schema_url: str = "",
        inject_stacktrace: bool = True,
    ) -> None:
        """Initialize the core with a back-end logger.

        Args:
            name: Instrumentation scope name. Defaults to "logbridge".
            provider: OpenTelemetry LoggerProvider or LoggerProviderPort.
                Defaults to the globally registered provider.
            version: Instrumentation scope version.
            schema_url: Schema URL of the emitted attributes.
            inject_stacktrace: Attach Entry.stack as code.stacktrace.
        """
        self._config = Config(
            provider=provider,  # type: ignore[arg-type]
            scope_name=name or DEFAULT_SCOPE_NAME,
            scope_version=version,
            schema_url=schema_url,
            inject_stacktrace=inject_stacktrace,
        )
        self._logger = self._config.logger()
        self._attrs: tuple[KeyValue, ...] = ()
        self._context: Context | None = None

    @property
    def config(self) -> Config:
        return self._config

    def _ctx(self, context: Context | None) -> Context:
        return context if context is not None else otel_context.get_current()

    def enabled(self, level: int) -> bool:
        """Report whether the back-end keeps entries of this level.

        Asks with the context attached through with_, or the current one.
        """
        return self._logger.enabled(self._ctx(self._context), level_to_severity(level))

    def check(self, entry: Entry, checked: CheckedEntry | None = None) -> CheckedEntry | None:
        """Add this core to checked if entry's level is enabled.

        Returns:
            checked (created if None) when enabled, else checked unchanged.
        """
        if not self.enabled(entry.level):
            return checked
        if checked is None:
            checked = CheckedEntry(entry)
        return checked.add_core(self)

    def write(self, entry: Entry, fields: Iterable[Field] = ()) -> None:
        """Emit entry with fields.

        A context field sets the context of this write only.

        Raises:
            Exception: The first error a field raised while encoding. The
                record has been emitted with what was encoded.
            Exception: Whatever the back-end raised from emit.
        """
        enc, error = _encode(self._context, fields)
        record = Record(
            timestamp=time_to_nanos(entry.time),
            severity=level_to_severity(entry.level),
            severity_text=level_name(entry.level),
            body=string_value(entry.message),
        )
        record.add_attributes(*self._attrs, *enc.key_values())
        if entry.caller is not None:
            record.add_attributes(*entry.caller.key_values())
        if entry.stack and self._config.inject_stacktrace:
            record.add_attributes(KeyValue(semconv.CODE_STACKTRACE, string_value(entry.stack)))

        self._logger.emit(self._ctx(enc.context), record)
        if error is not None:
            raise error

    def with_(self, fields: Iterable[Field]) -> "Core":
        """Return a core that adds fields to every entry.

        Fields that fail to encode are kept with their partial value.
        """
        enc, error = _encode(self._context, fields)
        if error is not None:
            logger.warning("Partially encoded field in with_: %s", error, exc_info=error)
        clone = copy.copy(self)
        clone._attrs = (*self._attrs, *enc.key_values())
        clone._context = enc.context
        return clone

    def sync(self) -> None:
        """Nothing is buffered."""

    def named(self, name: str) -> "Core":
        """Return a core emitting to the back-end logger for scope name."""
        clone = copy.copy(self)
        clone._logger = self._config.logger(name)
        return clone
