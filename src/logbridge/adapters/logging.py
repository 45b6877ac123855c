"""Python logging handler adapter for OpenTelemetry logs.

This adapter bridges Python's standard library logging module to a
LoggerPort (an OpenTelemetry logger by default).

Records are converted as follows:

- ``created`` becomes the timestamp.
- ``getMessage()`` becomes the body, as a string value.
- ``levelno`` becomes the severity (see level_to_severity) and
  ``levelname`` the severity text.
- ``exc_info`` becomes the exception.* attributes, ``stack_info`` the
  code.stacktrace attribute (unless inject_stacktrace is off).
- Extra attributes (``extra={...}``) become attributes, converted with
  logbridge.core.convert. An extra holding an OpenTelemetry Context is not
  an attribute: it is the context the record is emitted with.

Handlers derived with with_attrs() and with_group() share the back-end
logger but never each other's attributes.
"""

import copy
import logging
import traceback
from collections.abc import Iterable

from opentelemetry import context as otel_context
from opentelemetry.context import Context

from logbridge import __version__
from logbridge.config import DEFAULT_SCOPE_NAME, Config
from logbridge.core import semconv
from logbridge.core.attrs import Attr, AttrBuffer
from logbridge.core.convert import convert_attrs
from logbridge.core.groups import Group, materialize
from logbridge.core.models import (
    KeyValue,
    Record,
    Severity,
    int64_value,
    string_value,
)
from logbridge.core.ports import LoggerProviderPort

# Standard LogRecord attributes that should not be treated as extra fields
_STANDARD_LOGRECORD_ATTRS = frozenset(
    {
        "args",
        "asctime",
        "created",
        "exc_info",
        "exc_text",
        "filename",
        "funcName",
        "levelname",
        "levelno",
        "lineno",
        "message",
        "module",
        "msecs",
        "msg",
        "name",
        "pathname",
        "process",
        "processName",
        "relativeCreated",
        "stack_info",
        "taskName",
        "thread",
        "threadName",
    }
)

# Lowest level of each decade and the severity it maps to.
_TIERS = (
    (logging.CRITICAL, Severity.FATAL),
    (logging.ERROR, Severity.ERROR),
    (logging.WARNING, Severity.WARN),
    (logging.INFO, Severity.INFO),
    (logging.DEBUG, Severity.DEBUG),
)


def level_to_severity(level: int) -> Severity:
    """Map a logging level to a severity.

    Logging levels are spaced by 10 where severities are spaced by 4, so
    the static offset is applied inside each decade: DEBUG+1 is DEBUG2,
    DEBUG+3 and above is DEBUG4. Levels 1-9 map to TRACE..TRACE4 and
    NOTSET to UNSPECIFIED.
    """
    if level <= logging.NOTSET:
        return Severity.UNSPECIFIED
    for base_level, base in _TIERS:
        if level >= base_level:
            return Severity(base.value + min(level - base_level, 3))
    return Severity(Severity.TRACE.value + min(level - 1, 3))


def severity_to_level(severity: Severity) -> int:
    """Map a severity back to the logging level it was derived from."""
    if severity is Severity.UNSPECIFIED:
        return logging.NOTSET
    for base_level, base in _TIERS:
        if severity.value >= base.value:
            return base_level + severity.value - base.value
    return 1 + severity.value - Severity.TRACE.value


def _check_standard_levels() -> None:
    standard = {
        logging.DEBUG: Severity.DEBUG,
        logging.INFO: Severity.INFO,
        logging.WARNING: Severity.WARN,
        logging.ERROR: Severity.ERROR,
    }
    for level, severity in standard.items():
        if level_to_severity(level) is not severity or severity_to_level(severity) != level:
            raise RuntimeError(f"logging level {level} does not line up with {severity.name}")


_check_standard_levels()


def _extras(record: logging.LogRecord) -> Iterable[tuple[str, object]]:
    return ((k, v) for k, v in record.__dict__.items() if k not in _STANDARD_LOGRECORD_ATTRS)


def _record_context(record: logging.LogRecord) -> Context:
    """Return the last Context passed as an extra, else the current one."""
    found: Context | None = None
    for _, value in _extras(record):
        if isinstance(value, Context):
            found = value
    return found if found is not None else otel_context.get_current()


def _source_attributes(record: logging.LogRecord) -> list[KeyValue]:
    function = record.funcName or ""
    namespace = record.module or ""
    if "." in function:
        owner, _, function = function.rpartition(".")
        namespace = f"{namespace}.{owner}" if namespace else owner
    return [
        KeyValue(semconv.CODE_FILEPATH, string_value(record.pathname or "")),
        KeyValue(semconv.CODE_FUNCTION, string_value(function)),
        KeyValue(semconv.CODE_NAMESPACE, string_value(namespace)),
        KeyValue(semconv.CODE_LINENO, int64_value(record.lineno)),
    ]


def _exception_attributes(record: logging.LogRecord) -> list[KeyValue]:
    exc_type, exc_value, exc_tb = record.exc_info  # type: ignore[misc]
    out: list[KeyValue] = []
    if exc_type is not None:
        out.append(KeyValue(semconv.EXCEPTION_TYPE, string_value(exc_type.__name__)))
    if exc_value is not None:
        out.append(KeyValue(semconv.EXCEPTION_MESSAGE, string_value(str(exc_value))))
    if exc_tb is not None:
        stacktrace = "".join(traceback.format_exception(exc_type, exc_value, exc_tb))
        out.append(KeyValue(semconv.EXCEPTION_STACKTRACE, string_value(stacktrace)))
    return out


class OTelHandler(logging.Handler):
    """Logging handler that sends log records to OpenTelemetry.

    Example:
        ```python
        from logbridge import OTelHandler

        handler = OTelHandler("myapp", include_source=True)
        logging.getLogger().addHandler(handler)

        log = handler.with_group("request").with_attrs(id="abc123").logger("myapp")
        log.info("served", extra={"status": 200})
        # attributes: {"request": {"id": "abc123", "status": 200}}
        ```
    """

    def __init__(
        self,
        name: str | None = None,
        *,
        provider: LoggerProviderPort | object | None = None,
        version: str = __version__,
        schema_url: str = "",
        include_source: bool = False,
        inject_stacktrace: bool = True,
        level: int = logging.NOTSET,
    ) -> None:
        """Initialize the handler with a back-end logger.

        Args:
            name: Instrumentation scope name. Defaults to "logbridge".
            provider: OpenTelemetry LoggerProvider or LoggerProviderPort.
                Defaults to the globally registered provider.
            version: Instrumentation scope version.
            schema_url: Schema URL of the emitted attributes.
            include_source: Attach code.filepath, code.function,
                code.namespace and code.lineno to every record.
            inject_stacktrace: Attach ``stack_info`` as code.stacktrace.
            level: Handler level, as for any logging.Handler.
        """
        super().__init__(level)
        self._config = Config(
            provider=provider,  # type: ignore[arg-type]
            scope_name=name or DEFAULT_SCOPE_NAME,
            scope_version=version,
            schema_url=schema_url,
            include_source=include_source,
            inject_stacktrace=inject_stacktrace,
        )
        self._logger = self._config.logger()
        self._attrs = AttrBuffer()
        self._group: Group | None = None

    def enabled(self, level: int, context: Context | None = None) -> bool:
        """Report whether the back-end keeps records of this level.

        Args:
            level: Logging level.
            context: Context to ask with. Defaults to the current context.
        """
        if context is None:
            context = otel_context.get_current()
        return self._logger.enabled(context, level_to_severity(level))

    def filter(self, record: logging.LogRecord) -> bool | logging.LogRecord:
        if not self.enabled(record.levelno, _record_context(record)):
            return False
        return super().filter(record)

    def handle(self, record: logging.LogRecord) -> bool | logging.LogRecord:
        # emit only reads immutable handler state, so no handler lock is taken.
        rv = self.filter(record)
        if isinstance(rv, logging.LogRecord):
            record = rv
        if rv:
            self.emit(record)
        return rv

    def emit(self, record: logging.LogRecord) -> None:
        """Emit a log record to the back-end.

        Args:
            record: The log record to emit.
        """
        try:
            self._logger.emit(_record_context(record), self._convert_record(record))
        except RecursionError:
            raise
        except Exception:
            self.handleError(record)

    def _convert_record(self, record: logging.LogRecord) -> Record:
        out = Record(
            timestamp=round(record.created * 1e9),
            severity=level_to_severity(record.levelno),
            severity_text=record.levelname,
            body=string_value(record.getMessage()),
        )
        if self._config.include_source:
            out.add_attributes(*_source_attributes(record))
        if record.exc_info:
            out.add_attributes(*_exception_attributes(record))
        if record.stack_info and self._config.inject_stacktrace:
            out.add_attributes(KeyValue(semconv.CODE_STACKTRACE, string_value(record.stack_info)))

        kvs = convert_attrs(Attr(k, v) for k, v in _extras(record) if not isinstance(v, Context))
        out.add_attributes(*materialize(self._attrs, self._group, kvs))
        return out

    def _clone(self) -> "OTelHandler":
        h = copy.copy(self)
        h.createLock()
        h.filters = list(self.filters)
        return h

    def with_attrs(self, *attrs: Attr, **kwargs: object) -> "OTelHandler":
        """Return a handler that adds attrs to every record.

        The attributes go into the innermost group opened with with_group,
        if any.
        """
        new_attrs = [*attrs, *(Attr(k, v) for k, v in kwargs.items())]
        h = self._clone()
        if h._group is not None:
            h._group = h._group.clone()
            h._group.add_attrs(new_attrs)
        else:
            h._attrs = h._attrs.clone()
            h._attrs.add_attrs(new_attrs)
        return h

    def with_group(self, name: str) -> "OTelHandler":
        """Return a handler that nests all further attributes under name.

        An empty name returns this handler unchanged.
        """
        if name == "":
            return self
        h = self._clone()
        h._group = self._group.push(name) if self._group is not None else Group(name)
        return h

    def logger(self, name: str | None = None) -> logging.Logger:
        """Return a standalone logging.Logger writing only to this handler.

        The logger is not registered with the logging manager and does not
        propagate, so derived handlers can be used side by side.
        """
        log = logging.Logger(name or self._config.scope_name)
        log.addHandler(self)
        log.propagate = False
        return log


def new_logger(name: str | None = None, **options: object) -> logging.Logger:
    """Return a standalone logger backed by a new OTelHandler.

    Args:
        name: Instrumentation scope name and logger name.
        **options: Keyword options of OTelHandler.
    """
    return OTelHandler(name, **options).logger(name)  # type: ignore[arg-type]
