"""structlog integration for the field-based core.

structlog hands the processed event dict to its wrapped logger by method
name. OTelLogger is such a wrapped logger: it turns the event dict into an
Entry plus Fields and writes them through a Core.

Example:
    ```python
    import structlog
    from logbridge.adapters.structlog import OTelLoggerFactory, drop_disabled

    structlog.configure(
        processors=[
            drop_disabled,
            structlog.contextvars.merge_contextvars,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.CallsiteParameterAdder(),
        ],
        logger_factory=OTelLoggerFactory(provider=provider),
    )
    structlog.get_logger("myapp").info("served", status=200)
    ```

The processor chain must end with the event dict, not with a renderer.
"""

import functools
import logging
import sys
from datetime import UTC, datetime
from typing import Any

import structlog

from logbridge.adapters.core import Caller, Core, Entry, Level
from logbridge.core.fields import Field

logger = logging.getLogger(__name__)

_CALLSITE_KEYS = ("pathname", "filename", "module", "func_name", "lineno")


def _pop_caller(event_dict: dict[str, Any]) -> Caller | None:
    if "lineno" not in event_dict or not ("pathname" in event_dict or "filename" in event_dict):
        return None
    site = {k: event_dict.pop(k) for k in _CALLSITE_KEYS if k in event_dict}
    function = site.get("func_name") or ""
    if function and site.get("module"):
        function = f"{site['module']}.{function}"
    return Caller(
        file=site.get("pathname") or site.get("filename") or "",
        line=int(site["lineno"]),
        function=function,
    )


def _pop_time(event_dict: dict[str, Any]) -> datetime | None:
    ts = event_dict.get("timestamp")
    if isinstance(ts, datetime):
        del event_dict["timestamp"]
        return ts
    if isinstance(ts, int | float) and not isinstance(ts, bool):
        del event_dict["timestamp"]
        return datetime.fromtimestamp(ts, UTC)
    return None


def _pop_exception(event_dict: dict[str, Any]) -> BaseException | None:
    exc_info = event_dict.pop("exc_info", None)
    if isinstance(exc_info, BaseException):
        return exc_info
    if isinstance(exc_info, tuple):
        return exc_info[1]
    if exc_info:
        return sys.exc_info()[1]
    return None


class OTelLogger:
    """structlog wrapped logger writing to a Core.

    Every level name Level.parse accepts is a method. Methods take the
    event dict as keyword arguments; a positional argument is used as the
    message when the dict carries no ``event``.
    """

    def __init__(self, core: Core) -> None:
        self._core = core

    def __repr__(self) -> str:
        return f"<OTelLogger(core={self._core!r})>"

    @property
    def core(self) -> Core:
        return self._core

    def __getattr__(self, name: str) -> Any:
        level = Level.parse(name)
        if level is None:
            raise AttributeError(name)
        return functools.partial(self._log, level)

    def _log(self, level: Level, /, *args: Any, **event_dict: Any) -> None:
        event = event_dict.pop("event", None)
        if event is None and args:
            event = args[0]
        event_dict.pop("level", None)
        stack = event_dict.pop("stack", None)
        exc = _pop_exception(event_dict)
        if exc is not None:
            event_dict.setdefault("exception", exc)

        entry = Entry(
            level=level,
            message="" if event is None else str(event),
            time=_pop_time(event_dict) or datetime.now(UTC),
            caller=_pop_caller(event_dict),
            stack=stack or "",
        )
        checked = self._core.check(entry)
        if checked is None:
            return
        try:
            checked.write(*(Field.of(k, v) for k, v in event_dict.items()))
        except Exception:
            logger.error("Failed to write log entry %r", entry.message, exc_info=True)

    def sync(self) -> None:
        self._core.sync()


class OTelLoggerFactory:
    """structlog logger factory producing OTelLoggers.

    Args:
        core: Core to write to. Built from options when not given.
        **options: Keyword options of Core.

    A name passed to ``structlog.get_logger`` selects the back-end logger
    for that instrumentation scope (see Core.named).
    """

    def __init__(self, core: Core | None = None, **options: Any) -> None:
        self._core = core if core is not None else Core(**options)

    def __call__(self, *args: Any) -> OTelLogger:
        if args and isinstance(args[0], str) and args[0]:
            return OTelLogger(self._core.named(args[0]))
        return OTelLogger(self._core)


def drop_disabled(logger: Any, method_name: str, event_dict: Any) -> Any:
    """structlog processor that drops events the back-end does not keep.

    Raises:
        structlog.DropEvent: The level is disabled for the logger's core.
    """
    level = Level.parse(method_name)
    if isinstance(logger, OTelLogger) and level is not None and not logger.core.enabled(level):
        raise structlog.DropEvent
    return event_dict
