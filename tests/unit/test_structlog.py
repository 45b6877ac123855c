"""Unit tests for the structlog integration."""

from collections.abc import Callable
from typing import Any

import pytest
import structlog

from logbridge.adapters.core import Core
from logbridge.adapters.in_memory import InMemoryLoggerProvider
from logbridge.adapters.structlog import OTelLogger, OTelLoggerFactory, drop_disabled
from logbridge.core.models import KeyValue, Record, Severity, int64_value, string_value


class Broken:
    def marshal_log_object(self, enc: Any) -> None:
        raise ValueError("bad")


def wrap(core: Core, *processors: Any) -> Any:
    return structlog.wrap_logger(OTelLogger(core), processors=list(processors))


@pytest.mark.core
class TestOTelLogger:
    """Tests for the wrapped OTelLogger."""

    @pytest.mark.tier(1)
    @pytest.mark.tra("Adapter.Structlog.Write")
    def test_event_becomes_body_and_kwargs_fields(self, core: Core, only_record: Callable[[], Record]) -> None:
        wrap(core).warning("served", status=200)

        r = only_record()
        assert r.body == string_value("served")
        assert r.severity is Severity.WARN
        assert r.attributes == [KeyValue("status", int64_value(200))]

    @pytest.mark.tier(1)
    @pytest.mark.tra("Adapter.Structlog.Write")
    def test_bound_values_come_first(self, core: Core, only_record: Callable[[], Record]) -> None:
        wrap(core).bind(a=1).info("m", b=2)

        assert [kv.key for kv in only_record().attributes] == ["a", "b"]

    @pytest.mark.tier(1)
    @pytest.mark.tra("Adapter.Structlog.Levels")
    def test_critical_maps_to_fatal_tier(self, core: Core, only_record: Callable[[], Record]) -> None:
        wrap(core).critical("down")

        assert only_record().severity is Severity.FATAL3

    @pytest.mark.tier(1)
    @pytest.mark.tra("Adapter.Structlog.Exceptions")
    def test_exception_becomes_field(self, core: Core, only_record: Callable[[], Record]) -> None:
        try:
            raise ValueError("Something went wrong")
        except ValueError:
            wrap(core).exception("failed")

        r = only_record()
        assert r.severity is Severity.ERROR
        assert r.attribute("exception") == string_value("Something went wrong")
        assert r.attribute("exc_info") is None

    @pytest.mark.tier(1)
    @pytest.mark.tra("Adapter.Structlog.Stack")
    def test_stack_becomes_stacktrace(self, core: Core, only_record: Callable[[], Record]) -> None:
        wrap(core, structlog.processors.StackInfoRenderer()).info("where", stack_info=True)

        r = only_record()
        assert r.attribute("code.stacktrace") is not None
        assert r.attribute("stack") is None

    @pytest.mark.tier(1)
    @pytest.mark.tra("Adapter.Structlog.Caller")
    def test_callsite_parameters_become_caller(self, core: Core, only_record: Callable[[], Record]) -> None:
        adder = structlog.processors.CallsiteParameterAdder(
            [
                structlog.processors.CallsiteParameter.PATHNAME,
                structlog.processors.CallsiteParameter.MODULE,
                structlog.processors.CallsiteParameter.FUNC_NAME,
                structlog.processors.CallsiteParameter.LINENO,
            ]
        )

        wrap(core, adder).info("here")

        r = only_record()
        assert r.attribute("code.function") == string_value("test_callsite_parameters_become_caller")
        assert r.attribute("code.namespace") == string_value(__name__.rpartition(".")[2])
        lineno = r.attribute("code.lineno")
        assert lineno is not None
        assert lineno.as_int64() > 0
        assert r.attribute("lineno") is None

    @pytest.mark.tier(1)
    @pytest.mark.tra("Adapter.Structlog.Write")
    def test_logger_key_stays_a_field(self, core: Core, only_record: Callable[[], Record]) -> None:
        wrap(core).bind(logger="payments").info("m")

        assert only_record().attributes == [KeyValue("logger", string_value("payments"))]

    @pytest.mark.tier(1)
    @pytest.mark.tra("Adapter.Structlog.Time")
    def test_numeric_timestamp_becomes_record_time(self, core: Core, only_record: Callable[[], Record]) -> None:
        OTelLogger(core).info(event="m", timestamp=1.5)

        r = only_record()
        assert r.timestamp == 1_500_000_000
        assert r.attribute("timestamp") is None

    @pytest.mark.tier(1)
    @pytest.mark.tra("Adapter.Structlog.Write")
    def test_positional_message(self, core: Core, only_record: Callable[[], Record]) -> None:
        OTelLogger(core).info("rendered text")

        assert only_record().body == string_value("rendered text")

    @pytest.mark.tier(1)
    @pytest.mark.tra("Adapter.Structlog.Errors")
    def test_write_errors_are_logged_not_raised(
        self, core: Core, only_record: Callable[[], Record], caplog: pytest.LogCaptureFixture
    ) -> None:
        wrap(core).info("m", obj=Broken())

        only_record()
        assert "Failed to write log entry 'm'" in caplog.text

    @pytest.mark.tier(1)
    @pytest.mark.tra("Adapter.Structlog.Levels")
    def test_unknown_method_is_attribute_error(self, core: Core) -> None:
        with pytest.raises(AttributeError):
            OTelLogger(core).frobnicate  # noqa: B018

    @pytest.mark.tier(1)
    @pytest.mark.tra("Adapter.Structlog.Enabled")
    def test_disabled_levels_are_not_written(self) -> None:
        provider = InMemoryLoggerProvider(Severity.WARN)

        log = wrap(Core(provider=provider))
        log.info("dropped")
        log.error("kept")

        assert [r.body.as_string() for r in provider.records] == ["kept"]


@pytest.mark.core
class TestFactoryAndProcessors:
    """Tests for OTelLoggerFactory and drop_disabled."""

    @pytest.mark.tier(1)
    @pytest.mark.tra("Adapter.Structlog.Factory")
    def test_factory_names_loggers(self, provider: InMemoryLoggerProvider) -> None:
        factory = OTelLoggerFactory(provider=provider)

        factory("child").info(event="m")
        factory().info(event="m")

        assert [lg.scope.name for lg in provider.loggers] == ["logbridge", "child"]
        assert len(provider.loggers[0].records) == 1
        assert len(provider.loggers[1].records) == 1

    @pytest.mark.tier(1)
    @pytest.mark.tra("Adapter.Structlog.Factory")
    def test_factory_wraps_given_core(self, core: Core) -> None:
        assert OTelLoggerFactory(core)().core is core

    @pytest.mark.tier(1)
    @pytest.mark.tra("Adapter.Structlog.DropDisabled")
    def test_drop_disabled(self) -> None:
        logger = OTelLogger(Core(provider=InMemoryLoggerProvider(Severity.WARN)))
        event_dict = {"event": "m"}

        with pytest.raises(structlog.DropEvent):
            drop_disabled(logger, "info", event_dict)
        assert drop_disabled(logger, "error", event_dict) is event_dict
        assert drop_disabled(object(), "info", event_dict) is event_dict
