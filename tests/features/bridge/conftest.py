"""BDD step definitions for the bridge features."""

import json
from dataclasses import dataclass, field
from typing import Any

import pytest
from pytest_bdd import given, parsers, then, when

from logbridge.adapters.core import Core, Entry, Level
from logbridge.adapters.in_memory import InMemoryLoggerProvider
from logbridge.adapters.logging import OTelHandler
from logbridge.core.encoder import ArrayEncoder, ObjectEncoder
from logbridge.core.fields import Field
from logbridge.core.models import Record, Severity


class Chicken:
    def marshal_log_object(self, enc: ObjectEncoder) -> None:
        enc.add_string("in", "chicken")


class Ducks:
    def marshal_log_array(self, enc: ArrayEncoder) -> None:
        enc.append_object(Chicken())
        enc.append_object(Chicken())


class Turducken:
    def marshal_log_object(self, enc: ObjectEncoder) -> None:
        enc.add_array("ducks", Ducks())


@dataclass
class BridgeScenarioContext:
    """Shared state between steps in a bridge scenario."""

    provider: InMemoryLoggerProvider = field(default_factory=InMemoryLoggerProvider)
    handler: OTelHandler | None = None
    core: Core | None = None

    def record(self) -> Record:
        records = self.provider.records
        assert len(records) == 1, records
        return records[0]


@pytest.fixture
def ctx() -> BridgeScenarioContext:
    """Fresh scenario context for each test."""
    return BridgeScenarioContext()


# === Given ===


@given("a standard-logger bridge")
def given_standard_bridge(ctx: BridgeScenarioContext) -> None:
    ctx.handler = OTelHandler("bdd", provider=ctx.provider)


@given("a field-based bridge")
def given_field_bridge(ctx: BridgeScenarioContext) -> None:
    ctx.core = Core("bdd", provider=ctx.provider)


@given(parsers.parse('the bridge is derived with group "{name}"'))
def given_group(ctx: BridgeScenarioContext, name: str) -> None:
    assert ctx.handler is not None
    ctx.handler = ctx.handler.with_group(name)


@given(parsers.parse('the bridge is derived with attribute {key} = "{value}"'))
def given_attribute(ctx: BridgeScenarioContext, key: str, value: str) -> None:
    assert ctx.handler is not None
    ctx.handler = ctx.handler.with_attrs(**{key: value})


# === When ===


@when(parsers.parse('"{message}" is logged at INFO with attribute {key} = "{value}"'))
def when_logged_with_attribute(ctx: BridgeScenarioContext, message: str, key: str, value: str) -> None:
    assert ctx.handler is not None
    ctx.handler.logger("bdd").info(message, extra={key: value})


@when(parsers.parse('"{message}" is logged at INFO with no attributes'))
def when_logged_without_attributes(ctx: BridgeScenarioContext, message: str) -> None:
    assert ctx.handler is not None
    ctx.handler.logger("bdd").info(message)


@when(parsers.parse('"{message}" is logged at INFO with the largest uint64 in field "{key}"'))
def when_logged_with_uint64(ctx: BridgeScenarioContext, message: str, key: str) -> None:
    assert ctx.core is not None
    ctx.core.write(Entry(Level.INFO, message), [Field.of(key, 2**64 - 1)])


@when(parsers.parse('"{message}" is logged at INFO with a turducken in field "{key}"'))
def when_logged_with_turducken(ctx: BridgeScenarioContext, message: str, key: str) -> None:
    assert ctx.core is not None
    ctx.core.write(Entry(Level.INFO, message), [Field.of(key, Turducken())])


# === Then ===


@then(parsers.parse('the record body is "{message}"'))
def then_body(ctx: BridgeScenarioContext, message: str) -> None:
    assert ctx.record().body.as_string() == message


@then(parsers.parse("the record severity is {name}"))
def then_severity(ctx: BridgeScenarioContext, name: str) -> None:
    assert ctx.record().severity is Severity[name]


@then(parsers.parse("the record attributes are {attributes}"))
def then_attributes(ctx: BridgeScenarioContext, attributes: str) -> None:
    expected: dict[str, Any] = json.loads(attributes)
    actual = {kv.key: kv.value.to_any() for kv in ctx.record().attributes}
    assert actual == expected
