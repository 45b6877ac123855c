"""Shared test fixtures for all test modules."""

import logging
from collections.abc import Callable

import pytest

from logbridge.adapters.core import Core
from logbridge.adapters.in_memory import InMemoryLogger, InMemoryLoggerProvider
from logbridge.adapters.logging import OTelHandler
from logbridge.core.models import Record


@pytest.fixture
def provider() -> InMemoryLoggerProvider:
    """Provide an in-memory provider that keeps every record."""
    return InMemoryLoggerProvider()


@pytest.fixture
def handler(provider: InMemoryLoggerProvider) -> OTelHandler:
    """Provide a handler writing to the in-memory provider."""
    return OTelHandler("test", provider=provider)


@pytest.fixture
def core(provider: InMemoryLoggerProvider) -> Core:
    """Provide a core writing to the in-memory provider."""
    return Core("test", provider=provider)


@pytest.fixture
def backend(provider: InMemoryLoggerProvider, handler: OTelHandler) -> InMemoryLogger:
    """The in-memory logger the handler fixture writes to."""
    return provider.loggers[0]


@pytest.fixture
def log_with() -> Callable[[OTelHandler], logging.Logger]:
    """Factory returning a standalone stdlib logger bound to a handler.

    Usage:
        def test_something(handler, log_with):
            log_with(handler.with_group("G")).info("m")
    """

    def _log_with(h: OTelHandler) -> logging.Logger:
        return h.logger("test")

    return _log_with


@pytest.fixture
def only_record(provider: InMemoryLoggerProvider) -> Callable[[], Record]:
    """Return a callable that asserts exactly one record was emitted."""

    def _only_record() -> Record:
        records = provider.records
        assert len(records) == 1, records
        return records[0]

    return _only_record
