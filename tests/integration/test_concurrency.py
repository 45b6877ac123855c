"""Concurrent use of shared and derived adapters."""

import threading

import pytest

from logbridge.adapters.core import Core, Entry, Level
from logbridge.adapters.in_memory import InMemoryLoggerProvider
from logbridge.adapters.logging import OTelHandler
from logbridge.core.fields import Field
from logbridge.core.models import string_value

THREADS = 8
PER_THREAD = 50

pytestmark = [pytest.mark.tier(2), pytest.mark.tra("Adapter.Concurrency")]


def run_all(target, n: int = THREADS) -> None:  # type: ignore[no-untyped-def]
    barrier = threading.Barrier(n)

    def worker(i: int) -> None:
        barrier.wait()
        target(i)

    threads = [threading.Thread(target=worker, args=(i,)) for i in range(n)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()


def test_derived_handlers_do_not_cross_contaminate() -> None:
    provider = InMemoryLoggerProvider()
    base = OTelHandler("svc", provider=provider).with_attrs(shared="yes")

    def log(i: int) -> None:
        logger = base.with_group(f"g{i}").with_attrs(worker=str(i)).logger(f"w{i}")
        for n in range(PER_THREAD):
            logger.info("m", extra={"n": n})

    run_all(log)

    records = provider.records
    assert len(records) == THREADS * PER_THREAD
    for r in records:
        assert r.attributes[0].key == "shared"
        (grouped,) = r.attributes[1:]
        worker = dict((kv.key, kv.value) for kv in grouped.value.as_map())["worker"]
        assert grouped.key == f"g{worker.as_string()}"


def test_shared_core_with_per_thread_fields() -> None:
    provider = InMemoryLoggerProvider()
    core = Core("svc", provider=provider)

    def log(i: int) -> None:
        derived = core.with_([Field.of("worker", str(i))])
        for _ in range(PER_THREAD):
            derived.write(Entry(Level.INFO, str(i)), [Field.of("again", str(i))])

    run_all(log)

    records = provider.records
    assert len(records) == THREADS * PER_THREAD
    for r in records:
        expected = r.body
        assert r.attribute("worker") == expected
        assert r.attribute("again") == expected
        assert expected in {string_value(str(i)) for i in range(THREADS)}


def test_shared_handler_preserves_per_thread_order() -> None:
    provider = InMemoryLoggerProvider()
    handler = OTelHandler("svc", provider=provider)

    def log(i: int) -> None:
        logger = handler.logger(f"w{i}")
        for n in range(PER_THREAD):
            logger.info("m", extra={"worker": i, "n": n})

    run_all(log)

    seen: dict[int, list[int]] = {}
    for r in provider.records:
        seen.setdefault(r.attribute("worker").as_int64(), []).append(r.attribute("n").as_int64())  # type: ignore[union-attr]
    assert seen == {i: list(range(PER_THREAD)) for i in range(THREADS)}
