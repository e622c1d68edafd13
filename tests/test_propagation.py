from typing import Any

import pytest

from appwrite_setup.services.appwrite_service import AppwriteServiceError
from appwrite_setup.services.propagation import (
    FixedDelayWaiter,
    NoWaitWaiter,
    PollingWaiter,
    PropagationError,
    PropagationTimeoutError,
)


class _FakeClock:
    def __init__(self) -> None:
        self.now = 0.0
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


class _StatusService:
    """Answers get_attribute from a scripted list of statuses per key."""

    def __init__(self, script: dict[str, list[Any]]) -> None:
        self._script = script
        self.lookups: list[str] = []

    async def get_attribute(self, *, collection_id: str, key: str) -> dict[str, Any]:
        self.lookups.append(key)
        steps = self._script[key]
        step = steps.pop(0) if len(steps) > 1 else steps[0]
        if isinstance(step, Exception):
            raise step
        return {"key": key, "status": step}


async def test_fixed_delay_sleeps_once_for_configured_window() -> None:
    clock = _FakeClock()
    waiter = FixedDelayWaiter(3.0, sleep=clock.sleep)

    await waiter.wait(collection_id="c", attribute_names=["title"])

    assert clock.sleeps == [3.0]


def test_fixed_delay_rejects_negative_window() -> None:
    with pytest.raises(ValueError):
        FixedDelayWaiter(-1)


async def test_no_wait_returns_immediately() -> None:
    assert await NoWaitWaiter().wait(collection_id="c", attribute_names=["a"]) is None


async def test_polling_returns_once_every_attribute_is_available() -> None:
    clock = _FakeClock()
    service = _StatusService({"a": ["processing", "processing", "available"], "b": ["available"]})
    waiter = PollingWaiter(service, interval_seconds=0.5, timeout_seconds=10, sleep=clock.sleep, clock=clock)

    await waiter.wait(collection_id="c", attribute_names=["a", "b"])

    assert clock.sleeps == [0.5, 0.5]
    # "b" is ready on the first pass and never polled again
    assert service.lookups.count("b") == 1


async def test_polling_tolerates_lookup_errors_until_ready() -> None:
    clock = _FakeClock()
    not_found = AppwriteServiceError("missing", status=404, error_type="attribute_not_found")
    service = _StatusService({"a": [not_found, "available"]})
    waiter = PollingWaiter(service, interval_seconds=1, timeout_seconds=10, sleep=clock.sleep, clock=clock)

    await waiter.wait(collection_id="c", attribute_names=["a"])

    assert clock.sleeps == [1]


async def test_polling_times_out() -> None:
    clock = _FakeClock()
    service = _StatusService({"a": ["processing"]})
    waiter = PollingWaiter(service, interval_seconds=1, timeout_seconds=3, sleep=clock.sleep, clock=clock)

    with pytest.raises(PropagationTimeoutError, match="a"):
        await waiter.wait(collection_id="c", attribute_names=["a"])

    assert sum(clock.sleeps) == 3


async def test_polling_fails_fast_on_failed_attribute() -> None:
    clock = _FakeClock()
    service = _StatusService({"a": ["failed"]})
    waiter = PollingWaiter(service, interval_seconds=1, timeout_seconds=30, sleep=clock.sleep, clock=clock)

    with pytest.raises(PropagationError, match="status=failed"):
        await waiter.wait(collection_id="c", attribute_names=["a"])

    assert clock.sleeps == []
