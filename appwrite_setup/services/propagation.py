from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Awaitable, Callable, Protocol, Sequence

from appwrite_setup.services.appwrite_service import AppwriteService, AppwriteServiceError


logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[Any]]


class PropagationError(RuntimeError):
    pass


class PropagationTimeoutError(PropagationError):
    pass


class PropagationWaiter(Protocol):
    """Waits until freshly created attributes can be referenced by an index."""

    async def wait(self, *, collection_id: str, attribute_names: Sequence[str]) -> None: ...


class NoWaitWaiter:
    async def wait(self, *, collection_id: str, attribute_names: Sequence[str]) -> None:
        return None


class FixedDelayWaiter:
    """Sleep for a fixed window. A heuristic: it makes index-before-attribute races rare, not impossible."""

    def __init__(self, seconds: float = 3.0, *, sleep: Sleep = asyncio.sleep) -> None:
        if seconds < 0:
            raise ValueError("seconds must not be negative")
        self._seconds = seconds
        self._sleep = sleep

    async def wait(self, *, collection_id: str, attribute_names: Sequence[str]) -> None:
        logger.info(
            "Waiting %.1fs for attributes to be available (collection=%s, attributes=%s)",
            self._seconds,
            collection_id,
            ", ".join(attribute_names),
        )
        await self._sleep(self._seconds)


class PollingWaiter:
    """Poll attribute status until every attribute reports `available`, or time out."""

    _READY_STATUS = "available"
    _FAILED_STATUSES = frozenset({"failed", "stuck", "deleting"})

    def __init__(
        self,
        service: AppwriteService,
        *,
        interval_seconds: float = 1.0,
        timeout_seconds: float = 60.0,
        sleep: Sleep = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._service = service
        self._interval_seconds = interval_seconds
        self._timeout_seconds = timeout_seconds
        self._sleep = sleep
        self._clock = clock

    async def _status(self, *, collection_id: str, key: str) -> str:
        attribute = await self._service.get_attribute(collection_id=collection_id, key=key)
        return str(attribute.get("status") or "").lower()

    async def wait(self, *, collection_id: str, attribute_names: Sequence[str]) -> None:
        pending = list(attribute_names)
        logger.info(
            "Polling attribute availability (collection=%s, attributes=%s)", collection_id, ", ".join(pending)
        )

        deadline = self._clock() + self._timeout_seconds
        while pending:
            still_pending: list[str] = []
            for key in pending:
                try:
                    status = await self._status(collection_id=collection_id, key=key)
                except AppwriteServiceError as exc:
                    # The attribute may not be listed yet right after creation.
                    logger.debug("Attribute lookup failed, will retry (key=%s): %s", key, exc)
                    still_pending.append(key)
                    continue

                if status == self._READY_STATUS:
                    continue
                if status in self._FAILED_STATUSES:
                    raise PropagationError(
                        f"Attribute entered unexpected status (collection={collection_id}, key={key}, status={status})"
                    )
                still_pending.append(key)

            pending = still_pending
            if not pending:
                return
            if self._clock() >= deadline:
                raise PropagationTimeoutError(
                    f"Timed out waiting for attributes to become available "
                    f"(collection={collection_id}, attributes={', '.join(pending)})"
                )
            await self._sleep(self._interval_seconds)
