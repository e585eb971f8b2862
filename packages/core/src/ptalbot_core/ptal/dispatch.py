"""Outbound chat traffic shaping and the startup catch-up sweep.

Live reconciliation is low volume and relies on the chat library's own
per-route rate limiting, so unpaced sends go straight through. The sweep
can touch every stored record at once; paced sends are serialized and
separated by a fixed delay to stay under the global limit.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Awaitable, Callable, TypeVar

if TYPE_CHECKING:
    from ptalbot_core.ptal.reconciler import Reconciler
    from ptalbot_store.base import BaseStore

logger = logging.getLogger(__name__)

T = TypeVar("T")


class DispatchQueue:
    """Serializes paced operations with ``delay`` seconds between consecutive ones."""

    def __init__(self, delay: float = 2.0, *, sleep: Callable[[float], Awaitable[None]] = asyncio.sleep):
        self.delay = delay
        self._sleep = sleep
        self._lock = asyncio.Lock()
        self._has_sent = False

    async def send(self, op: Callable[[], Awaitable[T]], *, paced: bool = False) -> T:
        if not paced:
            return await op()
        async with self._lock:
            if self._has_sent and self.delay > 0:
                await self._sleep(self.delay)
            try:
                return await op()
            finally:
                self._has_sent = True


async def catch_up_sweep(store: BaseStore, reconciler: Reconciler, queue: DispatchQueue) -> tuple[int, int]:
    """Reconcile every stored PTAL record once, strictly one at a time.

    Repairs messages that drifted while the process was offline. Returns
    ``(updated, not_updated)`` and logs a single summary line.
    """
    records = store.list_all_ptal()
    updated = 0
    for record in records:
        if await queue.send(lambda r=record: reconciler.reconcile_record(r), paced=True):
            updated += 1
    not_updated = len(records) - updated
    logger.info(
        "PTAL catch-up sweep finished: %d updated, %d skipped or failed, %d total",
        updated,
        not_updated,
        len(records),
    )
    return updated, not_updated
