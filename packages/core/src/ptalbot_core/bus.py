"""In-process publish/subscribe and supervised subscriptions.

The bus decouples webhook ingestion and gateway callbacks from the handlers
that act on them. It is best-effort: events published while nobody is
subscribed are dropped. GitHub's delivery retries are the durability layer,
not this bus.
"""

from __future__ import annotations

import asyncio
import logging
from collections import defaultdict
from typing import Any, AsyncIterator, Awaitable, Callable

logger = logging.getLogger(__name__)

Handler = Callable[[Any], Awaitable[None]]


class EventBus:
    """Routes events to handlers by the event's ``tag`` attribute.

    All mutation happens on the event loop thread, so the handler map needs
    no lock.
    """

    def __init__(self) -> None:
        self._handlers: dict[str, list[Handler]] = defaultdict(list)

    def subscribe(self, tag: str, handler: Handler) -> Callable[[], None]:
        """Register ``handler`` for ``tag`` and return a callable that removes it."""
        self._handlers[tag].append(handler)

        def unsubscribe() -> None:
            handlers = self._handlers.get(tag, [])
            if handler in handlers:
                handlers.remove(handler)

        return unsubscribe

    def handler_count(self, tag: str) -> int:
        return len(self._handlers.get(tag, []))

    async def publish(self, event: Any) -> int:
        """Deliver ``event`` to every handler subscribed to its tag.

        Handlers run concurrently. A failing handler is logged and does not
        affect its siblings or the publisher. Returns the number of handlers
        invoked.
        """
        tag = event.tag
        handlers = list(self._handlers.get(tag, []))
        if not handlers:
            logger.debug("No subscribers for %s; event dropped", tag)
            return 0

        results = await asyncio.gather(*(h(event) for h in handlers), return_exceptions=True)
        for handler, result in zip(handlers, results):
            if isinstance(result, Exception):
                logger.error(
                    "Handler %s failed for %s event",
                    getattr(handler, "__qualname__", repr(handler)),
                    tag,
                    exc_info=result,
                )
        return len(handlers)

    def subscription(self, tag: str) -> "Subscription":
        """Return a queue-backed subscription to use as an async context manager."""
        return Subscription(self, tag)


class Subscription:
    """Buffers events of one tag in a queue for a single consumer.

    ``async with bus.subscription(tag) as events: async for event in events``.
    Leaving the context unsubscribes; events published afterwards are not
    buffered.
    """

    def __init__(self, bus: EventBus, tag: str):
        self._bus = bus
        self._tag = tag
        self._queue: asyncio.Queue = asyncio.Queue()
        self._unsubscribe: Callable[[], None] | None = None

    async def _enqueue(self, event: Any) -> None:
        self._queue.put_nowait(event)

    async def __aenter__(self) -> "Subscription":
        self._unsubscribe = self._bus.subscribe(self._tag, self._enqueue)
        return self

    async def __aexit__(self, *exc_info) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    def __aiter__(self) -> AsyncIterator[Any]:
        return self

    async def __anext__(self) -> Any:
        return await self._queue.get()


async def supervise(
    name: str,
    run: Callable[[], Awaitable[None]],
    *,
    retry_delay: float = 1.0,
    stop: asyncio.Event | None = None,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> None:
    """Run ``run()`` until ``stop`` is set, restarting it after any failure.

    Each exception is logged and followed by a fixed ``retry_delay`` pause.
    A clean return is treated the same way, since a subscription is never
    expected to finish on its own. Cancelling the enclosing task ends the
    loop immediately.
    """
    while stop is None or not stop.is_set():
        try:
            await run()
            logger.warning("%s exited; restarting in %.1fs", name, retry_delay)
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception("%s failed; restarting in %.1fs", name, retry_delay)
        if stop is not None and stop.is_set():
            break
        await sleep(retry_delay)
    logger.debug("%s stopped", name)


async def consume(bus: EventBus, tag: str, handler: Handler) -> None:
    """Feed every ``tag`` event to ``handler`` until the handler raises."""
    async with bus.subscription(tag) as events:
        async for event in events:
            await handler(event)
