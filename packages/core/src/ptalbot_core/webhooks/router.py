"""Dispatch table from decoded webhook events to their side effects.

Pull request and review events go straight to the reconciler. Dispatch
events are published on the EventBus, where the sync creator (and anything
else that cares) subscribes.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Awaitable, Callable

from ptalbot_core.webhooks.events import (
    PullRequestChanged,
    Push,
    RepositoryDispatch,
    ReviewChanged,
    Unhandled,
    WebhookEvent,
)

if TYPE_CHECKING:
    from ptalbot_core.bus import EventBus
    from ptalbot_core.ptal.reconciler import Reconciler

logger = logging.getLogger(__name__)


class WebhookRouter:
    def __init__(self, reconciler: Reconciler, bus: EventBus):
        self._reconciler = reconciler
        self._bus = bus
        self._table: dict[type, Callable[[WebhookEvent], Awaitable[None]]] = {
            PullRequestChanged: self._reconcile,
            ReviewChanged: self._reconcile,
            RepositoryDispatch: self._publish,
            Push: self._log_only,
            Unhandled: self._log_only,
        }

    async def route(self, event: WebhookEvent) -> None:
        await self._table[type(event)](event)

    async def _reconcile(self, event: PullRequestChanged | ReviewChanged) -> None:
        logger.info("%s %s: %s/%s#%d", event.tag, event.action, event.owner, event.repo, event.number)
        await self._reconciler.reconcile(event.owner, event.repo, event.number)

    async def _publish(self, event: RepositoryDispatch) -> None:
        logger.info("Repository dispatch %r in %s/%s", event.action, event.owner, event.repo)
        await self._bus.publish(event)

    async def _log_only(self, event: WebhookEvent) -> None:
        logger.debug("No action for %s event", event.tag)
