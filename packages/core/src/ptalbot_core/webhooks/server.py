"""aiohttp endpoint receiving GitHub webhooks.

The request path does only bounded work: header checks, signature
verification over the raw bytes, JSON parsing and decoding. Routing runs in
a detached task so the sender gets ``202 Accepted`` without waiting on
GitHub or Discord round-trips. Downstream failures are log-only.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from aiohttp import web

from ptalbot_core.errors import AuthenticationError, DecodeError
from ptalbot_core.webhooks.events import decode_event, parse_json_body
from ptalbot_core.webhooks.signature import verify_signature

if TYPE_CHECKING:
    from ptalbot_core.webhooks.router import WebhookRouter

logger = logging.getLogger(__name__)

EVENT_HEADER = "X-GitHub-Event"
SIGNATURE_HEADER = "X-Hub-Signature-256"
DELIVERY_HEADER = "X-GitHub-Delivery"


def _log_task_exceptions(task: asyncio.Task) -> None:
    try:
        exc = task.exception()
    except asyncio.CancelledError:
        return
    if exc:
        logger.error("Background webhook task failed", exc_info=exc)


class WebhookReceiver:
    def __init__(self, router: WebhookRouter, secret: str | None):
        self._router = router
        self._secret = secret
        self._tasks: set[asyncio.Task] = set()

    async def handle(self, request: web.Request) -> web.Response:
        event_name = request.headers.get(EVENT_HEADER, "").strip()
        signature = request.headers.get(SIGNATURE_HEADER, "").strip()
        delivery = request.headers.get(DELIVERY_HEADER, "-")
        if not event_name or not signature:
            logger.warning("Rejected delivery %s: missing event or signature header", delivery)
            return web.json_response({"error": "Missing event or signature header"}, status=400)

        body = await request.read()
        try:
            verify_signature(body, signature, self._secret)
        except AuthenticationError as e:
            logger.warning("Rejected delivery %s (%s): %s remote=%s", delivery, event_name, e, request.remote)
            return web.json_response({"error": str(e)}, status=401)

        try:
            event = decode_event(event_name, parse_json_body(body))
        except DecodeError as e:
            logger.warning("Rejected delivery %s (%s): %s", delivery, event_name, e)
            return web.json_response({"error": str(e)}, status=400)

        logger.info("Received %s event (%s)", event_name, delivery)
        self.spawn(self._router.route(event))
        return web.json_response({"message": "Accepted"}, status=202)

    def spawn(self, coro) -> asyncio.Task:
        task = asyncio.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        task.add_done_callback(_log_task_exceptions)
        return task

    async def drain(self) -> None:
        """Wait for every in-flight background task (used on shutdown and in tests)."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)


async def health(_: web.Request) -> web.Response:
    return web.json_response({"status": "ok"})


def create_web_app(receiver: WebhookReceiver, webhook_path: str = "/api/webhook") -> web.Application:
    app = web.Application()
    app.router.add_get("/health", health)
    app.router.add_post(webhook_path, receiver.handle)
    return app
