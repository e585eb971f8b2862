"""Process wiring: builds the pipeline and runs the webhook server and gateway."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from functools import partial
from typing import TYPE_CHECKING

from aiohttp import web

from ptalbot_core.bus import EventBus
from ptalbot_core.chat import ChatApi, DiscordChatApi
from ptalbot_core.gateway import GatewayWatcher, PtalBotClient
from ptalbot_core.gh.pull_request import GithubSource
from ptalbot_core.ptal.crowdin import CrowdinSyncCreator
from ptalbot_core.ptal.dispatch import DispatchQueue, catch_up_sweep
from ptalbot_core.ptal.reconciler import Reconciler
from ptalbot_core.webhooks.events import RepositoryDispatch
from ptalbot_core.webhooks.router import WebhookRouter
from ptalbot_core.webhooks.server import WebhookReceiver, create_web_app

if TYPE_CHECKING:
    from ptalbot_store.base import BaseStore

logger = logging.getLogger(__name__)


@dataclass
class Pipeline:
    bus: EventBus
    queue: DispatchQueue
    reconciler: Reconciler
    creator: CrowdinSyncCreator
    receiver: WebhookReceiver
    watcher: GatewayWatcher


def build_pipeline(config: dict, store: BaseStore, source: GithubSource, chat: ChatApi, bus: EventBus) -> Pipeline:
    """Assemble every component and subscribe the sync creator to the bus."""
    queue = DispatchQueue(delay=float(config.get("sweep_delay", 2.0)))
    reconciler = Reconciler(store, source, chat, queue)
    creator = CrowdinSyncCreator(
        store,
        source,
        chat,
        queue,
        trigger=config.get("sync_trigger", "crowdin-ptal"),
        description=config.get("sync_description", "Crowdin Sync Request"),
    )
    bus.subscribe(RepositoryDispatch.tag, creator.handle)

    receiver = WebhookReceiver(WebhookRouter(reconciler, bus), config.get("webhook_secret"))
    watcher = GatewayWatcher(
        store,
        chat,
        bus,
        sweep=partial(catch_up_sweep, store, reconciler, queue),
        retry_delay=float(config.get("retry_delay", 1.0)),
        sweep_start_delay=float(config.get("sweep_start_delay", 1.0)),
    )
    return Pipeline(bus, queue, reconciler, creator, receiver, watcher)


async def run(config: dict, store: BaseStore) -> None:
    bus = EventBus()
    client = PtalBotClient(bus)
    pipeline = build_pipeline(config, store, GithubSource(config.get("github_token")), DiscordChatApi(client), bus)

    stop = asyncio.Event()
    watchers = pipeline.watcher.start(stop)
    # Let the watchers subscribe before the gateway can emit READY.
    await asyncio.sleep(0)

    web_app = create_web_app(pipeline.receiver, config.get("webhook_path", "/api/webhook"))
    runner = web.AppRunner(web_app)
    await runner.setup()
    site = web.TCPSite(runner, config.get("host", "0.0.0.0"), int(config.get("port", 3000)))
    await site.start()
    logger.info(
        "Webhook server listening on http://%s:%s%s",
        config.get("host"),
        config.get("port"),
        config.get("webhook_path"),
    )

    try:
        await client.start(config["discord_token"])
    except asyncio.CancelledError:
        pass
    finally:
        stop.set()
        for task in watchers:
            task.cancel()
        await asyncio.gather(*watchers, return_exceptions=True)
        await pipeline.watcher.stop_sweep()
        await pipeline.receiver.drain()
        if not client.is_closed():
            await client.close()
        await runner.cleanup()
        logger.info("Shut down cleanly.")
