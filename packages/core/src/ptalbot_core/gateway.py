"""Discord gateway events: guild membership sync and the startup sweep.

The discord.py client only translates gateway callbacks into events on the
bus. GatewayWatcher consumes them through supervised subscriptions, so a
handler failure restarts its subscription after a fixed delay instead of
silently killing it.
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import suppress
from dataclasses import dataclass
from typing import TYPE_CHECKING, Awaitable, Callable, ClassVar

import discord

from ptalbot_core.bus import consume, supervise
from ptalbot_core.errors import PtalBotError

if TYPE_CHECKING:
    from ptalbot_core.bus import EventBus
    from ptalbot_core.chat import ChatApi
    from ptalbot_store.base import BaseStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GatewayReady:
    tag: ClassVar[str] = "ready"

    user: str


@dataclass(frozen=True)
class GuildJoined:
    tag: ClassVar[str] = "guild.create"

    guild_id: str


@dataclass(frozen=True)
class GuildLeft:
    tag: ClassVar[str] = "guild.delete"

    guild_id: str


class PtalBotClient(discord.Client):
    def __init__(self, bus: EventBus):
        intents = discord.Intents.default()
        intents.guilds = True
        super().__init__(intents=intents)
        self.bus = bus

    async def on_ready(self) -> None:
        logger.info("Logged in as %s (%d guild(s))", self.user, len(self.guilds))
        await self.bus.publish(GatewayReady(user=str(self.user)))

    async def on_guild_join(self, guild: discord.Guild) -> None:
        await self.bus.publish(GuildJoined(guild_id=str(guild.id)))

    async def on_guild_remove(self, guild: discord.Guild) -> None:
        await self.bus.publish(GuildLeft(guild_id=str(guild.id)))


class GatewayWatcher:
    def __init__(
        self,
        store: BaseStore,
        chat: ChatApi,
        bus: EventBus,
        sweep: Callable[[], Awaitable[object]],
        retry_delay: float = 1.0,
        sweep_start_delay: float = 1.0,
    ):
        self._store = store
        self._chat = chat
        self._bus = bus
        self._sweep = sweep
        self._retry_delay = retry_delay
        self._sweep_start_delay = sweep_start_delay
        self._sweep_task: asyncio.Task | None = None

    def start(self, stop: asyncio.Event | None = None) -> list[asyncio.Task]:
        """Start one supervised subscription per gateway event."""
        subscriptions = {
            GatewayReady.tag: self.on_ready,
            GuildJoined.tag: self.on_guild_joined,
            GuildLeft.tag: self.on_guild_left,
        }
        tasks = []
        for tag, handler in subscriptions.items():
            run = lambda tag=tag, handler=handler: consume(self._bus, tag, handler)  # noqa: E731
            tasks.append(
                asyncio.create_task(
                    supervise(f"gateway:{tag}", run, retry_delay=self._retry_delay, stop=stop),
                    name=f"gateway:{tag}",
                )
            )
        logger.debug("Gateway watchers registered and running.")
        return tasks

    async def on_ready(self, event: GatewayReady) -> None:
        try:
            workspaces = await self._chat.list_my_workspaces()
        except PtalBotError as e:
            logger.error("Guild sync on ready skipped, could not list guilds: %s", e)
        else:
            self._sync_guilds({w["id"] for w in workspaces})
        if self._sweep_task is not None and not self._sweep_task.done():
            logger.info("Catch-up sweep already running; not starting another")
            return
        self._sweep_task = asyncio.create_task(self._delayed_sweep(), name="ptal-sweep")

    def _sync_guilds(self, current: set[str]) -> None:
        """Make the stored guild set match ``current``, forgetting guilds left while offline."""
        added = sum(1 for guild_id in sorted(current) if self._store.upsert_guild(guild_id))
        stale = [guild_id for guild_id in self._store.list_guilds() if guild_id not in current]
        for guild_id in stale:
            self._store.remove_guild(guild_id)
        logger.info(
            "Guild sync on ready: %d guild(s), %d newly recorded, %d pruned", len(current), added, len(stale)
        )

    async def _delayed_sweep(self) -> None:
        await asyncio.sleep(self._sweep_start_delay)
        try:
            await self._sweep()
        except Exception:
            logger.exception("PTAL catch-up sweep failed")

    async def stop_sweep(self) -> None:
        """Cancel a catch-up sweep still in flight and wait for it to unwind."""
        task, self._sweep_task = self._sweep_task, None
        if task is None or task.done():
            return
        task.cancel()
        with suppress(asyncio.CancelledError):
            await task
        logger.info("Catch-up sweep cancelled")

    async def on_guild_joined(self, event: GuildJoined) -> None:
        if self._store.upsert_guild(event.guild_id):
            logger.info("Added new guild to DB: %s", event.guild_id)

    async def on_guild_left(self, event: GuildLeft) -> None:
        if self._store.remove_guild(event.guild_id):
            logger.info("Removed guild from DB: %s", event.guild_id)
