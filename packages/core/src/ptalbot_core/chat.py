"""Outbound chat API.

ChatApi is the seam the reconciler and sync creator call through. The
Discord implementation wraps a connected discord.py client; tests swap in a
recording fake.

Payloads are plain dicts shaped like Discord's REST message body
(``{"content": ..., "embeds": [...]}``) so rendering stays independent of
the client library.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod

import discord

from ptalbot_core.errors import UpstreamApiError

logger = logging.getLogger(__name__)


class ChatApi(ABC):
    @abstractmethod
    async def create_message(self, channel_id: str, payload: dict) -> str:
        """Post a new message and return its id."""

    @abstractmethod
    async def edit_message(self, channel_id: str, message_id: str, payload: dict) -> None:
        """Replace the content and embeds of an existing message."""

    @abstractmethod
    async def list_my_workspaces(self) -> list[dict]:
        """Return ``[{"id": ..., "name": ...}]`` for every guild the bot is in."""


def _message_kwargs(payload: dict) -> dict:
    return {
        "content": payload.get("content"),
        "embeds": [discord.Embed.from_dict(e) for e in payload.get("embeds", [])],
    }


class DiscordChatApi(ChatApi):
    def __init__(self, client: discord.Client):
        self._client = client

    async def _channel(self, channel_id: str):
        channel = self._client.get_channel(int(channel_id))
        if channel is None:
            channel = await self._client.fetch_channel(int(channel_id))
        return channel

    async def create_message(self, channel_id: str, payload: dict) -> str:
        try:
            channel = await self._channel(channel_id)
            message = await channel.send(**_message_kwargs(payload))
        except discord.HTTPException as e:
            raise UpstreamApiError("discord", f"create message in {channel_id}: {e.status} {e.text}") from e
        logger.debug("Created message %s in channel %s", message.id, channel_id)
        return str(message.id)

    async def edit_message(self, channel_id: str, message_id: str, payload: dict) -> None:
        try:
            channel = await self._channel(channel_id)
            await channel.get_partial_message(int(message_id)).edit(**_message_kwargs(payload))
        except discord.HTTPException as e:
            raise UpstreamApiError(
                "discord", f"edit message {message_id} in {channel_id}: {e.status} {e.text}"
            ) from e

    async def list_my_workspaces(self) -> list[dict]:
        return [{"id": str(g.id), "name": g.name} for g in self._client.guilds]
