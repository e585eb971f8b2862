"""Keeps tracked PTAL messages in step with GitHub review state."""

from __future__ import annotations

import asyncio
import logging
from collections import defaultdict
from typing import TYPE_CHECKING

from ptalbot_core.errors import PtalBotError
from ptalbot_core.ptal.embed import build_ptal_embed

if TYPE_CHECKING:
    from ptalbot_core.chat import ChatApi
    from ptalbot_core.gh.pull_request import GithubSource
    from ptalbot_core.ptal.dispatch import DispatchQueue
    from ptalbot_store.base import BaseStore
    from ptalbot_store.models import PtalRecord

logger = logging.getLogger(__name__)


class Reconciler:
    """Re-renders PTAL messages from freshly fetched PR and review state.

    Webhook payload fields are never trusted for review status: every run
    re-fetches from GitHub, so duplicate or out-of-order deliveries converge
    on whatever the latest fetch returned. Runs for the same message hold a
    per-message lock from fetch to edit, so edits land in fetch order.
    """

    def __init__(self, store: BaseStore, source: GithubSource, chat: ChatApi, queue: DispatchQueue):
        self._store = store
        self._source = source
        self._chat = chat
        self._queue = queue
        self._locks: defaultdict[tuple[str, str], asyncio.Lock] = defaultdict(asyncio.Lock)

    async def reconcile(self, owner: str, repo: str, number: int) -> int:
        """Update every message tracking ``owner/repo#number``. Returns the count edited."""
        records = self._store.find_ptal(owner, repo, number)
        if not records:
            logger.debug("%s/%s#%d is not tracked; nothing to reconcile", owner, repo, number)
            return 0

        edited = 0
        for record in records:
            if await self.reconcile_record(record):
                edited += 1
        logger.info("Reconciled %s/%s#%d: %d/%d message(s) updated", owner, repo, number, edited, len(records))
        return edited

    async def reconcile_record(self, record: PtalRecord) -> bool:
        """Refresh one PTAL message. Never raises; failures are logged with the record key."""
        if not self._store.guild_exists(record.guild_id):
            logger.warning(
                "Skipping PTAL %s (message %s): bot is no longer in guild %s",
                record.key,
                record.message,
                record.guild_id,
            )
            return False

        try:
            async with self._locks[(record.channel, record.message)]:
                pr, reviews = await self._source.get_pull_state(record.owner, record.repository, record.pr)
                payload = build_ptal_embed(record.owner, record.repository, pr, reviews, record.description)
                await self._queue.send(lambda: self._chat.edit_message(record.channel, record.message, payload))
        except PtalBotError as e:
            logger.error(
                "Failed to update PTAL %s (channel %s, message %s): %s", record.key, record.channel, record.message, e
            )
            return False
        except Exception:
            logger.exception(
                "Unexpected error updating PTAL %s (channel %s, message %s)", record.key, record.channel, record.message
            )
            return False
        return True
