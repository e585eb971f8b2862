"""Creates PTAL messages when a translation sync opens a pull request.

A Crowdin workflow fires ``repository_dispatch`` with the sync-trigger
action and ``client_payload.pull_request_url``. Every channel registered for
the repository gets a fresh PTAL message, tracked in the store so later
review activity keeps it current.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from ptalbot_core.errors import DecodeError, PtalBotError
from ptalbot_core.gh.pull_request import parse_pull_number
from ptalbot_core.ptal.embed import build_ptal_embed
from ptalbot_store.models import PtalRecord

if TYPE_CHECKING:
    from ptalbot_core.chat import ChatApi
    from ptalbot_core.gh.pull_request import GithubSource
    from ptalbot_core.ptal.dispatch import DispatchQueue
    from ptalbot_core.webhooks.events import RepositoryDispatch
    from ptalbot_store.base import BaseStore
    from ptalbot_store.models import Registration

logger = logging.getLogger(__name__)

DEFAULT_SYNC_TRIGGER = "crowdin-ptal"
DEFAULT_SYNC_DESCRIPTION = "Crowdin Sync Request"


class CrowdinSyncCreator:
    def __init__(
        self,
        store: BaseStore,
        source: GithubSource,
        chat: ChatApi,
        queue: DispatchQueue,
        trigger: str = DEFAULT_SYNC_TRIGGER,
        description: str = DEFAULT_SYNC_DESCRIPTION,
    ):
        self._store = store
        self._source = source
        self._chat = chat
        self._queue = queue
        self.trigger = trigger
        self.description = description

    async def handle(self, event: RepositoryDispatch) -> list[PtalRecord]:
        """EventBus handler for ``repository_dispatch``. Returns the records created."""
        if event.action != self.trigger:
            logger.debug("Ignoring repository_dispatch action %r for %s/%s", event.action, event.owner, event.repo)
            return []

        owner, repo = event.owner, event.repo
        logger.info("Processing %s for %s/%s", event.action, owner, repo)

        registrations = self._store.find_registrations(owner, repo)
        if not registrations:
            logger.warning("No channels registered for %s/%s; sync request dropped", owner, repo)
            return []

        try:
            number = parse_pull_number(event.client_payload.get("pull_request_url"))
        except DecodeError as e:
            logger.warning("Sync request for %s/%s has no usable pull request url: %s", owner, repo, e)
            return []

        try:
            pr, reviews = await self._source.get_pull_state(owner, repo, number)
        except PtalBotError as e:
            logger.error("Could not fetch %s/%s#%d for sync request: %s", owner, repo, number, e)
            return []

        payload = build_ptal_embed(owner, repo, pr, reviews, self.description)
        created = []
        for registration in registrations:
            record = await self._post(registration, number, payload)
            if record is not None:
                created.append(record)
        logger.info(
            "Posted %d/%d PTAL message(s) for %s/%s#%d", len(created), len(registrations), owner, repo, number
        )
        return created

    async def _post(self, registration: Registration, number: int, payload: dict) -> PtalRecord | None:
        if not self._store.guild_exists(registration.guild_id):
            logger.warning(
                "Bot is not in guild %s; skipping channel %s for %s/%s",
                registration.guild_id,
                registration.channel_id,
                registration.owner,
                registration.repo,
            )
            return None

        try:
            message_id = await self._queue.send(lambda: self._chat.create_message(registration.channel_id, payload))
            record = PtalRecord(
                channel=registration.channel_id,
                message=message_id,
                owner=registration.owner,
                repository=registration.repo,
                pr=number,
                guild_id=registration.guild_id,
                description=self.description,
            )
            self._store.insert_ptal(record)
        except PtalBotError as e:
            logger.error(
                "Failed to post PTAL for %s/%s#%d in channel %s: %s",
                registration.owner,
                registration.repo,
                number,
                registration.channel_id,
                e,
            )
            return None
        except Exception:
            logger.exception(
                "Unexpected error posting PTAL for %s/%s#%d in channel %s",
                registration.owner,
                registration.repo,
                number,
                registration.channel_id,
            )
            return None
        return record
