"""In-memory store. State is process-local and lost on exit.

Selected with `store: memory` in .ptalbot.yml for dry runs, and used by the
test suite as a real (not mocked) BaseStore.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from ptalbot_store.base import BaseStore

if TYPE_CHECKING:
    from ptalbot_store.models import PtalRecord, Registration


class MemoryStore(BaseStore):
    """Keeps every table in plain Python lists and sets."""

    def __init__(self) -> None:
        self._ptal: list[PtalRecord] = []
        self._registrations: list[Registration] = []
        self._guilds: set[str] = set()

    def find_ptal(self, owner: str, repository: str, pr: int) -> list[PtalRecord]:
        return [r for r in self._ptal if (r.owner, r.repository, r.pr) == (owner, repository, pr)]

    def insert_ptal(self, record: PtalRecord) -> None:
        self._ptal.append(record)

    def list_all_ptal(self) -> list[PtalRecord]:
        return list(self._ptal)

    def find_registrations(self, owner: str, repo: str) -> list[Registration]:
        return [r for r in self._registrations if r.owner == owner and r.repo == repo]

    def insert_registration(self, registration: Registration) -> None:
        self._registrations.append(registration)

    def list_registrations(self, owner: str | None = None, repo: str | None = None) -> list[Registration]:
        results = self._registrations
        if owner is not None:
            results = [r for r in results if r.owner == owner]
        if repo is not None:
            results = [r for r in results if r.repo == repo]
        return list(results)

    def guild_exists(self, guild_id: str) -> bool:
        return guild_id in self._guilds

    def upsert_guild(self, guild_id: str) -> bool:
        if guild_id in self._guilds:
            return False
        self._guilds.add(guild_id)
        return True

    def remove_guild(self, guild_id: str) -> bool:
        if guild_id not in self._guilds:
            return False
        self._guilds.discard(guild_id)
        return True

    def list_guilds(self) -> list[str]:
        return sorted(self._guilds)
