"""Abstract store interface.

Any storage backend (SQLite, in-memory) implements this interface. The bot
and the CLI depend on BaseStore, not on a concrete backend, so backends are
swappable without touching the reconciliation code.

Every method is a point query or a single-row write. No operation spans
more than one table, so no transactions are exposed.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ptalbot_store.models import PtalRecord, Registration


class BaseStore(ABC):
    """Pluggable persistence for PTAL records, channel registrations and guilds."""

    # --- PTAL records -----------------------------------------------------

    @abstractmethod
    def find_ptal(self, owner: str, repository: str, pr: int) -> list[PtalRecord]:
        """Return every PTAL record tracking ``owner/repository#pr``.

        Returns an empty list when the PR is not tracked. Never raises for a
        missing key.
        """

    @abstractmethod
    def insert_ptal(self, record: PtalRecord) -> None:
        """Append a PTAL record. Duplicates are stored, not rejected."""

    @abstractmethod
    def list_all_ptal(self) -> list[PtalRecord]:
        """Return every stored PTAL record in insertion order."""

    # --- Channel registrations -------------------------------------------

    @abstractmethod
    def find_registrations(self, owner: str, repo: str) -> list[Registration]:
        """Return the channels registered for ``owner/repo`` sync notifications."""

    @abstractmethod
    def insert_registration(self, registration: Registration) -> None:
        """Register a channel for ``owner/repo`` sync notifications."""

    @abstractmethod
    def list_registrations(self, owner: str | None = None, repo: str | None = None) -> list[Registration]:
        """Return registrations, optionally filtered by owner and repo."""

    # --- Guilds -----------------------------------------------------------

    @abstractmethod
    def guild_exists(self, guild_id: str) -> bool:
        """Return True if the bot is recorded as a member of ``guild_id``."""

    @abstractmethod
    def upsert_guild(self, guild_id: str) -> bool:
        """Record guild membership. Returns True if the guild was newly added."""

    @abstractmethod
    def remove_guild(self, guild_id: str) -> bool:
        """Forget guild membership. Returns True if a row was removed."""

    @abstractmethod
    def list_guilds(self) -> list[str]:
        """Return every recorded guild id, sorted."""

    def close(self) -> None:
        """Release any resources held by the store (connections, file handles).

        Optional. Default is a no-op so callers can always call close() safely.
        """
