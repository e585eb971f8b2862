"""Persisted data models.

Decoupled from ptalbot_core so the store layer can be used independently
and ptalbot_core never imports a concrete backend.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class PtalRecord:
    """One outstanding "please take a look" message tracked against a PR.

    ``(channel, message)`` identifies the chat message to edit;
    ``(owner, repository, pr)`` identifies the pull request it mirrors.
    """

    channel: str
    message: str
    owner: str
    repository: str
    pr: int
    guild_id: str
    description: str = ""

    @property
    def key(self) -> str:
        return f"{self.owner}/{self.repository}#{self.pr}"


@dataclass(frozen=True)
class Registration:
    """Routes sync notifications for ``owner/repo`` to a chat channel."""

    owner: str
    repo: str
    channel_id: str
    guild_id: str
