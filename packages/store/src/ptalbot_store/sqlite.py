"""SQLiteStore: the default on-disk store.

Schema:
  guilds         one row per guild the bot currently belongs to.
  ptal           one row per tracked PTAL message. (owner, repository, pr)
                   is indexed but not unique: a PR posted to two channels
                   has two rows, and a repeated sync request appends again.
  crowdin_embed  one row per (owner, repo) → channel registration.
"""

from __future__ import annotations

import logging
import sqlite3

from ptalbot_store.base import BaseStore
from ptalbot_store.models import PtalRecord, Registration

logger = logging.getLogger(__name__)

_SCHEMA = """
CREATE TABLE IF NOT EXISTS guilds (
    id              TEXT PRIMARY KEY NOT NULL
);
CREATE TABLE IF NOT EXISTS ptal (
    id              INTEGER PRIMARY KEY AUTOINCREMENT,
    channel         TEXT NOT NULL,
    message         TEXT NOT NULL,
    owner           TEXT NOT NULL,
    repository      TEXT NOT NULL,
    pr              INTEGER NOT NULL,
    guild_id        TEXT NOT NULL,
    description     TEXT DEFAULT ''
);
CREATE INDEX IF NOT EXISTS idx_ptal_key ON ptal (owner, repository, pr);
CREATE TABLE IF NOT EXISTS crowdin_embed (
    id              INTEGER PRIMARY KEY AUTOINCREMENT,
    owner           TEXT NOT NULL,
    repo            TEXT NOT NULL,
    channel_id      TEXT NOT NULL,
    guild_id        TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_crowdin_repo ON crowdin_embed (owner, repo);
"""


class SQLiteStore(BaseStore):
    """Stores bot state in a local SQLite database file.

    The database file path defaults to `.ptalbot.db` in the current working
    directory. Configure via .ptalbot.yml: `store_path: /path/to/ptalbot.db`.
    """

    def __init__(self, db_path: str = ".ptalbot.db"):
        self._conn = sqlite3.connect(db_path)
        self._conn.row_factory = sqlite3.Row
        self._conn.executescript(_SCHEMA)
        self._conn.commit()

    def find_ptal(self, owner: str, repository: str, pr: int) -> list[PtalRecord]:
        rows = self._conn.execute(
            "SELECT * FROM ptal WHERE owner=? AND repository=? AND pr=? ORDER BY id",
            (owner, repository, pr),
        ).fetchall()
        return [self._row_to_ptal(r) for r in rows]

    def insert_ptal(self, record: PtalRecord) -> None:
        self._conn.execute(
            """
            INSERT INTO ptal
              (channel, message, owner, repository, pr, guild_id, description)
            VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
            (
                record.channel,
                record.message,
                record.owner,
                record.repository,
                record.pr,
                record.guild_id,
                record.description,
            ),
        )
        self._conn.commit()

    def list_all_ptal(self) -> list[PtalRecord]:
        rows = self._conn.execute("SELECT * FROM ptal ORDER BY id").fetchall()
        return [self._row_to_ptal(r) for r in rows]

    def find_registrations(self, owner: str, repo: str) -> list[Registration]:
        rows = self._conn.execute(
            "SELECT * FROM crowdin_embed WHERE owner=? AND repo=? ORDER BY id",
            (owner, repo),
        ).fetchall()
        return [self._row_to_registration(r) for r in rows]

    def insert_registration(self, registration: Registration) -> None:
        self._conn.execute(
            "INSERT INTO crowdin_embed (owner, repo, channel_id, guild_id) VALUES (?, ?, ?, ?)",
            (registration.owner, registration.repo, registration.channel_id, registration.guild_id),
        )
        self._conn.commit()

    def list_registrations(self, owner: str | None = None, repo: str | None = None) -> list[Registration]:
        query = "SELECT * FROM crowdin_embed"
        clauses = []
        params: list[str] = []
        if owner is not None:
            clauses.append("owner=?")
            params.append(owner)
        if repo is not None:
            clauses.append("repo=?")
            params.append(repo)
        if clauses:
            query += " WHERE " + " AND ".join(clauses)
        rows = self._conn.execute(query + " ORDER BY id", params).fetchall()
        return [self._row_to_registration(r) for r in rows]

    def guild_exists(self, guild_id: str) -> bool:
        row = self._conn.execute("SELECT 1 FROM guilds WHERE id=?", (guild_id,)).fetchone()
        return row is not None

    def upsert_guild(self, guild_id: str) -> bool:
        cursor = self._conn.execute("INSERT OR IGNORE INTO guilds (id) VALUES (?)", (guild_id,))
        self._conn.commit()
        return cursor.rowcount > 0

    def remove_guild(self, guild_id: str) -> bool:
        cursor = self._conn.execute("DELETE FROM guilds WHERE id=?", (guild_id,))
        self._conn.commit()
        return cursor.rowcount > 0

    def list_guilds(self) -> list[str]:
        return [row["id"] for row in self._conn.execute("SELECT id FROM guilds ORDER BY id").fetchall()]

    def close(self) -> None:
        self._conn.close()

    @staticmethod
    def _row_to_ptal(row: sqlite3.Row) -> PtalRecord:
        return PtalRecord(
            channel=row["channel"],
            message=row["message"],
            owner=row["owner"],
            repository=row["repository"],
            pr=row["pr"],
            guild_id=row["guild_id"],
            description=row["description"] or "",
        )

    @staticmethod
    def _row_to_registration(row: sqlite3.Row) -> Registration:
        return Registration(
            owner=row["owner"],
            repo=row["repo"],
            channel_id=row["channel_id"],
            guild_id=row["guild_id"],
        )
