"""Session Store: flat key-value process state.

One current value per key; no history. Created by StateStore and handed to
whoever needs it, never reached through a module global.
"""

import logging

from trench.exceptions import NotFoundError
from trench.state.database import Database, utc_now
from trench.state.models import SessionEntry, from_row

logger = logging.getLogger(__name__)

# Name of the worktree most recently switched to.
CURRENT_WORKTREE = "current_worktree"


class SessionStore:
    def __init__(self, db: Database):
        self.db = db

    def set(self, key: str, value: str) -> SessionEntry:
        """Set a session value (upsert). value and updated_at are replaced.

        >>> s = SessionStore(Database(":memory:"))
        >>> s.set("current_worktree", "feature").value
        'feature'
        """
        now = utc_now()
        with self.db._writer() as conn:
            conn.execute(
                """INSERT INTO session (key, value, updated_at)
                   VALUES (?, ?, ?)
                   ON CONFLICT(key) DO UPDATE SET value = excluded.value, updated_at = excluded.updated_at""",
                (key, value, now),
            )
            row = conn.execute("SELECT * FROM session WHERE key = ?", (key,)).fetchone()
        logger.debug("Session %s updated", key)
        return from_row(SessionEntry, row)

    def entry(self, key: str) -> SessionEntry:
        with self.db._reader() as conn:
            row = conn.execute("SELECT * FROM session WHERE key = ?", (key,)).fetchone()
        if row is None:
            raise NotFoundError("session key", key)
        return from_row(SessionEntry, row)

    def get(self, key: str) -> str:
        """Get a session value.

        Raises:
            NotFoundError: if the key was never set
        """
        return self.entry(key).value

    def items(self) -> dict[str, str]:
        with self.db._reader() as conn:
            rows = conn.execute("SELECT key, value FROM session ORDER BY key ASC").fetchall()
        return {row["key"]: row["value"] for row in rows}
