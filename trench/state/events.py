"""Event Log: immutable lifecycle records, scoped to a repo and optionally a worktree.

Standing rule: an event that names a worktree must name that worktree's repo.
ConsistencyEnforcer checks it inside the same transaction as the insert, so
a violating row is never visible, not even briefly.
"""

import json
import logging
import sqlite3
from typing import Any, Optional, Union

from trench.exceptions import InvariantViolationError, NotFoundError
from trench.state.database import Database, ident, utc_now
from trench.state.models import Event, from_row
from trench.state.repos import RepoRegistry
from trench.state.worktrees import WorktreeTracker

logger = logging.getLogger(__name__)

# Event types trench itself writes. Callers may use any string.
WORKTREE_CREATED = "created"
WORKTREE_ADOPTED = "adopted"
WORKTREE_REMOVED = "removed"
COMMAND_RUN = "command_run"


def encode_payload(payload: Any) -> Optional[Union[str, bytes]]:
    """Normalise a payload for storage.

    str and bytes are stored verbatim; dicts, lists and JSON scalars (numbers,
    booleans) are serialised to JSON once here and never looked at again.

    >>> encode_payload({"cmd": "make"})
    '{"cmd": "make"}'
    >>> encode_payload("raw text")
    'raw text'
    >>> encode_payload(True)
    'true'
    """
    if payload is None or isinstance(payload, (str, bytes)):
        return payload
    if isinstance(payload, (dict, list, int, float, bool)):
        return json.dumps(payload)
    raise TypeError(f"payload must be str, bytes, dict, list, number or bool, not {type(payload).__name__}")


class ConsistencyEnforcer:
    """Validates an event's repo/worktree pair on the writing connection."""

    def check(self, conn: sqlite3.Connection, repo_id: int, worktree_id: Optional[int]) -> None:
        """Raise unless the pair may be written. Must run inside the insert's transaction.

        Raises:
            NotFoundError: if the repo or worktree does not exist
            InvariantViolationError: if the worktree belongs to another repo
        """
        if conn.execute("SELECT 1 FROM repos WHERE id = ?", (repo_id,)).fetchone() is None:
            raise NotFoundError("repo", repo_id)
        if worktree_id is None:
            return

        row = conn.execute("SELECT repo_id FROM worktrees WHERE id = ?", (worktree_id,)).fetchone()
        if row is None:
            raise NotFoundError("worktree", worktree_id)
        if row["repo_id"] != repo_id:
            logger.warning(
                "Rejected event: worktree %d belongs to repo %d, not %d",
                worktree_id, row["repo_id"], repo_id,
            )
            raise InvariantViolationError(repo_id, worktree_id, row["repo_id"])


class EventLog:
    """Append-only event records. No update or delete exists."""

    def __init__(self, db: Database, repos: RepoRegistry, worktrees: WorktreeTracker):
        self.db = db
        self.repos = repos
        self.worktrees = worktrees
        self.enforcer = ConsistencyEnforcer()

    def record(
        self,
        repo: Any,
        worktree: Any = None,
        event_type: str = "",
        payload: Any = None,
    ) -> Event:
        """Record a lifecycle event.

        All-or-nothing: if the consistency check fails no row is written.

        Raises:
            NotFoundError: if the repo or worktree does not exist
            InvariantViolationError: if worktree does not belong to repo
            ValueError: if event_type is empty
        """
        if not event_type:
            raise ValueError("event_type is required")
        repo_id = ident(repo)
        worktree_id = ident(worktree) if worktree is not None else None
        stored = encode_payload(payload)
        now = utc_now()

        with self.db._writer() as conn:
            self.enforcer.check(conn, repo_id, worktree_id)
            cursor = conn.execute(
                """INSERT INTO events (worktree_id, repo_id, event_type, payload, created_at)
                   VALUES (?, ?, ?, ?, ?)""",
                (worktree_id, repo_id, event_type, stored, now),
            )
            row = conn.execute("SELECT * FROM events WHERE id = ?", (cursor.lastrowid,)).fetchone()

        logger.debug("Recorded %s event for repo %d worktree %s", event_type, repo_id, worktree_id)
        return from_row(Event, row)

    def record_for_worktree(self, worktree: Any, event_type: str, payload: Any = None) -> Event:
        """Record an event against a worktree and the repo that owns it."""
        wt = self.worktrees.lookup(worktree)
        return self.record(wt.repo_id, wt.id, event_type, payload)

    def lookup(self, event_id: Any) -> Event:
        ev_id = ident(event_id)
        with self.db._reader() as conn:
            row = conn.execute("SELECT * FROM events WHERE id = ?", (ev_id,)).fetchone()
        if row is None:
            raise NotFoundError("event", ev_id)
        return from_row(Event, row)

    def count(self, worktree: Any, event_type: Optional[str] = None) -> int:
        """Count events for a worktree, optionally of one type."""
        sql = "SELECT COUNT(*) FROM events WHERE worktree_id = ?"
        params: list = [ident(worktree)]
        if event_type is not None:
            sql += " AND event_type = ?"
            params.append(event_type)
        with self.db._reader() as conn:
            return conn.execute(sql, params).fetchone()[0]

    def list(
        self,
        repo: Any,
        worktree: Any = None,
        event_type: Optional[str] = None,
    ) -> list[Event]:
        """Events of repo in creation order, optionally narrowed to one worktree or type.

        Raises:
            NotFoundError: if the repo does not exist
        """
        conditions = ["repo_id = ?"]
        params: list = [self.repos.lookup(ident(repo)).id]
        if worktree is not None:
            conditions.append("worktree_id = ?")
            params.append(ident(worktree))
        if event_type is not None:
            conditions.append("event_type = ?")
            params.append(event_type)

        with self.db._reader() as conn:
            rows = conn.execute(
                f"SELECT * FROM events WHERE {' AND '.join(conditions)} ORDER BY id ASC",
                params,
            ).fetchall()
        return [from_row(Event, row) for row in rows]
