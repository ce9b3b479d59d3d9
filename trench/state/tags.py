"""Tag Index: labels on worktrees."""

import logging
from typing import Any

from trench.exceptions import DuplicateTagError, NotFoundError
from trench.state.database import Database, ident, utc_now
from trench.state.models import Tag, from_row
from trench.state.worktrees import WorktreeTracker

logger = logging.getLogger(__name__)


class TagIndex:
    def __init__(self, db: Database, worktrees: WorktreeTracker):
        self.db = db
        self.worktrees = worktrees

    def add(self, worktree_id: Any, name: str) -> Tag:
        """Tag a worktree.

        Adding a tag the worktree already has is an error, not a no-op.

        Raises:
            NotFoundError: if the worktree does not exist
            DuplicateTagError: if (worktree, name) already exists
        """
        if not name:
            raise ValueError("tag name cannot be empty")
        wt_id = ident(worktree_id)
        now = utc_now()
        with self.db._writer() as conn:
            if conn.execute("SELECT 1 FROM worktrees WHERE id = ?", (wt_id,)).fetchone() is None:
                raise NotFoundError("worktree", wt_id)
            if conn.execute(
                "SELECT 1 FROM tags WHERE worktree_id = ? AND name = ?", (wt_id, name)
            ).fetchone():
                raise DuplicateTagError(wt_id, name)
            cursor = conn.execute(
                "INSERT INTO tags (worktree_id, name, created_at) VALUES (?, ?, ?)",
                (wt_id, name, now),
            )
            row = conn.execute("SELECT * FROM tags WHERE id = ?", (cursor.lastrowid,)).fetchone()

        logger.debug("Tagged worktree %d with %s", wt_id, name)
        return from_row(Tag, row)

    def remove(self, worktree_id: Any, name: str) -> bool:
        """Remove a tag. Returns False if the worktree did not have it."""
        with self.db._writer() as conn:
            cursor = conn.execute(
                "DELETE FROM tags WHERE worktree_id = ? AND name = ?", (ident(worktree_id), name)
            )
            return cursor.rowcount > 0

    def list(self, worktree_id: Any) -> list[str]:
        """Tag names on a worktree, sorted.

        Raises:
            NotFoundError: if the worktree does not exist
        """
        wt = self.worktrees.lookup(worktree_id)
        with self.db._reader() as conn:
            rows = conn.execute(
                "SELECT name FROM tags WHERE worktree_id = ? ORDER BY name ASC", (wt.id,)
            ).fetchall()
        return [row["name"] for row in rows]
