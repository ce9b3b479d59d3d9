"""Worktree Tracker: worktrees belonging to registered repos.

A worktree is either managed (trench created it) or adopted (it already
existed and trench started tracking it; adopted_at records when). Paths are
unique across every repo. There is no delete: removing a worktree from disk
is recorded as an event by the caller, the row stays.
"""

import logging
from typing import Any, Optional

from trench.exceptions import DuplicatePathError, NotFoundError
from trench.paths import sanitize_branch
from trench.state.database import Database, ident, utc_now
from trench.state.models import Worktree, from_row
from trench.state.repos import RepoRegistry

logger = logging.getLogger(__name__)


class WorktreeTracker:
    """Create, adopt, touch and query worktrees.

    >>> db = Database(":memory:")
    >>> repos = RepoRegistry(db)
    >>> wts = WorktreeTracker(db, repos)
    >>> repo = repos.register("app", "/repos/app")
    >>> wts.create(repo, "feature", "feature", "/repos/app/.wt/feature").managed
    True
    """

    def __init__(self, db: Database, repos: RepoRegistry):
        self.db = db
        self.repos = repos

    def _insert(
        self,
        repo: Any,
        name: str,
        branch: str,
        path: str,
        base_branch: Optional[str],
        managed: bool,
    ) -> Worktree:
        repo_id = ident(repo)
        now = utc_now()
        adopted_at = None if managed else now

        with self.db._writer() as conn:
            if conn.execute("SELECT 1 FROM repos WHERE id = ?", (repo_id,)).fetchone() is None:
                raise NotFoundError("repo", repo_id)
            if conn.execute("SELECT 1 FROM worktrees WHERE path = ?", (path,)).fetchone():
                logger.info("Rejected worktree %s, path already tracked: %s", name, path)
                raise DuplicatePathError("worktree", path)
            cursor = conn.execute(
                """INSERT INTO worktrees (
                    repo_id, name, branch, path, base_branch, managed, adopted_at, created_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)""",
                (repo_id, name, branch, path, base_branch, managed, adopted_at, now),
            )
            row = conn.execute(
                "SELECT * FROM worktrees WHERE id = ?", (cursor.lastrowid,)
            ).fetchone()

        logger.debug(
            "%s worktree %s (%s) for repo %d at %s",
            "Created" if managed else "Adopted", name, branch, repo_id, path,
        )
        return from_row(Worktree, row)

    def create(
        self,
        repo: Any,
        name: str,
        branch: str,
        path: str,
        base_branch: Optional[str] = None,
    ) -> Worktree:
        """Track a worktree trench created itself.

        Raises:
            NotFoundError: if the repo does not exist
            DuplicatePathError: if any worktree already uses path
        """
        return self._insert(repo, name, branch, path, base_branch, managed=True)

    def adopt(
        self,
        repo: Any,
        name: str,
        branch: str,
        path: str,
        base_branch: Optional[str] = None,
    ) -> Worktree:
        """Start tracking a worktree that already exists on disk."""
        return self._insert(repo, name, branch, path, base_branch, managed=False)

    def touch(self, worktree_id: Any) -> Worktree:
        """Set last_accessed to now.

        Raises:
            NotFoundError: if the worktree does not exist
        """
        wt_id = ident(worktree_id)
        now = utc_now()
        with self.db._writer() as conn:
            cursor = conn.execute(
                "UPDATE worktrees SET last_accessed = ? WHERE id = ?", (now, wt_id)
            )
            if cursor.rowcount == 0:
                raise NotFoundError("worktree", wt_id)
            row = conn.execute("SELECT * FROM worktrees WHERE id = ?", (wt_id,)).fetchone()
        return from_row(Worktree, row)

    def lookup(self, worktree_id: Any) -> Worktree:
        wt_id = ident(worktree_id)
        with self.db._reader() as conn:
            row = conn.execute("SELECT * FROM worktrees WHERE id = ?", (wt_id,)).fetchone()
        if row is None:
            raise NotFoundError("worktree", wt_id)
        return from_row(Worktree, row)

    def find(self, repo: Any, identifier: str) -> Worktree:
        """Resolve a worktree of repo by name or branch.

        Falls back to the sanitized form of identifier, so ``feature/auth``
        finds a worktree named ``feature-auth``.

        Raises:
            NotFoundError: if the repo is unknown or nothing matches either form
        """
        repo_id = self.repos.lookup(ident(repo)).id
        candidates = [identifier]
        sanitized = sanitize_branch(identifier)
        if sanitized and sanitized != identifier:
            candidates.append(sanitized)

        with self.db._reader() as conn:
            for candidate in candidates:
                row = conn.execute(
                    """SELECT * FROM worktrees
                       WHERE repo_id = ? AND (name = ? OR branch = ?)
                       ORDER BY (name = ?) DESC, id ASC
                       LIMIT 1""",
                    (repo_id, candidate, candidate, candidate),
                ).fetchone()
                if row is not None:
                    return from_row(Worktree, row)
        raise NotFoundError("worktree", identifier, detail=f"repo {repo_id}")

    def list_by_tag(self, repo: Any, tag: str) -> list[Worktree]:
        """Worktrees of repo carrying tag, in creation order.

        Raises:
            NotFoundError: if the repo does not exist
        """
        repo_id = self.repos.lookup(ident(repo)).id
        with self.db._reader() as conn:
            rows = conn.execute(
                """SELECT w.* FROM worktrees w
                   JOIN tags t ON t.worktree_id = w.id
                   WHERE w.repo_id = ? AND t.name = ?
                   ORDER BY w.id ASC""",
                (repo_id, tag),
            ).fetchall()
        return [from_row(Worktree, row) for row in rows]

    def list(self, repo: Any) -> list[Worktree]:
        """All worktrees of repo in creation order.

        Raises:
            NotFoundError: if the repo does not exist
        """
        repo_id = self.repos.lookup(ident(repo)).id
        with self.db._reader() as conn:
            rows = conn.execute(
                "SELECT * FROM worktrees WHERE repo_id = ? ORDER BY id ASC", (repo_id,)
            ).fetchall()
        return [from_row(Worktree, row) for row in rows]
