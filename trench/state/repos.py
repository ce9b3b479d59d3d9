"""Repo Registry: the source repositories trench knows about."""

import logging
from typing import Optional

from trench.exceptions import DuplicatePathError, NotFoundError
from trench.state.database import Database, utc_now
from trench.state.models import Repo, from_row

logger = logging.getLogger(__name__)


class RepoRegistry:
    """Registers repos and looks them up by id or path.

    Re-registering a path is rejected rather than merged, so callers that
    are unsure should ``lookup_by_path`` first.
    """

    def __init__(self, db: Database):
        self.db = db

    def register(self, name: str, path: str, default_base: Optional[str] = None) -> Repo:
        """Register a repository.

        Raises:
            DuplicatePathError: if a repo is already registered at path

        >>> reg = RepoRegistry(Database(":memory:"))
        >>> reg.register("app", "/repos/app", "main").default_base
        'main'
        """
        now = utc_now()
        with self.db._writer() as conn:
            if conn.execute("SELECT 1 FROM repos WHERE path = ?", (path,)).fetchone():
                logger.info("Rejected repo registration, path already tracked: %s", path)
                raise DuplicatePathError("repo", path)
            cursor = conn.execute(
                "INSERT INTO repos (name, path, default_base, created_at) VALUES (?, ?, ?, ?)",
                (name, path, default_base, now),
            )
            row = conn.execute("SELECT * FROM repos WHERE id = ?", (cursor.lastrowid,)).fetchone()

        logger.debug("Registered repo %s at %s", name, path)
        return from_row(Repo, row)

    def lookup(self, repo_id: int) -> Repo:
        """Get a repo by id.

        >>> RepoRegistry(Database(":memory:")).lookup(999)
        Traceback (most recent call last):
        ...
        trench.exceptions.NotFoundError: repo not found: 999
        """
        with self.db._reader() as conn:
            row = conn.execute("SELECT * FROM repos WHERE id = ?", (repo_id,)).fetchone()
        if row is None:
            raise NotFoundError("repo", repo_id)
        return from_row(Repo, row)

    def lookup_by_path(self, path: str) -> Repo:
        with self.db._reader() as conn:
            row = conn.execute("SELECT * FROM repos WHERE path = ?", (path,)).fetchone()
        if row is None:
            raise NotFoundError("repo", path)
        return from_row(Repo, row)

    def list(self) -> list[Repo]:
        """All registered repos in registration order."""
        with self.db._reader() as conn:
            rows = conn.execute("SELECT * FROM repos ORDER BY id ASC").fetchall()
        return [from_row(Repo, row) for row in rows]
