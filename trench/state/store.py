"""StateStore: one object wiring every component over a shared Database."""

import logging
from typing import Optional

from trench.config import TrenchConfig
from trench.state.database import Database
from trench.state.events import EventLog
from trench.state.logs import LogStreamStore
from trench.state.repos import RepoRegistry
from trench.state.session import SessionStore
from trench.state.tags import TagIndex
from trench.state.worktrees import WorktreeTracker

logger = logging.getLogger(__name__)


class StateStore:
    """Entry point for collaborators.

    >>> with StateStore(":memory:") as store:
    ...     repo = store.repos.register("app", "/repos/app")
    ...     store.repos.lookup_by_path("/repos/app").id == repo.id
    True
    """

    def __init__(
        self,
        db_path: Optional[str] = None,
        busy_timeout: float = 30.0,
        log_retention_days: int = 0,
    ):
        self.db = Database(db_path, busy_timeout=busy_timeout)
        self.log_retention_days = log_retention_days

        self.repos = RepoRegistry(self.db)
        self.session = SessionStore(self.db)
        self.worktrees = WorktreeTracker(self.db, self.repos)
        self.tags = TagIndex(self.db, self.worktrees)
        self.events = EventLog(self.db, self.repos, self.worktrees)
        self.logs = LogStreamStore(self.db)

    @classmethod
    def from_config(cls, config: Optional[TrenchConfig] = None) -> "StateStore":
        """Open the store described by config (environment when omitted)."""
        if config is None:
            config = TrenchConfig.from_env()
        logger.debug("Opening state store at %s", config.db_path)
        return cls(
            config.db_path,
            busy_timeout=config.busy_timeout,
            log_retention_days=config.log_retention_days,
        )

    def prune_logs(self, days: Optional[int] = None) -> int:
        """Apply the log retention policy. Returns lines deleted.

        With no argument the configured retention is used; 0 keeps everything.
        """
        if days is None:
            days = self.log_retention_days
            if not days:
                return 0
        return self.logs.prune(days)

    def close(self) -> None:
        self.db.close()

    def __enter__(self) -> "StateStore":
        return self

    def __exit__(self, *exc) -> None:
        self.close()
