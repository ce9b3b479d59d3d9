"""Persistent state for trench: repos, worktrees, events, logs, tags, session."""

from trench.state.models import Event, LogLine, Repo, SessionEntry, Tag, Worktree
from trench.state.store import StateStore

__all__ = [
    "Event",
    "LogLine",
    "Repo",
    "SessionEntry",
    "StateStore",
    "Tag",
    "Worktree",
]
