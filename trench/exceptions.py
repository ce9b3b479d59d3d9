"""Trench state-store exception hierarchy.

Every error is raised synchronously by the operation that detected it. A
failed write has already been rolled back by the time the caller sees it.
"""

from typing import Any, Optional


class TrenchError(Exception):
    """Base exception for all trench errors."""


class ConfigError(TrenchError):
    """Raised when environment configuration is invalid."""


class DuplicatePathError(TrenchError):
    """Raised when a repo or worktree path is already tracked.

    >>> err = DuplicatePathError("worktree", "/repos/app/.wt/x")
    >>> err.path
    '/repos/app/.wt/x'
    """

    def __init__(self, kind: str, path: str):
        self.kind = kind
        self.path = path
        super().__init__(f"{kind} path already tracked: {path}")


class DuplicateTagError(TrenchError):
    """Raised when a worktree already carries the tag."""

    def __init__(self, worktree_id: int, name: str):
        self.worktree_id = worktree_id
        self.name = name
        super().__init__(f"worktree {worktree_id} already tagged '{name}'")


class InvariantViolationError(TrenchError):
    """Raised when an event's repo does not own the event's worktree."""

    def __init__(self, repo_id: int, worktree_id: int, worktree_repo_id: int):
        self.repo_id = repo_id
        self.worktree_id = worktree_id
        self.worktree_repo_id = worktree_repo_id
        super().__init__(
            f"events.repo_id does not match worktree.repo_id "
            f"(event repo {repo_id}, worktree {worktree_id} belongs to repo {worktree_repo_id})"
        )


class NotFoundError(TrenchError):
    """Raised when a repo, worktree, event or session key does not exist.

    >>> str(NotFoundError("repo", 7))
    'repo not found: 7'
    """

    def __init__(self, kind: str, key: Any, detail: Optional[str] = None):
        self.kind = kind
        self.key = key
        message = f"{kind} not found: {key}"
        if detail:
            message = f"{message} ({detail})"
        super().__init__(message)
