"""
Trench - local state store for multi-worktree git workflows.

Tracks repos, worktrees, lifecycle events and their output, worktree tags,
and session key-values in a single SQLite file.
"""

__version__ = "0.1.0"


def __getattr__(name: str):
    """Lazy access to the store facade without importing sqlite at package import."""
    if name == "StateStore":
        from trench.state.store import StateStore
        return StateStore
    raise AttributeError(f"module 'trench' has no attribute {name!r}")


__all__ = [
    "__version__",
    "StateStore",
]
