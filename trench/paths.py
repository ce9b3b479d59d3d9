"""Filesystem path helpers for trench."""

import os
from pathlib import Path


def data_dir() -> Path:
    """Return the trench data directory ($XDG_DATA_HOME/trench).

    >>> data_dir().name
    'trench'
    """
    base = os.environ.get("XDG_DATA_HOME")
    if base:
        return Path(base) / "trench"
    return Path.home() / ".local" / "share" / "trench"


def default_db_path() -> str:
    """Return default database path: <data_dir>/trench.db"""
    return str(data_dir() / "trench.db")


def sanitize_branch(branch: str) -> str:
    """Turn a branch name into something usable as a directory name.

    ``/``, ``@`` and spaces become dashes, ``..`` is neutralised, runs of
    dashes collapse, single dots survive and edge dashes are trimmed.

    >>> sanitize_branch("feature/auth")
    'feature-auth'
    >>> sanitize_branch("a..b")
    'a-b'
    >>> sanitize_branch("v2.1.3")
    'v2.1.3'
    >>> sanitize_branch("/a/@b/")
    'a-b'
    """
    stripped = branch.replace("..", "-")

    out = []
    for ch in stripped:
        if ch in "/@ -":
            if not out or out[-1] != "-":
                out.append("-")
        else:
            out.append(ch)

    return "".join(out).strip("-")
