"""Pydantic v2 models, one per table."""

import json
import sqlite3
from typing import Any, Optional, Union

from pydantic import BaseModel, computed_field


class Repo(BaseModel):
    """Pydantic v2 model for a repos row."""

    id: int
    name: str
    path: str
    default_base: Optional[str] = None
    created_at: str


class Worktree(BaseModel):
    """Pydantic v2 model for a worktrees row."""

    id: int
    repo_id: int
    name: str
    branch: str
    path: str
    base_branch: Optional[str] = None
    managed: bool = True
    adopted_at: Optional[str] = None
    last_accessed: Optional[str] = None
    created_at: str

    @computed_field
    @property
    def adopted(self) -> bool:
        """Adopted worktrees pre-existed; trench only started tracking them."""
        return not self.managed


class Event(BaseModel):
    """Pydantic v2 model for an events row.

    payload is opaque: whatever the caller stored comes back unchanged.
    """

    id: int
    worktree_id: Optional[int] = None
    repo_id: int
    event_type: str
    payload: Optional[Union[str, bytes]] = None
    created_at: str

    def payload_json(self) -> Any:
        """Parse a JSON text payload. Returns None when there is no payload.

        >>> Event(id=1, repo_id=1, event_type="x", payload='{"a": 1}', created_at="t").payload_json()
        {'a': 1}
        """
        if self.payload is None:
            return None
        return json.loads(self.payload)


class LogLine(BaseModel):
    """Pydantic v2 model for a logs row."""

    id: int
    event_id: int
    stream: str
    line: str
    line_number: int
    created_at: str


class Tag(BaseModel):
    """Pydantic v2 model for a tags row."""

    id: int
    worktree_id: int
    name: str
    created_at: str


class SessionEntry(BaseModel):
    """Pydantic v2 model for a session row."""

    key: str
    value: str
    updated_at: str


def from_row(model: type, row: Optional[sqlite3.Row]):
    """Build a model from a sqlite3.Row, or None for a missing row."""
    return model.model_validate(dict(row)) if row is not None else None
