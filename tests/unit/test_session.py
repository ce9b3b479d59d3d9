"""Tests for SessionStore upsert semantics."""

import time
from datetime import datetime

import pytest

from trench.exceptions import NotFoundError
from trench.state.session import CURRENT_WORKTREE
from trench.state.store import StateStore


def test_get_unset_key_raises(store):
    with pytest.raises(NotFoundError) as exc:
        store.session.get(CURRENT_WORKTREE)
    assert exc.value.key == CURRENT_WORKTREE


def test_set_then_get(store):
    store.session.set(CURRENT_WORKTREE, "feature")
    assert store.session.get(CURRENT_WORKTREE) == "feature"


def test_second_set_replaces_value_and_timestamp(store):
    first = store.session.set("k", "v1")
    time.sleep(0.01)
    second = store.session.set("k", "v2")

    assert store.session.get("k") == "v2"
    assert datetime.fromisoformat(second.updated_at) >= datetime.fromisoformat(first.updated_at)
    assert store.session.entry("k").updated_at == second.updated_at
    assert store.session.items() == {"k": "v2"}


def test_keys_independent(store):
    store.session.set("a", "1")
    store.session.set("b", "2")
    assert store.session.items() == {"a": "1", "b": "2"}


def test_each_store_has_its_own_session(store):
    """No process-global session state leaks between stores."""
    store.session.set("k", "v")
    other = StateStore(":memory:")
    with pytest.raises(NotFoundError):
        other.session.get("k")
    other.close()


def test_session_persists_across_reopen(db_file):
    s = StateStore(db_file)
    s.session.set(CURRENT_WORKTREE, "feature")
    s.close()

    s2 = StateStore(db_file)
    assert s2.session.get(CURRENT_WORKTREE) == "feature"
    s2.close()
