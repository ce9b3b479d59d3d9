"""Shared fixtures for trench tests."""

import pytest

from trench.state.store import StateStore


@pytest.fixture
def store():
    """In-memory StateStore, closed after the test."""
    s = StateStore(":memory:")
    yield s
    s.close()


@pytest.fixture
def db_file(tmp_path):
    """Path for a throwaway on-disk database."""
    return str(tmp_path / "trench.db")


@pytest.fixture
def file_store(db_file):
    """StateStore backed by a real file (WAL, per-thread connections)."""
    s = StateStore(db_file)
    yield s
    s.close()


@pytest.fixture
def repo(store):
    """Repo registered at /repos/app."""
    return store.repos.register("app", "/repos/app", "main")


@pytest.fixture
def worktree(store, repo):
    """Managed worktree 'feature' under the app repo."""
    return store.worktrees.create(repo, "feature", "feature", "/repos/app/.wt/feature", "main")
