"""Tests for EventLog and the repo/worktree consistency check."""

import json
import threading

import pytest

from trench.exceptions import InvariantViolationError, NotFoundError
from trench.state.events import WORKTREE_CREATED, encode_payload
from trench.state.store import StateStore


def _event_count(store) -> int:
    with store.db._reader() as conn:
        return conn.execute("SELECT COUNT(*) FROM events").fetchone()[0]


class TestRecord:
    def test_repo_scoped_event(self, store, repo):
        ev = store.events.record(repo, event_type="fetched")
        assert ev.repo_id == repo.id
        assert ev.worktree_id is None
        assert ev.payload is None

    def test_worktree_scoped_event(self, store, repo, worktree):
        ev = store.events.record(repo, worktree, "build_started")
        assert ev.worktree_id == worktree.id
        assert ev.repo_id == repo.id

    def test_mismatched_repo_rejected_and_nothing_written(self, store, repo, worktree):
        """record(R2, W of R1) fails and leaves the events table unchanged."""
        other = store.repos.register("other", "/repos/other")
        store.events.record(repo, worktree, "build_started")
        before = _event_count(store)

        with pytest.raises(InvariantViolationError) as exc:
            store.events.record(other, worktree, "x")

        assert exc.value.repo_id == other.id
        assert exc.value.worktree_id == worktree.id
        assert exc.value.worktree_repo_id == repo.id
        assert _event_count(store) == before
        assert store.events.list(other) == []

    def test_check_uses_stored_worktree_not_caller_copy(self, store, repo, worktree):
        """A caller-forged repo_id on the worktree object does not bypass the check."""
        other = store.repos.register("other", "/repos/other")
        forged = worktree.model_copy(update={"repo_id": other.id})
        with pytest.raises(InvariantViolationError):
            store.events.record(other, forged, "x")

    def test_unknown_worktree_raises(self, store, repo):
        with pytest.raises(NotFoundError) as exc:
            store.events.record(repo, 999, "x")
        assert exc.value.kind == "worktree"
        assert _event_count(store) == 0

    def test_unknown_repo_raises(self, store):
        with pytest.raises(NotFoundError):
            store.events.record(999, event_type="x")

    def test_event_type_required(self, store, repo):
        with pytest.raises(ValueError):
            store.events.record(repo, event_type="")

    def test_every_stored_event_satisfies_invariant(self, store, repo, worktree):
        other = store.repos.register("other", "/repos/other")
        other_wt = store.worktrees.create(other, "o", "o", "/wt/o")
        store.events.record(repo, worktree, "a")
        store.events.record(other, other_wt, "b")
        store.events.record(other, event_type="c")
        for bad_repo, wt in [(repo, other_wt), (other, worktree)]:
            with pytest.raises(InvariantViolationError):
                store.events.record(bad_repo, wt, "bad")

        with store.db._reader() as conn:
            rows = conn.execute(
                """SELECT e.repo_id, w.repo_id AS wt_repo FROM events e
                   JOIN worktrees w ON w.id = e.worktree_id"""
            ).fetchall()
        assert rows
        assert all(r["repo_id"] == r["wt_repo"] for r in rows)

    def test_record_for_worktree_uses_owning_repo(self, store, repo, worktree):
        ev = store.events.record_for_worktree(worktree.id, WORKTREE_CREATED)
        assert ev.repo_id == repo.id
        assert ev.worktree_id == worktree.id


class TestPayload:
    def test_text_payload_verbatim(self, store, repo):
        raw = '{"not": "parsed",   "spacing": kept}'
        ev = store.events.record(repo, event_type="x", payload=raw)
        assert store.events.lookup(ev.id).payload == raw

    def test_bytes_payload_verbatim(self, store, repo):
        raw = b"\x00\x01binary\xff"
        ev = store.events.record(repo, event_type="x", payload=raw)
        assert store.events.lookup(ev.id).payload == raw

    def test_dict_payload_serialized_to_json(self, store, repo):
        ev = store.events.record(repo, event_type="command_run", payload={"cmd": "make", "exit": 0})
        assert json.loads(ev.payload) == {"cmd": "make", "exit": 0}
        assert ev.payload_json() == {"cmd": "make", "exit": 0}

    def test_payload_json_none(self, store, repo):
        ev = store.events.record(repo, event_type="x")
        assert ev.payload_json() is None

    def test_scalar_payloads_serialized_to_json(self, store, repo):
        exit_code = store.events.record(repo, event_type="command_exited", payload=42)
        assert exit_code.payload == "42"
        assert exit_code.payload_json() == 42
        assert encode_payload(1.5) == "1.5"
        assert encode_payload(False) == "false"

    def test_unsupported_payload_type(self):
        with pytest.raises(TypeError):
            encode_payload(object())


class TestQueries:
    def test_list_in_creation_order(self, store, repo, worktree):
        ids = [store.events.record(repo, worktree, f"e{i}").id for i in range(5)]
        assert [e.id for e in store.events.list(repo)] == ids

    def test_list_filtered_by_worktree(self, store, repo, worktree):
        other_wt = store.worktrees.create(repo, "o", "o", "/wt/o")
        store.events.record(repo, event_type="repo-only")
        a = store.events.record(repo, worktree, "a")
        store.events.record(repo, other_wt, "b")

        assert [e.id for e in store.events.list(repo, worktree)] == [a.id]
        assert len(store.events.list(repo)) == 3

    def test_list_filtered_by_type(self, store, repo, worktree):
        store.events.record(repo, worktree, "created")
        store.events.record(repo, worktree, "removed")
        assert [e.event_type for e in store.events.list(repo, event_type="removed")] == ["removed"]

    def test_list_unknown_repo_raises(self, store):
        with pytest.raises(NotFoundError):
            store.events.list(404)

    def test_count(self, store, repo, worktree):
        store.events.record(repo, worktree, "created")
        store.events.record(repo, worktree, "command_run")
        store.events.record(repo, worktree, "command_run")
        assert store.events.count(worktree) == 3
        assert store.events.count(worktree, "command_run") == 2
        assert store.events.count(worktree, "removed") == 0

    def test_lookup_missing_raises(self, store):
        with pytest.raises(NotFoundError):
            store.events.lookup(1)


def test_concurrent_records_are_independent(db_file):
    """Parallel record calls from separate connections all land, each validated."""
    setup = StateStore(db_file)
    repo = setup.repos.register("app", "/repos/app")
    other = setup.repos.register("other", "/repos/other")
    wt = setup.worktrees.create(repo, "w", "w", "/wt/w")
    setup.close()

    errors = []

    def worker(n):
        s = StateStore(db_file)
        try:
            for i in range(10):
                s.events.record(repo.id, wt.id, f"ok-{n}-{i}")
                try:
                    s.events.record(other.id, wt.id, "bad")
                except InvariantViolationError:
                    pass
                else:
                    errors.append("violation accepted")
        finally:
            s.close()

    threads = [threading.Thread(target=worker, args=(n,)) for n in range(4)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    check = StateStore(db_file)
    assert errors == []
    assert len(check.events.list(repo)) == 40
    assert check.events.list(other) == []
    check.close()
