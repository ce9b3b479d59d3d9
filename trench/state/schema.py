"""Schema DDL for the trench state database."""

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS repos (
    id           INTEGER PRIMARY KEY,
    name         TEXT    NOT NULL,
    path         TEXT    NOT NULL UNIQUE,
    default_base TEXT,
    created_at   TEXT    NOT NULL
);

CREATE TABLE IF NOT EXISTS worktrees (
    id            INTEGER PRIMARY KEY,
    repo_id       INTEGER NOT NULL REFERENCES repos(id),
    name          TEXT    NOT NULL,
    branch        TEXT    NOT NULL,
    path          TEXT    NOT NULL UNIQUE,
    base_branch   TEXT,
    managed       BOOLEAN NOT NULL DEFAULT 1,
    adopted_at    TEXT,
    last_accessed TEXT,
    created_at    TEXT    NOT NULL
);

-- payload has no declared type so str and bytes keep their storage class
CREATE TABLE IF NOT EXISTS events (
    id          INTEGER PRIMARY KEY,
    worktree_id INTEGER REFERENCES worktrees(id),
    repo_id     INTEGER NOT NULL REFERENCES repos(id),
    event_type  TEXT    NOT NULL,
    payload,
    created_at  TEXT    NOT NULL
);

CREATE TABLE IF NOT EXISTS logs (
    id          INTEGER PRIMARY KEY,
    event_id    INTEGER NOT NULL REFERENCES events(id),
    stream      TEXT    NOT NULL,
    line        TEXT    NOT NULL,
    line_number INTEGER NOT NULL,
    created_at  TEXT    NOT NULL,
    UNIQUE(event_id, stream, line_number)
);

CREATE TABLE IF NOT EXISTS tags (
    id          INTEGER PRIMARY KEY,
    worktree_id INTEGER NOT NULL REFERENCES worktrees(id),
    name        TEXT    NOT NULL,
    created_at  TEXT    NOT NULL,
    UNIQUE(worktree_id, name)
);

CREATE TABLE IF NOT EXISTS session (
    key        TEXT PRIMARY KEY,
    value      TEXT NOT NULL,
    updated_at TEXT NOT NULL
);
"""

INDEXES_SQL = """
CREATE INDEX IF NOT EXISTS idx_worktrees_repo ON worktrees(repo_id);
CREATE INDEX IF NOT EXISTS idx_events_repo ON events(repo_id);
CREATE INDEX IF NOT EXISTS idx_events_worktree ON events(worktree_id, event_type);
CREATE INDEX IF NOT EXISTS idx_events_created ON events(created_at);
CREATE INDEX IF NOT EXISTS idx_tags_name ON tags(name);
"""

TABLES = ("repos", "worktrees", "events", "logs", "tags", "session")
