"""SQLite storage core for the trench state store.

Six tables: repos, worktrees, events, logs, tags, session.

WAL mode for concurrent reads. Every write runs inside one BEGIN IMMEDIATE
transaction, which serializes writers across processes; an in-process lock
serializes threads sharing this Database.
"""

import logging
import sqlite3
import threading
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterator, Optional

from trench.paths import default_db_path
from trench.state.schema import INDEXES_SQL, SCHEMA_SQL

logger = logging.getLogger(__name__)

MEMORY = ":memory:"

# Each entry upgrades the schema by one version (PRAGMA user_version).
MIGRATIONS = [
    SCHEMA_SQL + INDEXES_SQL,
]


def utc_now() -> str:
    """Current UTC time as an ISO-8601 string."""
    return datetime.now(timezone.utc).isoformat()


def ident(obj: Any) -> int:
    """Accept a model with an ``id`` or a bare integer id.

    >>> ident(3)
    3
    """
    return obj.id if hasattr(obj, "id") else int(obj)


class Database:
    """SQLite connection manager with WAL mode and atomic writes.

    >>> db = Database(":memory:")
    >>> db.schema_version()
    1
    """

    def __init__(self, db_path: Optional[str] = None, busy_timeout: float = 30.0):
        if db_path is None:
            db_path = default_db_path()

        self.db_path = str(db_path)
        self.busy_timeout = busy_timeout
        self._write_lock = threading.RLock()
        self._local = threading.local()
        # thread ident -> (thread, connection); entries of dead threads are reaped
        self._connections: dict[int, tuple[threading.Thread, sqlite3.Connection]] = {}
        self._connections_lock = threading.Lock()
        # :memory: databases are per-connection, so every thread shares one
        self._shared: Optional[sqlite3.Connection] = None

        if self.db_path != MEMORY:
            Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)

        self._init_schema()

    @property
    def in_memory(self) -> bool:
        return self.db_path == MEMORY

    # ------------------------------------------------------------------
    # Connection helpers
    # ------------------------------------------------------------------

    def _connect(self) -> sqlite3.Connection:
        # isolation_level=None: transactions are opened explicitly by _writer
        conn = sqlite3.connect(
            self.db_path,
            timeout=self.busy_timeout,
            check_same_thread=False,
            isolation_level=None,
        )
        conn.execute("PRAGMA journal_mode=WAL")
        conn.execute("PRAGMA foreign_keys=ON")
        conn.execute("PRAGMA synchronous=NORMAL")
        conn.execute(f"PRAGMA busy_timeout={int(self.busy_timeout * 1000)}")
        conn.row_factory = sqlite3.Row
        return conn

    def _reap_dead_threads(self) -> None:
        """Close connections whose owning thread has exited. Caller holds _connections_lock."""
        dead = [key for key, (thread, _) in self._connections.items() if not thread.is_alive()]
        for key in dead:
            _, conn = self._connections.pop(key)
            conn.close()
        if dead:
            logger.debug("Closed %d connection(s) of finished threads", len(dead))

    def _get_connection(self) -> sqlite3.Connection:
        if self.in_memory:
            if self._shared is None:
                self._shared = self._connect()
            return self._shared
        if getattr(self._local, "connection", None) is None:
            conn = self._connect()
            with self._connections_lock:
                self._reap_dead_threads()
                self._connections[threading.get_ident()] = (threading.current_thread(), conn)
            self._local.connection = conn
        return self._local.connection

    @contextmanager
    def _writer(self) -> Iterator[sqlite3.Connection]:
        """Run the block as one atomic write; roll back and re-raise on error."""
        with self._write_lock:
            conn = self._get_connection()
            conn.execute("BEGIN IMMEDIATE")
            try:
                yield conn
                conn.execute("COMMIT")
            except Exception:
                conn.execute("ROLLBACK")
                raise

    @contextmanager
    def _reader(self) -> Iterator[sqlite3.Connection]:
        if self.in_memory:
            with self._write_lock:
                yield self._get_connection()
        else:
            yield self._get_connection()

    def _init_schema(self) -> None:
        with self._write_lock:
            conn = self._get_connection()
            version = conn.execute("PRAGMA user_version").fetchone()[0]
            for target, script in enumerate(MIGRATIONS[version:], start=version + 1):
                try:
                    conn.executescript(
                        f"BEGIN IMMEDIATE;\n{script}\nPRAGMA user_version = {target};\nCOMMIT;"
                    )
                except sqlite3.Error:
                    if conn.in_transaction:
                        conn.execute("ROLLBACK")
                    raise
                logger.debug("Migrated %s to schema version %d", self.db_path, target)

    def schema_version(self) -> int:
        with self._reader() as conn:
            return conn.execute("PRAGMA user_version").fetchone()[0]

    def close(self) -> None:
        with self._connections_lock:
            for _, conn in self._connections.values():
                conn.close()
            self._connections.clear()
        if self._shared is not None:
            self._shared.close()
            self._shared = None
        self._local = threading.local()
