"""Log Stream Store: captured output lines attached to events.

Line numbers are allocated per (event, stream) as MAX + 1 inside the same
BEGIN IMMEDIATE transaction as the insert, so concurrent appenders on one
stream always produce 1..n with no gaps and no duplicates.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Iterable, Optional

from trench.exceptions import NotFoundError
from trench.state.database import Database, ident, utc_now
from trench.state.models import LogLine, from_row

logger = logging.getLogger(__name__)


class LogStreamStore:
    """Append and read event output. Callers append per line or per small batch
    and never hold a transaction open while their process runs.

    >>> from trench.state.store import StateStore
    >>> store = StateStore(":memory:")
    >>> repo = store.repos.register("app", "/repos/app")
    >>> ev = store.events.record(repo, event_type="build_started")
    >>> store.logs.append(ev.id, "stdout", "compiling").line_number
    1
    """

    def __init__(self, db: Database):
        self.db = db

    def append(self, event_id: Any, stream: str, text: str) -> LogLine:
        """Append one line to (event, stream) with the next line number.

        Raises:
            NotFoundError: if the event does not exist
        """
        return self.append_many(event_id, stream, [text])[0]

    def append_many(self, event_id: Any, stream: str, lines: Iterable[str]) -> list[LogLine]:
        """Append several lines with consecutive numbers in one transaction."""
        if not stream:
            raise ValueError("stream is required")
        ev_id = ident(event_id)
        lines = list(lines)
        if not lines:
            return []
        now = utc_now()

        with self.db._writer() as conn:
            if conn.execute("SELECT 1 FROM events WHERE id = ?", (ev_id,)).fetchone() is None:
                raise NotFoundError("event", ev_id)
            last = conn.execute(
                "SELECT COALESCE(MAX(line_number), 0) FROM logs WHERE event_id = ? AND stream = ?",
                (ev_id, stream),
            ).fetchone()[0]
            conn.executemany(
                """INSERT INTO logs (event_id, stream, line, line_number, created_at)
                   VALUES (?, ?, ?, ?, ?)""",
                [(ev_id, stream, text, last + i, now) for i, text in enumerate(lines, start=1)],
            )
            rows = conn.execute(
                """SELECT * FROM logs
                   WHERE event_id = ? AND stream = ? AND line_number > ?
                   ORDER BY line_number ASC""",
                (ev_id, stream, last),
            ).fetchall()

        return [from_row(LogLine, row) for row in rows]

    def read(self, event_id: Any, stream: Optional[str] = None) -> list[LogLine]:
        """Lines of an event ordered by line number, optionally from one stream.

        Stateless: call again any time to re-read. An event without lines
        (or an unknown event) yields an empty list.
        """
        ev_id = ident(event_id)
        with self.db._reader() as conn:
            if stream is None:
                rows = conn.execute(
                    """SELECT * FROM logs WHERE event_id = ?
                       ORDER BY line_number ASC, stream ASC, id ASC""",
                    (ev_id,),
                ).fetchall()
            else:
                rows = conn.execute(
                    """SELECT * FROM logs WHERE event_id = ? AND stream = ?
                       ORDER BY line_number ASC""",
                    (ev_id, stream),
                ).fetchall()
        return [from_row(LogLine, row) for row in rows]

    def prune(self, older_than_days: int) -> int:
        """Delete all log lines of events created more than older_than_days ago.

        Whole events are pruned at once, never single lines, so surviving
        streams keep their 1..n numbering. Events themselves are kept.
        Returns the number of lines deleted.

        >>> from trench.state.store import StateStore
        >>> StateStore(":memory:").logs.prune(30)
        0
        """
        if older_than_days < 0:
            raise ValueError("older_than_days must be >= 0")
        cutoff = (datetime.now(timezone.utc) - timedelta(days=older_than_days)).isoformat()
        with self.db._writer() as conn:
            cursor = conn.execute(
                """DELETE FROM logs WHERE event_id IN (
                       SELECT id FROM events WHERE created_at < ?
                   )""",
                (cutoff,),
            )
            deleted = cursor.rowcount

        if deleted:
            logger.info("Pruned %d log lines from events before %s", deleted, cutoff)
        return deleted
