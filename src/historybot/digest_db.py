# digest_db.py
import os
import sqlite3
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable

DEFAULT_DB = Path(__file__).resolve().with_name("digests.db")
DB_PATH = Path(os.getenv("DIGEST_DB_PATH", str(DEFAULT_DB))).expanduser()


def init_db() -> None:
    """Create required tables if they don't exist."""
    DB_PATH.parent.mkdir(parents=True, exist_ok=True)
    with sqlite3.connect(DB_PATH) as conn:
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS digests (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                source TEXT NOT NULL,
                channel_ids TEXT NOT NULL,
                window_start TEXT NOT NULL,
                window_end TEXT NOT NULL,
                message_count INTEGER NOT NULL,
                objective TEXT,
                summary TEXT NOT NULL,
                created_at TEXT NOT NULL
            )
            """
        )
        conn.execute(
            "CREATE INDEX IF NOT EXISTS idx_digests_source ON digests(source, created_at)"
        )


def log_digest(
    *,
    source: str,
    channel_ids: Iterable[int],
    window_start: datetime,
    window_end: datetime,
    message_count: int,
    summary: str,
    objective: str | None = None,
) -> int:
    """Record a delivered digest and return its row id."""
    init_db()
    with sqlite3.connect(DB_PATH) as conn:
        cur = conn.execute(
            """
            INSERT INTO digests
            (source, channel_ids, window_start, window_end, message_count,
             objective, summary, created_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                source,
                ",".join(str(cid) for cid in channel_ids),
                window_start.isoformat(),
                window_end.isoformat(),
                message_count,
                objective,
                summary,
                datetime.now(tz=timezone.utc).isoformat(),
            ),
        )
        return int(cur.lastrowid)


def _row_to_dict(row: sqlite3.Row) -> dict:
    data = dict(row)
    data["channel_ids"] = [int(x) for x in data["channel_ids"].split(",") if x]
    return data


def get_digest(digest_id: int) -> dict | None:
    init_db()
    with sqlite3.connect(DB_PATH) as conn:
        conn.row_factory = sqlite3.Row
        row = conn.execute("SELECT * FROM digests WHERE id = ?", (digest_id,)).fetchone()
    return _row_to_dict(row) if row else None


def recent_digests(source: str | None = None, limit: int = 10) -> list[dict]:
    """Return the newest digests, optionally for one source."""
    init_db()
    with sqlite3.connect(DB_PATH) as conn:
        conn.row_factory = sqlite3.Row
        if source:
            rows = conn.execute(
                "SELECT * FROM digests WHERE source = ? ORDER BY id DESC LIMIT ?",
                (source, limit),
            ).fetchall()
        else:
            rows = conn.execute(
                "SELECT * FROM digests ORDER BY id DESC LIMIT ?", (limit,)
            ).fetchall()
    return [_row_to_dict(r) for r in rows]
