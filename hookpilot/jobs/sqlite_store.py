"""SQLite-backed job store for admission state that survives process restarts."""

import json
import sqlite3
from datetime import datetime
from pathlib import Path
from typing import Any

from hookpilot.jobs.store import JobStore, T, Transition
from hookpilot.jobs.types import JobRecord, JobStatus


def prepare_db_path(db_path: str) -> Path:
    """Create parent directories for file-backed SQLite paths."""
    path = Path(db_path)
    if str(path) != ":memory:":
        path.parent.mkdir(parents=True, exist_ok=True)
    return path


def init_job_db(db_path: str) -> None:
    """
    Create the jobs table and index when absent.

    Args:
        db_path: SQLite file path.
    Side effects:
        Creates SQLite file, schema, and index.
    """
    path = prepare_db_path(db_path)
    with sqlite3.connect(path) as conn:
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS jobs (
                delivery_id TEXT PRIMARY KEY,
                status TEXT NOT NULL,
                created_at TEXT NOT NULL,
                updated_at TEXT NOT NULL,
                completed_at TEXT,
                error TEXT,
                attempts INTEGER NOT NULL DEFAULT 0,
                metadata_json TEXT
            )
            """
        )
        conn.execute("CREATE INDEX IF NOT EXISTS idx_jobs_created ON jobs(created_at)")


def _parse_ts(value: str | None) -> datetime | None:
    return datetime.fromisoformat(value) if value else None


def _row_to_record(row: sqlite3.Row) -> JobRecord:
    metadata_json = row["metadata_json"]
    return JobRecord(
        delivery_id=row["delivery_id"],
        status=JobStatus(row["status"]),
        created_at=datetime.fromisoformat(row["created_at"]),
        updated_at=datetime.fromisoformat(row["updated_at"]),
        completed_at=_parse_ts(row["completed_at"]),
        error=row["error"],
        attempts=int(row["attempts"]),
        metadata=json.loads(metadata_json) if metadata_json else None,
    )


def _record_params(record: JobRecord) -> tuple[Any, ...]:
    return (
        record.delivery_id,
        record.status.value,
        record.created_at.isoformat(),
        record.updated_at.isoformat(),
        record.completed_at.isoformat() if record.completed_at else None,
        record.error,
        record.attempts,
        json.dumps(record.metadata, ensure_ascii=True, default=str) if record.metadata is not None else None,
    )


class SqliteJobStore(JobStore):
    """Durable store; each transition runs inside a `BEGIN IMMEDIATE` write transaction."""

    def __init__(self, db_path: str) -> None:
        self.db_path = db_path
        init_job_db(db_path)

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path, timeout=30, isolation_level=None)
        conn.row_factory = sqlite3.Row
        return conn

    def transition(self, delivery_id: str, fn: Transition) -> T:
        conn = self._connect()
        try:
            conn.execute("BEGIN IMMEDIATE")
            row = conn.execute("SELECT * FROM jobs WHERE delivery_id = ?", (delivery_id,)).fetchone()
            updated, result = fn(_row_to_record(row) if row else None)
            if updated is not None:
                conn.execute(
                    """
                    INSERT OR REPLACE INTO jobs (
                        delivery_id, status, created_at, updated_at, completed_at, error, attempts, metadata_json
                    ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    _record_params(updated),
                )
            conn.execute("COMMIT")
            return result
        except Exception:
            if conn.in_transaction:
                conn.execute("ROLLBACK")
            raise
        finally:
            conn.close()

    def get(self, delivery_id: str) -> JobRecord | None:
        conn = self._connect()
        try:
            row = conn.execute("SELECT * FROM jobs WHERE delivery_id = ?", (delivery_id,)).fetchone()
        finally:
            conn.close()
        return _row_to_record(row) if row else None

    def purge_created_before(self, cutoff: datetime) -> int:
        conn = self._connect()
        try:
            cursor = conn.execute("DELETE FROM jobs WHERE created_at < ?", (cutoff.isoformat(),))
            return cursor.rowcount
        finally:
            conn.close()

    def all_records(self) -> list[JobRecord]:
        conn = self._connect()
        try:
            rows = conn.execute("SELECT * FROM jobs ORDER BY created_at").fetchall()
        finally:
            conn.close()
        return [_row_to_record(row) for row in rows]
