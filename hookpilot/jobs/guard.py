"""
hookpilot/jobs/guard.py
Idempotent job admission for webhook deliveries.
Exports: AdmissionGuard, build_guard_from_config

State machine per delivery id:
    (none)    -> running    first sighting, attempts = 1
    running   -> running    re-sighting is a duplicate, attempts unchanged
    succeeded               terminal, always a duplicate
    failed    -> running    only below max attempts and after the retry delay
    running   -> succeeded  mark_succeeded
    running   -> failed     mark_failed
"""

import logging
from dataclasses import replace
from datetime import datetime, timedelta, timezone
from typing import Any, Callable

from hookpilot.config import Config
from hookpilot.jobs.store import InMemoryJobStore, JobStore
from hookpilot.jobs.types import JobRecord, JobStatus

logger = logging.getLogger(__name__)

DEFAULT_TTL = timedelta(hours=24)
DEFAULT_MAX_ATTEMPTS = 3
DEFAULT_RETRY_DELAY = timedelta(seconds=5)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class AdmissionGuard:
    """Enforces at-most-one concurrent run and bounded retries per delivery id."""

    def __init__(
        self,
        store: JobStore | None = None,
        *,
        ttl: timedelta = DEFAULT_TTL,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        retry_delay: timedelta = DEFAULT_RETRY_DELAY,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        if max_attempts <= 0:
            raise ValueError("max_attempts must be a positive integer.")
        self.store = store if store is not None else InMemoryJobStore()
        self.ttl = ttl
        self.max_attempts = max_attempts
        self.retry_delay = retry_delay
        self._clock = clock

    def admit(self, delivery_id: str, metadata: dict[str, Any] | None = None) -> bool:
        """
        Decide whether a delivery must be skipped.

        Args:
            delivery_id: Unique delivery identifier.
            metadata: Optional opaque metadata stored on first sighting.
        Returns:
            True when the caller must skip (duplicate, in progress, or retries
            exhausted); False when the caller may proceed, in which case the
            record is now `running` with its attempt counter incremented.
        """
        now = self._clock()

        def _decide(record: JobRecord | None) -> tuple[JobRecord | None, tuple[bool, str]]:
            if record is None:
                created = JobRecord(
                    delivery_id=delivery_id,
                    status=JobStatus.RUNNING,
                    created_at=now,
                    updated_at=now,
                    attempts=1,
                    metadata=metadata,
                )
                return created, (False, "first sighting")
            if record.status == JobStatus.SUCCEEDED:
                return None, (True, "already succeeded")
            if record.status == JobStatus.RUNNING:
                return None, (True, "currently running")
            if record.status == JobStatus.FAILED:
                if record.attempts >= self.max_attempts:
                    return None, (True, f"exceeded max attempts ({self.max_attempts})")
                if now - record.updated_at < self.retry_delay:
                    return None, (True, "in retry cooldown")
            retried = replace(
                record,
                status=JobStatus.RUNNING,
                updated_at=now,
                attempts=record.attempts + 1,
            )
            return retried, (False, f"attempt {retried.attempts}")

        skip, reason = self.store.transition(delivery_id, _decide)
        if skip:
            logger.info("Skipping delivery %s: %s.", delivery_id, reason)
        else:
            logger.info("Admitted delivery %s (%s).", delivery_id, reason)
        return skip

    def mark_succeeded(self, delivery_id: str) -> bool:
        """Transition running -> succeeded. Returns whether the transition applied."""
        now = self._clock()

        def _complete(record: JobRecord | None) -> tuple[JobRecord | None, bool]:
            if record is None or record.status != JobStatus.RUNNING:
                return None, False
            return replace(record, status=JobStatus.SUCCEEDED, updated_at=now, completed_at=now), True

        applied = self.store.transition(delivery_id, _complete)
        if not applied:
            logger.warning("Ignoring completion for delivery %s: not running.", delivery_id)
        return applied

    def mark_failed(self, delivery_id: str, error: str | BaseException) -> bool:
        """Transition running -> failed, recording the error message."""
        now = self._clock()
        message = str(error)

        def _fail(record: JobRecord | None) -> tuple[JobRecord | None, bool]:
            if record is None or record.status != JobStatus.RUNNING:
                return None, False
            return replace(record, status=JobStatus.FAILED, updated_at=now, error=message), True

        applied = self.store.transition(delivery_id, _fail)
        if applied:
            logger.warning("Delivery %s failed: %s", delivery_id, message)
        else:
            logger.warning("Ignoring failure for delivery %s: not running.", delivery_id)
        return applied

    def status_of(self, delivery_id: str) -> JobRecord | None:
        """Return a snapshot of the job record, or None when not found."""
        return self.store.get(delivery_id)

    def sweep(self) -> int:
        """Remove records whose creation time is older than the TTL, regardless of status."""
        cutoff = self._clock() - self.ttl
        removed = self.store.purge_created_before(cutoff)
        logger.info("Job sweep removed %d record(s).", removed)
        return removed

    def stats(self) -> dict[str, int]:
        """Return total and per-status record counts."""
        counts = {"total": 0, **{status.value: 0 for status in JobStatus}}
        for record in self.store.all_records():
            counts["total"] += 1
            counts[record.status.value] += 1
        return counts


def build_guard_from_config() -> AdmissionGuard:
    """Build an AdmissionGuard using HOOKPILOT_JOB_* settings."""
    store: JobStore
    if Config.get_job_store_kind() == "sqlite":
        from hookpilot.jobs.sqlite_store import SqliteJobStore

        store = SqliteJobStore(Config.get_job_db_path())
    else:
        store = InMemoryJobStore()
    return AdmissionGuard(
        store,
        ttl=timedelta(seconds=Config.get_job_ttl_seconds()),
        max_attempts=Config.get_job_max_attempts(),
        retry_delay=timedelta(seconds=Config.get_job_retry_delay_seconds()),
    )
