"""
hookpilot/jobs/store.py
Job record stores with atomic read-transition-write semantics.
Exports: JobStore, Transition, InMemoryJobStore
"""

import threading
from dataclasses import replace
from datetime import datetime
from typing import Callable, TypeVar

from hookpilot.jobs.types import JobRecord

T = TypeVar("T")

# Receives the current record (or None) and returns (record to persist or None for no write, result).
Transition = Callable[[JobRecord | None], tuple[JobRecord | None, T]]


class JobStore:
    """Interface shared by in-memory and durable job stores."""

    def transition(self, delivery_id: str, fn: Transition) -> T:
        """Run `fn` against the current record and persist its output atomically."""
        raise NotImplementedError

    def get(self, delivery_id: str) -> JobRecord | None:
        raise NotImplementedError

    def purge_created_before(self, cutoff: datetime) -> int:
        """Delete records created before `cutoff` and return how many were removed."""
        raise NotImplementedError

    def all_records(self) -> list[JobRecord]:
        raise NotImplementedError


class InMemoryJobStore(JobStore):
    """Process-local store guarded by one lock per delivery id."""

    def __init__(self) -> None:
        self._records: dict[str, JobRecord] = {}
        self._locks: dict[str, threading.Lock] = {}
        self._registry_lock = threading.Lock()

    def _lock_for(self, delivery_id: str) -> threading.Lock:
        with self._registry_lock:
            lock = self._locks.get(delivery_id)
            if lock is None:
                lock = threading.Lock()
                self._locks[delivery_id] = lock
            return lock

    def transition(self, delivery_id: str, fn: Transition) -> T:
        while True:
            lock = self._lock_for(delivery_id)
            with lock:
                # A purge may have retired this lock while we waited on it.
                if self._locks.get(delivery_id) is not lock:
                    continue
                current = self._records.get(delivery_id)
                updated, result = fn(replace(current) if current else None)
                if updated is not None:
                    with self._registry_lock:
                        self._records[delivery_id] = updated
                elif current is None:
                    # No record exists for this id, so its lock is not kept.
                    with self._registry_lock:
                        self._locks.pop(delivery_id, None)
                return result

    def get(self, delivery_id: str) -> JobRecord | None:
        record = self._records.get(delivery_id)
        return replace(record) if record else None

    def purge_created_before(self, cutoff: datetime) -> int:
        with self._registry_lock:
            expired = [key for key, record in self._records.items() if record.created_at < cutoff]
        removed = 0
        for key in expired:
            lock = self._lock_for(key)
            with lock:
                record = self._records.get(key)
                if record is None or record.created_at >= cutoff:
                    continue
                with self._registry_lock:
                    del self._records[key]
                    self._locks.pop(key, None)
                removed += 1
        return removed

    def all_records(self) -> list[JobRecord]:
        with self._registry_lock:
            return [replace(record) for record in self._records.values()]
