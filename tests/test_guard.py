"""
tests/test_guard.py
Unit tests for hookpilot/jobs: AdmissionGuard state machine, in-memory and SQLite stores.
"""

import threading
from datetime import datetime, timedelta, timezone

import pytest


class FakeClock:
    def __init__(self) -> None:
        self.now = datetime(2024, 1, 1, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def guard(clock):
    from hookpilot.jobs.guard import AdmissionGuard
    return AdmissionGuard(max_attempts=3, retry_delay=timedelta(seconds=5), ttl=timedelta(hours=1), clock=clock)


def test_first_sighting_is_admitted_and_running(guard):
    from hookpilot.jobs.types import JobStatus
    assert guard.admit("d1", {"event": "issues"}) is False
    record = guard.status_of("d1")
    assert record.status == JobStatus.RUNNING
    assert record.attempts == 1
    assert record.metadata == {"event": "issues"}


def test_running_delivery_is_skipped_without_counting_attempts(guard):
    guard.admit("d1")
    assert guard.admit("d1") is True
    assert guard.status_of("d1").attempts == 1


def test_succeeded_delivery_is_always_skipped(guard, clock):
    from hookpilot.jobs.types import JobStatus
    guard.admit("d1")
    assert guard.mark_succeeded("d1") is True
    clock.advance(minutes=10)
    assert guard.admit("d1") is True
    record = guard.status_of("d1")
    assert record.status == JobStatus.SUCCEEDED
    assert record.completed_at == clock.now - timedelta(minutes=10)


def test_failed_delivery_waits_for_retry_delay(guard, clock):
    guard.admit("d1")
    guard.mark_failed("d1", "boom")
    clock.advance(seconds=2)
    assert guard.admit("d1") is True
    clock.advance(seconds=3)
    assert guard.admit("d1") is False
    assert guard.status_of("d1").attempts == 2


def test_failed_delivery_stops_after_max_attempts(guard, clock):
    from hookpilot.jobs.types import JobStatus
    for _ in range(3):
        assert guard.admit("d1") is False
        guard.mark_failed("d1", RuntimeError("boom"))
        clock.advance(seconds=10)
    assert guard.admit("d1") is True
    record = guard.status_of("d1")
    assert record.status == JobStatus.FAILED
    assert record.attempts == 3
    assert record.error == "boom"


def test_mark_transitions_ignore_unknown_or_non_running(guard):
    assert guard.mark_succeeded("missing") is False
    assert guard.mark_failed("missing", "boom") is False
    guard.admit("d1")
    guard.mark_succeeded("d1")
    assert guard.mark_failed("d1", "late failure") is False
    assert guard.status_of("d1").error is None


def test_unknown_ids_leave_no_lock_behind(clock):
    from hookpilot.jobs.guard import AdmissionGuard
    from hookpilot.jobs.store import InMemoryJobStore

    store = InMemoryJobStore()
    guard = AdmissionGuard(store, clock=clock)
    for index in range(50):
        assert guard.mark_succeeded(f"missing-{index}") is False
        assert guard.mark_failed(f"missing-{index}", "boom") is False
    assert guard.status_of("missing-0") is None
    assert store._locks == {}

    guard.admit("d1")
    guard.mark_succeeded("d1")
    assert set(store._locks) == {"d1"}


def test_sweep_removes_records_older_than_ttl(guard, clock):
    guard.admit("old")
    guard.mark_succeeded("old")
    clock.advance(minutes=90)
    guard.admit("fresh")
    assert guard.sweep() == 1
    assert guard.status_of("old") is None
    assert guard.status_of("fresh") is not None
    # A swept delivery is treated as never seen.
    assert guard.admit("old") is False


def test_stats_counts_by_status(guard):
    guard.admit("a")
    guard.admit("b")
    guard.admit("c")
    guard.mark_succeeded("a")
    guard.mark_failed("b", "boom")
    assert guard.stats() == {"total": 3, "pending": 0, "running": 1, "succeeded": 1, "failed": 1}


def test_status_of_returns_snapshot(guard):
    guard.admit("d1")
    snapshot = guard.status_of("d1")
    snapshot.attempts = 99
    assert guard.status_of("d1").attempts == 1


def test_invalid_max_attempts_rejected():
    from hookpilot.jobs.guard import AdmissionGuard
    with pytest.raises(ValueError):
        AdmissionGuard(max_attempts=0)


def test_concurrent_admission_allows_exactly_one(guard):
    barrier = threading.Barrier(8)
    results: list[bool] = []
    lock = threading.Lock()

    def _worker():
        barrier.wait()
        skip = guard.admit("shared")
        with lock:
            results.append(skip)

    threads = [threading.Thread(target=_worker) for _ in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert results.count(False) == 1
    assert results.count(True) == 7


def test_sqlite_store_persists_across_instances(tmp_path, clock):
    from hookpilot.jobs.guard import AdmissionGuard
    from hookpilot.jobs.sqlite_store import SqliteJobStore
    from hookpilot.jobs.types import JobStatus

    db_path = str(tmp_path / "nested" / "jobs.db")
    first = AdmissionGuard(SqliteJobStore(db_path), clock=clock)
    assert first.admit("d1", {"repository": "acme/app"}) is False
    first.mark_failed("d1", "boom")

    second = AdmissionGuard(SqliteJobStore(db_path), clock=clock, retry_delay=timedelta(0))
    record = second.status_of("d1")
    assert record.status == JobStatus.FAILED
    assert record.error == "boom"
    assert record.metadata == {"repository": "acme/app"}
    assert second.admit("d1") is False
    assert second.status_of("d1").attempts == 2


def test_sqlite_store_sweep_and_stats(tmp_path, clock):
    from hookpilot.jobs.guard import AdmissionGuard
    from hookpilot.jobs.sqlite_store import SqliteJobStore

    guard = AdmissionGuard(SqliteJobStore(str(tmp_path / "jobs.db")), ttl=timedelta(hours=1), clock=clock)
    guard.admit("old")
    clock.advance(hours=2)
    guard.admit("fresh")
    guard.mark_succeeded("fresh")
    assert guard.sweep() == 1
    assert guard.stats()["total"] == 1
    assert guard.stats()["succeeded"] == 1


def test_build_guard_from_config_uses_sqlite(monkeypatch, tmp_path):
    monkeypatch.setenv("HOOKPILOT_JOB_STORE", "sqlite")
    monkeypatch.setenv("HOOKPILOT_JOB_DB_PATH", str(tmp_path / "jobs.db"))
    monkeypatch.setenv("HOOKPILOT_JOB_MAX_ATTEMPTS", "5")
    from hookpilot.jobs.guard import build_guard_from_config
    from hookpilot.jobs.sqlite_store import SqliteJobStore

    guard = build_guard_from_config()
    assert isinstance(guard.store, SqliteJobStore)
    assert guard.max_attempts == 5
