"""Shared pytest fixtures for the HookPilot test suite."""

import asyncio

import pytest

from hookpilot.events.context import EventContext, EventKind, IssueFacts, PullRequestFacts, RepositoryRef


@pytest.fixture(autouse=True)
def _isolate_side_effects(monkeypatch, tmp_path):
    """Disable dashboard streaming and confine filesystem tools to a temp workspace."""
    monkeypatch.setenv("HOOKPILOT_STREAM_ENABLED", "false")
    monkeypatch.setenv("HOOKPILOT_WORKSPACE_DIR", str(tmp_path / "workspace"))
    monkeypatch.delenv("GITHUB_WEBHOOK_SECRET", raising=False)
    monkeypatch.delenv("HOOKPILOT_HTTP_ALLOWED_HOSTS", raising=False)
    monkeypatch.delenv("HOOKPILOT_SKILLS_MANIFEST", raising=False)


def _build_issue_context(
    title: str = "Login crash",
    body: str = "",
    labels: tuple[str, ...] = ("bug",),
    delivery_id: str = "delivery-1",
    action: str = "opened",
) -> EventContext:
    return EventContext(
        kind=EventKind.ISSUES,
        action=action,
        repository=RepositoryRef(owner="acme", name="app", full_name="acme/app"),
        sender="octocat",
        delivery_id=delivery_id,
        issue=IssueFacts(number=7, title=title, body=body, labels=labels),
    )


def _build_pr_context(title: str = "Refactor auth", body: str = "", delivery_id: str = "delivery-pr") -> EventContext:
    return EventContext(
        kind=EventKind.PULL_REQUEST,
        action="opened",
        repository=RepositoryRef(owner="acme", name="app", full_name="acme/app"),
        sender="octocat",
        delivery_id=delivery_id,
        pull_request=PullRequestFacts(number=12, title=title, body=body, head_branch="feature", base_branch="main"),
    )


@pytest.fixture
def issue_context() -> EventContext:
    return _build_issue_context()


@pytest.fixture
def pr_context() -> EventContext:
    return _build_pr_context()


@pytest.fixture
def make_issue_context():
    """Factory for issue contexts with overridable fields."""
    return _build_issue_context


@pytest.fixture
def make_pr_context():
    """Factory for pull request contexts with overridable fields."""
    return _build_pr_context


async def _await_recording_loop_gaps(awaitable, interval: float = 0.02):
    loop = asyncio.get_running_loop()
    gaps: list[float] = []
    done = asyncio.Event()

    async def _tick() -> None:
        last = loop.time()
        while not done.is_set():
            await asyncio.sleep(interval)
            now = loop.time()
            gaps.append(now - last)
            last = now

    ticker = asyncio.create_task(_tick())
    try:
        result = await awaitable
    finally:
        done.set()
        await ticker
    return result, gaps


@pytest.fixture
def record_loop_gaps():
    """Await a coroutine and return (result, gaps between event-loop ticks observed meanwhile)."""
    return _await_recording_loop_gaps
