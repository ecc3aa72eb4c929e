"""GitHub webhook payload parsing into immutable event contexts."""

from dataclasses import dataclass
from enum import Enum
from typing import Any


class EventKind(str, Enum):
    """GitHub event kinds (X-GitHub-Event header values) that trigger agent runs."""

    ISSUES = "issues"
    PULL_REQUEST = "pull_request"
    ISSUE_COMMENT = "issue_comment"
    PUSH = "push"


SUPPORTED_EVENT_KINDS: list[str] = [kind.value for kind in EventKind]


@dataclass(frozen=True)
class RepositoryRef:
    owner: str
    name: str
    full_name: str


@dataclass(frozen=True)
class IssueFacts:
    number: int
    title: str
    body: str
    labels: tuple[str, ...] = ()


@dataclass(frozen=True)
class PullRequestFacts:
    number: int
    title: str
    body: str
    head_branch: str
    base_branch: str


@dataclass(frozen=True)
class EventContext:
    """Normalized, read-only description of one inbound event."""

    kind: EventKind
    action: str
    repository: RepositoryRef
    sender: str
    delivery_id: str
    issue: IssueFacts | None = None
    pull_request: PullRequestFacts | None = None

    def labels(self) -> tuple[str, ...]:
        """Return issue labels, or an empty tuple when no issue is attached."""
        return self.issue.labels if self.issue else ()

    def free_text(self) -> str:
        """Return all free-text fields joined by a single space."""
        parts = [
            self.issue.title if self.issue else "",
            self.issue.body if self.issue else "",
            self.pull_request.title if self.pull_request else "",
            self.pull_request.body if self.pull_request else "",
        ]
        return " ".join(parts)


def safe_dict(value: Any) -> dict[str, Any]:
    """Return dict value or empty dict."""
    return value if isinstance(value, dict) else {}


def _safe_str(value: Any) -> str:
    return value if isinstance(value, str) else ""


def _safe_int(value: Any) -> int:
    try:
        return int(value or 0)
    except (TypeError, ValueError):
        return 0


def parse_event_kind(raw: str) -> EventKind:
    """
    Map an X-GitHub-Event header value to an EventKind.

    Raises:
        ValueError: For unsupported event kinds.
    """
    try:
        return EventKind(raw.strip().lower())
    except ValueError as exc:
        raise ValueError(f"Unsupported event kind: {raw!r}") from exc


def _parse_issue(issue: dict[str, Any]) -> IssueFacts:
    labels_raw = issue.get("labels", [])
    labels: list[str] = []
    if isinstance(labels_raw, list):
        for label in labels_raw:
            name = label.get("name") if isinstance(label, dict) else label
            if isinstance(name, str) and name:
                labels.append(name)
    return IssueFacts(
        number=_safe_int(issue.get("number")),
        title=_safe_str(issue.get("title")),
        body=_safe_str(issue.get("body")),
        labels=tuple(labels),
    )


def _parse_pull_request(pr: dict[str, Any]) -> PullRequestFacts:
    head = safe_dict(pr.get("head"))
    base = safe_dict(pr.get("base"))
    return PullRequestFacts(
        number=_safe_int(pr.get("number")),
        title=_safe_str(pr.get("title")),
        body=_safe_str(pr.get("body")),
        head_branch=_safe_str(head.get("ref")),
        base_branch=_safe_str(base.get("ref")),
    )


def parse_github_payload(event_kind: str | EventKind, payload: dict[str, Any], delivery_id: str) -> EventContext:
    """Normalize a GitHub webhook payload into a stable EventContext."""
    kind = event_kind if isinstance(event_kind, EventKind) else parse_event_kind(event_kind)
    repository = safe_dict(payload.get("repository"))
    owner = safe_dict(repository.get("owner"))
    sender = safe_dict(payload.get("sender"))
    issue = safe_dict(payload.get("issue"))
    pr = safe_dict(payload.get("pull_request"))
    name = _safe_str(repository.get("name"))
    owner_login = _safe_str(owner.get("login"))
    return EventContext(
        kind=kind,
        action=_safe_str(payload.get("action")),
        repository=RepositoryRef(
            owner=owner_login,
            name=name,
            full_name=_safe_str(repository.get("full_name")) or (f"{owner_login}/{name}" if owner_login and name else ""),
        ),
        sender=_safe_str(sender.get("login")),
        delivery_id=delivery_id,
        issue=_parse_issue(issue) if issue else None,
        pull_request=_parse_pull_request(pr) if pr else None,
    )
