"""
hookpilot/skills/registry.py
Static catalogue of skill packages and their trigger predicates.

Each skill declares the triggers that make it relevant to an event and a
priority weight, keeping the loaded instructions small and selection
deterministic.
"""

import json
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Iterator

from hookpilot.config import Config


class SkillRegistryError(Exception):
    """Raised for invalid or duplicate skill definitions."""


class TriggerKind(str, Enum):
    EVENT_TYPE = "event_type"
    LABEL = "label"
    KEYWORD = "keyword"
    PATH_PATTERN = "path_pattern"


@dataclass(frozen=True)
class TriggerPredicate:
    kind: TriggerKind
    values: tuple[str, ...]

    @classmethod
    def of(cls, kind: TriggerKind | str, value: str | list[str] | tuple[str, ...]) -> "TriggerPredicate":
        """Build a predicate from a single value or a list of values."""
        values = (value,) if isinstance(value, str) else tuple(value)
        return cls(kind=TriggerKind(kind), values=values)


@dataclass(frozen=True)
class SkillDescriptor:
    """Metadata for one skill package."""

    name: str
    description: str
    location: str
    triggers: tuple[TriggerPredicate, ...]
    priority: int


class SkillRegistry:
    """Ordered, read-only collection of skills keyed by unique name."""

    def __init__(self, skills: list[SkillDescriptor] | tuple[SkillDescriptor, ...]) -> None:
        seen: set[str] = set()
        for skill in skills:
            if skill.name in seen:
                raise SkillRegistryError(f"Duplicate skill name: {skill.name}")
            seen.add(skill.name)
        self._skills: tuple[SkillDescriptor, ...] = tuple(skills)

    def __iter__(self) -> Iterator[SkillDescriptor]:
        return iter(self._skills)

    def __len__(self) -> int:
        return len(self._skills)

    def get(self, name: str) -> SkillDescriptor | None:
        return next((skill for skill in self._skills if skill.name == name), None)

    def list_available(self) -> list[dict[str, Any]]:
        """Return name/description/priority summaries in registry order."""
        return [
            {"name": skill.name, "description": skill.description, "priority": skill.priority}
            for skill in self._skills
        ]

    @classmethod
    def from_manifest(cls, path: str | Path) -> "SkillRegistry":
        """
        Load a registry from a JSON manifest.

        The manifest is a list of objects with `name`, `description`,
        optional `location` (defaults to name), `priority`, and `triggers`
        (`[{"type": "label", "value": ["bug"]}, ...]`).

        Raises:
            SkillRegistryError: Malformed manifest or duplicate names.
        """
        try:
            raw = json.loads(Path(path).read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            raise SkillRegistryError(f"Could not read skill manifest {path}: {exc}") from exc
        if not isinstance(raw, list):
            raise SkillRegistryError("Skill manifest must be a JSON list.")
        skills: list[SkillDescriptor] = []
        for item in raw:
            try:
                skills.append(
                    SkillDescriptor(
                        name=str(item["name"]),
                        description=str(item.get("description", "")),
                        location=str(item.get("location") or item["name"]),
                        triggers=tuple(
                            TriggerPredicate.of(trigger["type"], trigger["value"])
                            for trigger in item.get("triggers", [])
                        ),
                        priority=int(item.get("priority", 0)),
                    )
                )
            except (KeyError, TypeError, ValueError, AttributeError) as exc:
                raise SkillRegistryError(f"Invalid skill entry: {item!r}") from exc
        return cls(skills)


DEFAULT_SKILLS: tuple[SkillDescriptor, ...] = (
    SkillDescriptor(
        name="bugfix-skill",
        description="Handles bug fix workflows: analyze, fix, and PR",
        location="bugfix-skill",
        triggers=(
            TriggerPredicate.of(TriggerKind.LABEL, ["bug", "bugfix", "fix"]),
            TriggerPredicate.of(TriggerKind.KEYWORD, ["bug", "error", "crash", "broken", "fix"]),
        ),
        priority=10,
    ),
    SkillDescriptor(
        name="code-review-skill",
        description="Reviews code changes and provides feedback",
        location="code-review-skill",
        triggers=(
            TriggerPredicate.of(TriggerKind.EVENT_TYPE, "pull_request"),
            TriggerPredicate.of(TriggerKind.LABEL, ["review", "needs-review"]),
        ),
        priority=8,
    ),
    SkillDescriptor(
        name="security-skill",
        description="Analyzes code for security vulnerabilities",
        location="security-skill",
        triggers=(
            TriggerPredicate.of(TriggerKind.LABEL, ["security", "vulnerability", "cve"]),
            TriggerPredicate.of(TriggerKind.KEYWORD, ["security", "vulnerability", "exploit", "cve"]),
        ),
        # Security findings outrank everything else.
        priority=15,
    ),
)


def default_registry() -> SkillRegistry:
    return SkillRegistry(DEFAULT_SKILLS)


def build_registry_from_config() -> SkillRegistry:
    """Load HOOKPILOT_SKILLS_MANIFEST when set, otherwise the built-in skills."""
    manifest = Config.get_skills_manifest()
    if manifest:
        return SkillRegistry.from_manifest(manifest)
    return default_registry()
