"""Skill content loading from a directory-per-skill content store."""

import asyncio
import logging
from pathlib import Path

from hookpilot.skills.registry import SkillDescriptor

logger = logging.getLogger(__name__)

PRIMARY_DOCUMENT = "SKILL.md"
EXAMPLES_DOCUMENT = "examples.md"
MISSING_PRIMARY_PLACEHOLDER = "*SKILL.md not found*\n"
SKILL_SEPARATOR = "\n\n---\n\n"


class FileSkillStore:
    """Reads skill documents from `<root>/<location>/`."""

    def __init__(self, root: str | Path) -> None:
        self.root = Path(root)

    def _read(self, location: str, document: str) -> str:
        # Undecodable bytes become U+FFFD so a damaged document still loads.
        return (self.root / location / document).read_text(encoding="utf-8", errors="replace")

    async def fetch_primary(self, location: str) -> str:
        """Return the primary document; raises OSError when unavailable."""
        return await asyncio.to_thread(self._read, location, PRIMARY_DOCUMENT)

    async def fetch_optional(self, location: str) -> str | None:
        """Return the worked-examples document, or None when absent."""
        try:
            return await asyncio.to_thread(self._read, location, EXAMPLES_DOCUMENT)
        except OSError:
            return None


async def load_skill_content(skill: SkillDescriptor, store: FileSkillStore) -> str:
    """
    Render one skill into an instruction block.

    Args:
        skill: Skill to load.
        store: Content store holding the skill documents.
    Returns:
        Header, primary instructions (or a placeholder), and an optional
        examples section.
    """
    content = f"# Skill: {skill.name}\n\n> {skill.description}\n\n"
    try:
        content += await store.fetch_primary(skill.location)
    except OSError as exc:
        logger.warning("Could not load %s for skill %s: %s", PRIMARY_DOCUMENT, skill.name, exc)
        content += MISSING_PRIMARY_PLACEHOLDER
    examples = await store.fetch_optional(skill.location)
    if examples is not None:
        content += f"\n\n## Examples\n\n{examples}"
    return content


async def load_skill_block(skills: list[SkillDescriptor], store: FileSkillStore) -> str:
    """Load skills in selection order and join them with a separator."""
    contents = [await load_skill_content(skill, store) for skill in skills]
    return SKILL_SEPARATOR.join(contents)
