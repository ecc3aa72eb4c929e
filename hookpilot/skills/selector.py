"""Skill relevance scoring and ranked selection."""

import logging

from hookpilot.events.context import EventContext
from hookpilot.skills.registry import SkillDescriptor, SkillRegistry, TriggerKind, TriggerPredicate

logger = logging.getLogger(__name__)

EVENT_TYPE_SCORE = 2.0
LABEL_SCORE = 1.0
KEYWORD_SCORE = 0.5


def score_trigger(trigger: TriggerPredicate, context: EventContext) -> float:
    """
    Score one trigger predicate against an event.

    Args:
        trigger: Predicate to evaluate.
        context: Incoming event context.
    Returns:
        Non-negative score; 0 means no match.
    """
    values = [value.lower() for value in trigger.values]
    if trigger.kind == TriggerKind.EVENT_TYPE:
        return EVENT_TYPE_SCORE if context.kind.value in trigger.values else 0.0
    if trigger.kind == TriggerKind.LABEL:
        matching = [label for label in context.labels() if any(value in label.lower() for value in values)]
        return LABEL_SCORE * len(matching)
    if trigger.kind == TriggerKind.KEYWORD:
        text = context.free_text().lower()
        found = {value for value in values if value in text}
        return KEYWORD_SCORE * len(found)
    # TODO: score path_pattern triggers once events carry changed file paths.
    return 0.0


def score_skill(skill: SkillDescriptor, context: EventContext) -> float:
    """Return the summed trigger score for one skill (before priority weighting)."""
    return sum(score_trigger(trigger, context) for trigger in skill.triggers)


def select_skills(context: EventContext, registry: SkillRegistry, max_results: int = 3) -> list[SkillDescriptor]:
    """
    Rank skills by match score times priority and keep the top `max_results`.

    Skills ranking at or below zero are excluded. Ties keep registry order.
    """
    ranked: list[tuple[float, SkillDescriptor]] = []
    for skill in registry:
        match_score = score_skill(skill, context)
        ranking = match_score * skill.priority
        if ranking > 0:
            ranked.append((ranking, skill))
            logger.info("Skill '%s' matched with score %s (ranking %s).", skill.name, match_score, ranking)
    ranked.sort(key=lambda item: item[0], reverse=True)
    selected = [skill for _, skill in ranked[: max(max_results, 0)]]
    logger.info("Selected skills: %s", [skill.name for skill in selected])
    return selected
