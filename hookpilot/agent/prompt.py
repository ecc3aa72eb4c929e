"""System framing and task message builders for the agent loop."""

from hookpilot.events.context import EventContext, EventKind

BASE_SYSTEM_PROMPT = (
    "# Agent Workflow Engine\n\n"
    "You are the decision-making agent of a repository automation service. You decide what to do "
    "and which tools to call; tools perform every concrete action.\n\n"
    "## How you work\n"
    "1. Understand the event and the goal.\n"
    "2. Check which skills are loaded below and which tools are available.\n"
    "3. Plan the minimal set of steps needed.\n"
    "4. Call tools, following the guidance in the loaded skills.\n"
    "5. Check each tool result. A result starting with `Error:` means the call failed; adapt or choose "
    "another approach.\n"
    "6. When the task is complete, reply with a short summary and no tool calls.\n\n"
    "## Constraints\n"
    "- Only use tools that are explicitly available to you.\n"
    "- Follow the \"Do NOT\" sections of loaded skills strictly.\n"
    "- If information is missing, ask for clarification in a comment instead of guessing.\n"
    "- Never change code outside the scope of the task.\n"
)

CONTEXT_PROMPTS: dict[EventKind, str] = {
    EventKind.ISSUES: (
        "## GitHub Issue Context\n"
        "You are responding to a GitHub issue. Decide whether it is a bug report, feature request, or "
        "question, what information is missing, and what the labels imply.\n"
    ),
    EventKind.PULL_REQUEST: (
        "## GitHub Pull Request Context\n"
        "You are responding to a pull request. Consider what changes are proposed, whether they follow "
        "repository conventions, and whether they are ready for review.\n"
    ),
    EventKind.ISSUE_COMMENT: (
        "## GitHub Comment Context\n"
        "You are responding to a comment on an issue or pull request. Check whether it follows up on an "
        "earlier action or changes the task scope.\n"
    ),
}

NO_DESCRIPTION = "No description provided."


def build_system_prompt(kind: EventKind, skill_block: str) -> str:
    """Combine base framing, the per-event context section, and loaded skills."""
    sections = [BASE_SYSTEM_PROMPT]
    context_prompt = CONTEXT_PROMPTS.get(kind)
    if context_prompt:
        sections.append(context_prompt)
    sections.append(f"## Loaded Skills\n\n{skill_block}" if skill_block else "## Loaded Skills\n\nNone.")
    return "\n".join(sections)


def build_task_message(context: EventContext) -> str:
    """Render an event into the single task-framing turn."""
    lines = [
        f"# New {context.kind.value} Event",
        "",
        f"**Repository:** {context.repository.full_name}",
        f"**Action:** {context.action}",
        f"**Triggered by:** {context.sender}",
        "",
    ]
    if context.issue:
        issue = context.issue
        lines += [
            f"## Issue #{issue.number}",
            f"**Title:** {issue.title}",
            f"**Labels:** {', '.join(issue.labels) or 'none'}",
            "",
            "### Description",
            issue.body or NO_DESCRIPTION,
            "",
        ]
    if context.pull_request:
        pr = context.pull_request
        lines += [
            f"## Pull Request #{pr.number}",
            f"**Title:** {pr.title}",
            f"**Branch:** {pr.head_branch} -> {pr.base_branch}",
            "",
            "### Description",
            pr.body or NO_DESCRIPTION,
            "",
        ]
    lines += ["---", "", "Please analyze this event and take appropriate action based on your loaded skills."]
    return "\n".join(lines)
