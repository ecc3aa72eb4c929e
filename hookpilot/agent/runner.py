"""
hookpilot/agent/runner.py
Agent loop: select skills, frame the task, and drive the model through tool calls.
Exports: AgentRuntime, run_agent, build_agent_runtime
"""

import asyncio
import logging
from dataclasses import dataclass

from hookpilot.agent.conversation import Conversation
from hookpilot.agent.prompt import build_system_prompt, build_task_message
from hookpilot.agent.provider import ModelProvider, ModelResponse, StopReason, build_provider_from_config
from hookpilot.config import Config
from hookpilot.events.context import EventContext
from hookpilot.shared import DEFAULT_MAX_ITERATIONS, DEFAULT_MAX_SKILLS, AgentRunResult
from hookpilot.skills.loader import FileSkillStore, load_skill_block
from hookpilot.skills.registry import SkillRegistry, build_registry_from_config
from hookpilot.skills.selector import select_skills
from hookpilot.stream import emit, make_event
from hookpilot.tools.dispatcher import ToolDispatcher
from hookpilot.tools.tool_registry import build_default_dispatcher

logger = logging.getLogger(__name__)

TASK_COMPLETED_STEP = "Task completed"
BUDGET_EXHAUSTED_STEP = "Max iterations reached"


@dataclass
class AgentRuntime:
    """Collaborators and limits for one or more agent runs."""

    provider: ModelProvider
    dispatcher: ToolDispatcher
    registry: SkillRegistry
    skill_store: FileSkillStore
    max_iterations: int = DEFAULT_MAX_ITERATIONS
    max_skills: int = DEFAULT_MAX_SKILLS
    model_timeout_seconds: float | None = None


async def _call_model(
    runtime: AgentRuntime,
    system: str,
    conversation: Conversation,
    tools: list[dict],
) -> ModelResponse:
    call = runtime.provider.complete(system, conversation.turns, tools)
    if not runtime.model_timeout_seconds:
        return await call
    try:
        return await asyncio.wait_for(call, timeout=runtime.model_timeout_seconds)
    except asyncio.TimeoutError as exc:
        raise RuntimeError(f"Model call timed out after {runtime.model_timeout_seconds}s") from exc


async def run_agent(context: EventContext, runtime: AgentRuntime) -> AgentRunResult:
    """
    Run the agent loop for one event.

    Args:
        context: Parsed event context.
        runtime: Provider, tools, skills, and limits.
    Returns:
        AgentRunResult. Selection, loading, and provider failures yield
        success=False with the steps recorded so far; tool failures are fed
        back to the model and never abort the run. Exhausting the iteration
        budget still reports success=True with budget_exhausted=True.
    """
    delivery_id = context.delivery_id
    steps: list[str] = []
    iteration = 0
    logger.info(
        "Agent run start: delivery=%s kind=%s action=%s repo=%s",
        delivery_id,
        context.kind.value,
        context.action,
        context.repository.full_name,
    )
    await emit(make_event("agent_start", delivery_id, content=f"{context.kind.value}:{context.action}"))

    try:
        selected = select_skills(context, runtime.registry, runtime.max_skills)
        steps.append(f"Selected {len(selected)} skills: {', '.join(skill.name for skill in selected) or 'none'}")

        skill_block = await load_skill_block(selected, runtime.skill_store)
        steps.append("Loaded skill content")

        system = build_system_prompt(context.kind, skill_block)
        conversation = Conversation()
        conversation.add_task(build_task_message(context))
        tools = runtime.dispatcher.schemas()

        completed = False
        final_text = ""
        while iteration < runtime.max_iterations:
            iteration += 1
            logger.info("Agent iteration %d/%d (delivery=%s)", iteration, runtime.max_iterations, delivery_id)
            response = await _call_model(runtime, system, conversation, tools)
            conversation.add_model_response(response.text, response.tool_calls)
            if response.text:
                final_text = response.text
            await emit(make_event("model_response", delivery_id, iteration=iteration, content=response.text))

            if response.stop_reason == StopReason.STOP and not response.tool_calls:
                steps.append(TASK_COMPLETED_STEP)
                completed = True
                break

            # Sequential dispatch keeps tool results in request order.
            for call in response.tool_calls:
                steps.append(f"Executed tool: {call.name}")
                await emit(make_event("tool_call", delivery_id, iteration=iteration, tool_name=call.name, call_id=call.id))
                result = await runtime.dispatcher.dispatch(call)
                conversation.add_tool_result(result)
                await emit(
                    make_event(
                        "tool_result",
                        delivery_id,
                        iteration=iteration,
                        tool_name=call.name,
                        call_id=call.id,
                        content=result.content[:500],
                        is_error=result.is_error,
                    )
                )

        if not completed:
            logger.warning("Agent reached max iterations (%d) for delivery %s.", runtime.max_iterations, delivery_id)
            steps.append(BUDGET_EXHAUSTED_STEP)

        await emit(make_event("agent_end", delivery_id, iteration=iteration, content=final_text[:500]))
        return AgentRunResult(
            success=True,
            steps=steps,
            budget_exhausted=not completed,
            iterations=iteration,
            final_text=final_text,
        )
    except Exception as exc:
        logger.exception("Agent run failed for delivery %s.", delivery_id)
        message = str(exc) or exc.__class__.__name__
        await emit(make_event("agent_error", delivery_id, iteration=iteration, content=message, is_error=True))
        return AgentRunResult(success=False, steps=steps, error=message, iterations=iteration)


def build_agent_runtime() -> AgentRuntime:
    """Build the default runtime from HOOKPILOT_* settings."""
    return AgentRuntime(
        provider=build_provider_from_config(),
        dispatcher=build_default_dispatcher(timeout_seconds=Config.get_tool_timeout_seconds()),
        registry=build_registry_from_config(),
        skill_store=FileSkillStore(Config.get_skills_dir()),
        max_iterations=Config.get_max_iterations(),
        max_skills=Config.get_max_skills(),
        model_timeout_seconds=Config.get_model_timeout_seconds(),
    )
