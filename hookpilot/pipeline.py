"""
hookpilot/pipeline.py
Background handoff: run the agent for an admitted delivery and finalise its job record.
Exports: run_github_agent(context) -> AgentRunResult, process_delivery(context, guard=..., runner=...)
"""

import asyncio
import logging
from typing import Awaitable, Callable

from hookpilot.agent.runner import build_agent_runtime, run_agent
from hookpilot.events.context import EventContext
from hookpilot.jobs.guard import AdmissionGuard
from hookpilot.shared import AgentRunResult

logger = logging.getLogger(__name__)

AgentRunner = Callable[[EventContext], Awaitable[AgentRunResult]]


async def run_github_agent(context: EventContext) -> AgentRunResult:
    """
    Run the agent loop for a GitHub event with the configured runtime.

    Raises:
        RuntimeError: If required env vars (model key, limits) are missing or invalid.
    """
    runtime = build_agent_runtime()
    return await run_agent(context, runtime)


async def process_delivery(
    context: EventContext,
    *,
    guard: AdmissionGuard,
    runner: AgentRunner = run_github_agent,
) -> AgentRunResult:
    """
    Run an admitted delivery and record its outcome on the guard.

    Args:
        context: Parsed event context; its delivery_id must already be admitted.
        guard: Admission guard holding the running job record.
        runner: Coroutine that executes the agent for the context.
    Returns:
        The run result. Exceptions from the runner are converted into a
        failed result and never re-raised.
    """
    delivery_id = context.delivery_id
    try:
        result = await runner(context)
    except Exception as exc:
        logger.exception("Agent run raised for delivery %s.", delivery_id)
        result = AgentRunResult(success=False, error=str(exc) or exc.__class__.__name__)

    if result.success:
        await asyncio.to_thread(guard.mark_succeeded, delivery_id)
        logger.info(
            "Delivery %s succeeded after %d iteration(s)%s.",
            delivery_id,
            result.iterations,
            " (budget exhausted)" if result.budget_exhausted else "",
        )
    else:
        await asyncio.to_thread(guard.mark_failed, delivery_id, result.error or "Agent run failed.")
    return result
