"""
tests/test_runner.py
Unit tests for hookpilot/agent/runner.py: the agent loop.
"""

import asyncio

import pytest


class ScriptedProvider:
    """Returns queued responses and records the turns it was shown."""

    def __init__(self, responses):
        self.responses = list(responses)
        self.calls = []

    async def complete(self, system, turns, tools):
        self.calls.append({"system": system, "turns": turns, "tools": tools})
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


def _response(text="", calls=(), stop="stop"):
    from hookpilot.agent.provider import ModelResponse, StopReason
    return ModelResponse(text=text, tool_calls=tuple(calls), stop_reason=StopReason(stop))


def _call(call_id, name, **arguments):
    from hookpilot.agent.conversation import ToolCall
    return ToolCall(id=call_id, name=name, arguments=arguments)


def _delayed(label, delay):
    async def _handler(args):
        await asyncio.sleep(delay)
        return f"result {label}"
    return _handler


def _runtime(provider, tmp_path, *, handlers=None, max_iterations=10):
    from hookpilot.agent.runner import AgentRuntime
    from hookpilot.skills.loader import FileSkillStore
    from hookpilot.skills.registry import default_registry
    from hookpilot.tools.dispatcher import ToolDispatcher, ToolSpec

    (tmp_path / "bugfix-skill").mkdir(exist_ok=True)
    (tmp_path / "bugfix-skill" / "SKILL.md").write_text("Reproduce, fix, open a PR.", encoding="utf-8")
    dispatcher = ToolDispatcher()
    for name, handler in (handlers or {}).items():
        dispatcher.register(ToolSpec(name=name, description=name, parameters={"type": "object"}, handler=handler))
    return AgentRuntime(
        provider=provider,
        dispatcher=dispatcher,
        registry=default_registry(),
        skill_store=FileSkillStore(tmp_path),
        max_iterations=max_iterations,
    )


@pytest.mark.asyncio
async def test_natural_stop_after_first_response(tmp_path, make_issue_context):
    from hookpilot.agent.runner import run_agent

    provider = ScriptedProvider([_response("Nothing to do.")])
    result = await run_agent(make_issue_context(), _runtime(provider, tmp_path))

    assert result.success is True
    assert result.budget_exhausted is False
    assert result.iterations == 1
    assert result.final_text == "Nothing to do."
    assert result.steps == ["Selected 1 skills: bugfix-skill", "Loaded skill content", "Task completed"]
    first_call = provider.calls[0]
    assert "Reproduce, fix, open a PR." in first_call["system"]
    assert len(first_call["turns"]) == 1
    assert "Login crash" in first_call["turns"][0].text


@pytest.mark.asyncio
async def test_tool_results_follow_request_order(tmp_path, make_issue_context):
    from hookpilot.agent.conversation import TurnKind
    from hookpilot.agent.runner import run_agent

    handlers = {"A": _delayed("A", 0.03), "B": _delayed("B", 0.02), "C": _delayed("C", 0.0)}
    provider = ScriptedProvider(
        [
            _response(calls=[_call("1", "A"), _call("2", "B"), _call("3", "C")], stop="tool_calls"),
            _response("Done."),
        ]
    )
    result = await run_agent(make_issue_context(), _runtime(provider, tmp_path, handlers=handlers))

    assert result.success is True
    assert result.steps[2:5] == ["Executed tool: A", "Executed tool: B", "Executed tool: C"]
    second_turns = provider.calls[1]["turns"]
    assert [turn.kind for turn in second_turns] == [
        TurnKind.TASK,
        TurnKind.MODEL,
        TurnKind.TOOL_RESULT,
        TurnKind.TOOL_RESULT,
        TurnKind.TOOL_RESULT,
    ]
    assert [turn.result.call_id for turn in second_turns[2:]] == ["1", "2", "3"]
    assert second_turns[4].result.content == "result C"


@pytest.mark.asyncio
async def test_budget_exhaustion_stops_exactly_at_cap(tmp_path, make_issue_context):
    from hookpilot.agent.runner import run_agent

    handlers = {"A": _delayed("A", 0)}
    provider = ScriptedProvider([_response(calls=[_call(str(i), "A")], stop="tool_calls") for i in range(5)])
    result = await run_agent(make_issue_context(), _runtime(provider, tmp_path, handlers=handlers, max_iterations=3))

    assert result.success is True
    assert result.budget_exhausted is True
    assert result.iterations == 3
    assert len(provider.calls) == 3
    assert result.steps[-1] == "Max iterations reached"
    assert result.steps.count("Executed tool: A") == 3


@pytest.mark.asyncio
async def test_unknown_tool_is_reported_to_model_and_run_continues(tmp_path, make_issue_context):
    from hookpilot.agent.runner import run_agent

    provider = ScriptedProvider(
        [_response(calls=[_call("x", "DOES_NOT_EXIST")], stop="tool_calls"), _response("Gave up politely.")]
    )
    result = await run_agent(make_issue_context(), _runtime(provider, tmp_path))

    assert result.success is True
    tool_turn = provider.calls[1]["turns"][-1]
    assert tool_turn.result.is_error is True
    assert tool_turn.result.content == 'Error: Unknown tool "DOES_NOT_EXIST"'


@pytest.mark.asyncio
async def test_nameless_tool_call_gets_error_result_and_run_continues(tmp_path, make_issue_context):
    from hookpilot.agent.runner import run_agent

    provider = ScriptedProvider([_response(calls=[_call("n1", "")], stop="tool_calls"), _response("Recovered.")])
    result = await run_agent(make_issue_context(), _runtime(provider, tmp_path))

    assert result.success is True
    assert result.final_text == "Recovered."
    tool_turn = provider.calls[1]["turns"][-1]
    assert tool_turn.result.call_id == "n1"
    assert tool_turn.result.is_error is True
    assert tool_turn.result.content == 'Error: Unknown tool ""'


@pytest.mark.asyncio
async def test_length_stop_without_calls_continues_loop(tmp_path, make_issue_context):
    from hookpilot.agent.runner import run_agent

    provider = ScriptedProvider([_response("partial", stop="length"), _response("complete")])
    result = await run_agent(make_issue_context(), _runtime(provider, tmp_path))

    assert result.iterations == 2
    assert result.final_text == "complete"


@pytest.mark.asyncio
async def test_provider_error_returns_failure_with_partial_steps(tmp_path, make_issue_context):
    from hookpilot.agent.runner import run_agent

    provider = ScriptedProvider([RuntimeError("rate limited")])
    result = await run_agent(make_issue_context(), _runtime(provider, tmp_path))

    assert result.success is False
    assert result.error == "rate limited"
    assert result.steps == ["Selected 1 skills: bugfix-skill", "Loaded skill content"]
    assert result.iterations == 1


@pytest.mark.asyncio
async def test_model_timeout_is_reported(tmp_path, make_issue_context):
    from hookpilot.agent.runner import run_agent

    class SlowProvider:
        async def complete(self, system, turns, tools):
            await asyncio.sleep(5)

    runtime = _runtime(SlowProvider(), tmp_path)
    runtime.model_timeout_seconds = 0.01
    result = await run_agent(make_issue_context(), runtime)

    assert result.success is False
    assert result.error == "Model call timed out after 0.01s"


@pytest.mark.asyncio
async def test_no_matching_skills_still_runs(tmp_path, make_issue_context):
    from hookpilot.agent.runner import run_agent

    provider = ScriptedProvider([_response("ok")])
    context = make_issue_context(title="Question about docs", labels=())
    result = await run_agent(context, _runtime(provider, tmp_path))

    assert result.steps[0] == "Selected 0 skills: none"
    assert provider.calls[0]["system"].endswith("## Loaded Skills\n\nNone.")
