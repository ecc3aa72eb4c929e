"""
hookpilot/agent/provider.py
Model-inference provider boundary.

The agent loop only sees canonical turns and `ModelResponse`; everything
provider-specific (OpenAI-style message echoing, tool schema wrapping,
finish-reason mapping) lives in this module.
"""

import json
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Protocol

import litellm

from hookpilot.agent.conversation import ToolCall, Turn, TurnKind
from hookpilot.common.model_retry import EmptyModelResponseError, complete_with_model_fallback
from hookpilot.config import Config
from hookpilot.shared import resolve_model_api_key

logger = logging.getLogger(__name__)


class StopReason(str, Enum):
    STOP = "stop"
    TOOL_CALLS = "tool_calls"
    LENGTH = "length"


@dataclass(frozen=True)
class ModelResponse:
    text: str
    tool_calls: tuple[ToolCall, ...]
    stop_reason: StopReason


class ModelProvider(Protocol):
    async def complete(
        self,
        system: str,
        turns: tuple[Turn, ...],
        tools: list[dict[str, Any]],
    ) -> ModelResponse: ...


def _echo_tool_call(call: ToolCall) -> dict[str, Any]:
    arguments = call.raw_arguments if call.raw_arguments is not None else json.dumps(call.arguments)
    return {
        "id": call.id,
        "type": "function",
        "function": {"name": call.name, "arguments": arguments},
    }


def to_openai_messages(system: str, turns: tuple[Turn, ...]) -> list[dict[str, Any]]:
    """Marshal canonical turns into OpenAI chat-completions messages."""
    messages: list[dict[str, Any]] = [{"role": "system", "content": system}]
    for turn in turns:
        if turn.kind == TurnKind.TASK:
            messages.append({"role": "user", "content": turn.text})
        elif turn.kind == TurnKind.MODEL:
            message: dict[str, Any] = {"role": "assistant", "content": turn.text}
            if turn.tool_calls:
                message["content"] = turn.text or None
                message["tool_calls"] = [_echo_tool_call(call) for call in turn.tool_calls]
            messages.append(message)
        elif turn.result is not None:
            messages.append(
                {
                    "role": "tool",
                    "tool_call_id": turn.result.call_id,
                    "content": turn.result.content,
                }
            )
    return messages


def to_openai_tools(schemas: list[dict[str, Any]]) -> list[dict[str, Any]]:
    """Wrap `{name, description, parameters}` schemas as OpenAI function tools."""
    return [
        {
            "type": "function",
            "function": {
                "name": schema["name"],
                "description": schema.get("description", ""),
                "parameters": schema.get("parameters", {"type": "object", "properties": {}}),
            },
        }
        for schema in schemas
    ]


def _parse_arguments(raw: Any) -> dict[str, Any]:
    if isinstance(raw, dict):
        return raw
    if not raw:
        return {}
    try:
        parsed = json.loads(raw)
    except (TypeError, ValueError):
        return {"_raw": str(raw)}
    return parsed if isinstance(parsed, dict) else {"_raw": str(raw)}


def _map_stop_reason(finish_reason: str | None, has_tool_calls: bool) -> StopReason:
    reason = (finish_reason or "").lower()
    if reason == "length":
        return StopReason.LENGTH
    if has_tool_calls or reason in {"tool_calls", "function_call"}:
        return StopReason.TOOL_CALLS
    return StopReason.STOP


def parse_completion(response: Any) -> ModelResponse:
    """
    Convert a chat-completions response into a ModelResponse.

    Raises:
        EmptyModelResponseError: No choice or message in the response.
    """
    choices = getattr(response, "choices", None) or []
    if not choices:
        raise EmptyModelResponseError()
    choice = choices[0]
    message = getattr(choice, "message", None)
    if message is None:
        raise EmptyModelResponseError()
    tool_calls: list[ToolCall] = []
    for index, raw_call in enumerate(getattr(message, "tool_calls", None) or []):
        function = getattr(raw_call, "function", None)
        name = getattr(function, "name", "") or ""
        raw_arguments = getattr(function, "arguments", None)
        # Nameless calls are kept so the dispatcher can answer them with an error result.
        tool_calls.append(
            ToolCall(
                id=getattr(raw_call, "id", None) or f"call_{index}",
                name=name,
                arguments=_parse_arguments(raw_arguments),
                raw_arguments=raw_arguments if isinstance(raw_arguments, str) else None,
            )
        )
    return ModelResponse(
        text=getattr(message, "content", None) or "",
        tool_calls=tuple(tool_calls),
        stop_reason=_map_stop_reason(getattr(choice, "finish_reason", None), bool(tool_calls)),
    )


class LiteLLMProvider:
    """Chat-completions provider backed by LiteLLM."""

    def __init__(self, model: str, *, max_tokens: int = 4096, api_key: str | None = None) -> None:
        self.model = model
        self.max_tokens = max_tokens
        self.api_key = api_key

    async def complete(
        self,
        system: str,
        turns: tuple[Turn, ...],
        tools: list[dict[str, Any]],
    ) -> ModelResponse:
        messages = to_openai_messages(system, turns)
        openai_tools = to_openai_tools(tools)
        logger.info(
            "Calling model '%s': system_chars=%d messages=%d tools=%d",
            self.model,
            len(system),
            len(messages),
            len(openai_tools),
        )

        async def _call(model: str) -> ModelResponse:
            kwargs: dict[str, Any] = {
                "model": model,
                "messages": messages,
                "max_tokens": self.max_tokens,
            }
            if openai_tools:
                kwargs["tools"] = openai_tools
                kwargs["tool_choice"] = "auto"
            if self.api_key:
                kwargs["api_key"] = self.api_key
            return parse_completion(await litellm.acompletion(**kwargs))

        response, used_model = await complete_with_model_fallback(
            call=_call,
            model=self.model,
            logger=logger,
            label="Agent",
        )
        if used_model != self.model:
            self.model = used_model
        logger.info(
            "Model response: stop_reason=%s tool_calls=%d",
            response.stop_reason.value,
            len(response.tool_calls),
        )
        return response


def build_provider_from_config() -> LiteLLMProvider:
    """Build the LiteLLM provider from HOOKPILOT_MODEL* settings."""
    model = Config.get_model()
    return LiteLLMProvider(
        model,
        max_tokens=Config.get_model_max_tokens(),
        api_key=resolve_model_api_key(model),
    )
