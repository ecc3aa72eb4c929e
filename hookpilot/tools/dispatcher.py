"""
hookpilot/tools/dispatcher.py
Explicit tool-name -> executor mapping used by the agent loop.
Exports: ToolSpec, ToolDispatcher, ToolError, ToolRegistrationError
"""

import asyncio
import json
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Iterable

from hookpilot.agent.conversation import ToolCall, ToolResult

logger = logging.getLogger(__name__)

ToolHandler = Callable[[dict[str, Any]], Awaitable[Any]]


class ToolError(Exception):
    """Raised by tool executors for invalid input or failed remote operations."""


class ToolRegistrationError(Exception):
    """Raised when tool schemas and registered handlers disagree."""


@dataclass(frozen=True)
class ToolSpec:
    name: str
    description: str
    parameters: dict[str, Any]
    handler: ToolHandler

    def schema(self) -> dict[str, Any]:
        return {"name": self.name, "description": self.description, "parameters": self.parameters}


def encode_tool_payload(payload: Any) -> str:
    """Serialize a tool's success payload for the conversation."""
    if isinstance(payload, str):
        return payload
    return json.dumps(payload, indent=2, default=str)


def _preview(text: str, max_chars: int = 280) -> str:
    return text if len(text) <= max_chars else f"{text[: max_chars - 3]}..."


class ToolDispatcher:
    """Registry of named tools; dispatch never raises for tool-level failures."""

    def __init__(self, *, timeout_seconds: float | None = None) -> None:
        self._tools: dict[str, ToolSpec] = {}
        self.timeout_seconds = timeout_seconds

    def register(self, spec: ToolSpec) -> None:
        if spec.name in self._tools:
            raise ToolRegistrationError(f"Duplicate tool name: {spec.name}")
        self._tools[spec.name] = spec

    def names(self) -> list[str]:
        return list(self._tools)

    def get(self, name: str) -> ToolSpec | None:
        return self._tools.get(name)

    def schemas(self) -> list[dict[str, Any]]:
        """Return `{name, description, parameters}` for every registered tool."""
        return [spec.schema() for spec in self._tools.values()]

    def verify(self, declared_names: Iterable[str]) -> None:
        """
        Check that every declared tool name has a registered handler.

        Raises:
            ToolRegistrationError: Listing declared names without handlers.
        """
        registered = set(self.names())
        missing = [name for name in declared_names if name not in registered]
        if missing:
            raise ToolRegistrationError(f"Declared tools without handlers: {', '.join(missing)}")

    async def dispatch(self, call: ToolCall) -> ToolResult:
        """
        Execute one tool call.

        Args:
            call: Tool call requested by the model.
        Returns:
            ToolResult carrying the encoded payload, or an error-tagged result for
            unknown tools, executor failures, and timeouts.
        """
        spec = self.get(call.name)
        if spec is None:
            logger.warning("Model requested unknown tool '%s'.", call.name)
            return ToolResult(call_id=call.id, name=call.name, content=f'Error: Unknown tool "{call.name}"', is_error=True)
        try:
            if self.timeout_seconds:
                payload = await asyncio.wait_for(spec.handler(call.arguments), timeout=self.timeout_seconds)
            else:
                payload = await spec.handler(call.arguments)
        except asyncio.TimeoutError:
            logger.warning("Tool '%s' timed out after %ss.", call.name, self.timeout_seconds)
            return ToolResult(
                call_id=call.id,
                name=call.name,
                content=f"Error: Tool timed out after {self.timeout_seconds}s",
                is_error=True,
            )
        except Exception as exc:
            logger.warning("Tool '%s' failed: %s", call.name, exc)
            return ToolResult(call_id=call.id, name=call.name, content=f"Error: {exc}", is_error=True)
        content = encode_tool_payload(payload)
        logger.info("Tool '%s' succeeded: %s", call.name, _preview(content))
        return ToolResult(call_id=call.id, name=call.name, content=content)
