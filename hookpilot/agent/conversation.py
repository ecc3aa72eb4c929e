"""Canonical, provider-neutral conversation state for one agent run."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class TurnKind(str, Enum):
    TASK = "task"
    MODEL = "model"
    TOOL_RESULT = "tool_result"


@dataclass(frozen=True)
class ToolCall:
    """A tool invocation requested by the model."""

    id: str
    name: str
    arguments: dict[str, Any] = field(default_factory=dict)
    # Provider-encoded arguments, echoed back unchanged when present.
    raw_arguments: str | None = None


@dataclass(frozen=True)
class ToolResult:
    """Outcome of one tool call, correlated by `call_id`."""

    call_id: str
    name: str
    content: str
    is_error: bool = False


@dataclass(frozen=True)
class Turn:
    kind: TurnKind
    text: str = ""
    tool_calls: tuple[ToolCall, ...] = ()
    result: ToolResult | None = None


class Conversation:
    """Append-only turn sequence owned by a single run."""

    def __init__(self) -> None:
        self._turns: list[Turn] = []

    @property
    def turns(self) -> tuple[Turn, ...]:
        """Return an immutable snapshot of the turns so far."""
        return tuple(self._turns)

    def add_task(self, text: str) -> Turn:
        return self._append(Turn(kind=TurnKind.TASK, text=text))

    def add_model_response(self, text: str, tool_calls: tuple[ToolCall, ...] = ()) -> Turn:
        return self._append(Turn(kind=TurnKind.MODEL, text=text, tool_calls=tuple(tool_calls)))

    def add_tool_result(self, result: ToolResult) -> Turn:
        return self._append(Turn(kind=TurnKind.TOOL_RESULT, result=result))

    def _append(self, turn: Turn) -> Turn:
        self._turns.append(turn)
        return turn
