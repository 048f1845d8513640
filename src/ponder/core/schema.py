"""
Schema definitions for planner <-> agent <-> tool messages.

These data models serve as the contract between the planner LLM, the orchestration loop, and
individual tools.  We keep them separate from runtime logic so they can be imported anywhere without
side-effects.
"""

import json
from typing import (
    Annotated,
    Any,
    Dict,
    List,
    Literal,
    Optional,
    Union,
)

from pydantic import (
    BaseModel,
    Field,
)

FINAL_STOP_REASONS = frozenset({"final", "stop", "completed", "end", "done"})
"""Stop reasons (compared case-insensitively) that end a run."""


class ToolCall(BaseModel):
    """A call that the planner wants the agent to execute."""

    id: Optional[str] = Field(None, description="Unique within the issuing turn")
    name: str = Field(..., description="Tool name; may be absent from the registry")
    args: Dict[str, Any] = Field(default_factory=dict, description="Arguments for the tool")

    def to_wire(self) -> Dict[str, Any]:
        """Render the call in the ``tool_calls`` history shape."""
        return {
            "id": self.id,
            "function": {"name": self.name, "arguments": json.dumps(self.args, default=str)},
        }


# ---------------------------------------------------------------------------
# Conversation turns
# ---------------------------------------------------------------------------
class UserTurn(BaseModel):
    """Input from the person driving the run."""

    role: Literal["user"] = "user"
    content: str

    def to_wire(self) -> Dict[str, Any]:
        return {"role": self.role, "content": self.content}


class AssistantTurn(BaseModel):
    """Planner output; ``content`` is always present, even for tool-call turns."""

    role: Literal["assistant"] = "assistant"
    content: str = ""
    tool_calls: Optional[List[ToolCall]] = None

    def to_wire(self) -> Dict[str, Any]:
        wire: Dict[str, Any] = {"role": self.role, "content": self.content}
        if self.tool_calls is not None:
            wire["tool_calls"] = [call.to_wire() for call in self.tool_calls]
        return wire


class ToolTurn(BaseModel):
    """Sanitized observation answering one call of the preceding assistant turn."""

    role: Literal["tool"] = "tool"
    tool_call_id: str
    content: str

    def to_wire(self) -> Dict[str, Any]:
        return {"role": self.role, "tool_call_id": self.tool_call_id, "content": self.content}


Turn = Annotated[Union[UserTurn, AssistantTurn, ToolTurn], Field(discriminator="role")]


# ---------------------------------------------------------------------------
# Planner decisions
# ---------------------------------------------------------------------------
class ToolCallsDecision(BaseModel):
    """The planner asked for one or more tools."""

    kind: Literal["tool_calls"] = "tool_calls"
    tool_calls: List[ToolCall]
    stop_reason: str = "continue"


class ContentDecision(BaseModel):
    """The planner produced natural-language content."""

    kind: Literal["content"] = "content"
    text: str
    stop_reason: str = "continue"

    @property
    def is_final(self) -> bool:
        return (self.stop_reason or "").lower() in FINAL_STOP_REASONS


class EmptyDecision(BaseModel):
    """Neither tool calls nor content."""

    kind: Literal["empty"] = "empty"


Decision = Annotated[
    Union[ToolCallsDecision, ContentDecision, EmptyDecision], Field(discriminator="kind")
]


# ---------------------------------------------------------------------------
# Run reporting
# ---------------------------------------------------------------------------
class AgentEvent(BaseModel):
    """One emission on the trace or message stream."""

    kind: Literal["trace", "message"]
    text: str
    role: Optional[Literal["user", "agent"]] = None


class RunResult(BaseModel):
    """What a finished run hands back to its caller."""

    reply: str
    finished: bool = Field(..., description="False when the turn ceiling stopped the run")
    turns_used: int
    history: List[Dict[str, Any]] = Field(default_factory=list)
