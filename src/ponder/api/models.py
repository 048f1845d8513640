"""
Pydantic models for Ponder API requests and responses.
This module defines the request and response schemas used by the Ponder API.
"""

from typing import (
    Any,
    Dict,
    List,
    Optional,
)

from pydantic import (
    BaseModel,
    Field,
)


# ---------------------------------------------------------------------------
# Pydantic request / response schema
# ---------------------------------------------------------------------------
class MessageRequest(BaseModel):
    """Incoming user message; each request is one independent run."""

    message: str = Field(..., min_length=1, description="User message for Ponder")
    planner: Optional[str] = Field(None, description="Planner name; defaults to settings")


class ToolInfo(BaseModel):
    """Public description of one tool."""

    name: str
    description: str
    usage: str


class MessageResponse(BaseModel):
    """API response returned to the caller."""

    reply: str
    finished: bool
    turns_used: int
    trace: List[str] = Field(default_factory=list)
    history: List[Dict[str, Any]] = Field(default_factory=list)
