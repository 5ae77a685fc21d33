"""
Pydantic models for parley API requests and responses.
This module defines the request and response schemas used by the parley API.
"""

from typing import (
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
class PromptRequest(BaseModel):
    """Incoming user message."""

    message: str = Field(..., min_length=1, description="User message for the agent")
    agent: Optional[str] = Field(None, description="Target agent (defaults to the primary agent)")


class AgentOutput(BaseModel):
    """Content one agent displayed while the queue was processed."""

    agent: str
    content: str


class PromptResponse(BaseModel):
    """API response returned to the caller."""

    agent: str
    outputs: List[AgentOutput]
    handled: int = Field(..., description="Number of queued prompts processed")


class AgentInfo(BaseModel):
    """Public description of a registered agent."""

    name: str
    bio: str
    skills: List[str]
    model: str
    primary: bool = False
