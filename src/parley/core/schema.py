"""
Schema definitions for parser <-> agent <-> tool <-> model messages.

These data models serve as the contract between the response parser, the agents, the prompt
scheduler and the model bindings.  We keep them separate from runtime logic so they can be imported
anywhere without side-effects.
"""

import json
from typing import (
    List,
    Literal,
    Optional,
)

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
)

DEFAULT_CORRELATION_ID = "default"
"""Correlation id used when a directive does not name one."""


class ToolCall(BaseModel):
    """A tool invocation requested by a ``TOOL:`` directive."""

    model_config = ConfigDict(frozen=True)

    tool_id: str = Field(..., description="Identifier of the tool to use")
    correlation_id: str = Field(DEFAULT_CORRELATION_ID, description="Links the call to its result")
    function_name: str = Field(..., description="Function within the tool")
    raw_args: List[str] = Field(
        default_factory=list, description="Unevaluated argument substrings, quotes retained"
    )

    def describe(self) -> str:
        """Short human readable form, e.g. ``calc.add(5, 10)``."""
        return f"{self.tool_id}.{self.function_name}({', '.join(self.raw_args)})"


class AgentCall(BaseModel):
    """A delegation to another agent requested by an ``AGENT:`` directive."""

    model_config = ConfigDict(frozen=True)

    target_agent_name: str = Field(..., description="Name of the agent receiving the message")
    correlation_id: str = Field(DEFAULT_CORRELATION_ID, description="Links the request to a reply")
    message: str = Field(..., description="Message for the target agent")


class ParsedMessage(BaseModel):
    """Structured result of parsing one raw model response."""

    done: bool = False
    content: str = ""
    tool_calls: List[ToolCall] = Field(default_factory=list)
    agent_calls: List[AgentCall] = Field(default_factory=list)

    @property
    def has_directives(self) -> bool:
        """True when the response asked for anything (tools, delegations or completion)."""
        return self.done or bool(self.tool_calls) or bool(self.agent_calls)


class ToolResult(BaseModel):
    """Outcome of executing one :class:`ToolCall`."""

    correlation_id: str
    success: bool
    content: str


class ToolResponseBatch(BaseModel):
    """All tool results of one turn, fed back to the model as a single prompt."""

    results: List[ToolResult] = Field(default_factory=list)

    def to_prompt(self) -> str:
        """Render the batch as the text sent to the model."""
        payload = [
            {"correlationId": r.correlation_id, "success": r.success, "content": r.content}
            for r in self.results
        ]
        return "Tool results:\n" + json.dumps(payload, indent=2, ensure_ascii=False)


class Message(BaseModel):
    """One role-tagged entry of a conversation context."""

    role: Literal["system", "user", "assistant"]
    content: str


class AgentConfig(BaseModel):
    """One agent entry of the YAML agent configuration."""

    name: str = Field(..., min_length=1)
    bio: str = ""
    skills: List[str] = Field(default_factory=list)
    provider: Optional[str] = None
    model: Optional[str] = Field(None, validation_alias=AliasChoices("model", "modelName"))
    aware_of: List[str] = Field(
        default_factory=list, validation_alias=AliasChoices("aware_of", "awareOf")
    )
