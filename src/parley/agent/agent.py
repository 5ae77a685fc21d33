"""
Agent turn loop.

An agent binds a model, a tool set and an identity.  ``handle_prompt`` runs one top-level turn:

    send -> parse -> display -> delegate -> (tools -> send again | done | nudge)

Delegations go through the scheduler and are fire-and-forget; the answer comes back later as a
separate ``handle_prompt`` call with the same correlation id.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import (
    Callable,
    Iterable,
    List,
    Optional,
    Sequence,
)

from parley.agent.scheduler import PromptScheduler
from parley.agent.system_context import build_system_context
from parley.agent.tool_executor import execute_tool_calls
from parley.common import agent_print
from parley.config import settings
from parley.core.schema import (
    AgentCall,
    ToolResponseBatch,
)
from parley.model.base import (
    ModelBinding,
    Prompt,
)
from parley.protocol.response_parser import (
    TASK_COMPLETED_DESCRIPTION,
    parse_response,
)
from parley.tools import (
    TOOL_REGISTRY,
    ToolLike,
)

logger = logging.getLogger(__name__)

NUDGE_PROMPT = "Please continue. If the task is complete, respond with TOOL:done."
DEFAULT_REPLY = "Task completed."

DisplayFn = Callable[[str, str], None]


class Agent:
    """A conversational actor: identity + model binding + tools."""

    def __init__(
        self,
        name: str,
        bio: str,
        skills: Sequence[str],
        model: ModelBinding,
        tools: Optional[Iterable[ToolLike]] = None,
        aware_of: Sequence[str] = (),
        scheduler: Optional[PromptScheduler] = None,
        concurrent_tools: bool = False,
        max_turns: int | None = None,
        display: Optional[DisplayFn] = None,
    ) -> None:
        self.name = name
        self.bio = bio
        self.skills = list(skills)
        self.model = model
        self.tools: List[ToolLike] = list(TOOL_REGISTRY.values() if tools is None else tools)
        self.aware_of = list(aware_of)
        self.scheduler = scheduler
        self.concurrent_tools = concurrent_tools
        self.max_turns = settings.MAX_AGENT_TURNS if max_turns is None else max_turns
        self.display: DisplayFn = display or agent_print

        if scheduler is not None:
            scheduler.register_agent(self)
        self.refresh_system_prompt()

    def __repr__(self) -> str:
        return f"Agent({self.name!r}, model={self.model.get_identifier()!r})"

    # ------------------------------------------------------------------ #
    # Setup
    # ------------------------------------------------------------------ #
    def refresh_system_prompt(self) -> None:
        """Rebuild the system prompt, e.g. after the agents it knows about were registered."""
        known = []
        for agent_name in self.aware_of:
            other = self.scheduler.get_agent(agent_name) if self.scheduler else None
            known.append((agent_name, other.bio if other is not None else ""))
        self.model.set_system_prompt(build_system_context(self, self.tools, known))

    # ------------------------------------------------------------------ #
    # Prompting
    # ------------------------------------------------------------------ #
    def prompt(self, text: str) -> bool:
        """Queue *text* for this agent; run it with ``scheduler.process_queue()``."""
        if self.scheduler is None:
            raise RuntimeError(f"Agent '{self.name}' has no scheduler")
        return self.scheduler.schedule_prompt(self, text)

    async def handle_prompt(
        self,
        payload: Prompt,
        correlation_id: Optional[str] = None,
        source_agent: Optional[Agent] = None,
        reply: bool = False,
    ) -> None:
        """
        Run one turn for *payload* until the model is done or only delegated work remains.

        Parameters
        ----------
        payload:
            Text or a batch of tool results.
        correlation_id:
            Correlation id of the delegation being handled, if any.
        source_agent:
            Agent that sent the payload, if any.
        reply:
            True when *payload* answers a delegation this agent made earlier.

        Raises
        ------
        ModelError
            Propagated from the model binding; the scheduler turns it into an error prompt.
        """
        prompt: Prompt = self._frame(payload, correlation_id, source_agent, reply)
        answer = ""

        for _ in range(self.max_turns):
            raw = await self.model.send(prompt)
            message = parse_response(raw)
            if message.content.strip():
                self.display(self.name, message.content)
                answer = _final_answer(message.content) or answer

            for call in message.agent_calls:
                self._delegate(call)

            if message.tool_calls:
                results = await execute_tool_calls(
                    message.tool_calls, self.tools, concurrent=self.concurrent_tools
                )
                prompt = ToolResponseBatch(results=results)
                continue

            if message.done:
                logger.info("Agent %s completed its task", self.name)
                if source_agent is not None and not reply:
                    self._reply(source_agent, correlation_id, answer or DEFAULT_REPLY)
                return

            if message.agent_calls:
                # Replies arrive later as new prompts
                return

            prompt = NUDGE_PROMPT

        logger.warning("Agent %s stopped after %d model turns", self.name, self.max_turns)
        if source_agent is not None and not reply:
            self._reply(
                source_agent,
                correlation_id,
                f"Stopped after {self.max_turns} turns without completing the task.",
            )

    # ------------------------------------------------------------------ #
    # Context / cancellation
    # ------------------------------------------------------------------ #
    def cancel(self) -> None:
        self.model.cancel()

    def clear_context(self) -> None:
        self.model.clear_context()

    async def save_context(self, path: Path | str) -> None:
        await self.model.save_context(path)

    async def load_context(self, path: Path | str) -> None:
        await self.model.load_context(path)

    # ------------------------------------------------------------------ #
    # Helpers
    # ------------------------------------------------------------------ #
    @staticmethod
    def _frame(
        payload: Prompt,
        correlation_id: Optional[str],
        source_agent: Optional[Agent],
        reply: bool,
    ) -> Prompt:
        if source_agent is None or not isinstance(payload, str):
            return payload
        kind = "Reply from agent" if reply else "Message from agent"
        return f"{kind} {source_agent.name} (correlationId: {correlation_id}):\n{payload}"

    def _delegate(self, call: AgentCall) -> None:
        logger.info(
            "Agent %s delegates to %s (correlationId: %s)",
            self.name,
            call.target_agent_name,
            call.correlation_id,
        )
        if self.scheduler is None:
            logger.warning("Agent %s cannot delegate without a scheduler", self.name)
            return
        self.scheduler.schedule_prompt(
            call.target_agent_name, call.message, call.correlation_id, self
        )

    def _reply(self, target: Agent, correlation_id: Optional[str], text: str) -> None:
        if self.scheduler is None:
            logger.warning("Agent %s cannot reply without a scheduler", self.name)
            return
        self.scheduler.schedule_prompt(target, text, correlation_id, self, reply=True)


def _final_answer(content: str) -> str:
    """Displayed content without the completion marker; this is what a delegator gets back."""
    return content.replace(TASK_COMPLETED_DESCRIPTION, "").strip()


def describe_agents(agents: Iterable[Agent]) -> List[str]:
    """One display line per agent, used by the CLI."""
    lines = []
    for agent in agents:
        line = f"{agent.name} ({agent.model.get_identifier()})"
        lines.append(f"{line}: {agent.bio}" if agent.bio else line)
    return lines
