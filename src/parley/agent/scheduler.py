"""
FIFO prompt scheduler.

The scheduler owns the agent registry and a queue of pending prompts.  Agents never talk to each
other directly: a delegation is a queued prompt carrying the correlation id and the source agent,
and the answer travels back the same way.  ``process_queue`` drains the queue strictly in order,
awaiting each agent completely before taking the next item, so at most one agent turn is active
at a time.
"""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass
from typing import (
    TYPE_CHECKING,
    Deque,
    Dict,
    List,
    Optional,
    Union,
)

from parley.config import settings
from parley.model.base import Prompt

if TYPE_CHECKING:
    from parley.agent.agent import Agent

logger = logging.getLogger(__name__)


@dataclass
class PromptQueueItem:
    """One pending prompt for one agent."""

    target_agent: Agent
    payload: Prompt
    correlation_id: Optional[str] = None
    source_agent: Optional[Agent] = None
    reply: bool = False
    attempt: int = 0


class PromptScheduler:
    """Queues prompts for named agents and dispatches them in FIFO order."""

    def __init__(self, max_retries: int | None = None) -> None:
        self._queue: Deque[PromptQueueItem] = deque()
        self._registry: Dict[str, Agent] = {}
        self.max_retries = settings.MAX_PROMPT_RETRIES if max_retries is None else max_retries
        # Agent whose prompt is being handled by process_queue, if any
        self.active: Optional[Agent] = None

    # ------------------------------------------------------------------ #
    # Registry
    # ------------------------------------------------------------------ #
    def register_agent(self, agent: Agent) -> None:
        """Register *agent* under its name; a later registration with the same name wins."""
        self._registry[agent.name] = agent
        logger.debug("Registered agent: %s", agent.name)

    def get_agent(self, name: str) -> Optional[Agent]:
        return self._registry.get(name)

    def get_agents(self) -> List[Agent]:
        return list(self._registry.values())

    # ------------------------------------------------------------------ #
    # Queue
    # ------------------------------------------------------------------ #
    def pending(self) -> int:
        return len(self._queue)

    def schedule_prompt(
        self,
        agent: Union[Agent, str],
        payload: Prompt,
        correlation_id: Optional[str] = None,
        source_agent: Optional[Agent] = None,
        reply: bool = False,
        attempt: int = 0,
    ) -> bool:
        """
        Queue *payload* for *agent* (an instance or a registered name).

        An unknown agent name is reported back to *source_agent* as a queued prompt, so a
        misrouted delegation becomes a visible error for the caller.  Without a source agent the
        prompt is dropped and only logged.

        Returns
        -------
        bool
            True if the prompt was queued for the requested agent.
        """
        if isinstance(agent, str):
            target = self._registry.get(agent)
            if target is None:
                logger.warning("Agent not found: %s", agent)
                if source_agent is not None:
                    self.schedule_prompt(
                        source_agent,
                        f"Agent not found: {agent}, correlationId: {correlation_id}",
                        correlation_id,
                    )
                return False
        else:
            target = agent

        self._queue.append(
            PromptQueueItem(
                target_agent=target,
                payload=payload,
                correlation_id=correlation_id,
                source_agent=source_agent,
                reply=reply,
                attempt=attempt,
            )
        )
        logger.info(
            "Scheduled prompt for agent %s%s",
            target.name,
            f" from {source_agent.name}" if source_agent is not None else "",
        )
        return True

    async def process_queue(self) -> int:
        """
        Drain the queue in FIFO order until it is empty.

        Items queued while draining (delegations, replies, error reports) are processed in the same
        call.  A failing handler is not propagated: an error report is queued for the same agent
        with the same correlation id and source, up to ``max_retries`` times per prompt chain.

        Returns
        -------
        int
            Number of queue items handled.
        """
        handled = 0
        while self._queue:
            item = self._queue.popleft()
            handled += 1
            self.active = item.target_agent
            try:
                logger.info("Processing prompt for agent %s", item.target_agent.name)
                await item.target_agent.handle_prompt(
                    item.payload, item.correlation_id, item.source_agent, reply=item.reply
                )
            except Exception as exc:  # pylint: disable=broad-except
                logger.error(
                    "Error processing prompt for agent %s: %s", item.target_agent.name, exc
                )
                if item.attempt >= self.max_retries:
                    logger.error(
                        "Dropping prompt for agent %s after %d retries",
                        item.target_agent.name,
                        item.attempt,
                    )
                    continue
                self.schedule_prompt(
                    item.target_agent,
                    f"Error processing prompt: {exc}",
                    item.correlation_id,
                    item.source_agent,
                    reply=item.reply,
                    attempt=item.attempt + 1,
                )
            finally:
                self.active = None
        return handled
