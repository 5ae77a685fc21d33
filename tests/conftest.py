"""
Shared fixtures: a scripted model binding and a scheduler.

Run with:
$ pytest -q
"""

import asyncio
from typing import (
    Callable,
    List,
    Sequence,
    Union,
)

import pytest

from parley.agent.scheduler import PromptScheduler
from parley.core.schema import Message
from parley.model.base import ModelBinding

Step = Union[str, Exception]


class ScriptedModel(ModelBinding):
    """Model binding that replays canned responses (or raises canned errors) in order."""

    PROVIDER = "scripted"
    DEFAULT_MODEL = "test"

    def __init__(self, steps: Sequence[Step] = (), default: str = "Nothing to add.") -> None:
        super().__init__(self.DEFAULT_MODEL)
        self.steps: List[Step] = list(steps)
        self.default = default
        self.calls: List[List[Message]] = []
        self.block = False

    async def _generate(self, messages: List[Message]) -> str:
        self.calls.append(messages)
        if self.block:
            await asyncio.Event().wait()
        step = self.steps.pop(0) if self.steps else self.default
        if isinstance(step, Exception):
            raise step
        return step

    def user_messages(self) -> List[str]:
        return [m.content for m in self.get_context() if m.role == "user"]


@pytest.fixture
def make_model() -> Callable[..., ScriptedModel]:
    return ScriptedModel


@pytest.fixture
def scheduler() -> PromptScheduler:
    return PromptScheduler(max_retries=3)


@pytest.fixture
def shown() -> List[tuple]:
    """Collects ``(agent_name, content)`` pairs an agent displays."""
    return []
