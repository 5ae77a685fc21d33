"""Persist each agent's conversation context as a JSON file under ``CONTEXT_DIR``."""

import asyncio
import logging
from pathlib import Path
from typing import (
    Iterable,
    Optional,
)

from parley.agent.agent import Agent
from parley.config import settings

logger = logging.getLogger(__name__)


def context_path(agent_name: str, context_dir: Optional[Path] = None) -> Path:
    """Context file of *agent_name*, e.g. ``~/.parley/context/researcher.json``."""
    return (context_dir or settings.context_dir) / f"{agent_name.lower()}.json"


def init_context_store(context_dir: Optional[Path] = None) -> Path:
    """
    Initialize the context store by ensuring the directory exists.
    This is called at application startup to prepare the environment.
    """
    target = context_dir or settings.context_dir
    target.mkdir(parents=True, exist_ok=True)
    return target


async def save_all(agents: Iterable[Agent], context_dir: Optional[Path] = None) -> None:
    """Save every agent's context concurrently."""
    agents = list(agents)
    await asyncio.gather(*(a.save_context(context_path(a.name, context_dir)) for a in agents))
    logger.info("Saved context of %d agent(s)", len(agents))


async def load_all(agents: Iterable[Agent], context_dir: Optional[Path] = None) -> None:
    """Load every agent's context concurrently; agents without a file start empty."""
    agents = list(agents)
    await asyncio.gather(*(a.load_context(context_path(a.name, context_dir)) for a in agents))
    logger.info("Loaded context of %d agent(s)", len(agents))
