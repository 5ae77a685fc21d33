"""Agent configuration: ``agents.yaml`` loading and agent construction."""

import logging
from pathlib import Path
from typing import (
    Any,
    Callable,
    Iterable,
    List,
    Optional,
    Tuple,
)

import yaml
from pydantic import ValidationError

import parley.tools.builtin  # noqa: F401  # pylint: disable=unused-import
from parley.agent.agent import (
    Agent,
    DisplayFn,
)
from parley.agent.scheduler import PromptScheduler
from parley.config import settings
from parley.core.schema import AgentConfig
from parley.model.base import (
    ModelBinding,
    load_model,
)
from parley.tools import ToolLike

logger = logging.getLogger(__name__)

DEFAULT_AGENT = AgentConfig(
    name="Assistant",
    bio="A helpful general-purpose assistant.",
    skills=["general knowledge", "problem solving"],
)

ModelFactory = Callable[..., ModelBinding]


class AgentConfigError(ValueError):
    """Raised when the agent configuration file cannot be used."""


def load_agents_config(path: Path | str) -> List[AgentConfig]:
    """
    Read agent definitions from a YAML file of the form ``{agents: [{name, bio, ...}]}``.

    A missing file yields an empty list.

    Raises:
        AgentConfigError: If the file is not valid YAML or an entry fails validation
    """
    source = Path(path)
    if not source.exists():
        logger.info("Agent configuration %s not found", source)
        return []

    try:
        with open(source, encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as exc:
        raise AgentConfigError(f"Invalid YAML in {source}: {exc}") from exc

    if data is None:
        return []
    if not isinstance(data, dict):
        raise AgentConfigError(f"{source}: expected a mapping with an 'agents' list")

    entries = data.get("agents") or []
    if not isinstance(entries, list):
        raise AgentConfigError(f"{source}: 'agents' must be a list")

    configs: List[AgentConfig] = []
    for index, entry in enumerate(entries):
        try:
            configs.append(AgentConfig.model_validate(entry))
        except ValidationError as exc:
            raise AgentConfigError(f"{source}: invalid agent entry #{index}: {exc}") from exc

    logger.info("Loaded %d agents from %s", len(configs), source)
    return configs


def build_agents(
    configs: Iterable[AgentConfig],
    scheduler: PromptScheduler,
    tools: Optional[Iterable[ToolLike]] = None,
    model_factory: ModelFactory = load_model,
    display: Optional[DisplayFn] = None,
    **agent_options: Any,
) -> List[Agent]:
    """
    Create and register one agent per config (or the default assistant if there are none).

    System prompts are rebuilt once everything is registered, so every agent sees the bios of the
    agents it is aware of regardless of declaration order.
    """
    configs = list(configs) or [DEFAULT_AGENT]
    tools = None if tools is None else list(tools)

    agents = []
    for cfg in configs:
        model = model_factory(cfg.provider, cfg.model)
        agents.append(
            Agent(
                name=cfg.name,
                bio=cfg.bio,
                skills=cfg.skills,
                model=model,
                tools=tools,
                aware_of=cfg.aware_of,
                scheduler=scheduler,
                display=display,
                **agent_options,
            )
        )
        logger.info("Created agent %s using %s", cfg.name, model.get_identifier())

    for agent in agents:
        agent.refresh_system_prompt()
    return agents


def select_primary(agents: List[Agent], name: Optional[str] = None) -> Agent:
    """
    The agent the user talks to: *name* if given, otherwise the first configured agent.

    Raises:
        AgentConfigError: If *name* does not match any agent
    """
    if not agents:
        raise AgentConfigError("No agents configured")
    if name is None:
        return agents[0]
    for agent in agents:
        if agent.name.lower() == name.lower():
            return agent
    raise AgentConfigError(f"Primary agent '{name}' is not configured")


def create_runtime(
    agents_file: Path | str | None = None, display: Optional[DisplayFn] = None
) -> Tuple[PromptScheduler, List[Agent], Agent]:
    """Build the scheduler, every configured agent, and pick the primary one."""
    scheduler = PromptScheduler()
    configs = load_agents_config(agents_file or settings.AGENTS_FILE)
    agents = build_agents(configs, scheduler, display=display)
    return scheduler, agents, select_primary(agents, settings.PRIMARY_AGENT)
