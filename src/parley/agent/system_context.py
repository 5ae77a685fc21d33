"""System prompt for agents: identity, directive protocol, tools and known agents."""

from datetime import datetime
from typing import (
    Iterable,
    Protocol,
    Sequence,
    Tuple,
)

from jinja2 import (
    Environment,
    StrictUndefined,
)

from parley.tools import (
    FunctionSchema,
    ToolLike,
    get_tool_schemas,
)

SYSTEM_TEMPLATE = """\
You are an AI agent that solves problems by thinking through them step by step.
Your name is {{ name }}.{{ (" " ~ bio) if bio else "" }}
{% if skills %}
Your skills: {{ skills | join(", ") }}.
{% endif %}
Current date and time: {{ now }}.

# Response Format
Write your reasoning as plain text. To act, put a directive on its own line:

TOOL:<correlationId>:<tool>.<function>(<arg0>, <arg1>, ...)
    Use a tool. Arguments are literals: strings in double quotes, numbers, true/false.
    The results of all tool calls in a response come back together in the next message,
    each tagged with its correlationId.
AGENT:<correlationId>:<agent>("<message>")
    Send a message to another agent. Its reply arrives later as a separate message
    carrying the same correlationId.
TOOL:done
    Signal that your task is complete. Put the final answer in the text before it.

Correlation ids are short tokens you choose, e.g. id-1, id-2. Use a new one for every call.
You may use several directives in one response.

Example:
Let me check the files first.
TOOL:id-1:filesystem.listFiles(".")
{% if tools %}

# Tools
{% for identifier, tool in tools.items() %}

## {{ tool.name }}
- identifier: {{ identifier }}
{% if tool.abilities %}
- abilities: {{ tool.abilities | join(", ") }}
{% endif %}
{% if tool.instructions %}
- instructions: {{ tool.instructions | join(" ") }}
{% endif %}
### Functions
{% for fn_name, fn in tool.functions.items() %}
- {{ fn | signature(fn_name) }}
{% endfor %}
{% endfor %}
{% endif %}
{% if agents %}

# Agents
You can delegate work to these agents:
{% for agent_name, agent_bio in agents %}
- {{ agent_name }}{{ (": " ~ agent_bio) if agent_bio else "" }}
{% endfor %}
{% endif %}

# Instructions
- Read all the steps carefully, plan them, and then execute.
- Only use the tools and agents listed above.
- Wait for tool results before relying on them.
"""


def _signature(fn: FunctionSchema, fn_name: str) -> str:
    """``read(file_path: str): Read a text file ...`` from a function schema."""
    params = ", ".join(
        f"{p}: {info['type']}" + ("" if info["required"] else " (optional)")
        for p, info in fn["parameters"].items()
    )
    summary = fn["description"].splitlines()[0] if fn["description"] else ""
    return f"{fn_name}({params}): {summary}" if summary else f"{fn_name}({params})"


_ENV = Environment(
    undefined=StrictUndefined,
    trim_blocks=True,
    lstrip_blocks=True,
    keep_trailing_newline=True,
    autoescape=False,
)
_ENV.filters["signature"] = _signature
_TEMPLATE = _ENV.from_string(SYSTEM_TEMPLATE)


class AgentIdentity(Protocol):
    """What the system prompt needs to know about the agent it introduces."""

    name: str
    bio: str
    skills: Sequence[str]


def build_system_context(
    agent: AgentIdentity,
    tools: Iterable[ToolLike] = (),
    known_agents: Sequence[Tuple[str, str]] = (),
    now: datetime | None = None,
) -> str:
    """
    Render the system prompt for *agent*.

    Args:
        agent: The agent being introduced (name, bio, skills)
        tools: Tools the agent may call
        known_agents: ``(name, bio)`` pairs of agents it may delegate to
        now: Timestamp to show (defaults to the current local time)
    """
    now = now or datetime.now().astimezone()
    return _TEMPLATE.render(
        name=agent.name,
        bio=agent.bio,
        skills=list(agent.skills),
        now=now.strftime("%B %d, %Y %I:%M:%S %p %Z").strip(),
        tools=get_tool_schemas(tools),
        agents=list(known_agents),
    )
