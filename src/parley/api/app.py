"""
HTTP surface for parley.

It exposes the following endpoints:
- **GET /health**  - liveness probe for health checks.
- **GET /agents**  - registered agents and which one is primary.
- **POST /prompt** - {"message": "...", "agent": "..."}: queue the message for the agent, drain
  the scheduler, and return everything the agents displayed meanwhile.

Prompts are processed one request at a time; the scheduler has a single queue.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import (
    AsyncIterator,
    List,
)

from fastapi import (
    FastAPI,
    HTTPException,
)

from parley.agent.agent import Agent
from parley.agent.agents_config import create_runtime
from parley.agent.scheduler import PromptScheduler
from parley.api.models import (
    AgentInfo,
    AgentOutput,
    PromptRequest,
    PromptResponse,
)
from parley.common import (
    AnsiColors,
    colored_print,
)
from parley.config import settings
from parley.memory.context_store import (
    init_context_store,
    load_all,
    save_all,
)

logger = logging.getLogger(__name__)


def create_app(
    scheduler: PromptScheduler, primary: Agent, persist_context: bool = False
) -> FastAPI:
    """
    Build the FastAPI app around an already populated scheduler.

    Parameters
    ----------
    scheduler:
        Scheduler holding every agent.
    primary:
        Agent that receives prompts which do not name one.
    persist_context:
        If *True*, load agent contexts at startup and save them at shutdown.
    """
    outputs: List[AgentOutput] = []
    lock = asyncio.Lock()

    def record(agent_name: str, content: str) -> None:
        logger.debug("%s> %s", agent_name, content)
        outputs.append(AgentOutput(agent=agent_name, content=content))

    for agent in scheduler.get_agents():
        agent.display = record

    @asynccontextmanager
    async def lifespan(_: FastAPI) -> AsyncIterator[None]:
        if persist_context:
            init_context_store()
            await load_all(scheduler.get_agents())
        yield
        if persist_context:
            await save_all(scheduler.get_agents())

    app = FastAPI(
        title="parley API",
        version="0.1.0",
        description="Multi-agent orchestration over a line-oriented directive protocol",
        lifespan=lifespan,
    )

    # -----------------------------------------------------------------------
    # Routes
    # -----------------------------------------------------------------------
    @app.get("/health", summary="Health check")
    async def health() -> dict[str, str]:
        """Return a simple liveness payload."""
        return {"status": "ok"}

    @app.get("/agents", response_model=List[AgentInfo], summary="List agents")
    async def list_agents() -> List[AgentInfo]:
        return [
            AgentInfo(
                name=a.name,
                bio=a.bio,
                skills=a.skills,
                model=a.model.get_identifier(),
                primary=a is primary,
            )
            for a in scheduler.get_agents()
        ]

    @app.post("/prompt", response_model=PromptResponse, summary="Process a message")
    async def prompt(req: PromptRequest) -> PromptResponse:
        """Queue the message for the target agent and process the queue until it is empty."""
        target = scheduler.get_agent(req.agent) if req.agent else primary
        if target is None:
            raise HTTPException(status_code=404, detail=f"Agent not found: {req.agent}")

        async with lock:
            outputs.clear()
            scheduler.schedule_prompt(target, req.message)
            handled = await scheduler.process_queue()
            collected = list(outputs)

        logger.info("Prompt for %s handled %d queue item(s)", target.name, handled)
        return PromptResponse(agent=target.name, outputs=collected, handled=handled)

    return app


def build_app() -> FastAPI:
    """Factory used by uvicorn: agents from ``settings.AGENTS_FILE``, contexts persisted."""
    scheduler, _, primary = create_runtime()
    return create_app(scheduler, primary, persist_context=True)


# ---------------------------------------------------------------------------
# Public helper to launch the API (imported by main.py)
# ---------------------------------------------------------------------------
def run_api(
    host: str = "0.0.0.0", port: int = 8000, reload: bool = False, log_level: str | None = None
) -> None:
    """Start a uvicorn server hosting the app built by :func:`build_app`.

    Parameters
    ----------
    host, port:
        Bind address for the HTTP server.
    reload:
        If *True*, enable auto-reload (useful during development).
    log_level:
        Logging level to use (default from settings if not provided).
    """

    # Lazy import - keeps uvicorn out of the CLI import path
    import uvicorn  # pylint: disable=import-outside-toplevel

    if log_level is None:
        log_level = settings.LOG_LEVEL

    logger.info(
        "Starting parley API at %s:%d (reload=%s, log_level=%s)", host, port, reload, log_level
    )
    colored_print(f"parley API is running at http://localhost:{port}.", AnsiColors.GREEN)
    colored_print(f"Visit http://localhost:{port}/docs for API documentation.", AnsiColors.BLUE)
    uvicorn.run(
        "parley.api.app:build_app",
        factory=True,
        host=host,
        port=port,
        reload=reload,
        log_level=log_level,
    )
