"""
parley entry point.

This file handles startup concerns (arg-parsing, logging, agent bootstrap) and launches the
appropriate interface (API or CLI).
"""

import argparse
import logging
import sys

from parley.agent.agents_config import (
    AgentConfigError,
    create_runtime,
)
from parley.config import settings

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------
def _init_logging(level: str) -> None:
    numeric = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(
        level=numeric,
        format="%(asctime)s | %(name)s | %(levelname)s | %(message)s",
        stream=sys.stdout,
    )
    # Request lines of the model clients are noise at info level
    logging.getLogger("httpx").setLevel(logging.WARNING)


# ---------------------------------------------------------------------------
# Main
# ---------------------------------------------------------------------------
def main(argv: list[str] | None = None) -> None:
    """
    Main entry point for the parley application.

    This function sets up the command-line interface, initializes logging, and starts the
    application in either CLI or API mode.
    """
    if argv is None:
        argv = sys.argv[1:]

    parser = argparse.ArgumentParser(description="Run parley multi-agent orchestrator")
    parser.add_argument(
        "--mode",
        choices=["api", "cli"],
        type=str.lower,
        default="cli",
        help="Launch interactive shell or REST API (default: cli)",
    )
    parser.add_argument(
        "--agents",
        default=settings.AGENTS_FILE,
        help="Agent configuration file (default from env: %(default)s)",
    )
    parser.add_argument(
        "--log-level",
        choices=["debug", "info", "warning", "error", "critical"],
        type=str.lower,
        default=settings.LOG_LEVEL,
        help="Logging level (default from env: %(default)s)",
    )
    args = parser.parse_args(argv)

    # Override settings with command-line arguments
    settings.LOG_LEVEL = args.log_level
    settings.AGENTS_FILE = args.agents

    _init_logging(settings.LOG_LEVEL)

    logger.info("Starting parley [%s mode]", args.mode)
    secrets = {"ANTHROPIC_API_KEY", "OPENAI_API_KEY"}
    logger.debug("Settings: %s", settings.model_dump(exclude=secrets))

    if args.mode == "api":
        # Lazy import to avoid web dependencies if not needed
        from parley.api.app import run_api  # pylint: disable=import-outside-toplevel

        run_api(host="0.0.0.0", port=settings.API_PORT, reload=settings.DEBUG)
        return

    # Lazy import to avoid CLI dependencies if not needed
    from parley.client.cli import run_cli  # pylint: disable=import-outside-toplevel

    try:
        scheduler, _, primary = create_runtime(settings.AGENTS_FILE)
    except AgentConfigError as exc:
        logger.error("Cannot start: %s", exc)
        sys.exit(1)
    run_cli(scheduler, primary)


if __name__ == "__main__":
    main()
