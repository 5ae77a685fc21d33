"""Interactive shell: talk to the primary agent and let the scheduler run the delegations."""

from __future__ import annotations

import asyncio
import logging
import signal
from typing import (
    List,
    Optional,
    Tuple,
)

from parley.agent.agent import (
    Agent,
    describe_agents,
)
from parley.agent.scheduler import PromptScheduler
from parley.common import (
    AnsiColors,
    colored_print,
)
from parley.memory.context_store import (
    init_context_store,
    load_all,
    save_all,
)

logger = logging.getLogger(__name__)

HELP_TEXT = """\
Commands:
  /agents          list the configured agents
  /use <agent>     talk to another agent
  /clear [agent]   forget the conversation of the current (or named) agent
  /help            show this help
  exit, quit       save the conversations and leave
Press Ctrl+C while an agent is working to cancel its model call."""


def get_user_message() -> Tuple[str, bool]:
    """
    Get a message from the user via standard input.

    Returns:
        Tuple of (user_input, success_flag)
        The success_flag is False if input couldn't be read (e.g., Ctrl+C)
    """
    # Ensure SIGINT breaks out of slow system calls such as read()
    signal.siginterrupt(signal.SIGINT, True)

    try:
        user_input = input().strip()
        return user_input, True
    except (EOFError, KeyboardInterrupt):
        return "", False


class ChatSession:
    """State of one shell session: the scheduler, its agents and who the user talks to."""

    def __init__(self, scheduler: PromptScheduler, primary: Agent) -> None:
        self.scheduler = scheduler
        self.current = primary

    @property
    def agents(self) -> List[Agent]:
        return self.scheduler.get_agents()

    def find_agent(self, name: str) -> Optional[Agent]:
        for agent in self.agents:
            if agent.name.lower() == name.lower():
                return agent
        return None

    async def handle_line(self, line: str) -> bool:
        """
        Execute one line of user input.

        Returns:
            False when the session should end
        """
        if not line:
            return True
        if line.lower() in {"exit", "quit"}:
            return False
        if line.startswith("/"):
            self.run_command(line)
            return True

        self.current.prompt(line)
        await self.process()
        return True

    def run_command(self, line: str) -> None:
        command, _, arg = line.partition(" ")
        arg = arg.strip()
        command = command.lower()

        if command == "/help":
            colored_print(HELP_TEXT, AnsiColors.GRAY)
        elif command == "/agents":
            for agent, text in zip(self.agents, describe_agents(self.agents)):
                marker = "*" if agent is self.current else " "
                colored_print(f"{marker} {text}", AnsiColors.GRAY)
        elif command == "/use":
            agent = self.find_agent(arg) if arg else None
            if agent is None:
                colored_print(f"Unknown agent: {arg or '(none)'}", AnsiColors.RED)
                return
            self.current = agent
            colored_print(f"Now talking to {agent.name}", AnsiColors.GREEN)
        elif command == "/clear":
            agent = self.find_agent(arg) if arg else self.current
            if agent is None:
                colored_print(f"Unknown agent: {arg}", AnsiColors.RED)
                return
            agent.clear_context()
            colored_print(f"Cleared the conversation of {agent.name}", AnsiColors.GREEN)
        else:
            colored_print(f"Unknown command: {command} (try /help)", AnsiColors.RED)

    async def process(self) -> int:
        """Drain the scheduler; Ctrl+C cancels the model call of the agent that is working."""
        loop = asyncio.get_running_loop()
        try:
            loop.add_signal_handler(signal.SIGINT, self._interrupt)
            installed = True
        except NotImplementedError:
            logger.debug("Signal handlers are not supported on this platform")
            installed = False
        try:
            return await self.scheduler.process_queue()
        finally:
            if installed:
                loop.remove_signal_handler(signal.SIGINT)

    def _interrupt(self) -> None:
        agent = self.scheduler.active or self.current
        colored_print(f"\nCancelling {agent.name}...", AnsiColors.YELLOW)
        agent.cancel()


async def _repl(session: ChatSession) -> None:
    init_context_store()
    await load_all(session.agents)

    colored_print(
        f"\nparley shell - talking to {session.current.name}. "
        "Type /help for commands, 'exit' or 'quit' (or Ctrl+C) to exit",
        AnsiColors.GREEN,
    )
    try:
        while True:
            colored_print("\nYou: ", AnsiColors.BLUE, end="")
            user_msg, ok = get_user_message()
            if not ok:
                break  # Exit if user input couldn't be retrieved (e.g., Ctrl+C)
            if not await session.handle_line(user_msg):
                break
    finally:
        await save_all(session.agents)


def run_cli(scheduler: PromptScheduler, primary: Agent) -> None:
    """Run the shell until the user leaves; contexts are loaded first and saved at the end."""
    # A plain loop leaves SIGINT to the default handler while waiting for input
    loop = asyncio.new_event_loop()
    try:
        loop.run_until_complete(_repl(ChatSession(scheduler, primary)))
    finally:
        loop.close()
