"""Terminal output helpers shared by the shell and the agents."""

from enum import Enum
from typing import Any

_RESET = "\033[0m"


class AnsiColors(Enum):
    """Colours used for shell output."""

    RED = "\033[91m"  # errors
    GREEN = "\033[92m"  # confirmations
    YELLOW = "\033[33m"  # interruptions
    BLUE = "\033[94m"  # prompts and agent names
    GRAY = "\033[90m"  # help and listings


def colored_print(text: str, color: AnsiColors, *args: Any, **kwargs: Any) -> None:
    """
    Print *text* wrapped in the escape codes of *color*.

    Args:
        text: The text to print
        color: One of :class:`AnsiColors`
        args, kwargs: Passed through to ``print`` (e.g. ``end=""``)
    """
    print(f"{color.value}{text}{_RESET}", *args, **kwargs)


def agent_print(agent_name: str, text: str) -> None:
    """Print *text* line by line, each prefixed with the speaking agent's name."""
    for line in text.splitlines() or [""]:
        colored_print(f"{agent_name}>", AnsiColors.BLUE, end=" ")
        print(line)
