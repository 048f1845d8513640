"""Terminal output helpers shared by the CLI and the entry point."""

from enum import Enum
from typing import Any

from ponder.core.schema import AgentEvent


class AnsiColors(Enum):
    """
    ANSI color codes for terminal output.
    """

    RED = "\033[91m"
    GREEN = "\033[92m"
    YELLOW = "\033[33m"
    BLUE = "\033[94m"


_RESET = "\033[0m"


def colored_print(text: str, color: AnsiColors, *args: Any, **kwargs: Any) -> None:
    """
    Print text in color.

    Args:
        text: The text to print
        color: The color to use (AnsiColors enum)
        args: Additional positional arguments for print
        kwargs: Additional keyword arguments for print
    """
    print(f"{color.value}{text}{_RESET}", *args, **kwargs)


def print_event(event: AgentEvent) -> None:
    """Event sink that renders agent events on the terminal."""
    if event.kind == "trace":
        colored_print(f"  {event.text}", AnsiColors.YELLOW)
    elif event.role == "agent":
        colored_print(f"🤖 {event.text}", AnsiColors.GREEN)
