"""Interactive terminal shell that runs the agent in-process."""

from __future__ import annotations

import asyncio
import logging
from typing import Tuple

from ponder.agent.agent_loop import Agent
from ponder.agent.planner_interface import load_planner
from ponder.common import (
    AnsiColors,
    colored_print,
    print_event,
)
from ponder.config import (
    AgentConfig,
    settings,
)
from ponder.tools.builtin import default_tools

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# CLI
# ---------------------------------------------------------------------------
def get_user_message() -> Tuple[str, bool]:
    """
    Get a message from the user via standard input.

    Returns:
        Tuple of (user_input, success_flag)
        The success_flag is False if input couldn't be read (e.g., Ctrl+C)
    """
    try:
        user_input = input().strip()
        return user_input, True
    except (EOFError, KeyboardInterrupt):
        return "", False


def run_cli(planner_name: str | None = None) -> None:
    """Read queries from stdin and run one agent loop per query."""
    try:
        planner = load_planner(planner_name)
    except ValueError as exc:
        colored_print(f"⚠️ {exc}", AnsiColors.RED)
        return

    # One toolset for the whole shell so the virtual files survive between queries.
    tools = default_tools()
    config = AgentConfig.from_settings(settings)

    colored_print("\n🔮 Ponder shell - type 'exit' or 'quit' (or Ctrl+C) to exit", AnsiColors.GREEN)
    while True:
        colored_print("\n🧑 You: ", AnsiColors.BLUE, end="")
        user_msg, ok = get_user_message()
        if not ok:
            break  # Exit if user input couldn't be retrieved (e.g., Ctrl+C)
        if user_msg.lower() in {"exit", "quit"}:
            break
        if not user_msg:
            continue

        agent = Agent(planner, tools, config=config, on_event=print_event)
        result = asyncio.run(agent.run(user_msg))
        logger.debug("Run finished=%s after %d round(s)", result.finished, result.turns_used)


if __name__ == "__main__":
    run_cli()
