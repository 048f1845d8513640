"""
Ponder entry point.

This file handles startup concerns (arg-parsing, logging) and launches the appropriate interface
(API or CLI).
"""

import argparse
import logging
import sys

from ponder.agent.planner_interface import available_planners
from ponder.config import settings

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
    logging.getLogger("httpx").setLevel(logging.WARNING)


# ---------------------------------------------------------------------------
# Main
# ---------------------------------------------------------------------------
def main(argv: list[str] | None = None) -> None:
    """
    Main entry point for the Ponder application.

    This function sets up the command-line interface, initializes logging, and starts the
    application in either API or CLI mode.
    """
    if argv is None:
        argv = sys.argv[1:]

    parser = argparse.ArgumentParser(description="Run the Ponder reason-act-observe agent")
    parser.add_argument(
        "--mode",
        choices=["api", "cli"],
        type=str.lower,
        default="api",
        help="Launch the REST API or an interactive shell (default: api)",
    )
    parser.add_argument(
        "--planner",
        choices=available_planners(),
        type=str.lower,
        default=None,
        help="Planner back-end (default from env: %s)" % settings.PLANNER,
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
    if args.planner:
        settings.PLANNER = args.planner

    _init_logging(settings.LOG_LEVEL)

    logger.info("Starting Ponder [%s mode]", args.mode)
    logger.debug(
        "Settings: %s",
        settings.model_dump(exclude={"GOOGLE_API_KEY", "OPENAI_API_KEY", "ANTHROPIC_API_KEY"}),
    )

    if args.mode == "api":
        # Lazy import to avoid web dependencies if not needed
        from ponder.api.app import run_api  # pylint: disable=import-outside-toplevel

        run_api(host="0.0.0.0", port=settings.API_PORT, reload=settings.DEBUG)
    else:
        from ponder.client.cli import run_cli  # pylint: disable=import-outside-toplevel

        # Keep the terminal for the conversation; only warnings go to the log stream.
        logging.getLogger("ponder").setLevel(max(logging.WARNING, logging.root.level))
        run_cli()


if __name__ == "__main__":
    main()
