"""
HTTP API for Ponder.

It exposes the following endpoints:
- **GET /health**  - liveness probe for health checks.
- **GET /tools**   - the reference toolset offered to the planner.
- **POST /agent**  - one complete agent run: {"message": "..."}

Every request is an independent run; nothing is kept between requests.
"""

import logging
from typing import List

from fastapi import (
    FastAPI,
    HTTPException,
)

from ponder.agent.agent_loop import Agent
from ponder.agent.planner_interface import load_planner
from ponder.api.models import (
    MessageRequest,
    MessageResponse,
    ToolInfo,
)
from ponder.common import (
    AnsiColors,
    colored_print,
)
from ponder.config import (
    AgentConfig,
    settings,
)
from ponder.core.schema import AgentEvent
from ponder.tools.builtin import default_tools

logger = logging.getLogger(__name__)

app = FastAPI(title="Ponder API", version="0.1.0", description="Ponder reason-act-observe agent API")


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------
@app.get("/health", summary="Health check")
async def health() -> dict[str, str]:
    """Return a simple liveness payload."""
    return {"status": "ok"}


@app.get("/tools", response_model=List[ToolInfo], summary="List available tools")
async def list_tools() -> List[ToolInfo]:
    """Describe the tools a run can use."""
    return [ToolInfo(**spec.describe()) for spec in default_tools()]


@app.post("/agent", response_model=MessageResponse, summary="Run the agent on a message")
async def agent_endpoint(req: MessageRequest) -> MessageResponse:
    """Run one agent loop over *req.message* and return the reply with its trace."""
    try:
        planner = load_planner(req.planner)
    except ValueError as exc:
        logger.warning("Planner unavailable: %s", exc)
        raise HTTPException(status_code=503, detail=str(exc)) from exc

    trace: List[str] = []

    def collect(event: AgentEvent) -> None:
        if event.kind == "trace":
            trace.append(event.text)
            logger.debug("%s", event.text)

    agent = Agent(
        planner, default_tools(), config=AgentConfig.from_settings(settings), on_event=collect
    )
    result = await agent.run(req.message)

    return MessageResponse(
        reply=result.reply,
        finished=result.finished,
        turns_used=result.turns_used,
        trace=trace,
        history=result.history,
    )


# ---------------------------------------------------------------------------
# Public helper to launch the API (imported by main.py)
# ---------------------------------------------------------------------------
def run_api(
    host: str = "0.0.0.0", port: int = 8000, reload: bool = False, log_level: str | None = None
) -> None:
    """Start a uvicorn server hosting *app*.

    Parameters
    ----------
    host, port:
        Bind address for the HTTP server.
    reload:
        If *True*, enable auto-reload (useful in development).
    log_level:
        Logging level to use (default from settings if not provided).
    """

    # Lazy import - keeps uvicorn an optional dependency at pkg-import time
    import uvicorn  # pylint: disable=import-outside-toplevel

    if log_level is None:  # Use the default from settings if not provided
        log_level = settings.LOG_LEVEL

    logger.info(
        "Starting Ponder API at %s:%d (reload=%s, log_level=%s)", host, port, reload, log_level
    )
    colored_print(f"🔮 Ponder API is running at http://localhost:{port}.", AnsiColors.GREEN)
    colored_print(f"Visit http://localhost:{port}/docs for API documentation.", AnsiColors.BLUE)
    uvicorn.run(
        "ponder.api.app:app",
        host=host,
        port=port,
        reload=reload,
        log_level=log_level,
    )


# ---------------------------------------------------------------------------
# `python -m ponder.api.app` helper
# ---------------------------------------------------------------------------
if __name__ == "__main__":
    run_api(reload=True)
