"""Dispatches tool calls through a :class:`~ponder.tools.ToolRegistry` and wraps errors."""

import asyncio
import inspect
import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import (
    Any,
    Dict,
    Literal,
)

from pydantic import ValidationError

from ponder.core.sanitizer import (
    DEFAULT_CHAR_LIMIT,
    sanitize,
)
from ponder.core.schema import ToolCall
from ponder.tools import ToolRegistry

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_MS = 10_000


class ToolExecutionError(RuntimeError):
    """Raised when a requested tool cannot run or fails."""


class UnknownToolError(ToolExecutionError):
    """The requested name is not in the registry."""


class ToolArgumentError(ToolExecutionError):
    """Arguments did not match the tool's parameter schema."""


class ToolTimeoutError(ToolExecutionError):
    """The tool did not settle within its budget."""


@dataclass(frozen=True)
class DispatchResult:
    """Outcome of one dispatched call; ``observation`` is already sanitized."""

    status: Literal["ok", "unknown", "invalid", "failed"]
    observation: str


class ToolExecutor:
    """
    Run tool calls one at a time with a per-call timeout.

    Parameters
    ----------
    registry:
        Tools available to the planner.
    timeout_ms:
        Wall-clock budget for each call.
    observation_char_limit:
        Character limit passed to :func:`~ponder.core.sanitizer.sanitize`.

    Synchronous implementations run on a private thread pool rather than the event loop's
    default executor.  A thread cannot be interrupted, so a call that times out is abandoned: its
    thread runs to completion in the background and the result is discarded.  Because the pool is
    not the default executor, ``asyncio.run`` does not wait for abandoned calls on shutdown.
    """

    def __init__(
        self,
        registry: ToolRegistry,
        timeout_ms: int = DEFAULT_TIMEOUT_MS,
        observation_char_limit: int = DEFAULT_CHAR_LIMIT,
    ):
        self.registry = registry
        self.timeout_ms = timeout_ms
        self.observation_char_limit = observation_char_limit
        self._pool = ThreadPoolExecutor(thread_name_prefix="ponder-tool")

    async def _invoke(self, implementation: Any, args: Dict[str, Any]) -> Any:
        if inspect.iscoroutinefunction(implementation):
            return await implementation(args)
        loop = asyncio.get_running_loop()
        result = await loop.run_in_executor(self._pool, implementation, args)
        if inspect.isawaitable(result):
            return await result
        return result

    async def execute_tool(self, name: str, args: Dict[str, Any] | None = None) -> Any:
        """
        Look up *name* in the registry and invoke it with *args* under the timeout.

        Returns
        -------
        Any
            Whatever the tool implementation returns.

        Raises
        ------
        UnknownToolError
            If the tool is not registered.
        ToolArgumentError
            If the arguments fail the tool's parameter schema.
        ToolTimeoutError
            If the call does not settle within ``timeout_ms``.
        ToolExecutionError
            If the implementation raises.
        """

        if args is None:
            args = {}

        spec = self.registry.get(name)
        if spec is None:
            raise UnknownToolError(f"Unknown tool '{name}'. Please choose a listed tool.")

        if spec.parameters is not None:
            try:
                args = spec.parameters.model_validate(args).model_dump()
            except ValidationError as exc:
                problems = "; ".join(
                    f"{'.'.join(str(p) for p in err['loc']) or 'arguments'}: {err['msg']}"
                    for err in exc.errors()
                )
                raise ToolArgumentError(f"Invalid arguments for tool '{name}': {problems}") from exc

        logger.debug("Executing tool '%s' with args=%s", name, args)
        # On expiry wait_for cancels coroutines; a worker thread is left to finish on its own.
        try:
            return await asyncio.wait_for(
                self._invoke(spec.implementation, args), timeout=self.timeout_ms / 1000
            )
        except asyncio.TimeoutError as exc:
            raise ToolTimeoutError(f"tool timeout after {self.timeout_ms}ms") from exc
        except Exception as exc:  # noqa: BLE001
            logger.exception("Unhandled error in tool '%s'", name)
            raise ToolExecutionError(str(exc) or type(exc).__name__) from exc

    async def dispatch(self, call: ToolCall) -> DispatchResult:
        """
        Execute *call* and turn every outcome into an observation.

        Nothing raised by the tool escapes: unknown names, invalid arguments, failures and timeouts
        all come back as text for the conversation history.
        """
        try:
            result = await self.execute_tool(call.name, call.args)
        except UnknownToolError as exc:
            logger.warning("%s", exc)
            return DispatchResult("unknown", sanitize(str(exc), self.observation_char_limit))
        except ToolArgumentError as exc:
            logger.warning("%s", exc)
            return DispatchResult("invalid", sanitize(str(exc), self.observation_char_limit))
        except ToolExecutionError as exc:
            logger.warning("Tool '%s' failed: %s", call.name, exc)
            return DispatchResult(
                "failed", sanitize(f"Tool '{call.name}' failed: {exc}", self.observation_char_limit)
            )
        return DispatchResult("ok", sanitize(result, self.observation_char_limit))
