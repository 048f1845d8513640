"""
Sanity tests for the tool registry and executor.

Run with:
$ pytest -q
"""

import asyncio
import time
from typing import Any, Mapping

from pydantic import BaseModel

from ponder.agent.tool_executor import (
    ToolArgumentError,
    ToolExecutor,
    ToolTimeoutError,
    UnknownToolError,
)
from ponder.core.schema import ToolCall
from ponder.tools import (
    ToolRegistry,
    ToolSpec,
)


class AddArgs(BaseModel):
    """Arguments for the ``add`` test tool."""

    a: int
    b: int


async def _add(args: Mapping[str, Any]) -> int:
    """Return the sum of two integers (used only for tests)."""
    return args["a"] + args["b"]


def _shout(args: Mapping[str, Any]) -> str:
    return str(args.get("text", "")).upper()


async def _boom(_args: Mapping[str, Any]) -> None:
    raise RuntimeError("kaboom")


async def _hang(_args: Mapping[str, Any]) -> None:
    await asyncio.Event().wait()


async def _html(_args: Mapping[str, Any]) -> str:
    return "<b>" + "x" * 100 + "</b>"


def _executor(timeout_ms: int = 1000, limit: int = 3000) -> ToolExecutor:
    registry = ToolRegistry(
        [
            ToolSpec(name="add", implementation=_add, parameters=AddArgs),
            ToolSpec(name="shout", implementation=_shout),
            ToolSpec(name="boom", implementation=_boom),
            ToolSpec(name="hang", implementation=_hang),
            ToolSpec(name="html", implementation=_html),
        ]
    )
    return ToolExecutor(registry, timeout_ms=timeout_ms, observation_char_limit=limit)


def test_execute_tool_success() -> None:
    """Executor should return the correct value when the tool is valid."""

    assert asyncio.run(_executor().execute_tool("add", {"a": 2, "b": 3})) == 5


def test_execute_tool_sync_implementation() -> None:
    """Plain functions run too."""

    assert asyncio.run(_executor().execute_tool("shout", {"text": "hi"})) == "HI"


def test_execute_tool_missing() -> None:
    """Executor should raise *UnknownToolError* for an unknown tool."""

    try:
        asyncio.run(_executor().execute_tool("not_a_tool", {}))
    except UnknownToolError as exc:
        assert "not_a_tool" in str(exc)
    else:  # pragma: no cover
        raise AssertionError("UnknownToolError was not raised")


def test_execute_tool_bad_args() -> None:
    """Executor should raise *ToolArgumentError* for arguments failing the schema."""

    try:
        asyncio.run(_executor().execute_tool("add", {"a": 2}))  # missing 'b'
    except ToolArgumentError as exc:
        assert "Invalid arguments" in str(exc)
        assert "b" in str(exc)
    else:  # pragma: no cover
        raise AssertionError("ToolArgumentError was not raised")


def test_execute_tool_timeout() -> None:
    """A tool that never settles is cut off."""

    try:
        asyncio.run(_executor(timeout_ms=10).execute_tool("hang", {}))
    except ToolTimeoutError as exc:
        assert "10ms" in str(exc)
    else:  # pragma: no cover
        raise AssertionError("ToolTimeoutError was not raised")


def test_dispatch_unknown_tool() -> None:
    """Unknown names become an observation instead of an error."""

    result = asyncio.run(_executor().dispatch(ToolCall(id="c1", name="frobnicate")))
    assert result.status == "unknown"
    assert "Unknown tool 'frobnicate'" in result.observation


def test_dispatch_failure() -> None:
    """Exceptions raised by the implementation become a failure observation."""

    result = asyncio.run(_executor().dispatch(ToolCall(id="c1", name="boom")))
    assert result.status == "failed"
    assert result.observation == "Tool 'boom' failed: kaboom"


def test_dispatch_timeout_is_bounded() -> None:
    """Timeouts are reported like failures and return promptly."""

    started = time.monotonic()
    result = asyncio.run(_executor(timeout_ms=10).dispatch(ToolCall(id="c1", name="hang")))
    assert time.monotonic() - started < 2
    assert result.status == "failed"
    assert "timeout" in result.observation


def test_dispatch_invalid_arguments() -> None:
    """Schema violations are reported, not raised."""

    result = asyncio.run(_executor().dispatch(ToolCall(id="c1", name="add", args={"a": "x"})))
    assert result.status == "invalid"
    assert "Invalid arguments for tool 'add'" in result.observation


def test_dispatch_sanitizes_observation() -> None:
    """Results are escaped and truncated before they reach the history."""

    result = asyncio.run(_executor(limit=20).dispatch(ToolCall(id="c1", name="html")))
    assert result.status == "ok"
    assert result.observation.startswith("&lt;b&gt;")
    assert len(result.observation) == 21
    assert result.observation.endswith("…")


def test_registry_last_registration_wins() -> None:
    """Duplicate names shadow earlier entries."""

    registry = ToolRegistry(
        [
            ToolSpec(name="dup", description="first", implementation=_add),
            ToolSpec(name="dup", description="second", implementation=_shout),
        ]
    )
    assert len(registry) == 1
    assert registry.get("dup").description == "second"


def test_registry_skips_entries_without_name() -> None:
    """Invalid entries are dropped while building the registry."""

    registry = ToolRegistry(
        [
            {"description": "nameless", "implementation": _add},
            {"name": "   ", "implementation": _add},
            {"name": "ok", "implementation": _add, "usage": "{}"},
        ]
    )
    assert registry.names() == ["ok"]
    assert "ok" in registry
    assert "nameless" not in registry
