"""Tests for terminal output helpers."""

import pytest

from ponder.common import (
    AnsiColors,
    print_event,
)
from ponder.core.schema import AgentEvent


def test_trace_events_are_yellow(capsys: pytest.CaptureFixture[str]) -> None:
    """Trace lines are indented and printed in yellow."""

    print_event(AgentEvent(kind="trace", text="[plan] calling calculator"))

    out = capsys.readouterr().out
    assert out.startswith(AnsiColors.YELLOW.value + "  [plan] calling calculator")


def test_agent_messages_are_green(capsys: pytest.CaptureFixture[str]) -> None:
    """Agent replies are green; echoed user messages are not printed again."""

    print_event(AgentEvent(kind="message", text="4", role="agent"))
    print_event(AgentEvent(kind="message", text="2+2", role="user"))

    out = capsys.readouterr().out
    assert out.startswith(AnsiColors.GREEN.value)
    assert "4" in out
    assert "2+2" not in out
