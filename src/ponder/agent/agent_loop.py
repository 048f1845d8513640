"""
Main orchestration loop for Ponder.

One :class:`Agent` run drives the planner through Plan -> Act -> Observe rounds until the planner
gives a final answer or the turn ceiling (the safety brake) is reached::

    Planning --tool calls--> Acting ------> Planning
             --content-----> Reflecting --> Planning | Terminal
             --nothing-----> Replanning --> Planning

Tool calls inside a round run sequentially, in the order the planner listed them.
"""

from __future__ import annotations

import json
import logging
import uuid
from typing import (
    Any,
    Callable,
    Iterable,
    List,
    Mapping,
    Optional,
    Protocol,
    Sequence,
)

from ponder.agent.tool_executor import ToolExecutor
from ponder.config import AgentConfig
from ponder.core.schema import (
    AgentEvent,
    AssistantTurn,
    ContentDecision,
    Decision,
    RunResult,
    ToolCall,
    ToolCallsDecision,
    ToolTurn,
    Turn,
    UserTurn,
)
from ponder.tools import (
    ToolRegistry,
    ToolSpec,
)

logger = logging.getLogger(__name__)

STUCK_MESSAGE = "I seem to be stuck in a loop. Please try rephrasing your query."
REPLAN_MESSAGE = "No valid next action. Replanning with constraints."
_PREVIEW_CHARS = 120

EventSink = Callable[[AgentEvent], None]


class CompletionProvider(Protocol):
    """Anything that can produce the next decision; must not raise."""

    async def get_completion(self, history: Sequence[Turn], tools: Iterable[Any]) -> Decision:
        ...


def log_event(event: AgentEvent) -> None:
    """Default sink: write events to this module's logger."""
    if event.kind == "trace":
        logger.info("%s", event.text)
    else:
        logger.info("[%s] %s", event.role, event.text)


def _preview(text: str) -> str:
    return text[:_PREVIEW_CHARS] + ("…" if len(text) > _PREVIEW_CHARS else "")


class Agent:
    """
    Loop controller for a single planner and a fixed toolset.

    Parameters
    ----------
    provider:
        Completion provider consulted once per planning round.
    tools:
        Tool specs (or mappings) to register; duplicate names resolve last-wins.
    config:
        Turn ceiling, per-tool timeout and observation limit.
    on_event:
        Receives every trace and message event.  Defaults to logging.
    """

    def __init__(
        self,
        provider: CompletionProvider,
        tools: Iterable[ToolSpec | Mapping[str, Any]] | ToolRegistry,
        config: AgentConfig | None = None,
        on_event: Optional[EventSink] = None,
    ):
        self.provider = provider
        self.config = config or AgentConfig()
        self.registry = tools if isinstance(tools, ToolRegistry) else ToolRegistry(tools)
        self.executor = ToolExecutor(
            self.registry,
            timeout_ms=self.config.tool_timeout_ms,
            observation_char_limit=self.config.observation_char_limit,
        )
        self.on_event = on_event or log_event
        self._history: List[Turn] = []

    # ------------------------------------------------------------------ #
    # Event helpers
    # ------------------------------------------------------------------ #
    def _emit(self, event: AgentEvent) -> None:
        try:
            self.on_event(event)
        except Exception:  # pylint: disable=broad-except
            logger.exception("Event sink raised; continuing run")

    def _trace(self, text: str) -> None:
        self._emit(AgentEvent(kind="trace", text=text))

    def _message(self, role: str, text: str) -> None:
        self._emit(AgentEvent(kind="message", role=role, text=text))

    # ------------------------------------------------------------------ #
    # Branches
    # ------------------------------------------------------------------ #
    async def _plan(self, tool_specs: List[ToolSpec]) -> Decision:
        try:
            return await self.provider.get_completion(list(self._history), tool_specs)
        except Exception as exc:  # pylint: disable=broad-except
            # Providers must degrade instead of raising; treat a violation the same way.
            logger.exception("Completion provider raised")
            return ContentDecision(text=f"[ProviderError] {exc}", stop_reason="continue")

    def _normalize_calls(self, calls: Iterable[ToolCall]) -> List[ToolCall]:
        """Drop nameless calls and give every call an id unique within this turn."""
        normalized: List[ToolCall] = []
        used_ids: set[str] = set()
        for call in calls:
            name = (call.name or "").strip()
            if not name:
                continue
            call_id = call.id if call.id and call.id not in used_ids else f"call_{uuid.uuid4().hex}"
            used_ids.add(call_id)
            normalized.append(ToolCall(id=call_id, name=name, args=dict(call.args or {})))
        return normalized

    async def _act(self, calls: List[ToolCall]) -> None:
        self._trace(f"[plan] Model proposed {len(calls)} tool call(s).")
        self._history.append(AssistantTurn(content="", tool_calls=calls))

        for call in calls:
            if call.name in self.registry:
                self._trace(f"[act] Executing {call.name} {json.dumps(call.args, default=str)}")
            result = await self.executor.dispatch(call)
            if result.status == "unknown":
                self._trace(f"[act] {result.observation}")
            else:
                self._trace(f"[observe] {call.name} => {_preview(result.observation)}")
            self._history.append(
                ToolTurn(
                    tool_call_id=call.id or "",
                    content=f"OBSERVATION[{call.name}]: {result.observation}",
                )
            )

    def _reflect(self, decision: ContentDecision) -> bool:
        self._trace(f"[reflect] Model produced content. stopReason={decision.stop_reason}")
        self._message("agent", decision.text)
        self._history.append(AssistantTurn(content=decision.text))
        return decision.is_final

    def _replan(self) -> None:
        self._trace("[replan] Model produced no content and no tool. Replanning.")
        self._history.append(AssistantTurn(content=REPLAN_MESSAGE))

    # ------------------------------------------------------------------ #
    # Public API
    # ------------------------------------------------------------------ #
    @property
    def history(self) -> List[Turn]:
        """Copy of the current run's history (empty between runs)."""
        return list(self._history)

    async def run(self, user_input: str) -> RunResult:
        """
        Process *user_input* until a final answer or the turn ceiling.

        Tool and provider failures never propagate; they become history entries or the stuck-run
        message.
        """
        self._history = [UserTurn(content=user_input)]
        self._message("user", user_input)
        tool_specs = self.registry.specs()

        try:
            for turn in range(1, self.config.max_turns + 1):
                decision = await self._plan(tool_specs)

                if isinstance(decision, ToolCallsDecision):
                    calls = self._normalize_calls(decision.tool_calls)
                    if calls:
                        await self._act(calls)
                        continue

                elif isinstance(decision, ContentDecision) and decision.text:
                    if self._reflect(decision):
                        self._trace(f"[stop] Final answer after {turn} planning round(s).")
                        return self._result(decision.text, finished=True, turns=turn)
                    continue

                self._replan()

            self._trace(f"[stop] Turn ceiling of {self.config.max_turns} reached.")
            self._message("agent", STUCK_MESSAGE)
            return self._result(STUCK_MESSAGE, finished=False, turns=self.config.max_turns)
        finally:
            self._history = []

    def _result(self, reply: str, finished: bool, turns: int) -> RunResult:
        return RunResult(
            reply=reply,
            finished=finished,
            turns_used=turns,
            history=[t.to_wire() for t in self._history],
        )
