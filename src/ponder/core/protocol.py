"""
Planner-facing protocol.

The planner is asked to answer every turn with exactly one JSON object:

    {"tool": "<name>", "arguments": { ... }}
    {"final": "<answer>"}

Internally a multi-call form ``{"tool_calls": [{"name": ..., "arguments": ...}, ...]}`` is also
honoured.  LLMs do not reliably follow instructions, so :func:`parse_decision` works through an
ordered list of attempts and degrades to plain content instead of failing.
"""

import json
import logging
import re
from typing import (
    Any,
    Callable,
    Dict,
    Iterable,
    List,
    Mapping,
    Optional,
    Sequence,
    Tuple,
)

from ponder.core.schema import (
    AssistantTurn,
    ContentDecision,
    Decision,
    EmptyDecision,
    ToolCall,
    ToolCallsDecision,
    Turn,
)

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = """\
You are an agent that works in an iterative loop: Think -> Act (call a tool) -> Observe -> Repeat, \
until the task is finished.
On every turn, respond with EXACTLY ONE JSON object and nothing else. You must choose one of:

1) Tool call:
{"tool":"<tool_name>","arguments":{...}}

2) Final answer in natural language:
{"final":"<your concise, human-readable answer>"}

Rules:
- Use ONLY tools listed below. Do not invent tool names or parameters.
- If no tool is appropriate or the user asks a simple question, reply with {"final":"..."}.
- After you receive an "OBSERVATION[...]" message, use it to decide the next action \
(another tool or a final answer).
- Do NOT include any text outside the single JSON object.

Available Tools:
"""

CONTINUE_PROMPT = "Continue with the next step. Reply with exactly one JSON object."

# Nested decoding depth for arguments that arrive as (possibly double-encoded) JSON strings.
_MAX_ARG_DECODE_DEPTH = 3

_FENCE = "```"
# Info string after an opening fence: ``json`` (content may follow on the same line) or a tag line.
_FENCE_INFO = re.compile(r"json\b|[\w+-]*[ \t]*\n", re.IGNORECASE)
_EMBEDDED_FINAL = re.compile(r'\{\s*"final"\s*:\s*"((?:[^"\\]|\\.)*)"\s*\}', re.DOTALL)
_EMBEDDED_TOOL = re.compile(
    r"""\{\s*["'](?:tool|name)["']\s*:\s*["']([^"']+)["']\s*,\s*"""
    r"""["']arguments["']\s*:\s*(\{[^{}]*\}|"(?:[^"\\]|\\.)*")\s*\}""",
    re.DOTALL,
)


# ---------------------------------------------------------------------------
# Prompt
# ---------------------------------------------------------------------------
def build_prompt(tools: Iterable[Any]) -> str:
    """
    Build the planner instructions for *tools*.

    Accepts tool specs (objects with ``name``, ``description`` and ``usage`` attributes) or plain
    mappings with the same keys.
    """
    lines = []
    for tool in tools or []:
        if isinstance(tool, Mapping):
            name = tool.get("name") or "unknown"
            description = tool.get("description") or ""
            usage = tool.get("usage") or ""
        else:
            name = getattr(tool, "name", None) or "unknown"
            description = getattr(tool, "description", "") or ""
            usage = getattr(tool, "usage", "") or ""
        lines.append(f"- {name}: {description}\n  Usage: {usage}")
    return SYSTEM_PROMPT + "\n".join(lines) + "\n"


# ---------------------------------------------------------------------------
# Small helpers
# ---------------------------------------------------------------------------
def strip_code_fence(text: str) -> str:
    """Remove a single fenced code block if it wraps the whole of *text*."""
    stripped = text.strip()
    if (
        len(stripped) < 2 * len(_FENCE)
        or not stripped.startswith(_FENCE)
        or not stripped.endswith(_FENCE)
    ):
        return stripped
    body = stripped[len(_FENCE) : -len(_FENCE)]
    info = _FENCE_INFO.match(body)
    if info:
        body = body[info.end() :]
    return body.strip()


def _loads(text: str) -> Tuple[bool, Any]:
    try:
        return True, json.loads(text)
    except (ValueError, RecursionError):
        return False, None


def parse_arguments(raw: Any, _depth: int = 0) -> Dict[str, Any]:
    """
    Normalize tool arguments into a mapping.

    Handles a mapping as-is, a JSON string (optionally fenced), and a JSON string that itself
    decodes to another JSON string.  Anything else yields ``{}``.
    """
    if raw is None:
        return {}
    if isinstance(raw, Mapping):
        return {str(key): value for key, value in raw.items()}
    if isinstance(raw, str) and _depth < _MAX_ARG_DECODE_DEPTH:
        ok, decoded = _loads(strip_code_fence(raw))
        if ok:
            return parse_arguments(decoded, _depth + 1)
    return {}


def _call_name(entry: Mapping[str, Any]) -> Optional[str]:
    function = entry.get("function")
    candidates = [entry.get("name"), entry.get("tool")]
    if isinstance(function, Mapping):
        candidates.append(function.get("name"))
    for candidate in candidates:
        if isinstance(candidate, str) and candidate.strip():
            return candidate.strip()
    return None


def _call_arguments(entry: Mapping[str, Any]) -> Any:
    for key in ("arguments", "args"):
        if entry.get(key) is not None:
            return entry[key]
    function = entry.get("function")
    if isinstance(function, Mapping):
        return function.get("arguments")
    return None


def _to_call(entry: Any) -> Optional[ToolCall]:
    if not isinstance(entry, Mapping):
        return None
    name = _call_name(entry)
    if name is None:
        return None
    call_id = entry.get("id")
    return ToolCall(
        id=call_id if isinstance(call_id, str) and call_id else None,
        name=name,
        args=parse_arguments(_call_arguments(entry)),
    )


# ---------------------------------------------------------------------------
# Parse attempts, tried in order; the first one returning a decision wins.
# ---------------------------------------------------------------------------
def _from_json(cleaned: str) -> Optional[Decision]:
    ok, obj = _loads(cleaned)
    if not ok:
        return None

    if isinstance(obj, str):
        return ContentDecision(text=obj.strip(), stop_reason="continue") if obj.strip() else None
    if not isinstance(obj, Mapping):
        return None

    if isinstance(obj.get("final"), str):
        return ContentDecision(text=obj["final"], stop_reason="final")

    if isinstance(obj.get("tool_calls"), list):
        calls = [call for call in map(_to_call, obj["tool_calls"]) if call is not None]
        if calls:
            return ToolCallsDecision(tool_calls=calls, stop_reason="continue")

    if obj.get("tool") or obj.get("name"):
        call = _to_call(obj)
        if call is not None:
            return ToolCallsDecision(tool_calls=[call], stop_reason="continue")

    return None


def _from_embedded_final(cleaned: str) -> Optional[Decision]:
    match = _EMBEDDED_FINAL.search(cleaned)
    if not match:
        return None
    ok, text = _loads(f'"{match.group(1)}"')
    return ContentDecision(text=text if ok else match.group(1), stop_reason="final")


def _from_embedded_tool(cleaned: str) -> Optional[Decision]:
    match = _EMBEDDED_TOOL.search(cleaned)
    if not match:
        return None
    name = match.group(1).strip()
    if not name:
        return None
    call = ToolCall(name=name, args=parse_arguments(match.group(2)))
    return ToolCallsDecision(tool_calls=[call], stop_reason="continue")


_ATTEMPTS: Sequence[Callable[[str], Optional[Decision]]] = (
    _from_json,
    _from_embedded_final,
    _from_embedded_tool,
)


def parse_decision(raw_text: Any) -> Decision:
    """
    Interpret one planner response.  Never raises.

    Returns
    -------
    Decision
        :class:`ToolCallsDecision`, :class:`ContentDecision` or :class:`EmptyDecision`
        (the latter only for empty input).
    """
    raw = raw_text if isinstance(raw_text, str) else ("" if raw_text is None else str(raw_text))
    cleaned = strip_code_fence(raw)

    for attempt in _ATTEMPTS:
        try:
            decision = attempt(cleaned)
        except Exception:  # pylint: disable=broad-except
            logger.debug("Parse attempt %s failed", attempt.__name__, exc_info=True)
            continue
        if decision is not None:
            return decision

    if cleaned:
        logger.debug("Planner output is not a structured decision; using it as content")
        return ContentDecision(text=cleaned, stop_reason="continue")
    if raw:
        return ContentDecision(text=raw, stop_reason="continue")
    return EmptyDecision()


# ---------------------------------------------------------------------------
# History rendering for text-only planners
# ---------------------------------------------------------------------------
def _render_assistant(turn: AssistantTurn) -> str:
    if not turn.tool_calls:
        return turn.content
    issued = [json.dumps({"tool": c.name, "arguments": c.args}, default=str) for c in turn.tool_calls]
    return "\n".join(filter(None, [turn.content, *issued]))


def history_to_messages(history: Iterable[Turn]) -> List[Dict[str, str]]:
    """
    Flatten history into alternating ``user`` / ``assistant`` text messages.

    Tool observations are delivered to the planner as user messages; assistant tool-call turns are
    rendered as the JSON they issued; consecutive messages of the same role are merged.  The list
    always ends with a user message, so an assistant reply is never sent as a prefill.
    """
    messages: List[Dict[str, str]] = []
    for turn in history:
        if isinstance(turn, AssistantTurn):
            role, text = "assistant", _render_assistant(turn)
        else:
            role, text = "user", turn.content
        if not text:
            continue
        if messages and messages[-1]["role"] == role:
            messages[-1]["content"] += "\n\n" + text
        else:
            messages.append({"role": role, "content": text})
    if messages and messages[-1]["role"] == "assistant":
        messages.append({"role": "user", "content": CONTINUE_PROMPT})
    return messages
