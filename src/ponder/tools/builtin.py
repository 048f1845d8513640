"""
Reference tools shipped with Ponder.

These are simulations meant for demos and tests: a canned web search, an in-memory file store,
a clock and a small arithmetic evaluator.  :func:`default_tools` returns a fresh toolset (with its
own file store) every time it is called.
"""

import ast
import asyncio
import logging
import operator
import re
from datetime import (
    datetime,
    timedelta,
)
from typing import (
    Any,
    Callable,
    Dict,
    List,
    Mapping,
)

from pydantic import (
    BaseModel,
    Field,
)

from ponder.tools import ToolSpec

logger = logging.getLogger(__name__)

SEARCH_DELAY_SECONDS = 0.5


# ---------------------------------------------------------------------------
# Argument schemas
# ---------------------------------------------------------------------------
class SearchArgs(BaseModel):
    """Arguments for ``search_web``."""

    query: str = Field(..., min_length=1)


class CreateFileArgs(BaseModel):
    """Arguments for ``create_file``."""

    filename: str = Field(..., min_length=1)
    content: str = ""


class TimeArgs(BaseModel):
    """Arguments for ``get_current_time``."""

    date: str = "today"


class CalculatorArgs(BaseModel):
    """Arguments for ``calculator``."""

    expression: str


# ---------------------------------------------------------------------------
# Calculator
# ---------------------------------------------------------------------------
_ALLOWED_EXPRESSION = re.compile(r"^[0-9+\-*/().% \t]+$")

_BINARY_OPS: Dict[type, Callable[[Any, Any], Any]] = {
    ast.Add: operator.add,
    ast.Sub: operator.sub,
    ast.Mult: operator.mul,
    ast.Div: operator.truediv,
    ast.Mod: operator.mod,
}
_UNARY_OPS: Dict[type, Callable[[Any], Any]] = {
    ast.UAdd: operator.pos,
    ast.USub: operator.neg,
}


def _evaluate(node: ast.AST) -> Any:
    if isinstance(node, ast.Expression):
        return _evaluate(node.body)
    if isinstance(node, ast.Constant) and isinstance(node.value, (int, float)):
        return node.value
    if isinstance(node, ast.BinOp) and type(node.op) in _BINARY_OPS:
        return _BINARY_OPS[type(node.op)](_evaluate(node.left), _evaluate(node.right))
    if isinstance(node, ast.UnaryOp) and type(node.op) in _UNARY_OPS:
        return _UNARY_OPS[type(node.op)](_evaluate(node.operand))
    raise ValueError(f"unsupported expression element {type(node).__name__}")


def calculate(expression: str) -> str:
    """Evaluate a simple arithmetic expression and format the outcome."""
    if not isinstance(expression, str) or not _ALLOWED_EXPRESSION.match(expression):
        return "Calculator error: only digits, spaces, and operators + - * / % ( ) are allowed."
    try:
        result = _evaluate(ast.parse(expression.strip(), mode="eval"))
    except (SyntaxError, ValueError, ArithmeticError, RecursionError) as exc:
        return f"Calculator error: {exc}"
    if isinstance(result, float) and result.is_integer():
        result = int(result)
    return f"Result: {result}"


# ---------------------------------------------------------------------------
# Toolset
# ---------------------------------------------------------------------------
def default_tools() -> List[ToolSpec]:
    """Build the reference toolset."""
    files: Dict[str, str] = {}
    specs: List[ToolSpec] = []

    async def search_web(args: Mapping[str, Any]) -> str:
        query = args["query"]
        logger.info("Searching web for: %s", query)
        await asyncio.sleep(SEARCH_DELAY_SECONDS)
        lowered = query.lower()
        if "react" in lowered:
            return (
                "React is a popular JavaScript library for building user interfaces, maintained "
                "by Meta. It allows developers to create large web applications that can change "
                "data, without reloading the page."
            )
        if "agentic workflow" in lowered:
            return (
                "An agentic workflow involves a loop of reasoning, acting, and observing. The "
                "agent reasons about a problem, chooses a tool (action), and observes the result "
                "to inform its next step. This is inspired by frameworks like ReAct (Reason+Act)."
            )
        return (
            f'No specific information found for "{query}". '
            "General knowledge suggests it's a complex topic."
        )

    async def create_file(args: Mapping[str, Any]) -> str:
        filename = args["filename"]
        files[filename] = args.get("content", "")
        logger.info("Creating file: %s", filename)
        return f'File "{filename}" created successfully.'

    async def list_files(_args: Mapping[str, Any]) -> str:
        if not files:
            return "The virtual file system is empty."
        return f"Files in virtual system: [{', '.join(files)}]"

    async def get_current_time(args: Mapping[str, Any]) -> str:
        when = datetime.now()
        if str(args.get("date", "today")).lower() == "yesterday":
            when -= timedelta(days=1)
        return when.strftime("%Y-%m-%d %H:%M:%S")

    async def list_tools(_args: Mapping[str, Any]) -> str:
        lines = ["Available tools:"]
        lines.extend(f"- {s.name}: {s.description} | usage: {s.usage}" for s in specs)
        return "\n".join(lines)

    async def calculator(args: Mapping[str, Any]) -> str:
        return calculate(args["expression"])

    specs.extend(
        [
            ToolSpec(
                name="search_web",
                description="Searches the web for information on a given topic.",
                usage='{"tool": "search_web", "arguments": {"query": "your search query"}}',
                implementation=search_web,
                parameters=SearchArgs,
            ),
            ToolSpec(
                name="create_file",
                description="Creates a new file with specified content in the virtual file system.",
                usage='{"tool": "create_file", "arguments": {"filename": "notes.txt", '
                '"content": "content of the file"}}',
                implementation=create_file,
                parameters=CreateFileArgs,
            ),
            ToolSpec(
                name="list_files",
                description="Lists all files currently in the virtual file system.",
                usage='{"tool": "list_files", "arguments": {}}',
                implementation=list_files,
            ),
            ToolSpec(
                name="get_current_time",
                description="Gets the current date and time. Accepts a relative date like "
                '"yesterday".',
                usage='{"tool": "get_current_time", "arguments": {"date": "today"}}',
                implementation=get_current_time,
                parameters=TimeArgs,
            ),
            ToolSpec(
                name="list_tools",
                description="Lists the available tools and how to call them.",
                usage='{"tool": "list_tools", "arguments": {}}',
                implementation=list_tools,
            ),
            ToolSpec(
                name="calculator",
                description="Evaluates a simple arithmetic expression using + - * / % and "
                "parentheses.",
                usage='{"tool": "calculator", "arguments": {"expression": "1 + 2 * 3"}}',
                implementation=calculator,
                parameters=CalculatorArgs,
            ),
        ]
    )
    return specs
