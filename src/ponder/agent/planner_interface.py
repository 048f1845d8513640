"""
Planner interface for Ponder.

This module is the only place that *directly* calls an LLM.  Everything else (agent loop, tools,
protocol) stays model-agnostic.

Three back-ends are supported out of the box:

1. **Google Gemini** via the Generative Language REST API (``httpx``).
2. **OpenAI** chat completions (``openai`` SDK).
3. **Anthropic** messages (``anthropic`` SDK).

A planner is a *Completion Provider*: :meth:`BasePlanner.get_completion` never raises.  Transport
failures are retried a few times with exponential backoff and then degrade into a content decision
describing the error.

Additional providers can be added by subclassing :class:`BasePlanner` and registering via
:func:`register_planner`.
"""

import asyncio
import logging
from abc import (
    ABC,
    abstractmethod,
)
from typing import (
    Any,
    Callable,
    ClassVar,
    Dict,
    Iterable,
    List,
    Sequence,
    Type,
)

import httpx

from ponder.config import (
    Settings,
    settings,
)
from ponder.core.protocol import (
    build_prompt,
    history_to_messages,
    parse_decision,
)
from ponder.core.schema import (
    ContentDecision,
    Decision,
    Turn,
)

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Registry helpers
# ---------------------------------------------------------------------------
_PLANNER_REGISTRY: dict[str, Type["BasePlanner"]] = {}


def register_planner(name: str) -> Callable:
    """Decorator to register a planner class under *name*."""

    def wrapper(cls: Type["BasePlanner"]) -> Type["BasePlanner"]:
        _PLANNER_REGISTRY[name] = cls
        return cls

    return wrapper


def available_planners() -> List[str]:
    """Names accepted by :func:`load_planner`."""
    return sorted(_PLANNER_REGISTRY)


def load_planner(name: str | None = None, config: Settings | None = None) -> "BasePlanner":
    """
    Factory that returns an instantiated planner.

    Fallback order:
    1. *name* arg
    2. ``PLANNER`` setting (env / ``.env``)

    Raises
    ------
    ValueError
        If the planner is unknown or its API key is not configured.
    """

    config = config or settings
    target = (name or config.PLANNER).lower()
    cls = _PLANNER_REGISTRY.get(target)
    if cls is None:
        raise ValueError(f"Planner '{target}' is not registered.")
    return cls.from_settings(config)


# ---------------------------------------------------------------------------
# Base class
# ---------------------------------------------------------------------------
class BasePlanner(ABC):
    """Abstract planner that turns conversation history into the next :class:`Decision`."""

    LABEL: ClassVar[str] = "Planner"

    def __init__(
        self,
        api_key: str | None,
        model: str,
        max_attempts: int = 3,
        backoff_ms: int = 200,
    ):
        if not api_key:
            raise ValueError("API key is required.")
        self.api_key = api_key
        self.model = model
        self.max_attempts = max(1, max_attempts)
        self.backoff_ms = backoff_ms

    @classmethod
    @abstractmethod
    def from_settings(cls, config: Settings) -> "BasePlanner":
        """Instantiate from application settings."""

    @abstractmethod
    async def _request(self, system_prompt: str, messages: List[Dict[str, str]]) -> str:
        """Send one request and return the raw completion text."""

    async def get_completion(self, history: Sequence[Turn], tools: Iterable[Any]) -> Decision:
        """Return the planner's next decision; transport errors never escape."""
        system_prompt = build_prompt(tools)
        messages = history_to_messages(history)

        last_error: Exception | None = None
        for attempt in range(self.max_attempts):
            try:
                text = await self._request(system_prompt, messages)
                logger.debug("%s planner response: %s", self.LABEL, text)
                return parse_decision(text)
            except Exception as exc:  # pylint: disable=broad-except
                last_error = exc
                logger.warning(
                    "%s request failed (attempt %d/%d): %s",
                    self.LABEL,
                    attempt + 1,
                    self.max_attempts,
                    exc,
                )
                if attempt < self.max_attempts - 1:
                    await asyncio.sleep(self.backoff_ms * (2**attempt) / 1000)

        logger.error("%s planner gave up after %d attempts", self.LABEL, self.max_attempts)
        return ContentDecision(
            text=f"[ProviderError {self.LABEL}] {last_error or 'unknown error'}",
            stop_reason="continue",
        )


# ---------------------------------------------------------------------------
# Concrete planners
# ---------------------------------------------------------------------------
@register_planner("gemini")
class GeminiPlanner(BasePlanner):
    """Google Gemini planner over the REST API with an httpx client."""

    LABEL = "Gemini"
    BASE_URL: ClassVar[str] = "https://generativelanguage.googleapis.com/v1beta/models"

    def __init__(
        self,
        api_key: str | None,
        model: str,
        max_attempts: int = 3,
        backoff_ms: int = 200,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        super().__init__(api_key, model, max_attempts=max_attempts, backoff_ms=backoff_ms)
        self._transport = transport

    @classmethod
    def from_settings(cls, config: Settings) -> "GeminiPlanner":
        return cls(
            config.GOOGLE_API_KEY,
            config.GEMINI_MODEL,
            max_attempts=config.PROVIDER_MAX_ATTEMPTS,
            backoff_ms=config.PROVIDER_BACKOFF_MS,
        )

    async def _request(self, system_prompt: str, messages: List[Dict[str, str]]) -> str:
        payload = {
            "system_instruction": {"parts": [{"text": system_prompt}]},
            "contents": [
                {
                    "role": "model" if msg["role"] == "assistant" else "user",
                    "parts": [{"text": msg["content"]}],
                }
                for msg in messages
            ],
        }
        url = f"{self.BASE_URL}/{self.model}:generateContent"

        async with httpx.AsyncClient(timeout=30.0, transport=self._transport) as client:
            resp = await client.post(url, params={"key": self.api_key}, json=payload)
            resp.raise_for_status()
            data = resp.json()

        candidates = data.get("candidates") or [{}]
        parts = (candidates[0].get("content") or {}).get("parts") or [{}]
        return (parts[0].get("text") or "").strip()


@register_planner("openai")
class OpenAIPlanner(BasePlanner):
    """OpenAI chat-completions planner."""

    LABEL = "OpenAI"

    @classmethod
    def from_settings(cls, config: Settings) -> "OpenAIPlanner":
        return cls(
            config.OPENAI_API_KEY,
            config.OPENAI_MODEL,
            max_attempts=config.PROVIDER_MAX_ATTEMPTS,
            backoff_ms=config.PROVIDER_BACKOFF_MS,
        )

    async def _request(self, system_prompt: str, messages: List[Dict[str, str]]) -> str:
        import openai  # pylint: disable=import-outside-toplevel

        client = openai.AsyncOpenAI(api_key=self.api_key)
        resp = await client.chat.completions.create(
            model=self.model,
            messages=[{"role": "system", "content": system_prompt}, *messages],  # type: ignore
            temperature=0.2,
        )
        return (resp.choices[0].message.content or "").strip()


@register_planner("anthropic")
class AnthropicPlanner(BasePlanner):
    """Anthropic Claude planner."""

    LABEL = "Anthropic"

    @classmethod
    def from_settings(cls, config: Settings) -> "AnthropicPlanner":
        return cls(
            config.ANTHROPIC_API_KEY,
            config.ANTHROPIC_MODEL,
            max_attempts=config.PROVIDER_MAX_ATTEMPTS,
            backoff_ms=config.PROVIDER_BACKOFF_MS,
        )

    async def _request(self, system_prompt: str, messages: List[Dict[str, str]]) -> str:
        import anthropic  # pylint: disable=import-outside-toplevel

        client = anthropic.AsyncAnthropic(api_key=self.api_key)
        response = await client.messages.create(
            model=self.model,
            max_tokens=4096,
            system=system_prompt,
            messages=messages,  # type: ignore
            temperature=0.2,
        )

        # Handle different content block types from Anthropic API
        texts = [block.text for block in response.content if block.type == "text"]
        return "\n".join(texts).strip()
