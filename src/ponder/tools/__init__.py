"""
Tool registry for Ponder.

A :class:`ToolSpec` describes one capability the planner may call; :class:`ToolRegistry` is the
name-keyed lookup table the agent dispatches through.  Registries are built once from the
collaborator-supplied tool list and are read-only afterwards.
"""

import logging
from typing import (
    Any,
    Callable,
    Dict,
    Iterable,
    Iterator,
    List,
    Mapping,
    Optional,
    Type,
)

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
)

logger = logging.getLogger(__name__)


class ToolSpec(BaseModel):
    """
    Contract for a single tool.

    ``implementation`` receives the argument mapping and may be a coroutine function or a plain
    function; it returns any JSON-compatible value or a string.  ``parameters`` optionally names a
    pydantic model used to validate arguments before the call.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    name: str = Field(..., description="Unique, stable tool name")
    description: str = ""
    usage: str = Field("", description="Example invocation shown to the planner")
    implementation: Callable[..., Any]
    parameters: Optional[Type[BaseModel]] = None

    @field_validator("name")
    @classmethod
    def _name_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("tool name must not be empty")
        return value

    def describe(self) -> Dict[str, str]:
        """Planner/API-facing view without the implementation."""
        return {"name": self.name, "description": self.description, "usage": self.usage}


class ToolRegistry:
    """
    Validated, name-keyed lookup table over :class:`ToolSpec` entries.

    Entries without a usable name are skipped with a warning.  When two entries share a name the
    later one shadows the earlier one.
    """

    def __init__(self, tools: Iterable[ToolSpec | Mapping[str, Any]] | None = None):
        self._tools: Dict[str, ToolSpec] = {}
        for entry in tools or []:
            spec = self._coerce(entry)
            if spec is None:
                continue
            if spec.name in self._tools:
                logger.warning("Tool '%s' registered twice; the later definition wins", spec.name)
            logger.debug("Registering tool '%s'", spec.name)
            self._tools[spec.name] = spec

    @staticmethod
    def _coerce(entry: Any) -> Optional[ToolSpec]:
        if isinstance(entry, ToolSpec):
            return entry
        if isinstance(entry, Mapping):
            try:
                return ToolSpec.model_validate(dict(entry))
            except ValidationError as exc:
                logger.warning("Skipping invalid tool entry: %s", exc.errors()[0]["msg"])
                return None
        logger.warning("Skipping tool entry of unsupported type %s", type(entry).__name__)
        return None

    def get(self, name: str) -> Optional[ToolSpec]:
        """Return the spec registered under *name*, or ``None``."""
        return self._tools.get(name)

    def names(self) -> List[str]:
        return list(self._tools)

    def specs(self) -> List[ToolSpec]:
        return list(self._tools.values())

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def __iter__(self) -> Iterator[ToolSpec]:
        return iter(self._tools.values())

    def __len__(self) -> int:
        return len(self._tools)
