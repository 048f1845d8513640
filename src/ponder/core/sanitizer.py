"""
Turn arbitrary tool results into bounded, HTML-safe text for the conversation history.

:func:`sanitize` is total: it never raises and always terminates, cyclic input included.
"""

import dataclasses
import html
import json
import logging
from typing import (
    Any,
    Mapping,
    Sequence,
)

from pydantic import BaseModel

logger = logging.getLogger(__name__)

DEFAULT_CHAR_LIMIT = 3000
TRUNCATION_MARKER = "…"
CIRCULAR_MARKER = "[Circular]"

# Largest integer a double represents exactly; bigger ones are downcast to float.
_MAX_SAFE_INTEGER = 2**53 - 1

_TEXT_TYPES = (str, bytes, bytearray)


def _is_structured(value: Any) -> bool:
    if isinstance(value, _TEXT_TYPES):
        return False
    if isinstance(value, (BaseModel, Mapping, Sequence, set, frozenset)):
        return True
    return dataclasses.is_dataclass(value) and not isinstance(value, type)


def _escape_and_truncate(text: str, limit: int) -> str:
    safe = html.escape(text, quote=False)  # & < > only
    if len(safe) > limit:
        return safe[:limit] + TRUNCATION_MARKER
    return safe


def _prepare(value: Any, seen: set[int]) -> Any:
    """Copy *value* into plain JSON types, marking repeated container references."""
    if value is None or isinstance(value, (bool, str, float)):
        return value
    if isinstance(value, int):
        return float(value) if abs(value) > _MAX_SAFE_INTEGER else value
    if not _is_structured(value):
        return value
    if id(value) in seen:
        return CIRCULAR_MARKER
    seen.add(id(value))
    if isinstance(value, BaseModel):
        return _prepare(value.model_dump(mode="json"), seen)
    if isinstance(value, Mapping):
        return {str(key): _prepare(item, seen) for key, item in value.items()}
    if dataclasses.is_dataclass(value):
        return {
            field.name: _prepare(getattr(value, field.name), seen)
            for field in dataclasses.fields(value)
        }
    return [_prepare(item, seen) for item in value]


def _serialize(value: Any) -> str:
    return json.dumps(_prepare(value, set()), indent=2, ensure_ascii=False, default=str)


def sanitize(value: Any, limit: int = DEFAULT_CHAR_LIMIT) -> str:
    """
    Convert a tool result into an observation string.

    Parameters
    ----------
    value:
        Anything a tool returned (or a failure message).  Mappings, sequences, sets, pydantic
        models and dataclass instances are rendered as indented JSON.
    limit:
        Maximum number of characters kept after escaping; one ``…`` is appended when cut.

    Returns
    -------
    str
        The escaped, truncated text.  ``None`` becomes ``""``.
    """
    if value is None:
        return ""

    if isinstance(value, bool):
        return _escape_and_truncate("true" if value else "false", limit)

    if _is_structured(value):
        try:
            return _escape_and_truncate(_serialize(value), limit)
        except Exception:  # pylint: disable=broad-except
            logger.debug("Structured serialization failed for %s", type(value).__name__)

    try:
        return _escape_and_truncate(str(value), limit)
    except Exception:  # pylint: disable=broad-except
        logger.debug("String coercion failed for %s", type(value).__name__)
        return ""
