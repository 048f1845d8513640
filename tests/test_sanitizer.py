"""Tests for observation sanitizing."""

from dataclasses import dataclass
from datetime import datetime
from types import MappingProxyType
from typing import List

from pydantic import BaseModel

from ponder.core.sanitizer import (
    CIRCULAR_MARKER,
    TRUNCATION_MARKER,
    sanitize,
)


def test_none_is_empty() -> None:
    """Absent results produce no text."""

    assert sanitize(None) == ""


def test_primitives_are_stringified() -> None:
    """Strings, numbers and booleans are rendered directly."""

    assert sanitize("plain") == "plain"
    assert sanitize(42) == "42"
    assert sanitize(2.5) == "2.5"
    assert sanitize(True) == "true"


def test_only_ampersand_and_angle_brackets_are_escaped() -> None:
    """Markup is escaped, not stripped; quotes stay as they are."""

    assert sanitize('<a href="x">Tom & Jerry</a>') == (
        '&lt;a href="x"&gt;Tom &amp; Jerry&lt;/a&gt;'
    )


def test_truncation_adds_single_marker() -> None:
    """Output longer than the limit is cut and marked once."""

    text = "abcdefghij" * 10
    out = sanitize(text, limit=25)
    assert len(out) == 26
    assert out.endswith(TRUNCATION_MARKER)
    assert text.startswith(out[:-1])


def test_truncation_applies_after_escaping() -> None:
    """The limit counts escaped characters."""

    out = sanitize("<" * 10, limit=5)
    assert out == "&lt;&" + TRUNCATION_MARKER
    assert ("&lt;" * 10).startswith(out[:-1])


def test_within_limit_is_untouched() -> None:
    """No marker when nothing is cut."""

    assert sanitize("x" * 25, limit=25) == "x" * 25


def test_structures_use_indented_json() -> None:
    """Mappings and sequences serialize with two-space indentation."""

    assert sanitize({"a": 1, "b": [True, None]}) == (
        '{\n  "a": 1,\n  "b": [\n    true,\n    null\n  ]\n}'
    )


def test_self_reference_terminates() -> None:
    """Cycles are replaced with a marker instead of recursing forever."""

    node: dict = {"name": "root"}
    node["self"] = node
    looped: list = [1]
    looped.append(looped)

    assert CIRCULAR_MARKER in sanitize(node)
    assert CIRCULAR_MARKER in sanitize(looped)
    assert CIRCULAR_MARKER in sanitize({"items": [node, looped]})


def test_oversized_integers_are_downcast() -> None:
    """Integers beyond double precision are written as floats."""

    out = sanitize({"n": 2**80, "small": 7})
    assert str(2**80) not in out
    assert "e+24" in out
    assert '"small": 7' in out


def test_unserializable_values_fall_back_to_str() -> None:
    """Values JSON cannot encode are stringified in place."""

    out = sanitize({"when": datetime(2024, 1, 2, 3, 4, 5)})
    assert "2024-01-02 03:04:05" in out


def test_failing_str_yields_empty() -> None:
    """If even string coercion fails the result is empty, not an exception."""

    class Broken:
        """Object whose ``__str__`` blows up."""

        def __str__(self) -> str:
            raise RuntimeError("nope")

    assert sanitize(Broken()) == ""


class Hit(BaseModel):
    """Search hit returned by a model-typed tool."""

    query: str
    ranks: List[int]


@dataclass
class Point:
    """Plain dataclass result."""

    x: int
    y: int


def test_models_and_dataclasses_use_indented_json() -> None:
    """Pydantic models and dataclass instances are rendered like mappings."""

    assert sanitize(Hit(query="x", ranks=[1])) == (
        '{\n  "query": "x",\n  "ranks": [\n    1\n  ]\n}'
    )
    assert sanitize(Point(x=1, y=2)) == '{\n  "x": 1,\n  "y": 2\n}'
    assert sanitize([Point(x=0, y=2**60)]) == (
        '[\n  {\n    "x": 0,\n    "y": 1.152921504606847e+18\n  }\n]'
    )


def test_non_dict_mappings_and_sequences_use_indented_json() -> None:
    """Any mapping or sequence takes the structured path, strings excepted."""

    assert sanitize(MappingProxyType({"a": 1})) == '{\n  "a": 1\n}'
    assert sanitize(range(2)) == "[\n  0,\n  1\n]"
    assert sanitize("[not parsed]") == "[not parsed]"
    assert sanitize(b"raw") == "b'raw'"
