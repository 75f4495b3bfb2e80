"""Structural equality for bean object graphs.

``deep_diff`` compares two values field by field and returns every
divergence with its path, so a failed round-trip names the first field that
did not survive. Beans are compared over their serialized properties;
mappings by key; sequences by position; sets by membership; everything else
with ``==``.
"""

from __future__ import annotations

from collections.abc import Mapping, Set
from typing import Any

from pydantic import BaseModel

from beancheck.beans import Bean
from beancheck.introspection import describe
from beancheck.models import Difference


def deep_diff(expected: Any, actual: Any, path: str = "$") -> list[Difference]:
    """Return the structural differences between *expected* and *actual*.

    Args:
        expected: The original value.
        actual: The reconstructed value.
        path: Path label of the root value.

    Returns:
        Differences in traversal order; empty when structurally equal.
    """
    differences: list[Difference] = []
    _walk(expected, actual, path, differences)
    return differences


def structurally_equal(expected: Any, actual: Any) -> bool:
    """Return True when the two values have no structural differences."""
    return not deep_diff(expected, actual)


def _walk(expected: Any, actual: Any, path: str, out: list[Difference]) -> None:
    if isinstance(expected, BaseModel) or isinstance(actual, BaseModel):
        _walk_model(expected, actual, path, out)
    elif isinstance(expected, Mapping) and isinstance(actual, Mapping):
        _walk_mapping(expected, actual, path, out)
    elif _is_sequence(expected) and _is_sequence(actual):
        _walk_sequence(expected, actual, path, out)
    elif isinstance(expected, Set) and isinstance(actual, Set):
        if expected != actual:
            out.append(_difference(path, sorted(map(repr, expected)), sorted(map(repr, actual))))
    elif type(expected) is not type(actual) and not _both_numbers(expected, actual):
        out.append(Difference(path=path, expected=_typed(expected), actual=_typed(actual)))
    elif expected != actual:
        out.append(_difference(path, expected, actual))


def _walk_model(expected: Any, actual: Any, path: str, out: list[Difference]) -> None:
    if type(expected) is not type(actual):
        out.append(Difference(path=path, expected=_typed(expected), actual=_typed(actual)))
        return
    cls = type(expected)
    if issubclass(cls, Bean):
        names = [p.name for p in describe(cls)]
    else:
        names = list(cls.model_fields)
    for name in names:
        _walk(getattr(expected, name), getattr(actual, name), f"{path}.{name}", out)


def _walk_mapping(expected: Mapping, actual: Mapping, path: str, out: list[Difference]) -> None:
    for key, value in expected.items():
        child = f"{path}[{key!r}]"
        if key not in actual:
            out.append(Difference(path=child, expected=repr(value), actual="<missing>"))
        else:
            _walk(value, actual[key], child, out)
    for key, value in actual.items():
        if key not in expected:
            out.append(Difference(path=f"{path}[{key!r}]", expected="<missing>", actual=repr(value)))


def _walk_sequence(expected: Any, actual: Any, path: str, out: list[Difference]) -> None:
    if len(expected) != len(actual):
        out.append(
            Difference(
                path=f"{path}.length",
                expected=str(len(expected)),
                actual=str(len(actual)),
            )
        )
    for index, (left, right) in enumerate(zip(expected, actual, strict=False)):
        _walk(left, right, f"{path}[{index}]", out)


def _is_sequence(value: Any) -> bool:
    return isinstance(value, (list, tuple))


def _both_numbers(left: Any, right: Any) -> bool:
    numeric = (int, float)
    return (
        isinstance(left, numeric)
        and isinstance(right, numeric)
        and not isinstance(left, bool)
        and not isinstance(right, bool)
    )


def _typed(value: Any) -> str:
    return f"{type(value).__name__}({value!r})"


def _difference(path: str, expected: Any, actual: Any) -> Difference:
    return Difference(path=path, expected=repr(expected), actual=repr(actual))
