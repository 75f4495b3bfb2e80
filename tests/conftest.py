"""Shared fixtures for the beancheck test suite."""

from __future__ import annotations

import logging
from typing import Any

from beancheck.beans import Bean, qualified_name
from beancheck.hierarchy import resolve_root
from beancheck.models import BeanCase, VerifierConfig
from beancheck.serialization import JsonSerializer
import pytest

# ---------------------------------------------------------------------------
# Factory functions (plain functions, importable from conftest)
# ---------------------------------------------------------------------------


def make_case(concrete: type[Bean], root: type[Bean] | None = None) -> BeanCase:
    """Build a BeanCase for *concrete*, resolving its root unless given.

    Args:
        concrete: The concrete bean type under test.
        root: Explicit deserialization target.

    Returns:
        A fully constructed BeanCase.
    """
    return BeanCase(
        root=root if root is not None else resolve_root(concrete),
        concrete=concrete,
        name=qualified_name(concrete),
    )


def make_config(**overrides: Any) -> VerifierConfig:
    """Build a VerifierConfig with sensible test defaults.

    Args:
        **overrides: Field values to override.

    Returns:
        A fully constructed VerifierConfig instance.
    """
    defaults: dict[str, Any] = {"samples": 10, "base_seed": 0}
    defaults.update(overrides)
    return VerifierConfig(**defaults)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def serializer() -> JsonSerializer:
    """Return a fresh JsonSerializer with an empty subtype table."""
    return JsonSerializer()


@pytest.fixture()
def config() -> VerifierConfig:
    """Return the default test configuration."""
    return make_config()


@pytest.fixture()
def clean_beancheck_logger() -> Any:
    """Remove handlers added to the ``beancheck`` logger during a test."""
    bc_logger = logging.getLogger("beancheck")
    handlers = list(bc_logger.handlers)
    level = bc_logger.level
    yield bc_logger
    for handler in list(bc_logger.handlers):
        if handler not in handlers:
            bc_logger.removeHandler(handler)
    bc_logger.setLevel(level)
