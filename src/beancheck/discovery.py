"""Discovery of bean types under test.

Turns the registration table into one ``BeanCase`` per concrete bean type,
each paired with its polymorphic root as deserialization target.
"""

from __future__ import annotations

import logging

from beancheck.beans import Bean, is_concrete, qualified_name
from beancheck.errors import DiscoveryError
from beancheck.hierarchy import resolve_root
from beancheck.models import BeanCase
from beancheck.registry import BeanRegistry, default_registry

logger = logging.getLogger(__name__)


def discover(registry: BeanRegistry | None = None, base: type[Bean] = Bean) -> tuple[BeanCase, ...]:
    """Enumerate the concrete bean types below *base* as test cases.

    Args:
        registry: Registration table to enumerate; defaults to the
            module-level ``default_registry``.
        base: Marker base type whose subtypes are under test.

    Returns:
        Cases sorted by name.

    Raises:
        DiscoveryError: If no concrete bean type is found.
    """
    registry = registry if registry is not None else default_registry
    candidates = registry.subtypes_of(base)
    cases = tuple(
        sorted(
            (
                BeanCase(root=resolve_root(cls), concrete=cls, name=qualified_name(cls))
                for cls in candidates
                if is_concrete(cls)
            ),
            key=lambda case: case.name,
        )
    )
    if not cases:
        msg = (
            f"No concrete bean types found below {qualified_name(base)} "
            f"({len(candidates)} registered candidate(s)); check the registry setup"
        )
        raise DiscoveryError(
            msg, diagnostics={"base": qualified_name(base), "candidates": len(candidates)}
        )

    logger.info("Discovered %d bean type(s) below %s", len(cases), qualified_name(base))
    for case in cases:
        if case.root is not case.concrete:
            logger.debug("%s decodes through %s", case.name, qualified_name(case.root))
    return cases
