"""pytest integration.

``bean_contract_tests`` discovers the bean types of a registry at collection
time and returns a test class with one parametrized test per contract check.
Each case id is the fully-qualified name of the concrete bean type::

    from beancheck.registry import default_registry
    from beancheck.testing import bean_contract_tests

    TestBeans = bean_contract_tests(default_registry)

An empty registry raises ``DiscoveryError`` during collection, failing the
suite instead of passing it silently.
"""

from __future__ import annotations

from collections.abc import Mapping

import pytest

from beancheck.beans import Bean
from beancheck.discovery import discover
from beancheck.models import BeanCase, CheckResult, VerifierConfig
from beancheck.registry import BeanRegistry
from beancheck.serialization import Serializer
from beancheck.synthesis import LeafGenerator
from beancheck.verification import (
    check_constructor_parameters,
    check_final_properties,
    check_no_setters,
    check_serde,
)


def _assert_passed(result: CheckResult) -> None:
    if not result.passed:
        pytest.fail(result.message, pytrace=False)


def case_params(cases: tuple[BeanCase, ...]) -> list[pytest.param]:
    """Wrap cases as ``pytest.param`` values whose ids are the case names."""
    return [pytest.param(case, id=case.name) for case in cases]


def bean_contract_tests(
    registry: BeanRegistry | None = None,
    *,
    base: type[Bean] = Bean,
    serializer: Serializer | None = None,
    config: VerifierConfig | None = None,
    generators: Mapping[type, LeafGenerator] | None = None,
) -> type:
    """Build a pytest test class checking every discovered bean type.

    Args:
        registry: Registration table to discover from (default registry if None).
        base: Marker base type whose subtypes are under test.
        serializer: Engine copied per case for the serde check.
        config: Verifier configuration for the serde check.
        generators: Extra or overriding leaf generators for synthesis.

    Returns:
        A class with ``test_constructor_parameters``, ``test_no_setters``,
        ``test_final_properties`` and ``test_serde``.

    Raises:
        DiscoveryError: If no concrete bean type is registered.
    """
    parametrize = pytest.mark.parametrize("case", case_params(discover(registry, base)))

    class BeanContract:
        """Contract checks for every discovered bean type."""

        @parametrize
        def test_constructor_parameters(self, case: BeanCase) -> None:
            _assert_passed(check_constructor_parameters(case))

        @parametrize
        def test_no_setters(self, case: BeanCase) -> None:
            _assert_passed(check_no_setters(case))

        @parametrize
        def test_final_properties(self, case: BeanCase) -> None:
            _assert_passed(check_final_properties(case))

        @parametrize
        def test_serde(self, case: BeanCase) -> None:
            _assert_passed(check_serde(case, serializer, config, generators))

    return BeanContract
