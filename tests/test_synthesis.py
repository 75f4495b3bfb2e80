"""Tests for random instance synthesis (``src/beancheck/synthesis.py``).

Validates determinism per seed, full population of optionals and
containers, the temporal bound, recursion cut-off, concrete-subtype
selection for polymorphic fields, and error reporting.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from datetime import date, datetime, time, timedelta
from decimal import Decimal
from typing import Annotated, Any, Literal, TypeVar
import uuid

from beancheck.beans import Bean, qualified_name
from beancheck.errors import SynthesisError
from beancheck.synthesis import EPOCH, Synthesizer, synthesize
from hypothesis import given, settings, strategies as st
import pytest

from tests.beans_fixture import (
    AccountClosed,
    AccountOpened,
    Catalog,
    Category,
    Circle,
    Event,
    NarrowConstructor,
    Order,
    Point,
    Priority,
    Shape,
    Square,
    Window,
)
from tests.conftest import make_config


class Chain(Bean):
    """A required self-reference, which no depth limit can cut."""

    label: str
    next: Chain


def _height(category: Category) -> int:
    if not category.children:
        return 1
    return 1 + max(_height(child) for child in category.children)


# ===========================================================================
# Determinism
# ===========================================================================


@pytest.mark.unit
class TestDeterminism:
    """The same seed always yields the same instance."""

    @given(seed=st.integers(min_value=0, max_value=2**32))
    @settings(max_examples=25, deadline=None)
    def test_same_seed_same_order(self, seed: int) -> None:
        """Property: synthesize(Order, s) == synthesize(Order, s)."""
        assert synthesize(Order, seed) == synthesize(Order, seed)

    def test_different_seeds_vary(self) -> None:
        """Twenty seeds produce more than one distinct Point."""
        points = {(p.x, p.y) for p in (synthesize(Point, seed) for seed in range(20))}
        assert len(points) > 1

    def test_synthesizer_instance_advances(self) -> None:
        """Successive draws from one Synthesizer differ."""
        synth = Synthesizer(3)
        assert synth.synthesize(uuid.UUID) != synth.synthesize(uuid.UUID)


# ===========================================================================
# Coverage of the object graph
# ===========================================================================


@pytest.mark.unit
class TestPopulation:
    """Every property is populated, including nested ones."""

    @pytest.mark.parametrize("seed", range(5))
    def test_order_is_fully_populated(self, seed: int) -> None:
        """Optionals are non-None and containers non-empty."""
        order = synthesize(Order, seed)
        assert order.note is not None
        assert order.lines
        assert order.tags
        assert order.attributes
        assert order.history
        assert order.checksum
        assert len(order.dimensions) == 2
        assert isinstance(order.priority, Priority)
        assert order.status in ("open", "closed")

    def test_nested_optionals_are_populated(self) -> None:
        """AccountClosed.reason inside Order.history is populated."""
        for seed in range(20):
            for event in synthesize(Order, seed).history:
                if isinstance(event, AccountClosed):
                    assert event.reason is not None

    def test_collection_size_follows_config(self) -> None:
        """min/max collection size bound every container."""
        cfg = make_config(min_collection_size=2, max_collection_size=2)
        order = synthesize(Order, 11, cfg)
        assert len(order.lines) == 2
        assert len(order.history) == 2
        assert len(order.attributes) == 2

    def test_polymorphic_field_gets_concrete_subtype(self) -> None:
        """Shape-typed values are concrete subclasses, Circle and Square among them."""
        seen = {type(synthesize(Shape, seed)) for seed in range(200)}
        assert {Circle, Square} <= seen
        assert Shape not in seen

    def test_abstract_intermediate_is_skipped(self) -> None:
        """Event values are always one of the concrete account events."""
        for seed in range(20):
            assert type(synthesize(Event, seed)) in (AccountOpened, AccountClosed)

    def test_custom_constructor_is_used(self) -> None:
        """Point is built through its keyword-compatible __init__."""
        point = synthesize(Point, 0)
        assert isinstance(point.x, int)
        assert -(2**31) <= point.x < 2**31


# ===========================================================================
# Temporal values
# ===========================================================================


@pytest.mark.unit
class TestTemporal:
    """Instants stay within the configured bound at millisecond precision."""

    @given(seed=st.integers(min_value=0, max_value=2**32))
    @settings(max_examples=50, deadline=None)
    def test_window_within_bound(self, seed: int) -> None:
        """Property: every temporal field of Window is wire-representable."""
        bound = timedelta(seconds=2**31 - 1)
        window = synthesize(Window, seed)
        assert EPOCH - bound <= window.starts_at <= EPOCH + bound
        assert window.starts_at.tzinfo is not None
        assert window.starts_at.microsecond % 1000 == 0
        assert (EPOCH - bound).date() <= window.ends_on <= (EPOCH + bound).date()
        assert window.daily_cutoff.microsecond % 1000 == 0
        assert timedelta(0) <= window.grace <= bound

    def test_narrow_bound_is_honoured(self) -> None:
        """A one-day bound keeps instants within a day of the epoch."""
        cfg = make_config(temporal_bound_seconds=86_400)
        for seed in range(20):
            instant = synthesize(datetime, seed, cfg)
            assert abs(instant - EPOCH) <= timedelta(days=1)


# ===========================================================================
# Recursion
# ===========================================================================


@pytest.mark.unit
class TestRecursion:
    """Only recursive bean types are cut, after max_depth recurrences."""

    @pytest.mark.parametrize("max_depth", [1, 2, 4, 6])
    def test_category_tree_height(self, max_depth: int) -> None:
        """A Category tree grows exactly max_depth levels below its root."""
        category = synthesize(Category, 5, make_config(max_depth=max_depth))
        assert _height(category) == max_depth + 1

    def test_deep_optionals_become_none(self) -> None:
        """The innermost recurrence has empty containers and None optionals."""
        category = synthesize(Category, 0, make_config(max_depth=1))
        assert category.children
        assert category.parent_name is not None
        for child in category.children:
            assert child.children == []
            assert child.parent_name is None

    @pytest.mark.parametrize("seed", range(5))
    def test_non_recursive_graph_is_never_cut(self, seed: int) -> None:
        """Four nested levels are fully populated even with max_depth=1."""
        catalog = synthesize(Catalog, seed, make_config(max_depth=1))
        assert catalog.sections
        items = [item for section in catalog.sections for shelf in section.shelves for item in shelf.items]
        assert all(section.shelves for section in catalog.sections)
        assert items
        for item in items:
            assert item.tags
            assert item.note is not None

    def test_required_self_reference_raises(self) -> None:
        """A self-reference with no empty or None form cannot terminate."""
        with pytest.raises(SynthesisError, match="Cannot cut the recursion") as exc_info:
            synthesize(Chain, 0, make_config(max_depth=2))
        assert exc_info.value.diagnostics["path"] == [qualified_name(Chain)] * 3


# ===========================================================================
# Annotations
# ===========================================================================

_T = TypeVar("_T", bound=int)


@pytest.mark.unit
class TestAnnotations:
    """Structural annotations outside of beans."""

    @pytest.mark.parametrize(
        ("annotation", "expected"),
        [
            (int, int),
            (bool, bool),
            (float, float),
            (str, str),
            (bytes, bytes),
            (Decimal, Decimal),
            (uuid.UUID, uuid.UUID),
            (date, date),
            (time, time),
            (timedelta, timedelta),
            (Annotated[int, "meta"], int),
            (_T, int),
            (Any, str),
        ],
    )
    def test_leaf_types(self, annotation: Any, expected: type) -> None:
        """Each supported leaf annotation yields a value of the right type."""
        assert isinstance(synthesize(annotation, 1), expected)

    def test_literal_picks_a_member(self) -> None:
        """Literal values come from the declared choices."""
        assert synthesize(Literal["a", "b"], 4) in ("a", "b")

    def test_union_picks_a_member_type(self) -> None:
        """int | str yields one of the two."""
        assert isinstance(synthesize(int | str, 2), (int, str))

    def test_variadic_tuple(self) -> None:
        """tuple[int, ...] is a non-empty tuple of ints."""
        value = synthesize(tuple[int, ...], 6)
        assert isinstance(value, tuple)
        assert value
        assert all(isinstance(v, int) for v in value)

    def test_abstract_collections(self) -> None:
        """Sequence and Mapping annotations become list and dict."""
        assert isinstance(synthesize(Sequence[int], 0), list)
        assert isinstance(synthesize(Mapping[str, int], 0), dict)

    def test_set_of_small_domain_is_capped(self) -> None:
        """A set of bools holds at most two distinct values."""
        cfg = make_config(min_collection_size=3, max_collection_size=3)
        assert 1 <= len(synthesize(set[bool], 0, cfg)) <= 2

    def test_register_overrides_leaf_generator(self) -> None:
        """A registered generator replaces the default for its type."""
        synth = Synthesizer(0)
        synth.register(int, lambda s: 7)
        assert synth.synthesize(Point) == Point(7, 7)

    def test_generators_argument_extends_table(self) -> None:
        """Generators passed to synthesize apply to nested values."""
        point = synthesize(Point, 0, generators={int: lambda s: -1})
        assert point == Point(-1, -1)

    def test_generator_applies_to_subclasses(self) -> None:
        """A generator registered for a base type covers its subclasses."""

        class Cents(Decimal):
            pass

        assert synthesize(Cents, 0, generators={Decimal: lambda s: Decimal("0.01")}) == Decimal("0.01")


# ===========================================================================
# Errors
# ===========================================================================


@pytest.mark.unit
class TestErrors:
    """Unsupported types and rejecting beans raise SynthesisError."""

    def test_unsupported_type(self) -> None:
        """No generator for complex."""
        with pytest.raises(SynthesisError, match="No generator") as exc_info:
            synthesize(complex, 0)
        assert exc_info.value.diagnostics["type"] == repr(complex)

    def test_constructor_rejecting_values(self) -> None:
        """NarrowConstructor cannot accept y, so synthesis fails with context."""
        with pytest.raises(SynthesisError, match="rejected synthesized values") as exc_info:
            synthesize(NarrowConstructor, 0)
        assert isinstance(exc_info.value.__cause__, TypeError)
        assert exc_info.value.diagnostics["type"].endswith("NarrowConstructor")
