"""Random instance synthesis for bean types.

``Synthesizer`` builds fully-populated, pseudo-random instances of arbitrary
bean types from their Pydantic field annotations. Generation is driven by a
table of per-kind generators (leaf types) plus structural rules for enums,
literals, unions, containers, and nested beans. A single
``random.Random(seed)`` is threaded through every recursive call, so the
same seed always yields the same instance.

Policies:

- Containers hold at least ``min_collection_size`` elements.
- Optionals are populated. Only a bean type that has recurred into itself
  ``max_depth`` times is built with empty containers and ``None`` optionals.
- Instants are drawn within ``temporal_bound_seconds`` of the Unix epoch at
  millisecond precision, so every value is representable on the wire.
- Abstract and polymorphic field types are filled with a randomly chosen
  concrete subclass.
"""

from __future__ import annotations

import collections.abc
from collections.abc import Callable, Mapping
from datetime import UTC, date, datetime, time, timedelta
from decimal import Decimal
from enum import Enum
import logging
import random
import string
import types
from typing import Annotated, Any, Literal, TypeVar, Union, get_args, get_origin
import uuid

from pydantic import ValidationError

from beancheck.beans import (
    Bean,
    all_subclasses,
    discriminator_of,
    is_concrete,
    qualified_name,
)
from beancheck.errors import SynthesisError
from beancheck.models import VerifierConfig

logger = logging.getLogger(__name__)

LeafGenerator = Callable[["Synthesizer"], Any]

EPOCH = datetime(1970, 1, 1, tzinfo=UTC)

_ALPHABET = string.ascii_letters + string.digits
_MAX_STRING_LENGTH = 16
_INT_BOUND = 2**31

_SEQUENCE_ORIGINS = frozenset({
    list,
    collections.abc.Sequence,
    collections.abc.MutableSequence,
    collections.abc.Collection,
    collections.abc.Iterable,
})
_SET_ORIGINS = frozenset({
    set,
    frozenset,
    collections.abc.Set,
    collections.abc.MutableSet,
})
_MAPPING_ORIGINS = frozenset({
    dict,
    collections.abc.Mapping,
    collections.abc.MutableMapping,
})


# ---------------------------------------------------------------------------
# Leaf generators
# ---------------------------------------------------------------------------


def _gen_bool(s: Synthesizer) -> bool:
    return s.rng.random() < 0.5


def _gen_int(s: Synthesizer) -> int:
    return s.rng.randint(-_INT_BOUND, _INT_BOUND - 1)


def _gen_float(s: Synthesizer) -> float:
    return s.rng.uniform(-1e6, 1e6)


def _gen_str(s: Synthesizer) -> str:
    return "".join(s.rng.choices(_ALPHABET, k=s.rng.randint(1, _MAX_STRING_LENGTH)))


def _gen_bytes(s: Synthesizer) -> bytes:
    return _gen_str(s).encode("ascii")


def _gen_decimal(s: Synthesizer) -> Decimal:
    return Decimal(s.rng.randint(-(10**9), 10**9)).scaleb(-s.rng.randint(0, 6))


def _gen_uuid(s: Synthesizer) -> uuid.UUID:
    return uuid.UUID(int=s.rng.getrandbits(128), version=4)


def _bound_millis(s: Synthesizer) -> int:
    return s.config.temporal_bound_seconds * 1000


def _gen_datetime(s: Synthesizer) -> datetime:
    bound = _bound_millis(s)
    return EPOCH + timedelta(milliseconds=s.rng.randint(-bound, bound))


def _gen_date(s: Synthesizer) -> date:
    bound = s.config.temporal_bound_seconds // 86400
    return EPOCH.date() + timedelta(days=s.rng.randint(-bound, bound))


def _gen_time(s: Synthesizer) -> time:
    millis = s.rng.randrange(86_400_000)
    seconds, ms = divmod(millis, 1000)
    minutes, second = divmod(seconds, 60)
    hour, minute = divmod(minutes, 60)
    return time(hour, minute, second, ms * 1000)


def _gen_timedelta(s: Synthesizer) -> timedelta:
    return timedelta(milliseconds=s.rng.randint(0, _bound_millis(s)))


DEFAULT_GENERATORS: dict[type, LeafGenerator] = {
    bool: _gen_bool,
    int: _gen_int,
    float: _gen_float,
    str: _gen_str,
    bytes: _gen_bytes,
    Decimal: _gen_decimal,
    uuid.UUID: _gen_uuid,
    datetime: _gen_datetime,
    date: _gen_date,
    time: _gen_time,
    timedelta: _gen_timedelta,
}


# ---------------------------------------------------------------------------
# Synthesizer
# ---------------------------------------------------------------------------


class Synthesizer:
    """Seeded generator of fully-populated values for arbitrary annotations.

    Recursion is tracked per bean type: while a bean is being built, the
    types on the current path are kept on a stack. Once a type has recurred
    into itself ``max_depth`` times, that innermost instance is built with
    empty containers and ``None`` optionals. Non-recursive graphs are never
    cut, however deeply nested.

    Attributes:
        rng: The random source threaded through every generator.
        config: Synthesis parameters (collection sizes, recursion limit,
            temporal bound).
    """

    def __init__(
        self,
        seed: int,
        config: VerifierConfig | None = None,
        generators: Mapping[type, LeafGenerator] | None = None,
    ) -> None:
        """Create a synthesizer.

        Args:
            seed: Seed of the random source.
            config: Synthesis parameters; defaults to ``VerifierConfig()``.
            generators: Extra or overriding leaf generators keyed by type.
        """
        self.rng = random.Random(seed)
        self.config = config if config is not None else VerifierConfig()
        self._generators: dict[type, LeafGenerator] = {
            **DEFAULT_GENERATORS,
            **(generators or {}),
        }
        self._path: list[type[Bean]] = []

    def register(self, tp: type, generator: LeafGenerator) -> None:
        """Add or replace the generator used for values of type *tp*."""
        self._generators[tp] = generator

    def synthesize(self, tp: Any) -> Any:
        """Return a random value of annotation *tp*.

        Raises:
            SynthesisError: If *tp* is unsupported, a bean rejects the
                generated values, or a required self-reference cannot be cut.
        """
        return self._value(tp)

    def _value(self, tp: Any) -> Any:
        if tp is Any or tp is object:
            return _gen_str(self)

        origin = get_origin(tp)
        if origin is Annotated:
            return self._value(get_args(tp)[0])
        if origin is Literal:
            return self.rng.choice(get_args(tp))
        if origin is Union or origin is types.UnionType:
            return self._union(get_args(tp))
        if origin is not None:
            return self._container(origin, get_args(tp))

        if isinstance(tp, TypeVar):
            bound = tp.__bound__ if tp.__bound__ is not None else str
            return self._value(bound)

        if isinstance(tp, type):
            if issubclass(tp, Enum):
                return self.rng.choice(list(tp))
            if issubclass(tp, Bean):
                return self._bean(tp)
            generator = self._generator_for(tp)
            if generator is not None:
                return generator(self)
            if tp in _SEQUENCE_ORIGINS or tp in _SET_ORIGINS or tp in _MAPPING_ORIGINS or tp is tuple:
                return self._container(tp, ())

        msg = f"No generator for type {tp!r}"
        raise SynthesisError(msg, diagnostics={"type": repr(tp)})

    def _generator_for(self, tp: type) -> LeafGenerator | None:
        if tp in self._generators:
            return self._generators[tp]
        for base in tp.__mro__[1:]:
            if base in self._generators and base is not object:
                return self._generators[base]
        return None

    def _recurrences(self, cls: type) -> int:
        """Return how many times *cls* is already being built on the current path."""
        return self._path.count(cls)

    def _cut(self) -> bool:
        """Whether the bean currently being built must cut its recursion."""
        return bool(self._path) and self._recurrences(self._path[-1]) > self.config.max_depth

    def _union(self, members: tuple[Any, ...]) -> Any:
        concrete = [m for m in members if m is not type(None)]
        if not concrete or (len(concrete) < len(members) and self._cut()):
            return None
        return self._value(self.rng.choice(concrete))

    def _size(self) -> int:
        if self._cut():
            return 0
        return self.rng.randint(self.config.min_collection_size, self.config.max_collection_size)

    def _container(self, origin: Any, args: tuple[Any, ...]) -> Any:
        if origin is tuple:
            if len(args) == 2 and args[1] is Ellipsis:
                return tuple(self._value(args[0]) for _ in range(self._size()))
            if not args:
                return tuple(_gen_str(self) for _ in range(self._size()))
            return tuple(self._value(arg) for arg in args)

        if origin in _SEQUENCE_ORIGINS:
            item = args[0] if args else str
            return [self._value(item) for _ in range(self._size())]

        if origin in _SET_ORIGINS:
            item = args[0] if args else str
            values = self._unique(lambda: self._value(item), self._size())
            return frozenset(values) if origin is frozenset else set(values)

        if origin in _MAPPING_ORIGINS:
            key_type, value_type = args if len(args) == 2 else (str, str)
            keys = self._unique(lambda: self._value(key_type), self._size())
            return {key: self._value(value_type) for key in keys}

        msg = f"Unsupported container type {origin!r}"
        raise SynthesisError(msg, diagnostics={"type": repr(origin)})

    def _unique(self, draw: Callable[[], Any], size: int) -> list[Any]:
        """Draw up to *size* distinct values; small domains (bool, enums) cap the result."""
        values: list[Any] = []
        for _ in range(size * 10):
            if len(values) >= size:
                break
            candidate = draw()
            if candidate not in values:
                values.append(candidate)
        return values

    def _bean(self, cls: type[Bean]) -> Bean:
        concrete = self._concrete_for(cls)
        if self._recurrences(concrete) > self.config.max_depth:
            # Reached only through a required, non-container self-reference.
            msg = (
                f"Cannot cut the recursion of {qualified_name(concrete)}: "
                f"it recurs through a required field more than {self.config.max_depth} times"
            )
            raise SynthesisError(
                msg,
                diagnostics={
                    "type": qualified_name(concrete),
                    "path": [qualified_name(t) for t in self._path],
                },
            )

        self._path.append(concrete)
        try:
            values: dict[str, Any] = {}
            for name, field in concrete.model_fields.items():
                if field.exclude and not field.is_required():
                    continue
                values[field.alias or name] = self._value(field.annotation)
        finally:
            self._path.pop()

        try:
            return concrete(**values)
        except (ValidationError, TypeError, ValueError) as exc:
            msg = f"{qualified_name(concrete)} rejected synthesized values: {exc}"
            raise SynthesisError(
                msg, diagnostics={"type": qualified_name(concrete), "values": repr(values)}
            ) from exc

    def _concrete_for(self, cls: type[Bean]) -> type[Bean]:
        polymorphic = discriminator_of(cls) is not None
        if is_concrete(cls) and not polymorphic:
            return cls
        candidates = [cls] if is_concrete(cls) else []
        candidates.extend(sub for sub in all_subclasses(cls) if is_concrete(sub))
        if not candidates:
            msg = f"No concrete subtype available for {qualified_name(cls)}"
            raise SynthesisError(msg, diagnostics={"type": qualified_name(cls)})
        # Past the recursion limit, prefer subtypes that do not recur further.
        fresh = [c for c in candidates if self._recurrences(c) <= self.config.max_depth]
        return self.rng.choice(fresh or candidates)


def synthesize(
    tp: Any,
    seed: int,
    config: VerifierConfig | None = None,
    generators: Mapping[type, LeafGenerator] | None = None,
) -> Any:
    """Return a random, fully-populated value of *tp* for *seed*.

    Args:
        tp: A bean type or any supported annotation.
        seed: Seed for reproducible output.
        config: Synthesis parameters.
        generators: Extra or overriding leaf generators.

    Returns:
        The synthesized value.
    """
    value = Synthesizer(seed, config, generators).synthesize(tp)
    logger.debug("Synthesized %r with seed %d", tp, seed)
    return value
