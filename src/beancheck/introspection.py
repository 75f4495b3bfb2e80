"""Structural introspection of bean types.

``describe`` derives, from static class metadata only, the properties a
bean's serializer emits together with the facts the structural checks need:
setter presence, constructor coverage, and field immutability.
"""

from __future__ import annotations

import functools
import inspect
import logging
import typing
from typing import Any

from beancheck.beans import Bean
from beancheck.models import Property

logger = logging.getLogger(__name__)

_VARIADIC = (inspect.Parameter.VAR_POSITIONAL, inspect.Parameter.VAR_KEYWORD)


@functools.cache
def describe(cls: type[Bean]) -> tuple[Property, ...]:
    """Return the serialized properties of *cls* in declaration order.

    Fields declared with ``exclude=True`` are not emitted by the serializer
    and are therefore not reported. The result is cached per class.

    Args:
        cls: A bean type.

    Returns:
        One ``Property`` per serialized field.

    Raises:
        TypeError: If *cls* is not a Bean subclass.
    """
    if not (isinstance(cls, type) and issubclass(cls, Bean)):
        msg = f"Expected a Bean subclass, got {cls!r}"
        raise TypeError(msg)

    parameters = constructor_parameters(cls)
    frozen_model = bool(cls.model_config.get("frozen", False))
    properties: list[Property] = []
    for name, field in cls.model_fields.items():
        if field.exclude:
            continue
        accepted = [field.annotation, field.rebuild_annotation()]
        param = parameters.get(name)
        if param is None and field.alias:
            param = parameters.get(field.alias)
        properties.append(
            Property(
                name=name,
                annotation=field.annotation,
                has_mutator=has_mutator(cls, name),
                has_constructor_parameter=param is not None
                and _annotation_matches(param, accepted),
                is_immutable=frozen_model or bool(field.frozen),
                constructor_annotation=None
                if param is None or param.annotation is inspect.Parameter.empty
                else param.annotation,
            )
        )
    logger.debug("Described %s: %d properties", cls.__qualname__, len(properties))
    return tuple(properties)


def constructor_parameters(cls: type) -> dict[str, inspect.Parameter]:
    """Return the named (non-variadic) constructor parameters of *cls*.

    Annotations written as strings (postponed evaluation) are resolved
    against the constructor's module where possible.
    """
    try:
        signature = inspect.signature(cls)
    except (TypeError, ValueError):
        return {}

    hints: dict[str, Any] = {}
    init = cls.__dict__.get("__init__")
    if init is None:
        for base in cls.__mro__[1:]:
            if base is Bean:
                break
            init = base.__dict__.get("__init__")
            if init is not None:
                break
    if init is not None:
        try:
            hints = typing.get_type_hints(init)
        except (NameError, TypeError):
            hints = {}

    return {
        name: param.replace(annotation=hints.get(name, param.annotation))
        for name, param in signature.parameters.items()
        if param.kind not in _VARIADIC
    }


def _annotation_matches(param: inspect.Parameter, accepted: list[Any]) -> bool:
    annotation = param.annotation
    if annotation is inspect.Parameter.empty:
        return True
    if isinstance(annotation, str):
        return any(annotation in (getattr(a, "__name__", None), repr(a)) for a in accepted)
    return any(annotation == a for a in accepted)


def has_mutator(cls: type, name: str) -> bool:
    """Return True when *cls* exposes a setter for property *name*.

    Recognizes ``set_<name>`` and ``set<Name>`` methods, and a ``property``
    of the same name that defines a setter.
    """
    for attr in (f"set_{name}", f"set{name[:1].upper()}{name[1:]}"):
        if callable(inspect.getattr_static(cls, attr, None)):
            return True
    descriptor = inspect.getattr_static(cls, name, None)
    return isinstance(descriptor, property) and descriptor.fset is not None
