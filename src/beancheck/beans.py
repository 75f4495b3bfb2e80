"""Bean base class and polymorphic discriminator metadata.

A bean is an immutable value type that crosses a serialization boundary.
Beans subclass :class:`Bean`, a frozen Pydantic model. A bean family that is
decoded through a common base type marks that base with
:func:`polymorphic`; each concrete subtype is identified on the wire by its
type name (:func:`type_name`, defaulting to the class name).

The metadata is stored in each class's own namespace so that
``has_own_discriminator`` can tell a self-annotated class from one that only
inherits the annotation.

Only polymorphic classes get a dispatching validator. It wraps the class's
core schema after Pydantic has built it, so every other bean validates JSON
natively, including beans declared with ``strict=True``.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
import functools
import inspect
from typing import Any, TypeVar

from pydantic import (
    BaseModel,
    ConfigDict,
    SerializerFunctionWrapHandler,
    ValidationInfo,
    ValidatorFunctionWrapHandler,
    model_serializer,
)
from pydantic_core import SchemaValidator, core_schema

_DISCRIMINATOR_ATTR = "__bean_discriminator__"
_TYPE_NAME_ATTR = "__bean_type_name__"
_DISPATCH_SCHEMA_ATTR = "__bean_dispatch_schema__"

# Validation-context key under which a serializer passes its subtype table.
SUBTYPES_CONTEXT_KEY = "beancheck_subtypes"

BeanT = TypeVar("BeanT", bound="type[Bean]")


class Bean(BaseModel):
    """Base class for immutable data-transfer objects.

    Encoding a polymorphic bean writes its type name under the
    discriminator field. Decoding a tagged payload through a polymorphic
    base dispatches to the subtype named by that field, at any nesting depth.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    @model_serializer(mode="wrap")
    def _tag_subtype(self, handler: SerializerFunctionWrapHandler) -> Any:
        """Prepend the discriminator to the serialized fields of a polymorphic bean."""
        data = handler(self)
        field = discriminator_of(type(self))
        if field is None or not isinstance(data, dict):
            return data
        return {field: type_name_of(type(self)), **data}

    @classmethod
    def __pydantic_init_subclass__(cls, **kwargs: Any) -> None:
        super().__pydantic_init_subclass__(**kwargs)
        if discriminator_of(cls) is not None:
            _install_dispatch(cls)

    @classmethod
    def model_rebuild(cls, **kwargs: Any) -> bool | None:
        """Rebuild the model schema, then restore subtype dispatch."""
        # One extra frame sits between the caller and BaseModel.model_rebuild.
        kwargs["_parent_namespace_depth"] = kwargs.get("_parent_namespace_depth", 2) + 1
        rebuilt = super().model_rebuild(**kwargs)
        if discriminator_of(cls) is not None:
            _install_dispatch(cls)
        return rebuilt


# ---------------------------------------------------------------------------
# Subtype dispatch
# ---------------------------------------------------------------------------


def _dispatch_subtype(
    cls: type[Bean],
    data: Any,
    handler: ValidatorFunctionWrapHandler,
    info: ValidationInfo,
) -> Any:
    """Route a tagged mapping to the subtype named by its discriminator."""
    field = discriminator_of(cls)
    if field is None or not isinstance(data, Mapping) or field not in data:
        return handler(data)

    payload = dict(data)
    tag = payload.pop(field)
    target = lookup_subtype(cls, tag, _subtype_table(info.context))
    if target is cls:
        return handler(payload)
    return target.model_validate(payload, context=info.context)


def _wrap_dispatch(cls: type[Bean], schema: core_schema.CoreSchema) -> core_schema.CoreSchema:
    inner = dict(schema)
    ref = inner.pop("ref", None)
    return core_schema.with_info_wrap_validator_function(
        functools.partial(_dispatch_subtype, cls),
        inner,  # type: ignore[arg-type]
        ref=ref,
    )


def _dispatching_schema(cls: type[Bean], schema: core_schema.CoreSchema) -> core_schema.CoreSchema:
    """Return *schema* with the dispatch wrapper around the model of *cls*.

    A recursive model keeps its schema in a definitions list; the wrapper
    replaces that definition so nested self-references dispatch too.
    """
    if schema["type"] != "definitions":
        return _wrap_dispatch(cls, schema)
    top = schema["schema"]
    if top["type"] == "definition-ref":
        ref = top["schema_ref"]
        definitions = [
            _wrap_dispatch(cls, definition) if definition.get("ref") == ref else definition
            for definition in schema["definitions"]
        ]
        return {**schema, "definitions": definitions}  # type: ignore[return-value]
    return {**schema, "schema": _wrap_dispatch(cls, top)}  # type: ignore[return-value]


def _install_dispatch(cls: type[Bean]) -> None:
    """Replace the validator of *cls* with one that dispatches on its tag.

    Incomplete models are skipped; ``Bean.model_rebuild`` installs the
    wrapper once their forward references resolve.
    """
    if not cls.__pydantic_complete__:
        return
    schema = vars(cls).get("__pydantic_core_schema__")
    if schema is None or vars(cls).get(_DISPATCH_SCHEMA_ATTR) is schema:
        return
    wrapped = _dispatching_schema(cls, schema)
    cls.__pydantic_core_schema__ = wrapped
    cls.__pydantic_validator__ = SchemaValidator(wrapped, core_schema.CoreConfig(title=cls.__name__))
    setattr(cls, _DISPATCH_SCHEMA_ATTR, wrapped)


def _subtype_table(context: Any) -> Mapping[type, Mapping[str, type]] | None:
    if not isinstance(context, Mapping):
        return None
    return context.get(SUBTYPES_CONTEXT_KEY)


def _require_bean(cls: Any) -> None:
    if not (isinstance(cls, type) and issubclass(cls, Bean)):
        msg = f"Expected a Bean subclass, got {cls!r}"
        raise TypeError(msg)


def polymorphic(discriminator: str = "type") -> Callable[[BeanT], BeanT]:
    """Mark a bean class as the base of a discriminated union.

    An intermediate class may re-declare the discriminator of its polymorphic
    ancestors, but only with the same field name: a payload carries a single
    tag that every owner in the hierarchy must be able to read.

    Args:
        discriminator: Name of the payload field carrying the type name.

    Returns:
        A class decorator.

    Raises:
        ValueError: If *discriminator* is empty.
        TypeError: If the decorated class is not a bean, declares a field
            with the discriminator's name, or inherits a different
            discriminator from a polymorphic ancestor.
    """
    if not discriminator:
        msg = "discriminator field name must be non-empty"
        raise ValueError(msg)

    def decorate(cls: BeanT) -> BeanT:
        _require_bean(cls)
        if discriminator in cls.model_fields:
            msg = f"{cls.__name__} declares a field named {discriminator!r}, which collides with its discriminator"
            raise TypeError(msg)
        for base in cls.__mro__[1:]:
            if has_own_discriminator(base) and discriminator_of(base) != discriminator:
                msg = (
                    f"{cls.__name__} declares discriminator {discriminator!r}, "
                    f"but its ancestor {base.__name__} already uses {discriminator_of(base)!r}"
                )
                raise TypeError(msg)
        setattr(cls, _DISCRIMINATOR_ATTR, discriminator)
        _install_dispatch(cls)
        return cls

    return decorate

def type_name(name: str) -> Callable[[BeanT], BeanT]:
    """Set the discriminator value that identifies a bean subtype on the wire."""

    def decorate(cls: BeanT) -> BeanT:
        _require_bean(cls)
        setattr(cls, _TYPE_NAME_ATTR, name)
        return cls

    return decorate


def has_own_discriminator(cls: type) -> bool:
    """Return True when *cls* itself (not an ancestor) is marked polymorphic."""
    return _DISCRIMINATOR_ATTR in vars(cls)


def discriminator_of(cls: type) -> str | None:
    """Return the discriminator field in effect for *cls*, inherited or own."""
    return getattr(cls, _DISCRIMINATOR_ATTR, None)


def type_name_of(cls: type) -> str:
    """Return the wire type name of *cls* (never inherited)."""
    return vars(cls).get(_TYPE_NAME_ATTR, cls.__name__)


def qualified_name(cls: type) -> str:
    """Return the fully-qualified ``module.QualName`` of a class."""
    return f"{cls.__module__}.{cls.__qualname__}"


def is_concrete(cls: type) -> bool:
    """Return True when *cls* can be instantiated as a bean.

    Abstract classes, classes that set ``__abstract__ = True`` in their own
    namespace, and unparametrized generic models are not concrete.
    """
    if inspect.isabstract(cls) or vars(cls).get("__abstract__", False):
        return False
    generic = getattr(cls, "__pydantic_generic_metadata__", None) or {}
    return not generic.get("parameters")


def all_subclasses(cls: type) -> list[type]:
    """Return every transitive subclass of *cls*, ordered by qualified name."""
    seen: dict[type, None] = {}
    pending = list(cls.__subclasses__())
    while pending:
        sub = pending.pop()
        if sub in seen:
            continue
        seen[sub] = None
        pending.extend(sub.__subclasses__())
    return sorted(seen, key=qualified_name)


def lookup_subtype(
    cls: type[Bean],
    tag: Any,
    table: Mapping[type, Mapping[str, type]] | None = None,
) -> type[Bean]:
    """Resolve the class named *tag* within the family rooted at *cls*.

    Registered subtypes (from a serializer's *table*) take precedence; any
    other subclass of *cls* whose type name equals *tag* is accepted when
    the match is unambiguous.

    Raises:
        ValueError: If no subtype, or more than one, carries the type name.
    """
    if type_name_of(cls) == tag:
        return cls

    for owner in cls.__mro__:
        registered = (table or {}).get(owner, {}).get(tag)
        if registered is not None and issubclass(registered, cls):
            return registered

    matches = [sub for sub in all_subclasses(cls) if type_name_of(sub) == tag]
    if len(matches) == 1:
        return matches[0]
    if not matches:
        msg = f"Unknown type name {tag!r} for {cls.__name__}"
    else:
        names = ", ".join(qualified_name(m) for m in matches)
        msg = f"Ambiguous type name {tag!r} for {cls.__name__}: {names}"
    raise ValueError(msg)
