"""Serialization engine used for the round-trip cycle.

``Serializer`` is the interface the verifier consumes. ``JsonSerializer`` is
the default engine. It encodes through Pydantic's JSON serializer (the
``Bean`` model serializer adds the discriminator field to polymorphic
beans) and decodes with JSON-mode validation, passing its subtype table as
validation context.
"""

from __future__ import annotations

import logging
from typing import Any, Protocol, runtime_checkable

from pydantic import BaseModel, TypeAdapter
from pydantic_core import to_json

from beancheck.beans import (
    SUBTYPES_CONTEXT_KEY,
    Bean,
    qualified_name,
    type_name_of,
)
from beancheck.hierarchy import polymorphic_owners

logger = logging.getLogger(__name__)


@runtime_checkable
class Serializer(Protocol):
    """Encodes beans to a textual wire format and decodes them back.

    Implementations must be deterministic and free of side effects on
    encode/decode. ``copy`` returns an independent engine so that per-case
    configuration never mutates a shared instance.
    """

    def encode(self, instance: Any) -> str:
        """Encode an instance into its textual wire payload."""
        ...

    def decode(self, text: str, target: type) -> Any:
        """Decode a wire payload into an instance of *target* (or a subtype)."""
        ...

    def register_subtype(self, cls: type[Bean]) -> None:
        """Make *cls* resolvable by its type name under its polymorphic bases."""
        ...

    def copy(self) -> Serializer:
        """Return an independently configurable clone of this engine."""
        ...


class JsonSerializer:
    """JSON wire codec for beans.

    Attributes:
        indent: Indentation of the JSON output (None for compact output).
    """

    def __init__(self, *, indent: int | None = None) -> None:
        """Create an engine with an empty subtype table."""
        self.indent = indent
        self._subtypes: dict[type, dict[str, type[Bean]]] = {}

    def register_subtype(self, cls: type[Bean]) -> None:
        """Register *cls* under every polymorphic class in its MRO.

        Args:
            cls: A bean subtype.

        Raises:
            TypeError: If *cls* is not a Bean subclass.
        """
        if not (isinstance(cls, type) and issubclass(cls, Bean)):
            msg = f"Expected a Bean subclass, got {cls!r}"
            raise TypeError(msg)
        tag = type_name_of(cls)
        for owner in polymorphic_owners(cls):
            self._subtypes.setdefault(owner, {})[tag] = cls
            logger.debug(
                "Registered %s as %r under %s",
                qualified_name(cls),
                tag,
                qualified_name(owner),
            )

    def registered_subtypes(self) -> dict[type, dict[str, type[Bean]]]:
        """Return a copy of the subtype table."""
        return {owner: dict(tags) for owner, tags in self._subtypes.items()}

    def copy(self) -> JsonSerializer:
        """Return a clone with its own copy of the subtype table."""
        clone = JsonSerializer(indent=self.indent)
        clone._subtypes = self.registered_subtypes()
        return clone

    def encode(self, instance: Any) -> str:
        """Encode *instance* as JSON text.

        Beans go through their own Pydantic serializers, so field and model
        serializers, aliases and ``ser_json_*`` settings all apply. Values
        nested under a field typed as a polymorphic base are written as their
        runtime subtype.

        Raises:
            pydantic_core.PydanticSerializationError: If a value has no JSON
                representation.
        """
        if isinstance(instance, BaseModel):
            return instance.model_dump_json(indent=self.indent, by_alias=True, serialize_as_any=True)
        return to_json(instance, indent=self.indent, by_alias=True, serialize_as_any=True).decode()

    def decode(self, text: str, target: type) -> Any:
        """Decode JSON *text* into an instance of *target*.

        The text is validated in JSON mode, so strict beans accept the JSON
        forms of datetimes, UUIDs, decimals and bytes.

        Raises:
            pydantic.ValidationError: If *text* is not JSON or the payload
                does not validate.
        """
        context = {SUBTYPES_CONTEXT_KEY: self._subtypes}
        if isinstance(target, type) and issubclass(target, BaseModel):
            return target.model_validate_json(text, context=context)
        return TypeAdapter(target).validate_json(text, context=context)
