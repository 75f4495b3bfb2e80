"""Polymorphic root resolution.

The root of a bean type is the class used as the deserialization target
for it: the outermost ancestor of an unbroken chain of classes that carry
their own discriminator metadata directly above the type.
"""

from __future__ import annotations

from beancheck.beans import Bean, has_own_discriminator


def superclass_of(cls: type) -> type | None:
    """Return the primary Bean superclass of *cls*, or None above ``Bean``."""
    for base in cls.__bases__:
        if isinstance(base, type) and issubclass(base, Bean):
            return base
    return None


def resolve_root(concrete: type[Bean]) -> type[Bean]:
    """Return the deserialization target for *concrete*.

    Walks the superclass chain upward from *concrete*. Every visited class
    carrying its own discriminator metadata becomes the candidate root; the
    first class without it stops the walk. When the direct superclass is not
    self-annotated, *concrete* is its own root.

    With ``Root`` (annotated) <- ``Mid`` (annotated) <- ``Leaf``, the root of
    ``Leaf`` is ``Root``, not ``Mid``.

    Args:
        concrete: A concrete bean type.

    Returns:
        The outermost self-annotated ancestor, or *concrete* itself.
    """
    root = concrete
    parent = superclass_of(concrete)
    while parent is not None and has_own_discriminator(parent):
        root = parent
        parent = superclass_of(parent)
    return root


def polymorphic_owners(cls: type) -> list[type]:
    """Return every class in the MRO of *cls* that is itself marked polymorphic."""
    return [owner for owner in cls.__mro__ if has_own_discriminator(owner)]
