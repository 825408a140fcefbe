"""
Walking a model's fields.

:py:func:`walk_fields` yields the fields the encoder and decoder have to deal
with, flattening embedded models into the sequence as it goes.
"""

from collections.abc import Iterator
from typing import TYPE_CHECKING, cast

from .fields import EmbeddedField, Field
from .options import Options
from .tags import FieldInfo

if TYPE_CHECKING:
    from .models import Model


def is_internal(field: Field) -> bool:
    """Fields whose name starts with ``_`` are never encoded or decoded."""
    return cast("str", field.name).startswith("_")


def walk_fields(
    obj: "Model",
    *,
    encoding: bool = False,
    skip_read_only: bool = True,
) -> Iterator[tuple[Field, FieldInfo, "Model"]]:
    """
    Yield ``(field, info, owner)`` for every field of ``obj`` to be processed,
    in declaration order.

    ``owner`` is the model instance that holds the field's value: ``obj``
    itself, or the instance held by an :py:class:`~ldapmarshal.fields.EmbeddedField`.
    Embedded models are expanded in place, recursively.  Internal fields and
    fields tagged ``-`` are skipped.  Fields tagged ``ro`` are skipped only
    when ``encoding`` and ``skip_read_only`` are both true.

    An embedded model that is ``None`` contributes nothing when encoding;
    when decoding, a fresh instance is created and assigned first.

    Args:
        obj: The model instance to walk.

    Keyword Args:
        encoding: True if the caller is encoding ``obj``.
        skip_read_only: Whether read-only fields are skipped when encoding.

    """
    for field in cast("Options", obj._meta).fields:
        if is_internal(field):
            continue
        info = field.get_info()
        if info.ignored:
            continue
        if encoding and skip_read_only and info.read_only:
            continue
        if isinstance(field, EmbeddedField):
            embedded = field.value_from_object(obj)
            if embedded is None:
                if encoding:
                    continue
                embedded = field.to()
                setattr(obj, cast("str", field.name), embedded)
            yield from walk_fields(
                embedded, encoding=encoding, skip_read_only=skip_read_only
            )
            continue
        yield field, info, obj


def has_dn(model: type["Model"]) -> bool:
    """
    Does ``model``, or any model it embeds, have a field mapped to ``dn``?

    This looks only at the declared fields, never at an instance.

    Args:
        model: The model class.

    """
    for field in cast("Options", model._meta).fields:
        if is_internal(field):
            continue
        info = field.get_info()
        if info.ignored:
            continue
        if isinstance(field, EmbeddedField):
            if has_dn(field.to):
                return True
            continue
        if info.is_dn:
            return True
    return False
