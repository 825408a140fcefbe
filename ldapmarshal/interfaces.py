"""
Capabilities a model or a field value may opt into.

These are structural: a class does not need to inherit from them, it only
needs to define the method.  The encoder and decoder check for them with
:py:func:`isinstance` and prefer them over their own field-by-field handling.
"""

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from .entry import Entry


@runtime_checkable
class Marshaler(Protocol):
    """A model that builds its own :py:class:`~ldapmarshal.entry.Entry`."""

    def marshal_ldap(self) -> "Entry": ...


@runtime_checkable
class Unmarshaler(Protocol):
    """A model that populates itself from an :py:class:`~ldapmarshal.entry.Entry`."""

    def unmarshal_ldap(self, entry: "Entry") -> None: ...


@runtime_checkable
class BinaryEncoder(Protocol):
    """A field value that knows its own LDAP byte representation."""

    def encode_ldap(self) -> bytes: ...


@runtime_checkable
class BinaryDecoder(Protocol):
    """A field value that can load itself, in place, from LDAP bytes."""

    def decode_ldap(self, data: bytes) -> None: ...
