"""
Field tag parsing.

A field's ``tag`` is a comma separated string.  The first token is the LDAP
attribute name, or ``-`` to exclude the field entirely; the remaining tokens
are flags:

* ``omitempty``: don't emit the attribute when the field holds its zero value
* ``ro``: read-only; the encoder skips the field, the decoder still fills it
"""

from typing import NamedTuple

#: The attribute name that designates a model's distinguished name.
DN_ATTRIBUTE: str = "dn"
#: Tag value that excludes a field from encoding and decoding.
IGNORE: str = "-"
#: Tag flag for skipping zero values when encoding.
OMITEMPTY: str = "omitempty"
#: Tag flag for read-only fields.
READ_ONLY: str = "ro"


class FieldInfo(NamedTuple):
    """What a field's name and tag say about how to map it."""

    #: The LDAP attribute name.
    attr_name: str
    #: ``True`` if the tag was ``-``.
    ignored: bool = False
    #: ``True`` if the tag carries ``omitempty``.
    omitempty: bool = False
    #: ``True`` if the tag carries ``ro``.
    read_only: bool = False

    @property
    def is_dn(self) -> bool:
        return self.attr_name.lower() == DN_ATTRIBUTE


def default_attribute_name(name: str) -> str:
    """
    Derive an LDAP attribute name from a Python field name.

    The first letter is lower-cased (``HomeDirectory`` becomes
    ``homeDirectory``); two character names are lower-cased entirely, so
    ``DN`` and ``CN`` become ``dn`` and ``cn``.

    Args:
        name: The Python field name.

    Returns:
        The attribute name.

    """
    attr_name = name[:1].lower() + name[1:]
    if len(attr_name) == 2:  # noqa: PLR2004
        attr_name = attr_name.lower()
    return attr_name


def parse_tag(name: str, tag: str | None = None) -> FieldInfo:
    """
    Build a :py:class:`FieldInfo` for a field.

    An empty first token keeps the default attribute name, so
    ``tag=",omitempty"`` only sets the flag.  Unknown flags are ignored.

    Args:
        name: The Python field name.
        tag: The field's tag, if it has one.

    Returns:
        The parsed field info.

    """
    attr_name = default_attribute_name(name)
    if tag is None:
        return FieldInfo(attr_name)
    first, *flags = tag.split(",")
    first = first.strip()
    if first == IGNORE:
        return FieldInfo(attr_name, ignored=True)
    flags = [flag.strip() for flag in flags]
    return FieldInfo(
        first or attr_name,
        omitempty=OMITEMPTY in flags,
        read_only=READ_ONLY in flags,
    )
