"""
The directory entry that models are marshalled to and from.

An :py:class:`Entry` is a DN plus an ordered list of
:py:class:`EntryAttribute` objects.  Each attribute keeps its values twice: as
text and as the raw bytes python-ldap sends over the wire.  Attribute names
are matched case-insensitively.
"""

import io
from collections.abc import Iterable, Sequence

import ldif
from ldap import modlist

from .coercion import bytes_to_text, text_to_bytes
from .typing import AddModlist, LDAPData


class EntryAttribute:
    """
    One named, multi-valued LDAP attribute.

    Args:
        name: The attribute name.
        values: The text values.  :py:attr:`byte_values` is derived from these.

    """

    def __init__(self, name: str, values: Iterable[str] | None = None) -> None:
        #: The attribute name.
        self.name = name
        #: The values as text.
        self.values: list[str] = list(values or [])
        #: The values as bytes, parallel to :py:attr:`values`.
        self.byte_values: list[bytes] = [text_to_bytes(v) for v in self.values]

    @classmethod
    def from_bytes(cls, name: str, raw: Iterable[bytes]) -> "EntryAttribute":
        """
        Build an attribute from raw bytes, as python-ldap returns them.

        Args:
            name: The attribute name.
            raw: The raw values.

        Returns:
            A new attribute whose byte values are exactly ``raw``.

        """
        attr = cls(name)
        attr.byte_values = [bytes(b) for b in raw]
        attr.values = [bytes_to_text(b) for b in attr.byte_values]
        return attr

    def __len__(self) -> int:
        return len(self.values)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, EntryAttribute):
            return NotImplemented
        return self.name == other.name and self.byte_values == other.byte_values

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return f"<EntryAttribute: {self.name}={self.values!r}>"


class Entry:
    """
    An LDAP directory entry.

    Args:
        dn: The distinguished name.
        attributes: The attributes, in order.

    """

    def __init__(
        self, dn: str = "", attributes: Iterable[EntryAttribute] | None = None
    ) -> None:
        #: The distinguished name.
        self.dn = dn
        #: The attributes, in the order they were added.
        self.attributes: list[EntryAttribute] = list(attributes or [])

    @classmethod
    def from_ldap_data(cls, data: LDAPData) -> "Entry":
        """
        Build an entry from one python-ldap search result.

        Args:
            data: A ``(dn, {attr: [bytes, ...]})`` tuple, as returned by
                :py:meth:`ldap.ldapobject.SimpleLDAPObject.search_s`.

        Returns:
            A new entry.

        """
        dn, attrs = data
        return cls(
            dn,
            [EntryAttribute.from_bytes(name, raw) for name, raw in attrs.items()],
        )

    @classmethod
    def from_ldif(cls, text: str) -> list["Entry"]:
        """
        Parse LDIF content records into entries.

        Args:
            text: LDIF text.

        Returns:
            One entry per record, in file order.

        """
        parser = ldif.LDIFRecordList(io.StringIO(text))
        parser.parse()
        return [cls.from_ldap_data(record) for record in parser.all_records]

    def get_attribute(self, name: str) -> EntryAttribute | None:
        """
        Find an attribute by name, ignoring case.

        Args:
            name: The attribute name.

        Returns:
            The first matching attribute, or ``None``.

        """
        lower = name.lower()
        for attr in self.attributes:
            if attr.name.lower() == lower:
                return attr
        return None

    def get_attribute_values(self, name: str) -> list[str]:
        attr = self.get_attribute(name)
        return [] if attr is None else list(attr.values)

    def get_attribute_value(self, name: str) -> str:
        """Return the first text value of ``name``, or ``""``."""
        values = self.get_attribute_values(name)
        return values[0] if values else ""

    def get_raw_attribute_values(self, name: str) -> list[bytes]:
        attr = self.get_attribute(name)
        return [] if attr is None else list(attr.byte_values)

    def get_raw_attribute_value(self, name: str) -> bytes:
        """Return the first raw value of ``name``, or ``b""``."""
        values = self.get_raw_attribute_values(name)
        return values[0] if values else b""

    def to_ldap_data(self) -> LDAPData:
        """
        Return the entry as python-ldap data.

        Attributes with no values are kept with value ``[]``, so a caller
        building a modify list can tell which attributes must be deleted.
        Attributes whose names differ only in case are merged under the first
        spelling.

        Returns:
            A ``(dn, {attr: [bytes, ...]})`` tuple.

        """
        attrs: dict[str, list[bytes]] = {}
        names: dict[str, str] = {}
        for attr in self.attributes:
            name = names.setdefault(attr.name.lower(), attr.name)
            attrs.setdefault(name, []).extend(attr.byte_values)
        return (self.dn, attrs)

    def to_add_modlist(self, ignore_attr_types: Sequence[str] | None = None) -> AddModlist:
        """
        Return an add modlist for :py:meth:`ldap.ldapobject.SimpleLDAPObject.add_s`.

        Attributes without values are dropped.

        Args:
            ignore_attr_types: Attribute names to leave out.

        Returns:
            A list of ``(attr, [bytes, ...])`` tuples.

        """
        return modlist.addModlist(
            self.to_ldap_data()[1], ignore_attr_types=ignore_attr_types
        )

    def to_ldif(self) -> str:
        """Return the entry as an LDIF content record."""
        output = io.StringIO()
        writer = ldif.LDIFWriter(output)
        writer.unparse(self.dn, {k: v for k, v in self.to_ldap_data()[1].items() if v})
        return output.getvalue()

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Entry):
            return NotImplemented
        return self.dn == other.dn and self.attributes == other.attributes

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return f"<Entry: {self.dn}>"
