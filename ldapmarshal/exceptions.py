"""
LDAP marshalling exceptions.

Every error raised while encoding a :py:class:`~ldapmarshal.models.Model` to an
:py:class:`~ldapmarshal.entry.Entry`, or decoding an entry back into a model,
derives from :py:class:`LdapMarshalError`.  Parse errors from numeric text are
not wrapped: they surface as the :py:exc:`ValueError` raised by :py:func:`int`
or :py:func:`float`.
"""

from typing import Any


class LdapMarshalError(Exception):
    """Base class for all encode/decode errors."""


class NilInput(LdapMarshalError):  # noqa: N818
    """Raised when a required argument is ``None``."""


class NotAPointer(LdapMarshalError):  # noqa: N818
    """
    Raised when a decode target cannot be mutated in place, e.g. a model
    class was passed where a model instance was expected.
    """


class NotAStruct(LdapMarshalError):  # noqa: N818
    """Raised when a value is not a model instance."""


class NoDN(LdapMarshalError):  # noqa: N818
    """Raised when no field resolves to the ``dn`` attribute."""

    def __init__(self, message: str = "no DN found") -> None:
        super().__init__(message)


class UnsupportedDNType(LdapMarshalError):  # noqa: N818
    """
    Raised when the field mapped to ``dn`` holds something other than text
    or bytes.

    Args:
        value: The offending value.

    """

    def __init__(self, value: Any) -> None:
        self.value = value
        super().__init__(f"unsupported DN type: {type(value).__name__}")


class UnsupportedType(LdapMarshalError):  # noqa: N818
    """
    Raised when a field value has no coercion rule.

    Args:
        attr_name: The LDAP attribute the value was destined for.
        value: The offending value.

    """

    def __init__(self, attr_name: str, value: Any) -> None:
        self.attr_name = attr_name
        self.value = value
        super().__init__(
            f"unsupported type {type(value).__name__} for {attr_name}"
        )
