"""
LDAP marshalling Field implementations.

This module provides Django ORM-like field classes for declaring models that
marshal to LDAP entries.  Each field type owns the conversion rule for one
kind of value, in both directions:

* :py:meth:`Field.to_ldap_values` turns the Python value into attribute text
* :py:meth:`Field.from_ldap_values` turns attribute text back into the Python
  value

The untyped :py:class:`Field` accepts any value the runtime dispatch in
:py:func:`ldapmarshal.coercion.encode_value` understands.
"""

import datetime
from functools import total_ordering
from typing import TYPE_CHECKING, Any, cast

from django.core.exceptions import ImproperlyConfigured
from django.db.models.fields import NOT_PROVIDED
from django.utils.translation import gettext_lazy as _

from . import coercion
from .exceptions import UnsupportedType
from .interfaces import BinaryDecoder, BinaryEncoder
from .options import Options
from .tags import FieldInfo, parse_tag

if TYPE_CHECKING:
    from .models import Model


@total_ordering
class Field:
    """
    Base field class for LDAP marshalling models.

    Args:
        verbose_name: The human-readable name of the field.
        name: The name of the field.
        tag: The field tag: the LDAP attribute name, or ``-`` to exclude the
            field, optionally followed by ``,omitempty`` and/or ``,ro``.
        null: If True, the field defaults to ``None`` rather than the zero
            value of its kind.
        default: The default value for the field, or a callable returning it.
        help_text: Help text for the field.

    """

    #: Types :py:meth:`to_ldap_values` accepts; ``None`` means "dispatch on
    #: the runtime type of the value".
    python_types: tuple[type, ...] | None = None
    #: The zero value for this kind of field.
    empty_value: Any = None
    #: Counter for field creation order, used for sorting fields.
    creation_counter: int = 0

    #: Human-readable description of the field type.
    description: str = _("Any LDAP value")  # type: ignore[assignment]

    def __init__(  # noqa: PLR0913
        self,
        verbose_name: str | None = None,
        name: str | None = None,
        tag: str | None = None,
        null: bool = False,
        default: Any = NOT_PROVIDED,
        help_text: str = "",
    ) -> None:
        self.name = name
        self.verbose_name = verbose_name  # May be set by set_attributes_from_name
        self.tag = tag
        self.null = null
        self.default = default
        self.help_text = help_text

        self.model: type[Model] | None = None

        self.creation_counter = Field.creation_counter
        Field.creation_counter += 1

    def __repr__(self) -> str:
        """
        Display the module, class, and name of the field.

        Returns:
            A string representation of the field.

        """
        path = f"{self.__class__.__module__}.{self.__class__.__qualname__}"
        name = getattr(self, "name", None)
        if name is not None:
            return f"<{path}: {name}>"
        return f"<{path}>"

    def __lt__(self, other: "Field") -> bool:
        """
        Compare fields by creation counter, so that sorting a model's fields
        gives declaration order.

        Raises:
            NotImplementedError: If the other object is not a Field.

        """
        if isinstance(other, Field):
            return self.creation_counter < other.creation_counter
        raise NotImplementedError

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Field):
            return self.creation_counter == other.creation_counter
        raise NotImplementedError

    def __hash__(self) -> int:
        return hash(self.creation_counter)

    def get_info(self) -> FieldInfo:
        """
        Parse our tag.  This is done on every call; nothing is cached.

        Returns:
            The attribute name and flags for this field.

        """
        return parse_tag(cast("str", self.name), self.tag)

    @property
    def ldap_attribute(self) -> str:
        """
        Get the LDAP attribute name for this field.

        Returns:
            The name from our tag, if it has one, otherwise one derived from
            the field name.

        """
        return self.get_info().attr_name

    def has_default(self) -> bool:
        return self.default is not NOT_PROVIDED

    def get_empty_value(self) -> Any:
        """Return a fresh zero value for this kind of field."""
        return self.empty_value

    def get_default(self) -> Any:
        """
        Get the default value for this field.

        Returns:
            ``default`` (called, if it is callable), else ``None`` for
            ``null=True`` fields, else our zero value.

        """
        if self.has_default():
            if callable(self.default):
                return self.default()
            return self.default
        if self.null:
            return None
        return self.get_empty_value()

    def is_zero(self, value: Any) -> bool:
        """Is ``value`` the zero value of its kind?  Used for ``omitempty``."""
        return coercion.is_zero(value)

    def accepts(self, value: Any) -> bool:
        return self.python_types is None or isinstance(value, self.python_types)

    def to_ldap_value(self, value: Any) -> str:
        """
        Convert one accepted, non-``None`` value to attribute text.

        Subclasses implement the rule for their kind here.
        """
        raise NotImplementedError

    def to_ldap_values(self, value: Any, attr_name: str) -> list[str]:
        """
        Convert a non-``None`` Python value to attribute text.

        A value implementing :py:class:`~ldapmarshal.interfaces.BinaryEncoder`
        always uses its own encoding.

        Args:
            value: The value to convert.
            attr_name: The attribute name, for error messages.

        Raises:
            UnsupportedType: This field can't convert ``value``.

        Returns:
            Zero or more text values.

        """
        if isinstance(value, BinaryEncoder):
            return [coercion.bytes_to_text(value.encode_ldap())]
        if self.python_types is None:
            return coercion.encode_value(value, attr_name)
        if not self.accepts(value):
            raise UnsupportedType(attr_name, value)
        return [self.to_ldap_value(value)]

    def to_python_value(self, text: str) -> Any:
        """Convert one attribute value to our Python type."""
        return text

    def from_ldap_values(self, values: list[str], current: Any) -> Any:
        """
        Convert the values of an LDAP attribute to our Python value.

        Scalar fields use only the first value; any others are dropped.  With
        no values at all the current value is returned unchanged.  A current
        value implementing :py:class:`~ldapmarshal.interfaces.BinaryDecoder`
        is loaded in place.
        The untyped :py:class:`Field` parses the value back to the type of
        ``current``; see :py:func:`ldapmarshal.coercion.decode_value`.

        Args:
            values: The attribute's text values.
            current: The field's value before decoding.

        Returns:
            The new value for the field.

        """
        if not values:
            return current
        if isinstance(current, BinaryDecoder):
            current.decode_ldap(coercion.text_to_bytes(values[0]))
            return current
        if self.python_types is None:
            if isinstance(current, list):
                return list(values)
            return coercion.decode_value(values[0], current)
        return self.to_python_value(values[0])

    def set_attributes_from_name(self, name: str) -> None:
        self.name = self.name or name
        self.attname = self.name
        if self.verbose_name is None and self.name:
            self.verbose_name = self.name.replace("_", " ")

    def value_from_object(self, obj: "Model") -> Any:
        """
        Get the field's value from a model object.

        Args:
            obj: The model object.

        Returns:
            The field's value from the object.

        """
        return getattr(obj, cast("str", self.name))

    def contribute_to_class(self, cls, name: str) -> None:
        """
        Register the field with the model class it belongs to.

        Args:
            cls: The model class to register with.
            name: The name of the field.

        """
        self.set_attributes_from_name(name)
        self.model = cls
        cls._meta.add_field(self)


class CharField(Field):
    """A field for storing character strings."""

    python_types = (str,)
    empty_value = ""
    description: str = _("String")  # type: ignore[assignment]

    def to_ldap_value(self, value: str) -> str:
        return value


class IntegerField(Field):
    """
    A field for storing signed integers as decimal text.

    Decoding text that isn't a decimal integer raises :py:exc:`ValueError`.
    """

    python_types = (int,)
    empty_value = 0
    description: str = _("Integer")  # type: ignore[assignment]

    def accepts(self, value: Any) -> bool:
        # bool is an int subclass, but it is not an integer to LDAP
        return isinstance(value, int) and not isinstance(value, bool)

    def to_ldap_value(self, value: int) -> str:
        return coercion.format_int(value)

    def to_python_value(self, text: str) -> int:
        return coercion.parse_int(text)


class UnsignedIntegerField(IntegerField):
    """A field for storing non-negative integers."""

    description: str = _("Unsigned integer")  # type: ignore[assignment]

    def to_ldap_value(self, value: int) -> str:
        if value < 0:
            msg = f'Field "{self.name}" (UnsignedIntegerField) got negative value {value}'
            raise ValueError(msg)
        return super().to_ldap_value(value)

    def to_python_value(self, text: str) -> int:
        return coercion.parse_unsigned(text)


class FloatField(Field):
    """
    A field for storing floating point numbers.

    Values are written with six decimals, so they do not round-trip exactly.
    """

    python_types = (float, int)
    empty_value = 0.0
    description: str = _("Floating point number")  # type: ignore[assignment]

    def accepts(self, value: Any) -> bool:
        return super().accepts(value) and not isinstance(value, bool)

    def to_ldap_value(self, value: float) -> str:
        return coercion.format_float(value)

    def to_python_value(self, text: str) -> float:
        return coercion.parse_float(text)


class BooleanField(Field):
    """
    A boolean field which stores the strings ``TRUE`` and ``FALSE`` in LDAP.

    Any value other than ``TRUE`` (in any case) decodes to ``False``.
    """

    python_types = (bool,)
    empty_value = False
    description: str = _("Boolean (Either True or False)")  # type: ignore[assignment]

    def to_ldap_value(self, value: bool) -> str:  # noqa: FBT001
        return coercion.format_bool(value)

    def to_python_value(self, text: str) -> bool:
        return coercion.parse_bool(text)


class BinaryField(Field):
    """
    A field for storing binary data, such as photos or certificates.

    The bytes are carried as-is; they are not base64 encoded.  When decoding,
    only the first value of the attribute is used.
    """

    python_types = (bytes, bytearray)
    empty_value = b""
    description: str = _("Binary data")  # type: ignore[assignment]

    def to_ldap_value(self, value: bytes | bytearray) -> str:
        return coercion.bytes_to_text(value)

    def to_python_value(self, text: str) -> bytes:
        return coercion.text_to_bytes(text)


class DateTimeField(Field):
    """
    A field for storing timestamps.

    Values are written as generalized time (``YYYYmmddHHMMSS.0Z``, UTC,
    seconds precision).  When decoding, an attribute value that is a plain
    integer is read as a Windows FILETIME instead, as Active Directory stores
    ``pwdLastSet`` and friends.  Values in neither format decode to
    :py:data:`~ldapmarshal.coercion.ZERO_TIMESTAMP`.
    """

    python_types = (datetime.datetime,)
    empty_value = coercion.ZERO_TIMESTAMP
    description: str = _("Date (with time)")  # type: ignore[assignment]

    def to_ldap_value(self, value: datetime.datetime) -> str:
        return coercion.format_timestamp(value)

    def to_python_value(self, text: str) -> datetime.datetime:
        return coercion.parse_timestamp(text)


class ActiveDirectoryTimestampField(DateTimeField):
    """
    A timestamp field that writes Windows FILETIME values: the number of
    100-nanosecond intervals since January 1, 1601 UTC.
    """

    description: str = _("Active Directory DateTime")  # type: ignore[assignment]

    def to_ldap_value(self, value: datetime.datetime) -> str:
        return coercion.format_filetime(value)


class CodecField(Field):
    """
    A field whose value object does its own binary encoding.

    ``value_class`` must implement both
    :py:class:`~ldapmarshal.interfaces.BinaryEncoder` and
    :py:class:`~ldapmarshal.interfaces.BinaryDecoder`, and be constructible
    with no arguments.  Decoding loads the current value in place, creating
    one first if the field is ``None``.

    Args:
        value_class: The class of the field's values.

    Raises:
        ImproperlyConfigured: ``value_class`` lacks ``encode_ldap`` or
            ``decode_ldap``.

    """

    description: str = _("Custom binary value")  # type: ignore[assignment]

    def __init__(self, value_class: type, *args, **kwargs) -> None:
        if not (
            issubclass(value_class, BinaryEncoder)
            and issubclass(value_class, BinaryDecoder)
        ):
            msg = (
                f"CodecField value_class {value_class.__name__} must define "
                "encode_ldap() and decode_ldap()"
            )
            raise ImproperlyConfigured(msg)
        self.value_class = value_class
        self.python_types = (value_class,)
        super().__init__(*args, **kwargs)

    def get_empty_value(self) -> Any:
        return self.value_class()

    def from_ldap_values(self, values: list[str], current: Any) -> Any:
        if values and current is None:
            current = self.value_class()
        return super().from_ldap_values(values, current)

    def to_python_value(self, text: str) -> Any:
        value = self.value_class()
        value.decode_ldap(coercion.text_to_bytes(text))
        return value


class ListField(Field):
    """
    A multi-valued field: a list of values of ``base_field``'s kind.

    Encoding emits one attribute holding every non-zero element, in order.
    Decoding builds a new list with one element per attribute value.

    Args:
        base_field: The field describing one element.  Defaults to an
            untyped :py:class:`Field`, whose elements decode as ``str``.

    """

    python_types = (list, tuple)
    description: str = _("List")  # type: ignore[assignment]

    def __init__(self, base_field: Field | None = None, *args, **kwargs) -> None:
        self.base_field = base_field or Field()
        super().__init__(*args, **kwargs)

    def get_empty_value(self) -> list[Any]:
        return []

    def to_ldap_values(self, value: Any, attr_name: str) -> list[str]:
        if not self.accepts(value):
            raise UnsupportedType(attr_name, value)
        values: list[str] = []
        for item in value:
            if self.base_field.is_zero(item):
                continue
            values.extend(self.base_field.to_ldap_values(item, attr_name))
        return values

    def from_ldap_values(self, values: list[str], current: Any) -> list[Any]:  # noqa: ARG002
        return [
            self.base_field.from_ldap_values([v], self.base_field.get_empty_value())
            for v in values
        ]


class EmbeddedField(Field):
    """
    Embed another model: its fields are flattened into ours.

    The instance attribute holds an instance of ``to``; when encoding and
    decoding, that instance's fields are walked in place of this field, as if
    they had been declared here.

    Args:
        to: The embedded model class.

    """

    description: str = _("Embedded model")  # type: ignore[assignment]

    def __init__(self, to: type["Model"], *args, **kwargs) -> None:
        self.to = to
        super().__init__(*args, **kwargs)

    def get_empty_value(self) -> "Model":
        return self.to()

    def contribute_to_class(self, cls, name: str) -> None:
        """
        Register the field with its model.

        Raises:
            ImproperlyConfigured: ``to`` is not a model class.

        """
        if not isinstance(getattr(self.to, "_meta", None), Options):
            msg = (
                f"EmbeddedField {cls.__name__}.{name} must embed a Model "
                f"subclass, not {self.to!r}"
            )
            raise ImproperlyConfigured(msg)
        super().contribute_to_class(cls, name)

