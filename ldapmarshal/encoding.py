"""
Encoding models to LDAP entries and decoding entries back into models.

Most code only needs the module level shortcuts:

.. code-block:: python

    from ldapmarshal.encoding import marshal, unmarshal

    entry = marshal(user)
    user = User()
    unmarshal(entry, user)

They use one shared :py:class:`Encoder` and :py:class:`Decoder`, configured
from ``settings.LDAP_MARSHAL`` (see :py:mod:`ldapmarshal.conf`).  Neither
class keeps any state between calls, so the shared instances are safe to use
from any number of threads.
"""

import logging
from collections.abc import Iterable
from functools import lru_cache
from typing import TYPE_CHECKING, Any, TypeVar, cast

from .coercion import bytes_to_text
from .conf import get_settings
from .entry import Entry, EntryAttribute
from .exceptions import (
    NilInput,
    NoDN,
    NotAPointer,
    NotAStruct,
    UnsupportedDNType,
)
from .interfaces import Marshaler, Unmarshaler
from .options import Options
from .walker import has_dn, walk_fields

if TYPE_CHECKING:
    from .models import Model

ModelT = TypeVar("ModelT", bound="Model")

logger = logging.getLogger("django-ldapmarshal")


def is_model_instance(obj: Any) -> bool:
    return not isinstance(obj, type) and isinstance(
        getattr(obj, "_meta", None), Options
    )


def is_model_class(obj: Any) -> bool:
    return isinstance(obj, type) and isinstance(getattr(obj, "_meta", None), Options)


class Encoder:
    """
    Turns model instances into :py:class:`~ldapmarshal.entry.Entry` objects.

    Keyword Args:
        use_interface: If True, a model implementing
            :py:class:`~ldapmarshal.interfaces.Marshaler` builds its own entry.
        skip_read_only: If True, fields tagged ``ro`` are not encoded.

    """

    def __init__(self, *, use_interface: bool = True, skip_read_only: bool = True) -> None:
        self.use_interface = use_interface
        self.skip_read_only = skip_read_only

    def __repr__(self) -> str:
        return (
            f"<Encoder use_interface={self.use_interface} "
            f"skip_read_only={self.skip_read_only}>"
        )

    def encode(self, obj: "Model") -> Entry:
        """
        Encode ``obj`` as an LDAP entry.

        Fields are processed in declaration order, with embedded models
        flattened in.  For each field:

        * tagged ``omitempty`` and holding its zero value: skipped, unless it
          is the DN field
        * holding ``None``: emitted as an attribute with no values
        * mapped to ``dn``: its value becomes the entry's DN
        * anything else: converted by the field and emitted

        If more than one field is mapped to ``dn``, the last non-empty one
        wins.

        Args:
            obj: The model instance to encode.

        Raises:
            NilInput: ``obj`` is ``None``.
            NotAStruct: ``obj`` is not a model instance.
            UnsupportedDNType: The DN field holds something other than text or
                bytes.
            UnsupportedType: A field holds a value it can't convert.
            NoDN: No field gave us a DN.

        Returns:
            A new entry.

        """
        if obj is None:
            msg = "cannot encode None"
            raise NilInput(msg)
        if (
            self.use_interface
            and not isinstance(obj, type)
            and isinstance(obj, Marshaler)
        ):
            logger.debug(
                "ldapmarshal.encode.marshaler model=%s", obj.__class__.__name__
            )
            return obj.marshal_ldap()
        if not is_model_instance(obj):
            msg = f"cannot encode {type(obj).__name__}: not a model instance"
            raise NotAStruct(msg)

        dn = ""
        attributes: list[EntryAttribute] = []
        for field, info, owner in walk_fields(
            obj, encoding=True, skip_read_only=self.skip_read_only
        ):
            value = field.value_from_object(owner)
            if info.omitempty and not info.is_dn and field.is_zero(value):
                continue
            if value is None:
                attributes.append(EntryAttribute(info.attr_name))
                continue
            if info.is_dn:
                field_dn = self.encode_dn(value)
                if field_dn:
                    dn = field_dn
                continue
            attributes.append(
                EntryAttribute(
                    info.attr_name, field.to_ldap_values(value, info.attr_name)
                )
            )
        if not dn:
            raise NoDN
        return Entry(dn, attributes)

    def encode_dn(self, value: Any) -> str:
        """
        Convert the value of the DN field to text.

        Raises:
            UnsupportedDNType: ``value`` is neither text nor bytes.

        """
        if isinstance(value, str):
            return value
        if isinstance(value, (bytes, bytearray)):
            return bytes_to_text(value)
        raise UnsupportedDNType(value)

    def encode_many(self, objs: Iterable["Model"]) -> list[Entry]:
        """
        Encode each of ``objs``, stopping at the first failure.

        Raises:
            NilInput: ``objs`` is ``None``.

        """
        if objs is None:
            msg = "cannot encode None"
            raise NilInput(msg)
        return [self.encode(obj) for obj in objs]


class Decoder:
    """
    Populates model instances from :py:class:`~ldapmarshal.entry.Entry`
    objects.

    Keyword Args:
        use_interface: If True, a model implementing
            :py:class:`~ldapmarshal.interfaces.Unmarshaler` populates itself.

    """

    def __init__(self, *, use_interface: bool = True) -> None:
        self.use_interface = use_interface

    def __repr__(self) -> str:
        return f"<Decoder use_interface={self.use_interface}>"

    def decode(self, entry: Entry, obj: "Model") -> None:
        """
        Load ``entry`` into ``obj``, in place.

        The field mapped to ``dn`` gets the entry's DN.  Every other field
        gets the values of the attribute of the same name, matched without
        regard to case.  Fields whose attribute is missing from the entry are
        left untouched.

        If decoding fails part way through, ``obj`` is left with whatever
        fields were already decoded; nothing is rolled back.

        Args:
            entry: The entry to load.
            obj: The model instance to populate.

        Raises:
            NilInput: ``obj`` is ``None``.
            NotAPointer: ``obj`` is a class, not an instance.
            NotAStruct: ``obj`` is not a model instance.
            NoDN: ``obj``'s model has no field mapped to ``dn``.
            ValueError: An attribute value couldn't be parsed.

        """
        if obj is None:
            msg = "cannot decode into None"
            raise NilInput(msg)
        if isinstance(obj, type):
            msg = f"cannot decode into the class {obj.__name__}; pass an instance"
            raise NotAPointer(msg)
        if self.use_interface and isinstance(obj, Unmarshaler):
            logger.debug(
                "ldapmarshal.decode.unmarshaler model=%s", obj.__class__.__name__
            )
            obj.unmarshal_ldap(entry)
            return
        if not is_model_instance(obj):
            msg = f"cannot decode into {type(obj).__name__}: not a model instance"
            raise NotAStruct(msg)
        if not has_dn(type(obj)):
            raise NoDN

        for field, info, owner in walk_fields(obj):
            name = cast("str", field.name)
            if info.is_dn:
                values = [entry.dn]
            else:
                attr = entry.get_attribute(info.attr_name)
                if attr is None:
                    logger.debug(
                        "ldapmarshal.decode.attribute-missing model=%s attribute=%s",
                        obj.__class__.__name__,
                        info.attr_name,
                    )
                    continue
                values = attr.values
            setattr(owner, name, field.from_ldap_values(values, getattr(owner, name)))

    def decode_many(self, entries: Iterable[Entry], model: type[ModelT]) -> list[ModelT]:
        """
        Decode each of ``entries`` into a new instance of ``model``, stopping
        at the first failure.

        Args:
            entries: The entries to decode.
            model: The model class to instantiate.

        Raises:
            NilInput: ``entries`` is ``None``.
            NotAStruct: ``model`` is not a model class.

        Returns:
            One new instance per entry, in order.

        """
        if entries is None:
            msg = "cannot decode None"
            raise NilInput(msg)
        if not is_model_class(model):
            msg = f"cannot decode into {model!r}: not a model class"
            raise NotAStruct(msg)
        objs = []
        for entry in entries:
            obj = model()
            self.decode(entry, obj)
            objs.append(obj)
        return objs


@lru_cache(maxsize=None)
def default_encoder() -> Encoder:
    """
    Return the shared :py:class:`Encoder`, built from settings on first use.
    """
    conf = get_settings()
    return Encoder(
        use_interface=conf["USE_INTERFACE"], skip_read_only=conf["SKIP_READ_ONLY"]
    )


@lru_cache(maxsize=None)
def default_decoder() -> Decoder:
    """
    Return the shared :py:class:`Decoder`, built from settings on first use.
    """
    return Decoder(use_interface=get_settings()["USE_INTERFACE"])


def marshal(obj: "Model") -> Entry:
    """Encode ``obj`` with the shared encoder."""
    return default_encoder().encode(obj)


def unmarshal(entry: Entry, obj: "Model") -> None:
    """Decode ``entry`` into ``obj`` with the shared decoder."""
    default_decoder().decode(entry, obj)


def marshal_many(objs: Iterable["Model"]) -> list[Entry]:
    """Encode each of ``objs`` with the shared encoder."""
    return default_encoder().encode_many(objs)


def unmarshal_many(entries: Iterable[Entry], model: type[ModelT]) -> list[ModelT]:
    """Decode each of ``entries`` into a new ``model`` with the shared decoder."""
    return default_decoder().decode_many(entries, model)
