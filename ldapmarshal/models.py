"""
LDAP marshalling model base classes and metaclass.

This module provides the base Model class and LdapModelBase metaclass for
declaring records that marshal to and from LDAP entries:

.. code-block:: python

    from ldapmarshal import fields
    from ldapmarshal.models import Model

    class Person(Model):
        DN = fields.CharField()
        cn = fields.CharField()
        uidNumber = fields.IntegerField(tag="uidNumber,omitempty")
        mail = fields.ListField(fields.CharField())

    entry = Person(DN="uid=alice,ou=people,dc=example,dc=com", cn="Alice").to_entry()
"""

import inspect
from typing import Any, Union, cast

from django.core.exceptions import ImproperlyConfigured
from django.db.models.signals import post_init, pre_init

from .encoding import default_decoder, default_encoder
from .entry import Entry
from .options import Options
from .typing import LDAPData
from .walker import walk_fields


class LdapModelBase(type):
    """
    Metaclass for LDAP marshalling models.

    This metaclass builds the model's field table: each
    :py:class:`~ldapmarshal.fields.Field` class attribute is removed from the
    class and registered, in declaration order, on a fresh
    :py:class:`~ldapmarshal.options.Options` instance at ``cls._meta``.
    """

    def __new__(cls, name, bases, attrs, **kwargs):
        """
        Create a new LDAP model class.

        Args:
            name: The name of the class being created.
            bases: Base classes for the new class.
            attrs: Attributes and methods for the new class.
            **kwargs: Additional keyword arguments.

        Returns:
            The newly created model class.

        """
        super_new = super().__new__
        parents = [b for b in bases if isinstance(b, LdapModelBase)]
        if not parents:
            return super_new(cls, name, bases, attrs)

        # Create the class.
        module = attrs.pop("__module__")
        new_attrs = {"__module__": module}
        classcell = attrs.pop("__classcell__", None)
        if classcell is not None:
            new_attrs["__classcell__"] = classcell
        new_class = super_new(cls, name, bases, new_attrs, **kwargs)
        attr_meta = attrs.pop("Meta", None)
        meta = attr_meta or getattr(new_class, "Meta", None)

        new_class.add_to_class("_meta", Options(meta))

        # Add all attributes to the class.  This is where the fields get
        # registered
        for obj_name, obj in attrs.items():
            new_class.add_to_class(obj_name, obj)

        new_class._meta.concrete_model = new_class  # type: ignore[attr-defined]
        new_class._prepare(parents)

        return new_class

    def add_to_class(cls, name: str, value: Any) -> None:
        """
        Add an attribute to the class, calling contribute_to_class if available.

        Args:
            name: The name of the attribute to add.
            value: The value to assign to the attribute.

        """
        # We should call the contribute_to_class method only if it's bound
        if not inspect.isclass(value) and hasattr(value, "contribute_to_class"):
            value.contribute_to_class(cls, name)
        else:
            setattr(cls, name, value)

    def _prepare(cls, parents: list[type]) -> None:
        """
        Finish the class once ``cls._meta`` has been populated.

        Raises:
            ImproperlyConfigured: A field's name would hide a method of
                :py:class:`Model`.

        """
        opts = cast("Options", cls._meta)  # type: ignore[attr-defined]
        for field in opts.fields:
            if any(hasattr(parent, cast("str", field.name)) for parent in parents):
                msg = (
                    f"Field '{field.name}' on model {cls.__name__} clashes with "
                    "a Model attribute of the same name"
                )
                raise ImproperlyConfigured(msg)

        # Give the class a docstring -- its definition.
        if cls.__doc__ is None:
            cls.__doc__ = "{}({})".format(
                cls.__name__,
                ", ".join(cast("str", f.name) for f in opts.fields),
            )


def _find_owner(obj: "Model", name: str) -> Union["Model", None]:
    """
    Find the embedded model instance, at any depth, that has a field called
    ``name``.  Embedded models are searched in declaration order.
    """
    for field in cast("Options", obj._meta).embedded_fields:
        embedded = obj.__dict__.get(cast("str", field.name))
        if embedded is None:
            continue
        if name in cast("Options", embedded._meta).fields_map:
            return embedded
        owner = _find_owner(embedded, name)
        if owner is not None:
            return owner
    return None


class Model(metaclass=LdapModelBase):
    """
    Base class for LDAP marshalling models.

    Fields of embedded models are promoted: if ``Account`` embeds ``Person``
    with ``person = EmbeddedField(Person)``, then ``account.cn`` reads and
    writes ``account.person.cn``, and ``Account(cn="Alice")`` sets it.
    """

    #: The model's metadata and configuration options.
    _meta: Options | None = None

    def __init__(self, *args, **kwargs) -> None:
        """
        Initialize a new model instance.

        Args:
            *args: Positional arguments for field values, in declaration order.
            **kwargs: Keyword arguments for field values, including fields of
                embedded models.

        Raises:
            IndexError: If the number of positional arguments exceeds the number
                of fields.
            TypeError: If an invalid keyword argument is provided.

        """
        cls = self.__class__
        opts = cast("Options", self._meta)
        _setattr = setattr

        pre_init.send(sender=cls, args=args, kwargs=kwargs)

        if len(args) > len(opts.fields):
            msg = "Number of args exceeds number of fields"
            raise IndexError(msg)

        fields_iter = iter(opts.fields)
        for val, field in zip(args, fields_iter, strict=False):
            _setattr(self, cast("str", field.name), val)
            kwargs.pop(cast("str", field.name), None)

        # Now we're left with the unprocessed fields that *must* come from
        # keywords, or default.
        for field in fields_iter:
            try:
                val = kwargs.pop(cast("str", field.name))
            except KeyError:
                val = field.get_default()
            _setattr(self, cast("str", field.name), val)

        # Whatever is left must belong to an embedded model
        for kwarg, val in kwargs.items():
            owner = _find_owner(self, kwarg)
            if owner is None:
                msg = f"'{kwarg}' is an invalid keyword argument for this function"
                raise TypeError(msg)
            _setattr(owner, kwarg, val)
        super().__init__()
        post_init.send(sender=cls, instance=self)

    def __getattr__(self, name: str) -> Any:
        # Only called when normal lookup fails: try the embedded models
        if name.startswith("_"):
            raise AttributeError(name)
        owner = _find_owner(self, name)
        if owner is None:
            msg = f"'{self.__class__.__name__}' object has no attribute '{name}'"
            raise AttributeError(msg)
        return getattr(owner, name)

    def __setattr__(self, name: str, value: Any) -> None:
        opts = cast("Options", self._meta)
        if not name.startswith("_") and name not in opts.fields_map:
            owner = _find_owner(self, name)
            if owner is not None:
                setattr(owner, name, value)
                return
        super().__setattr__(name, value)

    @classmethod
    def from_entry(cls, entry: Entry) -> "Model":
        """
        Create a model instance from an LDAP entry, using the shared decoder.

        Args:
            entry: The entry to decode.

        Returns:
            A new model instance.

        """
        instance = cls()
        default_decoder().decode(entry, instance)
        return instance

    @classmethod
    def from_db(
        cls,
        objects: LDAPData | list[LDAPData],
        many: bool = False,
    ) -> Union["Model", list["Model"]]:
        """
        Create model instances from raw python-ldap search results.

        Results whose attributes are not a dict (search references) are
        skipped.

        Args:
            objects: Raw LDAP data objects ``(dn, attrs)`` tuples.
            many: Whether to return multiple objects or a single object.

        Returns:
            A single model instance or list of model instances.

        Raises:
            RuntimeError: If many=False but multiple objects are provided.

        """
        if not isinstance(objects, list):
            objects = [cast("LDAPData", objects)]
        if not many and len(objects) > 1:
            msg = (
                f"Called {cast('Options', cls._meta).object_name}.from_db() "
                "with many=False but len(objects) > 1"
            )
            raise RuntimeError(msg)
        entries = [Entry.from_ldap_data(obj) for obj in objects if isinstance(obj[1], dict)]
        rows = default_decoder().decode_many(entries, cls)
        if not many:
            return rows[0]
        return rows

    def to_entry(self) -> Entry:
        """Encode this instance with the shared encoder."""
        return default_encoder().encode(self)

    def to_db(self) -> LDAPData:
        """
        Convert the model instance to LDAP data format.

        Returns a 2-tuple similar to what we would get from python-ldap's
        :py:meth:`ldap.ldapobject.SimpleLDAPObject.search_s`:

        .. code-block:: python

            (DN, {'attr1': [b'value'], 'attr2': [b'value2'], ...})

        Attributes with no value are kept, with value ``[]``.

        Returns:
            A tuple of (dn, attrs) representing the model in LDAP format.

        """
        return self.to_entry().to_ldap_data()

    def _get_dn_value(self) -> Any:
        value = None
        for field, info, owner in walk_fields(self, encoding=True, skip_read_only=False):
            if info.is_dn and field.value_from_object(owner):
                value = field.value_from_object(owner)
        return value

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__}: {self}>"

    def __str__(self) -> str:
        return f"{self.__class__.__name__} object ({self._get_dn_value()})"

    def __eq__(self, other: object) -> bool:
        """
        Compare this model instance with another.

        Equal means the same model class, and equal values in every field.
        """
        if not isinstance(other, Model):
            return False
        if (
            cast("Options", self._meta).concrete_model
            != cast("Options", other._meta).concrete_model
        ):
            return False
        return all(
            field.value_from_object(self) == field.value_from_object(other)
            for field in cast("Options", self._meta).fields
        )

    def __hash__(self) -> int:
        """
        Return a hash value for this model instance.

        Returns:
            The hash of the model class and the DN.

        """
        return hash((self.__class__, repr(self._get_dn_value())))

