"""
LDAP marshalling model options and metadata.

This module provides the Options class that holds a model's field table: the
fields declared on the model, in declaration order.  The table is built once,
when the model class is created; what each field maps to is worked out from
the field's tag every time the table is walked.
"""

from bisect import bisect
from typing import TYPE_CHECKING, cast

from django.core.exceptions import FieldDoesNotExist
from django.utils.functional import cached_property
from django.utils.text import camel_case_to_spaces

if TYPE_CHECKING:
    from .fields import Field
    from .models import Model

#: The attributes the ``Meta`` class of a model may set.
DEFAULT_NAMES = (
    "verbose_name",
    "verbose_name_plural",
)


class Options:
    """
    Options class for LDAP marshalling model metadata.

    This gets instantiated by parsing the ``Meta`` class for the model, and is
    available as ``model._meta`` on the model class.

    Args:
        meta: The Meta class from the model definition.

    """

    def __init__(self, meta) -> None:
        #: The verbose name for this model.
        self.verbose_name: str | None = None
        #: The verbose name plural for this model.
        self.verbose_name_plural: str | None = None

        #: This is set up by the :py:class:`~ldapmarshal.models.LdapModelBase`
        #: metaclass.  It is not intended to be set by the user.
        self.model_name: str | None = None
        #: This is set up by the :py:class:`~ldapmarshal.models.LdapModelBase`
        #: metaclass.  It is not intended to be set by the user.
        self.object_name: str | None = None
        #: This is set up by the :py:class:`~ldapmarshal.models.LdapModelBase`
        #: metaclass.  It is not intended to be set by the user.
        self.meta = meta
        #: This is set up by the :py:class:`~ldapmarshal.models.LdapModelBase`
        #: metaclass.  It is not intended to be set by the user.
        self.concrete_model: type[Model] | None = None
        #: This is set up by the :py:class:`~ldapmarshal.models.LdapModelBase`
        #: metaclass.  It is not intended to be set by the user.
        self.local_fields: list[Field] = []

    @property
    def label(self) -> str:
        return cast("str", self.object_name)

    def contribute_to_class(self, cls: type["Model"], name: str) -> None:  # noqa: ARG002
        """
        Used by the :py:class:`~ldapmarshal.models.LdapModelBase` metaclass to
        add this :py:class:`Options` instance to a model class.

        Args:
            cls: The model class to contribute to.
            name: The name of the options attribute.

        Raises:
            TypeError: The ``Meta`` class sets something we don't know about.

        """
        cls._meta = self
        self.model = cls
        # First, construct the default values for these options.
        self.object_name = cls.__name__
        self.model_name = self.object_name.lower()
        self.verbose_name = camel_case_to_spaces(self.object_name)

        # Next, apply any overridden values from 'class Meta'.
        if self.meta:
            meta_attrs = {
                k: v for k, v in self.meta.__dict__.items() if not k.startswith("_")
            }
            for attr_name in DEFAULT_NAMES:
                if attr_name in meta_attrs:
                    setattr(self, attr_name, meta_attrs.pop(attr_name))
                elif hasattr(self.meta, attr_name):
                    setattr(self, attr_name, getattr(self.meta, attr_name))

            # Any leftover attributes must be invalid.
            if meta_attrs != {}:
                msg = "'class Meta' got invalid attribute(s): {}".format(
                    ",".join(meta_attrs)
                )
                raise TypeError(msg)
        if self.verbose_name_plural is None:
            self.verbose_name_plural = f"{self.verbose_name}s"
        del self.meta

    def add_field(self, field: "Field") -> None:
        """
        Used by :py:meth:`ldapmarshal.fields.Field.contribute_to_class` to add
        a field to the model, keeping the fields in declaration order.

        Args:
            field: The field to add.

        """
        self.local_fields.insert(bisect(self.local_fields, field), field)

    def __repr__(self) -> str:
        return f"<Options for {self.object_name}>"

    @cached_property
    def fields(self) -> list["Field"]:
        """
        Get all fields declared on this model, in declaration order.  Fields
        of embedded models are not expanded here; see
        :py:func:`ldapmarshal.walker.walk_fields` for that.

        Returns:
            A list of all fields.

        """
        return self.local_fields

    @cached_property
    def fields_map(self) -> dict[str, "Field"]:
        """
        Get a mapping of field names to field instances.

        Returns:
            A dictionary mapping field names to field instances.

        """
        return {cast("str", field.name): field for field in self.fields}

    @cached_property
    def embedded_fields(self) -> list["Field"]:
        """
        Get the :py:class:`~ldapmarshal.fields.EmbeddedField` instances on
        this model.

        Returns:
            A list of embedded fields, in declaration order.

        """
        from .fields import EmbeddedField

        return [f for f in self.fields if isinstance(f, EmbeddedField)]

    @property
    def attributes_map(self) -> dict[str, str]:
        """
        Get a mapping of field names to LDAP attribute names for the fields
        declared directly on this model.  Ignored fields are left out.

        This is recomputed on every access, since it comes from the field tags.

        Returns:
            A dictionary mapping field names to LDAP attribute names.

        """
        res = {}
        for field in self.fields:
            info = field.get_info()
            if not info.ignored:
                res[cast("str", field.name)] = info.attr_name
        return res

    def get_field(self, field_name: str) -> "Field":
        """
        Return a field instance given its name.

        Args:
            field_name: The name of the field to retrieve.

        Returns:
            The field instance.

        Raises:
            FieldDoesNotExist: If no field with the given name exists.

        """
        try:
            return self.fields_map[field_name]
        except KeyError as e:
            msg = f"{self.object_name} has no field named '{field_name}'"
            raise FieldDoesNotExist(msg) from e
