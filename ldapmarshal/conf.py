"""
Settings for django-ldapmarshal.

Configure the package with an ``LDAP_MARSHAL`` dict in your Django settings:

.. code-block:: python

    LDAP_MARSHAL = {
        # Honour marshal_ldap() / unmarshal_ldap() on models
        "USE_INTERFACE": True,
        # Don't encode fields tagged "ro"
        "SKIP_READ_ONLY": True,
    }

Every key is optional.  If Django settings are not configured at all, the
defaults are used.
"""

from typing import Any

from django.conf import settings
from django.core.exceptions import ImproperlyConfigured

#: Default values for the keys of ``settings.LDAP_MARSHAL``.
DEFAULTS: dict[str, Any] = {
    "USE_INTERFACE": True,
    "SKIP_READ_ONLY": True,
}


def get_settings() -> dict[str, Any]:
    """
    Return ``settings.LDAP_MARSHAL`` merged over :py:data:`DEFAULTS`.

    Raises:
        ImproperlyConfigured: ``LDAP_MARSHAL`` is not a dict, or has keys we
            don't know about.

    Returns:
        The effective settings.

    """
    configured = getattr(settings, "LDAP_MARSHAL", {}) if settings.configured else {}
    if not isinstance(configured, dict):
        msg = "settings.LDAP_MARSHAL must be a dict"
        raise ImproperlyConfigured(msg)
    unknown = set(configured) - set(DEFAULTS)
    if unknown:
        msg = "settings.LDAP_MARSHAL got invalid key(s): {}".format(
            ",".join(sorted(unknown))
        )
        raise ImproperlyConfigured(msg)
    return {**DEFAULTS, **configured}


def get_setting(name: str) -> Any:
    """
    Return one effective setting.

    Args:
        name: A key of :py:data:`DEFAULTS`.

    """
    return get_settings()[name]
