"""
Scalar coercion between Python values and LDAP attribute text.

Each supported kind of value has exactly one formatting rule and one parsing
rule here.  The typed fields in :py:mod:`ldapmarshal.fields` call the rule for
their kind; the untyped :py:class:`~ldapmarshal.fields.Field` dispatches on the
runtime type of the value through :py:func:`encode_value`.
"""

import datetime
import logging
import re
from typing import Any

import pytz

from .exceptions import UnsupportedType
from .interfaces import BinaryEncoder

logger = logging.getLogger("django-ldapmarshal")

#: The text LDAP uses for boolean true.
LDAP_TRUE: str = "TRUE"
#: The text LDAP uses for boolean false.
LDAP_FALSE: str = "FALSE"

#: Output format for timestamps; seconds precision, always UTC.
LDAP_DATETIME_FORMAT: str = "%Y%m%d%H%M%S.0Z"
#: Input format for timestamps that are not a plain integer.
LDAP_DATETIME_PARSE_FORMAT: str = "%Y%m%d%H%M%S.%fZ"

#: The Unix epoch.
UNIX_EPOCH: datetime.datetime = datetime.datetime(1970, 1, 1, tzinfo=pytz.utc)
#: 100-nanosecond intervals between 1601-01-01 and 1970-01-01.
FILETIME_EPOCH_OFFSET: int = 116_444_736_000_000_000
#: 100-nanosecond intervals per second.
INTERVALS_PER_SECOND: int = 10_000_000

#: What a malformed timestamp decodes to.
ZERO_TIMESTAMP: datetime.datetime = datetime.datetime.min.replace(tzinfo=pytz.utc)

_INTEGER_RE = re.compile(r"[+-]?[0-9]+", re.ASCII)
_UNSIGNED_RE = re.compile(r"[0-9]+", re.ASCII)


def bytes_to_text(data: bytes | bytearray) -> str:
    """
    Reinterpret raw bytes as attribute text.

    Bytes that aren't valid UTF-8 are kept as surrogate escapes so that
    :py:func:`text_to_bytes` gives back exactly the same bytes.
    """
    return bytes(data).decode("utf-8", "surrogateescape")


def text_to_bytes(text: str) -> bytes:
    return text.encode("utf-8", "surrogateescape")


def format_bool(value: bool) -> str:  # noqa: FBT001
    return LDAP_TRUE if value else LDAP_FALSE


def parse_bool(text: str) -> bool:
    """Anything other than ``TRUE``, in any case, is ``False``."""
    return text.upper() == LDAP_TRUE


def format_int(value: int) -> str:
    return f"{value:d}"


def parse_int(text: str) -> int:
    """
    Parse a signed decimal integer.

    Raises:
        ValueError: ``text`` is not an optional sign followed by ASCII digits.

    """
    if not _INTEGER_RE.fullmatch(text):
        msg = f"invalid literal for integer: {text!r}"
        raise ValueError(msg)
    return int(text, 10)


def parse_unsigned(text: str) -> int:
    """
    Parse an unsigned decimal integer.

    Raises:
        ValueError: ``text`` is not a run of ASCII digits.

    """
    if not _UNSIGNED_RE.fullmatch(text):
        msg = f"invalid literal for unsigned integer: {text!r}"
        raise ValueError(msg)
    return int(text, 10)


def format_float(value: float) -> str:
    """Fixed notation, six decimals.  This does not round-trip exactly."""
    return f"{value:f}"


def parse_float(text: str) -> float:
    return float(text)


def _as_utc(value: datetime.datetime) -> datetime.datetime:
    if value.tzinfo is None:
        return pytz.utc.localize(value)
    return value.astimezone(pytz.utc)


def format_timestamp(value: datetime.datetime) -> str:
    """
    Format a datetime as LDAP generalized time.

    Naive datetimes are taken to be UTC.  Sub-second precision is dropped.
    """
    return _as_utc(value).strftime(LDAP_DATETIME_FORMAT)


def format_filetime(value: datetime.datetime) -> str:
    """
    Format a datetime as a Windows FILETIME: the number of 100-nanosecond
    intervals since 1601-01-01 UTC, as used by Active Directory.
    """
    delta = _as_utc(value) - UNIX_EPOCH
    seconds = delta.days * 86400 + delta.seconds
    ticks = seconds * INTERVALS_PER_SECOND + delta.microseconds * 10
    return format_int(ticks + FILETIME_EPOCH_OFFSET)


def parse_filetime(ticks: int) -> datetime.datetime:
    """Convert FILETIME ticks to an aware UTC datetime, truncated to the second."""
    seconds = (ticks - FILETIME_EPOCH_OFFSET) // INTERVALS_PER_SECOND
    return UNIX_EPOCH + datetime.timedelta(seconds=seconds)


def parse_timestamp(text: str) -> datetime.datetime:
    """
    Parse an LDAP timestamp.

    Text that is a plain integer is a FILETIME; anything else must match
    :py:data:`LDAP_DATETIME_PARSE_FORMAT`.  Malformed text is not an error:
    it yields :py:data:`ZERO_TIMESTAMP`.

    Args:
        text: The attribute value.

    Returns:
        An aware UTC datetime.

    """
    try:
        if _INTEGER_RE.fullmatch(text):
            return parse_filetime(int(text, 10))
        parsed = datetime.datetime.strptime(text, LDAP_DATETIME_PARSE_FORMAT)
    except (ValueError, OverflowError):
        logger.warning("ldapmarshal.coercion.timestamp.malformed value=%s", text)
        return ZERO_TIMESTAMP
    return pytz.utc.localize(parsed)


def is_zero(value: Any) -> bool:  # noqa: PLR0911
    """
    Is ``value`` the zero value of its type?

    ``None``, ``False``, numeric zero, empty strings, bytes and collections,
    and :py:data:`ZERO_TIMESTAMP` are zero.  Other objects are zero only if
    they define an ``is_zero()`` method that says so.
    """
    if value is None:
        return True
    if isinstance(value, datetime.datetime):
        return value.replace(tzinfo=None) == datetime.datetime.min
    if isinstance(value, (bool, int, float)):
        return value == 0
    if isinstance(value, (str, bytes, bytearray, list, tuple, dict, set)):
        return len(value) == 0
    method = getattr(value, "is_zero", None)
    if callable(method):
        return bool(method())
    return False


def encode_value(value: Any, attr_name: str) -> list[str]:  # noqa: PLR0911
    """
    Convert one value to attribute text by looking at its runtime type.

    Order matters: a :py:class:`~ldapmarshal.interfaces.BinaryEncoder` wins
    over everything else, and ``bool`` is checked before ``int``.  Lists and
    tuples are flattened, skipping zero-valued elements.

    Args:
        value: The value to convert.  Must not be ``None``.
        attr_name: The attribute name, for error messages.

    Raises:
        UnsupportedType: ``value`` has no conversion rule.

    Returns:
        Zero or more text values.

    """
    if isinstance(value, BinaryEncoder):
        return [bytes_to_text(value.encode_ldap())]
    if isinstance(value, bool):
        return [format_bool(value)]
    if isinstance(value, int):
        return [format_int(value)]
    if isinstance(value, float):
        return [format_float(value)]
    if isinstance(value, str):
        return [value]
    if isinstance(value, (bytes, bytearray)):
        return [bytes_to_text(value)]
    if isinstance(value, datetime.datetime):
        return [format_timestamp(value)]
    if isinstance(value, (list, tuple)):
        values: list[str] = []
        for item in value:
            if is_zero(item):
                continue
            values.extend(encode_value(item, attr_name))
        return values
    raise UnsupportedType(attr_name, value)


def decode_value(text: str, current: Any) -> Any:  # noqa: PLR0911
    """
    Convert one attribute value back to the type of ``current``, mirroring
    :py:func:`encode_value`.  Text, and anything :py:func:`encode_value` has
    no rule for, comes back as text.

    Args:
        text: The attribute value.
        current: The field's value before decoding.

    Raises:
        ValueError: ``current`` is numeric and ``text`` is not.

    Returns:
        The decoded value.

    """
    if isinstance(current, bool):
        return parse_bool(text)
    if isinstance(current, int):
        return parse_int(text)
    if isinstance(current, float):
        return parse_float(text)
    if isinstance(current, (bytes, bytearray)):
        return text_to_bytes(text)
    if isinstance(current, datetime.datetime):
        return parse_timestamp(text)
    return text
