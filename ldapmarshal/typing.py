"""
LDAP marshalling type definitions.

This module provides type aliases for the python-ldap data structures that
entries convert to and from.
"""

AddModlist = list[tuple[str, list[bytes]]]
LDAPData = tuple[str, dict[str, list[bytes]]]
