"""
django-ldapmarshal: marshal declarative Django-style models to and from LDAP
directory entries.
"""

__version__ = "1.0.0"
