#!/usr/bin/env python
from setuptools import setup, find_packages

with open("README.md", "r") as fh:
    long_description = fh.read()

setup(
    name='django-ldapmarshal',
    version='1.0.0',
    description='Declarative marshalling between Django-style models and LDAP entries',
    long_description=long_description,
    long_description_content_type="text/markdown",
    keywords=['django', 'ldap', 'marshal'],
    packages=find_packages(exclude=['bin']),
    include_package_data=True,
    install_requires=[
        'Django',
        'pytz',
        'python-ldap',
    ],
    extras_require={
        'test': [
            'pytest',
        ],
    },
    classifiers=[
        "Programming Language :: Python :: 3"
    ],
)
