##############################################################################
#
# Copyright (c) 2008 Zope Foundation and Contributors.
# All Rights Reserved.
#
# This software is subject to the provisions of the Zope Public License,
# Version 2.1 (ZPL).  A copy of the ZPL should accompany this distribution.
# THIS SOFTWARE IS PROVIDED "AS IS" AND ANY AND ALL EXPRESS OR IMPLIED
# WARRANTIES ARE DISCLAIMED, INCLUDING, BUT NOT LIMITED TO, THE IMPLIED
# WARRANTIES OF TITLE, MERCHANTABILITY, AGAINST INFRINGEMENT, AND FITNESS
# FOR A PARTICULAR PURPOSE.
#
##############################################################################
import os

from setuptools import setup
from setuptools import find_packages


def read_file(*path):
    base_dir = os.path.dirname(__file__)
    file_path = (base_dir, ) + tuple(path)
    with open(os.path.join(*file_path), 'rt', encoding='utf-8') as f:
        result = f.read()
    return result

VERSION = read_file('version.txt').strip()

tests_require = [
    'zope.testrunner',
    'nti.testing',
    'PyHamcrest',
]

setup(
    name="TenantStore",
    version=VERSION,
    author="Zope Foundation and Contributors",
    keywords="SQL RDBMS MySQL PostgreSQL Oracle SQLite multi-tenant documents",
    packages=find_packages('src'),
    package_dir={'': 'src'},
    include_package_data=True,
    license="ZPL 2.1",
    platforms=["any"],
    description="Multi-tenant JSON document storage in relational databases.",
    python_requires=">=3.9",
    classifiers=[
        "Intended Audience :: Developers",
        "License :: OSI Approved :: Zope Public License",
        "Programming Language :: Python",
        "Programming Language :: Python :: 3 :: Only",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Programming Language :: Python :: 3.13",
        "Programming Language :: Python :: Implementation :: CPython",
        "Programming Language :: Python :: Implementation :: PyPy",
        "Topic :: Database",
        "Topic :: Software Development :: Libraries :: Python Modules",
        "Operating System :: Microsoft :: Windows",
        "Operating System :: Unix",
        "Development Status :: 4 - Beta",
    ],
    long_description=read_file("README.rst"),
    # ZConfig can't see our component.xml inside an archive.
    zip_safe=False,
    install_requires=[
        # PyPA standard version and requirement handling.
        'packaging',
        'perfmetrics >= 3.0.0',
        'zope.interface',
        'zope.schema',
        'zope.dottedname',
        'ZConfig',
        # Connection pooling only; no ORM or engine is used.
        'SQLAlchemy >= 1.4',
    ],
    tests_require=tests_require,
    extras_require={
        # pylint:disable=line-too-long
        'mysql:platform_python_implementation=="CPython" and (sys_platform != "win32")': [
            'mysqlclient >= 2.0.0',
        ],
        'mysql:platform_python_implementation=="PyPy" or (sys_platform == "win32")': [
            'PyMySQL>=0.6.6',
        ],
        'postgresql: platform_python_implementation == "CPython"' : [
            'psycopg2 >= 2.8.3',
        ],
        'postgresql: platform_python_implementation == "PyPy"': [
            'pg8000 >= 1.29.0',
        ],
        'oracle': [
            'oracledb',
        ],
        'mssql': [
            'pymssql',
        ],
        'sqlite': [],
        'sqlite3': [],
        'test': tests_require,
        'all_tested_drivers': [
            # Spread them out across the versions to not load any one
            # up too heavy.
            'PyMySQL >= 0.6.6; python_version == "3.9"',
            'mysqlclient >= 2.0.0',
            'mysql-connector-python >= 8.0.32; python_version == "3.10"',
            # This requirement is repeated in the driver class.
            'pg8000 >= 1.29.0; python_version == "3.11" or python_version == "3.13"',
            'psycopg[binary]; python_version == "3.12"',
            'psycopg2 >= 2.8.3; platform_python_implementation == "CPython"',
            'python-tds',
        ],
    },
)
