##############################################################################
#
# Copyright (c) 2016 Zope Foundation and Contributors.
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
"""
Helpers for drivers
"""

import importlib
import sys
from importlib import metadata

from packaging.version import parse as parse_version
from packaging.version import InvalidVersion
from packaging.requirements import Requirement

from zope.dottedname.resolve import resolve as resolve_dotted_name
from zope.interface import directlyProvides
from zope.interface import implementer

from .._compat import PYPY
from .._compat import casefold
from .._util import get_positive_integer_from_environ

from .interfaces import IDBDriver
from .interfaces import IDBDriverFactory
from .interfaces import IDBDriverOptions
from .interfaces import DriverNotAvailableError
from .interfaces import NoDriversAvailableError
from .interfaces import UnknownDriverError

logger = __import__('logging').getLogger(__name__)

#: The modules implementing `IDBDriverOptions`, by database type.
#: The keys are the recognized URL schemes.
DRIVER_OPTIONS_MODULES = {
    'mysql': 'tenantstore.adapters.mysql.drivers',
    'postgresql': 'tenantstore.adapters.postgresql.drivers',
    'sqlite': 'tenantstore.adapters.sqlite.drivers',
    'oracle': 'tenantstore.adapters.oracle.drivers',
    'mssql': 'tenantstore.adapters.mssql.drivers',
}


def _select_driver_by_name(driver_name, driver_options):
    wanted = casefold(driver_name or 'auto')
    any_driver = wanted == 'auto'
    failures = {}
    for factory in driver_options.known_driver_factories():
        if not any_driver and casefold(factory.driver_name) != wanted:
            continue
        try:
            driver = factory()
        except DriverNotAvailableError as ex:
            if not any_driver:
                ex.driver_options = driver_options
                raise
            failures[factory.driver_name] = str(ex)
            continue
        logger.debug("Using driver %s for requested name %r", driver, wanted)
        return driver

    error = NoDriversAvailableError if any_driver else UnknownDriverError
    raise error(wanted, driver_options, failures or None)


def driver_options_for(database_type):
    """
    Return the `IDBDriverOptions` module for *database_type*, or None
    if that type of database has no registered drivers.
    """
    module_name = DRIVER_OPTIONS_MODULES.get(database_type)
    if module_name is None:
        return None
    return importlib.import_module(module_name)


def select_driver(database_type, driver_name):
    """
    Choose and return an `IDBDriver`.

    The registered drivers for *database_type* are consulted first.
    A *driver_name* not registered there is looked up among all
    registered drivers, and finally imported as the dotted name of a
    DB-API module.

    :raises DriverNotAvailableError: If no driver can be loaded.
    """
    driver_options = driver_options_for(database_type)
    if driver_options is not None:
        try:
            return driver_options.select_driver(driver_name)
        except UnknownDriverError as ex:
            unknown = ex
    else:
        if not driver_name or casefold(driver_name) == 'auto':
            raise UnknownDriverError(
                driver_name or 'auto',
                reason="No registered drivers for database type %r" % (database_type,))
        unknown = None

    for other_type in sorted(DRIVER_OPTIONS_MODULES):
        if other_type == database_type:
            continue
        try:
            return driver_options_for(other_type).select_driver(driver_name)
        except UnknownDriverError:
            continue

    try:
        return DottedNameDriver(driver_name)
    except DriverNotAvailableError:
        if unknown is not None:
            raise unknown
        raise


class DriverNotImportableError(DriverNotAvailableError,
                               ImportError):
    "When the module can't be imported."


class _FalseReason:
    def __init__(self, exc):
        if isinstance(exc, str):
            self.message = exc
        else:
            self.message = "%s: %s" % (type(exc).__name__, exc)

    def __bool__(self):
        return False

    def __str__(self):
        return self.message


def _has_requirement(requirement):
    """
    Is the distribution named by the ``packaging`` *requirement*
    installed in a matching version?

    Returns True, or a false value describing the mismatch.
    """
    try:
        installed = parse_version(metadata.version(requirement.name))
    except (ImportError, InvalidVersion) as ex:
        return _FalseReason(ex)

    if installed not in requirement.specifier:
        return _FalseReason('Requirement %s not met with package: %s' % (
            requirement, installed
        ))
    return True


def translate_paramstyle(stmt, params, paramstyle):
    """
    Rewrite *stmt*, which uses ``%s`` placeholders, for *paramstyle*.

    Returns the new statement and parameters.
    """
    if paramstyle in ('format', 'pyformat') or params is None:
        return stmt, params
    parts = stmt.split('%s')
    if paramstyle == 'qmark':
        return '?'.join(parts), params
    result = [parts[0]]
    if paramstyle == 'numeric':
        for i, part in enumerate(parts[1:], 1):
            result.append(':%d' % i)
            result.append(part)
        return ''.join(result), params
    if paramstyle == 'named':
        for i, part in enumerate(parts[1:], 1):
            result.append(':p%d' % i)
            result.append(part)
        params = {'p%d' % i: v for i, v in enumerate(params, 1)}
        return ''.join(result), params
    raise ValueError("Unsupported paramstyle", paramstyle)


class AbstractModuleDriver(object):
    """
    Base implementation of a driver, based on a module, as used in DBAPI.

    Subclasses must provide:

    - ``MODULE_NAME`` property.
    - ``__name__`` property
    - Implementation of ``get_driver_module``; this should import the
      module at runtime.
    - Implementations of ``exception_is_missing_column`` and
      ``exception_is_column_count_mismatch`` that inspect the
      structured error data the module provides.
    """

    #: The name of the DB-API module to import.
    MODULE_NAME = None

    #: The name written in config files
    __name__ = None

    #: Can this module be used on PyPy?
    AVAILABLE_ON_PYPY = True

    #: Set this to a false value if your subclass can do static checks
    #: at import time to determine it should not be used.
    STATIC_AVAILABLE = True

    #: Set this to a sequence of strings of requirements ``("pg8000 >= 1.29",)``
    #: Creating an instance will validate that the requirements
    #: are met (packages with correct versions are installed).
    #:
    #: Do this only when a requirement cannot be specified in
    #: setup.py as an installation requirement.
    REQUIREMENTS = ()

    #: Priority of this driver, when available. Lower is better.
    #: (That is, first choice should have value 1, and second choice value
    #: 2, and so on.)
    PRIORITY = 100

    #: Priority of this driver when running on PyPy. Lower is better.
    PRIORITY_PYPY = 100

    #: The paramstyle to translate ``%s`` placeholders to. If None,
    #: the module's ``paramstyle`` is used.
    PARAMSTYLE = None

    #: The size we request cursor's from our :meth:`cursor` method
    #: to fetch from ``fetchmany``. We default to 1024, but the
    #: environment variable TS_CURSOR_ARRAYSIZE can be set to an int to
    #: change this default.
    cursor_arraysize = get_positive_integer_from_environ(
        'TS_CURSOR_ARRAYSIZE', 1024,
        logger=logger,
    )

    DriverNotAvailableError = DriverNotAvailableError

    def __init__(self):
        self.driver_module = mod = self._check_preconditions()

        self.disconnected_exceptions = (mod.OperationalError,
                                        mod.InterfaceError)
        self.close_exceptions = self.disconnected_exceptions + (mod.ProgrammingError,)
        self.database_exceptions = (mod.Error,)
        self._connect = mod.connect
        self.priority = self.PRIORITY if not PYPY else self.PRIORITY_PYPY
        self.paramstyle = self.PARAMSTYLE or getattr(mod, 'paramstyle', 'format')

    def _check_preconditions(self):
        name = self.__name__
        if PYPY and not self.AVAILABLE_ON_PYPY:
            raise self.DriverNotAvailableError(name, reason="Not available on PyPy")
        if not self.STATIC_AVAILABLE:
            raise self.DriverNotAvailableError(name, reason=self.STATIC_AVAILABLE)

        # Import by module name; distribution names can differ.
        try:
            mod = self.get_driver_module()
        except ImportError as ex:
            logger.debug("Driver %r could not import %r", name, self.MODULE_NAME,
                         exc_info=True)
            raise DriverNotImportableError(name, reason=str(ex)) from ex

        for req in self.REQUIREMENTS:
            met = _has_requirement(Requirement(req))
            if not met:
                raise self.DriverNotAvailableError(name, reason=met)
        return mod

    @property
    def driver_identifier(self):
        return self.MODULE_NAME

    def connect(self, *args, **kwargs):
        return self._connect(*args, **kwargs)

    def get_driver_module(self):
        """Import and return the driver module."""
        return importlib.import_module(self.MODULE_NAME)

    def _endpoint_connect_args(self, endpoint, user, password):
        """
        Return the keyword arguments to pass to :meth:`connect`.

        This implementation uses the most common DB-API spelling.
        """
        kwargs = {
            'host': endpoint.host,
            'port': endpoint.port,
            'database': endpoint.database,
            'user': user,
            'password': password,
        }
        return {k: v for k, v in kwargs.items() if v is not None}

    def connect_to_endpoint(self, endpoint, user=None, password=None, **extra):
        user = user if user is not None else endpoint.user
        password = password if password is not None else endpoint.password
        kwargs = self._endpoint_connect_args(endpoint, user, password)
        kwargs.update(endpoint.connect_args)
        kwargs.update(extra)
        return self.connect(**kwargs)

    def __repr__(self):
        return '<%s %r (module %r)>' % (
            type(self).__name__, self.__name__, self.MODULE_NAME
        )

    # Common compatibility shims, overriden as needed.

    def cursor(self, conn):
        cur = conn.cursor()
        cur.arraysize = self.cursor_arraysize
        return cur

    def execute(self, cursor, stmt, params=None):
        stmt, params = translate_paramstyle(stmt, params, self.paramstyle)
        if params is None:
            return cursor.execute(stmt)
        return cursor.execute(stmt, params)

    def executemany(self, cursor, stmt, seq_of_params):
        seq_of_params = list(seq_of_params)
        if not seq_of_params:
            return None
        translated = [
            translate_paramstyle(stmt, params, self.paramstyle)
            for params in seq_of_params
        ]
        return cursor.executemany(translated[0][0], [p for _, p in translated])

    def commit(self, conn):
        conn.commit()

    def rollback(self, conn):
        conn.rollback()

    def text_column_as_str(self, data):
        if data is None or isinstance(data, str):
            return data
        if isinstance(data, (bytes, bytearray, memoryview)):
            return bytes(data).decode('utf-8')
        # Some drivers (cx_Oracle, oracledb) produce LOB objects with
        # a read() method.
        return self.text_column_as_str(data.read())

    def exception_code_and_state(self, exc):
        code = getattr(exc, 'errno', None)
        state = getattr(exc, 'sqlstate', None)
        if code is None and exc.args and isinstance(exc.args[0], int):
            code = exc.args[0]
        return code, state

    def exception_is_missing_column(self, exc):
        __traceback_info__ = dir(exc), exc
        raise NotImplementedError(type(self))

    def exception_is_column_count_mismatch(self, exc):
        __traceback_info__ = dir(exc), exc
        raise NotImplementedError(type(self))

    def exception_is_key_too_long(self, exc): # pylint:disable=unused-argument
        """Default implementation; returns a false value."""
        return False


class MessageMatchingDriverMixin(object):
    """
    Classify errors by their message text.

    Only for drivers that offer nothing more structured.
    """

    #: Lower-case fragments of the message reporting a missing column.
    MISSING_COLUMN_MESSAGES = (
        'no such column',
        'unknown column',
        'invalid column name',
        'column not found',
    )

    #: Lower-case fragments of the message reporting the wrong number
    #: of values for the table's columns.
    COLUMN_COUNT_MESSAGES = (
        'column count',
        'values were supplied',
        'not enough values',
        'too many values',
        'more expressions than target columns',
    )

    def _message_matches(self, exc, fragments):
        message = str(exc).lower()
        return any(fragment in message for fragment in fragments)

    def exception_is_missing_column(self, exc):
        return self._message_matches(exc, self.MISSING_COLUMN_MESSAGES)

    def exception_is_column_count_mismatch(self, exc):
        return self._message_matches(exc, self.COLUMN_COUNT_MESSAGES)


@implementer(IDBDriver)
class DottedNameDriver(MessageMatchingDriverMixin,
                       AbstractModuleDriver):
    """
    A driver for any importable DB-API module, given its dotted name.

    Its dialect is resolved from the module name and usually
    falls back to the generic ANSI dialect.
    """

    def __init__(self, module_name):
        if not module_name or casefold(module_name) == 'auto':
            raise UnknownDriverError(module_name or 'auto')
        self.MODULE_NAME = self.__name__ = module_name
        super(DottedNameDriver, self).__init__()

    def get_driver_module(self):
        try:
            return resolve_dotted_name(self.MODULE_NAME)
        except (ImportError, AttributeError, ValueError) as ex:
            raise ImportError(str(ex)) from ex

    def _check_preconditions(self):
        try:
            mod = super(DottedNameDriver, self)._check_preconditions()
        except DriverNotImportableError as ex:
            raise UnknownDriverError(self.__name__, reason=ex.reason) from ex
        if not callable(getattr(mod, 'connect', None)):
            raise UnknownDriverError(self.__name__, reason="Not a DB-API module")
        return mod


@implementer(IDBDriverFactory)
class _ClassDriverFactory(object):

    def __init__(self, driver_type):
        self.driver_type = driver_type
        # Getting the name is tricky, the class wants to shadow it.
        self.driver_name = driver_type.__dict__.get('__name__') or driver_type.__name__

    def check_availability(self):
        try:
            self.driver_type()
        except DriverNotAvailableError:
            return False
        return True

    def __call__(self):
        return self.driver_type()

    def __eq__(self, other):
        return (casefold(self.driver_name), self.driver_type) == (
            casefold(other.driver_name), other.driver_type)

    def __hash__(self):
        return hash((casefold(self.driver_name), self.driver_type))

    def __getattr__(self, name):
        return getattr(self.driver_type, name)


def implement_db_driver_options(name, *driver_modules):
    """
    Helper function to be called at a module scope to
    make it implement ``IDBDriverOptions``.

    :param str name: The value of ``__name__``.
    :param driver_modules: Each of these names a module that has
        one or more implementations of ``IDBDriver`` in it,
        as named in their ``__all__`` attribute.
    """

    module = sys.modules[name]

    driver_factories = set()
    for driver_module in driver_modules:
        driver_module = importlib.import_module('.' + driver_module,
                                                name)
        for factory in driver_module.__all__:
            factory = getattr(driver_module, factory)
            if IDBDriver.implementedBy(factory): # pylint:disable=no-value-for-parameter
                driver_factories.add(_ClassDriverFactory(factory))

    module.known_driver_factories = lambda: sorted(
        driver_factories,
        key=lambda factory: factory.PRIORITY if not PYPY else factory.PRIORITY_PYPY,
    )

    directlyProvides(module, IDBDriverOptions)

    module.select_driver = lambda driver_name=None: _select_driver_by_name(driver_name,
                                                                           sys.modules[name])
