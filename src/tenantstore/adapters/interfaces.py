##############################################################################
#
# Copyright (c) 2009 Zope Foundation and Contributors.
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
"""Interfaces and exceptions provided by tenantstore database adapters"""

from zope.interface import Attribute
from zope.interface import Interface

# pylint:disable=inherit-non-class,no-method-argument,no-self-argument

from tenantstore.interfaces import Tuple
from tenantstore.interfaces import Object
from tenantstore.interfaces import Factory
from tenantstore.interfaces import IException

###
# Exceptions
###

class TenantStoreError(Exception):
    """
    Base class for the errors raised by tenantstore.
    """


class StoreConnectionError(TenantStoreError):
    """
    Raised when the first connection to the endpoint cannot be made.

    This is fatal to the call that triggered it; nothing is retried.
    """


class ConfigurationError(StoreConnectionError):
    """
    Raised when the endpoint URL or the driver is missing or invalid.
    """


class DriverLoadError(StoreConnectionError):
    """
    Raised when the configured driver cannot be loaded.
    """


class ConnectivityError(StoreConnectionError):
    """
    Raised when the probe connection to the endpoint fails.
    """


class SchemaDriftError(TenantStoreError):
    """
    Describes a statement that failed because a tenant table has an
    older column set than expected.

    These are recovered by migrating the table and retrying once;
    they do not reach callers.
    """

    #: A missing column.
    MISSING_COLUMN = 'missing-column'
    #: Obsolete extra columns (a positional insert had the wrong count).
    COLUMN_COUNT = 'column-count'

    def __init__(self, kind, table_name, cause=None):
        super(SchemaDriftError, self).__init__(kind, table_name)
        self.kind = kind
        self.table_name = table_name
        self.cause = cause


class WriteError(TenantStoreError):
    """
    Raised when a create, update or delete batch fails and
    ``fail_on_write_errors`` is enabled.
    """


class DriverNotAvailableError(DriverLoadError):
    """
    Raised when a requested driver isn't available.
    """

    #: The name of the requested driver
    driver_name = None

    #: The `IDBDriverOptions` that was asked for the driver.
    driver_options = None

    #: A string or object explaining why the driver can't be used.
    reason = None

    def __init__(self, driver_name, driver_options=None, reason=None):
        super(DriverNotAvailableError, self).__init__(driver_name)
        self.driver_name = driver_name
        self.driver_options = driver_options
        self.reason = reason

    def _format_drivers(self):
        driver_factories = getattr(self.driver_options,
                                   'known_driver_factories',
                                   lambda: ())()
        return ' '.join(
            '%r (Module: %r; Available: %s)' % (
                factory.driver_name,
                getattr(factory, 'MODULE_NAME', '<unknown>'),
                factory.check_availability()
            )
            for factory in driver_factories
        )

    def __str__(self):
        msg = '%s: Driver %r is not available' % (
            type(self).__name__, self.driver_name,
        )
        if self.reason:
            msg += ' (reason=%s)' % (self.reason,)
        if self.driver_options is not None:
            msg += '. Options: %s' % (self._format_drivers(),)
        return msg + '.'

    __repr__ = __str__


class UnknownDriverError(DriverNotAvailableError):
    """
    Raised when a driver that isn't registered at all is requested.
    """


class NoDriversAvailableError(DriverNotAvailableError):
    """
    Raised when there are no drivers available.
    """

    def __init__(self, driver_name='auto', driver_options=None, reason=None):
        super(NoDriversAvailableError, self).__init__(driver_name, driver_options, reason)


###
# Abstractions to support multiple databases.
###

class IDialectProfile(Interface):
    """
    The SQL templates of one dialect family.

    Templates use ``{table}`` for the table name and ``%s`` for
    parameters.
    """

    family = Attribute("The `tenantstore.adapters.dialect.DialectFamily`.")

    def fold_identifier(name):
        """
        Return *name* cased the way the dialect's catalog stores
        unquoted identifiers.
        """

    def page_params(limit, offset):
        """
        Return the parameters for the page template.
        """


class IDBDriver(Interface):
    """
    An abstraction over the information needed to work
    with an arbitrary DB-API driver.
    """

    __name__ = Attribute("The name of this driver")

    driver_identifier = Attribute(
        "The string classified to choose the dialect; usually the "
        "DB-API module name.")

    disconnected_exceptions = Tuple(
        description=(u"A tuple of exceptions this driver can raise on any operation if it is "
                     u"disconnected from the database."),
        value_type=Factory(IException)
    )

    close_exceptions = Tuple(
        description=(u"A tuple of exceptions that we can ignore when we try to "
                     u"close the connection to the database."),
        value_type=Factory(IException),
    )

    database_exceptions = Tuple(
        description=(u"A tuple of exceptions raised by failing statements. "
                     u"Usually just the module's ``Error``."),
        value_type=Factory(IException),
    )

    cursor_arraysize = Attribute(
        "The value to assign to each new cursor's ``arraysize`` attribute.")

    paramstyle = Attribute(
        "The DB-API paramstyle the driver's cursors expect.")

    connect = Attribute("""
    A callable to create and return a new connection object.

    The signature is not specified here because the
    required parameters differ between databases and drivers.
    """)

    def connect_to_endpoint(endpoint, user=None, password=None, **extra):
        """
        Open and return a connection to the
        `tenantstore.uri.Endpoint` *endpoint*.

        *user* and *password*, if given, take precedence over those in
        the endpoint.
        """

    def cursor(connection):
        """
        Create and return a new cursor sharing the state of the given
        *connection*.
        """

    def execute(cursor, stmt, params=None):
        """
        Execute *stmt*, written with ``%s`` placeholders, translating
        it to the driver's paramstyle.
        """

    def executemany(cursor, stmt, seq_of_params):
        """
        Like `execute`, once per parameter sequence.
        """

    def text_column_as_str(data):
        """
        Turn the value of a wide-text column into a `str`, or None.
        """

    def exception_code_and_state(exc):
        """
        Return ``(vendor_code, sqlstate)`` for *exc*; either may be None.
        """

    def exception_is_missing_column(exc):
        """
        Answer whether *exc* reports a column that doesn't exist.
        """

    def exception_is_column_count_mismatch(exc):
        """
        Answer whether *exc* reports a positional insert whose value
        count didn't match the table's columns.
        """

    def exception_is_key_too_long(exc):
        """
        Answer whether *exc* reports a primary key that exceeds the
        database's index key length.
        """


class IDBDriverFactory(Interface):
    """
    Information about, and a way to get, an `IDBDriver`
    implementation.
    """

    driver_name = Attribute("The name of this driver produced by this factory.")

    def check_availability():
        """
        Return a boolean indicating whether a call to this factory
        will return a driver (True) or will raise an error (False).
        """

    def __call__(): # pylint:disable=signature-differs
        """
        Return a new `IDBDriver` as represented by this factory.

        If it is not possible to do this, for example because the
        module cannot be imported, raise an `DriverNotAvailableError`.
        """


class IDBDriverOptions(Interface):
    """
    Implemented by a module to provide alternative drivers.
    """

    database_type = Attribute("A string naming the type of database. Informational only.")

    def select_driver(driver_name=None):
        """
        Choose and return an `IDBDriver`.

        The *driver_name* of "auto" is equivalent to a *driver_name* of
        `None` and means to choose the highest priority available driver.
        """

    def known_driver_factories():
        """
        Return an iterable of the potential `IDBDriverFactory`
        objects that can be used by `select_driver`.

        The driver factories are returned in priority order, with the highest priority
        driver being first.
        """


###
# Creating and managing DB-API 2.0 connections.
# (https://www.python.org/dev/peps/pep-0249/)
###

class IConnectionManager(Interface):
    """
    Provide pooled database connections.

    The first request initializes, exactly once: it loads the driver,
    resolves the dialect, probes the endpoint, builds the pool, runs
    the initialization hooks and registers the exit hook.
    """

    driver = Object(IDBDriver,
                    description=u"The driver; None until initialized.",
                    required=False)

    dialect = Object(IDialectProfile,
                     description=u"The dialect; None until initialized.",
                     required=False)

    def initialize():
        """
        Perform the one-time initialization if it hasn't happened.

        Concurrent callers are safe; only one initializes.

        :raises StoreConnectionError: If the configuration is missing,
            the driver cannot be loaded or the probe fails.
        """

    def connection():
        """
        A context manager producing ``(conn, cursor)`` from the pool.

        If the block succeeds, the transaction is committed. If it
        raises, the transaction is rolled back and the exception
        propagates. The connection is always returned to the pool.
        """

    def open_and_call(callback):
        """
        Call ``callback(connection, cursor)`` inside `connection` and
        return its result.
        """

    def add_on_initialized(f):
        """
        Add a callable ``f(connmanager)`` run once the pool is ready.
        """

    def close(conn=None, cursor=None):
        """
        Close *cursor* and *conn*, ignoring the errors the driver
        raises for objects that are already closed or disconnected.

        Pooled connections are returned to the pool.
        """

    def dispose():
        """
        Dispose of the pool. A later request initializes again.
        """


class ITableManager(Interface):
    """
    Lifecycle and migration of tenant tables.
    """

    def derive_table_name(tenant):
        """
        Return the table name for *tenant*; pure and deterministic.

        Blank tenants produce the empty string.
        """

    def table_exists(tenant):
        "See `tenantstore.interfaces.ITableLifecycle`."

    def create_table(tenant):
        "See `tenantstore.interfaces.ITableLifecycle`."

    def delete_table(tenant):
        "See `tenantstore.interfaces.ITableLifecycle`."

    def migrate(cursor, table_name):
        """
        Bring the columns of *table_name* up to date: add a missing
        overlay column and drop obsolete columns.

        Returns a true value if anything was altered.
        """


class IDocumentMover(Interface):
    """
    Move documents between Python and tenant tables.
    """

    def create_rows(tenant, documents):
        "Upsert *documents*, resetting their overlays."

    def read_rows(tenant, document_ids):
        "Return an ordered mapping of the documents found."

    def update_rows(tenant, documents):
        "Write the overlay column of each of *documents*."

    def delete_rows(tenant, documents):
        "Delete *documents* by id."

    def read_page(tenant, pager):
        "Return the next page of documents and advance *pager*."
