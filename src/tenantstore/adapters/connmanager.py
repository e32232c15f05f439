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
"""
Pooled connections to the endpoint.
"""

import atexit
import threading
from contextlib import contextmanager

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.pool import QueuePool
from sqlalchemy.pool import StaticPool
from zope.interface import implementer

from .._util import log_timed
from .._util import metricmethod
from ..uri import resolve_url
from .dialect import resolve_dialect
from .drivers import select_driver
from .interfaces import ConfigurationError
from .interfaces import ConnectivityError
from .interfaces import IConnectionManager
from .sqlite.drivers import MEMORY_DATABASE

logger = __import__('logging').getLogger(__name__)


@implementer(IConnectionManager)
class ConnectionManager(object):
    """
    Responsible for opening and closing database connections.

    Nothing is loaded or opened until the first request. That request
    initializes: it loads the driver, resolves the dialect, probes the
    endpoint with one connection, builds the pool and calls the
    hooks added with :meth:`add_on_initialized`.
    """

    driver = None
    dialect = None
    endpoint = None

    _pool = None
    _initialized = False
    _exit_hook_registered = False

    # a series of callables (connmanager,) called
    # once the pool is ready.
    _on_initialized = ()

    # The list of exceptions to ignore on a rollback *or* close. We
    # take this as the union of the driver's close exceptions and disconnected
    # exceptions (drivers aren't required to organize them to overlap, but
    # in practice they should.)
    _ignored_exceptions = ()

    #: The exceptions an operation may encounter once initialized.
    operation_exceptions = ()

    def __init__(self, options):
        """
        :param options: A :class:`tenantstore.options.Options`.
            Options given in the query of its URL are applied when
            initializing, unless set explicitly.
        """
        self.options = options
        self._lock = threading.RLock()

    def add_on_initialized(self, f):
        """
        Add a callable(connmanager) for when the pool is ready.

        Hooks are called in the order added.
        """
        self._on_initialized += (f,)

    def initialize(self):
        if self._initialized:
            return

        with self._lock:
            # Another thread got here first, or a hook is
            # re-entering.
            if self._pool is not None:
                return
            self._initialize()

    def _apply_url_options(self, url_options):
        explicit = self.options.__dict__
        overrides = {
            k: v
            for k, v in url_options.items()
            if k not in explicit
        }
        if overrides:
            self.options = self.options.copy(**overrides)

    @log_timed
    def _initialize(self):
        endpoint, url_options = resolve_url(self.options.url)
        self._apply_url_options(url_options)
        options = self.options
        if not options.driver or not options.driver.strip():
            raise ConfigurationError("No driver configured")

        driver = select_driver(endpoint.database_type, options.driver)
        dialect = resolve_dialect(driver.driver_identifier)
        logger.debug("Using driver %s and dialect %s for %s",
                     driver, dialect, endpoint)

        def creator():
            return driver.connect_to_endpoint(
                endpoint,
                user=options.user,
                password=options.password,
                **(options.connect_args or {})
            )

        try:
            probe = creator()
        except Exception as ex:
            raise ConnectivityError(
                "Unable to connect to %s: %s" % (endpoint, ex)
            ) from ex
        else:
            probe.close()

        self.driver = driver
        self.dialect = dialect
        self.endpoint = endpoint
        self._ignored_exceptions = tuple(set(
            driver.close_exceptions
            + driver.disconnected_exceptions
        ))
        self.operation_exceptions = tuple(set(
            driver.database_exceptions
            + driver.disconnected_exceptions
            + (SQLAlchemyError, OSError)
        ))
        self._pool = self._make_pool(creator, endpoint)

        logger.info("Connected to %s using %s (%s)", endpoint, driver, dialect)

        if options.register_exit_hook and not self._exit_hook_registered:
            atexit.register(self.dispose)
            self._exit_hook_registered = True

        for hook in self._on_initialized:
            hook(self)
        self._initialized = True

    def _make_pool(self, creator, endpoint):
        options = self.options
        if endpoint.database_type == 'sqlite' and endpoint.database == MEMORY_DATABASE:
            # Every connection would be a different database.
            return StaticPool(creator)
        return QueuePool(
            creator,
            pool_size=options.pool_size,
            max_overflow=options.max_overflow,
            timeout=options.pool_timeout,
            recycle=options.pool_recycle,
        )

    @metricmethod
    def close(self, conn=None, cursor=None):
        """
        Close a connection and cursor, ignoring certain errors.

        Return a True value if the connection was closed cleanly. Return
        a False value if the processes ignored an error.
        """
        clean = True
        for obj in (cursor, conn): # cursor first; some drivers want that done
            if obj is not None:
                try:
                    obj.close()
                except self._ignored_exceptions: # pylint:disable=catching-non-exception
                    clean = False
        return clean

    def rollback_quietly(self, conn, cursor):
        """Return True if we successfully rolled back."""
        clean = True
        try:
            self.driver.rollback(conn)
        except self._ignored_exceptions: # pylint:disable=catching-non-exception
            clean = False
        if not clean:
            self.close(None, cursor)
        return clean

    @contextmanager
    def connection(self):
        self.initialize()
        conn = self._pool.connect()
        cursor = None
        try:
            cursor = self.driver.cursor(conn)
            yield conn, cursor
        except BaseException:
            self.rollback_quietly(conn, cursor)
            raise
        else:
            self.close(None, cursor)
            cursor = None
            self.driver.commit(conn)
        finally:
            # Returns it to the pool.
            self.close(conn, cursor)

    def open_and_call(self, callback):
        """
        Call ``callback(connection, cursor)`` with a pooled connection and cursor.

        If the function returns, commits the transaction and returns the
        result returned by the function.
        If the function raises an exception, aborts the transaction
        then propagates the exception.
        """
        with self.connection() as (conn, cursor):
            return callback(conn, cursor)

    def dispose(self):
        with self._lock:
            pool = self._pool
            self._pool = None
            self._initialized = False
        if pool is not None:
            logger.debug("Disposing of %s", pool)
            pool.dispose()

    def __repr__(self):
        return '<%s at 0x%x endpoint=%r driver=%r initialized=%s>' % (
            type(self).__name__,
            id(self),
            self.endpoint,
            self.driver,
            self._initialized,
        )
