# -*- coding: utf-8 -*-
##############################################################################
#
# Copyright (c) 2019 Zope Foundation and Contributors.
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
sqlite3 driver connection and cursor objects.
"""

import os.path
import sqlite3

from zope.interface import implementer

from ..drivers import implement_db_driver_options
from ..drivers import AbstractModuleDriver
from ..drivers import MessageMatchingDriverMixin
from ..interfaces import IDBDriver

__all__ = [
    'Sqlite3Driver',
]

database_type = 'sqlite'
logger = __import__('logging').getLogger(__name__)

#: The name that means a private, in-memory database.
MEMORY_DATABASE = ':memory:'

# Seconds to wait for a lock held by another connection.
DEFAULT_TIMEOUT = 15


class UnableToConnect(sqlite3.OperationalError):
    filename = None

    def with_filename(self, f):
        self.filename = f
        return self

    def __str__(self):
        s = super(UnableToConnect, self).__str__()
        if self.filename:
            s += " (At: %r)" % self.filename
        return s


class Cursor(sqlite3.Cursor):
    """
    A cursor that accepts the ``format`` paramstyle.
    """

    def execute(self, stmt, params=None):
        if params is not None:
            stmt = stmt.replace('%s', '?')
            return sqlite3.Cursor.execute(self, stmt, params)

        return sqlite3.Cursor.execute(self, stmt)

    def executemany(self, stmt, params):
        stmt = stmt.replace('%s', '?')
        return sqlite3.Cursor.executemany(self, stmt, params)

    def __repr__(self):
        return '<%s at 0x%x from %r>' % (
            type(self).__name__,
            id(self), self.connection
        )

    def close(self):
        try:
            sqlite3.Cursor.close(self)
        except sqlite3.ProgrammingError:
            # Already closed connection.
            pass


class Connection(sqlite3.Connection):
    CURSOR_FACTORY = Cursor

    def __init__(self, ts_db_filename, *args, **kwargs):
        __traceback_info__ = args, kwargs
        self.ts_db_filename = ts_db_filename
        try:
            super(Connection, self).__init__(*args, **kwargs)
        except sqlite3.OperationalError as e:
            raise UnableToConnect(e).with_filename(ts_db_filename)

    def __repr__(self):
        try:
            in_tx = self.in_transaction
        except sqlite3.ProgrammingError:
            in_tx = 'closed'

        return '<%s at 0x%x to %r in_transaction=%s>' % (
            type(self).__name__,
            id(self), self.ts_db_filename,
            in_tx
        )

    def cursor(self): # pylint:disable=arguments-differ
        return sqlite3.Connection.cursor(self, self.CURSOR_FACTORY)


@implementer(IDBDriver)
class Sqlite3Driver(MessageMatchingDriverMixin,
                    AbstractModuleDriver):
    __name__ = 'sqlite3'
    MODULE_NAME = __name__
    # UPSERT and DROP COLUMN
    STATIC_AVAILABLE = sqlite3.sqlite_version_info[:2] >= (3, 35)

    # Our cursors accept %s.
    PARAMSTYLE = 'format'

    CONNECTION_FACTORY = Connection

    #: sqlite3 reports nothing but the message; these are the
    #: sqlite3 wordings.
    MISSING_COLUMN_MESSAGES = (
        'no such column',
        'has no column named',
    )

    COLUMN_COUNT_MESSAGES = (
        'values were supplied',
        'values for',
    )

    def __init__(self):
        super(Sqlite3Driver, self).__init__()
        self.disconnected_exceptions += (self.driver_module.ProgrammingError,)
        self._connect = self.connect_to_file

    def connect_to_file(self, database=MEMORY_DATABASE,
                        timeout=DEFAULT_TIMEOUT,
                        **connect_args):
        """
        Open the database file *database*.

        Connections are handed between threads by the pool, so they
        are not restricted to the creating thread.
        """
        if database != MEMORY_DATABASE and not database.startswith('file:'):
            database = os.path.abspath(database)
            dirname = os.path.dirname(database)
            if not os.path.isdir(dirname):
                logger.debug("Creating directory %r for database", dirname)
                os.makedirs(dirname, exist_ok=True)
            connect_args.setdefault('uri', False)
        elif database.startswith('file:'):
            connect_args.setdefault('uri', True)

        connect_args.setdefault('check_same_thread', False)
        connection = self.driver_module.connect(
            database,
            timeout=timeout,
            factory=lambda *args, **kwargs: self.CONNECTION_FACTORY(database, *args, **kwargs),
            **connect_args
        )
        logger.debug("Connected to %r", connection)
        return connection

    def _endpoint_connect_args(self, endpoint, user, password):
        # No network and no authentication.
        return {'database': endpoint.database or MEMORY_DATABASE}

    def exception_code_and_state(self, exc):
        # Python 3.11 and later expose the extended result code.
        return (
            getattr(exc, 'sqlite_errorcode', None),
            getattr(exc, 'sqlite_errorname', None),
        )


implement_db_driver_options(
    __name__,
    '.drivers'
)
