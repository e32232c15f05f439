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
"""tenantstore.tests package"""

import os
import shutil
import tempfile
import unittest
from unittest import mock as _mock

from zope.interface import implementer

from tenantstore.options import Options
from tenantstore.adapters.interfaces import IDBDriver
from tenantstore.adapters.dialect import DIALECTS
from tenantstore.adapters.dialect import DialectFamily

mock = _mock


class TestCase(unittest.TestCase):
    """
    General tests that may use databases and connections but
    don't have any specific requirements or framework to do so.

    This class supplies some supporting help for assertions and
    cleanups.
    """

    def setUp(self):
        super(TestCase, self).setUp()
        name = self.__class__.__name__
        mname = getattr(self, '_testMethodName', '')
        if mname:
            name += '-' + mname
        self.ts_temp_prefix = name

    def _closing(self, o):
        """
        Close the object using its 'close' method *after* invoking
        all of the `tearDown` stack, and even running if `setUp`
        fails.

        Returns the given object.
        """
        __traceback_info__ = o
        self.addCleanup(o.close)
        return o

    def make_temp_dir(self):
        """
        Return a new temporary directory removed when the test ends.
        """
        temp_dir = tempfile.mkdtemp(prefix=self.ts_temp_prefix)
        self.addCleanup(shutil.rmtree, temp_dir, True)
        return temp_dir

    def make_sqlite_url(self, filename='docs.sqlite3'):
        return 'sqlite:///' + os.path.join(self.make_temp_dir(), filename)

    def assertIsEmpty(self, container, msg=None):
        self.assertLength(container, 0, msg)

    assertEmpty = assertIsEmpty

    def assertLength(self, container, length, msg=None):
        self.assertEqual(len(container), length,
                         '%s -- %s' % (msg, container) if msg else container)


class MockConnection(object):
    rolled_back = False
    closed = False
    committed = False

    def __init__(self):
        self.cursors = []

    def commit(self):
        self.committed = True

    def rollback(self):
        self.rolled_back = True

    def close(self):
        self.closed = True

    def cursor(self):
        cursor = MockCursor(self)
        self.cursors.append(cursor)
        return cursor


class MockCursor(object):
    closed = False
    arraysize = 1

    def __init__(self, conn=None):
        self.executed = []
        self.results = []
        self.many_results = None
        self.connection = conn

    def execute(self, stmt, params=None):
        params = tuple(params) if isinstance(params, list) else params
        self.executed.append((stmt, params))

    def executemany(self, stmt, seq_of_params):
        for params in seq_of_params:
            self.execute(stmt, params)

    def fetchone(self):
        return self.results.pop(0)

    def fetchall(self):
        if self.many_results:
            return self.many_results.pop(0)
        r = self.results
        self.results = []
        return r

    def close(self):
        self.closed = True

    def __iter__(self):
        for row in self.results:
            yield row


class MockOptions(Options):

    @classmethod
    def from_args(cls, **kwargs):
        inst = cls()
        for k, v in kwargs.items():
            setattr(inst, k, v)
        return inst

    def __setattr__(self, name, value):
        if name not in Options.valid_option_names():
            raise AttributeError("Invalid option", name) # pragma: no cover
        object.__setattr__(self, name, value)


class DisconnectedException(Exception):
    pass

class CloseException(Exception):
    pass

class MockDatabaseError(Exception):
    """
    Carries a vendor code as its first argument.
    """

    def __init__(self, code=None, message=''):
        Exception.__init__(self, code, message)
        self.errno = code


@implementer(IDBDriver)
class MockDriver(object):
    __name__ = 'mock'
    driver_identifier = 'mock'
    cursor_arraysize = 64
    paramstyle = 'format'
    disconnected_exceptions = (DisconnectedException,)
    close_exceptions = (CloseException,)
    database_exceptions = (MockDatabaseError,)

    MISSING_COLUMN = 1
    COLUMN_COUNT = 2
    KEY_TOO_LONG = 3

    def __init__(self):
        self.connections = []

    def connect(self, *args, **kwargs):
        conn = MockConnection()
        self.connections.append(conn)
        return conn

    def connect_to_endpoint(self, endpoint, user=None, password=None, **extra):
        return self.connect()

    def cursor(self, conn):
        cursor = conn.cursor()
        cursor.arraysize = self.cursor_arraysize
        return cursor

    def execute(self, cursor, stmt, params=None):
        cursor.execute(stmt, params)

    def executemany(self, cursor, stmt, seq_of_params):
        cursor.executemany(stmt, seq_of_params)

    def commit(self, conn):
        conn.commit()

    def rollback(self, conn):
        conn.rollback()

    def text_column_as_str(self, data):
        return data

    def exception_code_and_state(self, exc):
        return getattr(exc, 'errno', None), None

    def exception_is_missing_column(self, exc):
        return getattr(exc, 'errno', None) == self.MISSING_COLUMN

    def exception_is_column_count_mismatch(self, exc):
        return getattr(exc, 'errno', None) == self.COLUMN_COUNT

    def exception_is_key_too_long(self, exc):
        return getattr(exc, 'errno', None) == self.KEY_TOO_LONG


class MockConnectionManager(object):
    """
    Runs callbacks on mock connections, recording each cursor.
    """

    def __init__(self, driver=None, options=None, family=DialectFamily.SQLITE):
        self.driver = driver if driver is not None else MockDriver()
        self.options = options if options is not None else MockOptions()
        self.dialect = DIALECTS[family]
        self.operation_exceptions = (
            self.driver.database_exceptions
            + self.driver.disconnected_exceptions
        )
        self.cursors = []
        #: Functions ``f(stmt, params)``; called for each statement
        #: before it is recorded. They may raise.
        self.statement_hooks = []
        #: Maps a statement prefix to the rows it returns.
        self.results = {}

    def initialize(self):
        "Does nothing"

    def results_for(self, stmt):
        for prefix, rows in self.results.items():
            if stmt.startswith(prefix):
                return list(rows)
        return []

    def open_and_call(self, callback):
        conn = self.driver.connect()
        cursor = self.driver.cursor(conn)
        hooks = self.statement_hooks
        original_execute = cursor.execute

        def execute(stmt, params=None):
            for hook in hooks:
                hook(stmt, params)
            original_execute(stmt, params)
            cursor.results = self.results_for(stmt)
        cursor.execute = execute
        self.cursors.append(cursor)
        try:
            result = callback(conn, cursor)
        except BaseException:
            conn.rollback()
            raise
        else:
            conn.commit()
            return result
        finally:
            cursor.close()
            conn.close()

    @property
    def executed(self):
        return [stmt for cursor in self.cursors for stmt in cursor.executed]
