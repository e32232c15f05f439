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
SQL Server IDBDriver implementations.
"""

from zope.interface import implementer

from ..drivers import AbstractModuleDriver
from ..drivers import implement_db_driver_options
from ..interfaces import IDBDriver

database_type = 'mssql'

__all__ = [
    'PymssqlDriver',
    'PytdsDriver',
]


class _AbstractSQLServerDriver(AbstractModuleDriver):

    #: Invalid column name '%.*ls'.
    ERR_INVALID_COLUMN = 207
    #: Column name or number of supplied values does not match table definition.
    ERR_VALUE_COUNT = 213
    #: Index key length exceeds the maximum, and the type can't be a key.
    ERR_KEY_TOO_LONG = (1946, 1919)

    def exception_code_and_state(self, exc):
        code = getattr(exc, 'number', None)
        if code is None and exc.args and isinstance(exc.args[0], int):
            code = exc.args[0]
        return code, getattr(exc, 'state', None)

    def exception_is_missing_column(self, exc):
        return self.exception_code_and_state(exc)[0] == self.ERR_INVALID_COLUMN

    def exception_is_column_count_mismatch(self, exc):
        return self.exception_code_and_state(exc)[0] == self.ERR_VALUE_COUNT

    def exception_is_key_too_long(self, exc):
        return self.exception_code_and_state(exc)[0] in self.ERR_KEY_TOO_LONG


@implementer(IDBDriver)
class PymssqlDriver(_AbstractSQLServerDriver):
    __name__ = 'pymssql'
    MODULE_NAME = __name__
    PRIORITY = 1
    PRIORITY_PYPY = 2

    def _endpoint_connect_args(self, endpoint, user, password):
        kwargs = super(PymssqlDriver, self)._endpoint_connect_args(
            endpoint, user, password)
        if 'host' in kwargs:
            kwargs['server'] = kwargs.pop('host')
        if 'port' in kwargs:
            kwargs['port'] = str(kwargs['port'])
        return kwargs


@implementer(IDBDriver)
class PytdsDriver(_AbstractSQLServerDriver):
    __name__ = 'pytds'
    MODULE_NAME = __name__
    PRIORITY = 2
    PRIORITY_PYPY = 1

    def _endpoint_connect_args(self, endpoint, user, password):
        kwargs = super(PytdsDriver, self)._endpoint_connect_args(
            endpoint, user, password)
        if 'host' in kwargs:
            kwargs['dsn'] = kwargs.pop('host')
        return kwargs


implement_db_driver_options(
    __name__,
    '.drivers'
)
