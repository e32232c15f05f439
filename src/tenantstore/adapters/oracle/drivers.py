# -*- coding: utf-8 -*-
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
Oracle IDBDriver implementations.
"""

from zope.interface import implementer

from ..drivers import AbstractModuleDriver
from ..drivers import implement_db_driver_options
from ..interfaces import IDBDriver

database_type = 'oracle'

__all__ = [
    'OracledbDriver',
    'cx_OracleDriver',
]


class _AbstractOracleDriver(AbstractModuleDriver):

    #: ORA-00904: invalid identifier
    ORA_INVALID_IDENTIFIER = 904
    #: ORA-00913: too many values; ORA-00947: not enough values
    ORA_VALUE_COUNT = (913, 947)

    def __init__(self):
        super(_AbstractOracleDriver, self).__init__()
        # Statement failures are all DatabaseError; so are lost
        # connections.
        self.disconnected_exceptions += (self.driver_module.DatabaseError,)
        self.close_exceptions += (self.driver_module.DatabaseError,)

    def _endpoint_connect_args(self, endpoint, user, password):
        # An "Easy Connect" string naming the service.
        dsn = endpoint.host or 'localhost'
        if endpoint.port:
            dsn += ':%s' % (endpoint.port,)
        if endpoint.database:
            dsn += '/' + endpoint.database
        kwargs = {'dsn': dsn, 'user': user, 'password': password}
        return {k: v for k, v in kwargs.items() if v is not None}

    def exception_code_and_state(self, exc):
        # The argument is the driver's error object, with an
        # integer code ("ORA-00904" is 904).
        error = exc.args[0] if exc.args else None
        code = getattr(error, 'code', None)
        return code, getattr(error, 'full_code', None)

    def exception_is_missing_column(self, exc):
        return self.exception_code_and_state(exc)[0] == self.ORA_INVALID_IDENTIFIER

    def exception_is_column_count_mismatch(self, exc):
        return self.exception_code_and_state(exc)[0] in self.ORA_VALUE_COUNT


@implementer(IDBDriver)
class OracledbDriver(_AbstractOracleDriver):
    __name__ = 'oracledb'
    MODULE_NAME = __name__
    PRIORITY = 1
    PRIORITY_PYPY = 1


@implementer(IDBDriver)
class cx_OracleDriver(_AbstractOracleDriver):
    __name__ = 'cx_Oracle'
    MODULE_NAME = __name__
    PRIORITY = 2
    PRIORITY_PYPY = 2


implement_db_driver_options(
    __name__,
    '.drivers'
)
