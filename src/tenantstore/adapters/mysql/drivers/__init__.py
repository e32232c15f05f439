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
MySQL IDBDriver implementations.
"""

from ...drivers import AbstractModuleDriver
from ...drivers import implement_db_driver_options

database_type = 'mysql'


class AbstractMySQLDriver(AbstractModuleDriver):

    # Server error numbers, from the MySQL reference manual.

    #: ER_BAD_FIELD_ERROR: Unknown column '%s' in '%s'
    ER_BAD_FIELD_ERROR = 1054
    #: ER_WRONG_VALUE_COUNT_ON_ROW: Column count doesn't match value count
    ER_WRONG_VALUE_COUNT_ON_ROW = 1136
    #: ER_TOO_LONG_KEY: Specified key was too long
    ER_TOO_LONG_KEY = 1071

    #: Documents are JSON text; always talk to the server in full UTF-8.
    CHARSET = 'utf8mb4'

    def _endpoint_connect_args(self, endpoint, user, password):
        kwargs = super(AbstractMySQLDriver, self)._endpoint_connect_args(
            endpoint, user, password)
        kwargs['charset'] = self.CHARSET
        return kwargs

    def _exception_errno(self, exc):
        return self.exception_code_and_state(exc)[0]

    def exception_is_missing_column(self, exc):
        return self._exception_errno(exc) == self.ER_BAD_FIELD_ERROR

    def exception_is_column_count_mismatch(self, exc):
        return self._exception_errno(exc) == self.ER_WRONG_VALUE_COUNT_ON_ROW

    def exception_is_key_too_long(self, exc):
        return self._exception_errno(exc) == self.ER_TOO_LONG_KEY


implement_db_driver_options(
    __name__,
    'mysqldb', 'pymysql', 'mysqlconnector',
)
