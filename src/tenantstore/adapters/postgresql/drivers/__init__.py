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
PostgreSQL IDBDriverOptions implementation.

"""

from ...drivers import implement_db_driver_options
from ...drivers import AbstractModuleDriver

logger = __import__('logging').getLogger(__name__)


class AbstractPostgreSQLDriver(AbstractModuleDriver):

    # SQLSTATE values, from Appendix A of the PostgreSQL manual.

    #: undefined_column
    ERRCODE_UNDEFINED_COLUMN = '42703'
    #: syntax_error; raised for "INSERT has more expressions than
    #: target columns".
    ERRCODE_SYNTAX_ERROR = '42601'

    def _endpoint_connect_args(self, endpoint, user, password):
        kwargs = super(AbstractPostgreSQLDriver, self)._endpoint_connect_args(
            endpoint, user, password)
        # libpq's keyword.
        if 'database' in kwargs:
            kwargs['dbname'] = kwargs.pop('database')
        return kwargs

    def _get_exception_pgcode(self, exc):
        return getattr(exc, 'pgcode', None)

    def exception_code_and_state(self, exc):
        # PostgreSQL has no vendor error numbers, just the SQLSTATE.
        return None, self._get_exception_pgcode(exc)

    def exception_is_missing_column(self, exc):
        return self._get_exception_pgcode(exc) == self.ERRCODE_UNDEFINED_COLUMN

    def exception_is_column_count_mismatch(self, exc):
        return (
            self._get_exception_pgcode(exc) == self.ERRCODE_SYNTAX_ERROR
            and 'target columns' in str(exc)
        )


database_type = 'postgresql'

implement_db_driver_options(
    __name__,
    'psycopg2', 'psycopg', 'pg8000',
)
