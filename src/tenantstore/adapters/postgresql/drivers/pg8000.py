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
pg8000 IDBDriver implementations.
"""

from zope.interface import implementer

from ...interfaces import IDBDriver

from . import AbstractPostgreSQLDriver

__all__ = [
    'PG8000Driver',
]


@implementer(IDBDriver)
class PG8000Driver(AbstractPostgreSQLDriver):
    __name__ = 'pg8000'
    # The DB-API interface; the top-level module is the legacy one.
    MODULE_NAME = 'pg8000.dbapi'
    PRIORITY = 3
    PRIORITY_PYPY = 2
    REQUIREMENTS = (
        'pg8000 >= 1.29',
    )

    def __init__(self):
        super(PG8000Driver, self).__init__()
        # XXX: global side-effect!
        self.driver_module.paramstyle = 'format'
        self.paramstyle = 'format'

    def _endpoint_connect_args(self, endpoint, user, password):
        kwargs = super(PG8000Driver, self)._endpoint_connect_args(
            endpoint, user, password)
        # pg8000 doesn't use libpq; its keyword is the DB-API one.
        if 'dbname' in kwargs:
            kwargs['database'] = kwargs.pop('dbname')
        return kwargs

    def _get_exception_pgcode(self, exc):
        # The first argument is the dictionary of fields from the
        # server's ErrorResponse message; 'C' is the SQLSTATE.
        if exc.args and isinstance(exc.args[0], dict):
            return exc.args[0].get('C')
        return None
