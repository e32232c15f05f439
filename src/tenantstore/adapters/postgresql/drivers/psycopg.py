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
psycopg (version 3) IDBDriver implementations.
"""

from zope.interface import implementer

from ...interfaces import IDBDriver

from . import AbstractPostgreSQLDriver

__all__ = [
    'PsycopgDriver',
]


@implementer(IDBDriver)
class PsycopgDriver(AbstractPostgreSQLDriver):
    __name__ = 'psycopg'
    MODULE_NAME = __name__
    PRIORITY = 2
    PRIORITY_PYPY = 1

    def _get_exception_pgcode(self, exc):
        # psycopg 3 renamed pgcode.
        return getattr(exc, 'sqlstate', None)
