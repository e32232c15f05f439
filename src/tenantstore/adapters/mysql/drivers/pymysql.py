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
PyMySQL IDBDriver implementations.
"""

from zope.interface import implementer

from ...interfaces import IDBDriver

from . import AbstractMySQLDriver

__all__ = [
    'PyMySQLDriver',
]


@implementer(IDBDriver)
class PyMySQLDriver(AbstractMySQLDriver):
    __name__ = 'PyMySQL'
    MODULE_NAME = 'pymysql'
    PRIORITY = 2
    PRIORITY_PYPY = 1

    def __init__(self):
        super(PyMySQLDriver, self).__init__()

        pymysql_err = self.driver_module

        # Closing an already closed connection raises a plain
        # pymysql.err.Error, and sometimes an IOError escapes mapping.
        self.close_exceptions += (
            pymysql_err.Error,
            IOError,
        )

        self.disconnected_exceptions += (
            IOError,
        )
