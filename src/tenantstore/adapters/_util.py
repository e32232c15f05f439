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
"Internal helper utilities."


class DatabaseHelpersMixin(object):
    """
    Helpers for objects that have a ``driver`` attribute.
    """

    driver = None

    def _metadata_to_native_str(self, value):
        # Some drivers, in some configurations, notably older versions
        # of MySQLdb (mysqlclient) in 'NAMES binary' mode, return
        # catalog names as bytes; mysql-connector-python has been seen
        # returning `bytearray`.
        if value is not None and not isinstance(value, str):
            value = (value.decode('ascii')
                     if isinstance(value, (bytes, bytearray))
                     else str(value))
        return value

    def _describe_error(self, exc):
        """
        Return a string giving the vendor error code and SQL state of
        *exc*, suitable for appending to a log message.
        """
        if self.driver is None:
            return ''
        code, state = self.driver.exception_code_and_state(exc)
        if code is None and state is None:
            return ''
        return ' (Error Code: %s, SQLState: %s)' % (code, state)
