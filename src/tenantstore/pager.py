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

from zope.interface import implementer

from .interfaces import IPager

DEFAULT_LIMIT = 30

@implementer(IPager)
class Pager(object):
    """
    The cursor of a paginated scan.

    Pages are always ordered by document id, so a scan that runs
    without concurrent writers visits each document exactly once.
    """

    sortby = 'id'

    def __init__(self, page=0, limit=DEFAULT_LIMIT, count=0, last_key=None):
        if limit < 1:
            raise ValueError("limit must be positive", limit)
        self.page = page
        self.limit = limit
        self.count = count
        self.last_key = last_key

    def offset(self):
        if self.page <= 1:
            return 0
        return (self.page - 1) * self.limit

    def advance(self, documents):
        if documents:
            self.last_key = documents[-1].id
        self.count += len(documents)
        self.page = 2 if self.page < 2 else self.page + 1

    def __repr__(self):
        return '<%s page=%d limit=%d count=%d last_key=%r>' % (
            type(self).__name__,
            self.page, self.limit, self.count, self.last_key
        )
