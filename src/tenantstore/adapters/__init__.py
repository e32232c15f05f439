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
Abstractions for using particular RDBMS implementations.

The interfaces in this package define what operations tenantstore needs
to work with a particular database. The ``drivers`` module finds a
DB-API driver, the ``dialect`` module holds the SQL each family of
databases understands, and ``connmanager``, ``tables`` and ``mover``
use the two to pool connections, manage tenant tables and move
documents.

To support a new RDBMS, create a new package named for it, containing a
``drivers`` module whose drivers classify the database's errors, and
add its SQL to ``dialect``.
"""
