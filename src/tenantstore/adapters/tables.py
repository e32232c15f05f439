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
Creating, dropping and migrating tenant tables.
"""

import re

from zope.interface import implementer

from .._compat import casefold
from .._util import log_timed
from ._util import DatabaseHelpersMixin
from .dialect import OBSOLETE_COLUMNS
from .dialect import OVERLAY_COLUMN
from .interfaces import ITableManager

logger = __import__('logging').getLogger(__name__)

_TABLE_NAME = re.compile(r"[a-z0-9_]+")


def is_blank(tenant):
    return tenant is None or not str(tenant).strip()


@implementer(ITableManager)
class TableManager(DatabaseHelpersMixin):

    def __init__(self, connmanager):
        self.connmanager = connmanager

    @property
    def driver(self):
        return self.connmanager.driver

    @property
    def dialect(self):
        return self.connmanager.dialect

    @property
    def options(self):
        return self.connmanager.options

    def derive_table_name(self, tenant):
        """
        Return the table name for *tenant*, or '' if it has none.

        Names are lower case; the catalogs of several databases ignore
        case, so tenants differing only in case share a table. A tenant
        that would produce anything but ASCII letters, digits and underscores
        has no table.
        """
        if is_blank(tenant):
            return ''
        tenant = str(tenant).strip().lower()
        prefix = self.options.table_prefix.lower() + '-'
        if tenant != self.options.root_tenant.lower() and not tenant.startswith(prefix):
            tenant = prefix + tenant
        table_name = tenant.replace('-', '_')
        if not _TABLE_NAME.fullmatch(table_name):
            logger.warning("Tenant %r does not produce a valid table name", tenant)
            return ''
        return table_name

    def _find_table(self, cursor, table_name):
        dialect = self.dialect
        self.driver.execute(cursor, dialect.STMT_TABLE_EXISTS,
                            (dialect.fold_identifier(table_name),))
        return bool(cursor.fetchall())

    def list_columns(self, cursor, table_name):
        """
        Return the set of the casefolded column names of the table.
        """
        dialect = self.dialect
        self.driver.execute(cursor, dialect.STMT_LIST_COLUMNS,
                            (dialect.fold_identifier(table_name),))
        return {
            casefold(self._metadata_to_native_str(row[0]))
            for row in cursor.fetchall()
        }

    def migrate(self, cursor, table_name):
        columns = self.list_columns(cursor, table_name)
        if not columns:
            return False

        dialect = self.dialect
        altered = False
        if OVERLAY_COLUMN not in columns:
            logger.info("Adding column %s to table %s", OVERLAY_COLUMN, table_name)
            self.driver.execute(
                cursor,
                dialect.stmt(dialect.STMT_ADD_OVERLAY_COLUMN, table_name))
            altered = True

        for column in OBSOLETE_COLUMNS:
            if column in columns:
                logger.info("Dropping obsolete column %s from table %s", column, table_name)
                self.driver.execute(
                    cursor,
                    dialect.stmt(dialect.STMT_DROP_COLUMN, table_name, column=column))
                altered = True
        return altered

    def table_exists(self, tenant):
        table_name = self.derive_table_name(tenant)
        if not table_name:
            return False

        def check(_conn, cursor):
            exists = self._find_table(cursor, table_name)
            if exists:
                # Tables from before partial updates are brought up
                # to date the first time they are looked at.
                self.migrate(cursor, table_name)
            return exists

        try:
            return self.connmanager.open_and_call(check)
        except self.connmanager.operation_exceptions as ex:
            logger.error("Failed to check for table %s%s: %s",
                         table_name, self._describe_error(ex), ex)
        return False

    @log_timed
    def create_table(self, tenant):
        if is_blank(tenant) or any(c.isspace() for c in str(tenant)):
            return False
        table_name = self.derive_table_name(tenant)
        if not table_name or self.table_exists(tenant):
            return False

        dialect = self.dialect

        def create(stmt):
            def callback(_conn, cursor):
                self.driver.execute(cursor, dialect.stmt(stmt, table_name))
            self.connmanager.open_and_call(callback)

        try:
            try:
                create(dialect.STMT_CREATE_TABLE)
            except self.connmanager.operation_exceptions as ex:
                narrow = dialect.STMT_CREATE_TABLE_NARROW_KEY
                if not narrow or not self.driver.exception_is_key_too_long(ex):
                    raise
                logger.info("Key too long for table %s%s; using a narrower key",
                            table_name, self._describe_error(ex))
                create(narrow)
        except self.connmanager.operation_exceptions as ex:
            logger.error("Failed to create table %s%s: %s",
                         table_name, self._describe_error(ex), ex)
            return False

        logger.info("Created table %s for tenant %r", table_name, tenant)
        return True

    @log_timed
    def delete_table(self, tenant):
        if is_blank(tenant) or not self.table_exists(tenant):
            return False

        table_name = self.derive_table_name(tenant)
        dialect = self.dialect

        def drop(_conn, cursor):
            self.driver.execute(cursor, dialect.stmt(dialect.STMT_DROP_TABLE, table_name))

        try:
            self.connmanager.open_and_call(drop)
        except self.connmanager.operation_exceptions as ex:
            logger.error("Failed to drop table %s%s: %s",
                         table_name, self._describe_error(ex), ex)
        else:
            logger.info("Dropped table %s of tenant %r", table_name, tenant)
        return True
