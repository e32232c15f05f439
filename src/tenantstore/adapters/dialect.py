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
RDBMS-specific SQL.

Each dialect family has one immutable :class:`DialectProfile` in
:data:`DIALECTS` holding the SQL text of every statement the engine
issues. Templates use ``{table}`` for the table name and ``%s`` for
parameters; drivers translate ``%s`` to their own paramstyle.
"""

import enum

from zope.interface import implementer

from .._compat import casefold
from .interfaces import IDialectProfile

__all__ = [
    'COLUMNS',
    'DIALECTS',
    'DialectFamily',
    'DialectProfile',
    'OVERLAY_COLUMN',
    'OBSOLETE_COLUMNS',
    'resolve_dialect',
]

#: The columns of a tenant table, in their physical order.
COLUMNS = ('id', 'type', 'creator_id', 'body', 'pending_overlay')

#: The column added by migrating tables created before partial updates.
OVERLAY_COLUMN = 'pending_overlay'

#: Columns of old tables that now live in the body; migration drops them.
OBSOLETE_COLUMNS = ('timestamp', 'updated')

_SELECT_COLUMNS = 'id, body, pending_overlay'


class DialectFamily(enum.Enum):
    MYSQL = 'mysql'
    POSTGRESQL = 'postgresql'
    SQLSERVER = 'sqlserver'
    ORACLE = 'oracle'
    SQLITE = 'sqlite'
    GENERIC = 'generic'


class PagingStyle(enum.Enum):
    #: ``LIMIT n OFFSET m``
    LIMIT_OFFSET = 'limit-offset'
    #: ``OFFSET m ROWS FETCH NEXT n ROWS ONLY``
    OFFSET_FETCH = 'offset-fetch'
    #: A ``ROW_NUMBER()`` subquery bounded by row number.
    ROW_NUMBER = 'row-number'


@implementer(IDialectProfile)
class DialectProfile(object):
    """
    The generic, ANSI flavor, used for unrecognized drivers.

    Subclasses override the class attributes that differ.
    """

    family = DialectFamily.GENERIC

    datatype_map = {
        'key': 'VARCHAR(255)',
        'narrow_key': None,
        'text': 'CLOB',
    }

    #: Appended to CREATE TABLE.
    STMT_TABLE_TRAILER = ''

    #: How unquoted identifiers are stored in the catalog:
    #: None (as written), 'upper' or 'lower'.
    identifier_case = 'upper'

    paging = PagingStyle.OFFSET_FETCH

    STMT_TABLE_EXISTS = (
        'SELECT table_name FROM information_schema.tables '
        'WHERE UPPER(table_name) = %s'
    )

    STMT_LIST_COLUMNS = (
        'SELECT column_name FROM information_schema.columns '
        'WHERE UPPER(table_name) = %s'
    )

    STMT_ADD_OVERLAY_COLUMN = 'ALTER TABLE {table} ADD COLUMN pending_overlay {text}'

    STMT_DROP_COLUMN = 'ALTER TABLE {table} DROP COLUMN {column}'

    STMT_DROP_TABLE = 'DROP TABLE {table}'

    # Without a native upsert, this is racy between the match and the
    # insert for concurrent writers of the same id.
    STMT_UPSERT = (
        'MERGE INTO {table} AS t '
        'USING (VALUES (%s, %s, %s, %s)) AS s (id, type, creator_id, body) '
        'ON t.id = s.id '
        'WHEN MATCHED THEN UPDATE SET '
        'type = s.type, creator_id = s.creator_id, body = s.body, '
        'pending_overlay = NULL '
        'WHEN NOT MATCHED THEN INSERT (id, type, creator_id, body, pending_overlay) '
        'VALUES (s.id, s.type, s.creator_id, s.body, NULL)'
    )

    STMT_READ = 'SELECT ' + _SELECT_COLUMNS + ' FROM {table} WHERE id IN ({placeholders})'

    STMT_UPDATE_OVERLAY = 'UPDATE {table} SET pending_overlay = %s WHERE id = %s'

    STMT_DELETE = 'DELETE FROM {table} WHERE id IN ({placeholders})'

    _PAGE_TEMPLATES = {
        PagingStyle.LIMIT_OFFSET: (
            'SELECT ' + _SELECT_COLUMNS + ' FROM {table} '
            'ORDER BY id LIMIT %s OFFSET %s'
        ),
        PagingStyle.OFFSET_FETCH: (
            'SELECT ' + _SELECT_COLUMNS + ' FROM {table} '
            'ORDER BY id OFFSET %s ROWS FETCH NEXT %s ROWS ONLY'
        ),
        PagingStyle.ROW_NUMBER: (
            'SELECT ' + _SELECT_COLUMNS + ' FROM ('
            'SELECT ' + _SELECT_COLUMNS + ', ROW_NUMBER() OVER (ORDER BY id) AS rn '
            'FROM {table}) numbered '
            'WHERE rn > %s AND rn <= %s ORDER BY rn'
        ),
    }

    def _create_table_template(self, key_type):
        text = self.datatype_map['text']
        stmt = (
            'CREATE TABLE {table} ('
            'id %(key)s NOT NULL PRIMARY KEY, '
            'type %(key)s NOT NULL, '
            'creator_id %(key)s, '
            'body %(text)s NOT NULL, '
            'pending_overlay %(text)s'
            ')' % {'key': key_type, 'text': text}
        )
        if self.STMT_TABLE_TRAILER:
            stmt += ' ' + self.STMT_TABLE_TRAILER
        return stmt

    @property
    def STMT_CREATE_TABLE(self):
        return self._create_table_template(self.datatype_map['key'])

    @property
    def STMT_CREATE_TABLE_NARROW_KEY(self):
        """
        The CREATE TABLE to retry with when the primary key is too long
        for the index, or None.
        """
        narrow = self.datatype_map['narrow_key']
        if not narrow:
            return None
        # Only the key column narrows; other columns stay wide.
        return self._create_table_template(self.datatype_map['key']).replace(
            'id %s NOT NULL' % (self.datatype_map['key'],),
            'id %s NOT NULL' % (narrow,),
            1
        )

    @property
    def STMT_PAGE(self):
        return self._PAGE_TEMPLATES[self.paging]

    def stmt(self, template, table_name, count=0, **kw):
        """
        Fill in *template* for *table_name*.

        *count* is the number of placeholders an ``IN`` clause needs.
        """
        return template.format(
            table=table_name,
            placeholders=', '.join(['%s'] * count),
            text=self.datatype_map['text'],
            **kw
        )

    def fold_identifier(self, name):
        if self.identifier_case == 'upper':
            return name.upper()
        if self.identifier_case == 'lower':
            return name.lower()
        return name

    def page_params(self, limit, offset):
        if self.paging is PagingStyle.LIMIT_OFFSET:
            return (limit, offset)
        if self.paging is PagingStyle.OFFSET_FETCH:
            return (offset, limit)
        return (offset, offset + limit)

    def __repr__(self):
        return '<%s %s>' % (type(self).__name__, self.family.value)


class MySQLDialectProfile(DialectProfile):

    family = DialectFamily.MYSQL

    datatype_map = dict(DialectProfile.datatype_map)
    datatype_map.update({
        # 255 utf8mb4 characters exceed the 767 byte index key
        # limit of COMPACT row formats; 191 do not.
        'narrow_key': 'VARCHAR(191)',
        'text': 'LONGTEXT',
    })

    STMT_TABLE_TRAILER = 'ENGINE = InnoDB DEFAULT CHARSET = utf8mb4'

    identifier_case = None

    paging = PagingStyle.LIMIT_OFFSET

    STMT_TABLE_EXISTS = (
        'SELECT table_name FROM information_schema.tables '
        'WHERE table_schema = DATABASE() AND table_name = %s'
    )

    STMT_LIST_COLUMNS = (
        'SELECT column_name FROM information_schema.columns '
        'WHERE table_schema = DATABASE() AND table_name = %s'
    )

    # Positional, so a table with obsolete columns fails with a
    # column count error.
    STMT_UPSERT = (
        'INSERT INTO {table} VALUES (%s, %s, %s, %s, NULL) '
        'ON DUPLICATE KEY UPDATE '
        'type = VALUES(type), creator_id = VALUES(creator_id), '
        'body = VALUES(body), pending_overlay = NULL'
    )


class PostgreSQLDialectProfile(DialectProfile):

    family = DialectFamily.POSTGRESQL

    datatype_map = dict(DialectProfile.datatype_map)
    datatype_map['text'] = 'TEXT'

    identifier_case = 'lower'

    paging = PagingStyle.LIMIT_OFFSET

    STMT_TABLE_EXISTS = (
        'SELECT tablename FROM pg_catalog.pg_tables '
        'WHERE schemaname = current_schema() AND tablename = %s'
    )

    STMT_LIST_COLUMNS = (
        'SELECT column_name FROM information_schema.columns '
        'WHERE table_schema = current_schema() AND table_name = %s'
    )

    STMT_UPSERT = (
        'INSERT INTO {table} (id, type, creator_id, body, pending_overlay) '
        'VALUES (%s, %s, %s, %s, NULL) '
        'ON CONFLICT (id) DO UPDATE SET '
        'type = EXCLUDED.type, creator_id = EXCLUDED.creator_id, '
        'body = EXCLUDED.body, pending_overlay = NULL'
    )


class SqliteDialectProfile(DialectProfile):

    family = DialectFamily.SQLITE

    datatype_map = dict(DialectProfile.datatype_map)
    datatype_map.update({
        'key': 'TEXT',
        'text': 'TEXT',
    })

    # The catalog comparison is case-insensitive.
    identifier_case = None

    paging = PagingStyle.LIMIT_OFFSET

    STMT_TABLE_EXISTS = (
        "SELECT name FROM sqlite_master "
        "WHERE type = 'table' AND name = %s COLLATE NOCASE"
    )

    STMT_LIST_COLUMNS = 'SELECT name FROM pragma_table_info(%s)'

    STMT_UPSERT = (
        'INSERT INTO {table} VALUES (%s, %s, %s, %s, NULL) '
        'ON CONFLICT (id) DO UPDATE SET '
        'type = excluded.type, creator_id = excluded.creator_id, '
        'body = excluded.body, pending_overlay = NULL'
    )


class SQLServerDialectProfile(DialectProfile):

    family = DialectFamily.SQLSERVER

    datatype_map = dict(DialectProfile.datatype_map)
    datatype_map.update({
        'key': 'NVARCHAR(255)',
        'text': 'NVARCHAR(MAX)',
    })

    identifier_case = None

    paging = PagingStyle.OFFSET_FETCH

    STMT_TABLE_EXISTS = (
        'SELECT table_name FROM information_schema.tables '
        'WHERE table_name = %s'
    )

    STMT_LIST_COLUMNS = (
        'SELECT column_name FROM information_schema.columns '
        'WHERE table_name = %s'
    )

    STMT_ADD_OVERLAY_COLUMN = 'ALTER TABLE {table} ADD pending_overlay {text}'

    STMT_UPSERT = (
        'MERGE INTO {table} WITH (HOLDLOCK) AS t '
        'USING (VALUES (%s, %s, %s, %s)) AS s (id, type, creator_id, body) '
        'ON t.id = s.id '
        'WHEN MATCHED THEN UPDATE SET '
        't.type = s.type, t.creator_id = s.creator_id, t.body = s.body, '
        't.pending_overlay = NULL '
        'WHEN NOT MATCHED THEN INSERT (id, type, creator_id, body, pending_overlay) '
        'VALUES (s.id, s.type, s.creator_id, s.body, NULL);'
    )


class OracleDialectProfile(DialectProfile):

    family = DialectFamily.ORACLE

    datatype_map = dict(DialectProfile.datatype_map)
    datatype_map['key'] = 'VARCHAR2(255)'

    identifier_case = 'upper'

    paging = PagingStyle.ROW_NUMBER

    STMT_TABLE_EXISTS = 'SELECT table_name FROM user_tables WHERE table_name = %s'

    STMT_LIST_COLUMNS = 'SELECT column_name FROM user_tab_columns WHERE table_name = %s'

    STMT_ADD_OVERLAY_COLUMN = 'ALTER TABLE {table} ADD (pending_overlay {text})'

    STMT_UPSERT = (
        'MERGE INTO {table} t '
        'USING (SELECT %s AS id, %s AS type, %s AS creator_id, %s AS body FROM DUAL) s '
        'ON (t.id = s.id) '
        'WHEN MATCHED THEN UPDATE SET '
        't.type = s.type, t.creator_id = s.creator_id, t.body = s.body, '
        't.pending_overlay = NULL '
        'WHEN NOT MATCHED THEN INSERT (id, type, creator_id, body, pending_overlay) '
        'VALUES (s.id, s.type, s.creator_id, s.body, NULL)'
    )


#: The profile of each family.
DIALECTS = {
    profile.family: profile
    for profile in (
        MySQLDialectProfile(),
        PostgreSQLDialectProfile(),
        SQLServerDialectProfile(),
        OracleDialectProfile(),
        SqliteDialectProfile(),
        DialectProfile(),
    )
}

# Substrings of a driver identifier, checked in order.
_FAMILY_KEYWORDS = (
    (DialectFamily.MYSQL, ('mysql', 'mariadb')),
    (DialectFamily.POSTGRESQL, ('postgres', 'psycopg', 'pg8000')),
    (DialectFamily.SQLSERVER, ('sqlserver', 'mssql', 'pytds', 'jtds')),
    (DialectFamily.ORACLE, ('oracle',)),
    (DialectFamily.SQLITE, ('sqlite',)),
)


def classify_driver(driver_identifier):
    """
    Return the `DialectFamily` for the *driver_identifier*.

    Unrecognized identifiers are `DialectFamily.GENERIC`.
    """
    name = casefold(driver_identifier or '')
    for family, keywords in _FAMILY_KEYWORDS:
        if any(keyword in name for keyword in keywords):
            return family
    return DialectFamily.GENERIC


def resolve_dialect(driver_identifier):
    """
    Return the `DialectProfile` to use with the *driver_identifier*.
    """
    return DIALECTS[classify_driver(driver_identifier)]

