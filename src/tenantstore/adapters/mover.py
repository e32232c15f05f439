##############################################################################
#
# Copyright (c) 2009 Zope Foundation and Contributors.
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
Moving documents between Python and tenant tables.

Every operation is one transaction on one pooled connection. A
statement that fails because the table has an older column set is
classified, the table is migrated, and the operation is retried once.
"""

from collections import OrderedDict

from zope.interface import implementer

from .._util import log_timed
from .._util import metricmethod_sampled
from .._util import timestamp_millis
from ..document import Document
from ..document import decode_state
from ..document import encode_state
from ..document import new_id
from ._util import DatabaseHelpersMixin
from .interfaces import IDocumentMover
from .interfaces import SchemaDriftError
from .interfaces import WriteError

logger = __import__('logging').getLogger(__name__)


def _chunks(items, size):
    for i in range(0, len(items), size):
        yield items[i:i + size]


@implementer(IDocumentMover)
class DocumentMover(DatabaseHelpersMixin):

    #: The most ids to put in one ``IN`` clause. Oracle refuses
    #: more than 1000.
    in_clause_limit = 500

    def __init__(self, connmanager, tables):
        self.connmanager = connmanager
        self.tables = tables

    @property
    def driver(self):
        return self.connmanager.driver

    @property
    def dialect(self):
        return self.connmanager.dialect

    @property
    def options(self):
        return self.connmanager.options

    def __repr__(self):
        return '<%s at 0x%x connmanager=%r>' % (
            type(self).__name__, id(self), self.connmanager
        )

    ###
    # Failure handling
    ###

    def classify_failure(self, ex, table_name):
        """
        Return a `SchemaDriftError` if *ex* was caused by an outdated
        table, otherwise None.
        """
        driver = self.driver
        if driver.exception_is_missing_column(ex):
            kind = SchemaDriftError.MISSING_COLUMN
        elif driver.exception_is_column_count_mismatch(ex):
            kind = SchemaDriftError.COLUMN_COUNT
        else:
            return None
        return SchemaDriftError(kind, table_name, ex)

    def _migrate(self, drift):
        table_name = drift.table_name
        logger.info("Table %s is out of date (%s%s); migrating",
                    table_name, drift.kind, self._describe_error(drift.cause))

        def migrate(_conn, cursor):
            return self.tables.migrate(cursor, table_name)
        return self.connmanager.open_and_call(migrate)

    def _call_with_migration(self, table_name, callback):
        """
        Call ``callback(conn, cursor)`` in a transaction, migrating
        the table and trying again once if the table was outdated.
        """
        try:
            return self.connmanager.open_and_call(callback)
        except self.connmanager.operation_exceptions as ex:
            drift = self.classify_failure(ex, table_name)
            if drift is None:
                raise
        self._migrate(drift)
        return self.connmanager.open_and_call(callback)

    def _write(self, description, table_name, callback):
        try:
            return self._call_with_migration(table_name, callback)
        except (WriteError,) + self.connmanager.operation_exceptions as ex:
            self._write_failed(description, table_name, ex)
        return None

    def _write_failed(self, description, table_name, ex):
        logger.error("Failed to %s in table %s%s: %s",
                     description, table_name, self._describe_error(ex), ex)
        if self.options.fail_on_write_errors:
            if isinstance(ex, WriteError):
                raise ex
            raise WriteError("Failed to %s in table %s: %s" % (
                description, table_name, ex
            )) from ex

    def _read(self, description, table_name, callback, default):
        try:
            return self._call_with_migration(table_name, callback)
        except self.connmanager.operation_exceptions as ex:
            logger.error("Failed to %s in table %s%s: %s",
                         description, table_name, self._describe_error(ex), ex)
        return default

    ###
    # Rows
    ###

    def _row_to_document(self, row):
        doc_id, body, overlay = row[:3]
        text_column_as_str = self.driver.text_column_as_str
        state = decode_state(text_column_as_str(body)) or {}
        doc = Document.from_state(state)
        overlay = decode_state(text_column_as_str(overlay))
        if overlay:
            doc = doc.with_overlay(overlay)
        doc.id = self._metadata_to_native_str(doc_id)
        return doc

    def _rows_to_documents(self, table_name, rows):
        documents = []
        for row in rows:
            try:
                documents.append(self._row_to_document(row))
            except (ValueError, TypeError) as ex:
                logger.error("Skipping undecodable row %r in table %s: %s",
                             row[0], table_name, ex)
        return documents

    def _coerce_documents(self, description, table_name, documents):
        try:
            return [Document.coerce(d) for d in documents if d is not None]
        except (TypeError, ValueError) as ex:
            self._write_failed(description, table_name, ex)
        return []

    def _encode(self, doc, state):
        try:
            return encode_state(state)
        except (TypeError, ValueError) as ex:
            raise WriteError("Document %r is not JSON serializable: %s" % (doc, ex)) from ex

    def _prepare_created(self, tenant, table_name, documents):
        now = timestamp_millis()
        params = []
        for doc in documents:
            if not doc.type:
                raise WriteError("Document %r in table %s has no type" % (doc, table_name))
            if not doc.id:
                doc.id = new_id()
            doc.appid = tenant
            if doc.timestamp is None:
                doc.timestamp = now
            body = self._encode(doc, doc.to_state())
            params.append((doc.id, doc.type, doc.creator_id, body))
        return params

    @log_timed
    @metricmethod_sampled
    def create_rows(self, tenant, documents):
        table_name = self.tables.derive_table_name(tenant)
        if not table_name:
            return []
        documents = self._coerce_documents('create documents', table_name, documents)
        if not documents:
            return []

        def upsert(_conn, cursor):
            params = self._prepare_created(tenant, table_name, documents)
            dialect = self.dialect
            self.driver.executemany(
                cursor,
                dialect.stmt(dialect.STMT_UPSERT, table_name),
                params)
            return [doc.id for doc in documents]

        return self._write('create %d documents' % len(documents), table_name, upsert) or []

    @log_timed
    @metricmethod_sampled
    def read_rows(self, tenant, document_ids):
        result = OrderedDict()
        table_name = self.tables.derive_table_name(tenant)
        document_ids = list(OrderedDict.fromkeys(
            str(doc_id) for doc_id in document_ids if doc_id
        ))
        if not table_name or not document_ids:
            return result

        def read(_conn, cursor):
            dialect = self.dialect
            rows = []
            for chunk in _chunks(document_ids, self.in_clause_limit):
                self.driver.execute(
                    cursor,
                    dialect.stmt(dialect.STMT_READ, table_name, count=len(chunk)),
                    chunk)
                rows.extend(cursor.fetchall())
            return rows

        rows = self._read('read %d documents' % len(document_ids), table_name, read, ())
        found = {doc.id: doc for doc in self._rows_to_documents(table_name, rows)}
        for doc_id in document_ids:
            if doc_id in found:
                result[doc_id] = found[doc_id]
        return result

    @log_timed
    @metricmethod_sampled
    def update_rows(self, tenant, documents):
        table_name = self.tables.derive_table_name(tenant)
        if not table_name:
            return
        documents = self._coerce_documents('update documents', table_name, documents)
        if not documents:
            return

        def update(_conn, cursor):
            now = timestamp_millis()
            params = []
            for doc in documents:
                if not doc.id:
                    raise WriteError("Cannot update document %r without an id" % (doc,))
                doc.updated = now
                params.append((self._encode(doc, doc.to_patch()), doc.id))
            dialect = self.dialect
            self.driver.executemany(
                cursor,
                dialect.stmt(dialect.STMT_UPDATE_OVERLAY, table_name),
                params)

        self._write('update %d documents' % len(documents), table_name, update)

    @log_timed
    @metricmethod_sampled
    def delete_rows(self, tenant, documents):
        table_name = self.tables.derive_table_name(tenant)
        if not table_name:
            return
        documents = self._coerce_documents('delete documents', table_name, documents)
        document_ids = list(OrderedDict.fromkeys(
            doc.id for doc in documents if doc.id
        ))
        if not document_ids:
            return

        def delete(_conn, cursor):
            dialect = self.dialect
            for chunk in _chunks(document_ids, self.in_clause_limit):
                self.driver.execute(
                    cursor,
                    dialect.stmt(dialect.STMT_DELETE, table_name, count=len(chunk)),
                    chunk)

        self._write('delete %d documents' % len(document_ids), table_name, delete)

    @log_timed
    @metricmethod_sampled
    def read_page(self, tenant, pager):
        table_name = self.tables.derive_table_name(tenant)
        if not table_name:
            return []

        def page(_conn, cursor):
            dialect = self.dialect
            self.driver.execute(
                cursor,
                dialect.stmt(dialect.STMT_PAGE, table_name),
                dialect.page_params(pager.limit, pager.offset()))
            return cursor.fetchall()

        rows = self._read('read page %d' % (pager.page,), table_name, page, None)
        if rows is None:
            return []
        documents = self._rows_to_documents(table_name, rows)
        pager.advance(documents)
        return documents
