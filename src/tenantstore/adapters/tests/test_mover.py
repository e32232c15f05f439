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

import json

from hamcrest import assert_that
from nti.testing.matchers import verifiably_provides

from tenantstore.tests import TestCase
from tenantstore.tests import MockConnectionManager
from tenantstore.tests import MockDatabaseError
from tenantstore.tests import MockDriver
from tenantstore.tests import MockOptions
from tenantstore.document import Document
from tenantstore.pager import Pager

from ..interfaces import IDocumentMover
from ..interfaces import SchemaDriftError
from ..interfaces import WriteError
from ..mover import DocumentMover
from ..tables import TableManager

SELECT = 'SELECT id, body, pending_overlay'
LIST_COLUMNS = 'SELECT name FROM pragma_table_info'


def _body(type_='note', **body):
    return json.dumps({'type': type_, 'body': body})


class TestDocumentMover(TestCase):

    def _makeOne(self, **options):
        self.connmanager = MockConnectionManager(
            options=MockOptions.from_args(**options))
        return DocumentMover(self.connmanager, TableManager(self.connmanager))

    def _statements(self):
        return [stmt for stmt, _ in self.connmanager.executed]

    def _fail(self, code, prefix, times=1):
        failed = []

        def hook(stmt, _params):
            if stmt.startswith(prefix) and len(failed) < times:
                failed.append(stmt)
                raise MockDatabaseError(code)
        self.connmanager.statement_hooks.append(hook)
        return failed

    def test_provides(self):
        mover = self._makeOne()
        assert_that(mover, verifiably_provides(IDocumentMover))
        self.assertIn('DocumentMover', repr(mover))

    def test_classify_failure(self):
        mover = self._makeOne()
        cause = MockDatabaseError(MockDriver.MISSING_COLUMN)
        drift = mover.classify_failure(cause, 'para_acme')
        self.assertIsInstance(drift, SchemaDriftError)
        self.assertEqual(drift.kind, SchemaDriftError.MISSING_COLUMN)
        self.assertEqual(drift.table_name, 'para_acme')
        self.assertIs(drift.cause, cause)

        drift = mover.classify_failure(
            MockDatabaseError(MockDriver.COLUMN_COUNT), 'para_acme')
        self.assertEqual(drift.kind, SchemaDriftError.COLUMN_COUNT)

        self.assertIsNone(mover.classify_failure(MockDatabaseError(99), 'para_acme'))
        self.assertIsNone(mover.classify_failure(ValueError(), 'para_acme'))

    def test_blank_tenant(self):
        mover = self._makeOne()
        self.assertEqual(mover.create_rows(' ', [Document(type='note')]), [])
        self.assertEqual(dict(mover.read_rows(None, ['a'])), {})
        mover.update_rows('', [Document(id='a')])
        mover.delete_rows('', [Document(id='a')])
        self.assertEqual(mover.read_page('', Pager()), [])
        self.assertIsEmpty(self.connmanager.executed)

    def test_create_rows(self):
        mover = self._makeOne()
        doc = Document(type='note', creator_id='u1', body={'n': 1})
        ids = mover.create_rows('acme', [doc, None])
        self.assertEqual(ids, [doc.id])
        self.assertTrue(doc.id)
        self.assertEqual(doc.appid, 'acme')
        self.assertIsNotNone(doc.timestamp)

        (stmt, params), = self.connmanager.executed
        self.assertTrue(stmt.startswith('INSERT INTO para_acme VALUES'), stmt)
        self.assertEqual(params[:3], (doc.id, 'note', 'u1'))
        self.assertEqual(json.loads(params[3]), doc.to_state())
        self.assertTrue(self.connmanager.driver.connections[-1].committed)

    def test_create_rows_mappings(self):
        mover = self._makeOne()
        ids = mover.create_rows('acme', [{'id': 'given', 'type': 'note'}])
        self.assertEqual(ids, ['given'])

    def test_create_rows_without_type(self):
        mover = self._makeOne()
        self.assertEqual(mover.create_rows('acme', [Document(body={'n': 1})]), [])
        self.assertIsEmpty(self.connmanager.executed)

        mover = self._makeOne(fail_on_write_errors=True)
        with self.assertRaises(WriteError):
            mover.create_rows('acme', [Document(body={'n': 1})])

    def test_create_rows_migrates_and_retries(self):
        mover = self._makeOne()
        failed = self._fail(MockDriver.COLUMN_COUNT, 'INSERT')
        self.connmanager.results[LIST_COLUMNS] = [
            ('id',), ('type',), ('creator_id',), ('body',), ('pending_overlay',), ('timestamp',)
        ]
        doc = Document(type='note')
        self.assertEqual(mover.create_rows('acme', [doc]), [doc.id])
        self.assertLength(failed, 1)
        statements = self._statements()
        self.assertEqual(statements[0], 'SELECT name FROM pragma_table_info(%s)')
        self.assertEqual(statements[1], 'ALTER TABLE para_acme DROP COLUMN timestamp')
        self.assertTrue(statements[2].startswith('INSERT INTO para_acme'))
        self.assertLength(statements, 3)

    def test_create_rows_retries_only_once(self):
        mover = self._makeOne()
        failed = self._fail(MockDriver.COLUMN_COUNT, 'INSERT', times=5)
        self.assertEqual(mover.create_rows('acme', [Document(type='note')]), [])
        self.assertLength(failed, 2)

    def test_create_rows_failure_raises_when_configured(self):
        mover = self._makeOne(fail_on_write_errors=True)
        self._fail(1234, 'INSERT')
        with self.assertRaises(WriteError) as exc:
            mover.create_rows('acme', [Document(type='note')])
        self.assertIsInstance(exc.exception.__cause__, MockDatabaseError)
        # Not drift; nothing was migrated.
        self.assertIsEmpty(self.connmanager.executed)
        self.assertTrue(self.connmanager.driver.connections[-1].rolled_back)

    def test_read_rows(self):
        mover = self._makeOne()
        self.connmanager.results[SELECT] = [
            ('c', _body(n=3), None),
            ('a', _body(n=1), json.dumps({'body': {'extra': True}, 'updated': 5})),
        ]
        result = mover.read_rows('acme', ['a', 'b', 'c', 'a', None])
        self.assertEqual(list(result), ['a', 'c'])
        self.assertEqual(result['a'].body, {'n': 1, 'extra': True})
        self.assertEqual(result['a'].updated, 5)
        self.assertEqual(result['c'].id, 'c')

        (stmt, params), = self.connmanager.executed
        self.assertEqual(
            stmt, 'SELECT id, body, pending_overlay FROM para_acme WHERE id IN (%s, %s, %s)')
        self.assertEqual(params, ('a', 'b', 'c'))

    def test_read_rows_chunks(self):
        mover = self._makeOne()
        mover.in_clause_limit = 2
        mover.read_rows('acme', ['a', 'b', 'c', 'd', 'e'])
        self.assertEqual(
            [params for _, params in self.connmanager.executed],
            [('a', 'b'), ('c', 'd'), ('e',)])
        # All in one transaction
        self.assertLength(self.connmanager.cursors, 1)

    def test_read_rows_skips_undecodable(self):
        mover = self._makeOne()
        self.connmanager.results[SELECT] = [
            ('a', '{not json', None),
            ('b', _body(), None),
        ]
        self.assertEqual(list(mover.read_rows('acme', ['a', 'b'])), ['b'])

    def test_read_rows_migrates_missing_column(self):
        mover = self._makeOne()
        self._fail(MockDriver.MISSING_COLUMN, SELECT)
        self.connmanager.results[LIST_COLUMNS] = [('id',), ('type',), ('creator_id',), ('body',)]
        self.connmanager.results[SELECT] = [('a', _body(), None)]
        self.assertEqual(list(mover.read_rows('acme', ['a'])), ['a'])
        self.assertIn('ALTER TABLE para_acme ADD COLUMN pending_overlay TEXT',
                      self._statements())

    def test_read_rows_failure_is_empty(self):
        mover = self._makeOne(fail_on_write_errors=True)
        self._fail(1234, SELECT)
        self.assertEqual(dict(mover.read_rows('acme', ['a'])), {})

    def test_update_rows(self):
        mover = self._makeOne()
        doc = Document(id='a', type='note', creator_id='u1', appid='acme',
                       timestamp=1, body={'x': 1})
        mover.update_rows('acme', [doc])
        (stmt, params), = self.connmanager.executed
        self.assertEqual(stmt, 'UPDATE para_acme SET pending_overlay = %s WHERE id = %s')
        self.assertEqual(params[1], 'a')
        patch = json.loads(params[0])
        self.assertEqual(patch['body'], {'x': 1})
        self.assertEqual(patch['updated'], doc.updated)
        for locked in ('id', 'type', 'creator_id', 'appid', 'timestamp'):
            self.assertNotIn(locked, patch)

    def test_update_rows_without_id(self):
        mover = self._makeOne()
        mover.update_rows('acme', [Document(id='a'), Document(type='note')])
        # The whole batch is rejected.
        self.assertIsEmpty(self.connmanager.executed)

        mover = self._makeOne(fail_on_write_errors=True)
        with self.assertRaises(WriteError):
            mover.update_rows('acme', [Document(type='note')])

    def test_update_rows_not_serializable(self):
        mover = self._makeOne()
        mover.update_rows('acme', [Document(id='a', body={'when': object()})])
        self.assertIsEmpty(self.connmanager.executed)

        mover = self._makeOne(fail_on_write_errors=True)
        with self.assertRaises(WriteError):
            mover.update_rows('acme', [Document(id='a', body={'when': object()})])
        with self.assertRaises(WriteError):
            mover.update_rows('acme', [{'id': 'a', 'colour': 'red'}])

    def test_unknown_fields_rejected(self):
        mover = self._makeOne()
        self.assertEqual(mover.create_rows('acme', [{'type': 't', 'colour': 'red'}]), [])
        mover.delete_rows('acme', [{'id': 'a', 'colour': 'red'}])
        self.assertIsEmpty(self.connmanager.executed)

    def test_delete_rows(self):
        mover = self._makeOne()
        mover.delete_rows('acme', [{'id': 'a'}, Document(id='a'), None,
                                   Document(), {'id': 'b'}])
        self.assertEqual(self.connmanager.executed, [
            ('DELETE FROM para_acme WHERE id IN (%s, %s)', ('a', 'b'))
        ])

    def test_delete_rows_nothing(self):
        mover = self._makeOne()
        mover.delete_rows('acme', [Document(), None])
        self.assertIsEmpty(self.connmanager.executed)

    def test_read_page(self):
        mover = self._makeOne()
        self.connmanager.results[SELECT] = [('a', _body(), None), ('b', _body(), None)]
        pager = Pager(limit=2)
        docs = mover.read_page('acme', pager)
        self.assertEqual([d.id for d in docs], ['a', 'b'])
        self.assertEqual(pager.page, 2)
        self.assertEqual(pager.count, 2)
        self.assertEqual(pager.last_key, 'b')

        (stmt, params), = self.connmanager.executed
        self.assertEqual(
            stmt,
            'SELECT id, body, pending_overlay FROM para_acme ORDER BY id LIMIT %s OFFSET %s')
        self.assertEqual(params, (2, 0))

        mover.read_page('acme', pager)
        self.assertEqual(self.connmanager.executed[-1][1], (2, 2))
        self.assertEqual(pager.page, 3)

    def test_read_page_failure(self):
        mover = self._makeOne()
        self._fail(1234, SELECT)
        pager = Pager(limit=2)
        self.assertEqual(mover.read_page('acme', pager), [])
        self.assertEqual(pager.page, 0)
        self.assertEqual(pager.count, 0)
