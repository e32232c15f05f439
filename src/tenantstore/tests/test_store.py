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
Tests for the store, using sqlite3 databases in temporary files.
"""

import os
import sqlite3

from hamcrest import assert_that
from nti.testing.matchers import validly_provides

from tenantstore.adapters.interfaces import ConfigurationError
from tenantstore.adapters.interfaces import WriteError
from tenantstore.document import Document
from tenantstore.interfaces import ITenantStore
from tenantstore.pager import Pager
from tenantstore.store import TenantStore

from . import TestCase


class StoreTestCase(TestCase):

    def _makeOne(self, **kwargs):
        kwargs.setdefault('url', self.make_sqlite_url())
        kwargs.setdefault('register_exit_hook', False)
        return self._closing(TenantStore(**kwargs))

    def setUp(self):
        super(StoreTestCase, self).setUp()
        self.store = self._makeOne()


class TestLifecycle(StoreTestCase):

    def test_provides(self):
        assert_that(self.store, validly_provides(ITenantStore))

    def test_root_table_created_on_connect(self):
        self.assertTrue(self.store.table_exists(None))
        self.assertTrue(self.store.table_exists('app'))
        # Already there
        self.assertFalse(self.store.create_table(None))

    def test_root_table_not_created(self):
        store = self._makeOne(create_root_table=False)
        self.assertFalse(store.table_exists(None))
        self.assertTrue(store.create_table(None))
        self.assertTrue(store.table_exists(None))

    def test_create_table_once(self):
        self.assertFalse(self.store.table_exists('acme'))
        self.assertTrue(self.store.create_table('acme'))
        self.assertTrue(self.store.table_exists('acme'))
        self.assertFalse(self.store.create_table('acme'))
        # The prefixed spelling is the same tenant
        self.assertTrue(self.store.table_exists('para-acme'))

        self.assertTrue(self.store.delete_table('acme'))
        self.assertFalse(self.store.table_exists('acme'))
        self.assertFalse(self.store.delete_table('acme'))
        self.assertTrue(self.store.create_table('acme'))

    def test_blank_and_whitespace_tenants(self):
        for tenant in ('', '   ', 'has whitespace', 'tab\there'):
            self.assertFalse(self.store.create_table(tenant), tenant)
        self.assertFalse(self.store.table_exists(''))
        self.assertFalse(self.store.delete_table(''))

    def test_hooks(self):
        self.assertTrue(self.store.on_tenant_created('globex'))
        self.assertTrue(self.store.table_exists('globex'))
        self.assertTrue(self.store.on_tenant_deleted('globex'))
        self.assertFalse(self.store.table_exists('globex'))

    def test_hyphenated_tenant(self):
        self.assertTrue(self.store.create_table('big-co'))
        conn = sqlite3.connect(self.store.options.url[len('sqlite:///'):])
        self.addCleanup(conn.close)
        names = [row[0] for row in conn.execute(
            "SELECT name FROM sqlite_master WHERE type = 'table' ORDER BY name")]
        self.assertEqual(names, ['app', 'para_big_co'])

    def test_tenant_case_folded(self):
        self.assertTrue(self.store.create_table('Globex'))
        self.assertTrue(self.store.table_exists('globex'))
        self.assertFalse(self.store.create_table('GLOBEX'))
        doc_id = self.store.create('Globex', Document(type='user'))
        self.assertIsNotNone(self.store.read('globex', doc_id))

    def test_tenant_with_sql_isolated(self):
        self.store.create_table('a')
        self.store.create_table('b')
        self.store.create('a', Document(id='s1', type='t', body={'v': 'secret'}))
        tenant = "b/**/UNION/**/SELECT/**/id,body,pending_overlay/**/FROM/**/para_a/**/--"

        self.assertFalse(self.store.create_table(tenant))
        self.assertFalse(self.store.table_exists(tenant))
        self.assertEqual(self.store.read_page(tenant, Pager()), [])
        self.assertIsNone(self.store.read(tenant, 's1'))
        self.assertIsNone(self.store.create(tenant, Document(type='t')))
        self.store.delete(tenant, Document(id='s1'))
        self.assertFalse(self.store.delete_table(tenant))

        self.assertEqual(self.store.read('a', 's1').body, {'v': 'secret'})
        self.assertTrue(self.store.table_exists('b'))

    def test_no_url(self):
        store = self._closing(TenantStore(register_exit_hook=False))
        with self.assertRaises(ConfigurationError):
            store.table_exists('acme')

    def test_url_options_apply(self):
        url = self.make_sqlite_url() + '?root_tenant=main&fail_on_write_errors=on'
        store = self._makeOne(url=url)
        self.assertTrue(store.table_exists(None))
        self.assertTrue(store.table_exists('main'))
        self.assertEqual(store.options.root_tenant, 'main')
        self.assertTrue(store.options.fail_on_write_errors)

    def test_explicit_options_beat_url(self):
        url = self.make_sqlite_url() + '?root_tenant=main'
        store = self._makeOne(url=url, root_tenant='root')
        self.assertTrue(store.table_exists('root'))
        self.assertFalse(store.table_exists('main'))

    def test_context_manager(self):
        with TenantStore(url=self.make_sqlite_url(), register_exit_hook=False) as store:
            self.assertTrue(store.create_table('acme'))
        # Reopens on demand
        self.assertTrue(store.table_exists('acme'))
        store.close()


class TestDocuments(StoreTestCase):

    def setUp(self):
        super(TestDocuments, self).setUp()
        self.store.create_table('acme')

    def test_scenario(self):
        store = self.store
        store.create('acme', {'id': 'u1', 'type': 'user', 'body': {'name': 'Ann'}})
        self.assertEqual(store.read('acme', 'u1').body, {'name': 'Ann'})

        store.update('acme', {'id': 'u1', 'body': {'name': 'Anna'}})
        self.assertEqual(store.read('acme', 'u1').body, {'name': 'Anna'})

        self.assertTrue(store.delete_table('acme'))
        self.assertFalse(store.table_exists('acme'))

    def test_round_trip(self):
        doc = Document(type='invoice', creator_id='bob',
                       body={'total': 10, 'lines': [{'sku': 'a', 'qty': 2}]})
        doc_id = self.store.create('acme', doc)
        self.assertTrue(doc_id)
        self.assertEqual(doc.id, doc_id)
        self.assertEqual(doc.appid, 'acme')
        self.assertIsInstance(doc.timestamp, int)

        read = self.store.read('acme', doc_id)
        self.assertEqual(read, doc)

    def test_create_keeps_given_id_and_timestamp(self):
        doc = Document(id='i1', type='invoice', timestamp=1234)
        self.assertEqual(self.store.create('acme', doc), 'i1')
        self.assertEqual(self.store.read('acme', 'i1').timestamp, 1234)

    def test_create_none(self):
        self.assertIsNone(self.store.create('acme', None))
        self.assertEqual(self.store.create_all('acme', []), [])

    def test_read_missing(self):
        self.assertIsNone(self.store.read('acme', 'nope'))
        self.assertIsNone(self.store.read('acme', ''))
        self.assertIsNone(self.store.read('acme', None))

    def test_root_tenant(self):
        doc_id = self.store.create(None, Document(type='setting', body={'a': 1}))
        self.assertEqual(self.store.read(None, doc_id).appid, 'app')
        self.assertIsNone(self.store.read('acme', doc_id))

    def test_isolation(self):
        self.store.create_table('globex')
        doc_id = self.store.create('acme', Document(type='user'))
        self.assertIsNone(self.store.read('globex', doc_id))
        self.assertEqual(dict(self.store.read_all('globex', [doc_id])), {})
        self.assertEqual(self.store.read_page('globex', Pager()), [])

        self.store.delete('globex', Document(id=doc_id))
        self.assertIsNotNone(self.store.read('acme', doc_id))

    def test_overlay_merge(self):
        original = Document(id='d1', type='invoice', creator_id='bob',
                            body={'total': 10, 'meta': {'a': 1, 'b': 2}})
        self.store.create('acme', original)

        self.store.update('acme', Document(
            id='d1', type='receipt', creator_id='eve',
            body={'meta': {'b': 3}}))

        read = self.store.read('acme', 'd1')
        self.assertEqual(read.body, {'total': 10, 'meta': {'a': 1, 'b': 3}})
        # Locked fields are unchanged
        self.assertEqual(read.type, 'invoice')
        self.assertEqual(read.creator_id, 'bob')
        self.assertEqual(read.appid, 'acme')
        self.assertEqual(read.timestamp, original.timestamp)
        self.assertIsInstance(read.updated, int)

    def test_update_replaces_pending_overlay(self):
        self.store.create('acme', Document(id='d1', type='t', body={'a': 1}))
        self.store.update('acme', Document(id='d1', body={'b': 2}))
        self.store.update('acme', Document(id='d1', body={'c': 3}))
        self.assertEqual(self.store.read('acme', 'd1').body, {'a': 1, 'c': 3})

    def test_create_clears_overlay(self):
        self.store.create('acme', Document(id='d1', type='t', body={'a': 1}))
        self.store.update('acme', Document(id='d1', body={'a': 2}))
        self.store.create('acme', Document(id='d1', type='t', body={'a': 3}))
        self.assertEqual(self.store.read('acme', 'd1').body, {'a': 3})

    def test_update_missing_row(self):
        self.store.update('acme', Document(id='nope', body={'a': 1}))
        self.assertIsNone(self.store.read('acme', 'nope'))

    def test_batches(self):
        docs = [Document(type='user', body={'n': i}) for i in range(5)]
        ids = self.store.create_all('acme', docs)
        self.assertEqual(ids, [d.id for d in docs])
        self.assertLength(set(ids), 5)

        requested = [ids[3], 'missing', ids[0], ids[3]]
        found = self.store.read_all('acme', requested)
        self.assertEqual(list(found), [ids[3], ids[0]])
        self.assertEqual(found[ids[0]].body, {'n': 0})

        self.store.update_all('acme', [Document(id=ids[1], body={'n': 10}),
                                       Document(id=ids[2], body={'n': 20})])
        found = self.store.read_all('acme', ids[1:3])
        self.assertEqual([d.body['n'] for d in found.values()], [10, 20])

        self.store.delete_all('acme', docs[:2])
        found = self.store.read_all('acme', ids)
        self.assertEqual(list(found), ids[2:])

    def test_batch_delete(self):
        d1 = Document(type='user')
        d2 = Document(type='user')
        self.store.create_all('acme', [d1, d2])
        self.store.delete_all('acme', [d1, d2])
        self.assertIsEmpty(self.store.read_all('acme', [d1.id, d2.id]))

    def test_read_all_empty(self):
        self.assertIsEmpty(self.store.read_all('acme', []))
        self.assertIsEmpty(self.store.read_all('acme', None))

    def test_pagination_exhaustion(self):
        ids = self.store.create_all('acme', [Document(type='t') for _ in range(7)])
        pager = Pager(limit=3)
        seen = []
        sizes = []
        while True:
            page = self.store.read_page('acme', pager)
            if not page:
                break
            sizes.append(len(page))
            seen.extend(d.id for d in page)

        self.assertEqual(sizes, [3, 3, 1])
        self.assertEqual(seen, sorted(ids))
        self.assertEqual(pager.count, 7)
        self.assertEqual(pager.last_key, max(ids))
        self.assertEqual(pager.page, 5)

    def test_read_page_default_pager(self):
        self.store.create('acme', Document(type='t'))
        self.assertLength(self.store.read_page('acme'), 1)

    def test_missing_table_reads_empty(self):
        self.assertIsNone(self.store.read('nowhere', 'x'))
        self.assertEqual(self.store.read_page('nowhere', Pager()), [])

    def test_write_failure_swallowed(self):
        self.assertIsNone(self.store.create('acme', Document(body={'no': 'type'})))
        self.assertEqual(self.store.create_all('nowhere', [Document(type='t')]), [])

    def test_write_failure_raised(self):
        store = self._makeOne(fail_on_write_errors=True)
        store.create_table('acme')
        with self.assertRaises(WriteError):
            store.create('acme', Document(body={'no': 'type'}))
        with self.assertRaises(WriteError):
            store.create_all('nowhere', [Document(type='t')])
        with self.assertRaises(WriteError):
            store.update('acme', Document(body={'no': 'id'}))
        # Reads never raise
        self.assertIsNone(store.read('nowhere', 'x'))

    def test_unserializable_update_swallowed(self):
        self.store.create('acme', Document(id='u1', type='t', body={'a': 1}))
        self.assertIsNone(self.store.update('acme', Document(id='u1', body={'when': object()})))
        self.store.update('acme', {'id': 'u1', 'unknown': 1})
        self.assertEqual(self.store.read('acme', 'u1').body, {'a': 1})

    def test_unserializable_update_raised(self):
        store = self._makeOne(fail_on_write_errors=True)
        store.create_table('acme')
        store.create('acme', Document(id='u1', type='t', body={'a': 1}))
        with self.assertRaises(WriteError):
            store.update('acme', Document(id='u1', body={'when': object()}))
        with self.assertRaises(WriteError):
            store.update('acme', {'id': 'u1', 'unknown': 1})
        with self.assertRaises(WriteError):
            store.create('acme', {'type': 't', 'unknown': 1})
        with self.assertRaises(WriteError):
            store.delete('acme', {'id': 'u1', 'unknown': 1})
        self.assertEqual(store.read('acme', 'u1').body, {'a': 1})

    def test_failed_batch_writes_nothing(self):
        store = self._makeOne(fail_on_write_errors=True)
        store.create_table('acme')
        with self.assertRaises(WriteError):
            store.create_all('acme', [Document(id='ok', type='t'),
                                      Document(id='bad')])
        self.assertIsNone(store.read('acme', 'ok'))


class TestMigration(StoreTestCase):

    def _make_legacy_table(self, table_name, with_overlay=False, with_obsolete=True):
        path = self.store.options.url[len('sqlite:///'):]
        columns = ['id TEXT NOT NULL PRIMARY KEY', 'type TEXT NOT NULL',
                   'creator_id TEXT', 'body TEXT NOT NULL']
        if with_obsolete:
            columns += ['timestamp INTEGER', 'updated INTEGER']
        if with_overlay:
            columns.append('pending_overlay TEXT')
        conn = sqlite3.connect(path)
        try:
            conn.execute('CREATE TABLE %s (%s)' % (table_name, ', '.join(columns)))
            values = ['1', 'note', None, '{"id":"1","type":"note","body":{"a":1}}']
            if with_obsolete:
                values += [5, 6]
            if with_overlay:
                values.append(None)
            conn.execute('INSERT INTO %s VALUES (%s)' % (
                table_name, ', '.join(['?'] * len(values))), values)
            conn.commit()
        finally:
            conn.close()
        return path

    def _columns(self, path, table_name):
        conn = sqlite3.connect(path)
        try:
            return [row[1] for row in conn.execute('PRAGMA table_info(%s)' % table_name)]
        finally:
            conn.close()

    def test_table_exists_migrates(self):
        # Make sure the file exists.
        self.store.table_exists(None)
        path = self._make_legacy_table('para_old')
        self.assertTrue(os.path.exists(path))

        self.assertTrue(self.store.table_exists('old'))
        self.assertEqual(self._columns(path, 'para_old'),
                         ['id', 'type', 'creator_id', 'body', 'pending_overlay'])
        self.assertEqual(self.store.read('old', '1').body, {'a': 1})

    def test_read_migrates_missing_overlay(self):
        self.store.table_exists(None)
        path = self._make_legacy_table('para_old', with_obsolete=False)
        self.assertEqual(self.store.read('old', '1').body, {'a': 1})
        self.assertIn('pending_overlay', self._columns(path, 'para_old'))

    def test_create_migrates_obsolete_columns(self):
        self.store.table_exists(None)
        path = self._make_legacy_table('para_old', with_overlay=True)
        self.assertEqual(self.store.create('old', Document(id='2', type='note')), '2')
        self.assertEqual(self._columns(path, 'para_old'),
                         ['id', 'type', 'creator_id', 'body', 'pending_overlay'])
        self.assertEqual(sorted(self.store.read_all('old', ['1', '2'])), ['1', '2'])
