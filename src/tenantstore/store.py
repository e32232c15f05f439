##############################################################################
#
# Copyright (c) 2008 Zope Foundation and Contributors.
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
The store handle.

A :class:`TenantStore` owns one connection pool and presents the
document operations, scoped by tenant, on top of it. Nothing connects
until the first operation.
"""

from zope.interface import implementer

from tenantstore.adapters.connmanager import ConnectionManager
from tenantstore.adapters.mover import DocumentMover
from tenantstore.adapters.tables import TableManager
from tenantstore.interfaces import ITenantStore
from tenantstore.options import Options
from tenantstore.pager import Pager

logger = __import__('logging').getLogger(__name__)

__all__ = [
    'TenantStore',
]


@implementer(ITenantStore)
class TenantStore(object):
    """Storage of structured documents in per-tenant relational tables.

    Pass an :class:`tenantstore.options.Options` as *options*, or
    keyword arguments naming options.
    """

    def __init__(self, options=None, **kwoptions):
        if options is None:
            options = Options(**kwoptions)
        elif kwoptions:
            options = options.copy(**kwoptions)

        self._connmanager = ConnectionManager(options)
        self._tables = TableManager(self._connmanager)
        self._mover = DocumentMover(self._connmanager, self._tables)
        self._connmanager.add_on_initialized(self._create_root_table)

    @property
    def options(self):
        # Includes the settings from the URL once connected.
        return self._connmanager.options

    def __repr__(self):
        return '<%s at 0x%x connmanager=%r>' % (
            type(self).__name__, id(self), self._connmanager
        )

    def _create_root_table(self, _connmanager):
        if self.options.create_root_table:
            self._tables.create_table(self.options.root_tenant)

    def _tenant(self, tenant):
        # Connect first; URL settings may name the root tenant.
        self._connmanager.initialize()
        return self.options.root_tenant if tenant is None else tenant

    ###
    # Table lifecycle
    ###

    def table_exists(self, tenant):
        return self._tables.table_exists(self._tenant(tenant))

    def create_table(self, tenant):
        return self._tables.create_table(self._tenant(tenant))

    def delete_table(self, tenant):
        return self._tables.delete_table(self._tenant(tenant))

    def on_tenant_created(self, tenant):
        return self.create_table(tenant)

    def on_tenant_deleted(self, tenant):
        return self.delete_table(tenant)

    ###
    # Single documents
    ###

    def create(self, tenant, document):
        if document is None:
            return None
        ids = self._mover.create_rows(self._tenant(tenant), [document])
        result = ids[0] if ids else None
        logger.debug("TenantStore.create() %s", result)
        return result

    def read(self, tenant, document_id):
        if not document_id:
            return None
        found = self._mover.read_rows(self._tenant(tenant), [document_id])
        result = found.get(str(document_id))
        logger.debug("TenantStore.read() %s -> %r", document_id, result)
        return result

    def update(self, tenant, document):
        if document is None:
            return
        self._mover.update_rows(self._tenant(tenant), [document])
        logger.debug("TenantStore.update() %r", document)

    def delete(self, tenant, document):
        if document is None:
            return
        self._mover.delete_rows(self._tenant(tenant), [document])
        logger.debug("TenantStore.delete() %r", document)

    ###
    # Batches
    ###

    def create_all(self, tenant, documents):
        if not documents:
            return []
        ids = self._mover.create_rows(self._tenant(tenant), documents)
        logger.debug("TenantStore.create_all() %d", len(ids))
        return ids

    def read_all(self, tenant, document_ids):
        result = self._mover.read_rows(self._tenant(tenant), document_ids or ())
        logger.debug("TenantStore.read_all() %d", len(result))
        return result

    def update_all(self, tenant, documents):
        if not documents:
            return
        self._mover.update_rows(self._tenant(tenant), documents)
        logger.debug("TenantStore.update_all() %d", len(documents))

    def delete_all(self, tenant, documents):
        if not documents:
            return
        self._mover.delete_rows(self._tenant(tenant), documents)
        logger.debug("TenantStore.delete_all() %d", len(documents))

    def read_page(self, tenant, pager=None):
        if pager is None:
            pager = Pager()
        documents = self._mover.read_page(self._tenant(tenant), pager)
        logger.debug("TenantStore.read_page() %d %r", len(documents), pager)
        return documents

    def close(self):
        self._connmanager.dispose()

    def __enter__(self):
        return self

    def __exit__(self, t, v, tb):
        self.close()
