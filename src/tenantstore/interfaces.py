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
Interfaces for top-level tenantstore components.

These serve as documentation and for validation of the
public objects: documents, pagers and the store handle.
"""

from zope.interface import Attribute
from zope.interface import Interface
from zope.interface.common.interfaces import IException
from zope.schema import Bool
from zope.schema import Dict
from zope.schema import Field as _Field
from zope.schema import Int
from zope.schema import Object
from zope.schema import TextLine
from zope.schema import Tuple
from zope.schema.interfaces import SchemaNotProvided as _SchemaNotProvided

# pylint:disable=inherit-non-class, no-self-argument, no-method-argument

__all__ = [
    'Tuple',
    'Object',
    'Bool',
    'IException',
    'Factory',
    'IDocument',
    'IPager',
    'ITableLifecycle',
    'ITenantStore',
]


class Factory(_Field):
    """
    A field whose value must be a callable implementing *schema*.
    """

    def __init__(self, schema, **kw):
        self.schema = schema
        _Field.__init__(self, **kw)

    def _validate(self, value):
        super(Factory, self)._validate(value)
        if not self.schema.implementedBy(value):
            raise _SchemaNotProvided(self.schema, value).with_field_and_value(self, value)


class IDocument(Interface):
    """
    A structured record stored in a tenant's table.
    """

    id = TextLine(
        title=u"Identifier",
        description=u"Unique within a tenant; generated on create when missing.",
        required=False,
    )

    type = TextLine(
        title=u"Type",
        description=u"The discriminator of the document. Required to create.",
        required=False,
    )

    creator_id = TextLine(
        title=u"Creator",
        required=False,
    )

    appid = TextLine(
        title=u"Tenant",
        description=u"Stamped with the owning tenant when created.",
        required=False,
    )

    timestamp = Int(
        title=u"Creation time",
        description=u"Milliseconds since the epoch, set on create when missing.",
        required=False,
    )

    updated = Int(
        title=u"Update time",
        description=u"Milliseconds since the epoch, set on every update.",
        required=False,
    )

    body = Dict(
        title=u"Body",
        description=u"The free-form payload of the document.",
        key_type=TextLine(),
    )

    def to_state():
        """
        Return a JSON-compatible dictionary of the full document.
        """

    def to_patch():
        """
        Return a JSON-compatible dictionary of the fields that may be
        written by a partial update.

        Locked fields and unset fields are omitted.
        """


class IPager(Interface):
    """
    Caller-held state for a resumable, forward-only scan.

    One pager belongs to one traversal; it is not thread-safe.
    """

    page = Int(
        title=u"The next page to read",
        description=u"1-based; 0 and 1 both mean the first page.",
        min=0,
    )

    limit = Int(
        title=u"The page size",
        min=1,
    )

    count = Int(
        title=u"The number of documents read so far",
        min=0,
    )

    last_key = TextLine(
        title=u"The id of the last document read",
        required=False,
    )

    sortby = TextLine(
        title=u"The column pages are ordered by",
        description=u"Always ``id``.",
        readonly=True,
    )

    def offset():
        """
        Return the number of rows that precede the next page.
        """

    def advance(documents):
        """
        Record that the list of *documents* was read as the next page.
        """


class ITableLifecycle(Interface):
    """
    Provisioning of the physical table that holds a tenant's documents.
    """

    def table_exists(tenant):
        """
        Answer whether the tenant's table exists.

        Never raises; errors are logged and answered with False.
        """

    def create_table(tenant):
        """
        Create the tenant's table.

        Returns False without doing anything if *tenant* is blank,
        contains whitespace, or the table already exists. Returns True
        when the table was created.
        """

    def delete_table(tenant):
        """
        Drop the tenant's table.

        Returns False if *tenant* is blank or the table does not exist.
        Otherwise returns True, even if dropping failed.
        """


class ITenantStore(ITableLifecycle):
    """
    The document contract presented to callers.

    Every *tenant* argument may be None, meaning the root tenant.
    """

    options = Attribute("The :class:`tenantstore.options.Options` in use.")

    def create(tenant, document):
        """
        Store *document* (replacing any document with the same id)
        and return its id.
        """

    def read(tenant, document_id):
        """
        Return the document with the given id, merged with any pending
        update, or None.
        """

    def update(tenant, document):
        """
        Record a partial update of the document with the same id.
        """

    def delete(tenant, document):
        """
        Remove the document with the same id.
        """

    def create_all(tenant, documents):
        "Store each of *documents* in one batch."

    def read_all(tenant, document_ids):
        """
        Return an ordered mapping from id to document, in the order of
        *document_ids*. Missing ids are omitted.
        """

    def update_all(tenant, documents):
        "Record a partial update of each of *documents* in one batch."

    def delete_all(tenant, documents):
        "Remove each of *documents* in one batch."

    def read_page(tenant, pager=None):
        """
        Read the next page of the tenant's documents, ordered by id,
        and advance *pager*.
        """

    def on_tenant_created(tenant):
        """
        Hook for the surrounding application; creates the tenant's table.
        """

    def on_tenant_deleted(tenant):
        """
        Hook for the surrounding application; drops the tenant's table.
        """

    def close():
        """
        Release the connection pool.
        """
