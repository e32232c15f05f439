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
The document data model and its JSON encoding.

A document is stored as two text columns: ``body`` holds the full
state at the last create, and ``pending_overlay`` holds the fields
written by later partial updates. Reading merges the two.
"""

import json
import uuid

from zope.interface import implementer

from .interfaces import IDocument

__all__ = [
    'Document',
    'LOCKED_FIELDS',
    'deep_merge',
    'decode_state',
    'encode_state',
    'new_id',
]

#: Fields a partial update never writes.
LOCKED_FIELDS = frozenset((
    'id',
    'type',
    'appid',
    'creator_id',
    'timestamp',
))

_FIELDS = (
    'id',
    'type',
    'creator_id',
    'appid',
    'timestamp',
    'updated',
)


def new_id():
    """
    Return a new, random document identifier.
    """
    return uuid.uuid4().hex


def deep_merge(base, overlay):
    """
    Return a new dictionary with *overlay* layered over *base*.

    Nested dictionaries are merged recursively; any other value in
    *overlay* replaces the value in *base*. Neither argument is
    modified.
    """
    result = dict(base)
    for key, value in overlay.items():
        existing = result.get(key)
        if isinstance(existing, dict) and isinstance(value, dict):
            value = deep_merge(existing, value)
        result[key] = value
    return result


def encode_state(state):
    return json.dumps(state, sort_keys=True, separators=(',', ':'))


def decode_state(data):
    if data is None:
        return None
    if isinstance(data, (bytes, bytearray, memoryview)):
        data = bytes(data).decode('utf-8')
    return json.loads(data)


@implementer(IDocument)
class Document(object):
    """
    A document stored in a tenant's table.

    Documents compare equal when all their fields are equal.
    """

    id = None
    type = None
    creator_id = None
    appid = None
    timestamp = None
    updated = None

    def __init__(self, id=None, type=None, creator_id=None, body=None, # pylint:disable=redefined-builtin
                 appid=None, timestamp=None, updated=None):
        self.id = id
        self.type = type
        self.creator_id = creator_id
        self.appid = appid
        self.timestamp = timestamp
        self.updated = updated
        self.body = dict(body) if body else {}

    @classmethod
    def coerce(cls, obj):
        """
        Return *obj* if it is a document, otherwise create a document
        from the mapping *obj*.
        """
        if obj is None or isinstance(obj, cls):
            return obj
        return cls.from_state(obj)

    @classmethod
    def from_state(cls, state):
        state = dict(state)
        kwargs = {k: state.pop(k, None) for k in _FIELDS}
        body = state.pop('body', None)
        if state:
            raise TypeError("Unknown document fields: %s" % (sorted(state),))
        return cls(body=body, **kwargs)

    def to_state(self):
        state = {
            k: getattr(self, k)
            for k in _FIELDS
            if getattr(self, k) is not None
        }
        state['body'] = dict(self.body)
        return state

    def to_patch(self):
        state = self.to_state()
        if not state['body']:
            del state['body']
        return {
            k: v
            for k, v in state.items()
            if k not in LOCKED_FIELDS
        }

    def with_overlay(self, overlay):
        """
        Return a new document with the partial update *overlay*
        merged over this document. Locked fields in *overlay* are ignored.
        """
        overlay = {k: v for k, v in overlay.items() if k not in LOCKED_FIELDS}
        return type(self).from_state(deep_merge(self.to_state(), overlay))

    def __eq__(self, other):
        if not isinstance(other, Document):
            return NotImplemented
        return self.to_state() == other.to_state()

    def __ne__(self, other):
        result = self.__eq__(other)
        if result is NotImplemented:
            return result
        return not result

    __hash__ = None

    def __repr__(self):
        return '<%s id=%r type=%r appid=%r body=%r>' % (
            type(self).__name__,
            self.id, self.type, self.appid, self.body
        )
