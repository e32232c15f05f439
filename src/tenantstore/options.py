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

from tenantstore._util import get_boolean_from_environ
from tenantstore._util import get_positive_integer_from_environ

#: The process-wide default for ``fail_on_write_errors``.
FAIL_ON_WRITE_ERRORS = get_boolean_from_environ(
    'TS_FAIL_ON_WRITE_ERRORS',
    False
)

#: The process-wide default for ``pool_size``.
POOL_SIZE = get_positive_integer_from_environ(
    'TS_POOL_SIZE',
    5
)


class Options(object):
    """Options for configuring a :class:`tenantstore.store.TenantStore`.

    These parameters can be provided as keyword options in the
    :class:`.TenantStore` constructor. For example::

        store = TenantStore(url='sqlite:////var/db/docs.sqlite3',
                            fail_on_write_errors=True)

    Alternatively, the constructor accepts an *options* parameter,
    which should be an Options instance.
    """

    ###
    # The endpoint
    ###

    #: The endpoint URL, such as ``mysql://host:3306/docs`` or
    #: ``sqlite:////path/to/file.db``. Required.
    url = None
    #: The DB-API driver to use. ``auto`` picks the best available driver
    #: for the URL's database; a registered driver name (``PyMySQL``,
    #: ``psycopg2``...) picks that driver; any other value is taken as the
    #: dotted name of an importable DB-API module. Required.
    driver = 'auto'
    #: Database user. Overrides any user given in the URL.
    user = None
    #: Database password. Overrides any password given in the URL.
    password = None
    #: Extra keyword arguments passed to the driver's ``connect``.
    connect_args = None

    ###
    # Behaviour
    ###

    #: Re-raise failed create/update/delete batches as
    #: :class:`tenantstore.adapters.interfaces.WriteError` instead of
    #: logging and returning.
    fail_on_write_errors = FAIL_ON_WRITE_ERRORS
    #: The identifier of the root tenant. Its table is created when
    #: the first connection is made and its name is never prefixed.
    root_tenant = 'app'
    #: The namespace token prefixed to every other tenant's table name.
    table_prefix = 'para'
    #: Create the root tenant's table during the first connection?
    create_root_table = True
    #: Register an :mod:`atexit` hook that disposes of the pool?
    register_exit_hook = True

    ###
    # Pooling
    ###

    #: The number of connections kept open in the pool.
    pool_size = POOL_SIZE
    #: How many connections beyond ``pool_size`` may be opened at once.
    max_overflow = 10
    #: Seconds to wait for a pooled connection before giving up.
    pool_timeout = 30.0
    #: Recycle connections after this many seconds. -1 disables.
    pool_recycle = -1

    def __init__(self, **kwoptions):
        for key, value in kwoptions.items():
            if not hasattr(self, key):
                raise TypeError("Unknown parameter: %s (Known: %s)" % (
                    key,
                    self.valid_option_names()
                ))
            setattr(self, key, value)

    @classmethod
    def copy_valid_options(cls, other_options):
        """
        Produce a new options featuring only the valid settings from
        *other_options*.
        """
        option_dict = {}
        for key in cls.valid_option_names():
            value = getattr(other_options, key, None)
            if value is not None:
                option_dict[key] = value
        return cls(**option_dict)

    @classmethod
    def valid_option_names(cls):
        return sorted(
            x
            for x in vars(cls)
            if not callable(getattr(cls, x)) and not x.startswith('_')
        )

    def __repr__(self):
        opts = []
        for k, v in sorted(self.__dict__.items()):
            if k == 'password' and v:
                v = '<hidden>'
            opt = '%s=%r' % (k, v)
            opts.append(opt)
        opts = ', '.join(opts)
        return 'tenantstore.options.Options(%s)' % (opts,)

    def __eq__(self, other):
        if not isinstance(other, Options):
            return NotImplemented
        return all(getattr(self, key) == getattr(other, key)
                   for key in self.valid_option_names())

    def __hash__(self):
        # Values such as connect_args may be unhashable.
        return 42

    def copy(self, **kw):
        """
        Produce a copy of these options, with keyword arguments overriding.
        """
        options = dict(self.__dict__)
        options.update(kw)
        return self.__class__(**options)
