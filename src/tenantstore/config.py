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
"""ZConfig directive implementations for configuring a TenantStore"""

from tenantstore.options import Options
from tenantstore.store import TenantStore

logger = __import__('logging').getLogger(__name__)


class BaseConfig(object):

    def __init__(self, config):
        self.config = config
        self.name = config.getSectionName()


class TenantStoreFactory(BaseConfig):
    """Open a store configured via ZConfig"""

    def create_options(self):
        # Keys that aren't given are None and keep the defaults.
        return Options.copy_valid_options(self.config)

    def open(self):
        options = self.create_options()
        logger.debug("Opening store %r with %s", self.name, options)
        return TenantStore(options)
