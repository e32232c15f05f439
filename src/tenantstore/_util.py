# -*- coding: utf-8 -*-
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
Environment settings, timing and metrics helpers.
"""
import os
import time

import logging

from ZConfig.datatypes import asBoolean
from ZConfig.datatypes import integer
from ZConfig.datatypes import RangeCheckedConversion
from ZConfig.datatypes import stock_datatypes

from perfmetrics import metricmethod
from perfmetrics import Metric

from tenantstore._compat import wraps
from tenantstore._compat import perf_counter
from tenantstore._compat import IN_TESTRUNNER

_logger = logging.getLogger('tenantstore')
perf_logger = _logger.getChild('timing')

__all__ = [
    'get_duration_from_environ',
    'get_positive_integer_from_environ',
    'get_boolean_from_environ',

    'log_timed',
    'metricmethod',
    'metricmethod_sampled',
    'parse_boolean',
    'timestamp_millis',
]

positive_integer = RangeCheckedConversion(integer, min=1)
non_negative_float = RangeCheckedConversion(float, min=0)


def _setting_from_environ(converter, environ_name, default, logger):
    if environ_name not in os.environ:
        return default
    env_val = os.environ[environ_name]
    try:
        result = converter(env_val)
    except (ValueError, TypeError):
        logger.exception("Ignoring invalid value %r for environment key %r",
                         env_val, environ_name)
        return default
    logger.debug("Using %r from environment key %r (default %r)",
                 result, environ_name, default)
    return result


def get_positive_integer_from_environ(environ_name, default, logger=_logger):
    return _setting_from_environ(positive_integer, environ_name, default, logger)


def parse_boolean(val):
    if isinstance(val, bool):
        return val
    if val in ('0', '1'):
        return val == '1'
    return asBoolean(val)


def get_boolean_from_environ(environ_name, default, logger=_logger):
    return _setting_from_environ(parse_boolean, environ_name, default, logger)


def _seconds(val):
    # ZConfig's time-interval only takes whole units.
    if any(c in val for c in ' wdhms'):
        return stock_datatypes['timedelta'](val).total_seconds()
    return float(val)


def get_duration_from_environ(environ_name, default, logger=_logger):
    """
    Return a floating-point number of seconds from the environment *environ_name*,
    or *default*.

    Examples: ``1.24s``, ``3m``, ``1m 3.6s``::

        >>> import os
        >>> os.environ['TS_TEST_VAL'] = '2.3'
        >>> get_duration_from_environ('TS_TEST_VAL', None)
        2.3
        >>> os.environ['TS_TEST_VAL'] = '5.4s'
        >>> get_duration_from_environ('TS_TEST_VAL', None)
        5.4
        >>> os.environ['TS_TEST_VAL'] = 'Invalid' # No time specifier
        >>> get_duration_from_environ('TS_TEST_VAL', 42)
        42
        >>> del os.environ['TS_TEST_VAL']
    """
    return _setting_from_environ(_seconds, environ_name, default, logger)


def timestamp_millis(now=None):
    """
    Return the integer number of milliseconds since the epoch for
    *now* (a float of seconds, defaulting to the current time).
    """
    if now is None:
        now = time.time()
    return int(now * 1000)


###
# Timing
###

#: ``(minimum seconds, level)``, slowest first. A call that
#: takes at least the minimum is logged at that level. Each can be
#: changed with ``TS_PERF_LOG_<LEVEL>_MIN``.
LOG_TIMED_THRESHOLDS = sorted(
    (
        (get_duration_from_environ('TS_PERF_LOG_%s_MIN' % logging.getLevelName(level),
                                   default, logger=perf_logger),
         level)
        for level, default in (
            (logging.DEBUG, 1.0),
            (logging.INFO, 3.0),
            (logging.WARNING, 10.0),
            (logging.ERROR, 30.0),
        )
    ),
    reverse=True
)

# Calls logged at or above this level include their arguments.
LOG_TIMED_ARGS_LEVEL = logging.getLevelName(
    _setting_from_environ(str.upper, 'TS_PERF_LOG_DETAILS_LEVEL', 'WARNING',
                          logger=perf_logger)
)

# Read once, when decorating.
LOG_TIMED_ENABLED = get_boolean_from_environ(
    'TS_PERF_LOG_ENABLE',
    True,
    logger=perf_logger,
)


def _level_for_duration(duration):
    for minimum, level in LOG_TIMED_THRESHOLDS:
        if duration >= minimum:
            return level
    return None


def log_timed(func):
    """
    Log calls to *func* that are slow, on the ``timing`` child
    logger of its module.
    """
    if not LOG_TIMED_ENABLED:
        return func

    log = logging.getLogger(func.__module__).getChild('timing')

    @wraps(func)
    def timed(*args, **kwargs):
        begin = perf_counter()
        try:
            return func(*args, **kwargs)
        finally:
            duration = perf_counter() - begin
            level = _level_for_duration(duration)
            if level is not None and log.isEnabledFor(level):
                if isinstance(LOG_TIMED_ARGS_LEVEL, int) and level >= LOG_TIMED_ARGS_LEVEL:
                    log.log(level, "Function %s took %.3fs (args=%r kwargs=%r)",
                            func.__name__, duration, args, kwargs)
                else:
                    log.log(level, "Function %s took %.3fs", func.__name__, duration)

    return timed


###
# Metrics
###

METRIC_SAMPLE_RATE = _setting_from_environ(
    non_negative_float, 'TS_PERF_STATSD_SAMPLE_RATE', 0.1,
    logger=perf_logger)

metricmethod_sampled = Metric(method=True, rate=METRIC_SAMPLE_RATE)

if IN_TESTRUNNER and os.environ.get('TS_TEST_DISABLE_METRICS'):
    # Metric wrappers clutter tracebacks and debugger stepping.
    metricmethod = metricmethod_sampled = lambda f: f
