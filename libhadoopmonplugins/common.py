#!/usr/bin/env python3
#
# InnoGames Monitoring Plugins Library
#
# Copyright (c) 2016, InnoGames GmbH
#
# Permission is hereby granted, free of charge, to any person obtaining a copy
# of this software and associated documentation files (the "Software"), to deal
# in the Software without restriction, including without limitation the rights
# to use, copy, modify, merge, publish, distribute, sublicense, and/or sell
# copies of the Software, and to permit persons to whom the Software is
# furnished to do so, subject to the following conditions:
#
# The above copyright notice and this permission notice shall be included in
# all copies or substantial portions of the Software.
#
# THE SOFTWARE IS PROVIDED "AS IS", WITHOUT WARRANTY OF ANY KIND, EXPRESS OR
# IMPLIED, INCLUDING BUT NOT LIMITED TO THE WARRANTIES OF MERCHANTABILITY,
# FITNESS FOR A PARTICULAR PURPOSE AND NONINFRINGEMENT.  IN NO EVENT SHALL
# THE AUTHORS OR COPYRIGHT HOLDERS BE LIABLE FOR ANY CLAIM, DAMAGES OR OTHER
# LIABILITY, WHETHER IN AN ACTION OF CONTRACT, TORT OR OTHERWISE, ARISING FROM,
# OUT OF OR IN CONNECTION WITH THE SOFTWARE OR THE USE OR OTHER DEALINGS IN
# THE SOFTWARE.
#

import re
import signal
import sys
from argparse import ArgumentParser
from collections import namedtuple
from enum import Enum


def exit(exit_code=None, message=''):
    """Exit procedure for the check commands"""

    if exit_code is None:
        exit_code = ExitCodes.UNKNOWN

    # People tend to interpret UNKNOWN status in different ways.
    # We are including a default message to avoid confusion.  When
    # there are specific problems, errors, the message should be
    # set.
    if exit_code == ExitCodes.UNKNOWN and not message:
        message = 'Nothing could be checked'

    print('{}: {}'.format(exit_code.name, message))
    sys.exit(exit_code.value)


class ExitCodes(Enum):
    """Nagios exit codes"""
    OK = 0
    WARNING = 1
    CRITICAL = 2
    UNKNOWN = 3


def worst(*codes):
    """Return the most severe of the given exit codes"""
    return max(codes, key=lambda c: c.value)


class PluginError(Exception):
    """Base for all errors which terminate a check

    Every subclass carries the exit code the check should end with.
    """
    exit_code = ExitCodes.UNKNOWN


class UsageError(PluginError):
    """Bad or conflicting command line input"""


class ConnectionFailedError(PluginError):
    exit_code = ExitCodes.CRITICAL


class EmptyResponseError(PluginError):
    exit_code = ExitCodes.CRITICAL


class ParseError(PluginError):
    """The monitored service returned output in an unexpected format"""


class FieldMissingError(ParseError):
    def __init__(self, field, source):
        super().__init__(
            'failed to find {} in {} output'.format(field, source)
        )
        self.field = field


class Timeout(PluginError):
    def __init__(self, seconds):
        super().__init__('self timed out after {} seconds'.format(seconds))


class PluginArgumentParser(ArgumentParser):
    """ArgumentParser that reports errors with the UNKNOWN exit code

    Plain argparse exits with 2 on bad input, which Nagios would read as
    CRITICAL.
    """

    def error(self, message):
        raise UsageError(message)


def run_with_timeout(seconds, func, *args, **kwargs):
    """Run func, aborting with Timeout after the given number of seconds"""

    def timeout_handler(signum, frame):
        raise Timeout(seconds)

    previous = signal.signal(signal.SIGALRM, timeout_handler)
    signal.alarm(seconds)
    try:
        return func(*args, **kwargs)
    finally:
        signal.alarm(0)
        signal.signal(signal.SIGALRM, previous)


class UpperBound(namedtuple('UpperBound', ['upper'])):
    """Alert when the value rises above upper"""
    __slots__ = ()
    lower = None

    def breached(self, value):
        return value > self.upper

    def __str__(self):
        return '<= {}'.format(self.upper)


class LowerBound(namedtuple('LowerBound', ['lower'])):
    """Alert when the value falls below lower"""
    __slots__ = ()
    upper = None

    def breached(self, value):
        return value < self.lower

    def __str__(self):
        return '>= {}'.format(self.lower)


class Range(namedtuple('Range', ['lower', 'upper'])):
    """Alert when the value leaves the inclusive range"""
    __slots__ = ()

    def breached(self, value):
        return value < self.lower or value > self.upper

    def __str__(self):
        return '{}:{}'.format(self.lower, self.upper)


class Thresholds(namedtuple('Thresholds', ['warning', 'critical'])):
    """Pair of optional bounds, critical takes precedence"""
    __slots__ = ()

    def evaluate(self, value):
        if self.critical is not None and self.critical.breached(value):
            return ExitCodes.CRITICAL
        if self.warning is not None and self.warning.breached(value):
            return ExitCodes.WARNING
        return ExitCodes.OK


# Negative numbers are not accepted by any of the checks
THRESHOLD_RE = re.compile(
    r'^(?P<lower>\d+(?:\.\d+)?)?(?P<colon>:)?(?P<upper>\d+(?:\.\d+)?)?$'
)


def parse_threshold(string, simple='upper', integer=False, name='threshold'):
    """Parse a Nagios style threshold

    Accepted forms are "N", "N:M", "N:" and ":M".  A plain number is
    taken as an upper or a lower bound depending on `simple`, a range is
    inclusive and alerts when the value leaves it.  Returns None for an
    empty string.
    """
    if string is None or not string.strip():
        return None

    string = string.strip()
    match = THRESHOLD_RE.match(string)
    if not match or not (match.group('lower') or match.group('upper')):
        raise UsageError(
            'invalid {} threshold "{}", must be a non-negative number or '
            'ran:ge'.format(name, string)
        )
    if integer and '.' in string:
        raise UsageError(
            'invalid {} threshold "{}", must be an integer'
            .format(name, string)
        )

    lower = _cast_number(match.group('lower'))
    upper = _cast_number(match.group('upper'))

    if not match.group('colon'):
        if simple == 'lower':
            return LowerBound(lower)
        return UpperBound(lower)
    if lower is None:
        return UpperBound(upper)
    if upper is None:
        return LowerBound(lower)
    if lower > upper:
        raise UsageError(
            'invalid {} threshold "{}", lower bound cannot be greater than '
            'upper bound'.format(name, string)
        )
    return Range(lower, upper)


def _cast_number(string):
    if string is None:
        return None
    if '.' in string:
        return float(string)
    return int(string)


UNIT_POWERS = {
    'B': 0,
    'KB': 1,
    'MB': 2,
    'GB': 3,
    'TB': 4,
    'PB': 5,
}


def expand_units(value, unit, name='value'):
    """Convert a value with a 1024 based unit like "MB" to bytes"""
    try:
        power = UNIT_POWERS[unit.upper()]
    except KeyError:
        raise ParseError(
            'unrecognized unit "{}" for {}'.format(unit, name)
        ) from None

    return float(value) * 1024 ** power


def format_perfdata(label, value, unit='', warning='', critical='',
                    minimum='', maximum=''):
    """Format a single Nagios performance data token

    Labels with anything but word characters are quoted and trailing empty
    fields are dropped.
    """
    if re.search(r'\W', label):
        label = "'{}'".format(label)

    fields = [
        '{}{}'.format(value, unit),
        _format_optional(warning),
        _format_optional(critical),
        _format_optional(minimum),
        _format_optional(maximum),
    ]
    while fields[-1] == '':
        fields.pop()

    return '{}={}'.format(label, ';'.join(fields))


def _format_optional(value):
    if value is None:
        return ''
    return str(value)
