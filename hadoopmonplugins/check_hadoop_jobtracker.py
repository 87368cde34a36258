#!/usr/bin/env python3
"""InnoGames Monitoring Plugins - Hadoop JobTracker Check

This check queries the web status pages of a Hadoop MapReduce JobTracker
and runs in one of three modes:

1. Available MapReduce nodes and blacklisted nodes (default).  Any
   blacklisted node raises critical.  Optional thresholds set the minimum
   number of available nodes (default 0, disabled).
2. Nodes missing from the active machines list when a node list is given.
   Optional thresholds set the maximum number of missing nodes (default 0,
   critical on any missing node).
3. JobTracker heap % used.  Optional % thresholds may be supplied.

The page parsing was written against Apache Hadoop 0.20.2.  If the pages
change across versions the check returns UNKNOWN.

Examples:
    Cluster summary, critical below 10 available nodes:
    ./check_hadoop_jobtracker.py -H jobtracker --critical 10

    Make sure the given nodes are active:
    ./check_hadoop_jobtracker.py -H jobtracker -n node1,node2 node3

    Heap usage:
    ./check_hadoop_jobtracker.py -H jobtracker --heap-usage -w 80 -c 90

Copyright (c) 2024 InnoGames GmbH
"""
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

import logging
import re
import sys
from argparse import ArgumentDefaultsHelpFormatter, Namespace
from collections import namedtuple
from enum import Enum
from typing import Optional, Sequence, Tuple

import requests
import validators

from hadoopmonplugins import __version__
from libhadoopmonplugins.common import (
    ConnectionFailedError,
    EmptyResponseError,
    ExitCodes,
    FieldMissingError,
    PluginArgumentParser,
    PluginError,
    Thresholds,
    UpperBound,
    UsageError,
    exit,
    expand_units,
    format_perfdata,
    parse_threshold,
    run_with_timeout,
    worst,
)

logging.basicConfig(
    format='%(levelname)-8s [%(filename)s:%(lineno)d] %(message)s',
)
logger = logging.getLogger(__name__)

PROGRAM = 'check_hadoop_jobtracker'
USER_AGENT = 'InnoGames {} version {}'.format(PROGRAM, __version__)
DEFAULT_PORT = 50030
DEFAULT_TIMEOUT = 10

# Only for constraining the size of the printed output
MAX_NODES_TO_DISPLAY_AS_ACTIVE = 5
MAX_NODES_TO_DISPLAY_AS_MISSING = 30

# Any syntactically valid domain, used when --domain is not given
DOMAIN_PATTERN = (
    r'(?:[A-Za-z0-9](?:[A-Za-z0-9-]*[A-Za-z0-9])?\.)*[A-Za-z]{2,}'
)


class CheckMode(Enum):
    NODES = 'nodes'
    HEAP = 'heap'
    CLUSTER_SUMMARY = 'cluster_summary'


URL_PATHS = {
    CheckMode.NODES: 'machines.jsp?type=active',
    CheckMode.HEAP: 'jobtracker.jsp',
    CheckMode.CLUSTER_SUMMARY: 'jobtracker.jsp',
}

# How plain threshold numbers are read and what the defaults are.  Missing
# nodes and heap usage alert above the bound, available nodes below it.
# Heap thresholds stay undefined when not given.
ThresholdRule = namedtuple('ThresholdRule', ['simple', 'integer', 'default'])
THRESHOLD_RULES = {
    CheckMode.NODES: ThresholdRule('upper', True, '0'),
    CheckMode.HEAP: ThresholdRule('upper', False, None),
    CheckMode.CLUSTER_SUMMARY: ThresholdRule('lower', True, '0'),
}

Config = namedtuple('Config', [
    'host', 'port', 'mode', 'nodes', 'domain', 'thresholds', 'timeout',
    'verbose',
])

NodesResult = namedtuple('NodesResult', [
    'checked', 'missing', 'missing_nodes', 'found_nodes',
])

HeapStats = namedtuple('HeapStats', [
    'heap_used', 'heap_used_units', 'heap_max', 'heap_max_units',
    'heap_used_bytes', 'heap_max_bytes', 'heap_used_pct',
])

ClusterSummary = namedtuple('ClusterSummary', [
    'maps', 'reduces', 'total_submissions', 'nodes', 'map_task_capacity',
    'reduce_task_capacity', 'avg_tasks_node', 'blacklisted_nodes',
])

HEAP_RE = re.compile(
    r'Cluster Summary \(Heap Size is (\d+(?:\.\d+)?) (.B)/'
    r'(\d+(?:\.\d+)?) (.B)\)',
    re.IGNORECASE,
)

CLUSTER_SUMMARY_RE = re.compile(
    r'<tr><th>Maps</th><th>Reduces</th><th>Total Submissions</th>'
    r'<th>Nodes</th><th>Map Task Capacity</th><th>Reduce Task Capacity</th>'
    r'<th>Avg\. Tasks/Node</th><th>Blacklisted Nodes</th></tr>\n'
    r'<tr><td>(\d+)</td><td>(\d+)</td><td>(\d+)</td>'
    r'<td><a href="machines\.jsp\?type=active">(\d+)</a></td>'
    r'<td>(\d+)</td><td>(\d+)</td><td>(\d+(?:\.\d+)?)</td>'
    r'<td><a href="machines\.jsp\?type=blacklisted">(\d+)</a></td></tr>',
    re.IGNORECASE,
)


def build_parser(prog: Optional[str] = None) -> PluginArgumentParser:
    """Setup CLI interface"""
    parser = PluginArgumentParser(
        prog=prog,
        formatter_class=ArgumentDefaultsHelpFormatter,
        description='Check a Hadoop MapReduce cluster through its JobTracker',
    )
    parser.add_argument('-H', '--host', help='JobTracker to connect to')
    parser.add_argument(
        '-P', '--port', type=int, default=DEFAULT_PORT,
        help='JobTracker port to connect to',
    )
    parser.add_argument(
        '-n', '--nodes',
        help='list of nodes to check are alive in the JobTracker, '
        'positional arguments are appended to this list for convenience',
    )
    parser.add_argument(
        'extra_nodes', nargs='*', metavar='node',
        help='more nodes to check',
    )
    parser.add_argument(
        '--heap-usage', action='store_true',
        help='check JobTracker Heap %% Used, optional %% thresholds may be '
        'supplied for warning and/or critical',
    )
    parser.add_argument(
        '--domain',
        help='domain suffix allowed after the node names in the active '
        'machines list, any domain is allowed if omitted',
    )
    parser.add_argument(
        '-w', '--warning',
        help='warning threshold or ran:ge (inclusive) for min number of '
        'available nodes, max missing nodes if a node list is given or '
        'max heap %% used (defaults to 0, heap usage has no default)',
    )
    parser.add_argument(
        '-c', '--critical',
        help='critical threshold or ran:ge (inclusive) for min number of '
        'available nodes, max missing nodes if a node list is given or '
        'max heap %% used (defaults to 0, heap usage has no default)',
    )
    parser.add_argument(
        '-t', '--timeout', type=int, default=DEFAULT_TIMEOUT,
        help='timeout in seconds for the whole check',
    )
    parser.add_argument(
        '-v', '--verbose', action='count', default=0,
        help='set the script verbosity, could be used multiple',
    )
    parser.add_argument(
        '-V', '--version', action='version',
        version='%(prog)s version {}'.format(__version__),
    )

    return parser


def main(argv: Optional[Sequence[str]] = None, require_nodes: bool = False):
    """Main entry point"""
    parser = build_parser(PROGRAM if not require_nodes
                          else 'check_hadoop_mapreduce_nodes_active')
    try:
        args = parser.parse_args(argv)
        log_levels = [
            logging.CRITICAL, logging.WARN, logging.INFO, logging.DEBUG,
        ]
        logger.setLevel(log_levels[min(args.verbose, 3)])
        config = build_config(args, require_nodes)
        status, message = run_with_timeout(config.timeout, run_check, config)
    except UsageError as e:
        parser.print_usage(sys.stderr)
        status, message = e.exit_code, str(e)
    except PluginError as e:
        status, message = e.exit_code, str(e)

    exit(status, message)


def select_mode(nodes: Optional[str], extra_nodes: Sequence[str],
                heap: bool, require_nodes: bool = False) -> CheckMode:
    """Decide which of the mutually exclusive checks to run"""
    has_nodes = nodes is not None or bool(extra_nodes)
    if require_nodes and not has_nodes:
        raise UsageError('node list not specified')
    if has_nodes and heap:
        raise UsageError('cannot specify both --nodes and --heap-usage')
    if has_nodes:
        return CheckMode.NODES
    if heap:
        return CheckMode.HEAP
    return CheckMode.CLUSTER_SUMMARY


def build_config(args: Namespace, require_nodes: bool = False) -> Config:
    """Validate the parsed arguments and freeze them into a Config"""
    if not args.host:
        raise UsageError('JobTracker host not specified')
    mode = select_mode(args.nodes, args.extra_nodes, args.heap_usage,
                       require_nodes)
    host = validate_host(args.host, 'JobTracker host')
    if not 1 <= args.port <= 65535:
        raise UsageError(
            'invalid port "{}", must be between 1 and 65535'.format(args.port)
        )
    if args.timeout < 1:
        raise UsageError('timeout must be a positive number of seconds')

    nodes = ()
    if mode is CheckMode.NODES:
        nodes = merge_nodes(args.nodes, args.extra_nodes)
        if not nodes:
            raise UsageError('node list empty')
        for node in nodes:
            validate_host(node, 'Node name')
        logger.info('nodes: {}'.format(','.join(nodes)))

    config = Config(
        host=host,
        port=args.port,
        mode=mode,
        nodes=nodes,
        domain=args.domain,
        thresholds=build_thresholds(mode, args.warning, args.critical),
        timeout=args.timeout,
        verbose=args.verbose,
    )
    logger.debug('Config is {}'.format(config))

    return config


def validate_host(host: str, name: str) -> str:
    """Make sure host is a hostname, FQDN or IP address"""
    if not validators.hostname(host, may_have_port=False):
        raise UsageError(
            '{} "{}" invalid, must be hostname/FQDN or IP address'
            .format(name, host)
        )
    return host


def merge_nodes(node_list: Optional[str],
                extra_nodes: Sequence[str] = ()) -> Tuple[str, ...]:
    """Split, merge and de-duplicate the node names, keeping their case"""
    nodes = set(re.split(r'[,\s]+', node_list or ''))
    for node in extra_nodes:
        nodes.update(re.split(r'[,\s]+', node))
    nodes.discard('')

    return tuple(sorted(nodes))


def build_thresholds(mode: CheckMode, warning: Optional[str],
                     critical: Optional[str]) -> Thresholds:
    """Parse the threshold options according to the rules of the mode"""
    rule = THRESHOLD_RULES[mode]
    bounds = []
    for name, string in (('warning', warning), ('critical', critical)):
        if string is None:
            string = rule.default
        bound = parse_threshold(
            string, simple=rule.simple, integer=rule.integer, name=name,
        )
        # A zero heap threshold means no threshold
        if (
            mode is CheckMode.HEAP and
            isinstance(bound, UpperBound) and
            not bound.upper
        ):
            bound = None
        bounds.append(bound)

    return Thresholds(*bounds)


def build_url(config: Config) -> str:
    return 'http://{}:{}/{}'.format(
        config.host, config.port, URL_PATHS[config.mode]
    )


def fetch(config: Config) -> str:
    """Query the JobTracker page for the mode and return its body"""
    url = build_url(config)
    logger.info('querying {}'.format(url))
    try:
        response = requests.get(
            url, timeout=config.timeout, headers={'User-Agent': USER_AGENT},
        )
        response.raise_for_status()
    except requests.RequestException as e:
        raise ConnectionFailedError(
            "failed to connect to JobTracker at '{}:{}': {}"
            .format(config.host, config.port, e)
        )

    logger.info('result: {}'.format(response.status_code))
    logger.debug('returned HTML:\n\n{}\n'.format(response.text or '<blank>'))
    if not response.text:
        raise EmptyResponseError(
            "blank content returned by JobTracker at '{}:{}'"
            .format(config.host, config.port)
        )

    return response.text


def run_check(config: Config) -> Tuple[ExitCodes, str]:
    """Fetch, parse, evaluate and report for the configured mode"""
    content = fetch(config)
    logger.info('parsing output from JobTracker')

    if config.mode is CheckMode.NODES:
        result = find_nodes(content, config.nodes, config.domain)
        return (
            evaluate_nodes(result, config.thresholds),
            format_nodes_message(result, config),
        )
    if config.mode is CheckMode.HEAP:
        stats = parse_heap_usage(content)
        return (
            evaluate_heap(stats, config.thresholds),
            format_heap_message(stats, config.thresholds),
        )

    summary = parse_cluster_summary(content)
    return (
        evaluate_cluster_summary(summary, config.thresholds),
        format_cluster_summary_message(summary, config.thresholds),
    )


def node_pattern(node: str, domain: Optional[str] = None):
    """Compile the pattern of a node in the active machines table"""
    if domain:
        domain_pattern = re.escape(domain.lstrip('.'))
    else:
        domain_pattern = DOMAIN_PATTERN
    return re.compile(
        '<td>{}(?:\\.{})?</td>'.format(re.escape(node), domain_pattern)
    )


def find_nodes(content: str, nodes: Sequence[str],
               domain: Optional[str] = None) -> NodesResult:
    """Check which nodes are listed on the active machines page"""
    found_nodes = []
    missing_nodes = []
    for node in sorted(set(nodes)):
        if node_pattern(node, domain).search(content):
            found_nodes.append(node)
        else:
            missing_nodes.append(node)
    logger.info('missing nodes: {}'.format(','.join(missing_nodes)))

    return NodesResult(
        checked=len(found_nodes) + len(missing_nodes),
        missing=len(missing_nodes),
        missing_nodes=tuple(missing_nodes),
        found_nodes=tuple(found_nodes),
    )


def parse_heap_usage(content: str) -> HeapStats:
    """Find the heap usage in the cluster summary heading

    Only the first matching line counts.
    """
    stats = dict.fromkeys(HeapStats._fields)
    for line in content.splitlines():
        match = HEAP_RE.search(line)
        if not match:
            continue
        stats['heap_used'] = float(match.group(1))
        stats['heap_used_units'] = match.group(2)
        stats['heap_max'] = float(match.group(3))
        stats['heap_max_units'] = match.group(4)
        used_bytes = expand_units(
            stats['heap_used'], stats['heap_used_units'], 'Heap Used'
        )
        max_bytes = expand_units(
            stats['heap_max'], stats['heap_max_units'], 'Heap Max'
        )
        stats['heap_used_bytes'] = int(used_bytes)
        stats['heap_max_bytes'] = int(max_bytes)
        # Left unset on a zero max so the check ends up UNKNOWN
        if max_bytes:
            stats['heap_used_pct'] = round(used_bytes / max_bytes * 100, 2)
        break

    return HeapStats(**_require_fields(stats, HeapStats._fields))


def parse_cluster_summary(content: str) -> ClusterSummary:
    """Find the cluster summary table row"""
    stats = dict.fromkeys(ClusterSummary._fields)
    match = CLUSTER_SUMMARY_RE.search(content)
    if match:
        for field, value in zip(ClusterSummary._fields, match.groups()):
            if field == 'avg_tasks_node':
                stats[field] = float(value)
            else:
                stats[field] = int(value)

    return ClusterSummary(**_require_fields(stats, ClusterSummary._fields))


def _require_fields(stats: dict, fields: Sequence[str]) -> dict:
    for field in fields:
        if stats.get(field) is None:
            raise FieldMissingError(field, 'JobTracker')
        logger.info('stats {} = {}'.format(field, stats[field]))

    return stats


def evaluate_nodes(result: NodesResult, thresholds: Thresholds) -> ExitCodes:
    return thresholds.evaluate(result.missing)


def evaluate_heap(stats: HeapStats, thresholds: Thresholds) -> ExitCodes:
    return thresholds.evaluate(stats.heap_used_pct)


def evaluate_cluster_summary(summary: ClusterSummary,
                             thresholds: Thresholds) -> ExitCodes:
    """Evaluate the available nodes, any blacklisted node is critical"""
    status = thresholds.evaluate(summary.nodes)
    if summary.blacklisted_nodes:
        status = worst(status, ExitCodes.CRITICAL)

    return status


def _plural(count: int) -> str:
    return '' if count == 1 else 's'


def format_nodes_message(result: NodesResult, config: Config) -> str:
    """Summarize the node list check, no performance data here"""
    plural = _plural(result.checked)
    if result.missing:
        if result.missing <= MAX_NODES_TO_DISPLAY_AS_MISSING:
            msg = "'{}'".format(','.join(result.missing_nodes))
        else:
            msg = '{}/{} node{}'.format(result.missing, result.checked, plural)
        msg += ' not'
    elif result.checked <= MAX_NODES_TO_DISPLAY_AS_ACTIVE:
        msg = "'{}'".format(','.join(result.found_nodes))
    else:
        msg = '{0}/{0} checked node{1}'.format(result.checked, plural)

    msg += ' found in the active machines list on the JobTracker'

    if config.verbose:
        msg += " at '{}:{}'".format(config.host, config.port)
        if result.missing:
            if result.missing <= MAX_NODES_TO_DISPLAY_AS_MISSING:
                msg += ' ({}/{} checked node{})'.format(
                    result.missing, result.checked, plural
                )
        elif result.checked <= MAX_NODES_TO_DISPLAY_AS_ACTIVE:
            msg += ' ({0}/{0} checked node{1})'.format(result.checked, plural)

    return msg


def format_heap_message(stats: HeapStats, thresholds: Thresholds) -> str:
    msg = (
        'JobTracker Heap {:.2f}% Used ({:.2f} {} used, {:.2f} {} total)'
    ).format(
        stats.heap_used_pct,
        stats.heap_used, stats.heap_used_units,
        stats.heap_max, stats.heap_max_units,
    )
    perfdata = [
        format_perfdata(
            'JobTracker Heap % Used', '{:.2f}'.format(stats.heap_used_pct),
            unit='%',
            warning=_upper(thresholds.warning),
            critical=_upper(thresholds.critical),
            minimum=0,
            maximum=100,
        ),
        format_perfdata(
            'JobTracker Heap Used', stats.heap_used_bytes, unit='B',
        ),
    ]

    return '{} | {}'.format(msg, ' '.join(perfdata))


def format_cluster_summary_message(summary: ClusterSummary,
                                   thresholds: Thresholds) -> str:
    msg = '{} MapReduce nodes available, {} blacklisted nodes'.format(
        summary.nodes, summary.blacklisted_nodes
    )
    perfdata = [
        format_perfdata(
            'MapReduce Nodes', summary.nodes,
            warning=_lower(thresholds.warning),
            critical=_lower(thresholds.critical),
        ),
        format_perfdata('Blacklisted Nodes', summary.blacklisted_nodes),
        format_perfdata('Maps', summary.maps),
        format_perfdata('Reduces', summary.reduces),
        format_perfdata('Total Submissions', summary.total_submissions),
        format_perfdata('Map Task Capacity', summary.map_task_capacity),
        format_perfdata('Reduce Task Capacity', summary.reduce_task_capacity),
        format_perfdata(
            'Avg. Tasks/Node', '{:.2f}'.format(summary.avg_tasks_node)
        ),
    ]

    return '{} | {}'.format(msg, ' '.join(perfdata))


def _upper(bound) -> str:
    if bound is None or not bound.upper:
        return ''
    return str(bound.upper)


def _lower(bound) -> int:
    if bound is None or bound.lower is None:
        return 0
    return bound.lower


if __name__ == '__main__':
    main()
