from unittest.mock import MagicMock

import pytest

CLUSTER_SUMMARY_TABLE = (
    '<table border="1" cellpadding="5" cellspacing="0">\n'
    '<tr><th>Maps</th><th>Reduces</th><th>Total Submissions</th>'
    '<th>Nodes</th><th>Map Task Capacity</th><th>Reduce Task Capacity</th>'
    '<th>Avg. Tasks/Node</th><th>Blacklisted Nodes</th></tr>\n'
    '<tr><td>{maps}</td><td>{reduces}</td><td>{submissions}</td>'
    '<td><a href="machines.jsp?type=active">{nodes}</a></td>'
    '<td>{map_capacity}</td><td>{reduce_capacity}</td>'
    '<td>{avg_tasks}</td>'
    '<td><a href="machines.jsp?type=blacklisted">{blacklisted}</a></td>'
    '</tr>\n'
    '</table>\n'
)

JOBTRACKER_PAGE = (
    '<html>\n'
    '<head>\n'
    '<title>jobtracker Hadoop Map/Reduce Administration</title>\n'
    '</head>\n'
    '<body>\n'
    '<h1>jobtracker Hadoop Map/Reduce Administration</h1>\n'
    '<b>State:</b> RUNNING<br>\n'
    '<b>Version:</b> 0.20.2, r911707<br>\n'
    '<hr>\n'
    '<h2>Cluster Summary (Heap Size is {heap})</h2>\n'
    '{table}'
    '<hr>\n'
    '</body>\n'
    '</html>\n'
)

MACHINES_PAGE = (
    '<html>\n'
    '<head><title>jobtracker Hadoop Machine List</title></head>\n'
    '<body>\n'
    '<h1>jobtracker Hadoop Machine List</h1>\n'
    '<h2>Task Trackers</h2>\n'
    '<table border="1" cellpadding="5" cellspacing="0">\n'
    '<tr><td><b>Name</b></td><td><b>Host</b></td>'
    '<td><b># running tasks</b></td></tr>\n'
    '{rows}'
    '</table>\n'
    '</body>\n'
    '</html>\n'
)

MACHINES_ROW = (
    '<tr><td><a href="http://{host}:50060/">tracker_{host}:localhost/'
    '127.0.0.1:41234</a></td><td>{host}</td><td>0</td></tr>\n'
)


@pytest.fixture()
def jobtracker_page():
    """Build a JobTracker front page like Hadoop 0.20.2 renders it"""

    def build(heap='3.4 GB/8.0 GB', maps=3, reduces=2, submissions=5,
              nodes=12, map_capacity=20, reduce_capacity=10,
              avg_tasks='1.25', blacklisted=0, table=None):
        if table is None:
            table = CLUSTER_SUMMARY_TABLE.format(
                maps=maps, reduces=reduces, submissions=submissions,
                nodes=nodes, map_capacity=map_capacity,
                reduce_capacity=reduce_capacity, avg_tasks=avg_tasks,
                blacklisted=blacklisted,
            )
        return JOBTRACKER_PAGE.format(heap=heap, table=table)

    return build


@pytest.fixture()
def machines_page():
    """Build the active machines page listing the given hosts"""

    def build(*hosts):
        rows = ''.join(MACHINES_ROW.format(host=host) for host in hosts)
        return MACHINES_PAGE.format(rows=rows)

    return build


@pytest.fixture()
def mock_response():
    """Build a requests.Response-like object"""

    def build(text, status_code=200):
        response = MagicMock()
        response.text = text
        response.status_code = status_code
        response.raise_for_status = MagicMock()
        return response

    return build
