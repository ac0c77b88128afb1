"""Pytest configuration and shared fixtures for Mortimer tests.

Provides an auto-use fixture that keeps MORTIMER_* environment variables
from leaking into tests, and sample diagnostic bundle directories.
"""

import pytest


MEMCACHED_LOG = """\
memcached header line 1
memcached header line 2
memcached header line 3
memcached header line 4
2016-04-14T16:10:09.463447-07:00 WARNING conn_count=5
2016-04-14T16:10:10.000001-07:00 NOTICE bucket "default" mem_used=100 items=3
this line has no timestamp prefix
2016-04-14T16:10:11.000002-07:00 WARNING conn_count=7
"""

BABYSITTER_LOG = """\
babysitter header line 1
babysitter header line 2
babysitter header line 3
babysitter header line 4
[ns_server:debug,2016-04-14T16:10:05.262-07:00,babysitter_of_ns_1@127.0.0.1:<0.65.0>:restartable:start_child:98]Started child process <0.66.0>
  MFA: {supervisor_cushion,start_link,
                           [ns_server,5000,infinity,ns_port_server,start_link,
                            [#Fun<ns_child_ports_sup.2.49698737>]]}
[ns_server:info,2016-04-14T16:10:06.100-07:00,babysitter_of_ns_1@127.0.0.1:<0.70.0>:ns_port_server:log:210]ns_server<0.70.0>: stats {uptime = 42, conns = 3}
"""

HTTP_ACCESS_LOG = """\
172.23.123.146 - Administrator [14/Apr/2016:16:10:19 -0700] "GET /nodes/self HTTP/1.1" 200 1727
"""


@pytest.fixture(autouse=True)
def isolate_environment(monkeypatch):
    """Auto-use fixture that clears Mortimer environment variables for each test."""
    for key in ('MORTIMER_WORKERS', 'MORTIMER_QUEUE_SIZE', 'MORTIMER_LOG_LEVEL'):
        monkeypatch.delenv(key, raising=False)
    yield


def write_file(path, content: str):
    with open(path, 'w') as f:
        f.write(content)
    return str(path)


@pytest.fixture
def node_dir(tmp_path):
    """A bundle directory for one node with known, skipped and unknown files."""
    node = tmp_path / 'node1'
    node.mkdir()
    write_file(node / 'memcached.log', MEMCACHED_LOG)
    write_file(node / 'ns_server.babysitter.log', BABYSITTER_LOG)
    write_file(node / 'ns_server.http_access.log', HTTP_ACCESS_LOG)
    write_file(node / 'unknown.log', 'whatever\n')
    write_file(node / 'notes.txt', 'not a log\n')
    return str(node)


@pytest.fixture
def bundle_dirs(tmp_path):
    """Several node directories with the same file names and different values."""
    dirs = []
    for i in range(1, 5):
        node = tmp_path / f'node{i}'
        node.mkdir()
        write_file(node / 'memcached.log', MEMCACHED_LOG.replace('conn_count=7', f'conn_count={i * 10}'))
        write_file(node / 'ns_server.babysitter.log', BABYSITTER_LOG)
        dirs.append(str(node))
    return dirs


@pytest.fixture
def out_dir(tmp_path):
    path = tmp_path / 'out'
    path.mkdir()
    return str(path)