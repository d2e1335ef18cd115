# tests/conftest.py
import threading
from contextlib import contextmanager

import pytest

from kubeboot.config.models import ClusterConfig, HostConfig, VersionConfig
from kubeboot.ssh.connection import SSHCommandError
from kubeboot.state import ClusterContext, State


# ------------------------------------------------------------------------------
# Fakes for SSH sessions (no network, records everything)
# ------------------------------------------------------------------------------

class FakeConnection:
    """
    Stand-in for SSHConnection. ``responses`` maps a command substring to the
    (stdout, stderr, rc) that exec() returns for it; anything else succeeds.
    """

    def __init__(self, host, responses=None, remote_files=None, fail_writes=None):
        self.host = host
        self.responses = responses or {}
        self.remote_files = remote_files or {}
        self.fail_writes = fail_writes or set()
        self.commands = []
        self.files = {}
        self.modes = {}
        self.closed = False

    def exec(self, cmd, *, sudo=False):
        self.commands.append((cmd, sudo))
        for needle, resp in self.responses.items():
            if needle in cmd:
                return resp
        return ("", "", 0)

    def run(self, cmd, *, sudo=False):
        out, err, rc = self.exec(cmd, sudo=sudo)
        if rc != 0:
            raise SSHCommandError(self.host.name, cmd, rc, err)
        return out

    def write_file(self, path, content, mode=0o644):
        if path in self.fail_writes:
            raise OSError(f"permission denied: {path}")
        self.files[path] = content
        self.modes[path] = mode

    def read_file(self, path, *, sudo=False):
        return self.remote_files[path]

    def close(self):
        self.closed = True


class FakeConnector:
    """
    Hands out one FakeConnection per open(). Per-host behaviour is keyed
    by public address; "*" applies to every host.
    """

    def __init__(self, responses=None, remote_files=None, fail_writes=None):
        self.responses = responses or {}
        self.remote_files = remote_files or {}
        self.fail_writes = fail_writes or {}
        self.connections = []
        self._lock = threading.Lock()

    @contextmanager
    def open(self, host):
        responses = dict(self.responses.get("*", {}))
        responses.update(self.responses.get(host.public_address, {}))
        conn = FakeConnection(
            host,
            responses=responses,
            remote_files=self.remote_files.get(host.public_address, {}),
            fail_writes=self.fail_writes.get(host.public_address, set()),
        )
        with self._lock:
            self.connections.append(conn)
        try:
            yield conn
        finally:
            conn.close()

    def for_host(self, address):
        return [c for c in self.connections if c.host.public_address == address]

    def commands(self, address):
        return [cmd for c in self.for_host(address) for cmd, _ in c.commands]

    def uploaded(self, address):
        files = {}
        for c in self.for_host(address):
            files.update(c.files)
        return files


# ------------------------------------------------------------------------------
# Fixtures
# ------------------------------------------------------------------------------

def make_cluster(n_hosts=3, **overrides):
    data = dict(
        name="demo",
        versions=VersionConfig(kubernetes="1.14.1"),
        hosts=[
            HostConfig(
                public_address=f"10.0.0.{i + 1}",
                private_address=f"172.16.0.{i + 1}",
                hostname=f"cp-{i}",
            )
            for i in range(n_hosts)
        ],
    )
    data.update(overrides)
    return ClusterConfig(**data)


@pytest.fixture
def cluster():
    return make_cluster()


@pytest.fixture
def connector():
    return FakeConnector()


@pytest.fixture
def state(cluster, connector):
    return State(
        context=ClusterContext(cluster=cluster, bootstrap_token="abcdef.0123456789abcdef"),
        connector=connector,
    )
