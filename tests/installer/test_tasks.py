# tests/installer/test_tasks.py
import threading

import pytest

from kubeboot.installer.tasks import (
    HostTaskError,
    run_task_on_all_nodes,
    run_task_on_followers,
    run_task_on_hosts,
    run_task_on_leader,
)


def test_one_failing_host_does_not_stop_the_others(state, connector):
    ran = []
    lock = threading.Lock()

    def task(state, host, conn):
        with lock:
            ran.append(host.index)
        if host.index == 1:
            raise RuntimeError("disk full")

    with pytest.raises(HostTaskError) as exc:
        run_task_on_all_nodes(state, task, parallel=True)

    assert sorted(ran) == [0, 1, 2]
    assert [h.index for h in exc.value.hosts] == [1]
    assert "cp-1: disk full" in str(exc.value)
    assert "cp-0" not in str(exc.value)
    assert "cp-2" not in str(exc.value)


def test_connections_are_closed_on_success_and_failure(state, connector):
    def task(state, host, conn):
        if host.index == 2:
            raise RuntimeError("boom")

    with pytest.raises(HostTaskError):
        run_task_on_all_nodes(state, task)

    assert len(connector.connections) == 3
    assert all(c.closed for c in connector.connections)


def test_parallel_runs_hosts_concurrently(state):
    # every host must be inside the task at the same time to pass the barrier
    barrier = threading.Barrier(3, timeout=5)

    def task(state, host, conn):
        barrier.wait()

    run_task_on_all_nodes(state, task, parallel=True)


def test_sequential_runs_in_host_order_and_reports_all_failures(state):
    order = []

    def task(state, host, conn):
        order.append(host.index)
        if host.index in (0, 2):
            raise RuntimeError(f"fail {host.index}")

    with pytest.raises(HostTaskError) as exc:
        run_task_on_all_nodes(state, task, parallel=False)

    assert order == [0, 1, 2]
    assert [h.index for h in exc.value.hosts] == [0, 2]


def test_parallel_failures_reported_in_host_order(state):
    def task(state, host, conn):
        raise RuntimeError("nope")

    with pytest.raises(HostTaskError) as exc:
        run_task_on_all_nodes(state, task, parallel=True)
    assert [h.index for h in exc.value.hosts] == [0, 1, 2]


def test_duplicate_hosts_run_once(state, connector):
    hosts = state.cluster.hosts
    seen = []

    run_task_on_hosts(state, [hosts[0], hosts[1], hosts[0]], lambda s, h, c: seen.append(h.index))

    assert sorted(seen) == [0, 1]


def test_empty_host_list_is_a_no_op(state, connector):
    run_task_on_hosts(state, [], lambda s, h, c: pytest.fail("should not run"))
    assert connector.connections == []


def test_leader_and_followers_selection(state):
    leader, followers = [], []

    run_task_on_leader(state, lambda s, h, c: leader.append(h.hostname))
    run_task_on_followers(state, lambda s, h, c: followers.append(h.hostname), parallel=False)

    assert leader == ["cp-0"]
    assert followers == ["cp-1", "cp-2"]


def test_task_receives_connection_for_its_own_host(state):
    def task(state, host, conn):
        assert conn.host is host

    run_task_on_all_nodes(state, task)
