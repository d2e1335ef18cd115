# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/kubeboot/installer/tasks.py

from __future__ import annotations

import concurrent.futures
import logging
from dataclasses import dataclass
from typing import Callable, Iterable, List, Optional

from kubeboot.config.models import HostConfig
from kubeboot.ssh.connection import Connection
from kubeboot.state import State

log = logging.getLogger("kubeboot")

Task = Callable[[State, HostConfig, Connection], None]


@dataclass(frozen=True)
class HostFailure:
    host: HostConfig
    error: BaseException


class HostTaskError(RuntimeError):
    """One or more hosts failed a dispatched task. Names every failing host."""

    def __init__(self, failures: List[HostFailure]):
        self.failures = failures
        lines = [f"  {f.host.name}: {f.error}" for f in failures]
        super().__init__(
            f"task failed on {len(failures)} host(s):\n" + "\n".join(lines)
        )

    @property
    def hosts(self) -> List[HostConfig]:
        return [f.host for f in self.failures]


def _unique(hosts: Iterable[HostConfig]) -> List[HostConfig]:
    seen = set()
    out: List[HostConfig] = []
    for h in hosts:
        key = (h.index, h.public_address)
        if key in seen:
            continue
        seen.add(key)
        out.append(h)
    return out


def _invoke(state: State, host: HostConfig, task: Task) -> Optional[HostFailure]:
    # The connection is released on every exit path of this one invocation,
    # whatever happens to sibling tasks.
    try:
        with state.connector.open(host) as conn:
            task(state, host, conn)
    except Exception as exc:
        log.error("[%s] %s failed: %s", host.name, getattr(task, "__name__", "task"), exc)
        return HostFailure(host=host, error=exc)
    return None


def run_task_on_hosts(
    state: State,
    hosts: Iterable[HostConfig],
    task: Task,
    *,
    parallel: bool = True,
) -> None:
    """
    Run *task* once per host and wait for every host to finish.

    A failure on one host never cancels or skips the others; once all
    invocations are done the failures are raised together as HostTaskError.
    """
    targets = _unique(hosts)
    if not targets:
        return

    failures: List[HostFailure] = []

    if parallel and len(targets) > 1:
        with concurrent.futures.ThreadPoolExecutor(
            max_workers=len(targets),
            thread_name_prefix="host",
        ) as pool:
            futures = [pool.submit(_invoke, state, h, task) for h in targets]
            concurrent.futures.wait(futures)
        # collected in host-list order, not completion order
        for fut in futures:
            failure = fut.result()
            if failure is not None:
                failures.append(failure)
    else:
        for h in targets:
            failure = _invoke(state, h, task)
            if failure is not None:
                failures.append(failure)

    if failures:
        raise HostTaskError(failures)


def run_task_on_all_nodes(state: State, task: Task, *, parallel: bool = True) -> None:
    run_task_on_hosts(state, state.cluster.hosts, task, parallel=parallel)


def run_task_on_leader(state: State, task: Task) -> None:
    run_task_on_hosts(state, [state.cluster.leader()], task, parallel=False)


def run_task_on_followers(state: State, task: Task, *, parallel: bool = True) -> None:
    run_task_on_hosts(state, state.cluster.followers(), task, parallel=parallel)
