# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/kubeboot/installer/steps/control_plane.py

from __future__ import annotations

import logging
import posixpath

from kubeboot.config.models import HostConfig
from kubeboot.installer.tasks import run_task_on_followers, run_task_on_leader
from kubeboot.ssh.connection import Connection
from kubeboot.state import State
from kubeboot.templates.kubeadm import kubeadm_config_path

log = logging.getLogger("kubeboot")


def _already_exists(conn: Connection, path: str) -> bool:
    _, _, rc = conn.exec(f"test -f {path}", sudo=True)
    return rc == 0


def _config_file(state: State, host: HostConfig) -> str:
    return posixpath.join(state.workdir, kubeadm_config_path(host))


def init_leader(state: State) -> None:
    def _init(state: State, host: HostConfig, conn: Connection) -> None:
        if _already_exists(conn, "/etc/kubernetes/admin.conf"):
            log.info("[%s] Control plane already initialized, skipping kubeadm init", host.name)
            return
        log.info("[%s] Initializing Kubernetes on leader...", host.name)
        conn.run(f"kubeadm init --config={_config_file(state, host)}", sudo=True)

    run_task_on_leader(state, _init)


def join_control_plane(state: State) -> None:
    # etcd members are added one at a time
    def _join(state: State, host: HostConfig, conn: Connection) -> None:
        if _already_exists(conn, "/etc/kubernetes/kubelet.conf"):
            log.info("[%s] Already joined, skipping", host.name)
            return
        log.info("[%s] Joining control plane...", host.name)
        conn.run(f"kubeadm join --config={_config_file(state, host)}", sudo=True)

    run_task_on_followers(state, _join, parallel=False)


def install_kube_proxy(state: State) -> None:
    def _install(state: State, host: HostConfig, conn: Connection) -> None:
        log.info("[%s] Installing kube-proxy...", host.name)
        conn.run(
            f"kubeadm init phase addon kube-proxy --config={_config_file(state, host)}",
            sudo=True,
        )

    run_task_on_leader(state, _install)
