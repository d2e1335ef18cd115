# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

import logging

from kubeboot.config.models import HostConfig
from kubeboot.installer.tasks import run_task_on_all_nodes
from kubeboot.ssh.connection import Connection
from kubeboot.state import State
from kubeboot.templates.renderer import TemplateRenderer

log = logging.getLogger("kubeboot")


def install_prerequisites(state: State) -> None:
    """Container runtime, kubelet, kubeadm and kubectl on every control-plane host."""
    script = TemplateRenderer().render(
        "scripts/install_prerequisites.sh.j2",
        kubernetes_version=state.cluster.versions.kubernetes.lstrip("v"),
    )

    def _install(state: State, host: HostConfig, conn: Connection) -> None:
        log.info("[%s] Installing prerequisites...", host.name)
        conn.run(script, sudo=True)

    run_task_on_all_nodes(state, _install, parallel=True)
