# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/kubeboot/installer/steps/common.py

from __future__ import annotations

import logging
import posixpath
from typing import Optional

from kubeboot.config.models import HostConfig
from kubeboot.installer.kubectl import KubectlRunner
from kubeboot.installer.tasks import run_task_on_leader
from kubeboot.ssh.connection import Connection
from kubeboot.state import State

log = logging.getLogger("kubeboot")


def upload_configuration(state: State, host: HostConfig, conn: Connection) -> None:
    state.configuration.upload_to(conn, state.workdir)


def apply_on_leader(state: State, path: str, *, prune_selector: Optional[str] = None) -> None:
    """
    Push the staged files to the leader and `kubectl apply` one of them.
    *path* is relative to the work dir, i.e. a ConfigFileSet key.
    """
    if path not in state.configuration:
        raise KeyError(f"{path} has not been generated")

    def _apply(state: State, host: HostConfig, conn: Connection) -> None:
        upload_configuration(state, host, conn)
        KubectlRunner(conn).apply_file(
            posixpath.join(state.workdir, path),
            prune_selector=prune_selector,
        )
        log.info("[%s] applied %s", host.name, path)

    run_task_on_leader(state, _apply)
