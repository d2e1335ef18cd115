# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

import logging

from kubeboot.config.models import HostConfig
from kubeboot.installer.tasks import run_task_on_leader
from kubeboot.ssh.connection import Connection
from kubeboot.state import State

log = logging.getLogger("kubeboot")


def create_join_token(state: State) -> None:
    def _create(state: State, host: HostConfig, conn: Connection) -> None:
        out = conn.run("kubeadm token create --print-join-command", sudo=True)
        state.join_command = out.strip()

    run_task_on_leader(state, _create)
    log.info("Join command: %s", state.join_command)
