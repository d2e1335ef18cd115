# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/kubeboot/installer/steps/kubeadm_config.py

from __future__ import annotations

import logging

from kubeboot.installer.steps.common import upload_configuration
from kubeboot.installer.tasks import run_task_on_all_nodes
from kubeboot.state import State
from kubeboot.templates.kubeadm import kubeadm_config, kubeadm_config_path

log = logging.getLogger("kubeboot")


def generate_kubeadm(state: State) -> None:
    log.info("Generating kubeadm config files...")

    for host in state.cluster.hosts:
        state.configuration.add_file(
            kubeadm_config_path(host),
            kubeadm_config(state.context, host),
        )

    run_task_on_all_nodes(state, upload_configuration, parallel=True)
