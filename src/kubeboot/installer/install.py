# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/kubeboot/installer/install.py

from __future__ import annotations

from typing import List, Optional

from kubeboot.addons.ensure import ensure_addons
from kubeboot.installer.pipeline import Pipeline, Step
from kubeboot.installer.steps.certificates import deploy_ca, download_ca
from kubeboot.installer.steps.cni import apply_cni
from kubeboot.installer.steps.control_plane import (
    init_leader,
    install_kube_proxy,
    join_control_plane,
)
from kubeboot.installer.steps.join_token import create_join_token
from kubeboot.installer.steps.kubeadm_config import generate_kubeadm
from kubeboot.installer.steps.machines import create_worker_machines, install_machine_controller
from kubeboot.installer.steps.prerequisites import install_prerequisites
from kubeboot.observers.dispatcher import EventBus
from kubeboot.state import State


def install_steps() -> List[Step]:
    """
    Bootstrap order. Each step depends on everything before it: the CA must
    exist on the leader before it can be copied, followers need the CA
    before joining, workers need the machine-controller and a CNI.
    """
    return [
        Step("install-prerequisites", install_prerequisites),
        Step("generate-kubeadm-config", generate_kubeadm),
        Step("init-leader", init_leader),
        Step("download-ca", download_ca),
        Step("deploy-ca", deploy_ca),
        Step("join-control-plane", join_control_plane),
        Step("install-kube-proxy", install_kube_proxy),
        Step("install-machine-controller", install_machine_controller),
        Step("apply-cni", lambda s: apply_cni(s, s.cluster.network.cni)),
        Step("ensure-addons", ensure_addons),
        Step("create-worker-machines", create_worker_machines),
        Step("create-join-token", create_join_token),
    ]


def install_pipeline(bus: Optional[EventBus] = None, run_id: Optional[str] = None) -> Pipeline:
    return Pipeline(install_steps(), bus=bus, run_id=run_id)


def install(state: State, bus: Optional[EventBus] = None, run_id: Optional[str] = None) -> Pipeline:
    """Run the full bootstrap. Raises StepError naming the failed step."""
    pipeline = install_pipeline(bus=bus, run_id=run_id)
    pipeline.run(state)
    return pipeline
