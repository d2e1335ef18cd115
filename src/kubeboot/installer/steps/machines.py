# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/kubeboot/installer/steps/machines.py

from __future__ import annotations

import logging

from kubeboot.addons.manifest import combine_manifests
from kubeboot.installer.steps.common import apply_on_leader
from kubeboot.state import State
from kubeboot.templates.renderer import TemplateRenderer

log = logging.getLogger("kubeboot")

MACHINE_CONTROLLER_MANIFEST = "machine-controller/machine-controller.yaml"
WORKERS_MANIFEST = "workers/machinedeployments.yaml"


def install_machine_controller(state: State) -> None:
    if not state.cluster.machine_controller.deploy:
        log.info("machine-controller deployment disabled, skipping")
        return

    log.info("Installing machine-controller (%s)...", state.cluster.machine_controller.provider)
    manifest = TemplateRenderer().render(
        "manifests/machine-controller.yaml.j2",
        Cluster=state.cluster,
    )
    state.configuration.add_file(MACHINE_CONTROLLER_MANIFEST, manifest)
    apply_on_leader(state, MACHINE_CONTROLLER_MANIFEST)


def create_worker_machines(state: State) -> None:
    cluster = state.cluster
    if not cluster.workers:
        log.info("No workers defined, skipping worker provisioning")
        return
    if not cluster.machine_controller.deploy:
        log.info("machine-controller not deployed, skipping worker provisioning")
        return

    renderer = TemplateRenderer()
    manifest = combine_manifests(
        renderer.render("manifests/machinedeployment.yaml.j2", Cluster=cluster, worker=w)
        for w in cluster.workers
    )
    log.info("Creating %d worker MachineDeployment(s)...", len(cluster.workers))
    state.configuration.add_file(WORKERS_MANIFEST, manifest)
    apply_on_leader(state, WORKERS_MANIFEST)
