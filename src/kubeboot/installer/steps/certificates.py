# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/kubeboot/installer/steps/certificates.py

from __future__ import annotations

import logging
import posixpath

from kubeboot.config.models import HostConfig
from kubeboot.installer.steps.common import upload_configuration
from kubeboot.installer.tasks import run_task_on_followers, run_task_on_leader
from kubeboot.ssh.connection import Connection
from kubeboot.state import State

log = logging.getLogger("kubeboot")

PKI_DIR = "/etc/kubernetes/pki"

# shared by every control-plane member
CA_FILES = [
    "ca.crt",
    "ca.key",
    "sa.key",
    "sa.pub",
    "front-proxy-ca.crt",
    "front-proxy-ca.key",
    "etcd/ca.crt",
    "etcd/ca.key",
]


def download_ca(state: State) -> None:
    def _download(state: State, host: HostConfig, conn: Connection) -> None:
        log.info("[%s] Downloading PKI files...", host.name)
        for name in CA_FILES:
            state.configuration.download(
                conn,
                posixpath.join(PKI_DIR, name),
                posixpath.join("pki", name),
            )

    run_task_on_leader(state, _download)


def deploy_ca(state: State) -> None:
    def _deploy(state: State, host: HostConfig, conn: Connection) -> None:
        log.info("[%s] Uploading PKI files...", host.name)
        upload_configuration(state, host, conn)
        src = posixpath.join(state.workdir, "pki")
        conn.run(
            f"mkdir -p {PKI_DIR}/etcd && cp -r {src}/. {PKI_DIR}/ && chown -R root:root {PKI_DIR}",
            sudo=True,
        )

    run_task_on_followers(state, _deploy, parallel=True)
