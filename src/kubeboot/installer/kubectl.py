# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/kubeboot/installer/kubectl.py

from __future__ import annotations

import logging
import shlex
from typing import Optional

from kubeboot.ssh.connection import Connection

log = logging.getLogger("kubeboot")

ADMIN_KUBECONFIG = "/etc/kubernetes/admin.conf"


class KubectlError(RuntimeError):
    pass


class KubectlRunner:
    """
    kubectl executed on the leader over an existing SSH connection,
    authenticated with the kubeadm admin kubeconfig.
    """

    def __init__(self, conn: Connection, *, kubeconfig: str = ADMIN_KUBECONFIG):
        self.conn = conn
        self.kubeconfig = kubeconfig

    def _run(self, args: str) -> tuple[int, str, str]:
        full_cmd = f"KUBECONFIG={self.kubeconfig} kubectl {args}"
        out, err, rc = self.conn.exec(full_cmd, sudo=True)
        return rc, out, err

    def apply_file(self, path: str, *, prune_selector: Optional[str] = None) -> None:
        parts = ["apply"]
        if prune_selector:
            parts += ["--prune", "-l", shlex.quote(prune_selector)]
        parts += ["-f", shlex.quote(path)]
        rc, out, err = self._run(" ".join(parts))
        if rc != 0:
            raise KubectlError(f"kubectl apply -f {path} failed: {(err or out).strip()}")
        log.debug("kubectl apply -f %s:\n%s", path, out.rstrip())
