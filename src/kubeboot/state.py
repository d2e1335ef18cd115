# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/kubeboot/state.py

from __future__ import annotations

import secrets
import string
from dataclasses import dataclass, field
from typing import Optional

from kubeboot.config.models import ClusterConfig
from kubeboot.installer.configuration import ConfigFileSet
from kubeboot.ssh.connection import Connector

DEFAULT_WORKDIR = "kubeboot"

_TOKEN_ALPHABET = string.ascii_lowercase + string.digits


def generate_bootstrap_token() -> str:
    """kubeadm bootstrap token: [a-z0-9]{6}.[a-z0-9]{16}"""
    token_id = "".join(secrets.choice(_TOKEN_ALPHABET) for _ in range(6))
    token_secret = "".join(secrets.choice(_TOKEN_ALPHABET) for _ in range(16))
    return f"{token_id}.{token_secret}"


@dataclass(frozen=True)
class ClusterContext:
    """
    Read-only description of the cluster for one install run.
    """

    cluster: ClusterConfig
    verbose: bool = False
    workdir: str = DEFAULT_WORKDIR     # relative to the SSH user's home
    bootstrap_token: str = field(default_factory=generate_bootstrap_token)


@dataclass
class State:
    """
    Mutable run state shared by pipeline steps.
    """

    context: ClusterContext
    connector: Connector = field(default_factory=Connector)
    configuration: ConfigFileSet = field(default_factory=ConfigFileSet)
    join_command: Optional[str] = None

    @property
    def cluster(self) -> ClusterConfig:
        return self.context.cluster

    @property
    def verbose(self) -> bool:
        return self.context.verbose

    @property
    def workdir(self) -> str:
        return self.context.workdir
