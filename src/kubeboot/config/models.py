# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/kubeboot/config/models.py

from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field, model_validator


class HostConfig(BaseModel):
    """A control-plane machine reachable over SSH."""

    public_address: str
    private_address: Optional[str] = None
    hostname: Optional[str] = None
    ssh_username: str = "root"
    ssh_port: int = 22
    ssh_private_key_file: Optional[str] = None
    ssh_password: Optional[str] = None
    is_leader: bool = False

    # assigned by ClusterConfig
    index: int = -1
    role: Literal["leader", "follower", ""] = ""

    @property
    def address(self) -> str:
        return self.private_address or self.public_address

    @property
    def name(self) -> str:
        return self.hostname or self.public_address

    def __str__(self) -> str:
        return f"{self.name} (#{self.index})"


class VersionConfig(BaseModel):
    kubernetes: str

    def parts(self) -> tuple[int, int, int]:
        raw = self.kubernetes.lstrip("v").split("-", 1)[0]
        major, minor, *rest = (raw.split(".") + ["0", "0"])[:3]
        return int(major), int(minor), int(rest[0] or 0)


class APIEndpoint(BaseModel):
    host: Optional[str] = None
    port: int = 6443


class NetworkConfig(BaseModel):
    pod_subnet: str = "10.244.0.0/16"
    service_subnet: str = "10.96.0.0/12"
    node_port_range: str = "30000-32767"
    cni: Literal["flannel"] = "flannel"


class AddonsConfig(BaseModel):
    enable: bool = False
    path: Optional[str] = None


class MachineControllerConfig(BaseModel):
    deploy: bool = True
    provider: str = "aws"
    image: str = "docker.io/kubermatic/machine-controller:v1.1.0"
    # exported into the controller pod as env vars (AWS_ACCESS_KEY_ID, ...)
    credentials: Dict[str, str] = Field(default_factory=dict)


class WorkerConfig(BaseModel):
    name: str
    replicas: int = 1
    provider_spec: Dict[str, Any] = Field(default_factory=dict)


class ClusterConfig(BaseModel):
    name: str
    versions: VersionConfig
    hosts: List[HostConfig]
    api_endpoint: APIEndpoint = Field(default_factory=APIEndpoint)
    network: NetworkConfig = Field(default_factory=NetworkConfig)
    addons: AddonsConfig = Field(default_factory=AddonsConfig)
    machine_controller: MachineControllerConfig = Field(default_factory=MachineControllerConfig)
    workers: List[WorkerConfig] = Field(default_factory=list)

    @model_validator(mode="after")
    def _assign_roles(self) -> "ClusterConfig":
        if not self.hosts:
            raise ValueError("at least one host is required")

        seen = set()
        for h in self.hosts:
            if h.public_address in seen:
                raise ValueError(f"duplicate host address {h.public_address}")
            seen.add(h.public_address)

        flagged = [i for i, h in enumerate(self.hosts) if h.is_leader]
        if len(flagged) > 1:
            raise ValueError("only one host may be marked is_leader")
        leader_idx = flagged[0] if flagged else 0

        for idx, h in enumerate(self.hosts):
            h.index = idx
            h.role = "leader" if idx == leader_idx else "follower"

        if self.addons.enable and not self.addons.path:
            raise ValueError("addons.path is required when addons.enable is true")
        return self

    # Helper methods
    def leader(self) -> HostConfig:
        return next(h for h in self.hosts if h.role == "leader")

    def followers(self) -> List[HostConfig]:
        return [h for h in self.hosts if h.role != "leader"]

    def api_host(self) -> str:
        return self.api_endpoint.host or self.leader().public_address
