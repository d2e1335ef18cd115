# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/kubeboot/templates/kubeadm.py

from __future__ import annotations

from typing import Any, Dict, List

import yaml

from kubeboot.config.models import ClusterConfig, HostConfig
from kubeboot.state import ClusterContext

BOOTSTRAP_TOKEN_GROUPS = ["system:bootstrappers:kubeadm:default-node-token"]


class UnsupportedVersionError(ValueError):
    pass


def kubeadm_api_version(cluster: ClusterConfig) -> str:
    """kubeadm config API for the cluster's Kubernetes version."""
    major, minor, _ = cluster.versions.parts()
    if (major, minor) < (1, 13):
        raise UnsupportedVersionError(
            f"kubernetes {cluster.versions.kubernetes} is not supported (need >= 1.13)"
        )
    if (major, minor) < (1, 15):
        return "kubeadm.k8s.io/v1beta1"
    return "kubeadm.k8s.io/v1beta2"


def _control_plane_endpoint(cluster: ClusterConfig) -> str:
    return f"{cluster.api_host()}:{cluster.api_endpoint.port}"


def _node_registration(host: HostConfig) -> Dict[str, Any]:
    reg: Dict[str, Any] = {
        "kubeletExtraArgs": {"node-ip": host.address},
    }
    if host.hostname:
        reg["name"] = host.hostname
    return reg


def _local_endpoint(cluster: ClusterConfig, host: HostConfig) -> Dict[str, Any]:
    return {"advertiseAddress": host.address, "bindPort": cluster.api_endpoint.port}


def _cert_sans(cluster: ClusterConfig) -> List[str]:
    sans: List[str] = []
    for name in [cluster.api_host()] + [h.public_address for h in cluster.hosts]:
        if name not in sans:
            sans.append(name)
    return sans


def _init_documents(ctx: ClusterContext, host: HostConfig, api_version: str) -> List[Dict[str, Any]]:
    cluster = ctx.cluster
    init = {
        "apiVersion": api_version,
        "kind": "InitConfiguration",
        "bootstrapTokens": [
            {
                "token": ctx.bootstrap_token,
                "ttl": "24h0m0s",
                "groups": BOOTSTRAP_TOKEN_GROUPS,
                "usages": ["signing", "authentication"],
            }
        ],
        "localAPIEndpoint": _local_endpoint(cluster, host),
        "nodeRegistration": _node_registration(host),
    }
    cluster_cfg = {
        "apiVersion": api_version,
        "kind": "ClusterConfiguration",
        "clusterName": cluster.name,
        "kubernetesVersion": "v" + cluster.versions.kubernetes.lstrip("v"),
        "controlPlaneEndpoint": _control_plane_endpoint(cluster),
        "apiServer": {
            "certSANs": _cert_sans(cluster),
            "extraArgs": {"service-node-port-range": cluster.network.node_port_range},
        },
        "networking": {
            "podSubnet": cluster.network.pod_subnet,
            "serviceSubnet": cluster.network.service_subnet,
        },
    }
    return [init, cluster_cfg]


def _join_documents(ctx: ClusterContext, host: HostConfig, api_version: str) -> List[Dict[str, Any]]:
    cluster = ctx.cluster
    join = {
        "apiVersion": api_version,
        "kind": "JoinConfiguration",
        "discovery": {
            "bootstrapToken": {
                "token": ctx.bootstrap_token,
                "apiServerEndpoint": _control_plane_endpoint(cluster),
                # CA material is copied by the deploy-ca step beforehand
                "unsafeSkipCAVerification": True,
            }
        },
        "controlPlane": {"localAPIEndpoint": _local_endpoint(cluster, host)},
        "nodeRegistration": _node_registration(host),
    }
    return [join]


def kubeadm_config(ctx: ClusterContext, host: HostConfig) -> str:
    """
    kubeadm config for one control-plane host: Init+Cluster configuration
    for the leader, a control-plane JoinConfiguration for followers.
    """
    api_version = kubeadm_api_version(ctx.cluster)
    if host.role == "leader":
        docs = _init_documents(ctx, host, api_version)
    else:
        docs = _join_documents(ctx, host, api_version)
    return yaml.safe_dump_all(docs, sort_keys=False, default_flow_style=False)


def kubeadm_config_path(host: HostConfig) -> str:
    return f"cfg/master_{host.index}.yaml"
