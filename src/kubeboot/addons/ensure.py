# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/kubeboot/addons/ensure.py

from __future__ import annotations

import logging

from kubeboot.addons.manifest import (
    ADDON_LABEL,
    TemplateContext,
    combine_manifests,
    ensure_addons_labels,
    load_addons_manifests,
)
from kubeboot.installer.steps.common import apply_on_leader
from kubeboot.state import State

log = logging.getLogger("kubeboot")

ADDONS_MANIFEST = "addons/addons.yaml"


def build_addons_manifest(state: State) -> str:
    manifests = load_addons_manifests(
        state.cluster.addons.path,
        TemplateContext(cluster=state.cluster),
        verbose=state.verbose,
    )
    return combine_manifests(ensure_addons_labels(manifests))


def get_manifests(state: State) -> str:
    """Assemble the addons directory into addons/addons.yaml in the staged files."""
    combined = build_addons_manifest(state)
    state.configuration.add_file(ADDONS_MANIFEST, combined)
    return combined


def ensure_addons(state: State) -> None:
    if not state.cluster.addons.enable:
        log.info("Addons disabled, skipping")
        return

    log.info("Applying addons from %s...", state.cluster.addons.path)
    combined = get_manifests(state)
    if not combined.strip():
        log.info("Addons directory produced no resources, nothing to apply")
        return

    apply_on_leader(state, ADDONS_MANIFEST, prune_selector=ADDON_LABEL)
