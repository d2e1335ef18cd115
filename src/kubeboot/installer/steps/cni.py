# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

import logging

from jinja2 import TemplateNotFound

from kubeboot.installer.steps.common import apply_on_leader
from kubeboot.state import State
from kubeboot.templates.renderer import TemplateRenderer

log = logging.getLogger("kubeboot")


class UnknownCNIError(ValueError):
    pass


def apply_cni(state: State, plugin: str) -> None:
    try:
        manifest = TemplateRenderer().render(f"manifests/{plugin}.yaml.j2", Cluster=state.cluster)
    except TemplateNotFound as exc:
        raise UnknownCNIError(f"unsupported CNI plugin {plugin!r}") from exc

    log.info("Applying %s CNI plugin...", plugin)
    path = f"cni/{plugin}.yaml"
    state.configuration.add_file(path, manifest)
    apply_on_leader(state, path)
