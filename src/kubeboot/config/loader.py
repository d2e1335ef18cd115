# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/kubeboot/config/loader.py

import logging
import os
from pathlib import Path

import yaml
from pydantic import ValidationError

from .models import ClusterConfig

log = logging.getLogger("kubeboot")


class ConfigError(ValueError):
    """Raised when a cluster config cannot be read or validated."""


def _overlay(base: dict, override: dict) -> dict:
    # empty override values keep the base value
    for key, value in override.items():
        if isinstance(base.get(key), dict) and isinstance(value, dict):
            _overlay(base[key], value)
        elif value not in (None, ""):
            base[key] = value
    return base


def _secrets_file(config_path: Path) -> Path | None:
    """KUBEBOOT_SECRETS_FILE if set, else secrets.yaml beside the config."""
    override = os.environ.get("KUBEBOOT_SECRETS_FILE")
    candidate = Path(override) if override else config_path.parent / "secrets.yaml"
    if candidate.is_file():
        return candidate
    if override:
        log.warning("KUBEBOOT_SECRETS_FILE=%s does not exist, skipping", override)
    return None


def _load_yaml(path: Path) -> dict:
    """Load a YAML file, expanding ${ENV_VAR} references."""
    try:
        raw = path.read_text()
    except OSError as exc:
        raise ConfigError(f"failed to read config {path}: {exc}") from exc
    expanded = os.path.expandvars(raw)
    try:
        data = yaml.safe_load(expanded) or {}
    except yaml.YAMLError as exc:
        raise ConfigError(f"failed to parse config {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"config {path} must be a mapping")
    return data


def load_config(path: str | Path) -> ClusterConfig:
    """Load a cluster config, overlay the secrets file if any, and validate it."""
    path = Path(path)
    data = _load_yaml(path)

    secrets_path = _secrets_file(path)
    if secrets_path:
        log.debug("Overlaying secrets from %s", secrets_path)
        _overlay(data, _load_yaml(secrets_path))

    try:
        return ClusterConfig.model_validate(data)
    except ValidationError as exc:
        raise ConfigError(f"invalid cluster config {path}:\n{exc}") from exc
