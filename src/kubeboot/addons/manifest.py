# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/kubeboot/addons/manifest.py

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterable, List

import jinja2
import yaml

from kubeboot.config.models import ClusterConfig

log = logging.getLogger("kubeboot")

# Every addon-managed resource carries this label with an empty value so that
# `kubectl apply --prune -l kubeboot.io/addon` only ever prunes addon objects.
ADDON_LABEL = "kubeboot.io/addon"

DOCUMENT_SEPARATOR = "---"

_SEPARATOR_RE = re.compile(r"^---[ \t]*$", re.MULTILINE)


class AddonsError(RuntimeError):
    """Base class for addon manifest failures."""


class ManifestLoadError(AddonsError):
    """The addons directory or one of its files could not be read."""


class ManifestTemplateError(AddonsError):
    """A manifest failed to parse or render as a template."""


class ManifestDecodeError(AddonsError):
    """A rendered document is not a valid resource."""


@dataclass(frozen=True)
class TemplateContext:
    """
    Variables visible to addon templates. One documented key only:

      Cluster  the full ClusterConfig, e.g. ``{{ Cluster.versions.kubernetes }}``
    """

    cluster: ClusterConfig

    def as_vars(self) -> Dict[str, Any]:
        return {"Cluster": self.cluster}


@dataclass
class RawResourceDocument:
    """
    One decoded resource, kept as a generic mapping. Only labels are read
    or written; the rest of the document passes through untouched.
    """

    data: Dict[str, Any]
    raw_size: int = 0
    source: str = ""

    @property
    def labels(self) -> Dict[str, str]:
        metadata = self.data.get("metadata") or {}
        if not isinstance(metadata, dict):
            raise ManifestDecodeError(f"{self.source}: metadata is not a mapping")
        labels = metadata.get("labels") or {}
        if not isinstance(labels, dict):
            raise ManifestDecodeError(f"{self.source}: metadata.labels is not a mapping")
        return dict(labels)

    @labels.setter
    def labels(self, value: Dict[str, str]) -> None:
        metadata = self.data.get("metadata")
        if not isinstance(metadata, dict):
            metadata = {}
            self.data["metadata"] = metadata
        metadata["labels"] = dict(value)

    def set_label(self, key: str, value: str) -> None:
        labels = self.labels
        labels[key] = value
        self.labels = labels

    def dump(self) -> str:
        return yaml.safe_dump(self.data, sort_keys=False, default_flow_style=False)


def _template_env() -> jinja2.Environment:
    return jinja2.Environment(
        undefined=jinja2.StrictUndefined,
        autoescape=False,
        keep_trailing_newline=True,
    )


def split_manifests(text: str) -> List[str]:
    """Split a multi-document stream on `---` lines; blank documents are dropped."""
    return [part for part in _SEPARATOR_RE.split(text) if part.strip()]


def _render(env: jinja2.Environment, path: Path, variables: Dict[str, Any]) -> str:
    try:
        source = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ManifestLoadError(f"failed to load addon {path.name}: {exc}") from exc
    except UnicodeDecodeError as exc:
        raise ManifestDecodeError(f"failed to decode manifest {path.name}: not valid UTF-8: {exc}") from exc

    try:
        return env.from_string(source).render(**variables)
    except jinja2.TemplateError as exc:
        raise ManifestTemplateError(f"failed to template addons manifest {path.name}: {exc}") from exc


def _decode(path: Path, chunk: str) -> RawResourceDocument | None:
    try:
        data = yaml.safe_load(chunk)
    except yaml.YAMLError as exc:
        raise ManifestDecodeError(f"failed to decode manifest {path.name}: {exc}") from exc

    if data is None:
        # comment-only document
        return None
    if not isinstance(data, dict):
        raise ManifestDecodeError(
            f"failed to decode manifest {path.name}: expected a mapping, got {type(data).__name__}"
        )
    return RawResourceDocument(
        data=data,
        raw_size=len(chunk.encode("utf-8")),
        source=path.name,
    )


def load_addons_manifests(
    addons_path: str | Path,
    context: TemplateContext,
    *,
    verbose: bool = False,
) -> List[RawResourceDocument]:
    """
    Render every file in *addons_path* and decode the resources it contains.

    Files are processed in name order. Sub-directories and files that
    render to nothing are skipped with a notice.
    """
    addons_path = Path(addons_path)
    try:
        entries = sorted(addons_path.iterdir(), key=lambda p: p.name)
    except OSError as exc:
        raise ManifestLoadError(f"failed to read the addons directory {addons_path}: {exc}") from exc

    env = _template_env()
    variables = context.as_vars()
    manifests: List[RawResourceDocument] = []

    for entry in entries:
        if entry.is_dir():
            log.info("Found directory '%s' in the addons path. Ignoring.", entry.name)
            continue
        if verbose:
            log.info("Parsing addons manifest '%s'", entry.name)

        rendered = _render(env, entry, variables)
        if not rendered.strip():
            log.info("Addons manifest '%s' is empty after parsing. Skipping.", entry.name)
            continue

        for chunk in split_manifests(rendered):
            doc = _decode(entry, chunk)
            if doc is not None:
                manifests.append(doc)

    return manifests


def label_document(doc: RawResourceDocument) -> RawResourceDocument:
    """Set the addon marker label, keeping every existing label. Idempotent."""
    doc.set_label(ADDON_LABEL, "")
    return doc


def ensure_addons_labels(manifests: Iterable[RawResourceDocument]) -> List[str]:
    return [label_document(m).dump() for m in manifests]


def combine_manifests(manifests: Iterable[str]) -> str:
    """
    Join documents into one stream so a single `kubectl apply --prune`
    sees the complete addon set. No documents gives a lone newline.
    """
    parts = [m.rstrip("\n").strip() for m in manifests]
    return f"\n{DOCUMENT_SEPARATOR}\n".join(parts) + "\n"
