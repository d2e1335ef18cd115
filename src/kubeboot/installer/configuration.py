# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/kubeboot/installer/configuration.py

from __future__ import annotations

import logging
import posixpath
import shlex
from typing import Dict, Iterator, List, Tuple, Union

from kubeboot.ssh.connection import Connection

log = logging.getLogger("kubeboot")


class ConfigUploadError(RuntimeError):
    def __init__(self, path: str, remote_dir: str, cause: Exception):
        self.path = path
        self.remote_dir = remote_dir
        super().__init__(f"failed to upload {path} to {remote_dir}: {cause}")


class ConfigFileSet:
    """
    In-memory staging area for files generated during a run (kubeadm
    configs, CA material, addon manifests) before they are pushed to hosts.

    Keys are paths relative to the remote working directory. Writing the
    same key twice replaces the content; insertion order of first write is
    kept so uploads are deterministic.

    Writes happen only from sequential pipeline steps; parallel host-tasks
    only read, so no locking is done here.
    """

    def __init__(self) -> None:
        self._files: Dict[str, bytes] = {}

    def add_file(self, path: str, content: Union[str, bytes]) -> None:
        path = posixpath.normpath(path)
        if path.startswith("/") or path == ".." or path.startswith("../"):
            raise ValueError(f"config file path must be relative to the work dir: {path}")
        if isinstance(content, str):
            content = content.encode("utf-8")
        self._files[path] = content

    def get(self, path: str) -> bytes:
        return self._files[posixpath.normpath(path)]

    def paths(self) -> List[str]:
        return list(self._files)

    def items(self) -> Iterator[Tuple[str, bytes]]:
        return iter(self._files.items())

    def __contains__(self, path: object) -> bool:
        return isinstance(path, str) and posixpath.normpath(path) in self._files

    def __len__(self) -> int:
        return len(self._files)

    def upload_to(self, conn: Connection, remote_dir: str) -> None:
        """
        Write every file under remote_dir, creating parent directories.

        Not transactional: the first failing file aborts the upload and
        earlier files stay on the host. Re-running overwrites them.
        """
        created = set()
        for path, content in self._files.items():
            target = posixpath.join(remote_dir, path)
            parent = posixpath.dirname(target)
            try:
                if parent and parent not in created:
                    conn.run(f"mkdir -p {shlex.quote(parent)}")
                    created.add(parent)
                conn.write_file(target, content, mode=0o600)
            except Exception as exc:
                raise ConfigUploadError(path, remote_dir, exc) from exc
            log.debug("uploaded %s (%d bytes)", target, len(content))

    def download(self, conn: Connection, remote_file: str, path: str) -> None:
        """Read a root-owned file from the host into the set under *path*."""
        self.add_file(path, conn.read_file(remote_file, sudo=True))
