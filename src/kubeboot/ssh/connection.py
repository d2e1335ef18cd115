# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/kubeboot/ssh/connection.py

from __future__ import annotations

import logging
import shlex
import time
from contextlib import contextmanager
from typing import Iterator, Optional, Protocol, Tuple

import paramiko

from kubeboot.config.models import HostConfig

log = logging.getLogger("kubeboot")


class SSHCommandError(RuntimeError):
    def __init__(self, host: str, cmd: str, rc: int, stderr: str):
        self.host = host
        self.cmd = cmd
        self.rc = rc
        self.stderr = stderr
        detail = stderr.strip().splitlines()[-1] if stderr.strip() else "no stderr"
        super().__init__(f"[{host}] command failed (rc={rc}): {cmd}: {detail}")


class SSHConnectError(RuntimeError):
    pass


class Connection(Protocol):
    """
    A live session on one host. Owned by exactly one host-task at a time.
    """

    def exec(self, cmd: str, *, sudo: bool = False) -> Tuple[str, str, int]: ...

    def run(self, cmd: str, *, sudo: bool = False) -> str: ...

    def write_file(self, path: str, content: bytes, mode: int = 0o644) -> None: ...

    def read_file(self, path: str, *, sudo: bool = False) -> bytes: ...

    def close(self) -> None: ...


class SSHConnection:
    """
    paramiko-backed Connection. Commands run through a login shell so the
    remote PATH (kubeadm, kubectl in /usr/local/bin) is picked up.
    """

    def __init__(self, host: HostConfig, client: paramiko.SSHClient, cmd_timeout: Optional[float] = None):
        self.host = host
        self.client = client
        self.cmd_timeout = cmd_timeout
        self._sftp: Optional[paramiko.SFTPClient] = None

    def _sftp_session(self) -> paramiko.SFTPClient:
        if self._sftp is None:
            self._sftp = self.client.open_sftp()
        return self._sftp

    def exec(self, cmd: str, *, sudo: bool = False, log_output: bool = True) -> Tuple[str, str, int]:
        if sudo:
            final = f"sudo -S bash -lc {shlex.quote(cmd)}"
        else:
            final = f"bash -lc {shlex.quote(cmd)}"

        log.debug("(%s) $ %s", self.host.name, final)
        stdin, stdout, stderr = self.client.exec_command(final, timeout=self.cmd_timeout)
        if sudo and self.host.ssh_password:
            stdin.write(self.host.ssh_password + "\n")
        stdin.flush()
        out = stdout.read().decode("utf-8", errors="replace")
        err = stderr.read().decode("utf-8", errors="replace")
        rc = stdout.channel.recv_exit_status()

        if out.strip() and log_output:
            log.debug("(%s) [stdout]\n%s", self.host.name, out.rstrip())
        if err.strip():
            log.debug("(%s) [stderr]\n%s", self.host.name, err.rstrip())
        log.debug("(%s) [exit %d]", self.host.name, rc)
        return out, err, rc

    def run(self, cmd: str, *, sudo: bool = False, log_output: bool = True) -> str:
        out, err, rc = self.exec(cmd, sudo=sudo, log_output=log_output)
        if rc != 0:
            raise SSHCommandError(self.host.name, cmd, rc, err or (out if log_output else ""))
        return out

    def write_file(self, path: str, content: bytes, mode: int = 0o644) -> None:
        sftp = self._sftp_session()
        with sftp.file(path, "wb") as f:
            f.write(content)
        sftp.chmod(path, mode)

    def read_file(self, path: str, *, sudo: bool = False) -> bytes:
        if sudo:
            # contents may be private keys: keep them out of the trace log
            return self.run(f"cat {shlex.quote(path)}", sudo=True, log_output=False).encode("utf-8")
        with self._sftp_session().file(path, "rb") as f:
            return f.read()

    def close(self) -> None:
        try:
            if self._sftp is not None:
                self._sftp.close()
        finally:
            self._sftp = None
            self.client.close()


def _load_pkey(key_path: str) -> paramiko.PKey:
    last_exc: Optional[Exception] = None
    for key_cls in (
        paramiko.Ed25519Key,
        paramiko.RSAKey,
        paramiko.ECDSAKey,
    ):
        try:
            return key_cls.from_private_key_file(key_path)
        except paramiko.SSHException as exc:
            last_exc = exc
            continue
    raise SSHConnectError(f"Unsupported private key format for {key_path}: {last_exc}")


class Connector:
    """
    Opens one fresh SSHConnection per request. Connection establishment is
    retried here: freshly provisioned machines may not accept SSH yet.
    """

    def __init__(
        self,
        *,
        connect_timeout: float = 30.0,
        cmd_timeout: Optional[float] = None,
        attempts: int = 3,
        delay: float = 5.0,
    ):
        self.connect_timeout = connect_timeout
        self.cmd_timeout = cmd_timeout
        self.attempts = attempts
        self.delay = delay

    def _connect_once(self, host: HostConfig) -> SSHConnection:
        client = paramiko.SSHClient()
        client.set_missing_host_key_policy(paramiko.AutoAddPolicy())

        pkey = _load_pkey(host.ssh_private_key_file) if host.ssh_private_key_file else None

        client.connect(
            hostname=host.public_address,
            port=host.ssh_port,
            username=host.ssh_username,
            password=host.ssh_password if not pkey else None,
            pkey=pkey,
            timeout=self.connect_timeout,
            allow_agent=True,
            look_for_keys=pkey is None,
        )
        return SSHConnection(host, client, cmd_timeout=self.cmd_timeout)

    def connect(self, host: HostConfig) -> SSHConnection:
        for attempt in range(1, self.attempts + 1):
            try:
                return self._connect_once(host)
            except (paramiko.SSHException, OSError) as e:
                if attempt == self.attempts:
                    raise SSHConnectError(
                        f"Failed to SSH into {host.public_address} as '{host.ssh_username}' "
                        f"after {self.attempts} attempts: {e}"
                    ) from e
                log.info(
                    "[%s] SSH not ready (attempt %d/%d, %s: %s), retrying in %ss...",
                    host.name, attempt, self.attempts, type(e).__name__, e, self.delay,
                )
                time.sleep(self.delay)
        raise SSHConnectError(f"no connection attempts made for {host.public_address}")

    @contextmanager
    def open(self, host: HostConfig) -> Iterator[Connection]:
        conn = self.connect(host)
        try:
            yield conn
        finally:
            conn.close()
