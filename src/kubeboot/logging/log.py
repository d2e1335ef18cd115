# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

#src/kubeboot/logging/log.py

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from pathlib import Path

FORMAT = "%(asctime)s | %(levelname)-7s | %(threadName)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def default_log_dir() -> Path:
    return Path.home() / ".kubeboot" / "logs"


def _handler(handler: logging.Handler, level: int) -> logging.Handler:
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(FORMAT, datefmt=DATE_FORMAT))
    return handler


def init_logging(
    *,
    base_dir: Path | None = None,
    name: str = "kubeboot",
    verbose: bool = False,
) -> tuple[logging.Logger, str, Path]:
    """
    One log file per install run holding every remote command and its
    output (host threads are told apart by threadName), plus console
    output at INFO, or DEBUG with --verbose.

    Returns (logger, run_id, log_path); the run id is shared with the
    event observers.
    """
    run_id = uuid.uuid4().hex[:12]
    log_dir = base_dir or default_log_dir()
    log_dir.mkdir(parents=True, exist_ok=True)
    stamp = datetime.now(timezone.utc).strftime("%Y%m%d-%H%M%S")
    log_path = log_dir / f"{name}-{stamp}-{run_id}.log"

    logger = logging.getLogger(name)
    logger.setLevel(logging.DEBUG)
    logger.handlers.clear()
    logger.propagate = False
    logger.addHandler(_handler(logging.FileHandler(log_path), logging.DEBUG))
    logger.addHandler(_handler(logging.StreamHandler(), logging.DEBUG if verbose else logging.INFO))

    logger.info("kubeboot run %s, trace log at %s", run_id, log_path)
    return logger, run_id, log_path
