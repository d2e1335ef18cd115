# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/kubeboot/installer/pipeline.py

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, List, Optional, Sequence

from kubeboot.installer.tasks import HostTaskError
from kubeboot.observers.dispatcher import EventBus
from kubeboot.observers.events import (
    new_ctx,
    PipelineCompleted,
    StepFailed,
    StepStarted,
    StepSucceeded,
)
from kubeboot.state import State

log = logging.getLogger("kubeboot")


class PipelineStatus(str, Enum):
    NOT_STARTED = "NotStarted"
    RUNNING = "Running"
    FAILED = "Failed"
    COMPLETED = "Completed"


class StepError(RuntimeError):
    """
    A bootstrap step failed. ``step`` names the phase; ``hosts`` lists the
    host names involved when the failure came from a host fan-out.
    """

    def __init__(self, step: str, cause: BaseException, hosts: Sequence[str] = ()):
        self.step = step
        self.cause = cause
        self.hosts = list(hosts)
        super().__init__(f"step '{step}' failed: {cause}")


@dataclass(frozen=True)
class Step:
    name: str
    run: Callable[[State], None]


class Pipeline:
    """
    Linear state machine over a fixed list of steps. The first failing step
    stops the run; nothing is retried or rolled back here.
    """

    def __init__(self, steps: Sequence[Step], bus: Optional[EventBus] = None, run_id: Optional[str] = None):
        names = [s.name for s in steps]
        if len(set(names)) != len(names):
            raise ValueError(f"duplicate step names in pipeline: {names}")
        self.steps: List[Step] = list(steps)
        self.bus = bus or EventBus()
        self.run_id = run_id
        self.status = PipelineStatus.NOT_STARTED
        self.current_step: Optional[str] = None
        self.error: Optional[StepError] = None

    def run(self, state: State) -> None:
        ctx = new_ctx(cluster=state.cluster.name, run_id=self.run_id)
        total = len(self.steps)
        started = time.time()

        for position, step in enumerate(self.steps, 1):
            self.status = PipelineStatus.RUNNING
            self.current_step = step.name
            log.info("[%d/%d] %s", position, total, step.name)
            self.bus.emit(StepStarted(step=step.name, position=position, total=total, **ctx))

            t0 = time.time()
            try:
                step.run(state)
            except Exception as exc:
                hosts = [h.name for h in exc.hosts] if isinstance(exc, HostTaskError) else []
                self.error = StepError(step.name, exc, hosts=hosts)
                self.status = PipelineStatus.FAILED
                self.bus.emit(StepFailed(step=step.name, error=str(exc), hosts=hosts, **ctx))
                raise self.error from exc

            self.bus.emit(
                StepSucceeded(step=step.name, duration_ms=int((time.time() - t0) * 1000), **ctx)
            )

        self.status = PipelineStatus.COMPLETED
        self.current_step = None
        self.bus.emit(
            PipelineCompleted(
                steps=[s.name for s in self.steps],
                duration_ms=int((time.time() - started) * 1000),
                **ctx,
            )
        )
