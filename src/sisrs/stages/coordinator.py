# src/sisrs/stages/coordinator.py
from __future__ import annotations

import subprocess
import time
from typing import List, Tuple

from sisrs.errors import PreconditionNotMet, StageFailed
from sisrs.inventory.samples import require_taxa
from sisrs.stages.base import Precondition, Stage, StageContext, remove_outputs
from sisrs.stages.registry import DEFAULT_REGISTRY, Registry
from sisrs.utils.logger import get_logger

LOG = get_logger("coordinator")


class Coordinator:
    """
    Runs a contiguous range of stages, strictly in order.

    Before each stage its precondition is checked against the filesystem and
    its previous outputs are removed. Any failure halts the run; artifacts
    already written stay on disk so the run can be resumed at the failed stage.
    """

    def __init__(self, ctx: StageContext, registry: Registry = DEFAULT_REGISTRY) -> None:
        self.ctx = ctx
        self.registry = registry
        self.completed: List[str] = []

    def stages_for(self, command: str) -> Tuple[Stage, ...]:
        stages = self.registry.resolve(command)
        if any(s.needs_taxa for s in stages):
            require_taxa(self.ctx.taxa, self.ctx.config.reads_dir)
        return stages

    def plan(self, command: str) -> List[Tuple[Stage, Precondition]]:
        """Stages `command` would run with their precondition state right now (nothing runs)."""
        stages = (*self.stages_for(command), self.registry.finalize)
        return [(s, s.precondition(self.ctx)) for s in stages]

    def run(self, command: str) -> List[str]:
        stages = self.stages_for(command)
        LOG.info("Pipeline %r: %s", command, " -> ".join(s.name for s in stages))
        total = len(stages)
        for i, stage in enumerate(stages, start=1):
            LOG.info("[%d/%d] %s: %s", i, total, stage.name, stage.summary)
            self.execute(stage)
        LOG.info("Finalizing: %s", self.registry.finalize.summary)
        self.execute(self.registry.finalize)
        LOG.info("Pipeline %r complete (%d stage(s))", command, len(self.completed))
        return list(self.completed)

    def execute(self, stage: Stage) -> None:
        pre = stage.precondition(self.ctx)
        if not pre.ok:
            raise PreconditionNotMet(stage.name, pre.missing, pre.reason)

        remove_outputs(stage.outputs(self.ctx))
        started = time.monotonic()
        try:
            stage.action(self.ctx)
        except subprocess.CalledProcessError as e:
            raise StageFailed(stage.name, e.returncode) from e
        LOG.info("%s finished in %.1fs", stage.name, time.monotonic() - started)
        self.completed.append(stage.name)
