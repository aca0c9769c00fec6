# src/sisrs/stages/base.py
from __future__ import annotations

import shutil
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Iterable, List, Optional, Sequence, Tuple

from sisrs.artifacts import ArtifactKind, artifact_path, bowtie2_index_files
from sisrs.config.schema import RunConfig
from sisrs.inventory.samples import Taxon
from sisrs.utils.logger import get_logger

LOG = get_logger("stages")


@dataclass(frozen=True)
class StageContext:
    config: RunConfig
    taxa: Tuple[Taxon, ...] = ()

    def path(self, kind: ArtifactKind, taxon: Optional[Taxon] = None, name: Optional[str] = None) -> Path:
        return artifact_path(self.config, kind, taxon, name)

    def per_taxon(self, kind: ArtifactKind) -> List[Path]:
        return [self.path(kind, t) for t in self.taxa]


@dataclass(frozen=True)
class Precondition:
    """Outcome of a stage's precondition check; empty means satisfied."""
    missing: Tuple[Path, ...] = ()
    reason: str = ""

    @property
    def ok(self) -> bool:
        return not self.missing and not self.reason


def require(paths: Iterable[Path], reason: str = "") -> Precondition:
    missing = tuple(p for p in paths if not p.exists())
    return Precondition(missing=missing, reason=reason if missing else "")


def require_index(prefix: Path) -> Precondition:
    return require(bowtie2_index_files(prefix), reason=f"bowtie2 index {prefix.name} not built")


def combine(*checks: Precondition) -> Precondition:
    missing: List[Path] = []
    reasons: List[str] = []
    for c in checks:
        missing.extend(c.missing)
        if c.reason:
            reasons.append(c.reason)
    return Precondition(missing=tuple(missing), reason="; ".join(reasons))


def _nothing(_ctx: StageContext) -> List[Path]:
    return []


@dataclass(frozen=True)
class Stage:
    name: str
    summary: str
    precondition: Callable[[StageContext], Precondition]
    action: Callable[[StageContext], None]
    outputs: Callable[[StageContext], List[Path]] = field(default=_nothing)
    needs_taxa: bool = True


def remove_outputs(paths: Sequence[Path]) -> None:
    """Delete a stage's previous outputs so a rerun never mixes with stale files."""
    for p in paths:
        if p.is_dir():
            LOG.debug("Removing directory %s", p)
            shutil.rmtree(p)
        elif p.exists():
            LOG.debug("Removing %s", p)
            p.unlink()
