# src/sisrs/errors.py
from __future__ import annotations

from pathlib import Path
from typing import Optional, Sequence


class SisrsError(Exception):
    """Base class for every fatal, operator-facing pipeline error."""


class ConfigError(SisrsError):
    pass


class UnsupportedAssembler(ConfigError):
    def __init__(self, assembler: str, supported: Sequence[str]) -> None:
        self.assembler = assembler
        self.supported = tuple(supported)
        super().__init__(
            f"unsupported assembler {assembler!r} (choose one of: {', '.join(self.supported)})"
        )


class MissingDependency(SisrsError):
    def __init__(self, tool: str) -> None:
        self.tool = tool
        super().__init__(f"required executable not found on PATH: {tool}")


class NoSamplesFound(SisrsError):
    def __init__(self, root: Path) -> None:
        self.root = root
        super().__init__(f"no read files (*.fastq / *.fq) found under {root}")


class UnknownStage(SisrsError):
    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"unknown stage or pipeline: {name!r}")


class PreconditionNotMet(SisrsError):
    def __init__(self, stage: str, missing: Sequence[Path] = (), reason: str = "") -> None:
        self.stage = stage
        self.missing = tuple(missing)
        self.reason = reason
        detail = reason or "missing input artifacts"
        if self.missing:
            shown = ", ".join(str(p) for p in self.missing[:5])
            more = f" (+{len(self.missing) - 5} more)" if len(self.missing) > 5 else ""
            detail = f"{detail}: {shown}{more}"
        super().__init__(f"cannot run stage {stage!r}: {detail}")


class StageFailed(SisrsError):
    def __init__(self, stage: str, exit_code: int, unit: Optional[str] = None) -> None:
        self.stage = stage
        self.exit_code = exit_code
        self.unit = unit
        where = f" (unit {unit})" if unit else ""
        super().__init__(f"stage {stage!r} failed{where} with exit code {exit_code}")


class EmptyLocusAlignment(SisrsError):
    def __init__(self, locus: str) -> None:
        self.locus = locus
        super().__init__(f"locus {locus!r} has a zero-length alignment")


class MalformedLocusData(SisrsError):
    def __init__(self, locus: str, reason: str) -> None:
        self.locus = locus
        self.reason = reason
        super().__init__(f"locus {locus!r}: {reason}")
