# src/sisrs/config/schema.py
from __future__ import annotations

from pathlib import Path
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from sisrs.tools.assemblers import Assembler, resolve_assembler


class RunConfig(BaseModel):
    """Resolved, read-only parameters for one pipeline run."""

    model_config = ConfigDict(frozen=True)

    # assembly / subsampling
    genome_size: Optional[int] = Field(default=None, gt=0)
    kmer: int = Field(default=21, gt=0)
    assembler: Literal["velvet", "minia", "abyss"] = "velvet"
    read_length: int = Field(default=100, gt=0)
    coverage: int = Field(default=10, gt=0)
    seed: int = 100

    # resources
    processors: int = Field(default=1, ge=1)

    # site calling
    min_read: int = Field(default=3, ge=1)
    threshold: float = Field(default=1.0, gt=0.0, le=1.0)
    missing: int = Field(default=0, ge=0)
    taxon_count: int = Field(default=0, ge=0)

    # locus selection
    loci_length: int = Field(default=100000, gt=0)

    # locations
    reads_dir: Path = Field(default_factory=Path.cwd)
    outdir: Path = Field(default_factory=Path.cwd)
    reference: Optional[Path] = None

    @field_validator("assembler", mode="before")
    @classmethod
    def _lower(cls, v: str) -> str:
        return v.strip().lower() if isinstance(v, str) else v

    @property
    def assembler_kind(self) -> Assembler:
        return resolve_assembler(self.assembler)
