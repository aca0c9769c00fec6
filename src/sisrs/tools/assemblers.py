# src/sisrs/tools/assemblers.py
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Sequence, Tuple, Union

from sisrs.errors import UnsupportedAssembler


@dataclass(frozen=True)
class Velvet:
    name: str = "velvet"
    executables: Tuple[str, ...] = ("velveth", "velvetg")
    native_contigs: str = "contigs.fa"

    def commands(self, *, kmer: int, processors: int, reads: Sequence[Path], out_dir: Path) -> List[List[str]]:
        # velvet picks its thread count from OMP_NUM_THREADS
        return [
            ["velveth", str(out_dir), str(kmer), "-fastq", "-short", *map(str, reads)],
            ["velvetg", str(out_dir), "-exp_cov", "auto"],
        ]


@dataclass(frozen=True)
class Minia:
    name: str = "minia"
    executables: Tuple[str, ...] = ("minia",)
    native_contigs: str = "minia.contigs.fa"

    def reads_list(self, out_dir: Path) -> Path:
        return out_dir / "reads.txt"

    def commands(self, *, kmer: int, processors: int, reads: Sequence[Path], out_dir: Path) -> List[List[str]]:
        return [[
            "minia",
            "-in", str(self.reads_list(out_dir)),
            "-kmer-size", str(kmer),
            "-abundance-min", "2",
            "-nb-cores", str(processors),
            "-out", str(out_dir / "minia"),
        ]]


@dataclass(frozen=True)
class Abyss:
    name: str = "abyss"
    executables: Tuple[str, ...] = ("abyss-pe",)
    native_contigs: str = "abyss-contigs.fa"

    def commands(self, *, kmer: int, processors: int, reads: Sequence[Path], out_dir: Path) -> List[List[str]]:
        return [[
            "abyss-pe",
            "-C", str(out_dir),
            "name=abyss",
            f"k={kmer}",
            f"j={processors}",
            "se=" + " ".join(str(r) for r in reads),
        ]]


Assembler = Union[Velvet, Minia, Abyss]

ASSEMBLERS: Dict[str, Assembler] = {a.name: a for a in (Velvet(), Minia(), Abyss())}


def resolve_assembler(name: str) -> Assembler:
    key = (name or "").strip().lower()
    try:
        return ASSEMBLERS[key]
    except KeyError:
        raise UnsupportedAssembler(name, sorted(ASSEMBLERS)) from None
