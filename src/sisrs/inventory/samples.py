# src/sisrs/inventory/samples.py
from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from sisrs.errors import ConfigError, NoSamplesFound
from sisrs.utils.logger import get_logger
from sisrs.utils.text import slugify

LOG = get_logger("samples")

# Paired-end filenames carry an R1/R2 marker before the extension:
#   <sample>_R1.fastq.gz
#   <sample>_S1_L001_R2_001.fq
PAIRED_RE = re.compile(
    r"^(?P<stem>.+?)_R(?P<read>[12])(?:_[0-9]{3})?\.(?:fastq|fq)(?:\.gz)?$",
    re.IGNORECASE,
)
READS_RE = re.compile(r"^(?P<stem>.+?)\.(?:fastq|fq)(?:\.gz)?$", re.IGNORECASE)

SUBSAMPLE_DIRNAME = "subsamples"
DERIVED_SUFFIX = "_subsampled"


@dataclass(frozen=True)
class ReadSet:
    stem: str                 # file name with R1/R2 marker and extension stripped
    files: Tuple[Path, ...]   # (R1, R2) for pairs, (file,) for unpaired

    @property
    def paired(self) -> bool:
        return len(self.files) == 2


@dataclass(frozen=True)
class Taxon:
    name: str                        # filesystem-safe, unique within a run
    path: Path                       # directory holding the taxon's reads
    pairs: Tuple[Tuple[Path, Path], ...] = ()
    unpaired: Tuple[Path, ...] = ()

    @property
    def read_sets(self) -> List[ReadSet]:
        sets: List[ReadSet] = []
        for r1, r2 in self.pairs:
            key = pair_key(r1.name) or r1.name
            m = READS_RE.match(key)
            sets.append(ReadSet(stem=m.group("stem") if m else key, files=(r1, r2)))
        for f in self.unpaired:
            m = READS_RE.match(f.name)
            sets.append(ReadSet(stem=m.group("stem") if m else f.name, files=(f,)))
        return sorted(sets, key=lambda s: s.stem)

    @property
    def read_files(self) -> List[Path]:
        return [f for rs in self.read_sets for f in rs.files]


def pair_key(name: str) -> Optional[str]:
    """File name with the R1/R2 marker removed; mates share the same key."""
    m = PAIRED_RE.match(name)
    if not m:
        return None
    return name[: m.start("read") - 2] + name[m.end("read"):]


def _is_derived(path: Path, root: Path, exclude: Sequence[Path]) -> bool:
    rel_parts = path.relative_to(root).parts[:-1]
    if SUBSAMPLE_DIRNAME in rel_parts:
        return True
    m = READS_RE.match(path.name)
    if m and m.group("stem").endswith(DERIVED_SUFFIX):
        return True
    return any(ex == path or ex in path.parents for ex in exclude)


def discover_read_files(root: Path, exclude: Iterable[Path] = ()) -> List[Path]:
    if not root.is_dir():
        raise NotADirectoryError(root)
    root = root.resolve()
    excl = [Path(e).resolve() for e in exclude]
    return sorted(
        p for p in root.rglob("*")
        if p.is_file() and READS_RE.match(p.name) and not _is_derived(p, root, excl)
    )


def _taxon_name(directory: Path, root: Path) -> str:
    if directory == root:
        return slugify(root.name)
    return slugify("_".join(directory.relative_to(root).parts))


def discover_taxa(root: Path, exclude: Iterable[Path] = ()) -> List[Taxon]:
    """
    Group read files under `root` by their parent directory.

    Files with a matching R1/R2 mate become pairs; a marker file without its
    mate and any file without a marker are unpaired. Returns taxa sorted by
    name (one per directory).
    """
    root = root.resolve()
    by_dir: Dict[Path, List[Path]] = {}
    for f in discover_read_files(root, exclude):
        by_dir.setdefault(f.parent, []).append(f)

    taxa: List[Taxon] = []
    for directory, files in sorted(by_dir.items()):
        mates: Dict[str, Dict[str, Path]] = {}
        unpaired: List[Path] = []
        for f in files:
            m = PAIRED_RE.match(f.name)
            if m:
                # the chunk suffix stays in the key so R1_001 pairs with R2_001
                mates.setdefault(pair_key(f.name), {})[m.group("read")] = f
            else:
                unpaired.append(f)

        pairs: List[Tuple[Path, Path]] = []
        for key in sorted(mates):
            reads = mates[key]
            if {"1", "2"} <= set(reads):
                pairs.append((reads["1"], reads["2"]))
            else:
                LOG.warning("Unmatched mate treated as unpaired: %s", next(iter(reads.values())))
                unpaired.extend(reads.values())

        taxa.append(Taxon(
            name=_taxon_name(directory, root),
            path=directory,
            pairs=tuple(pairs),
            unpaired=tuple(sorted(unpaired)),
        ))

    names = [t.name for t in taxa]
    dupes = {n for n in names if names.count(n) > 1}
    if dupes:
        raise ConfigError(f"taxon directories collide after name normalization: {sorted(dupes)}")

    taxa.sort(key=lambda t: t.name)
    LOG.info("Discovered %d taxon/taxa under %s", len(taxa), root)
    return taxa


def require_taxa(taxa: Sequence[Taxon], root: Path) -> None:
    if not taxa:
        raise NoSamplesFound(root)
