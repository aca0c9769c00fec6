# src/sisrs/loci/candidates.py
from __future__ import annotations

import csv
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List, Tuple

from Bio import AlignIO

from sisrs.errors import EmptyLocusAlignment, MalformedLocusData
from sisrs.utils.logger import get_logger

LOG = get_logger("loci")

ALIGNMENT_SUFFIX = ".fasta"
ABSENT_CHARS = frozenset("-?Nn")


@dataclass(frozen=True)
class LocusCandidate:
    locus_id: str
    taxon_count: int   # taxa with at least one called base at this locus
    length: int        # alignment columns
    path: Path


def read_locus_list(path: Path) -> List[str]:
    """Locus ids in ranking order (first column; '#' lines and a 'locus' header skipped)."""
    ids: List[str] = []
    seen = set()
    with path.open(newline="", encoding="utf-8") as fh:
        for row in csv.reader(fh, delimiter="\t"):
            if not row or not row[0].strip() or row[0].startswith("#"):
                continue
            locus = row[0].strip()
            if locus == "locus" and not ids:
                continue
            if locus in seen:
                raise MalformedLocusData(locus, f"listed more than once in {path}")
            seen.add(locus)
            ids.append(locus)
    return ids


def read_candidate(locus_id: str, path: Path) -> LocusCandidate:
    try:
        msa = AlignIO.read(str(path), "fasta")
    except ValueError as e:
        # Bio raises ValueError for ragged or empty alignments
        if "No records found" in str(e):
            raise EmptyLocusAlignment(locus_id) from e
        raise MalformedLocusData(locus_id, f"unreadable alignment {path}: {e}") from e
    length = msa.get_alignment_length()
    if length == 0:
        raise EmptyLocusAlignment(locus_id)
    taxa = sum(1 for rec in msa if any(c not in ABSENT_CHARS for c in str(rec.seq)))
    return LocusCandidate(locus_id=locus_id, taxon_count=taxa, length=length, path=path)


def load_candidates(locus_list: Path, aligned_dir: Path) -> List[LocusCandidate]:
    """
    Candidates in the ranked order of `locus_list`. Alignment files present in
    `aligned_dir` but not listed are not ranked yet and are ignored; a listed
    locus without an alignment file is an error.
    """
    ids = read_locus_list(locus_list)
    on_disk = {p.name[: -len(ALIGNMENT_SUFFIX)]: p for p in aligned_dir.glob(f"*{ALIGNMENT_SUFFIX}")}

    unranked = sorted(set(on_disk) - set(ids))
    if unranked:
        LOG.info("Ignoring %d alignment(s) not in %s", len(unranked), locus_list.name)
        LOG.debug("Unranked loci: %s", ", ".join(unranked))

    out: List[LocusCandidate] = []
    for locus in ids:
        path = on_disk.get(locus)
        if path is None:
            raise MalformedLocusData(locus, f"listed in {locus_list} but {aligned_dir / (locus + ALIGNMENT_SUFFIX)} is missing")
        out.append(read_candidate(locus, path))
    LOG.info("Loaded %d ranked locus candidate(s)", len(out))
    return out


def tier_counts(candidates: Iterable[LocusCandidate]) -> List[Tuple[int, int]]:
    """(taxon_count, number of loci) pairs, most taxa first."""
    counts = {}
    for c in candidates:
        counts[c.taxon_count] = counts.get(c.taxon_count, 0) + 1
    return sorted(counts.items(), reverse=True)
