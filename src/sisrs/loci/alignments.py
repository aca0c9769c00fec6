# src/sisrs/loci/alignments.py
from __future__ import annotations

import csv
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Mapping

from Bio import AlignIO, SeqIO
from Bio.Seq import Seq
from Bio.SeqRecord import SeqRecord

from sisrs.errors import MalformedLocusData
from sisrs.loci.candidates import ABSENT_CHARS
from sisrs.utils.logger import get_logger
from sisrs.utils.text import slugify

LOG = get_logger("loci")

CALLED = frozenset("ACGT")
MIN_TAXA = 2


@dataclass(frozen=True)
class LocusStats:
    locus_id: str
    taxa: int
    length: int
    variable: int


def collect_alleles(alleles: Mapping[str, Path]) -> Dict[str, Dict[str, str]]:
    """{locus_id: {taxon: sequence}} from per-taxon consensus FASTAs."""
    loci: Dict[str, Dict[str, str]] = {}
    contig_for: Dict[str, str] = {}
    for taxon in sorted(alleles):
        for rec in SeqIO.parse(str(alleles[taxon]), "fasta"):
            seq = str(rec.seq).upper().strip("N")
            if not any(c in CALLED for c in seq):
                continue
            locus = slugify(rec.id)
            if contig_for.setdefault(locus, rec.id) != rec.id:
                raise MalformedLocusData(locus, f"contigs {contig_for[locus]!r} and {rec.id!r} share this locus id")
            loci.setdefault(locus, {})[taxon] = seq
    return loci


def write_unaligned(loci: Mapping[str, Mapping[str, str]], out_dir: Path) -> List[str]:
    """One FASTA per locus shared by at least two taxa; returns the locus ids written."""
    out_dir.mkdir(parents=True, exist_ok=True)
    written: List[str] = []
    for locus in sorted(loci):
        seqs = loci[locus]
        if len(seqs) < MIN_TAXA:
            continue
        records = [SeqRecord(Seq(seqs[t]), id=t, description="") for t in sorted(seqs)]
        SeqIO.write(records, str(out_dir / f"{locus}.fasta"), "fasta")
        written.append(locus)
    LOG.info("Wrote %d unaligned locus file(s) (of %d loci with calls)", len(written), len(loci))
    return written


def locus_stats(locus_id: str, path: Path) -> LocusStats:
    msa = AlignIO.read(str(path), "fasta")
    rows = [str(rec.seq).upper() for rec in msa]
    length = msa.get_alignment_length()
    variable = 0
    for col in range(length):
        if len({r[col] for r in rows if r[col] in CALLED}) >= 2:
            variable += 1
    taxa = sum(1 for r in rows if any(c not in ABSENT_CHARS for c in r))
    return LocusStats(locus_id=locus_id, taxa=taxa, length=length, variable=variable)


def rank_by_variability(aligned: Mapping[str, Path]) -> List[LocusStats]:
    """Most variable columns first; ties keep locus id order."""
    stats = [locus_stats(locus, aligned[locus]) for locus in sorted(aligned)]
    return sorted(stats, key=lambda s: -s.variable)


def write_locus_list(stats: List[LocusStats], path: Path) -> None:
    with path.open("w", newline="", encoding="utf-8") as fh:
        w = csv.writer(fh, delimiter="\t")
        w.writerow(["locus", "taxa", "length", "variable"])
        for s in stats:
            w.writerow([s.locus_id, s.taxa, s.length, s.variable])
    LOG.info("Ranked %d locus alignment(s) -> %s", len(stats), path)
