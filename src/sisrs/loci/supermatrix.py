# src/sisrs/loci/supermatrix.py
from __future__ import annotations

from pathlib import Path
from typing import Dict, List, Optional

from Bio import AlignIO
from Bio.Align import MultipleSeqAlignment
from Bio.Seq import Seq
from Bio.SeqRecord import SeqRecord

from sisrs.errors import MalformedLocusData
from sisrs.loci.ranker import PartitionPlan
from sisrs.utils.logger import get_logger

LOG = get_logger("supermatrix")

GAP = "-"


def partition_lines(plan: PartitionPlan) -> List[str]:
    """RAxML-style partition lines with 1-based inclusive coordinates."""
    return [f"DNA, {e.locus.locus_id} = {e.start + 1}-{e.end + 1}" for e in plan.entries]


def write_partitions(plan: PartitionPlan, path: Path) -> None:
    lines = partition_lines(plan)
    path.write_text("\n".join(lines) + ("\n" if lines else ""), encoding="utf-8")
    LOG.info("Wrote %d partition(s) -> %s", len(lines), path)


def concatenate(plan: PartitionPlan) -> MultipleSeqAlignment:
    """One row per taxon seen in any selected locus; absent taxa padded with gaps."""
    per_locus: List[Dict[str, str]] = []
    taxa = set()
    for e in plan.entries:
        msa = AlignIO.read(str(e.locus.path), "fasta")
        if msa.get_alignment_length() != e.length:
            raise MalformedLocusData(e.locus.locus_id, f"{e.locus.path} changed length since it was ranked")
        rows = {rec.id: str(rec.seq) for rec in msa}
        taxa.update(rows)
        per_locus.append(rows)

    records = []
    for taxon in sorted(taxa):
        seq = "".join(rows.get(taxon, GAP * e.length) for rows, e in zip(per_locus, plan.entries))
        records.append(SeqRecord(Seq(seq), id=taxon, description="", annotations={"molecule_type": "DNA"}))
    return MultipleSeqAlignment(records)


def write_supermatrix(plan: PartitionPlan, fasta_path: Path, phylip_path: Optional[Path] = None) -> MultipleSeqAlignment:
    msa = concatenate(plan)
    AlignIO.write(msa, str(fasta_path), "fasta")
    if phylip_path is not None:
        AlignIO.write(msa, str(phylip_path), "phylip-relaxed")
    LOG.info("Supermatrix: %d taxa x %d columns -> %s", len(msa), plan.total_length, fasta_path)
    return msa
