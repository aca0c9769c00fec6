# src/sisrs/sites/aggregate.py
"""
Site-call aggregation.

Each taxon's fixed-site calls arrive as a consensus FASTA over the contigs
(one base or N per contig position). They are merged into one matrix of
variable sites, written as NEXUS with a companion site table, and filtered
for missing data.
"""
from __future__ import annotations

import csv
import shutil
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Mapping, Sequence, Set, Tuple

from Bio import AlignIO, SeqIO
from Bio.Align import MultipleSeqAlignment
from Bio.Seq import Seq
from Bio.SeqRecord import SeqRecord

from sisrs.errors import PreconditionNotMet
from sisrs.utils.logger import get_logger

LOG = get_logger("sites")

Site = Tuple[str, int]          # (contig, 1-based position)
CALLED_BASES = frozenset("ACGT")
UNCALLED = "N"
UNCALLED_CHARS = frozenset("N?-n")


@dataclass
class SiteAlignment:
    taxa: List[str]
    sites: List[Site]
    rows: Dict[str, str]
    called: List[int] = field(default_factory=list)

    @property
    def length(self) -> int:
        return len(self.sites)


def site_id(site: Site) -> str:
    return f"{site[0]}/{site[1]}"


def parse_site_id(text: str) -> Site:
    contig, _, pos = text.rpartition("/")
    if not contig or not pos.isdigit():
        raise ValueError(f"malformed site id: {text!r}")
    return contig, int(pos)


def load_fixed_sites(path: Path) -> Dict[Site, str]:
    """Called sites of one taxon: {(contig, pos): base}, uncalled positions omitted."""
    calls: Dict[Site, str] = {}
    for record in SeqIO.parse(str(path), "fasta"):
        seq = str(record.seq).upper()
        for i, base in enumerate(seq, start=1):
            if base in CALLED_BASES:
                calls[(record.id, i)] = base
    LOG.debug("%s: %d called site(s)", path.name, len(calls))
    return calls


def build_alignment(calls: Mapping[str, Mapping[Site, str]]) -> SiteAlignment:
    """
    Keep sites called in at least two taxa that show at least two different
    bases. Sites are ordered by contig, then position; taxa by name.
    """
    taxa = sorted(calls)
    candidates: Set[Site] = set()
    for taxon in taxa:
        candidates.update(calls[taxon])

    kept: List[Site] = []
    called: List[int] = []
    for site in sorted(candidates):
        bases = [calls[t][site] for t in taxa if site in calls[t]]
        if len(bases) >= 2 and len(set(bases)) >= 2:
            kept.append(site)
            called.append(len(bases))

    rows = {t: "".join(calls[t].get(s, UNCALLED) for s in kept) for t in taxa}
    LOG.info("Combined alignment: %d taxa x %d variable site(s)", len(taxa), len(kept))
    return SiteAlignment(taxa=taxa, sites=kept, rows=rows, called=called)


def _to_msa(taxa: Sequence[str], rows: Mapping[str, str]) -> MultipleSeqAlignment:
    return MultipleSeqAlignment([
        SeqRecord(Seq(rows[t]), id=t, description="", annotations={"molecule_type": "DNA"})
        for t in taxa
    ])


def _write_empty_nexus(taxa: Sequence[str], path: Path) -> None:
    # Bio.AlignIO refuses zero-length records; the matrix lists taxa only
    lines = [
        "#NEXUS",
        "begin data;",
        f"dimensions ntax={len(taxa)} nchar=0;",
        "format datatype=dna missing=? gap=-;",
        "matrix",
        *taxa,
        ";",
        "end;",
    ]
    path.write_text("\n".join(lines) + "\n", encoding="utf-8")


def write_nexus(taxa: Sequence[str], rows: Mapping[str, str], path: Path) -> None:
    if not taxa or not any(rows[t] for t in taxa):
        _write_empty_nexus(taxa, path)
        return
    AlignIO.write(_to_msa(taxa, rows), str(path), "nexus")


def write_site_table(sites: Sequence[Site], called: Sequence[int], path: Path) -> None:
    with path.open("w", newline="", encoding="utf-8") as fh:
        w = csv.writer(fh, delimiter="\t")
        w.writerow(["site", "called"])
        for s, n in zip(sites, called):
            w.writerow([site_id(s), n])


def read_site_table(path: Path) -> List[Tuple[Site, int]]:
    out: List[Tuple[Site, int]] = []
    with path.open(newline="", encoding="utf-8") as fh:
        for row in csv.DictReader(fh, delimiter="\t"):
            out.append((parse_site_id(row["site"]), int(row["called"])))
    return out


def write_alignment(alignment: SiteAlignment, nexus_path: Path, sites_path: Path) -> None:
    if alignment.length == 0:
        LOG.warning("No variable sites shared by two or more taxa; alignment is empty")
    write_nexus(alignment.taxa, alignment.rows, nexus_path)
    write_site_table(alignment.sites, alignment.called, sites_path)
    LOG.info("Wrote %s (%d sites)", nexus_path, alignment.length)


def aggregate(fixed_sites: Mapping[str, Path], nexus_path: Path, sites_path: Path) -> SiteAlignment:
    """Read every taxon's fixed-site FASTA and write the combined alignment."""
    calls = {taxon: load_fixed_sites(p) for taxon, p in fixed_sites.items()}
    alignment = build_alignment(calls)
    write_alignment(alignment, nexus_path, sites_path)
    return alignment


def filter_missing(
    nexus_path: Path,
    sites_path: Path,
    missing: int,
    out_nexus: Path,
    out_sites: Path,
) -> int:
    """
    Drop columns where more than `missing` taxa lack a call. Returns the number
    of sites kept.
    """
    table = read_site_table(sites_path)
    if not table:
        # nothing to filter; the empty matrix is carried over as is
        shutil.copyfile(nexus_path, out_nexus)
        write_site_table([], [], out_sites)
        LOG.info("Missing-data filter: input alignment has no sites -> %s", out_nexus)
        return 0

    msa = AlignIO.read(str(nexus_path), "nexus")
    if len(table) != msa.get_alignment_length():
        raise PreconditionNotMet(
            "filter_missing",
            (sites_path,),
            reason=f"site table lists {len(table)} sites but {nexus_path.name} has "
                   f"{msa.get_alignment_length()} columns",
        )

    rows = [str(rec.seq) for rec in msa]
    keep: List[int] = []
    for col in range(msa.get_alignment_length()):
        absent = sum(1 for r in rows if r[col] in UNCALLED_CHARS)
        if absent <= missing:
            keep.append(col)

    taxa = [rec.id for rec in msa]
    filtered = {t: "".join(r[c] for c in keep) for t, r in zip(taxa, rows)}
    write_nexus(taxa, filtered, out_nexus)
    write_site_table([table[c][0] for c in keep], [table[c][1] for c in keep], out_sites)
    LOG.info("Missing-data filter (<= %d absent): kept %d of %d site(s) -> %s",
             missing, len(keep), len(table), out_nexus)
    return len(keep)
