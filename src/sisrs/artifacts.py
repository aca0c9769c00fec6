# src/sisrs/artifacts.py
"""
Deterministic on-disk layout of every pipeline artifact.

`artifact_path` is the only place file names are built; stages and their
preconditions both go through it, so a stage always looks for exactly what
the previous stage wrote.
"""
from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Optional

from sisrs.config.schema import RunConfig
from sisrs.inventory.samples import SUBSAMPLE_DIRNAME, Taxon


class ArtifactKind(Enum):
    SUBSAMPLE_DIR = "subsample_dir"
    SUBSAMPLE_READS = "subsample_reads"
    CONTIGS_DIR = "contigs_dir"
    CONTIGS = "contigs"
    CONTIGS_INDEX = "contigs_index"
    TAXON_DIR = "taxon_dir"
    READSET_BAM = "readset_bam"
    TAXON_BAM = "taxon_bam"
    PILEUP = "pileup"
    FIXED_SITES = "fixed_sites"
    REFERENCE_DIR = "reference_dir"
    REFERENCE_INDEX = "reference_index"
    CONTIGS_REF_BAM = "contigs_ref_bam"
    ALIGNMENT = "alignment"
    ALIGNMENT_SITES = "alignment_sites"
    FILTERED_ALIGNMENT = "filtered_alignment"
    FILTERED_SITES = "filtered_sites"
    LOCI_DIR = "loci_dir"
    CONSERVED_CONTIGS = "conserved_contigs"
    CONSERVED_INDEX = "conserved_index"
    LOCI_TAXON_DIR = "loci_taxon_dir"
    LOCI_READSET_BAM = "loci_readset_bam"
    LOCI_TAXON_BAM = "loci_taxon_bam"
    ALLELES = "alleles"
    UNALIGNED_DIR = "unaligned_dir"
    UNALIGNED_LOCUS = "unaligned_locus"
    ALIGNED_DIR = "aligned_dir"
    ALIGNED_LOCUS = "aligned_locus"
    LOCUS_LIST = "locus_list"
    PARTITIONS = "partitions"
    SUPERMATRIX = "supermatrix"
    SUPERMATRIX_PHYLIP = "supermatrix_phylip"


_NEEDS_TAXON = {
    ArtifactKind.SUBSAMPLE_READS,
    ArtifactKind.TAXON_DIR,
    ArtifactKind.READSET_BAM,
    ArtifactKind.TAXON_BAM,
    ArtifactKind.PILEUP,
    ArtifactKind.FIXED_SITES,
    ArtifactKind.LOCI_TAXON_DIR,
    ArtifactKind.LOCI_READSET_BAM,
    ArtifactKind.LOCI_TAXON_BAM,
    ArtifactKind.ALLELES,
}
_NEEDS_NAME = {
    ArtifactKind.SUBSAMPLE_READS,
    ArtifactKind.READSET_BAM,
    ArtifactKind.LOCI_READSET_BAM,
    ArtifactKind.UNALIGNED_LOCUS,
    ArtifactKind.ALIGNED_LOCUS,
}


def artifact_path(
    config: RunConfig,
    kind: ArtifactKind,
    taxon: Optional[Taxon] = None,
    name: Optional[str] = None,
) -> Path:
    """Map (config, kind, taxon, name) to a path. Pure: touches no files."""
    if kind in _NEEDS_TAXON and taxon is None:
        raise ValueError(f"{kind.name} needs a taxon")
    if kind in _NEEDS_NAME and not name:
        raise ValueError(f"{kind.name} needs a name")

    out = config.outdir
    loci = out / "loci"
    contigs_dir = out / f"{config.assembler}output"
    t = taxon.name if taxon is not None else ""

    if kind is ArtifactKind.SUBSAMPLE_DIR:
        return out / SUBSAMPLE_DIRNAME
    if kind is ArtifactKind.SUBSAMPLE_READS:
        return out / SUBSAMPLE_DIRNAME / f"{t}_{name}.fastq"
    if kind is ArtifactKind.CONTIGS_DIR:
        return contigs_dir
    if kind is ArtifactKind.CONTIGS:
        return contigs_dir / "contigs.fa"
    if kind is ArtifactKind.CONTIGS_INDEX:
        return contigs_dir / "contigs"
    if kind is ArtifactKind.TAXON_DIR:
        return out / t
    if kind is ArtifactKind.READSET_BAM:
        return out / t / f"{name}.bam"
    if kind is ArtifactKind.TAXON_BAM:
        return out / t / f"{t}_sorted.bam"
    if kind is ArtifactKind.PILEUP:
        return out / t / f"{t}.pileups"
    if kind is ArtifactKind.FIXED_SITES:
        return out / t / f"{t}.fixed.fa"
    if kind is ArtifactKind.REFERENCE_DIR:
        return out / "reference"
    if kind is ArtifactKind.REFERENCE_INDEX:
        return out / "reference" / "ref"
    if kind is ArtifactKind.CONTIGS_REF_BAM:
        return out / "reference" / "contigs_ref.bam"
    if kind is ArtifactKind.ALIGNMENT:
        return out / "alignment.nex"
    if kind is ArtifactKind.ALIGNMENT_SITES:
        return out / "alignment.sites.tsv"
    if kind is ArtifactKind.FILTERED_ALIGNMENT:
        return out / f"alignment_m{config.missing}.nex"
    if kind is ArtifactKind.FILTERED_SITES:
        return out / f"alignment_m{config.missing}.sites.tsv"
    if kind is ArtifactKind.LOCI_DIR:
        return loci
    if kind is ArtifactKind.CONSERVED_CONTIGS:
        return loci / "conserved_contigs.fa"
    if kind is ArtifactKind.CONSERVED_INDEX:
        return loci / "conserved_contigs"
    if kind is ArtifactKind.LOCI_TAXON_DIR:
        return loci / t
    if kind is ArtifactKind.LOCI_READSET_BAM:
        return loci / t / f"{name}.bam"
    if kind is ArtifactKind.LOCI_TAXON_BAM:
        return loci / f"{t}.bam"
    if kind is ArtifactKind.ALLELES:
        return loci / f"{t}.alleles.fa"
    if kind is ArtifactKind.UNALIGNED_DIR:
        return loci / "unaligned"
    if kind is ArtifactKind.UNALIGNED_LOCUS:
        return loci / "unaligned" / f"{name}.fasta"
    if kind is ArtifactKind.ALIGNED_DIR:
        return loci / "aligned"
    if kind is ArtifactKind.ALIGNED_LOCUS:
        return loci / "aligned" / f"{name}.fasta"
    if kind is ArtifactKind.LOCUS_LIST:
        return loci / "locus_list.tsv"
    if kind is ArtifactKind.PARTITIONS:
        return loci / "newpartitions.txt"
    if kind is ArtifactKind.SUPERMATRIX:
        return loci / "concatenated.fasta"
    if kind is ArtifactKind.SUPERMATRIX_PHYLIP:
        return loci / "concatenated.phy"
    raise ValueError(f"unhandled artifact kind: {kind}")


def bowtie2_index_files(prefix: Path) -> list:
    """Files bowtie2-build writes for a small (non-large) index."""
    return [prefix.with_name(f"{prefix.name}.{suffix}") for suffix in
            ("1.bt2", "2.bt2", "3.bt2", "4.bt2", "rev.1.bt2", "rev.2.bt2")]
