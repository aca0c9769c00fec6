# src/sisrs/stages/loci.py
"""
Stages that turn the site pipeline's output into a locus supermatrix:

    copy_reference_contigs -> align_to_conserved_contigs -> merge_alignments
        -> call_alleles -> build_gene_alignments -> select_loci
"""
from __future__ import annotations

from functools import partial
from pathlib import Path
from typing import List, Set

from Bio import SeqIO

from sisrs.artifacts import ArtifactKind as K, bowtie2_index_files
from sisrs.errors import PreconditionNotMet
from sisrs.inventory.samples import Taxon
from sisrs.loci import alignments
from sisrs.loci.candidates import load_candidates
from sisrs.loci.ranker import select_loci
from sisrs.loci.supermatrix import write_partitions, write_supermatrix
from sisrs.sites.aggregate import read_site_table
from sisrs.stages.base import Stage, StageContext, require, require_index
from sisrs.stages.sites import align_read_sets
from sisrs.tools import commands as tools
from sisrs.utils.logger import get_logger
from sisrs.utils.pool import run_units

LOG = get_logger("stages.loci")


def conserved_contigs(ctx: StageContext) -> Set[str]:
    """Contigs holding at least one alignment site within the missing-data allowance."""
    cfg = ctx.config
    keep: Set[str] = set()
    for (contig, _pos), called in read_site_table(ctx.path(K.ALIGNMENT_SITES)):
        if cfg.taxon_count - called <= cfg.missing:
            keep.add(contig)
    return keep


def _copy_reference_contigs(ctx: StageContext) -> None:
    keep = conserved_contigs(ctx)
    if not keep:
        raise PreconditionNotMet(
            "copy_reference_contigs",
            reason=f"no contig has a site present in at least {ctx.config.taxon_count - ctx.config.missing} taxa",
        )
    out = ctx.path(K.CONSERVED_CONTIGS)
    out.parent.mkdir(parents=True, exist_ok=True)
    records = (r for r in SeqIO.parse(str(ctx.path(K.CONTIGS)), "fasta") if r.id in keep)
    n = SeqIO.write(records, str(out), "fasta")
    LOG.info("Copied %d conserved contig(s) -> %s", n, out)
    tools.bowtie2_build(out, ctx.path(K.CONSERVED_INDEX), threads=ctx.config.processors)


def _align_to_conserved(ctx: StageContext) -> None:
    index = ctx.path(K.CONSERVED_INDEX)
    units = {t.name: partial(align_read_sets, ctx, t, index, K.LOCI_READSET_BAM, None) for t in ctx.taxa}
    run_units("align_to_conserved_contigs", units, ctx.config.processors)


def _loci_readset_bams(ctx: StageContext) -> List[Path]:
    return [ctx.path(K.LOCI_READSET_BAM, t, rs.stem) for t in ctx.taxa for rs in t.read_sets]


def _merge_taxon(ctx: StageContext, taxon: Taxon) -> None:
    merged = ctx.path(K.LOCI_TAXON_BAM, taxon)
    tools.samtools_merge(merged, [ctx.path(K.LOCI_READSET_BAM, taxon, rs.stem) for rs in taxon.read_sets])
    tools.samtools_index(merged)


def _merge_alignments(ctx: StageContext) -> None:
    units = {t.name: partial(_merge_taxon, ctx, t) for t in ctx.taxa}
    run_units("merge_alignments", units, ctx.config.processors)


def _merged_outputs(ctx: StageContext) -> List[Path]:
    out: List[Path] = []
    for bam in ctx.per_taxon(K.LOCI_TAXON_BAM):
        out += [bam, bam.with_name(bam.name + ".bai")]
    return out


def _call_taxon(ctx: StageContext, taxon: Taxon) -> None:
    tools.samtools_consensus(
        ctx.path(K.LOCI_TAXON_BAM, taxon),
        ctx.path(K.ALLELES, taxon),
        min_depth=ctx.config.min_read,
        call_fraction=ctx.config.threshold,
        keep_coordinates=False,
    )


def _call_alleles(ctx: StageContext) -> None:
    units = {t.name: partial(_call_taxon, ctx, t) for t in ctx.taxa}
    run_units("call_alleles", units, ctx.config.processors)


def _build_gene_alignments(ctx: StageContext) -> None:
    loci = alignments.collect_alleles({t.name: ctx.path(K.ALLELES, t) for t in ctx.taxa})
    written = alignments.write_unaligned(loci, ctx.path(K.UNALIGNED_DIR))
    ctx.path(K.ALIGNED_DIR).mkdir(parents=True, exist_ok=True)

    units = {
        locus: partial(
            tools.mafft_align,
            ctx.path(K.UNALIGNED_LOCUS, name=locus),
            ctx.path(K.ALIGNED_LOCUS, name=locus),
        )
        for locus in written
    }
    run_units("build_gene_alignments", units, ctx.config.processors)

    ranked = alignments.rank_by_variability({locus: ctx.path(K.ALIGNED_LOCUS, name=locus) for locus in written})
    alignments.write_locus_list(ranked, ctx.path(K.LOCUS_LIST))


def _select_loci(ctx: StageContext) -> None:
    cfg = ctx.config
    candidates = load_candidates(ctx.path(K.LOCUS_LIST), ctx.path(K.ALIGNED_DIR))
    plan = select_loci(candidates, cfg.taxon_count, cfg.loci_length)
    write_partitions(plan, ctx.path(K.PARTITIONS))
    if not plan.entries:
        LOG.warning("No locus is shared by two or more taxa; no supermatrix written")
        return
    write_supermatrix(plan, ctx.path(K.SUPERMATRIX), ctx.path(K.SUPERMATRIX_PHYLIP))


COPY_REFERENCE_CONTIGS = Stage(
    name="copy_reference_contigs",
    summary="Copy contigs with well-covered alignment sites and index them.",
    precondition=lambda ctx: require([ctx.path(K.CONTIGS), ctx.path(K.ALIGNMENT_SITES)]),
    action=_copy_reference_contigs,
    outputs=lambda ctx: [ctx.path(K.CONSERVED_CONTIGS), *bowtie2_index_files(ctx.path(K.CONSERVED_INDEX))],
)
ALIGN_TO_CONSERVED_CONTIGS = Stage(
    name="align_to_conserved_contigs",
    summary="Align every read set to the conserved contigs.",
    precondition=lambda ctx: require_index(ctx.path(K.CONSERVED_INDEX)),
    action=_align_to_conserved,
    outputs=_loci_readset_bams,
)
MERGE_ALIGNMENTS = Stage(
    name="merge_alignments",
    summary="Merge each taxon's read-set alignments into one indexed BAM.",
    precondition=lambda ctx: require(_loci_readset_bams(ctx)),
    action=_merge_alignments,
    outputs=_merged_outputs,
)
CALL_ALLELES = Stage(
    name="call_alleles",
    summary="Call a consensus allele per taxon and conserved contig.",
    precondition=lambda ctx: require(ctx.per_taxon(K.LOCI_TAXON_BAM)),
    action=_call_alleles,
    outputs=lambda ctx: ctx.per_taxon(K.ALLELES),
)
BUILD_GENE_ALIGNMENTS = Stage(
    name="build_gene_alignments",
    summary="Write per-locus FASTA, align with mafft and rank by variability.",
    precondition=lambda ctx: require(ctx.per_taxon(K.ALLELES)),
    action=_build_gene_alignments,
    outputs=lambda ctx: [ctx.path(K.UNALIGNED_DIR), ctx.path(K.ALIGNED_DIR), ctx.path(K.LOCUS_LIST)],
)
SELECT_LOCI = Stage(
    name="select_loci",
    summary="Pick loci by taxon coverage under the length budget; write the supermatrix.",
    precondition=lambda ctx: require([ctx.path(K.LOCUS_LIST), ctx.path(K.ALIGNED_DIR)]),
    action=_select_loci,
    outputs=lambda ctx: [ctx.path(K.PARTITIONS), ctx.path(K.SUPERMATRIX), ctx.path(K.SUPERMATRIX_PHYLIP)],
)

LOCI_STAGES = (
    COPY_REFERENCE_CONTIGS,
    ALIGN_TO_CONSERVED_CONTIGS,
    MERGE_ALIGNMENTS,
    CALL_ALLELES,
    BUILD_GENE_ALIGNMENTS,
    SELECT_LOCI,
)
