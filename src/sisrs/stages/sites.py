# src/sisrs/stages/sites.py
"""
Stages of the site pipeline:

    subsample -> build_contigs -> align_contigs -> map_contigs
              -> identify_fixed_sites -> output_alignment

plus the missing-data filter run once every requested stage has finished.
"""
from __future__ import annotations

import math
from functools import partial
from pathlib import Path
from typing import List, Optional

from sisrs.artifacts import ArtifactKind as K, bowtie2_index_files
from sisrs.errors import StageFailed
from sisrs.inventory.samples import ReadSet, Taxon
from sisrs.sites import aggregate
from sisrs.stages.base import Precondition, Stage, StageContext, combine, require
from sisrs.tools import commands as tools
from sisrs.tools.assemblers import Minia
from sisrs.utils.logger import get_logger
from sisrs.utils.pool import run_units

LOG = get_logger("stages.sites")


# ---------------------------
# subsample
# ---------------------------

def reads_per_set(ctx: StageContext, taxon: Taxon, read_set: ReadSet) -> int:
    """
    Reads to draw from one read set so that all taxa together reach
    `coverage` x `genome_size` bases; each mate of a pair gets half.
    """
    cfg = ctx.config
    per_taxon_bases = cfg.coverage * (cfg.genome_size or 0) / max(len(ctx.taxa), 1)
    per_set_bases = per_taxon_bases / max(len(taxon.read_sets), 1)
    n = math.ceil(per_set_bases / cfg.read_length)
    return max(n // 2 if read_set.paired else n, 1)


def _subsample_name(read_set: ReadSet, mate: int) -> str:
    return f"{read_set.stem}_R{mate}" if read_set.paired else read_set.stem


def _subsample_taxon(ctx: StageContext, taxon: Taxon) -> None:
    cfg = ctx.config
    for rs in taxon.read_sets:
        n = reads_per_set(ctx, taxon, rs)
        for mate, reads in enumerate(rs.files, start=1):
            out = ctx.path(K.SUBSAMPLE_READS, taxon, _subsample_name(rs, mate))
            tools.seqtk_sample(reads, n, out, seed=cfg.seed)


def _subsample_pre(ctx: StageContext) -> Precondition:
    if not ctx.config.genome_size:
        return Precondition(reason="genome size is not set")
    return require(f for t in ctx.taxa for f in t.read_files)


def _subsample(ctx: StageContext) -> None:
    ctx.path(K.SUBSAMPLE_DIR).mkdir(parents=True, exist_ok=True)
    units = {t.name: partial(_subsample_taxon, ctx, t) for t in ctx.taxa}
    run_units("subsample", units, ctx.config.processors)


# ---------------------------
# build_contigs
# ---------------------------

def _subsampled_reads(ctx: StageContext) -> List[Path]:
    d = ctx.path(K.SUBSAMPLE_DIR)
    return sorted(d.glob("*.fastq")) if d.is_dir() else []


def _build_contigs_pre(ctx: StageContext) -> Precondition:
    if _subsampled_reads(ctx):
        return Precondition()
    return Precondition(missing=(ctx.path(K.SUBSAMPLE_DIR),), reason="no subsampled reads")


def _assemble(ctx: StageContext) -> None:
    cfg = ctx.config
    assembler = cfg.assembler_kind
    out_dir = ctx.path(K.CONTIGS_DIR)
    out_dir.mkdir(parents=True, exist_ok=True)
    reads = _subsampled_reads(ctx)
    if isinstance(assembler, Minia):
        assembler.reads_list(out_dir).write_text("\n".join(str(r) for r in reads) + "\n", encoding="utf-8")

    cmds = assembler.commands(kmer=cfg.kmer, processors=cfg.processors, reads=reads, out_dir=out_dir)
    tools.run_assembler_commands(cmds, cwd=out_dir, threads=cfg.processors)

    native = out_dir / assembler.native_contigs
    contigs = ctx.path(K.CONTIGS)
    if native != contigs and native.exists():
        native.replace(contigs)
    if not contigs.exists():
        LOG.error("%s exited cleanly but wrote no %s", assembler.name, native)
        raise StageFailed("build_contigs", 0, unit="assembly")


def _build_contigs(ctx: StageContext) -> None:
    LOG.info("Assembling %d subsampled read file(s) with %s (k=%d)",
             len(_subsampled_reads(ctx)), ctx.config.assembler, ctx.config.kmer)
    run_units("build_contigs", {"assembly": partial(_assemble, ctx)}, 1)


# ---------------------------
# align_contigs
# ---------------------------

def align_read_sets(ctx: StageContext, taxon: Taxon, index: Path, bam_kind: K, merged_kind: Optional[K]) -> None:
    bams = []
    for rs in taxon.read_sets:
        bam = ctx.path(bam_kind, taxon, rs.stem)
        bam.parent.mkdir(parents=True, exist_ok=True)
        tools.align_sorted(index_prefix=index, read_set=rs, output_bam=bam)
        bams.append(bam)
    if merged_kind is not None:
        merged = ctx.path(merged_kind, taxon)
        tools.samtools_merge(merged, bams)
        tools.samtools_index(merged)


def _align_contigs_outputs(ctx: StageContext) -> List[Path]:
    out = bowtie2_index_files(ctx.path(K.CONTIGS_INDEX))
    for t in ctx.taxa:
        out += [ctx.path(K.READSET_BAM, t, rs.stem) for rs in t.read_sets]
        bam = ctx.path(K.TAXON_BAM, t)
        out += [bam, bam.with_name(bam.name + ".bai")]
    return out


def _align_contigs(ctx: StageContext) -> None:
    index = ctx.path(K.CONTIGS_INDEX)
    tools.bowtie2_build(ctx.path(K.CONTIGS), index, threads=ctx.config.processors)
    units = {t.name: partial(align_read_sets, ctx, t, index, K.READSET_BAM, K.TAXON_BAM) for t in ctx.taxa}
    run_units("align_contigs", units, ctx.config.processors)


# ---------------------------
# map_contigs
# ---------------------------

def _map_contigs_pre(ctx: StageContext) -> Precondition:
    checks = [require([ctx.path(K.CONTIGS)])]
    if ctx.config.reference is not None:
        checks.append(require([ctx.config.reference], reason="reference genome not found"))
    return combine(*checks)


def _map_contigs_outputs(ctx: StageContext) -> List[Path]:
    return [*bowtie2_index_files(ctx.path(K.REFERENCE_INDEX)), ctx.path(K.CONTIGS_REF_BAM)]


def _map_contigs(ctx: StageContext) -> None:
    ref = ctx.config.reference
    if ref is None:
        LOG.info("No reference genome given; contigs are not mapped")
        return
    index = ctx.path(K.REFERENCE_INDEX)
    index.parent.mkdir(parents=True, exist_ok=True)

    def _unit() -> None:
        tools.bowtie2_build(ref, index, threads=ctx.config.processors)
        tools.align_sorted(
            index_prefix=index,
            fasta_input=ctx.path(K.CONTIGS),
            output_bam=ctx.path(K.CONTIGS_REF_BAM),
            threads=ctx.config.processors,
        )

    run_units("map_contigs", {"reference": _unit}, 1)


# ---------------------------
# identify_fixed_sites
# ---------------------------

def _fixed_sites_taxon(ctx: StageContext, taxon: Taxon) -> None:
    cfg = ctx.config
    bam = ctx.path(K.TAXON_BAM, taxon)
    tools.samtools_mpileup(bam, ctx.path(K.CONTIGS), ctx.path(K.PILEUP, taxon))
    tools.samtools_consensus(
        bam,
        ctx.path(K.FIXED_SITES, taxon),
        min_depth=cfg.min_read,
        call_fraction=cfg.threshold,
        keep_coordinates=True,
    )


def _fixed_sites_pre(ctx: StageContext) -> Precondition:
    return require([ctx.path(K.CONTIGS), *ctx.per_taxon(K.TAXON_BAM)])


def _fixed_sites_outputs(ctx: StageContext) -> List[Path]:
    contigs = ctx.path(K.CONTIGS)
    return [contigs.with_name(contigs.name + ".fai"), *ctx.per_taxon(K.PILEUP), *ctx.per_taxon(K.FIXED_SITES)]


def _identify_fixed_sites(ctx: StageContext) -> None:
    tools.samtools_faidx(ctx.path(K.CONTIGS))
    units = {t.name: partial(_fixed_sites_taxon, ctx, t) for t in ctx.taxa}
    run_units("identify_fixed_sites", units, ctx.config.processors)


# ---------------------------
# output_alignment / filter_missing
# ---------------------------

def _output_alignment(ctx: StageContext) -> None:
    aggregate.aggregate(
        {t.name: ctx.path(K.FIXED_SITES, t) for t in ctx.taxa},
        ctx.path(K.ALIGNMENT),
        ctx.path(K.ALIGNMENT_SITES),
    )


def _filter_missing(ctx: StageContext) -> None:
    aggregate.filter_missing(
        ctx.path(K.ALIGNMENT),
        ctx.path(K.ALIGNMENT_SITES),
        ctx.config.missing,
        ctx.path(K.FILTERED_ALIGNMENT),
        ctx.path(K.FILTERED_SITES),
    )


SUBSAMPLE = Stage(
    name="subsample",
    summary="Subsample each taxon's reads to a shared coverage target (seqtk).",
    precondition=_subsample_pre,
    action=_subsample,
    outputs=lambda ctx: [ctx.path(K.SUBSAMPLE_DIR)],
)
BUILD_CONTIGS = Stage(
    name="build_contigs",
    summary="Assemble the pooled subsampled reads into contigs.",
    precondition=_build_contigs_pre,
    action=_build_contigs,
    outputs=lambda ctx: [ctx.path(K.CONTIGS_DIR)],
    needs_taxa=False,
)
ALIGN_CONTIGS = Stage(
    name="align_contigs",
    summary="Align every taxon's reads to the contigs (bowtie2 + samtools).",
    precondition=lambda ctx: require([ctx.path(K.CONTIGS)]),
    action=_align_contigs,
    outputs=_align_contigs_outputs,
)
MAP_CONTIGS = Stage(
    name="map_contigs",
    summary="Map contigs onto the reference genome, when one is given.",
    precondition=_map_contigs_pre,
    action=_map_contigs,
    outputs=_map_contigs_outputs,
    needs_taxa=False,
)
IDENTIFY_FIXED_SITES = Stage(
    name="identify_fixed_sites",
    summary="Pile up each taxon's reads and call fixed sites.",
    precondition=_fixed_sites_pre,
    action=_identify_fixed_sites,
    outputs=_fixed_sites_outputs,
)
OUTPUT_ALIGNMENT = Stage(
    name="output_alignment",
    summary="Combine per-taxon fixed sites into alignment.nex.",
    precondition=lambda ctx: require(ctx.per_taxon(K.FIXED_SITES)),
    action=_output_alignment,
    outputs=lambda ctx: [ctx.path(K.ALIGNMENT), ctx.path(K.ALIGNMENT_SITES)],
)
FILTER_MISSING = Stage(
    name="filter_missing",
    summary="Drop alignment sites missing in more taxa than allowed.",
    precondition=lambda ctx: require([ctx.path(K.ALIGNMENT), ctx.path(K.ALIGNMENT_SITES)]),
    action=_filter_missing,
    outputs=lambda ctx: [ctx.path(K.FILTERED_ALIGNMENT), ctx.path(K.FILTERED_SITES)],
    needs_taxa=False,
)

SITE_STAGES = (SUBSAMPLE, BUILD_CONTIGS, ALIGN_CONTIGS, MAP_CONTIGS, IDENTIFY_FIXED_SITES, OUTPUT_ALIGNMENT)
