# src/sisrs/tools/commands.py
from __future__ import annotations

from pathlib import Path
from typing import Optional, Sequence

from sisrs.inventory.samples import ReadSet
from sisrs.utils.runner import run_command, run_piped


# ---------------------------
# Subsampling
# ---------------------------

def seqtk_sample(
    reads: Path,
    n_reads: int,
    output: Path,
    *,
    seed: int = 100,
    dry_run: bool = False,
) -> None:
    cmd: list[str] = ["seqtk", "sample", f"-s{seed}", str(reads), str(n_reads)]
    run_command(cmd, stdout_path=output, dry_run=dry_run)


# ---------------------------
# bowtie2 / samtools
# ---------------------------

def bowtie2_build(
    reference: Path,
    index_prefix: Path,
    *,
    threads: int = 1,
    dry_run: bool = False,
) -> None:
    cmd: list[str] = [
        "bowtie2-build",
        "--threads", str(threads),
        str(reference),
        str(index_prefix),
    ]
    run_command(cmd, dry_run=dry_run)


def _bowtie2_inputs(read_set: ReadSet) -> list[str]:
    if read_set.paired:
        r1, r2 = read_set.files
        return ["-1", str(r1), "-2", str(r2)]
    return ["-U", str(read_set.files[0])]


def align_sorted(
    *,
    index_prefix: Path,
    output_bam: Path,
    read_set: Optional[ReadSet] = None,
    fasta_input: Optional[Path] = None,
    threads: int = 1,
    dry_run: bool = False,
) -> None:
    """
    bowtie2 --local | samtools view -b -F 4 | samtools sort -o <bam>

    Either a read set (FASTQ, paired or not) or a FASTA file of contigs.
    Unmapped records are dropped before sorting.
    """
    if (read_set is None) == (fasta_input is None):
        raise ValueError("pass exactly one of read_set or fasta_input")
    inputs = _bowtie2_inputs(read_set) if read_set is not None else ["-f", "-U", str(fasta_input)]
    bowtie2 = [
        "bowtie2",
        "-p", str(threads),
        "-N", "1",
        "--local",
        "-x", str(index_prefix),
        *inputs,
    ]
    view = ["samtools", "view", "-b", "-F", "4", "-"]
    sort = ["samtools", "sort", "-o", str(output_bam), "-"]
    run_piped([bowtie2, view, sort], dry_run=dry_run)


def samtools_merge(
    output_bam: Path,
    inputs: Sequence[Path],
    *,
    dry_run: bool = False,
) -> None:
    cmd: list[str] = ["samtools", "merge", "-f", str(output_bam), *map(str, inputs)]
    run_command(cmd, dry_run=dry_run)


def samtools_index(bam: Path, *, dry_run: bool = False) -> None:
    run_command(["samtools", "index", str(bam)], dry_run=dry_run)


def samtools_faidx(fasta: Path, *, dry_run: bool = False) -> None:
    run_command(["samtools", "faidx", str(fasta)], dry_run=dry_run)


def samtools_mpileup(
    bam: Path,
    reference: Path,
    output: Path,
    *,
    dry_run: bool = False,
) -> None:
    cmd: list[str] = [
        "samtools", "mpileup",
        "-f", str(reference),
        "-o", str(output),
        str(bam),
    ]
    run_command(cmd, dry_run=dry_run)


def samtools_consensus(
    bam: Path,
    output: Path,
    *,
    min_depth: int,
    call_fraction: float,
    keep_coordinates: bool,
    dry_run: bool = False,
) -> None:
    """
    Simple-mode consensus: a base is called when depth >= min_depth and its
    share of the reads >= call_fraction, otherwise N.

    keep_coordinates=True reports every reference position (including contigs
    with no reads) and suppresses insertions, so record positions line up with
    the reference; used for per-site calls.
    """
    cmd: list[str] = [
        "samtools", "consensus",
        "-m", "simple",
        "-f", "fasta",
        "-d", str(min_depth),
        "-c", str(call_fraction),
        "-H", "1",
    ]
    if keep_coordinates:
        cmd += ["-aa", "--show-ins", "no", "--show-del", "yes"]
    else:
        cmd += ["-a"]
    cmd += ["-o", str(output), str(bam)]
    run_command(cmd, dry_run=dry_run)


# ---------------------------
# Multiple sequence alignment
# ---------------------------

def mafft_align(
    input_fasta: Path,
    output_fasta: Path,
    *,
    threads: int = 1,
    dry_run: bool = False,
) -> None:
    cmd: list[str] = [
        "mafft",
        "--auto",
        "--quiet",
        "--thread", str(threads),
        str(input_fasta),
    ]
    run_command(cmd, stdout_path=output_fasta, dry_run=dry_run)


def run_assembler_commands(
    commands: Sequence[Sequence[str]],
    *,
    cwd: Optional[Path] = None,
    threads: int = 1,
    dry_run: bool = False,
) -> None:
    env = {"OMP_NUM_THREADS": str(threads)}
    for cmd in commands:
        run_command(cmd, cwd=cwd, env=env, dry_run=dry_run)
