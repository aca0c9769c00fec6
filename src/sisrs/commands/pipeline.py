# src/sisrs/commands/pipeline.py
from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, List

from sisrs.config.load import load_params_file, resolve_config, resolve_locations
from sisrs.errors import ConfigError
from sisrs.inventory.samples import SUBSAMPLE_DIRNAME, Taxon, discover_taxa
from sisrs.stages.base import StageContext
from sisrs.stages.coordinator import Coordinator
from sisrs.stages.registry import ALIASES, DEFAULT_REGISTRY, LOCI, SITES
from sisrs.tools.preflight import check_dependencies, required_tools
from sisrs.utils.logger import get_logger

LOG = get_logger("pipeline")

# argparse dest -> RunConfig field
FLAG_FIELDS = (
    "genome_size", "kmer", "processors", "min_read", "threshold", "missing",
    "assembler", "loci_length", "reads_dir", "outdir", "reference",
    "read_length", "coverage", "seed",
)


def add_run_options(p) -> None:
    """Flags shared by every pipeline command. Defaults stay None so params files can fill them."""
    p.add_argument("-g", "--genome-size", type=int, default=None,
                   help="Approximate genome size in bp (required when the run includes subsample).")
    p.add_argument("-p", "--processors", type=int, default=None, help="Worker pool size (default 1).")
    p.add_argument("-k", "--kmer", type=int, default=None, help="k-mer size for assembly (default 21).")
    p.add_argument("-d", "--reads-dir", type=Path, default=None,
                   help="Directory with one sub-directory of reads per taxon (default: cwd).")
    p.add_argument("-o", "--outdir", type=Path, default=None, help="Output directory (default: reads dir).")
    p.add_argument("-n", "--min-read", type=int, default=None,
                   help="Minimum read depth to call a site (default 3).")
    p.add_argument("-t", "--threshold", type=float, default=None,
                   help="Fraction of reads that must agree to call a site (default 1.0).")
    p.add_argument("-m", "--missing", type=int, default=None,
                   help="Taxa allowed to lack a site (default: taxa - 2).")
    p.add_argument("-a", "--assembler", type=str, default=None, help="velvet, minia or abyss (default velvet).")
    p.add_argument("-l", "--loci-length", type=int, default=None,
                   help="Target supermatrix length in columns (default 100000).")
    p.add_argument("-f", "--reference", type=Path, default=None, help="Optional reference genome FASTA.")
    p.add_argument("--read-length", type=int, default=None, help="Read length used for subsampling (default 100).")
    p.add_argument("--coverage", type=int, default=None, help="Subsampling coverage target (default 10).")
    p.add_argument("--seed", type=int, default=None, help="Subsampling seed (default 100).")
    p.add_argument("--params", type=Path, default=None, help="YAML file with default values for these flags.")


def setup_parser(subparsers, parent) -> None:
    help_for = {
        SITES: "Full site pipeline: subsample through output_alignment.",
        LOCI: "Site pipeline followed by locus selection.",
    }
    stages = {s.name: s for s in (*DEFAULT_REGISTRY.sites, *DEFAULT_REGISTRY.loci)}
    reverse_alias = {v: k for k, v in ALIASES.items()}
    for name in DEFAULT_REGISTRY.commands():
        summary = help_for.get(name) or f"Start at {name}: {stages[name].summary}"
        aliases = [reverse_alias[name]] if name in reverse_alias else []
        p = subparsers.add_parser(name, parents=[parent], aliases=aliases, help=summary, description=summary)
        add_run_options(p)
        p.set_defaults(func=run, pipeline_command=name)


def _flags(args) -> Dict[str, Any]:
    return {k: getattr(args, k, None) for k in FLAG_FIELDS}


def _discover(reads_dir: Path, outdir: Path) -> List[Taxon]:
    if not reads_dir.is_dir():
        raise ConfigError(f"reads directory does not exist: {reads_dir}")
    return discover_taxa(reads_dir, exclude=[outdir / SUBSAMPLE_DIRNAME, outdir / "loci"])


def build_context(args) -> StageContext:
    """Sample inventory + config resolution for one invocation."""
    command = args.pipeline_command
    names = [s.name for s in DEFAULT_REGISTRY.resolve(command)]
    params = load_params_file(getattr(args, "params", None))
    flags = _flags(args)

    reads_dir, outdir = resolve_locations(flags, params)
    taxa = _discover(reads_dir, outdir)
    config = resolve_config(flags, len(taxa), params=params, require_genome_size="subsample" in names)
    return StageContext(config=config, taxa=tuple(taxa))


def run(args) -> None:
    command = args.pipeline_command
    ctx = build_context(args)
    coordinator = Coordinator(ctx)
    stages = coordinator.stages_for(command)

    if getattr(args, "dry_run", False):
        for stage, pre in coordinator.plan(command):
            state = "ready" if pre.ok else f"waiting ({pre.reason or 'inputs from earlier stages'})"
            print(f"[plan] {stage.name}: {state}")
        return

    check_dependencies(required_tools(ctx.config, [s.name for s in stages]))
    ctx.config.outdir.mkdir(parents=True, exist_ok=True)
    done = coordinator.run(command)
    print(f"[ok] {command}: {len(done)} stage(s) complete -> {ctx.config.outdir}")
