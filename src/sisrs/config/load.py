# src/sisrs/config/load.py
from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Tuple

import yaml
from pydantic import ValidationError

from sisrs.config.schema import RunConfig
from sisrs.errors import ConfigError
from sisrs.tools.assemblers import resolve_assembler
from sisrs.utils.logger import get_logger

LOG = get_logger("config")

# Values used when neither the CLI nor a params file sets a field.
# `missing` and `outdir` are derived, see resolve_config().
DEFAULTS: Dict[str, Any] = {
    "genome_size": None,
    "kmer": 21,
    "assembler": "velvet",
    "read_length": 100,
    "coverage": 10,
    "seed": 100,
    "processors": 1,
    "min_read": 3,
    "threshold": 1.0,
    "loci_length": 100000,
    "reads_dir": None,
    "reference": None,
}

_DERIVED = ("missing", "outdir")


def load_params_file(path: Optional[Path]) -> Dict[str, Any]:
    """Read a YAML params file; accepts a top-level mapping or one under 'params:'."""
    if not path:
        return {}
    try:
        data = yaml.safe_load(Path(path).read_text(encoding="utf-8"))
    except (OSError, yaml.YAMLError) as e:
        raise ConfigError(f"cannot read params file {path}: {e}") from e
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError("Params file must contain a mapping at the top level.")
    params = data.get("params", data)
    if not isinstance(params, dict):
        raise ConfigError("'params' in the params file must be a mapping.")
    unknown = sorted(set(params) - set(DEFAULTS) - set(_DERIVED))
    if unknown:
        raise ConfigError(f"unknown keys in params file {path}: {', '.join(unknown)}")
    return params


def resolve_locations(flags: Mapping[str, Any], params: Optional[Mapping[str, Any]] = None) -> Tuple[Path, Path]:
    """Reads directory and output directory; the output defaults to the reads directory."""
    params = params or {}
    reads = flags.get("reads_dir") or params.get("reads_dir") or Path.cwd()
    out = flags.get("outdir") or params.get("outdir")
    reads_dir = Path(reads).resolve()
    return reads_dir, (Path(out).resolve() if out else reads_dir)


def default_missing(taxon_count: int) -> int:
    """A site or locus must be present in at least two taxa."""
    return max(taxon_count - 2, 0)


def resolve_config(
    flags: Mapping[str, Any],
    taxon_count: int,
    *,
    params: Optional[Mapping[str, Any]] = None,
    require_genome_size: bool = False,
) -> RunConfig:
    """
    Merge CLI flags (None = not given) over params-file values over DEFAULTS,
    derive `missing` and `outdir`, and build the frozen RunConfig.
    """
    params = params or {}
    merged: Dict[str, Any] = {}
    for key in (*DEFAULTS, *_DERIVED):
        if flags.get(key) is not None:
            merged[key] = flags[key]
        elif params.get(key) is not None:
            merged[key] = params[key]
        else:
            merged[key] = DEFAULTS.get(key)

    # fail on the assembler before anything else is looked at
    merged["assembler"] = resolve_assembler(str(merged["assembler"])).name

    if require_genome_size and merged["genome_size"] is None:
        raise ConfigError("--genome-size is required when the run includes subsampling")

    merged["reads_dir"], merged["outdir"] = resolve_locations(flags, params)
    if merged["reference"] is not None:
        merged["reference"] = Path(merged["reference"]).resolve()

    if merged["missing"] is None:
        merged["missing"] = default_missing(taxon_count)
        LOG.info("Missing-data allowance not set; using %d (taxa - 2)", merged["missing"])
    merged["taxon_count"] = taxon_count

    try:
        cfg = RunConfig(**merged)
    except ValidationError as e:
        raise ConfigError(f"invalid configuration:\n{e}") from e
    LOG.debug("Resolved config: %r", cfg)
    return cfg
