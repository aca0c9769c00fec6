# src/sisrs/tools/preflight.py
from __future__ import annotations

import shutil
from typing import Callable, Dict, Iterable, List, Optional

from sisrs.config.schema import RunConfig
from sisrs.errors import MissingDependency
from sisrs.utils.logger import get_logger

LOG = get_logger("preflight")

ALIGNER_TOOLS = ("bowtie2", "bowtie2-build", "samtools")
SUBSAMPLE_TOOLS = ("seqtk",)
MSA_TOOLS = ("mafft",)

Which = Callable[[str], Optional[str]]


def required_tools(config: RunConfig, stages: Iterable[str] = ()) -> List[str]:
    """
    Executables a run needs: the configured assembler and the aligner/pileup
    tools always; seqtk and mafft only when their stages are in the run.
    """
    stages = set(stages)
    tools: List[str] = [*config.assembler_kind.executables, *ALIGNER_TOOLS]
    if "subsample" in stages:
        tools += SUBSAMPLE_TOOLS
    if "build_gene_alignments" in stages:
        tools += MSA_TOOLS
    # de-duplicate, keep order
    return list(dict.fromkeys(tools))


def tool_status(tools: Iterable[str], which: Which = shutil.which) -> Dict[str, Optional[str]]:
    return {t: which(t) for t in tools}


def check_dependencies(tools: Iterable[str], which: Which = shutil.which) -> None:
    """Raise MissingDependency for the first tool not resolvable on PATH."""
    for tool, path in tool_status(tools, which).items():
        if path is None:
            raise MissingDependency(tool)
        LOG.debug("[check] %s -> %s", tool, path)
