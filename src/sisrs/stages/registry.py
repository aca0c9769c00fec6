# src/sisrs/stages/registry.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Tuple

from sisrs.errors import UnknownStage
from sisrs.stages.base import Stage
from sisrs.stages.loci import LOCI_STAGES
from sisrs.stages.sites import FILTER_MISSING, SITE_STAGES

SITES = "sites"
LOCI = "loci"

# camelCase command names accepted for compatibility with the shell front-end
ALIASES: Dict[str, str] = {
    "subSample": "subsample",
    "buildContigs": "build_contigs",
    "alignContigs": "align_contigs",
    "mapContigs": "map_contigs",
    "identifyFixedSites": "identify_fixed_sites",
    "outputAlignment": "output_alignment",
    "copyReferenceContigs": "copy_reference_contigs",
    "alignToConservedContigs": "align_to_conserved_contigs",
    "mergeAlignments": "merge_alignments",
    "callAlleles": "call_alleles",
    "buildGeneAlignments": "build_gene_alignments",
    "selectLoci": "select_loci",
}


@dataclass(frozen=True)
class Registry:
    """Ordered stage sequences plus the finalization stage run after every range."""
    sites: Tuple[Stage, ...]
    loci: Tuple[Stage, ...]
    finalize: Stage

    def stage_names(self) -> List[str]:
        return [s.name for s in (*self.sites, *self.loci)]

    def commands(self) -> List[str]:
        return [SITES, LOCI, *self.stage_names()]

    def canonical(self, command: str) -> str:
        name = ALIASES.get(command, command).replace("-", "_")
        if name not in self.commands():
            raise UnknownStage(command)
        return name

    def resolve(self, command: str) -> Tuple[Stage, ...]:
        """
        Stages to run for `command`, in order. A pipeline name starts at its
        first stage; a stage name runs from that stage to the end of its own
        sequence.
        """
        name = self.canonical(command)
        if name == SITES:
            return self.sites
        if name == LOCI:
            return (*self.sites, *self.loci)
        for seq in (self.sites, self.loci):
            names = [s.name for s in seq]
            if name in names:
                return seq[names.index(name):]
        raise UnknownStage(command)


DEFAULT_REGISTRY = Registry(sites=SITE_STAGES, loci=LOCI_STAGES, finalize=FILTER_MISSING)
