import pytest

from sisrs.errors import UnknownStage
from sisrs.stages.registry import DEFAULT_REGISTRY

SITES = [
    "subsample", "build_contigs", "align_contigs", "map_contigs",
    "identify_fixed_sites", "output_alignment",
]
LOCI = [
    "copy_reference_contigs", "align_to_conserved_contigs", "merge_alignments",
    "call_alleles", "build_gene_alignments", "select_loci",
]


def _names(stages):
    return [s.name for s in stages]


def test_stage_order():
    assert _names(DEFAULT_REGISTRY.sites) == SITES
    assert _names(DEFAULT_REGISTRY.loci) == LOCI
    assert DEFAULT_REGISTRY.finalize.name == "filter_missing"


def test_pipeline_names_map_to_first_stage():
    assert _names(DEFAULT_REGISTRY.resolve("sites")) == SITES
    assert _names(DEFAULT_REGISTRY.resolve("loci")) == SITES + LOCI


@pytest.mark.parametrize("start", SITES)
def test_site_stage_runs_to_end_of_sites(start):
    assert _names(DEFAULT_REGISTRY.resolve(start)) == SITES[SITES.index(start):]


@pytest.mark.parametrize("start", LOCI)
def test_loci_stage_runs_to_end_of_loci(start):
    assert _names(DEFAULT_REGISTRY.resolve(start)) == LOCI[LOCI.index(start):]


def test_aliases_and_hyphens():
    assert _names(DEFAULT_REGISTRY.resolve("alignContigs"))[0] == "align_contigs"
    assert _names(DEFAULT_REGISTRY.resolve("identify-fixed-sites"))[0] == "identify_fixed_sites"


def test_unknown_stage():
    with pytest.raises(UnknownStage) as ei:
        DEFAULT_REGISTRY.resolve("assemble_everything")
    assert ei.value.name == "assemble_everything"
