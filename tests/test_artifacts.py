import pytest

from sisrs.artifacts import ArtifactKind as K, artifact_path, bowtie2_index_files
from sisrs.config.schema import RunConfig
from sisrs.inventory.samples import Taxon


@pytest.fixture
def cfg(tmp_path):
    return RunConfig(outdir=tmp_path, assembler="minia", missing=2)


@pytest.fixture
def taxon(tmp_path):
    return Taxon(name="TaxonA", path=tmp_path / "TaxonA", pairs=(), unpaired=())


def test_paths_are_deterministic(cfg, taxon, tmp_path):
    assert artifact_path(cfg, K.CONTIGS) == tmp_path / "miniaoutput" / "contigs.fa"
    assert artifact_path(cfg, K.TAXON_BAM, taxon) == tmp_path / "TaxonA" / "TaxonA_sorted.bam"
    assert artifact_path(cfg, K.PILEUP, taxon) == tmp_path / "TaxonA" / "TaxonA.pileups"
    assert artifact_path(cfg, K.SUBSAMPLE_READS, taxon, "A_R1") == tmp_path / "subsamples" / "TaxonA_A_R1.fastq"
    assert artifact_path(cfg, K.FILTERED_ALIGNMENT) == tmp_path / "alignment_m2.nex"
    assert artifact_path(cfg, K.ALIGNED_LOCUS, name="c1") == tmp_path / "loci" / "aligned" / "c1.fasta"


def test_resolution_touches_nothing(cfg, taxon, tmp_path):
    for kind in K:
        artifact_path(cfg, kind, taxon, "x")
    assert list(tmp_path.iterdir()) == []


def test_taxon_and_name_are_required(cfg):
    with pytest.raises(ValueError):
        artifact_path(cfg, K.TAXON_BAM)
    with pytest.raises(ValueError):
        artifact_path(cfg, K.UNALIGNED_LOCUS)


def test_bowtie2_index_files(tmp_path):
    names = [p.name for p in bowtie2_index_files(tmp_path / "contigs")]
    assert names == [
        "contigs.1.bt2", "contigs.2.bt2", "contigs.3.bt2", "contigs.4.bt2",
        "contigs.rev.1.bt2", "contigs.rev.2.bt2",
    ]
