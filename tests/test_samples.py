import pytest

from sisrs.errors import ConfigError, NoSamplesFound
from sisrs.inventory.samples import discover_taxa, pair_key, require_taxa

from conftest import touch_reads


def test_discover_groups_by_directory(reads_tree):
    taxa = discover_taxa(reads_tree)
    assert [t.name for t in taxa] == ["TaxonA", "TaxonB", "TaxonC"]

    a = taxa[0]
    assert len(a.pairs) == 1
    assert a.pairs[0][0].name == "A_R1.fastq.gz"
    assert a.pairs[0][1].name == "A_R2.fastq.gz"
    assert [p.name for p in a.unpaired] == ["A_single.fq"]


def test_read_set_stems_strip_marker_and_extension(reads_tree):
    taxa = {t.name: t for t in discover_taxa(reads_tree)}
    assert [rs.stem for rs in taxa["TaxonA"].read_sets] == ["A", "A_single"]
    assert [rs.stem for rs in taxa["TaxonB"].read_sets] == ["B_S1_L001_001"]
    assert [rs.stem for rs in taxa["TaxonC"].read_sets] == ["C"]
    assert taxa["TaxonA"].read_sets[0].paired
    assert not taxa["TaxonC"].read_sets[0].paired


def test_subsampled_and_derived_files_are_ignored(reads_tree):
    touch_reads(reads_tree / "subsamples" / "TaxonA_A_R1.fastq")
    touch_reads(reads_tree / "TaxonC" / "C_subsampled.fastq")
    taxa = discover_taxa(reads_tree)
    assert [t.name for t in taxa] == ["TaxonA", "TaxonB", "TaxonC"]
    assert [p.name for p in taxa[2].unpaired] == ["C.fastq"]


def test_excluded_directories_are_skipped(reads_tree):
    touch_reads(reads_tree / "loci" / "stray.fastq")
    taxa = discover_taxa(reads_tree, exclude=[reads_tree / "loci"])
    assert "loci" not in [t.name for t in taxa]


def test_mate_without_partner_is_unpaired(tmp_path):
    touch_reads(tmp_path / "T" / "x_R1.fastq")
    (taxon,) = discover_taxa(tmp_path)
    assert taxon.pairs == ()
    assert [p.name for p in taxon.unpaired] == ["x_R1.fastq"]


def test_nested_directories_get_distinct_names(tmp_path):
    touch_reads(tmp_path / "clade1" / "sp" / "a.fastq")
    touch_reads(tmp_path / "clade2" / "sp" / "b.fastq")
    names = [t.name for t in discover_taxa(tmp_path)]
    assert names == ["clade1_sp", "clade2_sp"]


def test_pair_key():
    assert pair_key("s_R1.fastq") == "s.fastq"
    assert pair_key("s_R2_001.fq.gz") == "s_001.fq.gz"
    assert pair_key("s.fastq") is None


def test_require_taxa_raises_when_empty(tmp_path):
    assert discover_taxa(tmp_path) == []
    with pytest.raises(NoSamplesFound):
        require_taxa([], tmp_path)


def test_colliding_taxon_names_are_a_config_error(tmp_path):
    touch_reads(tmp_path / "a b" / "x" / "r.fastq")
    touch_reads(tmp_path / "a_b" / "x" / "r.fastq")
    with pytest.raises(ConfigError):
        discover_taxa(tmp_path)
