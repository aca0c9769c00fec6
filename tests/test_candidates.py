import pytest

from sisrs.errors import EmptyLocusAlignment, MalformedLocusData
from sisrs.loci.candidates import load_candidates, read_candidate, read_locus_list, tier_counts

from conftest import write_fasta


@pytest.fixture
def aligned(tmp_path):
    d = tmp_path / "aligned"
    write_fasta(d / "c1.fasta", {"A": "ACGT", "B": "ACGA", "C": "----"})
    write_fasta(d / "c2.fasta", {"A": "AC-GTT", "B": "ACNGTA"})
    write_fasta(d / "c3.fasta", {"A": "AA", "B": "AT"})
    return d


def test_read_locus_list(tmp_path):
    p = tmp_path / "locus_list.tsv"
    p.write_text("locus\ttaxa\n# comment\nc2\t2\nc1\t3\n\n")
    assert read_locus_list(p) == ["c2", "c1"]


def test_duplicate_locus_is_malformed(tmp_path):
    p = tmp_path / "locus_list.tsv"
    p.write_text("c1\nc1\n")
    with pytest.raises(MalformedLocusData):
        read_locus_list(p)


def test_candidate_counts_taxa_with_calls(aligned):
    c = read_candidate("c1", aligned / "c1.fasta")
    assert c.taxon_count == 2
    assert c.length == 4


def test_load_keeps_list_order_and_ignores_unlisted(tmp_path, aligned):
    p = tmp_path / "locus_list.tsv"
    p.write_text("c2\nc1\n")
    cands = load_candidates(p, aligned)
    assert [c.locus_id for c in cands] == ["c2", "c1"]
    assert tier_counts(cands) == [(2, 2)]


def test_listed_locus_without_file(tmp_path, aligned):
    p = tmp_path / "locus_list.tsv"
    p.write_text("c9\n")
    with pytest.raises(MalformedLocusData):
        load_candidates(p, aligned)


def test_empty_alignment(tmp_path):
    p = tmp_path / "empty.fasta"
    p.write_text("")
    with pytest.raises(EmptyLocusAlignment):
        read_candidate("empty", p)


def test_ragged_alignment_is_malformed(tmp_path):
    p = write_fasta(tmp_path / "ragged.fasta", {"A": "ACGT", "B": "AC"})
    with pytest.raises(MalformedLocusData):
        read_candidate("ragged", p)
