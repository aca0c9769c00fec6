import pytest
from Bio import AlignIO

from sisrs.errors import MalformedLocusData
from sisrs.loci.candidates import read_candidate
from sisrs.loci.ranker import select_loci
from sisrs.loci.supermatrix import partition_lines, write_partitions, write_supermatrix

from conftest import write_fasta


def _plan(tmp_path):
    a = write_fasta(tmp_path / "a.fasta", {"T1": "ACGT", "T2": "ACGA"})
    b = write_fasta(tmp_path / "b.fasta", {"T1": "GG", "T3": "GC"})
    cands = [read_candidate("a", a), read_candidate("b", b)]
    return select_loci(cands, n_taxa=3, budget=100)


def test_partition_lines_are_one_based(tmp_path):
    plan = _plan(tmp_path)
    assert partition_lines(plan) == ["DNA, a = 1-4", "DNA, b = 5-6"]
    out = tmp_path / "newpartitions.txt"
    write_partitions(plan, out)
    assert out.read_text() == "DNA, a = 1-4\nDNA, b = 5-6\n"


def test_supermatrix_pads_absent_taxa(tmp_path):
    plan = _plan(tmp_path)
    fasta = tmp_path / "concatenated.fasta"
    phylip = tmp_path / "concatenated.phy"
    write_supermatrix(plan, fasta, phylip)

    msa = AlignIO.read(str(fasta), "fasta")
    rows = {rec.id: str(rec.seq) for rec in msa}
    assert rows == {"T1": "ACGTGG", "T2": "ACGA--", "T3": "----GC"}
    assert AlignIO.read(str(phylip), "phylip-relaxed").get_alignment_length() == 6


def test_alignment_changed_after_ranking(tmp_path):
    plan = _plan(tmp_path)
    write_fasta(tmp_path / "b.fasta", {"T1": "GGA", "T3": "GCA"})
    with pytest.raises(MalformedLocusData) as ei:
        write_supermatrix(plan, tmp_path / "concatenated.fasta")
    assert ei.value.locus == "b"
