import pytest
from Bio import SeqIO

from sisrs.errors import MalformedLocusData
from sisrs.loci.alignments import collect_alleles, locus_stats, rank_by_variability, write_locus_list, write_unaligned
from sisrs.loci.candidates import read_locus_list

from conftest import write_fasta


def test_collect_alleles_trims_and_groups(tmp_path):
    alleles = {
        "A": write_fasta(tmp_path / "A.alleles.fa", {"c1": "NNACGTN", "c2": "NNNN"}),
        "B": write_fasta(tmp_path / "B.alleles.fa", {"c1": "ACGA", "c3": "TT"}),
    }
    loci = collect_alleles(alleles)
    assert loci == {"c1": {"A": "ACGT", "B": "ACGA"}, "c3": {"B": "TT"}}


def test_colliding_locus_ids(tmp_path):
    alleles = {"A": write_fasta(tmp_path / "A.fa", {"c/1": "AC", "c:1": "GT"})}
    with pytest.raises(MalformedLocusData) as ei:
        collect_alleles(alleles)
    assert ei.value.locus == "c_1"


def test_write_unaligned_skips_single_taxon_loci(tmp_path):
    written = write_unaligned({"c1": {"B": "AC", "A": "AG"}, "c3": {"B": "TT"}}, tmp_path / "unaligned")
    assert written == ["c1"]
    ids = [r.id for r in SeqIO.parse(str(tmp_path / "unaligned" / "c1.fasta"), "fasta")]
    assert ids == ["A", "B"]


def test_rank_by_variability(tmp_path):
    aligned = {
        "low": write_fasta(tmp_path / "low.fasta", {"A": "ACGT", "B": "ACGA"}),
        "high": write_fasta(tmp_path / "high.fasta", {"A": "ACGT", "B": "TGCA", "C": "----"}),
        "tie": write_fasta(tmp_path / "tie.fasta", {"A": "AC", "B": "AG"}),
    }
    stats = rank_by_variability(aligned)
    assert [s.locus_id for s in stats] == ["high", "low", "tie"]
    assert locus_stats("high", aligned["high"]).taxa == 2

    out = tmp_path / "locus_list.tsv"
    write_locus_list(stats, out)
    assert read_locus_list(out) == ["high", "low", "tie"]
