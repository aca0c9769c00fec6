from pathlib import Path
from typing import Dict

import pytest

from sisrs.config.schema import RunConfig
from sisrs.inventory.samples import discover_taxa
from sisrs.stages.base import StageContext

FASTQ = "@r1\nACGT\n+\nIIII\n"


def touch_reads(path: Path) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(FASTQ)
    return path


@pytest.fixture
def reads_tree(tmp_path) -> Path:
    """
    reads/
      TaxonA/  A_R1.fastq.gz A_R2.fastq.gz A_single.fq
      TaxonB/  B_S1_L001_R1_001.fastq B_S1_L001_R2_001.fastq
      TaxonC/  C.fastq
    """
    root = tmp_path / "reads"
    touch_reads(root / "TaxonA" / "A_R1.fastq.gz")
    touch_reads(root / "TaxonA" / "A_R2.fastq.gz")
    touch_reads(root / "TaxonA" / "A_single.fq")
    touch_reads(root / "TaxonB" / "B_S1_L001_R1_001.fastq")
    touch_reads(root / "TaxonB" / "B_S1_L001_R2_001.fastq")
    touch_reads(root / "TaxonC" / "C.fastq")
    return root


@pytest.fixture
def ctx_factory(tmp_path):
    """Build a StageContext over a reads tree with RunConfig overrides."""
    def _make(root: Path, **overrides) -> StageContext:
        taxa = tuple(discover_taxa(root))
        fields = dict(reads_dir=root, outdir=tmp_path / "out", taxon_count=len(taxa))
        fields.update(overrides)
        return StageContext(config=RunConfig(**fields), taxa=taxa)
    return _make


def write_fasta(path: Path, records: Dict[str, str]) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text("".join(f">{name}\n{seq}\n" for name, seq in records.items()))
    return path
