# src/sisrs/loci/ranker.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Sequence, Tuple

from sisrs.errors import EmptyLocusAlignment, MalformedLocusData
from sisrs.loci.candidates import LocusCandidate, tier_counts
from sisrs.utils.logger import get_logger

LOG = get_logger("ranker")

MIN_TAXA = 2


@dataclass(frozen=True)
class PartitionEntry:
    locus: LocusCandidate
    start: int   # 0-based, inclusive
    end: int     # 0-based, inclusive

    @property
    def length(self) -> int:
        return self.end - self.start + 1


@dataclass(frozen=True)
class PartitionPlan:
    entries: Tuple[PartitionEntry, ...]
    budget: int

    @property
    def total_length(self) -> int:
        return self.entries[-1].end + 1 if self.entries else 0

    @property
    def locus_ids(self) -> List[str]:
        return [e.locus.locus_id for e in self.entries]

    def __post_init__(self) -> None:
        offset = 0
        for e in self.entries:
            if e.start != offset or e.end != offset + e.locus.length - 1:
                raise ValueError(f"partition for {e.locus.locus_id} is not contiguous at offset {offset}")
            offset = e.end + 1


def _tiers(candidates: Sequence[LocusCandidate], n_taxa: int) -> Dict[int, List[LocusCandidate]]:
    tiers: Dict[int, List[LocusCandidate]] = {k: [] for k in range(n_taxa, MIN_TAXA - 1, -1)}
    for c in candidates:
        if c.length <= 0:
            raise EmptyLocusAlignment(c.locus_id)
        if c.taxon_count > n_taxa:
            raise MalformedLocusData(c.locus_id, f"{c.taxon_count} taxa reported but the run has {n_taxa}")
        if c.taxon_count >= MIN_TAXA:
            # ranking order within a tier is the input order; never re-sorted
            tiers[c.taxon_count].append(c)
    return tiers


def select_loci(candidates: Sequence[LocusCandidate], n_taxa: int, budget: int) -> PartitionPlan:
    """
    Greedy, tiered selection.

    Tiers run from `n_taxa` taxa down to 2; inside a tier the input (variability)
    order is kept. Every considered locus is appended at the current offset.
    Selection stops as soon as the cumulative length reaches `budget`, so the
    plan overshoots by at most the last locus. If the budget is never reached,
    every locus present in two or more taxa is selected.
    """
    if budget <= 0:
        raise ValueError("budget must be positive")
    LOG.info("Selecting loci: %d candidate(s), %d taxa, budget %d columns", len(candidates), n_taxa, budget)
    LOG.debug("Tier sizes (taxa, loci): %s", tier_counts(candidates))

    entries: List[PartitionEntry] = []
    offset = 0
    for taxa, tier in _tiers(candidates, n_taxa).items():
        for locus in tier:
            entries.append(PartitionEntry(locus=locus, start=offset, end=offset + locus.length - 1))
            offset += locus.length
            if offset >= budget:
                LOG.info("Budget reached in the %d-taxa tier: %d loci, %d columns", taxa, len(entries), offset)
                return PartitionPlan(entries=tuple(entries), budget=budget)

    LOG.info("Budget not reached; selected all %d eligible loci (%d columns)", len(entries), offset)
    return PartitionPlan(entries=tuple(entries), budget=budget)
