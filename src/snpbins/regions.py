from __future__ import annotations

import bisect
import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, Iterator, List, Optional

import numpy as np

from .errors import ConfigError, ParseError
from .models import BinId, Feature, GenotypeTable, Region
from .validation import remap_contig

logger = logging.getLogger(__name__)


@dataclass
class RegionIndex:
    """Per-sequence bin lookup structure.

    Regions on a sequence are sorted by start and never overlap; ``starts`` and
    ``ids`` are aligned lists per sequence.
    """

    regions: Dict[BinId, Region] = field(default_factory=dict)
    starts: Dict[str, List[int]] = field(default_factory=dict)
    ids: Dict[str, List[BinId]] = field(default_factory=dict)
    skipped_overlap: int = 0

    def _append(self, sequence: str, start: int, end: int, name: str) -> Region:
        bin_id = BinId(len(self.regions))
        region = Region(bin_id=bin_id, sequence=sequence, start=start, end=end, name=name)
        self.regions[bin_id] = region
        self.starts.setdefault(sequence, []).append(start)
        self.ids.setdefault(sequence, []).append(bin_id)
        return region

    def locate(self, sequence: str, position: int) -> Optional[BinId]:
        """Return the bin containing a 1-based ``position``, or None."""
        starts = self.starts.get(sequence)
        if not starts:
            return None
        # last region whose 0-based start lies before the 1-based position
        i = bisect.bisect_right(starts, position - 1) - 1
        if i < 0:
            return None
        bin_id = self.ids[sequence][i]
        if self.regions[bin_id].contains(position):
            return bin_id
        return None

    def region(self, bin_id: BinId) -> Region:
        return self.regions[bin_id]

    def has_sequence(self, sequence: str) -> bool:
        return sequence in self.starts

    def sequences(self) -> List[str]:
        return list(self.starts)

    def __len__(self) -> int:
        return len(self.regions)

    def __iter__(self) -> Iterator[Region]:
        for bin_id in sorted(self.regions):
            yield self.regions[bin_id]

    def remap_sequences(self, style: str) -> "RegionIndex":
        """Return a copy with sequence names remapped to a contig style (ucsc/ensembl).

        Bin ids are preserved. Names that collapse onto one sequence (``chr1``
        and ``1``) are re-sorted, and a region overlapping an earlier kept one
        is dropped and counted in ``skipped_overlap``.
        """
        by_seq: Dict[str, List[Region]] = {}
        for region in self:
            by_seq.setdefault(remap_contig(region.sequence, style), []).append(region)

        out = RegionIndex(skipped_overlap=self.skipped_overlap)
        for seq, regions in by_seq.items():
            regions.sort(key=lambda r: (r.start, r.end, r.bin_id))
            last_end = -1
            for region in regions:
                if region.start < last_end:
                    logger.warning(
                        "Dropping region %s (%s:%d-%d): overlaps a previous region after renaming to %s",
                        region.name,
                        region.sequence,
                        region.start + 1,
                        region.end,
                        seq,
                    )
                    out.skipped_overlap += 1
                    continue
                out.regions[region.bin_id] = Region(
                    bin_id=region.bin_id,
                    sequence=seq,
                    start=region.start,
                    end=region.end,
                    name=region.name,
                )
                out.starts.setdefault(seq, []).append(region.start)
                out.ids.setdefault(seq, []).append(region.bin_id)
                last_end = region.end
        return out


def build_fixed(table: GenotypeTable, bin_size: int) -> RegionIndex:
    """Partition each sequence's [0, max_position] into windows of ``bin_size`` bp.

    The last window of a sequence is truncated to that sequence's max position.
    """
    if bin_size is None or int(bin_size) <= 0:
        raise ConfigError(f"bin_size must be a positive integer, got {bin_size!r}")
    bin_size = int(bin_size)

    index = RegionIndex()
    for seq in table.sequences():
        max_pos = table.max_position(seq)
        starts = np.arange(0, max_pos, bin_size, dtype=np.int64)
        for n, start in enumerate(starts.tolist(), start=1):
            end = min(start + bin_size, max_pos)
            index._append(seq, start, end, f"{seq}_{n}")

    if len(index) == 0:
        raise ConfigError("genotype table has no sites; no bins can be produced")
    logger.info("Built %d fixed-size bins (%d bp) over %d sequences", len(index), bin_size, len(index.starts))
    return index


def build_from_features(features: Iterable[Feature], feature_type: str) -> RegionIndex:
    """Build bins from annotation features of one type.

    Feature starts are converted to 0-based. A feature overlapping the previously
    kept region on its sequence is dropped and counted in ``skipped_overlap``.
    """
    selected: List[Feature] = []
    for feat in features:
        if feat.feature_type != feature_type:
            continue
        if feat.end < feat.start:
            raise ParseError(
                f"feature {feat.feature_id!r} on {feat.sequence} has end {feat.end} < start {feat.start}"
            )
        selected.append(feat)

    if not selected:
        raise ConfigError(f"no features of type {feature_type!r}; no bins can be produced")

    # group by sequence in order of first appearance, then sort by start
    by_seq: Dict[str, List[Feature]] = {}
    for feat in selected:
        by_seq.setdefault(feat.sequence, []).append(feat)

    index = RegionIndex()
    for seq, feats in by_seq.items():
        feats.sort(key=lambda f: (f.start, f.end))
        last_end = -1
        for feat in feats:
            start0 = feat.start - 1
            if start0 < last_end:
                logger.warning(
                    "Skipping feature %s (%s:%d-%d): overlaps a previous %s",
                    feat.feature_id,
                    seq,
                    feat.start,
                    feat.end,
                    feature_type,
                )
                index.skipped_overlap += 1
                continue
            index._append(seq, start0, feat.end, feat.feature_id)
            last_end = feat.end

    logger.info(
        "Built %d bins from %r features over %d sequences (%d overlapping skipped)",
        len(index),
        feature_type,
        len(index.starts),
        index.skipped_overlap,
    )
    return index


def build_region_index(
    table: GenotypeTable,
    *,
    bin_size: Optional[int] = None,
    features: Optional[Iterable[Feature]] = None,
    feature_type: str = "gene",
) -> RegionIndex:
    """Build bins from a feature list when given, otherwise from ``bin_size``."""
    if features is not None:
        return build_from_features(features, feature_type)
    if bin_size is None or int(bin_size) <= 0:
        raise ConfigError("either a positive bin size or a feature list is required to build bins")
    return build_fixed(table, bin_size)
