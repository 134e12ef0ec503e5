from __future__ import annotations

from collections import Counter
from typing import Dict, List, Mapping, Tuple

from .models import BinId


class BinAggregator:
    """Per-(sample, bin) origin-label frequency tables."""

    def __init__(self) -> None:
        self._counts: Dict[Tuple[str, BinId], Counter] = {}

    def record(self, sample: str, bin_id: BinId, label: str) -> None:
        """Count one site's label for ``sample`` in ``bin_id``.

        Call exactly once per (sample, site).
        """
        key = (sample, bin_id)
        counts = self._counts.get(key)
        if counts is None:
            counts = self._counts[key] = Counter()
        counts[label] += 1

    def frequency(self, sample: str, bin_id: BinId) -> Mapping[str, int]:
        return dict(self._counts.get((sample, bin_id), {}))

    def has_data(self, sample: str, bin_id: BinId) -> bool:
        return (sample, bin_id) in self._counts

    def samples(self) -> List[str]:
        return sorted({s for s, _ in self._counts})

    def bins_for(self, sample: str) -> List[BinId]:
        return sorted(b for s, b in self._counts if s == sample)

    def merge(self, other: "BinAggregator") -> None:
        for key, counts in other._counts.items():
            self._counts.setdefault(key, Counter()).update(counts)

    def __len__(self) -> int:
        return len(self._counts)
