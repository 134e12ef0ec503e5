from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Iterator, List, Mapping, NewType, Optional, Sequence, Set, Tuple

from .errors import ConfigError, ParseError

BinId = NewType("BinId", int)

# Origin-label sentinels
AHET = "-AHET"  # an ancestor is heterozygous at the site
ASAM = "-ASAM"  # all ancestors share one genotype at the site
UNKNOWN = "UNK"
EXCLUSION_LABELS = frozenset({AHET, ASAM})

# Bin-assignment sentinels
UNCLEAR = "Unclear"
INSUFFICIENT_VARIATION = "Insufficient Variation"


@dataclass(frozen=True)
class Site:
    """One polymorphic site: all sample genotypes at ``sequence:position``.

    ``position`` is 1-based. Samples without a genotype at this site are
    absent from ``genotypes``.
    """

    sequence: str
    position: int
    genotypes: Mapping[str, str]

    def describe(self) -> str:
        return f"{self.sequence}:{self.position}"


class GenotypeTable:
    """Genotype calls keyed by ``(sequence, position)``.

    Each key holds one row aligned with :attr:`samples`; ``None`` marks a
    missing call. Sequences keep the order in which they were first seen.
    """

    def __init__(self, samples: Sequence[str], *, source: Optional[str] = None) -> None:
        seen: Set[str] = set()
        for s in samples:
            if s in seen:
                raise ParseError(f"duplicate sample column {s!r}", source=source)
            seen.add(s)
        self.samples: Tuple[str, ...] = tuple(samples)
        self.source = source
        self.skipped_records = 0
        self._rows: Dict[Tuple[str, int], Tuple[Optional[str], ...]] = {}
        self._positions: Dict[str, List[int]] = {}
        self._unsorted: Set[str] = set()

    def add_site(self, sequence: str, position: int, genotypes: Mapping[str, str]) -> None:
        if position < 1:
            raise ParseError(f"position must be a positive 1-based integer, got {position}")
        key = (sequence, int(position))
        if key in self._rows:
            raise ParseError(f"duplicate site {sequence}:{position}")
        unknown = set(genotypes) - set(self.samples)
        if unknown:
            raise ParseError(f"unknown sample(s) at {sequence}:{position}: {', '.join(sorted(unknown))}")

        self._rows[key] = tuple(genotypes.get(s) for s in self.samples)
        positions = self._positions.setdefault(sequence, [])
        if positions and position < positions[-1]:
            self._unsorted.add(sequence)
        positions.append(int(position))

    def sequences(self) -> List[str]:
        return list(self._positions)

    def positions(self, sequence: str) -> List[int]:
        if sequence in self._unsorted:
            self._positions[sequence].sort()
            self._unsorted.discard(sequence)
        return list(self._positions.get(sequence, []))

    def max_position(self, sequence: str) -> int:
        return max(self._positions[sequence])

    def genotype(self, sequence: str, position: int, sample: str) -> Optional[str]:
        row = self._rows[(sequence, position)]
        return row[self.samples.index(sample)]

    def site(self, sequence: str, position: int) -> Site:
        row = self._rows[(sequence, position)]
        calls = {s: g for s, g in zip(self.samples, row) if g is not None}
        return Site(sequence=sequence, position=position, genotypes=calls)

    def iter_sites(self, sequence: str) -> Iterator[Site]:
        """Yield the sites of one sequence in ascending position order."""
        for pos in self.positions(sequence):
            yield self.site(sequence, pos)

    def __len__(self) -> int:
        return len(self._rows)


@dataclass(frozen=True)
class Region:
    """A bin: ``start`` is 0-based inclusive, ``end`` is the 1-based inclusive last base."""

    bin_id: BinId
    sequence: str
    start: int
    end: int
    name: str

    def contains(self, position: int) -> bool:
        return self.start + 1 <= position <= self.end


@dataclass(frozen=True)
class Feature:
    """An externally parsed annotation record (GFF-style, 1-based inclusive)."""

    sequence: str
    start: int
    end: int
    feature_type: str
    feature_id: str


@dataclass(frozen=True)
class AncestorSet:
    """Reference samples that the other samples' alleles are compared against."""

    names: Tuple[str, ...]

    @classmethod
    def from_names(cls, names: Iterable[str], samples: Optional[Sequence[str]] = None) -> "AncestorSet":
        distinct = sorted(set(names))
        if len(distinct) < 2:
            raise ConfigError(f"at least 2 distinct ancestors are required, got {len(distinct)}: {distinct}")
        if samples is not None:
            missing = [n for n in distinct if n not in set(samples)]
            if missing:
                raise ConfigError(
                    "ancestor(s) not present in the genotype table: " + ", ".join(missing)
                )
        return cls(names=tuple(distinct))

    def __contains__(self, sample: object) -> bool:
        return sample in self.names

    def __len__(self) -> int:
        return len(self.names)

    def non_ancestors(self, samples: Iterable[str]) -> List[str]:
        return [s for s in samples if s not in self.names]


@dataclass(frozen=True)
class Thresholds:
    """Bin labeling thresholds."""

    min_percent: float = 30.0
    min_total_var: int = 5
    min_indiv_var: int = 2

    def __post_init__(self) -> None:
        if not 0.0 <= self.min_percent <= 100.0:
            raise ConfigError(f"min_percent must be within [0, 100], got {self.min_percent}")
        if self.min_total_var < 0:
            raise ConfigError(f"min_total_var must be >= 0, got {self.min_total_var}")
        if self.min_indiv_var < 0:
            raise ConfigError(f"min_indiv_var must be >= 0, got {self.min_indiv_var}")

    @classmethod
    def from_raw(
        cls,
        *,
        min_percent: Any = 30.0,
        min_total_var: Any = 5,
        min_indiv_var: Any = 2,
    ) -> "Thresholds":
        """Build thresholds from user-supplied values (e.g. CLI strings)."""
        return cls(
            min_percent=_as_float("min_percent", min_percent),
            min_total_var=_as_int("min_total_var", min_total_var),
            min_indiv_var=_as_int("min_indiv_var", min_indiv_var),
        )


def _as_float(name: str, value: Any) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        raise ConfigError(f"{name} must be numeric, got {value!r}") from None


def _as_int(name: str, value: Any) -> int:
    if isinstance(value, bool):
        raise ConfigError(f"{name} must be an integer, got {value!r}")
    if isinstance(value, float):
        if not value.is_integer():
            raise ConfigError(f"{name} must be an integer, got {value!r}")
        return int(value)
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ConfigError(f"{name} must be an integer, got {value!r}") from None


@dataclass
class Diagnostics:
    """Run counters and the per-sample raw origin-label tally."""

    sites_total: int = 0
    sites_unbinned: int = 0
    sites_ancestor_het: int = 0
    sites_ancestor_same: int = 0
    genotypes_missing: int = 0
    records_skipped: int = 0
    regions_skipped_overlap: int = 0
    sequences_without_regions: Set[str] = field(default_factory=set)
    label_counts: Dict[str, Counter] = field(default_factory=dict)

    def tally(self, sample: str, label: str) -> None:
        self.label_counts.setdefault(sample, Counter())[label] += 1

    def observed_labels(self) -> List[str]:
        labels: Set[str] = set()
        for counts in self.label_counts.values():
            labels.update(counts)
        return sorted(labels)

    def merge(self, other: "Diagnostics") -> None:
        self.sites_total += other.sites_total
        self.sites_unbinned += other.sites_unbinned
        self.sites_ancestor_het += other.sites_ancestor_het
        self.sites_ancestor_same += other.sites_ancestor_same
        self.genotypes_missing += other.genotypes_missing
        self.records_skipped += other.records_skipped
        self.regions_skipped_overlap += other.regions_skipped_overlap
        self.sequences_without_regions |= other.sequences_without_regions
        for sample, counts in other.label_counts.items():
            self.label_counts.setdefault(sample, Counter()).update(counts)

    def as_dict(self) -> Dict[str, Any]:
        return {
            "sites_total": self.sites_total,
            "sites_unbinned": self.sites_unbinned,
            "sites_ancestor_het": self.sites_ancestor_het,
            "sites_ancestor_same": self.sites_ancestor_same,
            "genotypes_missing": self.genotypes_missing,
            "records_skipped": self.records_skipped,
            "regions_skipped_overlap": self.regions_skipped_overlap,
            "sequences_without_regions": sorted(self.sequences_without_regions),
            "label_counts": {s: dict(sorted(c.items())) for s, c in sorted(self.label_counts.items())},
        }


@dataclass(frozen=True)
class BinAssignmentRecord:
    """Final per-(sample, bin) output row."""

    sample: str
    bin_id: BinId
    sequence: str
    start: int
    end: int
    name: str
    assignment: str
    informative_sites: int
