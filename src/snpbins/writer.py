from __future__ import annotations

import logging
from collections import Counter
from pathlib import Path
from typing import Dict, Iterable, List, Mapping, Sequence, Set, Tuple

import numpy as np

from .aggregator import BinAggregator
from .labeler import informative_total, label_bin
from .models import INSUFFICIENT_VARIATION, BinAssignmentRecord, Diagnostics, Thresholds
from .regions import RegionIndex
from .utils import ensure_outdir, safe_filename

logger = logging.getLogger(__name__)

ASSIGNMENT_COLUMNS = ["sequence", "start", "end", "name", "assignment"]


def collect_assignments(
    aggregator: BinAggregator,
    region_index: RegionIndex,
    samples: Sequence[str],
    thresholds: Thresholds,
    *,
    emit_empty_bins: bool = False,
) -> Dict[str, List[BinAssignmentRecord]]:
    """Label every (sample, bin) pair, in ascending bin order per sample.

    Bins without any recorded site for a sample are omitted unless
    ``emit_empty_bins`` is set, in which case they are reported as
    ``Insufficient Variation``.
    """
    out: Dict[str, List[BinAssignmentRecord]] = {}
    for sample in samples:
        records: List[BinAssignmentRecord] = []
        for region in region_index:
            if aggregator.has_data(sample, region.bin_id):
                freq = aggregator.frequency(sample, region.bin_id)
                assignment = label_bin(freq, thresholds)
                informative = informative_total(freq)
            elif emit_empty_bins:
                assignment = INSUFFICIENT_VARIATION
                informative = 0
            else:
                continue
            records.append(
                BinAssignmentRecord(
                    sample=sample,
                    bin_id=region.bin_id,
                    sequence=region.sequence,
                    start=region.start,
                    end=region.end,
                    name=region.name,
                    assignment=assignment,
                    informative_sites=informative,
                )
            )
        out[sample] = records
    return out


def write_sample_assignments(
    outdir: str | Path,
    sample: str,
    records: Sequence[BinAssignmentRecord],
    *,
    stem: str | None = None,
) -> Path:
    """Write one sample's bin assignments as TSV and return its path."""
    outdir_p = ensure_outdir(outdir)
    out_path = outdir_p / f"{stem or safe_filename(sample)}.tsv"
    with open(out_path, "wt", encoding="utf-8") as fh:
        fh.write("\t".join(ASSIGNMENT_COLUMNS) + "\n")
        for rec in records:
            fh.write(f"{rec.sequence}\t{rec.start}\t{rec.end}\t{rec.name}\t{rec.assignment}\n")
    return out_path


def sample_file_stems(samples: Iterable[str]) -> Dict[str, str]:
    """Map each sample to a unique file stem, in input order."""
    stems: Dict[str, str] = {}
    taken: Set[str] = set()
    for sample in samples:
        base = safe_filename(sample)
        stem = base
        n = 2
        while stem.lower() in taken:
            stem = f"{base}_{n}"
            n += 1
        if stem != base:
            logger.warning("Sample %r clashes with another sample's file name; writing %s.tsv", sample, stem)
        taken.add(stem.lower())
        stems[sample] = stem
    return stems


def write_all_assignments(
    outdir: str | Path,
    assignments: Mapping[str, Sequence[BinAssignmentRecord]],
) -> Dict[str, str]:
    """Write one TSV per sample; return sample -> path.

    Samples whose cleaned names collide (``S 1`` and ``S_1``) get a numeric
    suffix so that no sample's file is overwritten.
    """
    paths: Dict[str, str] = {}
    for sample, stem in sample_file_stems(assignments).items():
        records = assignments[sample]
        paths[sample] = str(write_sample_assignments(outdir, sample, records, stem=stem))
        logger.debug("Wrote %d bin assignments for %s", len(records), sample)
    return paths


def assignment_counts(assignments: Mapping[str, Sequence[BinAssignmentRecord]]) -> Dict[str, Dict[str, int]]:
    """Number of bins per assignment label, per sample."""
    return {
        sample: dict(sorted(Counter(r.assignment for r in records).items()))
        for sample, records in assignments.items()
    }


def origin_matrix(diagnostics: Diagnostics, samples: Sequence[str]) -> Tuple[np.ndarray, List[str]]:
    """Samples x observed-label matrix of raw (pre-threshold) label counts."""
    labels = diagnostics.observed_labels()
    matrix = np.zeros((len(samples), len(labels)), dtype=np.int64)
    col = {label: j for j, label in enumerate(labels)}
    for i, sample in enumerate(samples):
        for label, count in diagnostics.label_counts.get(sample, {}).items():
            matrix[i, col[label]] = count
    return matrix, labels


def format_origin_table(diagnostics: Diagnostics, samples: Sequence[str]) -> str:
    """Render the origin-frequency table as fixed-width text with uppercased headers."""
    matrix, labels = origin_matrix(diagnostics, samples)
    header = ["SAMPLE"] + [label.upper() for label in labels]
    rows = [header] + [[sample] + [str(int(v)) for v in matrix[i]] for i, sample in enumerate(samples)]

    widths = [max(len(row[j]) for row in rows) + 2 for j in range(len(header))]
    lines = ["".join(cell.ljust(widths[j]) for j, cell in enumerate(row)).rstrip() for row in rows]
    return "\n".join(lines) + "\n"
