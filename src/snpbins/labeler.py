from __future__ import annotations

from typing import List, Mapping

from .models import EXCLUSION_LABELS, INSUFFICIENT_VARIATION, UNCLEAR, Thresholds


def informative_total(bin_frequency: Mapping[str, int]) -> int:
    return sum(c for label, c in bin_frequency.items() if label not in EXCLUSION_LABELS)


def label_bin(bin_frequency: Mapping[str, int], thresholds: Thresholds) -> str:
    """Classify one (sample, bin) frequency table into an ancestry assignment.

    Labels qualify when their count is >= ``min_indiv_var`` and their share of the
    informative (non-sentinel) sites is >= ``min_percent``. Qualifying labels are
    sorted and joined with ``+``.
    """
    total = informative_total(bin_frequency)
    if total < thresholds.min_total_var:
        return INSUFFICIENT_VARIATION
    if total == 0:
        return UNCLEAR

    passed: List[str] = []
    for label, count in bin_frequency.items():
        if label in EXCLUSION_LABELS or count < thresholds.min_indiv_var:
            continue
        percent = 100.0 * count / total
        if percent >= thresholds.min_percent:
            passed.append(label)

    if not passed:
        return UNCLEAR
    return "+".join(sorted(passed))


def label(
    bin_frequency: Mapping[str, int],
    min_total_var: int,
    min_indiv_var: int,
    min_percent: float,
) -> str:
    return label_bin(
        bin_frequency,
        Thresholds(min_percent=min_percent, min_total_var=min_total_var, min_indiv_var=min_indiv_var),
    )
