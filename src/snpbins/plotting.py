from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, List, Sequence

import matplotlib.pyplot as plt
import numpy as np

logger = logging.getLogger(__name__)


def plot_assignment_composition(
    *,
    assignment_counts: Dict[str, Dict[str, int]],
    out_png: str | Path,
    title: str = "Bin assignments per sample",
) -> None:
    """Stacked bar of bin counts per assignment label, one bar per sample."""
    out_png = Path(out_png)
    out_png.parent.mkdir(parents=True, exist_ok=True)

    samples = list(assignment_counts)
    labels: List[str] = sorted({lab for counts in assignment_counts.values() for lab in counts})

    plt.figure(figsize=(max(6.0, 0.6 * len(samples) + 2), 4.5))
    bottom = np.zeros(len(samples))
    for lab in labels:
        values = np.array([assignment_counts[s].get(lab, 0) for s in samples], dtype=float)
        plt.bar(range(len(samples)), values, bottom=bottom, label=lab)
        bottom += values
    plt.xticks(range(len(samples)), samples, rotation=45, ha="right")
    plt.ylabel("Bin count")
    plt.title(title)
    if labels:
        plt.legend(fontsize="small", loc="upper left", bbox_to_anchor=(1.0, 1.0))
    plt.tight_layout()
    plt.savefig(out_png, dpi=160)
    plt.close()


def plot_origin_heatmap(
    *,
    matrix: np.ndarray,
    samples: Sequence[str],
    labels: Sequence[str],
    out_png: str | Path,
    title: str = "Per-site origin labels (raw counts)",
) -> None:
    """Heatmap of the samples x origin-label frequency matrix.

    Rows are normalised to fractions so samples with different site counts are
    comparable; raw counts are in ``origin_frequencies.txt``.
    """
    out_png = Path(out_png)
    out_png.parent.mkdir(parents=True, exist_ok=True)

    totals = matrix.sum(axis=1, keepdims=True).astype(float)
    totals[totals == 0] = 1.0
    frac = matrix / totals

    plt.figure(figsize=(max(6.0, 0.7 * len(labels) + 2), max(3.0, 0.35 * len(samples) + 1.5)))
    plt.imshow(frac, aspect="auto", cmap="viridis", vmin=0.0, vmax=1.0)
    plt.colorbar(label="Fraction of sites")
    plt.xticks(range(len(labels)), list(labels), rotation=45, ha="right")
    plt.yticks(range(len(samples)), list(samples))
    plt.title(title)
    plt.tight_layout()
    plt.savefig(out_png, dpi=160)
    plt.close()
