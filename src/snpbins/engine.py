from __future__ import annotations

import logging
import multiprocessing
import threading
import time
from typing import Iterable, List, Optional, Sequence, Tuple

from tqdm import tqdm

from .aggregator import BinAggregator
from .classifier import classify_site
from .errors import RunCancelled
from .models import AncestorSet, Diagnostics, GenotypeTable, Site
from .regions import RegionIndex

logger = logging.getLogger(__name__)


def sweep_sequence(
    sequence: str,
    sites: Iterable[Site],
    region_index: RegionIndex,
    ancestors: AncestorSet,
    samples: Sequence[str],
) -> Tuple[BinAggregator, Diagnostics]:
    """Classify every site of one sequence and bin the resulting labels.

    Returns a fresh aggregator/diagnostics pair so sequences can be swept
    independently and merged afterwards.
    """
    aggregator = BinAggregator()
    diagnostics = Diagnostics()

    indexed = region_index.has_sequence(sequence)
    if not indexed:
        diagnostics.sequences_without_regions.add(sequence)

    for site in sites:
        diagnostics.sites_total += 1
        labels = classify_site(site, ancestors, diagnostics)
        diagnostics.genotypes_missing += sum(1 for s in samples if s not in site.genotypes)

        bin_id = region_index.locate(sequence, site.position) if indexed else None
        if bin_id is None:
            diagnostics.sites_unbinned += 1
            logger.debug("Site %s is outside every bin", site.describe())
            continue

        for sample, label in labels.items():
            aggregator.record(sample, bin_id, label)

    return aggregator, diagnostics


def _sweep_task(
    task: Tuple[str, List[Site], RegionIndex, AncestorSet, List[str]],
) -> Tuple[BinAggregator, Diagnostics]:
    return sweep_sequence(*task)


def _check_cancel(cancel_event: Optional[threading.Event], sequence: str) -> None:
    if cancel_event is not None and cancel_event.is_set():
        raise RunCancelled(f"run cancelled before sequence {sequence!r}")


def run_binning(
    table: GenotypeTable,
    region_index: RegionIndex,
    ancestors: AncestorSet,
    *,
    threads: int = 1,
    progress: bool = True,
    cancel_event: Optional[threading.Event] = None,
    extra_records_skipped: int = 0,
) -> Tuple[BinAggregator, Diagnostics]:
    """Main workhorse: sweep all sequences and return merged bin counts + diagnostics.

    With ``threads > 1`` sequences are swept in a process pool; each worker
    returns its own shard which is merged here. ``cancel_event`` is checked
    between sequences. ``extra_records_skipped`` adds malformed records skipped
    outside the genotype table (GFF lines) to the reported total.
    """
    t0 = time.time()
    samples = ancestors.non_ancestors(table.samples)
    sequences = table.sequences()

    aggregator = BinAggregator()
    diagnostics = Diagnostics(
        records_skipped=table.skipped_records + extra_records_skipped,
        regions_skipped_overlap=region_index.skipped_overlap,
    )

    if threads <= 1 or len(sequences) <= 1:
        it: Iterable[str] = sequences
        if progress:
            it = tqdm(it, unit="seq", desc="Binning sites")
        for seq in it:
            _check_cancel(cancel_event, seq)
            agg_part, diag_part = sweep_sequence(seq, table.iter_sites(seq), region_index, ancestors, samples)
            aggregator.merge(agg_part)
            diagnostics.merge(diag_part)
    else:
        tasks = ((seq, list(table.iter_sites(seq)), region_index, ancestors, samples) for seq in sequences)
        with multiprocessing.Pool(threads) as pool:
            results = pool.imap_unordered(_sweep_task, tasks)
            if progress:
                results = tqdm(results, total=len(sequences), unit="seq", desc="Binning sites")
            for agg_part, diag_part in results:
                if cancel_event is not None and cancel_event.is_set():
                    pool.terminate()
                    raise RunCancelled("run cancelled while sweeping sequences")
                aggregator.merge(agg_part)
                diagnostics.merge(diag_part)

    if diagnostics.sites_unbinned:
        logger.warning(
            "%d of %d sites fell outside every bin and were excluded from assignments",
            diagnostics.sites_unbinned,
            diagnostics.sites_total,
        )
    if diagnostics.sequences_without_regions:
        logger.warning(
            "%d sequence(s) have no bins: %s",
            len(diagnostics.sequences_without_regions),
            ", ".join(sorted(diagnostics.sequences_without_regions)),
        )
    if diagnostics.records_skipped:
        logger.warning("%d malformed input record(s) were skipped", diagnostics.records_skipped)

    logger.info(
        "Swept %d sites on %d sequences in %.2fs", diagnostics.sites_total, len(sequences), time.time() - t0
    )
    return aggregator, diagnostics
