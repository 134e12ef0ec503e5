from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, List, Sequence, Tuple

from .errors import ParseError
from .models import GenotypeTable
from .utils import open_textmaybe_gzip

logger = logging.getLogger(__name__)

# rs# alleles chrom pos strand assembly# center protLSID assayLSID panelLSID QCcode
HAPMAP_FIXED_COLUMNS = 11
_CHROM_COL = 2
_POS_COL = 3


def _split(line: str) -> List[str]:
    if "\t" in line:
        return [f.strip() for f in line.split("\t")]
    return line.split()


def _parse_record(fields: List[str], samples: Sequence[str]) -> Tuple[str, int, Dict[str, str]]:
    expected = HAPMAP_FIXED_COLUMNS + len(samples)
    if len(fields) != expected:
        raise ParseError(f"expected {expected} columns, found {len(fields)}")

    chrom = fields[_CHROM_COL]
    if not chrom:
        raise ParseError("empty chrom column")
    try:
        pos = int(fields[_POS_COL])
    except ValueError:
        raise ParseError(f"position is not an integer: {fields[_POS_COL]!r}") from None
    if pos < 1:
        raise ParseError(f"position must be >= 1 (1-based), got {pos}")

    calls: Dict[str, str] = {}
    for sample, gt in zip(samples, fields[HAPMAP_FIXED_COLUMNS:]):
        if not gt:
            raise ParseError(f"empty genotype for sample {sample!r} at {chrom}:{pos}")
        calls[sample] = gt
    return chrom, pos, calls


def load_genotype_table(path: str | Path, *, skip_bad_records: bool = False) -> GenotypeTable:
    """Load a hapmap genotype file into a :class:`GenotypeTable`.

    Parameters
    ----------
    path:
        Hapmap file (plain or gzipped). Lines starting with ``#`` are ignored; the
        first other line must be the ``rs#`` header.
    skip_bad_records:
        If True, malformed records are skipped and counted in
        ``table.skipped_records`` instead of raising :class:`ParseError`.

    Returns
    -------
    GenotypeTable
    """
    source = str(path)
    table: GenotypeTable | None = None

    with open_textmaybe_gzip(path, "rt") as fh:
        for lineno, raw in enumerate(fh, start=1):
            line = raw.rstrip("\r\n")
            if not line.strip() or line.startswith("#"):
                continue
            fields = _split(line)

            if table is None:
                if fields[0].lower() not in ("rs#", "rs"):
                    raise ParseError(
                        f"expected a hapmap header starting with 'rs#', found {fields[0]!r}",
                        source=source,
                        line=lineno,
                    )
                if len(fields) <= HAPMAP_FIXED_COLUMNS:
                    raise ParseError("hapmap header has no sample columns", source=source, line=lineno)
                table = GenotypeTable(fields[HAPMAP_FIXED_COLUMNS:], source=source)
                continue

            try:
                chrom, pos, calls = _parse_record(fields, table.samples)
                table.add_site(chrom, pos, calls)
            except ParseError as e:
                if not skip_bad_records:
                    raise ParseError(str(e), source=source, line=lineno) from None
                table.skipped_records += 1
                logger.warning("Skipping malformed hapmap record %s:%d: %s", source, lineno, e)

    if table is None:
        raise ParseError("no hapmap header found", source=source)

    logger.info(
        "Loaded %d sites x %d samples on %d sequences from %s (%d skipped)",
        len(table),
        len(table.samples),
        len(table.sequences()),
        source,
        table.skipped_records,
    )
    return table
