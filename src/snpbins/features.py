from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Sequence, Tuple

import pysam

from .errors import ParseError
from .models import Feature
from .utils import open_textmaybe_gzip
from .validation import has_tabix_index

logger = logging.getLogger(__name__)

_GFF_COLUMNS = 9


def _feature_id(attributes: str, seq: str, start: int, end: int) -> str:
    attrs: Dict[str, str] = {}
    for item in attributes.split(";"):
        if "=" in item:
            key, value = item.split("=", 1)
            attrs[key.strip()] = value.strip()
    return attrs.get("ID") or attrs.get("Name") or f"{seq}:{start}-{end}"


def parse_gff_fields(fields: Sequence[str]) -> Feature:
    """Turn the 9 columns of a GFF3 line into a :class:`Feature` (1-based, inclusive)."""
    if len(fields) < _GFF_COLUMNS:
        raise ParseError(f"expected {_GFF_COLUMNS} GFF columns, found {len(fields)}")
    seq, _source, ftype, start_s, end_s = fields[:5]
    try:
        start = int(start_s)
        end = int(end_s)
    except ValueError:
        raise ParseError(f"non-integer coordinates {start_s!r}-{end_s!r}") from None
    if start < 1:
        raise ParseError(f"GFF start must be >= 1, got {start}")
    return Feature(
        sequence=seq,
        start=start,
        end=end,
        feature_type=ftype,
        feature_id=_feature_id(fields[8], seq, start, end),
    )


def _iter_text_rows(path: str | Path) -> Iterator[Tuple[Optional[int], List[str]]]:
    with open_textmaybe_gzip(path, "rt") as fh:
        for lineno, raw in enumerate(fh, start=1):
            line = raw.rstrip("\r\n")
            if line.startswith("##FASTA"):
                break
            if not line.strip() or line.startswith("#"):
                continue
            yield lineno, line.split("\t")


def _iter_tabix_rows(path: str | Path) -> Iterator[Tuple[Optional[int], List[str]]]:
    # tabix drops '#' header lines; there are no file line numbers on this path
    with pysam.TabixFile(str(path)) as tbx:
        for row in tbx.fetch(parser=pysam.asTuple()):
            yield None, list(row)


def load_features(
    path: str | Path,
    *,
    feature_type: Optional[str] = None,
    skip_bad_records: bool = False,
) -> Tuple[List[Feature], Dict[str, int]]:
    """Load GFF3 features.

    Files with a tabix index (``.gz`` + ``.gz.tbi``) are read through pysam;
    anything else is read as plain or gzipped text.

    Parameters
    ----------
    feature_type:
        If set, only features of this type are returned (others still count
        towards ``records_total``).
    skip_bad_records:
        Skip and count malformed lines instead of raising :class:`ParseError`.

    Returns
    -------
    features:
        Parsed features in file order.
    stats:
        Counts of records seen, kept, and skipped.
    """
    source = str(path)
    stats = {"records_total": 0, "records_kept": 0, "records_skipped": 0}

    rows = _iter_tabix_rows(path) if has_tabix_index(path) else _iter_text_rows(path)

    features: List[Feature] = []
    for n, (lineno, fields) in enumerate(rows, start=1):
        stats["records_total"] += 1
        try:
            feat = parse_gff_fields(fields)
        except ParseError as e:
            if not skip_bad_records:
                if lineno is None:
                    raise ParseError(f"record {n}: {e}", source=source) from None
                raise ParseError(str(e), source=source, line=lineno) from None
            stats["records_skipped"] += 1
            logger.warning("Skipping malformed GFF record %s (%s): %s", source, lineno or f"record {n}", e)
            continue
        if feature_type is not None and feat.feature_type != feature_type:
            continue
        features.append(feat)
        stats["records_kept"] += 1

    logger.info(
        "Loaded %d features from %s (%d records, %d skipped)",
        stats["records_kept"],
        source,
        stats["records_total"],
        stats["records_skipped"],
    )
    return features, stats
