from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable

from .errors import ConfigError

logger = logging.getLogger(__name__)


_UCSC_PREFIX = "chr"


def has_tabix_index(path: str | Path) -> bool:
    """True if a bgzipped file has a ``.tbi`` index beside it."""
    p = Path(path)
    if p.suffix != ".gz":
        return False
    return p.with_suffix(p.suffix + ".tbi").exists()


def check_region_source(bin_size: int | None, gff_path: str | None) -> None:
    """Ensure at least one way to build bins was requested; raise ConfigError otherwise."""
    if gff_path is not None:
        return
    if bin_size is None or bin_size <= 0:
        raise ConfigError(
            "No bins can be built. Pass --bin-size N (N > 0) or --gff features.gff3 [--feature-type gene]"
        )


def detect_contig_style(contigs: Iterable[str]) -> str:
    """Infer contig style: 'ucsc' if most contigs start with 'chr', else 'ensembl'."""
    names = [c for c in contigs if c]
    if not names:
        return "unknown"
    chr_like = [c for c in names if c.startswith(_UCSC_PREFIX)]
    if len(chr_like) >= max(1, int(0.5 * len(names))):
        return "ucsc"
    return "ensembl"


def remap_contig(contig: str, style: str) -> str:
    """Remap a contig name to the requested style (ucsc or ensembl)."""
    if style == "ucsc":
        if contig.startswith(_UCSC_PREFIX):
            return contig
        if contig == "MT":
            return "chrM"
        return f"{_UCSC_PREFIX}{contig}"
    if style == "ensembl":
        if contig.startswith(_UCSC_PREFIX):
            core = contig[len(_UCSC_PREFIX) :]
            if core == "M":
                return "MT"
            return core
        return contig
    return contig
