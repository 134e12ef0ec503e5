"""snpbins: region-based ancestral-origin binning of hapmap genotypes.

Public API is intentionally small; most users should use the CLI:

    snpbins assign --hapmap ... --ancestors P1 P2 --bin-size 100000 --outdir ...

"""

from __future__ import annotations

__all__ = ["__version__"]

__version__ = "0.1.0"
