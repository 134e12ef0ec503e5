"""Exception types raised by snpbins.

Configuration and parse errors are fatal and abort a run before (or during)
classification. Lookup problems (a site outside every bin, a sequence with no
regions) are not exceptions; they are counted in :class:`~snpbins.models.Diagnostics`.
"""

from __future__ import annotations

from typing import Optional


class SnpbinsError(Exception):
    """Base class for all snpbins errors."""


class ConfigError(SnpbinsError, ValueError):
    """Raised when run configuration cannot produce a valid analysis."""


class ParseError(SnpbinsError, ValueError):
    """Raised when a genotype or region record is malformed.

    The message always names the offending input; ``source`` and ``line`` are
    kept for callers that want to report them separately.
    """

    def __init__(
        self,
        message: str,
        *,
        source: Optional[str] = None,
        line: Optional[int] = None,
    ) -> None:
        where = ""
        if source is not None:
            where = source if line is None else f"{source}:{line}"
        super().__init__(f"{where}: {message}" if where else message)
        self.source = source
        self.line = line


class RunCancelled(SnpbinsError):
    """Raised when a run is cancelled between sequences."""
