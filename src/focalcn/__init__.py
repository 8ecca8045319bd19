"""focalcn: most-focal copy-number status per sample across arm, cytoband and gene.

Public API is intentionally small; most users only need the pipeline entry point:

    from focalcn import FocalConfig, configure_logging, resolve_focal_calls
    configure_logging(1)  # per-run summary and excluded-row warnings on stderr
    result = resolve_focal_calls(region_stats, gene_calls, FocalConfig())

"""

from __future__ import annotations

__all__ = [
    "__version__",
    "FocalConfig",
    "FocalResult",
    "configure_logging",
    "resolve_focal_calls",
]

__version__ = "0.1.0"

from .config import FocalConfig
from .models import FocalResult
from .pipeline import resolve_focal_calls
from .utils import configure_logging
