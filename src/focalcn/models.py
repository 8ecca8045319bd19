from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Dict, Optional

import pandas as pd

# Column names shared by the input and output tables.
SAMPLE_ID = "sample_id"
CHROMOSOME_ARM = "chromosome_arm"
CYTOBAND = "cytoband"
REGION_LENGTH = "region_length"
LOSS_FRACTION = "loss_fraction"
GAIN_FRACTION = "gain_fraction"
CALLABLE_FRACTION = "callable_fraction"
GENE_SYMBOL = "gene_symbol"
STATUS = "status"
REGION = "region"
REGION_TYPE = "region_type"

ARM_STATUS = "dominant_arm_status"
CYTOBAND_STATUS = "dominant_cytoband_status"

FRACTION_COLUMNS = (LOSS_FRACTION, GAIN_FRACTION, CALLABLE_FRACTION)

REGION_STAT_COLUMNS = (
    SAMPLE_ID,
    CHROMOSOME_ARM,
    CYTOBAND,
    REGION_LENGTH,
    LOSS_FRACTION,
    GAIN_FRACTION,
    CALLABLE_FRACTION,
)
GENE_CALL_COLUMNS = (SAMPLE_ID, GENE_SYMBOL, CYTOBAND, CHROMOSOME_ARM, STATUS)
FOCAL_CALL_COLUMNS = (SAMPLE_ID, STATUS, REGION, REGION_TYPE)

# Dominant statuses, listed in first-match-wins order.
UNCALLABLE = "uncallable"
LOSS = "loss"
GAIN = "gain"
UNSTABLE = "unstable"
NEUTRAL = "neutral"
DOMINANT_STATUSES = (UNCALLABLE, LOSS, GAIN, UNSTABLE, NEUTRAL)

# Statuses that carry no directional claim about a region.
NON_DECISIVE = frozenset({NEUTRAL, UNCALLABLE, UNSTABLE})
DECISIVE = frozenset({LOSS, GAIN})

GENE_STATUSES = frozenset({LOSS, GAIN, NEUTRAL})

REGION_TYPE_ARM = "arm"
REGION_TYPE_CYTOBAND = "cytoband"
REGION_TYPE_GENE = "gene"

# Joins the bands of a gene spanning more than one cytoband ("12p-12q").
BAND_DELIMITER = "-"

_ARM_RE = re.compile(r"^((?:chr)?(?:\d+|X|Y))([pq])", re.IGNORECASE)


def arm_of(label: str) -> Optional[str]:
    """Return the chromosome arm of a cytoband label, or None if it has none.

    ``"12p13.31"`` -> ``"12p"``; ``"chrXq28"`` -> ``"chrXq"``; ``"q31.22"`` -> None.
    """
    m = _ARM_RE.match(str(label).strip())
    if m is None:
        return None
    return f"{m.group(1)}{m.group(2).lower()}"


def chromosome_of(label: str) -> Optional[str]:
    """Return the chromosome prefix of a cytoband label (``"4q31.21"`` -> ``"4"``)."""
    m = _ARM_RE.match(str(label).strip())
    if m is None:
        return None
    return m.group(1)


@dataclass
class FocalResult:
    """Outcome of one pipeline run.

    Attributes
    ----------
    calls:
        Long-format FocalCall table (sample_id, status, region, region_type).
    arm_status:
        Arm Aggregator output: aggregated fractions and ``dominant_arm_status``.
    cytoband_status:
        Every cytoband with its own and its parent arm's dominant status, before
        surfacing.
    counts:
        Simple counters about rows surfaced and rows excluded.
    """

    calls: pd.DataFrame
    arm_status: pd.DataFrame
    cytoband_status: pd.DataFrame
    counts: Dict[str, int] = field(default_factory=dict)
