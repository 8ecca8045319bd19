from __future__ import annotations

import logging

import pandas as pd

from .arms import ARM_KEY
from .classifier import classify_arrays
from .models import (
    ARM_STATUS,
    CALLABLE_FRACTION,
    CHROMOSOME_ARM,
    CYTOBAND,
    CYTOBAND_STATUS,
    GAIN_FRACTION,
    LOSS_FRACTION,
    NON_DECISIVE,
    REGION_STAT_COLUMNS,
    SAMPLE_ID,
)

logger = logging.getLogger(__name__)

CYTOBAND_KEY = [SAMPLE_ID, CYTOBAND]

CLASSIFIED_COLUMNS = tuple(REGION_STAT_COLUMNS) + (CYTOBAND_STATUS, ARM_STATUS)


def classify_cytobands(
    region_stats: pd.DataFrame,
    arm_status: pd.DataFrame,
    *,
    status_threshold: float,
    uncallable_threshold: float,
) -> pd.DataFrame:
    """Classify every cytoband from its own fractions and attach its arm's status.

    No aggregation happens here. The arm status is left-joined on
    (sample_id, chromosome_arm), so a cytoband without an aggregated arm keeps
    a missing ``dominant_arm_status``.
    """
    if region_stats.empty:
        return pd.DataFrame(columns=list(CLASSIFIED_COLUMNS))

    bands = region_stats.copy()
    bands[CYTOBAND_STATUS] = classify_arrays(
        bands[LOSS_FRACTION],
        bands[GAIN_FRACTION],
        bands[CALLABLE_FRACTION],
        status_threshold,
        uncallable_threshold,
    )
    bands = bands.merge(
        arm_status.loc[:, ARM_KEY + [ARM_STATUS]],
        on=ARM_KEY,
        how="left",
        validate="many_to_one",
    )
    return bands.loc[:, list(CLASSIFIED_COLUMNS)]


def surface_cytobands(classified: pd.DataFrame) -> pd.DataFrame:
    """Keep the cytobands whose call adds information beyond their arm.

    A cytoband surfaces when its arm is not decisive (neutral, uncallable or
    unstable), or when it makes a decisive call of its own that differs from
    the arm. Rows without an arm status must be removed beforehand.
    """
    arm = classified[ARM_STATUS]
    band = classified[CYTOBAND_STATUS]

    arm_open = arm.isin(NON_DECISIVE)
    band_overrides = (band != arm) & ~band.isin(NON_DECISIVE)

    surfaced = classified.loc[arm_open | band_overrides]
    logger.debug(
        "Surfaced %d of %d cytobands (%d chromosome arms)",
        len(surfaced),
        len(classified),
        classified[CHROMOSOME_ARM].nunique(),
    )
    return surfaced
