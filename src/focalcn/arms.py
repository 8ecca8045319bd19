from __future__ import annotations

import logging

import pandas as pd

from .classifier import classify_arrays
from .models import (
    ARM_STATUS,
    CALLABLE_FRACTION,
    CHROMOSOME_ARM,
    FRACTION_COLUMNS,
    GAIN_FRACTION,
    LOSS_FRACTION,
    REGION_LENGTH,
    SAMPLE_ID,
)

logger = logging.getLogger(__name__)

ARM_KEY = [SAMPLE_ID, CHROMOSOME_ARM]

ARM_COLUMNS = (
    SAMPLE_ID,
    CHROMOSOME_ARM,
    f"{LOSS_FRACTION}_arm",
    f"{GAIN_FRACTION}_arm",
    f"{CALLABLE_FRACTION}_arm",
    ARM_STATUS,
)


def aggregate_arms(
    region_stats: pd.DataFrame,
    *,
    status_threshold: float,
    uncallable_threshold: float,
) -> pd.DataFrame:
    """Roll cytoband fractions up to chromosome arms and classify each arm.

    Each arm fraction is the region_length-weighted mean of its cytobands'
    fractions. Weights are normalized per arm before summing, so an arm with a
    single cytoband reproduces that cytoband's fractions exactly.

    Returns one row per (sample_id, chromosome_arm) with columns
    ``loss_fraction_arm``, ``gain_fraction_arm``, ``callable_fraction_arm`` and
    ``dominant_arm_status``.
    """
    if region_stats.empty:
        return pd.DataFrame(columns=list(ARM_COLUMNS))

    lengths = region_stats[REGION_LENGTH].astype(float)
    weights = lengths / lengths.groupby([region_stats[k] for k in ARM_KEY]).transform("sum")

    weighted = region_stats[list(FRACTION_COLUMNS)].mul(weights, axis=0)
    weighted[ARM_KEY] = region_stats[ARM_KEY]
    arms = weighted.groupby(ARM_KEY, sort=True, as_index=False)[list(FRACTION_COLUMNS)].sum()
    arms = arms.rename(columns={c: f"{c}_arm" for c in FRACTION_COLUMNS})

    arms[ARM_STATUS] = classify_arrays(
        arms[f"{LOSS_FRACTION}_arm"],
        arms[f"{GAIN_FRACTION}_arm"],
        arms[f"{CALLABLE_FRACTION}_arm"],
        status_threshold,
        uncallable_threshold,
    )
    logger.debug("Aggregated %d cytobands into %d arms", len(region_stats), len(arms))
    return arms.loc[:, list(ARM_COLUMNS)]
