from __future__ import annotations

import logging

import pandas as pd

from .models import (
    ARM_STATUS,
    CHROMOSOME_ARM,
    CYTOBAND,
    CYTOBAND_STATUS,
    FOCAL_CALL_COLUMNS,
    GENE_SYMBOL,
    NEUTRAL,
    REGION,
    REGION_TYPE,
    REGION_TYPE_ARM,
    REGION_TYPE_CYTOBAND,
    REGION_TYPE_GENE,
    SAMPLE_ID,
    STATUS,
)

logger = logging.getLogger(__name__)

SORT_ORDER = [SAMPLE_ID, REGION_TYPE, REGION]


def _project(df: pd.DataFrame, *, status_col: str, region_col: str, region_type: str) -> pd.DataFrame:
    out = pd.DataFrame(
        {
            SAMPLE_ID: df[SAMPLE_ID].to_numpy(),
            STATUS: df[status_col].to_numpy(),
            REGION: df[region_col].to_numpy(),
        }
    )
    out[REGION_TYPE] = region_type
    return out


def finalize_focal_calls(calls: pd.DataFrame) -> pd.DataFrame:
    """Drop neutral and duplicate rows, then sort by sample, region type and region.

    Idempotent: finalizing an already finalized table returns an equal table.
    """
    out = calls.loc[calls[STATUS] != NEUTRAL, list(FOCAL_CALL_COLUMNS)]
    out = out.drop_duplicates()
    out = out.sort_values(SORT_ORDER, kind="mergesort")
    return out.reset_index(drop=True)


def combine_focal_calls(
    arm_status: pd.DataFrame,
    surfaced_cytobands: pd.DataFrame,
    surfaced_genes: pd.DataFrame,
) -> pd.DataFrame:
    """Union the surfaced arm, cytoband and gene calls into one long table.

    Neutral arm and cytoband calls carry no focal information and are dropped.
    Output columns: sample_id, status, region, region_type.
    """
    arms = arm_status.loc[arm_status[ARM_STATUS] != NEUTRAL]
    bands = surfaced_cytobands.loc[surfaced_cytobands[CYTOBAND_STATUS] != NEUTRAL]

    parts = [
        _project(arms, status_col=ARM_STATUS, region_col=CHROMOSOME_ARM, region_type=REGION_TYPE_ARM),
        _project(bands, status_col=CYTOBAND_STATUS, region_col=CYTOBAND, region_type=REGION_TYPE_CYTOBAND),
        _project(surfaced_genes, status_col=STATUS, region_col=GENE_SYMBOL, region_type=REGION_TYPE_GENE),
    ]
    calls = pd.concat(parts, ignore_index=True)
    logger.debug(
        "Combined %d arm, %d cytoband and %d gene calls",
        len(parts[0]),
        len(parts[1]),
        len(parts[2]),
    )
    return finalize_focal_calls(calls)
