from __future__ import annotations

import logging
import math

import pandas as pd

from .errors import MalformedInputError, ThresholdError
from .models import (
    BAND_DELIMITER,
    CHROMOSOME_ARM,
    CYTOBAND,
    FRACTION_COLUMNS,
    GAIN_FRACTION,
    GENE_CALL_COLUMNS,
    GENE_STATUSES,
    GENE_SYMBOL,
    LOSS_FRACTION,
    REGION_LENGTH,
    REGION_STAT_COLUMNS,
    SAMPLE_ID,
    STATUS,
    arm_of,
)
from .utils import require_columns

logger = logging.getLogger(__name__)

# Slack for loss + gain sums that exceed 1 only through float rounding upstream.
_SUM_TOLERANCE = 1e-9


def check_thresholds(status_threshold: float, uncallable_threshold: float) -> None:
    """Fail fast on thresholds that would break first-match-wins classification.

    Both thresholds must lie in [0, 1]. ``status_threshold`` must also exceed 0.5,
    otherwise loss and gain could both clear it for the same region.
    """
    for name, value in (
        ("status_threshold", status_threshold),
        ("uncallable_threshold", uncallable_threshold),
    ):
        try:
            v = float(value)
        except (TypeError, ValueError):
            raise ThresholdError(f"{name} must be a number in [0, 1], got {value!r}") from None
        if math.isnan(v) or not 0.0 <= v <= 1.0:
            raise ThresholdError(f"{name} must be in [0, 1], got {value!r}")
    if float(status_threshold) <= 0.5:
        raise ThresholdError(
            f"status_threshold must be > 0.5 so loss and gain cannot both exceed it, "
            f"got {status_threshold!r}"
        )


def _derive_arms(df: pd.DataFrame, *, table: str) -> pd.DataFrame:
    logger.info("%s has no %s column; deriving arms from cytoband labels", table, CHROMOSOME_ARM)
    arms = df[CYTOBAND].map(arm_of)
    bad = arms.isna()
    if bad.any():
        raise MalformedInputError(
            "cannot derive chromosome arm from cytoband label",
            table=table,
            rows=df.index[bad].tolist(),
        )
    df = df.copy()
    df[CHROMOSOME_ARM] = arms
    return df


def _check_keys(df: pd.DataFrame, columns, *, table: str) -> None:
    blank = df[list(columns)].isna().any(axis=1)
    if blank.any():
        raise MalformedInputError(
            f"missing identifier in {list(columns)}",
            table=table,
            rows=df.index[blank].tolist(),
        )


def validate_region_stats(region_stats: pd.DataFrame) -> pd.DataFrame:
    """Check a RegionStat table and return a normalized copy.

    The whole table is rejected on the first violated rule; nothing is clamped.
    Fractions and lengths are coerced to float in the returned copy.
    """
    table = "RegionStat"
    df = region_stats
    if CHROMOSOME_ARM not in df.columns and CYTOBAND in df.columns:
        df = _derive_arms(df, table=table)
    require_columns(df, REGION_STAT_COLUMNS, table=table)
    df = df.loc[:, list(REGION_STAT_COLUMNS)].copy()

    _check_keys(df, (SAMPLE_ID, CHROMOSOME_ARM, CYTOBAND), table=table)

    fractions = df[list(FRACTION_COLUMNS)].apply(pd.to_numeric, errors="coerce")
    bad = fractions.isna().any(axis=1) | ((fractions < 0.0) | (fractions > 1.0)).any(axis=1)
    if bad.any():
        raise MalformedInputError(
            "fractions must be numbers in [0, 1]",
            table=table,
            rows=df.index[bad].tolist(),
        )

    over = (fractions[LOSS_FRACTION] + fractions[GAIN_FRACTION]) > 1.0 + _SUM_TOLERANCE
    if over.any():
        raise MalformedInputError(
            "loss_fraction + gain_fraction exceeds 1",
            table=table,
            rows=df.index[over].tolist(),
        )

    lengths = pd.to_numeric(df[REGION_LENGTH], errors="coerce")
    bad_len = lengths.isna() | (lengths <= 0)
    if bad_len.any():
        raise MalformedInputError(
            "region_length must be a positive number",
            table=table,
            rows=df.index[bad_len].tolist(),
        )

    dup = df.duplicated(subset=[SAMPLE_ID, CYTOBAND], keep=False)
    if dup.any():
        raise MalformedInputError(
            "duplicate (sample_id, cytoband) rows",
            table=table,
            rows=df.index[dup].tolist(),
        )

    df[list(FRACTION_COLUMNS)] = fractions.astype(float)
    df[REGION_LENGTH] = lengths.astype(float)
    return df


def validate_gene_calls(gene_calls: pd.DataFrame) -> pd.DataFrame:
    """Check a GeneCall table and return a copy restricted to its contract columns."""
    table = "GeneCall"
    df = gene_calls
    if CHROMOSOME_ARM not in df.columns and CYTOBAND in df.columns:
        df = _derive_arms(df, table=table)
    require_columns(df, GENE_CALL_COLUMNS, table=table)
    df = df.loc[:, list(GENE_CALL_COLUMNS)].copy()

    _check_keys(df, (SAMPLE_ID, GENE_SYMBOL, CYTOBAND, CHROMOSOME_ARM), table=table)

    no_band = (
        df[CYTOBAND].astype(str).str.replace(BAND_DELIMITER, "", regex=False).str.strip() == ""
    )
    if no_band.any():
        raise MalformedInputError(
            "cytoband label names no band (blank or only delimiters)",
            table=table,
            rows=df.index[no_band].tolist(),
        )

    bad = ~df[STATUS].isin(GENE_STATUSES)
    if bad.any():
        found = sorted(str(s) for s in df.loc[bad, STATUS].unique())
        hint = ""
        if "amplification" in found:
            hint = "; recode amplification to gain with genes.normalize_gene_status"
        raise MalformedInputError(
            f"status must be one of {sorted(GENE_STATUSES)}, found {found}{hint}",
            table=table,
            rows=df.index[bad].tolist(),
        )

    n_status = df.groupby([SAMPLE_ID, GENE_SYMBOL])[STATUS].transform("nunique")
    conflicting = n_status > 1
    if conflicting.any():
        raise MalformedInputError(
            "gene has conflicting statuses within one sample",
            table=table,
            rows=df.index[conflicting].tolist(),
        )
    return df
