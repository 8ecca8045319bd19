from __future__ import annotations

import logging
import time
from typing import Dict, Iterable, List, Optional, Tuple

import numpy as np
import pandas as pd
from tqdm import tqdm

from .arms import ARM_COLUMNS, ARM_KEY, aggregate_arms
from .config import FocalConfig
from .cytobands import CLASSIFIED_COLUMNS, CYTOBAND_KEY, classify_cytobands, surface_cytobands
from .genes import GENE_RESULT_COLUMNS, attach_parent_status, expand_gene_bands, surface_genes
from .models import (
    ARM_STATUS,
    CYTOBAND_STATUS,
    GENE_CALL_COLUMNS,
    NEUTRAL,
    REGION_TYPE,
    REGION_TYPE_ARM,
    REGION_TYPE_CYTOBAND,
    REGION_TYPE_GENE,
    SAMPLE_ID,
    STATUS,
    FocalResult,
)
from .rollup import combine_focal_calls
from .utils import drop_unjoined, empty_frame, iter_sample_groups
from .validation import validate_gene_calls, validate_region_stats

logger = logging.getLogger(__name__)


def _concat(frames: List[pd.DataFrame], columns: Iterable[str]) -> pd.DataFrame:
    frames = [f for f in frames if not f.empty]
    if not frames:
        return empty_frame(columns)
    return pd.concat(frames, ignore_index=True)


def _resolve_sample(
    region_stats: pd.DataFrame,
    gene_calls: pd.DataFrame,
    config: FocalConfig,
    counts: Dict[str, int],
) -> Tuple[pd.DataFrame, pd.DataFrame, pd.DataFrame, pd.DataFrame]:
    """Run arm, cytoband and gene resolution for one sample's rows."""
    thresholds = dict(
        status_threshold=config.status_threshold,
        uncallable_threshold=config.uncallable_threshold,
    )

    arms = aggregate_arms(region_stats, **thresholds)
    classified = classify_cytobands(region_stats, arms, **thresholds)

    joined_bands, n_missing = drop_unjoined(
        classified,
        joined_col=ARM_STATUS,
        key_cols=ARM_KEY,
        what="cytoband rows",
        strict=config.strict_joins,
    )
    counts["cytoband_rows_missing_arm"] += n_missing
    bands = surface_cytobands(joined_bands)

    if gene_calls.empty:
        return arms, classified, bands, empty_frame(GENE_RESULT_COLUMNS)

    expanded = expand_gene_bands(gene_calls)
    counts["gene_band_rows"] += len(expanded)
    joined = attach_parent_status(expanded, arms, classified)
    joined, n_missing = drop_unjoined(
        joined,
        joined_col=ARM_STATUS,
        key_cols=ARM_KEY,
        what="gene-band rows",
        strict=config.strict_joins,
    )
    counts["gene_rows_missing_arm"] += n_missing
    joined, n_missing = drop_unjoined(
        joined,
        joined_col=CYTOBAND_STATUS,
        key_cols=CYTOBAND_KEY,
        what="gene-band rows",
        strict=config.strict_joins,
    )
    counts["gene_rows_missing_cytoband"] += n_missing
    genes = surface_genes(joined)

    return arms, classified, bands, genes


def _count_orphan_genes(orphans: List[pd.DataFrame], config: FocalConfig) -> int:
    """Count gene-band rows whose sample has no RegionStat rows at all."""
    expanded = expand_gene_bands(_concat(orphans, GENE_CALL_COLUMNS))
    if expanded.empty:
        return 0
    expanded[ARM_STATUS] = np.nan
    _, n_missing = drop_unjoined(
        expanded,
        joined_col=ARM_STATUS,
        key_cols=ARM_KEY,
        what="gene-band rows from samples without region statistics",
        strict=config.strict_joins,
    )
    return n_missing


def resolve_focal_calls(
    region_stats: pd.DataFrame,
    gene_calls: pd.DataFrame,
    config: Optional[FocalConfig] = None,
    *,
    progress: bool = False,
) -> FocalResult:
    """Resolve the most focal copy-number calls for every sample.

    Parameters
    ----------
    region_stats:
        RegionStat table: one row per (sample_id, cytoband) with region_length and
        loss/gain/callable fractions.
    gene_calls:
        GeneCall table: one row per (sample_id, gene_symbol) with its cytoband
        label and status (loss, gain or neutral).
    config:
        Thresholds and join policy. Defaults to ``FocalConfig()``.
    progress:
        Show a tqdm progress bar over samples.

    Returns
    -------
    FocalResult
        The FocalCall table plus the intermediate arm and cytoband tables and
        counters of surfaced and excluded rows.

    Notes
    -----
    Samples are resolved independently and concatenated, which gives the same
    result as a single pass over all samples. Excluded rows are logged at
    WARNING and the run summary at INFO on the ``focalcn`` logger; call
    :func:`focalcn.utils.configure_logging` to see them outside an application
    that configures logging itself.
    """
    t0 = time.time()
    if config is None:
        config = FocalConfig()

    stats = validate_region_stats(region_stats)
    genes = validate_gene_calls(gene_calls)

    counts: Dict[str, int] = {
        "samples": int(stats[SAMPLE_ID].nunique()),
        "region_rows": len(stats),
        "gene_rows": len(genes),
        "gene_rows_neutral_dropped": 0,
        "gene_band_rows": 0,
        "cytoband_rows_missing_arm": 0,
        "gene_rows_missing_arm": 0,
        "gene_rows_missing_cytoband": 0,
        "arm_calls": 0,
        "cytoband_calls": 0,
        "gene_calls": 0,
    }

    neutral = genes[STATUS] == NEUTRAL
    if neutral.any():
        counts["gene_rows_neutral_dropped"] = int(neutral.sum())
        logger.info("Dropping %d neutral gene rows", counts["gene_rows_neutral_dropped"])
        genes = genes.loc[~neutral]

    genes_by_sample = dict(iter_sample_groups(genes, SAMPLE_ID))
    no_genes = empty_frame(GENE_CALL_COLUMNS)

    arm_parts: List[pd.DataFrame] = []
    classified_parts: List[pd.DataFrame] = []
    band_parts: List[pd.DataFrame] = []
    gene_parts: List[pd.DataFrame] = []

    it: Iterable[Tuple[str, pd.DataFrame]] = iter_sample_groups(stats, SAMPLE_ID)
    if progress:
        it = tqdm(it, total=counts["samples"], unit="sample", desc="Resolving focal calls")

    for sample_id, sample_stats in it:
        arms, classified, bands, sample_genes = _resolve_sample(
            sample_stats,
            genes_by_sample.pop(sample_id, no_genes),
            config,
            counts,
        )
        arm_parts.append(arms)
        classified_parts.append(classified)
        band_parts.append(bands)
        gene_parts.append(sample_genes)

    if genes_by_sample:
        counts["gene_rows_missing_arm"] += _count_orphan_genes(list(genes_by_sample.values()), config)

    arm_status = _concat(arm_parts, ARM_COLUMNS)
    cytoband_status = _concat(classified_parts, CLASSIFIED_COLUMNS)
    calls = combine_focal_calls(
        arm_status,
        _concat(band_parts, CLASSIFIED_COLUMNS),
        _concat(gene_parts, GENE_RESULT_COLUMNS),
    )

    by_type = calls[REGION_TYPE].value_counts()
    counts["arm_calls"] = int(by_type.get(REGION_TYPE_ARM, 0))
    counts["cytoband_calls"] = int(by_type.get(REGION_TYPE_CYTOBAND, 0))
    counts["gene_calls"] = int(by_type.get(REGION_TYPE_GENE, 0))

    logger.info(
        "Resolved %d focal calls for %d samples (arm=%d, cytoband=%d, gene=%d) in %.2fs",
        len(calls),
        counts["samples"],
        counts["arm_calls"],
        counts["cytoband_calls"],
        counts["gene_calls"],
        time.time() - t0,
    )
    return FocalResult(
        calls=calls,
        arm_status=arm_status,
        cytoband_status=cytoband_status,
        counts=counts,
    )
