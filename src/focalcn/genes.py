from __future__ import annotations

import logging
import re
from typing import List, Optional

import pandas as pd

from .arms import ARM_KEY
from .cytobands import CYTOBAND_KEY
from .models import (
    ARM_STATUS,
    BAND_DELIMITER,
    CHROMOSOME_ARM,
    CYTOBAND,
    CYTOBAND_STATUS,
    DECISIVE,
    GAIN,
    GENE_CALL_COLUMNS,
    GENE_SYMBOL,
    SAMPLE_ID,
    STATUS,
    arm_of,
    chromosome_of,
)

logger = logging.getLogger(__name__)

# Upstream gene annotation may label high-level gains separately.
_STATUS_SYNONYMS = {"amplification": GAIN}

GENE_RESULT_COLUMNS = (SAMPLE_ID, GENE_SYMBOL, STATUS)

_ARM_LABEL_RE = re.compile(r"^((?:chr)?(?:\d+|X|Y))([pq])$", re.IGNORECASE)
_CHR_PREFIX = re.compile(r"^chr", re.IGNORECASE)
_MULTI_BAND = "_multi_band"


def normalize_gene_status(gene_calls: pd.DataFrame) -> pd.DataFrame:
    """Return a copy with status labels lowercased and amplification recoded to gain."""
    df = gene_calls.copy()
    status = df[STATUS].astype(str).str.strip().str.lower()
    df[STATUS] = status.replace(_STATUS_SYNONYMS)
    return df


def split_band_label(label: str) -> List[str]:
    """Split a possibly multi-band label into atomic cytoband names.

    ``"12p-12q"`` -> ``["12p", "12q"]``. A token without its own chromosome
    takes it from the first token: ``"4q31.21-q31.22"`` gives
    ``["4q31.21", "4q31.22"]``, and a bare sub-band (``"4q31.21-31.22"``) also
    keeps the first token's arm. Blank tokens are dropped, so a label made only
    of whitespace and delimiters yields ``[]``.
    """
    tokens = [t.strip() for t in str(label).split(BAND_DELIMITER)]
    tokens = [t for t in tokens if t]
    if len(tokens) <= 1:
        return tokens

    chrom = chromosome_of(tokens[0])
    arm = arm_of(tokens[0])
    bands = [tokens[0]]
    for token in tokens[1:]:
        if chrom is not None and chromosome_of(token) is None:
            if token[0] in "pqPQ":
                token = f"{chrom}{token}"
            elif token[0].isdigit():
                token = f"{arm}{token}"
        bands.append(token)
    return bands


def _bare_chromosome(chrom: Optional[str]) -> Optional[str]:
    if chrom is None:
        return None
    return _CHR_PREFIX.sub("", chrom).upper()


def band_arm(band: str, gene_arm: str) -> str:
    """Arm of one band of a multi-band gene, written the way the gene's arm is.

    Only the p/q letter of ``gene_arm`` changes, so a ``chr``-prefixed arm
    stays prefixed: ``band_arm("12q", "chr12p")`` -> ``"chr12q"``. When the band
    names no arm the gene's arm is kept. When the band sits on another
    chromosome, or ``gene_arm`` is not a plain arm label, the band's own arm
    is returned.
    """
    own = arm_of(band)
    if own is None:
        return gene_arm
    m = _ARM_LABEL_RE.match(str(gene_arm).strip())
    if m is None or _bare_chromosome(m.group(1)) != _bare_chromosome(chromosome_of(band)):
        return own
    letter = own[-1].upper() if m.group(2).isupper() else own[-1]
    return f"{m.group(1)}{letter}"


def expand_gene_bands(gene_calls: pd.DataFrame) -> pd.DataFrame:
    """Emit one row per atomic band of each gene's cytoband label.

    Each row keeps the gene's sample, symbol and status. A single-band gene
    passes through unchanged, including its ``chromosome_arm``. Rows of a
    multi-band gene get the arm of their own band via :func:`band_arm`.
    Duplicate rows are kept; they collapse in :func:`surface_genes`.
    """
    if gene_calls.empty:
        return gene_calls.loc[:, list(GENE_CALL_COLUMNS)].copy()

    bands = gene_calls[CYTOBAND].map(split_band_label)
    multi = bands.map(len) > 1
    expanded = gene_calls.assign(**{CYTOBAND: bands, _MULTI_BAND: multi})
    expanded = expanded.explode(CYTOBAND, ignore_index=True)
    expanded = expanded.loc[expanded[CYTOBAND].notna()].copy()

    n_multi = int(multi.sum())
    if n_multi:
        split = expanded[_MULTI_BAND].astype(bool)
        expanded.loc[split, CHROMOSOME_ARM] = [
            band_arm(band, arm)
            for band, arm in zip(
                expanded.loc[split, CYTOBAND], expanded.loc[split, CHROMOSOME_ARM]
            )
        ]
        logger.debug(
            "Expanded %d multi-band gene rows; %d rows -> %d rows",
            n_multi,
            len(gene_calls),
            len(expanded),
        )
    return expanded.loc[:, list(GENE_CALL_COLUMNS)].reset_index(drop=True)


def attach_parent_status(
    expanded: pd.DataFrame,
    arm_status: pd.DataFrame,
    cytoband_status: pd.DataFrame,
) -> pd.DataFrame:
    """Left-join each expanded gene row to its arm and cytoband dominant status."""
    joined = expanded.merge(
        arm_status.loc[:, ARM_KEY + [ARM_STATUS]],
        on=ARM_KEY,
        how="left",
    )
    joined = joined.merge(
        cytoband_status.loc[:, CYTOBAND_KEY + [CYTOBAND_STATUS]],
        on=CYTOBAND_KEY,
        how="left",
    )
    return joined


def gene_surfaces(status: pd.Series, arm: pd.Series, band: pd.Series) -> pd.Series:
    """Boolean mask of gene rows that carry a call their context hides.

    A gene surfaces if it differs from both the arm and the cytoband status, or
    if it differs from a cytoband status that is itself decisive.
    """
    differs_from_both = (status != arm) & (status != band)
    overrides_band = band.isin(DECISIVE) & (status != band)
    return differs_from_both | overrides_band


def surface_genes(joined: pd.DataFrame) -> pd.DataFrame:
    """Filter joined gene rows and collapse band-split duplicates.

    Rows must already carry both parent statuses. Returns distinct
    (sample_id, gene_symbol, status) rows.
    """
    if joined.empty:
        return pd.DataFrame(columns=list(GENE_RESULT_COLUMNS))

    keep = gene_surfaces(joined[STATUS], joined[ARM_STATUS], joined[CYTOBAND_STATUS])
    genes = joined.loc[keep, list(GENE_RESULT_COLUMNS)].drop_duplicates(ignore_index=True)
    logger.debug("Surfaced %d genes from %d candidate gene-band rows", len(genes), len(joined))
    return genes
