import pandas as pd
import pytest

from focalcn import FocalConfig, resolve_focal_calls
from focalcn.errors import MissingJoinKeyError
from focalcn.rollup import finalize_focal_calls

STAT_COLUMNS = [
    "sample_id",
    "chromosome_arm",
    "cytoband",
    "region_length",
    "loss_fraction",
    "gain_fraction",
    "callable_fraction",
]
GENE_COLUMNS = ["sample_id", "gene_symbol", "cytoband", "chromosome_arm", "status"]


def _stats(rows):
    return pd.DataFrame(rows, columns=STAT_COLUMNS)


def _genes(rows):
    return pd.DataFrame(rows, columns=GENE_COLUMNS)


def _records(result):
    return [tuple(r) for r in result.calls.itertuples(index=False)]


def _cohort():
    stats = _stats(
        [
            # 1p: neutral arm with one focal loss band
            ("S1", "1p", "1p36", 1_000_000, 0.95, 0.0, 1.0),
            ("S1", "1p", "1p35", 3_000_000, 0.10, 0.0, 1.0),
            # 2q: whole-arm loss
            ("S1", "2q", "2q11", 5_000_000, 0.95, 0.0, 1.0),
            # 3p: neutral arm, loss band
            ("S1", "3p", "3p21", 1_000_000, 0.95, 0.0, 1.0),
            ("S1", "3p", "3p14", 9_000_000, 0.0, 0.0, 1.0),
            # S2: whole-arm gain with a poorly covered band
            ("S2", "7p", "7p11", 2_000_000, 0.0, 0.99, 1.0),
            ("S2", "7p", "7p22", 100_000, 0.0, 0.0, 0.3),
        ]
    )
    genes = _genes(
        [
            ("S1", "LOSSGENE", "2q11", "2q", "loss"),
            ("S1", "GAINGENE", "3p21", "3p", "gain"),
            ("S2", "EGFR", "7p11", "7p", "gain"),
            ("S2", "CDKN2A", "7p11", "7p", "loss"),
        ]
    )
    return stats, genes


def test_scenario_focal_band_under_neutral_arm():
    stats = _stats(
        [
            ("S1", "1p", "1p36", 1_000_000, 0.95, 0.0, 1.0),
            ("S1", "1p", "1p35", 3_000_000, 0.10, 0.0, 1.0),
        ]
    )
    result = resolve_focal_calls(stats, _genes([]))

    arm = result.arm_status.iloc[0]
    assert arm["loss_fraction_arm"] == pytest.approx(0.3125)
    assert arm["dominant_arm_status"] == "neutral"
    assert _records(result) == [("S1", "loss", "1p36", "cytoband")]


def test_scenario_poorly_callable_band_is_uncallable():
    stats = _stats([("S1", "5q", "5q31", 1000, 0.99, 0.0, 0.3)])
    result = resolve_focal_calls(stats, _genes([]))
    assert result.cytoband_status.iloc[0]["dominant_cytoband_status"] == "uncallable"
    assert ("S1", "uncallable", "5q", "arm") in _records(result)


def test_cohort_end_to_end():
    stats, genes = _cohort()
    result = resolve_focal_calls(stats, genes)

    assert _records(result) == [
        ("S1", "loss", "2q", "arm"),
        ("S1", "loss", "1p36", "cytoband"),
        ("S1", "loss", "3p21", "cytoband"),
        ("S1", "gain", "GAINGENE", "gene"),
        ("S2", "gain", "7p", "arm"),
        ("S2", "loss", "CDKN2A", "gene"),
    ]
    assert result.counts["samples"] == 2
    assert result.counts["arm_calls"] == 2
    assert result.counts["cytoband_calls"] == 2
    assert result.counts["gene_calls"] == 2
    assert result.counts["gene_rows_missing_arm"] == 0
    assert result.counts["gene_rows_missing_cytoband"] == 0


def test_gene_agreeing_with_both_levels_is_hidden():
    stats, genes = _cohort()
    result = resolve_focal_calls(stats, genes)
    assert "LOSSGENE" not in set(result.calls["region"])
    assert "EGFR" not in set(result.calls["region"])


def test_gene_overriding_decisive_band_under_neutral_arm_surfaces():
    stats, genes = _cohort()
    result = resolve_focal_calls(stats, genes)
    arms = result.arm_status.set_index(["sample_id", "chromosome_arm"])
    assert arms.loc[("S1", "3p"), "dominant_arm_status"] == "neutral"
    assert ("S1", "gain", "GAINGENE", "gene") in _records(result)


def test_no_neutral_calls_in_output():
    stats, genes = _cohort()
    genes = pd.concat(
        [genes, _genes([("S1", "QUIET", "3p21", "3p", "neutral")])], ignore_index=True
    )
    result = resolve_focal_calls(stats, genes)
    assert "neutral" not in set(result.calls["status"])
    assert result.counts["gene_rows_neutral_dropped"] == 1


def test_multi_band_gene_is_reported_once():
    stats = _stats(
        [
            ("S1", "12p", "12p13", 1000, 0.0, 0.0, 1.0),
            ("S1", "12q", "12q13", 1000, 0.0, 0.0, 1.0),
        ]
    )
    genes = _genes([("S1", "SPAN", "12p13-12q13", "12p", "loss")])
    result = resolve_focal_calls(stats, genes)

    assert result.counts["gene_band_rows"] == 2
    assert _records(result) == [("S1", "loss", "SPAN", "gene")]


def test_missing_parent_rows_are_excluded_and_counted(caplog):
    stats, genes = _cohort()
    genes = pd.concat(
        [
            genes,
            _genes(
                [
                    ("S1", "NOBAND", "1p99", "1p", "loss"),
                    ("S1", "NOARM", "21q22", "21q", "gain"),
                    ("S9", "NOSAMPLE", "1p36", "1p", "gain"),
                ]
            ),
        ],
        ignore_index=True,
    )
    with caplog.at_level("WARNING", logger="focalcn"):
        result = resolve_focal_calls(stats, genes)

    regions = set(result.calls["region"])
    assert not regions & {"NOBAND", "NOARM", "NOSAMPLE"}
    assert result.counts["gene_rows_missing_cytoband"] == 1
    assert result.counts["gene_rows_missing_arm"] == 2
    assert "no matching parent" in caplog.text


def test_strict_joins_raise():
    stats, genes = _cohort()
    genes = pd.concat(
        [genes, _genes([("S1", "NOBAND", "1p99", "1p", "loss")])], ignore_index=True
    )
    with pytest.raises(MissingJoinKeyError) as excinfo:
        resolve_focal_calls(stats, genes, FocalConfig(strict_joins=True))
    assert ("S1", "1p99") in excinfo.value.keys


def test_per_sample_runs_match_whole_cohort():
    stats, genes = _cohort()
    whole = resolve_focal_calls(stats, genes).calls

    parts = []
    for sample_id in ["S1", "S2"]:
        parts.append(
            resolve_focal_calls(
                stats[stats["sample_id"] == sample_id],
                genes[genes["sample_id"] == sample_id],
            ).calls
        )
    combined = finalize_focal_calls(pd.concat(parts, ignore_index=True))
    pd.testing.assert_frame_equal(combined, whole)


def test_rerunning_finalize_on_output_changes_nothing():
    stats, genes = _cohort()
    calls = resolve_focal_calls(stats, genes).calls
    pd.testing.assert_frame_equal(finalize_focal_calls(calls), calls)


def test_thresholds_change_calls():
    stats = _stats([("S1", "1p", "1p36", 1000, 0.7, 0.0, 1.0)])
    default = resolve_focal_calls(stats, _genes([]))
    relaxed = resolve_focal_calls(stats, _genes([]), FocalConfig(status_threshold=0.6))
    assert default.calls.empty
    assert _records(relaxed) == [("S1", "loss", "1p", "arm")]


def test_arm_column_is_derived_when_absent():
    stats = _stats([("S1", "1p", "1p36.33", 1000, 0.95, 0.0, 1.0)]).drop(columns="chromosome_arm")
    genes = _genes([("S1", "GENE", "1p36.33", "1p", "gain")]).drop(columns="chromosome_arm")
    result = resolve_focal_calls(stats, genes)
    assert _records(result) == [
        ("S1", "loss", "1p", "arm"),
        ("S1", "gain", "GENE", "gene"),
    ]


def test_progress_bar_does_not_change_results():
    stats, genes = _cohort()
    quiet = resolve_focal_calls(stats, genes).calls
    noisy = resolve_focal_calls(stats, genes, progress=True).calls
    pd.testing.assert_frame_equal(quiet, noisy)


def test_chr_prefixed_arms_join_genes_on_bare_band_labels():
    stats = _stats(
        [
            ("S1", "chr1p", "1p36", 1000, 0.95, 0.0, 1.0),
            ("S1", "chr1p", "1p35", 9000, 0.0, 0.0, 1.0),
        ]
    )
    genes = _genes([("S1", "G1", "1p36", "chr1p", "gain")])
    result = resolve_focal_calls(stats, genes)

    assert result.counts["gene_rows_missing_arm"] == 0
    assert _records(result) == [
        ("S1", "loss", "1p36", "cytoband"),
        ("S1", "gain", "G1", "gene"),
    ]


def test_multi_band_gene_with_chr_prefixed_arms_is_resolved():
    stats = _stats(
        [
            ("S1", "chr12p", "12p13", 1000, 0.0, 0.0, 1.0),
            ("S1", "chr12q", "12q13", 1000, 0.0, 0.0, 1.0),
        ]
    )
    genes = _genes([("S1", "SPAN", "12p13-12q13", "chr12p", "loss")])
    result = resolve_focal_calls(stats, genes)

    assert result.counts["gene_band_rows"] == 2
    assert result.counts["gene_rows_missing_arm"] == 0
    assert _records(result) == [("S1", "loss", "SPAN", "gene")]


def test_single_band_gene_is_judged_against_its_declared_arm():
    # band on 1p, gene filed under 1q: the 1q arm call is the gene's parent
    stats = _stats(
        [
            ("S1", "1p", "1p36", 1000, 0.0, 0.0, 1.0),
            ("S1", "1q", "1q21", 1000, 0.0, 0.95, 1.0),
        ]
    )
    genes = _genes([("S1", "FILED", "1p36", "1q", "gain")])
    result = resolve_focal_calls(stats, genes)

    assert ("S1", "gain", "1q", "arm") in _records(result)
    assert "FILED" not in set(result.calls["region"])
