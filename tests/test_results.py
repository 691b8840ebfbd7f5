"""Tests for result assembly."""

import math

import polars as pl
import pytest

from pathfisher.results import RESULT_COLUMNS, ResultTable, Status, assemble_results
from pathfisher.stats import ContingencyTable, Direction


@pytest.fixture
def example_table(catalog):
    """Result table of test set A assembled from precomputed values."""
    tables = [ContingencyTable(2, 1, 2, 5), ContingencyTable(0, 3, 4, 3), ContingencyTable(0, 3, 0, 7)]
    fold = [5 / 3, 0.0, float("nan")]
    enrichment = ([1 / 3, 1.0, 1.0], [1.0, 1.0, 1.0])
    depletion = ([116 / 120, 1 / 6, 1.0], [1.0, 0.5, 1.0])
    overlaps = [("G1", "G2"), (), ()]
    return assemble_results("A", catalog, tables, fold, enrichment, depletion, overlaps=overlaps)


def test_status_from_direction():
    assert Status.from_direction(Direction.ENRICHMENT) is Status.ENRICHED
    assert Status.from_direction("depletion") is Status.DEPLETED


def test_two_rows_per_pathway(example_table, catalog):
    assert len(example_table) == 2 * len(catalog)
    assert len(example_table.by_status(Status.ENRICHED)) == len(catalog)
    assert len(example_table.by_status("depleted")) == len(catalog)


def test_rows_ordered_by_pvalue(example_table):
    """Ties keep enrichment before depletion, then catalog order."""
    order = [(row.pathway, row.status.value) for row in example_table]
    assert order == [
        ("Y%CUSTOM%2", "depleted"),
        ("X%CUSTOM%1", "enriched"),
        ("X%CUSTOM%1", "depleted"),
        ("Y%CUSTOM%2", "enriched"),
        ("Z%CUSTOM%3", "enriched"),
        ("Z%CUSTOM%3", "depleted"),
    ]


def test_row_fields(example_table):
    row = next(r for r in example_table if r.pathway == "X%CUSTOM%1" and r.status is Status.ENRICHED)
    assert row.description == "X"
    assert row.size == 4
    assert row.real_frac == pytest.approx(200 / 3)
    assert row.expected_frac == pytest.approx(40.0)
    assert row.fold_enrichment == pytest.approx(5 / 3)
    assert row.real_gene == ("G1", "G2")
    assert row.pvalue == pytest.approx(1 / 3)
    assert not row.degenerate


def test_degenerate_rows_are_flagged(example_table):
    degenerate = [row for row in example_table if row.degenerate]
    assert {row.pathway for row in degenerate} == {"Z%CUSTOM%3"}
    assert all(row.pvalue == 1.0 for row in degenerate)


def test_significant(example_table):
    significant = example_table.significant(0.5)
    assert [(r.pathway, r.status) for r in significant] == [("Y%CUSTOM%2", Status.DEPLETED)]
    assert significant.name == "A"


def test_rank_by_fold_excludes_undefined(example_table):
    """Rows with undefined fold enrichment are not ranked; zero overlap ranks first."""
    ranked = example_table.rank_by_fold()
    assert [(r.pathway, r.status) for r in ranked] == [
        ("Y%CUSTOM%2", Status.DEPLETED),
        ("Y%CUSTOM%2", Status.ENRICHED),
        ("X%CUSTOM%1", Status.ENRICHED),
        ("X%CUSTOM%1", Status.DEPLETED),
    ]
    assert [(r.pathway, r.status) for r in example_table.rank_by_fold(1)] == [("Y%CUSTOM%2", Status.DEPLETED)]


def test_to_frame(example_table):
    frame = example_table.to_frame()
    assert isinstance(frame, pl.DataFrame)
    assert frame.columns == RESULT_COLUMNS
    assert frame.height == 6
    assert set(frame["status"].to_list()) == {"enriched", "depleted"}
    assert frame.filter(pl.col("pathway") == "X%CUSTOM%1")["real_gene"].to_list() == ["G1,G2", "G1,G2"]
    assert math.isnan(frame.filter(pl.col("pathway") == "Z%CUSTOM%3")["fold_enrichment"][0])


def test_empty_table_frame():
    frame = ResultTable("empty", []).to_frame()
    assert frame.height == 0
    assert frame.columns == RESULT_COLUMNS


def test_length_mismatch(catalog):
    with pytest.raises(ValueError, match="differ in length"):
        assemble_results("A", catalog, [ContingencyTable(1, 1, 1, 1)], [1.0], ([0.5], [0.5]), ([0.5], [0.5]))
