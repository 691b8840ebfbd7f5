"""Writers for result tables and EnrichmentMap generic results files."""

import logging
from pathlib import Path
from typing import List, Mapping, Union

import polars as pl

from pathfisher.results import ResultTable, Status
from pathfisher.utils import ensure_dir, safe_filenames

logger = logging.getLogger(__name__)

# EnrichmentMap colours phenotype +1 red and -1 blue
FEMAP_STATUS_CODES = {Status.ENRICHED.value: 1, Status.DEPLETED.value: -1}


def femap_frame(table: ResultTable) -> pl.DataFrame:
    """
    Reformat a result table as an EnrichmentMap "generic results" table.

    Returns:
        DataFrame with columns pathway, description, pvalue, qvalue, status (1 or -1)
    """
    return (
        table.to_frame()
        .select(["pathway", "description", "pvalue", "qvalue", "status"])
        .with_columns(
            pl.col("status").replace_strict(FEMAP_STATUS_CODES, return_dtype=pl.Int8)
        )
    )


def write_femap(tables: Mapping[str, ResultTable], results_folder: Union[str, Path]) -> List[Path]:
    """
    Write one ``femap_<name>.txt`` generic results file per test set.

    Args:
        tables: Result tables keyed by test set name
        results_folder: Output folder, created if missing

    Returns:
        Paths of the written files

    Raises:
        ValueError: If two test set names map to the same file name
    """
    stems = safe_filenames(tables)
    results_folder = ensure_dir(Path(results_folder))
    written = []
    for name, table in tables.items():
        file_path = results_folder / f"femap_{stems[name]}.txt"
        femap_frame(table).write_csv(file_path, separator="\t", quote_style="never")
        logger.info(f"Wrote EnrichmentMap-formatted results file to {file_path}")
        written.append(file_path)
    return written


def write_results(tables: Mapping[str, ResultTable], results_folder: Union[str, Path]) -> List[Path]:
    """
    Write one tab-separated ``results_<name>.tsv`` table per test set.

    Args:
        tables: Result tables keyed by test set name
        results_folder: Output folder, created if missing

    Returns:
        Paths of the written files

    Raises:
        ValueError: If two test set names map to the same file name
    """
    stems = safe_filenames(tables)
    results_folder = ensure_dir(Path(results_folder))
    written = []
    for name, table in tables.items():
        file_path = results_folder / f"results_{stems[name]}.tsv"
        table.to_frame().write_csv(file_path, separator="\t")
        logger.info(f"Wrote {len(table)} result rows for '{name}' to {file_path}")
        written.append(file_path)
    return written
