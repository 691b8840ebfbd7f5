"""Result rows and per-test-set result tables."""

import math
from dataclasses import dataclass
from enum import Enum
from typing import Iterator, List, Optional, Sequence, Tuple

import numpy as np
import polars as pl

from pathfisher.catalog import PathwayCatalog, describe_pathway
from pathfisher.stats import ContingencyTable, Direction

RESULT_COLUMNS = [
    "pathway",
    "description",
    "size",
    "real_frac",
    "expected_frac",
    "fold_enrichment",
    "status",
    "real_gene",
    "pvalue",
    "qvalue",
]


class Status(str, Enum):
    ENRICHED = "enriched"
    DEPLETED = "depleted"

    @classmethod
    def from_direction(cls, direction: Direction) -> "Status":
        return cls.ENRICHED if Direction(direction) is Direction.ENRICHMENT else cls.DEPLETED


@dataclass(frozen=True)
class ResultRow:
    """Corrected result of one pathway in one direction for one test set."""

    pathway: str
    description: str
    size: int
    real_frac: float
    expected_frac: float
    fold_enrichment: float
    status: Status
    real_gene: Tuple[str, ...]
    pvalue: float
    qvalue: float

    @property
    def degenerate(self) -> bool:
        """True when the fold enrichment is undefined."""
        return math.isnan(self.fold_enrichment)


def _effect_size(row: ResultRow) -> float:
    if row.fold_enrichment == 0:
        return math.inf
    return abs(math.log2(row.fold_enrichment))


class ResultTable:
    """Ordered result rows for one foreground test set."""

    def __init__(self, name: str, rows: Sequence[ResultRow]):
        self.name = name
        self.rows = tuple(rows)

    def __iter__(self) -> Iterator[ResultRow]:
        return iter(self.rows)

    def __len__(self) -> int:
        return len(self.rows)

    def __repr__(self) -> str:
        return f"ResultTable({self.name!r}, {len(self)} rows)"

    def by_status(self, status: Status) -> List[ResultRow]:
        return [row for row in self.rows if row.status is Status(status)]

    def significant(self, qvalue: float = 0.05) -> "ResultTable":
        """Rows with a q-value at or below the cutoff."""
        return ResultTable(self.name, [row for row in self.rows if row.qvalue <= qvalue])

    def rank_by_fold(self, n: Optional[int] = None) -> List[ResultRow]:
        """
        Rows ranked by distance of fold enrichment from 1 (log2 scale).

        Rows with undefined fold enrichment are excluded. Zero fold enrichment
        (no overlap) is the strongest possible depletion and ranks first.
        """
        ranked = [row for row in self.rows if not row.degenerate]
        ranked.sort(key=_effect_size, reverse=True)
        return ranked if n is None else ranked[:n]

    def to_frame(self) -> pl.DataFrame:
        """Result table as a polars DataFrame with the published column set."""
        return pl.DataFrame(
            {
                "pathway": [r.pathway for r in self.rows],
                "description": [r.description for r in self.rows],
                "size": [r.size for r in self.rows],
                "real_frac": [r.real_frac for r in self.rows],
                "expected_frac": [r.expected_frac for r in self.rows],
                "fold_enrichment": [r.fold_enrichment for r in self.rows],
                "status": [r.status.value for r in self.rows],
                "real_gene": [",".join(r.real_gene) for r in self.rows],
                "pvalue": [r.pvalue for r in self.rows],
                "qvalue": [r.qvalue for r in self.rows],
            },
            schema={
                "pathway": pl.Utf8,
                "description": pl.Utf8,
                "size": pl.Int64,
                "real_frac": pl.Float64,
                "expected_frac": pl.Float64,
                "fold_enrichment": pl.Float64,
                "status": pl.Utf8,
                "real_gene": pl.Utf8,
                "pvalue": pl.Float64,
                "qvalue": pl.Float64,
            },
        )


def assemble_results(
    name: str,
    catalog: PathwayCatalog,
    tables: Sequence[ContingencyTable],
    fold: Sequence[float],
    enrichment: Tuple[Sequence[float], Sequence[float]],
    depletion: Tuple[Sequence[float], Sequence[float]],
    overlaps: Optional[Sequence[Tuple[str, ...]]] = None,
    delimiter: Optional[str] = "%",
) -> ResultTable:
    """
    Merge the corrected enrichment and depletion batches of one test set.

    Args:
        name: Test set name
        catalog: Pathway catalog, in the order of ``tables``
        tables: Contingency table of each pathway
        fold: Fold enrichment of each pathway
        enrichment: (p-values, q-values) of the enrichment direction
        depletion: (p-values, q-values) of the depletion direction
        overlaps: Overlapping genes of each pathway, if available
        delimiter: Pathway id delimiter used to derive descriptions

    Returns:
        ResultTable with two rows per pathway, ordered by p-value
    """
    pathways = list(catalog)
    if not (len(pathways) == len(tables) == len(fold)):
        raise ValueError("Catalog, contingency tables and fold enrichments differ in length")

    rows = []
    for direction, (pvalues, qvalues) in ((Direction.ENRICHMENT, enrichment), (Direction.DEPLETION, depletion)):
        status = Status.from_direction(direction)
        for i, (pathway, table) in enumerate(zip(pathways, tables)):
            real_frac = 100.0 * table.a / (table.a + table.b) if table.a + table.b else float("nan")
            expected_frac = 100.0 * (table.a + table.c) / table.total if table.total else float("nan")
            rows.append(ResultRow(
                pathway=pathway.id,
                description=describe_pathway(pathway.id, delimiter),
                size=table.a + table.c,
                real_frac=real_frac,
                expected_frac=expected_frac,
                fold_enrichment=float(fold[i]),
                status=status,
                real_gene=tuple(overlaps[i]) if overlaps is not None else (),
                pvalue=float(pvalues[i]),
                qvalue=float(qvalues[i]),
            ))

    # Stable sort keeps enrichment before depletion, then catalog order, among equal p-values
    order = np.argsort([row.pvalue for row in rows], kind="stable")
    return ResultTable(name, [rows[i] for i in order])
