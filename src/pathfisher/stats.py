"""
Statistical functions for pathway enrichment and depletion testing.
"""

import logging
import warnings
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterable, List, Tuple

import numba as nb
import numpy as np
from scipy.stats import hypergeom
from statsmodels.stats.multitest import multipletests

from pathfisher.catalog import PathwayCatalog
from pathfisher.errors import DegenerateTestWarning
from pathfisher.universe import GeneSet, GeneUniverse

logger = logging.getLogger(__name__)


class Direction(str, Enum):
    """Alternative hypothesis of a one-sided test."""

    ENRICHMENT = "enrichment"  # odds ratio > 1
    DEPLETION = "depletion"    # odds ratio < 1


@dataclass(frozen=True)
class ContingencyTable:
    """
    2x2 overlap table for one (pathway, test set) pair.

                        | in pathway | not in pathway |
        in test set     |     a      |       b        |
        rest of bg      |     c      |       d        |
    """

    a: int
    b: int
    c: int
    d: int

    def __post_init__(self):
        if min(self.a, self.b, self.c, self.d) < 0:
            raise ValueError(f"Contingency cells must be non-negative: {self}")

    @property
    def total(self) -> int:
        return self.a + self.b + self.c + self.d

    def as_array(self) -> np.ndarray:
        return np.array([[self.a, self.b], [self.c, self.d]], dtype=np.int64)


@dataclass(frozen=True)
class DirectionalTestResult:
    """Outcome of one one-sided test for one pathway."""

    pathway: str
    direction: Direction
    pvalue: float
    fold_enrichment: float


#  Contingency tables

def build_contingency(pathway_genes: Iterable[str], test_members: frozenset,
                      background_members: frozenset) -> ContingencyTable:
    """
    Compute the contingency table of one pathway against one test set.

    Args:
        pathway_genes: Normalised pathway genes (may include genes outside the background)
        test_members: Test set genes, a subset of the background
        background_members: Background genes

    Returns:
        ContingencyTable with a + b + c + d == len(background_members)
    """
    pathway_genes = frozenset(pathway_genes)
    a = len(test_members & pathway_genes)
    b = len(test_members) - a
    c = len(pathway_genes & background_members) - a
    d = len(background_members) - len(test_members) - c
    return ContingencyTable(a, b, c, d)


@nb.njit(parallel=True)
def _count_overlaps(indptr, indices, test_mask):
    """
    Count test set members in each pathway.

    Args:
        indptr: CSR row pointer, one row per pathway
        indices: Background gene indices of pathway members
        test_mask: Boolean mask over background genes marking test set members

    Returns:
        Array of overlap counts, one per pathway
    """
    n_pathways = indptr.shape[0] - 1
    overlaps = np.zeros(n_pathways, dtype=np.int64)
    for i in nb.prange(n_pathways):
        count = 0
        for k in range(indptr[i], indptr[i + 1]):
            if test_mask[indices[k]]:
                count += 1
        overlaps[i] = count
    return overlaps


class PathwayIndex:
    """CSR membership index of catalog pathways over background genes.

    Pathway genes absent from the background are left out of the index.
    """

    def __init__(self, catalog: PathwayCatalog, background: GeneSet):
        self.pathway_ids = catalog.ids
        self.gene_index: Dict[str, int] = {g: i for i, g in enumerate(sorted(background.members))}

        indptr = [0]
        indices: List[int] = []
        for pathway in catalog:
            members = sorted(self.gene_index[g] for g in pathway.genes if g in self.gene_index)
            indices.extend(members)
            indptr.append(len(indices))

        self.indptr = np.asarray(indptr, dtype=np.int64)
        self.indices = np.asarray(indices, dtype=np.int64)
        self.background_size = len(self.gene_index)

    @property
    def sizes(self) -> np.ndarray:
        """Number of genes of each pathway found in the background."""
        return np.diff(self.indptr)

    def test_mask(self, test_set: GeneSet) -> np.ndarray:
        mask = np.zeros(self.background_size, dtype=np.bool_)
        for gene in test_set.members:
            mask[self.gene_index[gene]] = True
        return mask

    def contingency_arrays(self, test_set: GeneSet) -> Tuple[np.ndarray, np.ndarray, np.ndarray, np.ndarray]:
        """Cell arrays (a, b, c, d) for every pathway against one test set."""
        a = _count_overlaps(self.indptr, self.indices, self.test_mask(test_set))
        n_test = len(test_set)
        b = n_test - a
        c = self.sizes - a
        d = self.background_size - n_test - c
        return a, b, c, d


def build_contingency_tables(catalog: PathwayCatalog, universe: GeneUniverse,
                             test_set_name: str) -> List[ContingencyTable]:
    """Contingency tables for every catalog pathway against one test set, in catalog order."""
    index = PathwayIndex(catalog, universe.background)
    a, b, c, d = index.contingency_arrays(universe[test_set_name])
    return [ContingencyTable(int(ai), int(bi), int(ci), int(di)) for ai, bi, ci, di in zip(a, b, c, d)]


#  Exact tests

def fisher_pvalues(a, b, c, d) -> Tuple[np.ndarray, np.ndarray]:
    """
    One-sided Fisher's exact p-values for arrays of contingency cells.

    Under independence the overlap ``X`` follows a hypergeometric distribution
    with population ``a+b+c+d``, ``a+c`` success states and ``a+b`` draws.

    Returns:
        Tuple of (enrichment p-values P(X >= a), depletion p-values P(X <= a))
    """
    a, b, c, d = (np.asarray(x, dtype=np.int64) for x in (a, b, c, d))
    population = a + b + c + d
    successes = a + c
    draws = a + b

    enrichment = hypergeom.sf(a - 1, population, successes, draws)
    depletion = hypergeom.cdf(a, population, successes, draws)
    return np.clip(enrichment, 0.0, 1.0), np.clip(depletion, 0.0, 1.0)


def fold_enrichments(a, b, c, d) -> np.ndarray:
    """
    Fold enrichment for arrays of contingency cells.

    Fraction of the test set inside the pathway divided by the fraction of the
    background inside the pathway. Undefined tables yield NaN.
    """
    a, b, c, d = (np.asarray(x, dtype=np.float64) for x in (a, b, c, d))
    with np.errstate(divide="ignore", invalid="ignore"):
        real_frac = a / (a + b)
        expected_frac = (a + c) / (a + b + c + d)
        fold = real_frac / expected_frac

    undefined = ((a + b) == 0) | ((a + c) == 0)
    fold[undefined] = np.nan
    n_undefined = int(undefined.sum())
    if n_undefined:
        warnings.warn(
            f"Fold enrichment undefined for {n_undefined} contingency table(s) with an empty margin",
            DegenerateTestWarning,
            stacklevel=2,
        )
    return fold


def fold_enrichment(table: ContingencyTable) -> float:
    """Fold enrichment of a single table (NaN when undefined)."""
    return float(fold_enrichments([table.a], [table.b], [table.c], [table.d])[0])


def directional_fisher_test(table: ContingencyTable, direction: Direction,
                            pathway: str = "") -> DirectionalTestResult:
    """
    Run one one-sided exact test on a contingency table.

    Args:
        table: Contingency table
        direction: ENRICHMENT tests P(X >= a), DEPLETION tests P(X <= a)
        pathway: Pathway id carried into the result

    Returns:
        DirectionalTestResult
    """
    direction = Direction(direction)
    enrichment, depletion = fisher_pvalues([table.a], [table.b], [table.c], [table.d])
    pvalue = enrichment[0] if direction is Direction.ENRICHMENT else depletion[0]
    return DirectionalTestResult(
        pathway=pathway,
        direction=direction,
        pvalue=float(pvalue),
        fold_enrichment=fold_enrichment(table),
    )


#  Multiple testing correction

def benjamini_hochberg(p_values) -> np.ndarray:
    """
    Benjamini-Hochberg adjusted p-values (q-values).

    Args:
        p_values: P-values of one (test set, direction) group

    Returns:
        Array of q-values in input order
    """
    p_values = np.asarray(p_values, dtype=np.float64)
    if len(p_values) == 0:
        raise ValueError("Input p-values array cannot be empty")

    _, qvalues, _, _ = multipletests(p_values, method="fdr_bh")
    return np.clip(qvalues, 0.0, 1.0)
