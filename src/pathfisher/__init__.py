"""
Pathway Enrichment and Depletion
================================

A Python package for testing custom pathways for enrichment and depletion
in foreground gene lists with one-sided Fisher's exact tests.
"""

from .pipeline import PathwayEnrichmentPipeline, run_enrichment, analyse_test_set
from .config import PipelineConfig
from .catalog import Pathway as Pathway, PathwayCatalog as PathwayCatalog
from .universe import GeneSet as GeneSet, GeneUniverse as GeneUniverse
from .errors import (
    MalformedPathwayError as MalformedPathwayError,
    EmptyGeneSetError as EmptyGeneSetError,
    InvalidBackgroundError as InvalidBackgroundError,
    DegenerateTestWarning as DegenerateTestWarning,
)
from .data import (
    read_pathways as read_pathways,
    write_pathways as write_pathways,
    load_gene_lists as load_gene_lists,
    prepare_universe as prepare_universe,
)
from .results import ResultRow as ResultRow, ResultTable as ResultTable, Status as Status
from .export import write_femap as write_femap, write_results as write_results
from .cytoscape import plot_femap as plot_femap
from .utils import setup_logging as setup_logging, ensure_dir as ensure_dir

__version__ = "0.1.0"

__all__ = [
    "PathwayEnrichmentPipeline",
    "PipelineConfig",
    "run_enrichment",
    "analyse_test_set",
    "Pathway",
    "PathwayCatalog",
    "GeneSet",
    "GeneUniverse",
    "MalformedPathwayError",
    "EmptyGeneSetError",
    "InvalidBackgroundError",
    "DegenerateTestWarning",
    "read_pathways",
    "write_pathways",
    "load_gene_lists",
    "prepare_universe",
    "ResultRow",
    "ResultTable",
    "Status",
    "write_femap",
    "write_results",
    "plot_femap",
    "setup_logging",
    "ensure_dir",
]
