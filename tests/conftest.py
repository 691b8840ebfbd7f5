"""Shared fixtures for the pathway enrichment tests."""

import logging

import matplotlib

matplotlib.use("Agg")

import pytest

from pathfisher.catalog import Pathway, PathwayCatalog
from pathfisher.universe import GeneSet, GeneUniverse


@pytest.fixture
def background_genes():
    """Ten background genes g1..g10."""
    return [f"g{i}" for i in range(1, 11)]


@pytest.fixture
def universe(background_genes):
    """Background g1..g10 with test sets A = {g1, g2, g3} and B = {g8, g9, g10}."""
    return GeneUniverse.from_mapping({
        "background": background_genes,
        "A": ["g1", "g2", "g3"],
        "B": ["g8", "g9", "g10"],
    })


@pytest.fixture
def catalog():
    """Three pathways, one of them without any background gene."""
    return PathwayCatalog([
        Pathway("X%CUSTOM%1", ["g1", "g2", "g8", "g9"]),
        Pathway("Y%CUSTOM%2", ["g4", "g5", "g6", "g7"]),
        Pathway("Z%CUSTOM%3", ["h1", "h2"]),
    ])


@pytest.fixture
def gene_set_a(universe):
    return universe["A"]


@pytest.fixture
def background(universe) -> GeneSet:
    return universe.background


@pytest.fixture
def restore_root_logger():
    """Remove handlers added by setup_logging after each test."""
    root_logger = logging.getLogger()
    handlers = list(root_logger.handlers)
    level = root_logger.level
    yield
    for handler in root_logger.handlers[:]:
        if handler not in handlers:
            root_logger.removeHandler(handler)
            handler.close()
    root_logger.setLevel(level)
