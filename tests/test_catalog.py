"""Tests for pathway definitions and the pathway catalog."""

import logging

import pytest

from pathfisher.catalog import (
    Pathway,
    PathwayCatalog,
    describe_pathway,
    normalize_gene_id,
)
from pathfisher.errors import MalformedPathwayError


def test_normalize_gene_id():
    assert normalize_gene_id("  tp53 ") == "TP53"
    assert normalize_gene_id(1234) == "1234"


def test_pathway_normalises_genes():
    """Genes are trimmed, upper-cased and deduplicated; blanks are dropped."""
    pathway = Pathway("P1", [" gene1", "GENE1", "gene2 ", ""])
    assert pathway.genes == frozenset({"GENE1", "GENE2"})
    assert len(pathway) == 2


def test_pathway_default_description():
    pathway = Pathway("APOPTOSIS%REACTOME%R-HSA-109581", ["CASP3"])
    assert pathway.description == "APOPTOSIS"

    described = Pathway("APOPTOSIS%REACTOME%R-HSA-109581", ["CASP3"], description="Apoptosis")
    assert described.description == "Apoptosis"


def test_pathway_without_genes():
    with pytest.raises(MalformedPathwayError, match="has no genes"):
        Pathway("EMPTY", ["", "  "])


def test_pathway_without_id():
    with pytest.raises(MalformedPathwayError, match="id cannot be empty"):
        Pathway("  ", ["A"])


def test_describe_pathway():
    assert describe_pathway("A%B%C") == "A"
    assert describe_pathway("NO_DELIMITER") == "NO_DELIMITER"
    assert describe_pathway("A|B", delimiter="|") == "A"
    assert describe_pathway("A%B", delimiter=None) == "A%B"


def test_catalog_preserves_order():
    catalog = PathwayCatalog.from_mapping({"B": ["g1"], "A": ["g2"], "C": ["g3"]})
    assert catalog.ids == ["B", "A", "C"]
    assert [p.id for p in catalog] == ["B", "A", "C"]
    assert "A" in catalog
    assert catalog["C"].genes == frozenset({"G3"})
    assert len(catalog) == 3


def test_catalog_merges_identical_duplicates(caplog):
    """A pathway listed twice with the same genes appears once."""
    with caplog.at_level(logging.DEBUG):
        catalog = PathwayCatalog([
            Pathway("X", ["g1", "g2", "g8"]),
            Pathway("Y", ["g3"]),
            Pathway("X", ["G8", "g2", "g1"]),
        ])
    assert catalog.ids == ["X", "Y"]
    assert "Merged duplicate pathway 'X'" in caplog.text


def test_catalog_rejects_conflicting_duplicates():
    with pytest.raises(MalformedPathwayError, match="conflicting gene sets"):
        PathwayCatalog([Pathway("X", ["g1"]), Pathway("X", ["g2"])])


def test_empty_catalog():
    with pytest.raises(MalformedPathwayError, match="no pathways"):
        PathwayCatalog([])


def test_malformed_pathway_error_is_value_error():
    with pytest.raises(ValueError):
        PathwayCatalog([])


def test_filter_by_size():
    catalog = PathwayCatalog.from_mapping({
        "small": ["a"],
        "medium": ["a", "b", "c"],
        "large": ["a", "b", "c", "d", "e"],
    })
    assert catalog.filter_by_size(2).ids == ["medium", "large"]
    assert catalog.filter_by_size(1, 3).ids == ["small", "medium"]

    with pytest.raises(MalformedPathwayError):
        catalog.filter_by_size(10)
