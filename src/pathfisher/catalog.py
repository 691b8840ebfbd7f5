"""Pathway definitions and the validated pathway catalog."""

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, Iterator, List, Mapping, Optional

from pathfisher.errors import MalformedPathwayError

logger = logging.getLogger(__name__)


def normalize_gene_id(gene_id) -> str:
    """Normalise a gene identifier (strip whitespace, upper-case)."""
    return str(gene_id).strip().upper()


def normalize_genes(genes: Iterable) -> frozenset:
    """Normalise a collection of identifiers, dropping empty ones."""
    normalized = (normalize_gene_id(g) for g in genes if g is not None)
    return frozenset(g for g in normalized if g)


def describe_pathway(pathway_id: str, delimiter: Optional[str] = "%") -> str:
    """
    Derive a display description from a pathway id.

    Everything from the first delimiter onwards is dropped, so
    ``"APOPTOSIS%REACTOME%R-HSA-109581"`` becomes ``"APOPTOSIS"``.
    """
    if not delimiter:
        return pathway_id
    return pathway_id.split(delimiter, 1)[0]


@dataclass(frozen=True)
class Pathway:
    """A named, user-defined set of genes."""

    id: str
    genes: frozenset
    description: str = field(default="", compare=False)

    def __post_init__(self):
        pathway_id = str(self.id).strip()
        if not pathway_id:
            raise MalformedPathwayError("Pathway id cannot be empty")
        genes = normalize_genes(self.genes)
        if not genes:
            raise MalformedPathwayError(f"Pathway '{pathway_id}' has no genes")
        # frozen dataclass: assign the normalised values through object.__setattr__
        object.__setattr__(self, "id", pathway_id)
        object.__setattr__(self, "genes", genes)
        if not self.description:
            object.__setattr__(self, "description", describe_pathway(pathway_id))

    def __len__(self) -> int:
        return len(self.genes)


class PathwayCatalog:
    """Read-only, insertion-ordered mapping of pathway id to :class:`Pathway`."""

    def __init__(self, pathways: Iterable[Pathway]):
        self._pathways: Dict[str, Pathway] = {}
        for pathway in pathways:
            existing = self._pathways.get(pathway.id)
            if existing is None:
                self._pathways[pathway.id] = pathway
            elif existing.genes == pathway.genes:
                logger.debug(f"Merged duplicate pathway '{pathway.id}' with identical genes")
            else:
                raise MalformedPathwayError(
                    f"Duplicate pathway id '{pathway.id}' with conflicting gene sets"
                )

        if not self._pathways:
            raise MalformedPathwayError("Pathway catalog contains no pathways")

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, Iterable[str]]) -> "PathwayCatalog":
        """Build a catalog from ``{pathway_id: genes}``."""
        return cls(Pathway(id=pathway_id, genes=genes) for pathway_id, genes in mapping.items())

    @property
    def ids(self) -> List[str]:
        return list(self._pathways)

    def __iter__(self) -> Iterator[Pathway]:
        return iter(self._pathways.values())

    def __len__(self) -> int:
        return len(self._pathways)

    def __contains__(self, pathway_id) -> bool:
        return pathway_id in self._pathways

    def __getitem__(self, pathway_id: str) -> Pathway:
        return self._pathways[pathway_id]

    def __repr__(self) -> str:
        return f"PathwayCatalog({len(self)} pathways)"

    def filter_by_size(self, min_genes: int = 1, max_genes: Optional[int] = None) -> "PathwayCatalog":
        """
        Keep pathways whose gene count lies within ``[min_genes, max_genes]``.

        Args:
            min_genes: Minimum number of genes (inclusive)
            max_genes: Maximum number of genes (inclusive), or None for no limit

        Returns:
            New PathwayCatalog with the retained pathways
        """
        kept = [
            p for p in self
            if len(p) >= min_genes and (max_genes is None or len(p) <= max_genes)
        ]
        dropped = len(self) - len(kept)
        if dropped:
            logger.info(f"Removed {dropped} pathways outside the size range [{min_genes}, {max_genes}]")
        return PathwayCatalog(kept)
