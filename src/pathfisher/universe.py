"""Foreground test sets and the shared background universe."""

import logging
from dataclasses import dataclass
from typing import Dict, Iterable, Iterator, List, Mapping, Sequence

from pathfisher.catalog import normalize_genes
from pathfisher.errors import EmptyGeneSetError, InvalidBackgroundError

logger = logging.getLogger(__name__)

BACKGROUND_KEY = "background"


@dataclass(frozen=True)
class GeneSet:
    """A named collection of normalised gene identifiers."""

    name: str
    members: frozenset

    def __post_init__(self):
        object.__setattr__(self, "members", normalize_genes(self.members))
        if not self.members:
            raise EmptyGeneSetError(f"Gene set '{self.name}' is empty after normalisation")

    def __len__(self) -> int:
        return len(self.members)


class GeneUniverse:
    """One background set plus N named foreground test sets.

    Every test set must be a subset of the background. Test set names must be
    unique and may not use the reserved background key.
    """

    def __init__(self, background: GeneSet, test_sets: Sequence[GeneSet]):
        test_sets = tuple(test_sets)
        if not test_sets:
            raise ValueError("At least one test set is required")

        seen = set()
        for test_set in test_sets:
            if test_set.name == BACKGROUND_KEY:
                raise ValueError(f"Test set name '{BACKGROUND_KEY}' is reserved for the background")
            if test_set.name in seen:
                raise ValueError(f"Duplicate test set name: '{test_set.name}'")
            seen.add(test_set.name)

            missing = test_set.members - background.members
            if missing:
                example = ", ".join(sorted(missing)[:5])
                raise InvalidBackgroundError(
                    f"Test set '{test_set.name}' has {len(missing)} genes not in the background "
                    f"(e.g. {example})"
                )

        self.background = background
        self.test_sets = test_sets
        self._by_name: Dict[str, GeneSet] = {s.name: s for s in test_sets}

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, Iterable[str]]) -> "GeneUniverse":
        """
        Build a universe from named gene lists.

        Args:
            mapping: Named gene lists; must include the reserved ``"background"`` entry

        Returns:
            Validated GeneUniverse
        """
        if BACKGROUND_KEY not in mapping:
            raise ValueError(f"Gene lists must include a '{BACKGROUND_KEY}' entry")

        # Emptiness is checked for every set before any subset check
        background = GeneSet(BACKGROUND_KEY, mapping[BACKGROUND_KEY])
        test_sets = [GeneSet(name, genes) for name, genes in mapping.items() if name != BACKGROUND_KEY]
        universe = cls(background, test_sets)
        logger.info(
            f"Prepared {len(test_sets)} test set(s) against a background of {len(background)} genes"
        )
        return universe

    @property
    def names(self) -> List[str]:
        return [s.name for s in self.test_sets]

    def __getitem__(self, name: str) -> GeneSet:
        return self._by_name[name]

    def __iter__(self) -> Iterator[GeneSet]:
        return iter(self.test_sets)

    def __len__(self) -> int:
        return len(self.test_sets)
