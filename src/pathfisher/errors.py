"""Exceptions and warnings raised by the pathway enrichment engine."""


class PathfisherError(ValueError):
    """Base class for input validation failures."""


class MalformedPathwayError(PathfisherError):
    """A pathway or catalog failed validation (empty gene set, conflicting duplicate ids)."""


class EmptyGeneSetError(PathfisherError):
    """A foreground or background gene set is empty after normalisation."""


class InvalidBackgroundError(PathfisherError):
    """A foreground gene set is not a subset of the declared background."""


class DegenerateTestWarning(UserWarning):
    """Fold enrichment is undefined for a contingency table; the p-value is still valid."""
