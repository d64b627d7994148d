class TriageError(Exception):
    """Base class for errors surfaced to the user."""


class IntakeValidationError(TriageError, ValueError):
    """Input rejected before any upstream call."""


class AnalysisFailedError(TriageError):
    """The generative API was unreachable, failed, or returned nothing."""


class LocationFailedError(TriageError):
    """The map-data API was unreachable or returned an unusable body."""
