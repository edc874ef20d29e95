"""
Exception hierarchy for PhotoTune.

Construction-time problems (bad numeric input, unknown operation names)
are raised immediately; collaborator failures (pixel executor, session
store) are wrapped so callers can tell them apart from programming errors.
"""


class PhotoTuneError(Exception):
    """Base exception for PhotoTune."""
    pass


class InvalidParameter(PhotoTuneError, ValueError):
    """Raised when a numeric parameter is malformed (e.g. gamma <= 0)."""
    pass


class UnknownOperation(PhotoTuneError, LookupError):
    """Raised when an operation or transform kind is not registered."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Unknown operation: {name}")


class ExecutorError(PhotoTuneError):
    """Raised by a pixel executor when applying a transform fails."""
    pass


class EnhancementFailed(PhotoTuneError):
    """Raised when a run fails even after the fallback configuration."""
    pass


class PersistenceError(PhotoTuneError):
    """Raised when reading from or writing to the session store fails."""
    pass
