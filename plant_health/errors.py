"""Exception hierarchy for the plant health service.

Every failure resolves into a visible state: auth errors become the session's
auth_error string, inference errors become the pipeline's failed state, and
storage errors become a generic message. None of them is fatal.
"""

GENERIC_STORAGE_MESSAGE = "Could not save your data. Please try again."


class PlantHealthError(Exception):
    """Base class for all plant health errors."""


class PreconditionError(PlantHealthError):
    """An operation was invoked before its inputs were ready."""


class AnalysisInProgress(PreconditionError):
    """A second analysis was started while one is still running."""


class InvalidCredentials(PlantHealthError):
    """Email/password pair did not match any account."""


class DuplicateAccount(PlantHealthError):
    """An account with this email is already registered."""


class InferenceError(PlantHealthError):
    """The inference capability failed or returned an unusable response."""


class ImageDecodeError(PlantHealthError):
    """An uploaded file or data URI could not be decoded."""


class StorageError(PlantHealthError):
    """The key-value store could not be read or written."""
