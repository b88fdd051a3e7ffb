"""Exception hierarchy of the autofill service.

Infrastructure errors (client, database, storage) are raised by the adapters;
the orchestrator turns them into ``PipelineError`` subclasses or into warnings.
"""

from typing import Optional


class AppError(Exception):
    """Base exception carrying the lower-level error it wraps."""

    def __init__(self, message: str, original_error: Optional[Exception] = None):
        super().__init__(message)
        self.message = message
        self.original_error = original_error


class APIClientError(AppError):
    """Completion provider request failed."""


class APITimeoutError(APIClientError):
    """Completion provider did not answer in time."""


class DatabaseError(AppError):
    """Reading from the document or field-record tables failed."""


class StorageError(AppError):
    """Blob storage answered with an unexpected failure."""

    def __init__(self, message: str, key: Optional[str] = None, original_error: Optional[Exception] = None):
        super().__init__(message, original_error)
        self.key = key


class ValidationError(AppError):
    """Input or completion output does not conform."""


class ConfigurationError(AppError):
    """A required setting is missing or invalid."""


class SectionNotFoundError(ValidationError):
    """No report section is registered under the requested name."""

    def __init__(self, section: str):
        super().__init__(f"Unknown section '{section}'")
        self.section = section


class PipelineError(AppError):
    """A section run could not complete."""


class CompletionError(PipelineError):
    """Completion provider failed, timed out or returned a nonconforming response."""


class PersistenceError(PipelineError):
    """Storing the reconciled field record failed."""
