"""Custom exceptions for the sales pipeline backend."""


class PipelineException(Exception):
    """Base exception for the sales pipeline backend."""

    pass


class ValidationFailure(PipelineException):
    """Raised when input is malformed (negative values, missing identifiers)."""

    pass


class NotFoundError(PipelineException):
    """Raised when a record is unknown, soft-deleted or owned by another organization."""

    pass


class InvalidOperationError(PipelineException):
    """Raised when a state transition is semantically illegal."""

    pass


class DispatchFailure(PipelineException):
    """Raised when the notification collaborator could not deliver a document."""

    pass


class ConcurrentModificationError(PipelineException):
    """Raised when a record changed underneath a read/modify/write sequence."""

    pass


class DatabaseError(PipelineException):
    """Raised when a database operation fails."""

    pass


class ConfigurationError(PipelineException):
    """Raised when configuration is invalid."""

    pass
