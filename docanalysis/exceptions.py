from enum import Enum


class DocAnalysisError(Exception):
    """Base exception for all docanalysis errors.

    ``message`` is safe to show to the caller; diagnostic detail travels on
    ``__cause__``.
    """

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(DocAnalysisError):
    """Raised when input is malformed or not allowed."""


class UnsupportedTypeError(ValidationError):
    """Raised when a merged artifact is not one of the allowed file types."""


class NotFoundError(DocAnalysisError):
    """Raised when a record is missing or outside the caller's scope."""


class PermissionDeniedError(DocAnalysisError):
    """Raised when the caller's role may not perform the operation."""


class InsufficientDataError(DocAnalysisError):
    """Raised when there is no active artifact to analyze."""


class SubmissionFailedError(DocAnalysisError):
    """Raised when the external analysis service did not acknowledge a job."""


class StorageIOError(DocAnalysisError):
    """Raised when the byte store cannot be read or written."""


class UnsupportedStorageDiskError(DocAnalysisError):
    """Raised when the configured storage disk has no adapter."""


class TransportError(DocAnalysisError):
    """Raised when the external analysis service cannot be reached."""


class TokenErrorKind(str, Enum):
    MISSING = "MISSING"
    EXPIRED = "EXPIRED"
    INVALID = "INVALID"


class TokenVerificationError(DocAnalysisError):
    """Raised when a bearer token cannot be turned into a caller identity."""

    MESSAGES = {
        TokenErrorKind.MISSING: "Authorization token is missing",
        TokenErrorKind.EXPIRED: "Authorization token has expired",
        TokenErrorKind.INVALID: "Authorization token is invalid",
    }

    def __init__(self, kind: TokenErrorKind) -> None:
        super().__init__(self.MESSAGES[kind])
        self.kind = kind
