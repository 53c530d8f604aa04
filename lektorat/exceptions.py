"""Exception classes for the editing / translation pipeline."""
from typing import Optional


class LektoratError(Exception):
    """Base exception for all pipeline errors."""
    pass


class ConfigurationError(LektoratError):
    """Raised before any network call when the request cannot be dispatched."""
    pass


class MissingCredentialError(ConfigurationError):
    """Raised when the API key required by the chosen provider is absent."""

    def __init__(self, provider: str):
        self.provider = provider
        super().__init__(
            f"No {provider} API key configured. Add one in the API key settings."
        )


class InvalidCredentialError(ConfigurationError):
    """Raised when a stored API key is malformed (e.g. a saved error message)."""
    pass


class UnknownModelError(ConfigurationError):
    """Raised when a model name matches no known provider prefix."""

    def __init__(self, model: str):
        self.model = model
        super().__init__(f"Unknown model: {model}")


class ProviderError(LektoratError):
    """Raised when a provider call fails at the transport or HTTP level."""

    def __init__(
        self,
        message: str,
        provider: str,
        status_code: Optional[int] = None,
    ):
        self.provider = provider
        self.status_code = status_code
        super().__init__(message)


class ChunkJobError(LektoratError):
    """Raised when one chunk of a multi-chunk job fails; the whole job is aborted."""

    def __init__(self, chunk_number: int, cause: BaseException):
        self.chunk_number = chunk_number
        self.cause = cause
        super().__init__(
            f"Error while processing text section {chunk_number}: {cause}"
        )


class JobCancelledError(LektoratError):
    """Raised when a running job is cancelled before completion."""
    pass


class DocumentError(LektoratError):
    """Raised when a document cannot be read or converted."""

    FILE_READ_ERROR = "FILE_READ_ERROR"
    DOCUMENT_FORMAT_ERROR = "DOCUMENT_FORMAT_ERROR"
    PROCESSING_ERROR = "PROCESSING_ERROR"

    def __init__(self, message: str, code: str, details: Optional[str] = None):
        self.code = code
        self.details = details
        super().__init__(message)
