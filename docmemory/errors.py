# docmemory/errors.py
"""
Error taxonomy for the document memory service.

Every error carries a machine-readable ``error_code`` and the HTTP status
the API layer maps it to. Routes never build error bodies by hand; the
exception handlers in ``docmemory.main`` do.
"""


class DocMemoryError(Exception):
    """Base class for all service errors."""

    error_code = "internal_error"
    status_code = 500

    def __init__(self, message: str):

        super().__init__(message)
        self.message = message


class ValidationError(DocMemoryError):
    """A required request field is missing, empty or out of range."""

    error_code = "validation_error"
    status_code = 400


class NotFoundError(DocMemoryError):
    """A document or memory record does not exist."""

    error_code = "not_found"
    status_code = 404


class ProviderError(DocMemoryError):
    """Embedding, completion or vector-store call failed."""

    error_code = "provider_error"
    status_code = 502

    def __init__(self, message: str, provider: str = "unknown"):

        super().__init__(message)
        self.provider = provider


class ConfigurationError(DocMemoryError):
    """Required environment configuration is missing."""

    error_code = "configuration_error"
