"""Error taxonomy shared by clients, services and the HTTP layer."""


class RAGError(Exception):
    """Base class for all errors raised by the document RAG bridge."""


class InvalidArgumentError(RAGError):
    """Raised when a caller hands in input that violates a precondition."""


class PayloadTooLargeError(InvalidArgumentError):
    """Raised when an uploaded file exceeds the configured size limit."""


class NotFoundError(RAGError):
    """Raised when a referenced document or record does not exist."""


class ExtractionError(RAGError):
    """Raised when text cannot be extracted from a stored file."""


class InternalError(RAGError):
    """Raised for unexpected failures that do not fit any other category."""


class ExternalServiceError(RAGError):
    """Raised when an external provider or the vector store fails.

    Attributes:
        service (str | None): Client type that failed (e.g. "embed", "llm", "rag").
        status_code (int | None): HTTP status returned by the backend, if any.
        attempts (int | None): Number of attempts made before giving up.
    """

    def __init__(
        self,
        message: str,
        service: str | None = None,
        status_code: int | None = None,
        attempts: int | None = None,
    ) -> None:
        super().__init__(message)
        self.service = service
        self.status_code = status_code
        self.attempts = attempts


class TransientServiceError(ExternalServiceError):
    """An external failure that may succeed when retried (5xx, 429, malformed body)."""
