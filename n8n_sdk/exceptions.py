"""Public exceptions for the n8n SDK."""


class N8nError(Exception):
    """Base exception for all n8n SDK errors."""


class N8nConfigError(N8nError):
    """Configuration error (missing env vars, invalid config)."""


class N8nValidationError(N8nError):
    """Malformed payload or workflow id. Never retried."""


class N8nCommunicationError(N8nError):
    """Transport or HTTP failure while talking to n8n."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        *,
        retryable: bool = False,
        attempts: int | None = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.retryable = retryable
        self.attempts = attempts


class N8nCircuitOpenError(N8nError):
    """The circuit breaker rejected the call without contacting n8n."""

    def __init__(self, message: str, retry_after: float | None = None) -> None:
        super().__init__(message)
        self.retry_after = retry_after


class N8nTimeoutError(N8nError, TimeoutError):
    """Sync dispatch did not get a reply before its deadline."""
