"""Resilience primitives: circuit breaker and retry policy."""

from n8n_sdk._internal.resilience.circuit_breaker import CircuitBreaker, CircuitState
from n8n_sdk._internal.resilience.retry import RetryPolicy

__all__ = [
    "CircuitBreaker",
    "CircuitState",
    "RetryPolicy",
]
