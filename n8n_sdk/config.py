"""Client configuration."""

import os
from typing import Any, Literal

from pydantic import BaseModel, Field, field_validator

from n8n_sdk.exceptions import N8nConfigError

DEFAULT_TIMEOUT = 30.0
DEFAULT_SYNC_TIMEOUT = 30.0
DEFAULT_REQUEST_TTL = 900.0

# Environment variable -> N8nConfig field
_ENV_FIELDS = {
    "N8N_CLIENT_ID": "client_id",
    "N8N_AUTH_TOKEN": "auth_token",
    "N8N_CALLBACK_URL": "callback_url",
    "N8N_WEBHOOK_PATH": "webhook_path",
    "N8N_TIMEOUT": "timeout",
    "N8N_SYNC_TIMEOUT": "sync_timeout",
    "N8N_RETRY_MAX_ATTEMPTS": "retry_max_attempts",
    "N8N_RETRY_BACKOFF": "retry_backoff",
    "N8N_RETRY_INITIAL_DELAY": "retry_initial_delay",
    "N8N_RETRY_MULTIPLIER": "retry_multiplier",
    "N8N_RETRY_MAX_DELAY": "retry_max_delay",
    "N8N_RETRY_JITTER": "retry_jitter",
    "N8N_CIRCUIT_FAILURE_THRESHOLD": "circuit_failure_threshold",
    "N8N_CIRCUIT_COOLDOWN": "circuit_cooldown",
    "N8N_REQUEST_TTL": "request_ttl",
    "N8N_PROXY": "proxy",
    "N8N_VERIFY_SSL": "verify_ssl",
}


class N8nConfig(BaseModel):
    """Settings for N8nClient.

    Required fields:
        base_url: Root URL of the n8n instance (e.g. https://n8n.example.com)

    Optional fields:
        client_id: Identifies this application in outbound request metadata
        auth_token: Sent as a bearer token when set
        callback_url: Where n8n should post async replies
        webhook_path: Path segment in front of the workflow id
        timeout: Per-attempt HTTP timeout in seconds
        sync_timeout: Default total deadline for send_sync, in seconds
        retry_*: Retry policy settings
        circuit_*: Circuit breaker settings
        request_ttl: Seconds an async request may wait for its callback
        proxy: Optional proxy URL
        verify_ssl: Verify TLS certificates
    """

    base_url: str = Field(min_length=1)
    client_id: str = "n8n-sdk"
    auth_token: str | None = None
    callback_url: str | None = None
    webhook_path: str = "webhook"

    timeout: float = Field(default=DEFAULT_TIMEOUT, gt=0)
    sync_timeout: float = Field(default=DEFAULT_SYNC_TIMEOUT, gt=0)

    retry_max_attempts: int = Field(default=3, ge=1)
    retry_backoff: Literal["fixed", "exponential"] = "exponential"
    retry_initial_delay: float = Field(default=0.5, ge=0)
    retry_multiplier: float = Field(default=2.0, ge=1)
    retry_max_delay: float = Field(default=10.0, ge=0)
    retry_jitter: float = Field(default=0.0, ge=0)

    circuit_failure_threshold: int = Field(default=5, ge=1)
    circuit_cooldown: float = Field(default=30.0, ge=0)

    request_ttl: float = Field(default=DEFAULT_REQUEST_TTL, gt=0)

    proxy: str | None = None
    verify_ssl: bool = True

    @field_validator("base_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    @field_validator("webhook_path")
    @classmethod
    def strip_slashes(cls, v: str) -> str:
        return v.strip("/")

    def webhook_url(self, workflow_id: str) -> str:
        if self.webhook_path:
            return f"{self.base_url}/{self.webhook_path}/{workflow_id}"
        return f"{self.base_url}/{workflow_id}"

    @classmethod
    def from_env(cls) -> "N8nConfig":
        """Build a config from environment variables.

        Required environment variables:
            N8N_BASE_URL: Root URL of the n8n instance.

        Optional environment variables:
            N8N_CLIENT_ID, N8N_AUTH_TOKEN, N8N_CALLBACK_URL, N8N_WEBHOOK_PATH,
            N8N_TIMEOUT, N8N_SYNC_TIMEOUT, N8N_RETRY_MAX_ATTEMPTS,
            N8N_RETRY_BACKOFF, N8N_RETRY_INITIAL_DELAY, N8N_RETRY_MULTIPLIER,
            N8N_RETRY_MAX_DELAY, N8N_RETRY_JITTER,
            N8N_CIRCUIT_FAILURE_THRESHOLD, N8N_CIRCUIT_COOLDOWN,
            N8N_REQUEST_TTL, N8N_PROXY, N8N_VERIFY_SSL.

        Raises:
            N8nConfigError: N8N_BASE_URL is not set.
            pydantic.ValidationError: A value is malformed (e.g. a non-numeric
                timeout). This is a ValueError.
        """
        base_url = os.environ.get("N8N_BASE_URL")
        if not base_url:
            raise N8nConfigError("N8N_BASE_URL is not set")

        values: dict[str, Any] = {"base_url": base_url}
        for env_var, field in _ENV_FIELDS.items():
            value = os.environ.get(env_var)
            if value is not None and value != "":
                values[field] = value

        return cls(**values)
