"""Environment-driven configuration for VssClient.

Environment variables:
    VSS_BASE_URL: VSS server endpoint (required)
    VSS_TIMEOUT_SECONDS: HTTP timeout for the default transport (default: 30)
    VSS_MAX_ATTEMPTS: Put attempt bound for the default policy (default: 10)
    VSS_RETRY_BASE_DELAY_SECONDS: Exponential backoff base (default: 0.01)
    VSS_RETRY_MAX_DELAY_SECONDS: Optional cap on a single backoff delay
    VSS_RETRY_MAX_JITTER_SECONDS: Optional random jitter (default: 0)

Configuration is fail-closed: a missing endpoint or an unparsable value
raises VssConfigError instead of falling back silently.
"""

from __future__ import annotations

import logging
import os
from typing import Final

import httpx
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from vss_client.retry import ComposableRetryPolicy, ExponentialBackoffRetryPolicy

logger = logging.getLogger(__name__)

VSS_BASE_URL_ENV: Final[str] = "VSS_BASE_URL"
VSS_TIMEOUT_SECONDS_ENV: Final[str] = "VSS_TIMEOUT_SECONDS"
VSS_MAX_ATTEMPTS_ENV: Final[str] = "VSS_MAX_ATTEMPTS"
VSS_RETRY_BASE_DELAY_ENV: Final[str] = "VSS_RETRY_BASE_DELAY_SECONDS"
VSS_RETRY_MAX_DELAY_ENV: Final[str] = "VSS_RETRY_MAX_DELAY_SECONDS"
VSS_RETRY_MAX_JITTER_ENV: Final[str] = "VSS_RETRY_MAX_JITTER_SECONDS"

DEFAULT_TIMEOUT_SECONDS: Final[float] = 30.0
DEFAULT_MAX_ATTEMPTS: Final[int] = 10
DEFAULT_BASE_DELAY_SECONDS: Final[float] = 0.01
DEFAULT_MAX_JITTER_SECONDS: Final[float] = 0.0

SUPPORTED_URL_SCHEMES: Final[frozenset[str]] = frozenset({"http", "https"})


class VssConfigError(Exception):
    """Raised when VSS client configuration is missing or invalid."""


def validate_base_url(base_url: str) -> str:
    """Check that base_url is an absolute http(s) URL.

    Returns:
        base_url without a trailing slash.

    Raises:
        ValueError: If base_url is not an absolute http(s) URL.
    """
    message = f"VSS base URL must be an absolute http:// or https:// URL, got '{base_url}'"
    try:
        url = httpx.URL(base_url)
    except httpx.InvalidURL as e:
        raise ValueError(f"{message}: {e}") from e
    if url.scheme not in SUPPORTED_URL_SCHEMES or not url.host:
        raise ValueError(message)
    return base_url.rstrip("/")


class VssClientConfig(BaseModel):
    """Immutable client configuration.

    Attributes:
        base_url: VSS server endpoint, without a trailing slash.
        timeout_seconds: Timeout applied by the default httpx transport.
        max_attempts: Maximum Put attempts under the default policy.
        base_delay_seconds: Backoff delay after the first failed attempt.
        max_delay_seconds: Optional cap on a single backoff delay.
        max_jitter_seconds: Upper bound of random jitter added to each delay.
    """

    model_config = ConfigDict(frozen=True)

    base_url: str = Field(min_length=1)
    timeout_seconds: float = Field(default=DEFAULT_TIMEOUT_SECONDS, gt=0)
    max_attempts: int = Field(default=DEFAULT_MAX_ATTEMPTS, ge=1)
    base_delay_seconds: float = Field(default=DEFAULT_BASE_DELAY_SECONDS, ge=0)
    max_delay_seconds: float | None = Field(default=None, ge=0)
    max_jitter_seconds: float = Field(default=DEFAULT_MAX_JITTER_SECONDS, ge=0)

    @field_validator("base_url")
    @classmethod
    def _check_base_url(cls, value: str) -> str:
        return validate_base_url(value)

    def build_retry_policy(self) -> ComposableRetryPolicy:
        """Compose the default Put retry policy from this configuration."""
        policy: ComposableRetryPolicy = ExponentialBackoffRetryPolicy(
            self.base_delay_seconds, self.max_delay_seconds
        )
        if self.max_jitter_seconds > 0:
            policy = policy.with_max_jitter(self.max_jitter_seconds)
        return policy.with_max_attempts(self.max_attempts)


def _parse_float(env_var: str) -> float | None:
    """Parse an optional float from an environment variable.

    Raises:
        VssConfigError: If the value is set but not a number.
    """
    raw = os.environ.get(env_var, "").strip()
    if not raw:
        return None
    try:
        return float(raw)
    except ValueError as e:
        raise VssConfigError(f"{env_var} must be a number, got '{raw}'") from e


def _parse_int(env_var: str) -> int | None:
    """Parse an optional integer from an environment variable.

    Raises:
        VssConfigError: If the value is set but not an integer.
    """
    raw = os.environ.get(env_var, "").strip()
    if not raw:
        return None
    try:
        return int(raw)
    except ValueError as e:
        raise VssConfigError(f"{env_var} must be an integer, got '{raw}'") from e


def load_config_from_env() -> VssClientConfig:
    """Load client configuration from environment variables.

    Returns:
        Validated VssClientConfig.

    Raises:
        VssConfigError: If VSS_BASE_URL is unset or any value is invalid.
    """
    base_url = os.environ.get(VSS_BASE_URL_ENV, "").strip()
    if not base_url:
        raise VssConfigError(
            f"VSS endpoint not configured. Set {VSS_BASE_URL_ENV} environment variable."
        )

    values: dict[str, object] = {"base_url": base_url.rstrip("/")}
    optional = {
        "timeout_seconds": _parse_float(VSS_TIMEOUT_SECONDS_ENV),
        "max_attempts": _parse_int(VSS_MAX_ATTEMPTS_ENV),
        "base_delay_seconds": _parse_float(VSS_RETRY_BASE_DELAY_ENV),
        "max_delay_seconds": _parse_float(VSS_RETRY_MAX_DELAY_ENV),
        "max_jitter_seconds": _parse_float(VSS_RETRY_MAX_JITTER_ENV),
    }
    values.update({k: v for k, v in optional.items() if v is not None})

    try:
        config = VssClientConfig.model_validate(values)
    except ValidationError as e:
        raise VssConfigError(f"Invalid VSS client configuration: {e}") from e

    logger.debug(
        "Loaded VSS config: max_attempts=%d, timeout=%.1fs",
        config.max_attempts,
        config.timeout_seconds,
    )
    return config
