"""Environment-driven defaults for retry executors.

Every knob accepted at call time has a documented default that matches the
reference behaviour: three retries, one second base delay, exponential
backoff, a breaker that opens after three consecutive failures and stays
open for thirty seconds.

Examples:
    >>> from retryspine.core.settings import get_settings
    >>> settings = get_settings()
    >>> settings.to_policy().max_retries
    3

    Override from the environment::

        RETRYSPINE_MAX_RETRIES=5 RETRYSPINE_BACKOFF_KIND=linear my-service

Tags:
    settings, configuration, pydantic, environment, retryspine
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

if TYPE_CHECKING:
    from retryspine.execution.policy import RetryPolicy


class ResilienceSettings(BaseSettings):
    """Executor defaults loaded from ``RETRYSPINE_*`` env vars and ``.env``.

    Fields
    ──────
    max_retries            : Retries after the first attempt
    base_delay             : Seconds fed to the backoff formula
    backoff_kind           : exponential | linear | fixed
    circuit_threshold      : Consecutive failures that open the breaker
    circuit_open_duration  : Seconds the breaker stays open before a trial
    request_timeout        : Per-attempt deadline in seconds (None = caller's job)
    jitter                 : Fractional jitter on backoff delays (0 = off)
    max_delay              : Cap on a single backoff delay (None = uncapped)
    response_time_window   : Response times kept for averages (None = unbounded)
    log_level              : Structlog log level
    json_logs              : JSON log output (None = auto-detect tty)
    """

    model_config = SettingsConfigDict(
        env_prefix="RETRYSPINE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Retry ────────────────────────────────────────────────────
    max_retries: int = Field(default=3, ge=0)
    base_delay: float = Field(default=1.0, ge=0.0)
    backoff_kind: str = "exponential"
    request_timeout: float | None = Field(default=None, gt=0.0)
    jitter: float = Field(default=0.0, ge=0.0, le=1.0)
    max_delay: float | None = Field(default=None, ge=0.0)

    # ── Circuit breaker ──────────────────────────────────────────
    circuit_threshold: int = Field(default=3, gt=0)
    circuit_open_duration: float = Field(default=30.0, ge=0.0)

    # ── Statistics ───────────────────────────────────────────────
    response_time_window: int | None = Field(default=1000, gt=0)

    # ── Observability ────────────────────────────────────────────
    log_level: str = "INFO"
    json_logs: bool | None = None

    def to_policy(self) -> RetryPolicy:
        """Build the per-call retry policy these settings describe."""
        from retryspine.execution.policy import RetryPolicy

        return RetryPolicy.from_settings(self)


_settings_cache: ResilienceSettings | None = None


def get_settings(*, _force_reload: bool = False) -> ResilienceSettings:
    """Return the process-wide settings, loading them on first use."""
    global _settings_cache
    if _settings_cache is None or _force_reload:
        _settings_cache = ResilienceSettings()
    return _settings_cache


def clear_settings_cache() -> None:
    """Drop the cached settings so the next call re-reads the environment."""
    global _settings_cache
    _settings_cache = None


__all__ = ["ResilienceSettings", "get_settings", "clear_settings_cache"]
