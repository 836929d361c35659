# ABOUTME: Configuration management for the Argo CD provider controller
# ABOUTME: Handles environment variables for logging, timeouts, retries, and rate limits

"""
Configuration management using pydantic-settings.

=============================================================================
WHAT IS THIS FILE?
=============================================================================

This module holds the settings of the controller process itself. It does
NOT hold Argo CD addresses or tokens: those come from ProviderConfig
records and are resolved per reconcile (see argocd_provider.utils.resolve).

What lives here is everything that shapes HOW reconciles run:

1. LOGGING: level and renderer (console or JSON)
2. TIMING: poll interval, per-attempt deadline, per-request timeout
3. RESILIENCE: how many times a remote failure is retried
4. THROTTLING: how many reconciles a single record may run per window
5. EVENTS: where convergence events are written

=============================================================================
ENVIRONMENT VARIABLES
=============================================================================

All variables use the ARGOCD_PROVIDER_ prefix:

    ARGOCD_PROVIDER_LOG_LEVEL           -> DEBUG, INFO, WARNING, ERROR, CRITICAL
    ARGOCD_PROVIDER_JSON_LOGS           -> Emit JSON log lines (default: false)
    ARGOCD_PROVIDER_POLL_INTERVAL       -> Seconds between reconciles of a healthy record
    ARGOCD_PROVIDER_RECONCILE_TIMEOUT   -> Deadline for one reconcile attempt
    ARGOCD_PROVIDER_REQUEST_TIMEOUT     -> Timeout for a single Argo CD API call
    ARGOCD_PROVIDER_MAX_RETRIES         -> Attempts for a remote call before giving up
    ARGOCD_PROVIDER_MAX_RECONCILE_RATE  -> Reconciles per record per minute
    ARGOCD_PROVIDER_EVENT_LOG           -> Path to a JSON-lines event file

An optional .env file is read when ARGOCD_PROVIDER_ENV_FILE points at one.
"""

from __future__ import annotations

import os
from pathlib import Path  # noqa: TC003 - Required at runtime for Pydantic
from typing import Annotated

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ControllerSettings(BaseSettings):
    """
    Controller process configuration.

    USAGE:
    ------
        settings = load_settings()
        configure_logging(settings.log_level, json_output=settings.json_logs)
        reconciler = Reconciler(connector, settings=settings)
    """

    model_config = SettingsConfigDict(
        env_prefix="ARGOCD_PROVIDER_",
        extra="ignore",
    )

    log_level: Annotated[str, Field(pattern=r"^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$")] = Field(
        default="INFO",
        description="Logging level",
    )

    json_logs: bool = Field(
        default=False,
        description="Render logs as JSON instead of colored console output",
    )

    poll_interval: float = Field(
        default=60.0,
        gt=0,
        description="Seconds to wait before re-checking a record that is up to date",
    )

    reconcile_timeout: float = Field(
        default=120.0,
        gt=0,
        description="Deadline in seconds for one reconcile attempt",
    )

    request_timeout: float = Field(
        default=30.0,
        gt=0,
        description="Timeout in seconds for a single Argo CD API request",
    )

    # Attempts, not retries after the first: 1 disables retrying
    max_retries: int = Field(
        default=3,
        ge=1,
        description="Attempts for a remote operation that fails with an Argo CD error",
    )

    max_reconcile_rate: int = Field(
        default=10,
        ge=1,
        description="Maximum reconciles of a single record per minute",
    )

    event_log: Path | None = Field(
        default=None,
        description="Path to a JSON-lines event file; events go to the log when unset",
    )


# =============================================================================
# SETTINGS LOADER
# =============================================================================


def load_settings() -> ControllerSettings:
    """
    Load settings from the environment with validation.

    If ARGOCD_PROVIDER_ENV_FILE is set, variables are also read from that
    file. Real environment variables take precedence over the file.

    Example .env file:
        ARGOCD_PROVIDER_LOG_LEVEL=DEBUG
        ARGOCD_PROVIDER_JSON_LOGS=false
        ARGOCD_PROVIDER_MAX_RETRIES=5

    Raises:
        pydantic.ValidationError: If configuration is invalid.
    """
    return ControllerSettings(
        _env_file=os.environ.get("ARGOCD_PROVIDER_ENV_FILE"),
    )
