# ABOUTME: Configuration management for Upbound MCP Server
# ABOUTME: Handles environment variables, account credentials, and security modes

"""
Configuration management using pydantic-settings.

=============================================================================
WHAT IS THIS FILE?
=============================================================================

This module handles all configuration for the adapter and the MCP server. It:

1. READS environment variables (like UP_ACCOUNT, MCP_READ_ONLY)
2. VALIDATES them (URLs get a scheme, log levels are checked, etc.)
3. PROVIDES typed access to settings throughout the application

=============================================================================
ARCHITECTURE: TWO CONFIGURATION CLASSES
=============================================================================

1. SecuritySettings: Security-related settings (MCP_* prefix)
   - Read-only mode, destructive ops, audit log, secret masking
   - Controls what operations the AI can perform

2. UpboundSettings: Main configuration container (UP_* prefix)
   - Upbound account, API token, API and proxy endpoints
   - Log level
   - Contains SecuritySettings as nested object

=============================================================================
ENVIRONMENT VARIABLE MAPPING
=============================================================================

Upbound Cloud:
    UP_ACCOUNT          -> Account (organization) that owns the control planes
    UP_TOKEN            -> Personal access token, also used in kubeconfigs
    UP_API_ENDPOINT     -> REST API base URL (default: https://api.upbound.io)
    UP_PROXY_ENDPOINT   -> Control plane proxy URL used in kubeconfigs
    UP_INSECURE         -> Skip TLS verification against the API
    UP_LOG_LEVEL        -> DEBUG, INFO, WARNING, ERROR or CRITICAL

Security settings (MCP_ prefix):
    MCP_READ_ONLY           -> Block create/delete (default: true)
    MCP_DISABLE_DESTRUCTIVE -> Block delete even when writes are on (default: true)
    MCP_AUDIT_LOG           -> Path to audit log file
    MCP_MASK_SECRETS        -> Mask tokens in kubeconfig output (default: true)
"""

from __future__ import annotations

import os
from pathlib import Path  # noqa: TC003 - Required at runtime for Pydantic
from typing import Annotated

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_API_ENDPOINT = "https://api.upbound.io"
DEFAULT_PROXY_ENDPOINT = "https://proxy.upbound.io/v1/controlPlanes"


def normalize_url(v: str) -> str:
    """
    Ensure URL has a scheme and no trailing slash.

    "api.upbound.io/" becomes "https://api.upbound.io". Empty strings are
    returned unchanged so "not configured" stays detectable.
    """
    if not v:
        return v
    if not v.startswith(("http://", "https://")):
        v = f"https://{v}"
    return v.rstrip("/")


# =============================================================================
# SECURITY SETTINGS
# =============================================================================


class SecuritySettings(BaseSettings):
    """
    Security-related configuration.

    LAYERS:
    -------
    Layer 1: MCP_READ_ONLY=true (default)
        - Blocks creating and deleting control planes
        - AI can only list, inspect and fetch kubeconfigs

    Layer 2: MCP_DISABLE_DESTRUCTIVE=true (default)
        - Even if writes are enabled, blocks deletion
        - A deleted control plane and everything in it is gone for good

    Layer 3: Confirmation patterns (in SafetyGuard)
        - Deletion requires confirm=true AND confirm_name matching the target
    """

    model_config = SettingsConfigDict(env_prefix="MCP_")

    read_only: bool = Field(
        default=True,
        description="Block all write operations when true",
    )

    disable_destructive: bool = Field(
        default=True,
        description="Block delete operations when true",
    )

    audit_log: Path | None = Field(
        default=None,
        description="Path to audit log file",
    )
    # When None (default), audit records go to stdout through structlog.

    mask_secrets: bool = Field(
        default=True,
        description="Mask tokens in kubeconfig output",
    )


# =============================================================================
# MAIN SETTINGS
# =============================================================================


class UpboundSettings(BaseSettings):
    """
    Main configuration.

    USAGE:
    ------
        settings = load_settings()  # Reads from environment
        print(settings.account)  # Upbound account
        print(settings.security.read_only)  # Security setting
    """

    model_config = SettingsConfigDict(
        env_prefix="UP_",
        env_nested_delimiter="__",
        extra="ignore",
        populate_by_name=True,
    )

    # -------------------------------------------------------------------------
    # UPBOUND CLOUD
    # -------------------------------------------------------------------------

    account: str = Field(
        default="",  # Empty string = not configured
        description="Upbound account that owns the control planes",
    )

    token: SecretStr = Field(
        default=SecretStr(""),
        description="Upbound personal access token",
    )
    # The same token authenticates REST calls and is embedded in the
    # kubeconfig handed out for each control plane. Create one with:
    #    up login && up robot token create ...

    api_endpoint: str = Field(
        default=DEFAULT_API_ENDPOINT,
        description="Upbound REST API base URL",
    )

    proxy_endpoint: str = Field(
        default=DEFAULT_PROXY_ENDPOINT,
        description="Upbound control plane proxy URL",
    )
    # Kubeconfigs point at {proxy_endpoint}/{account}/{name}/k8s

    insecure: bool = Field(
        default=False,
        description="Skip TLS verification for the REST API",
    )

    timeout: float = Field(
        default=30.0,
        description="HTTP request timeout in seconds",
    )

    log_level: Annotated[str, Field(pattern=r"^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$")] = Field(
        default="INFO",
        description="Logging level",
    )

    security: SecuritySettings = Field(default_factory=SecuritySettings)

    # -------------------------------------------------------------------------
    # VALIDATORS
    # -------------------------------------------------------------------------

    @field_validator("api_endpoint", "proxy_endpoint")
    @classmethod
    def validate_url(cls, v: str) -> str:
        """Add https:// when the scheme is missing and drop trailing slashes."""
        return normalize_url(v)

    @property
    def is_configured(self) -> bool:
        """True when an account has been provided."""
        return bool(self.account)


# =============================================================================
# SETTINGS LOADER
# =============================================================================


def load_settings() -> UpboundSettings:
    """
    Load settings from environment with validation.

    If UP_MCP_ENV_FILE is set, additional variables are read from that file.
    Useful for local development:

        UP_ACCOUNT=acme
        UP_TOKEN=my-dev-token
        MCP_READ_ONLY=false

    Raises:
        pydantic.ValidationError: If configuration is invalid.
    """
    return UpboundSettings(
        _env_file=os.environ.get("UP_MCP_ENV_FILE"),
    )
