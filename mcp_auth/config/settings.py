"""Configuration settings for the MCP auth server using Pydantic Settings.

This module provides type-safe configuration management with automatic validation,
environment variable loading, and documentation generation.
"""

import logging
from typing import Any, Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from mcp_auth.core.constants import (
    CODE_TTL_SECONDS_DEFAULT,
    SWEEP_INTERVAL_SECONDS_DEFAULT,
    TOKEN_TTL_SECONDS_DEFAULT,
)
from mcp_auth.core.logging import set_debug

logger = logging.getLogger(__name__)

DEFAULT_JWT_SECRET = "development-secret-key"


class Settings(BaseSettings):
    """Central configuration management with Pydantic validation.

    All settings are loaded from environment variables with automatic type conversion
    and validation. Default values are provided for non-critical settings.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",  # Ignore extra env vars
        validate_default=True,
        populate_by_name=True,
    )

    # ========================================
    # Debug Settings
    # ========================================
    debug: bool = Field(
        default=False,
        alias="MCP_DEBUG",
        description="Enable debug mode with verbose logging",
    )

    # ========================================
    # Server Settings
    # ========================================
    host: str = Field(
        default="0.0.0.0",
        description="Server host address",
    )

    port: int = Field(
        default=3000,
        ge=1,
        le=65535,
        description="Server port number",
    )

    transport: str = Field(
        default="http",
        description="Transport mode (http, sse or stdio)",
    )

    mcp_server_name: str = Field(
        default="mcp-auth-demo",
        description="Name advertised by the MCP server",
    )

    mcp_server_version: str = Field(
        default="1.0.0",
        description="Version advertised by the MCP server",
    )

    # ========================================
    # OAuth2 Settings
    # ========================================
    oauth_issuer: str | None = Field(
        default=None,
        description="OAuth2 issuer base URL",
    )

    jwt_secret: str = Field(
        default=DEFAULT_JWT_SECRET,
        description="Secret used to sign access tokens when token_format is jwt",
    )

    token_format: Literal["opaque", "jwt"] = Field(
        default="opaque",
        description="Access token encoding (opaque random string or signed JWT)",
    )

    code_ttl_seconds: int = Field(
        default=CODE_TTL_SECONDS_DEFAULT,
        ge=1,
        description="Authorization code lifetime in seconds",
    )

    token_ttl_seconds: int = Field(
        default=TOKEN_TTL_SECONDS_DEFAULT,
        ge=1,
        description="Access token lifetime in seconds",
    )

    allow_dcr: bool = Field(
        default=True,
        description="Enable Dynamic Client Registration",
    )

    default_subject: str = Field(
        default="demo_user",
        description="Synthetic subject every authorization is approved for",
    )

    public_tools: str = Field(
        default="server_info",
        description="Comma-separated list of tools callable without a token",
    )

    # ========================================
    # Storage Settings
    # ========================================
    persist_state: bool = Field(
        default=False,
        description="Mirror clients, codes and tokens to JSON files",
    )

    storage_dir: str = Field(
        default=".mcp-auth-storage",
        description="Directory for persisted OAuth state",
    )

    sweep_interval_seconds: int = Field(
        default=SWEEP_INTERVAL_SECONDS_DEFAULT,
        ge=0,
        description="Seconds between expired code/token sweeps (0 disables)",
    )

    # ========================================
    # Validators
    # ========================================
    @field_validator("oauth_issuer", mode="before")
    @classmethod
    def set_oauth_issuer(cls, v: str | None, info: Any) -> str:
        """Set OAuth issuer default from host and port if not provided."""
        if v:
            return str(v).rstrip("/")
        host = info.data.get("host", "0.0.0.0")
        port = info.data.get("port", 3000)
        if host == "0.0.0.0":
            host = "localhost"
        return f"http://{host}:{port}"

    # ========================================
    # Helper Methods
    # ========================================
    def get_public_tools_set(self) -> frozenset[str]:
        """Get public tool names as a set."""
        return frozenset(
            t.strip() for t in self.public_tools.split(",") if t.strip()
        )

    def uses_default_secret(self) -> bool:
        return self.jwt_secret == DEFAULT_JWT_SECRET

    def to_dict(self) -> dict[str, Any]:
        """Export settings as a dictionary (safe version without secrets)."""
        return {
            "debug": self.debug,
            "host": self.host,
            "port": self.port,
            "transport": self.transport,
            "oauth_issuer": self.oauth_issuer,
            "token_format": self.token_format,
            "code_ttl_seconds": self.code_ttl_seconds,
            "token_ttl_seconds": self.token_ttl_seconds,
            "allow_dcr": self.allow_dcr,
            "public_tools": sorted(self.get_public_tools_set()),
            "persist_state": self.persist_state,
            "storage_dir": self.storage_dir,
            "sweep_interval_seconds": self.sweep_interval_seconds,
        }


def validate_config(settings: Settings) -> None:
    """Apply the debug switch and log the effective configuration."""
    set_debug(settings.debug)

    if settings.token_format == "jwt" and settings.uses_default_secret():
        logger.warning(
            "Using default JWT secret. Set JWT_SECRET in production!",
        )

    logger.info("Server configuration loaded")
    logger.info("  - Server: %s:%s", settings.host, settings.port)
    logger.info("  - OAuth Issuer: %s", settings.oauth_issuer)
    logger.info("  - Token format: %s", settings.token_format)
    logger.info("  - DCR Enabled: %s", settings.allow_dcr)
    logger.info("  - Persistence: %s", settings.persist_state)


# Singleton pattern with proper typing
_settings_instance: Settings | None = None


def get_settings() -> Settings:
    """Get cached settings instance (singleton pattern)."""
    global _settings_instance
    if _settings_instance is None:
        _settings_instance = Settings()
        logger.info("Settings initialized from environment")
        logger.debug("OAuth issuer: %s", _settings_instance.oauth_issuer)
    return _settings_instance


def reset_settings() -> None:
    """Reset settings instance (useful for testing)."""
    global _settings_instance
    _settings_instance = None
