"""Configuration management for the Mediagate generation gateway.

This module provides centralized configuration management using Pydantic Settings.
All configuration is loaded from environment variables with the MEDIAGATE_ prefix,
allowing easy customization without code changes.

Environment Variable Loading
-----------------------------
Configuration values are loaded in the following priority order:
1. Environment variables (MEDIAGATE_* prefix)
2. .env file in the project root
3. Default values defined in GatewayConfig

The API key is the one exception to the prefix rule: it is also read from the
plain ``GEMINI_API_KEY`` variable so existing deployments keep working.

Example .env file:
    GEMINI_API_KEY=your-key
    MEDIAGATE_MODEL_NAME=gemini-2.0-flash
    MEDIAGATE_UPLOADS_DIR=uploads
    MEDIAGATE_SERVER_PORT=3000

Global Configuration Instance
------------------------------
A global `config` instance is created automatically at module import time.
The FastAPI lifespan reads it to build the generation backend, and tests build
their own ``GatewayConfig`` pointing at a temporary uploads directory.

Usage Example
-------------
    from mediagate.core.config import config

    print(config.model_name)
    print(config.uploads_dir)

Directory Management
--------------------
The configuration creates ``uploads_dir`` on initialization.  Uploaded files
are written there by the upload layer and removed by the pipeline once the
backend call has resolved.
"""

from pathlib import Path
from typing import Literal

from pydantic import AliasChoices, Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class GatewayConfig(BaseSettings):
    """Main configuration for the Mediagate gateway.

    Attributes
    ----------
    Backend Settings:
        gemini_api_key : SecretStr | None
            API key for the Gemini API.  ``None`` lets the SDK fall back to
            its own environment lookup.
        model_name : str
            Model identifier passed to ``generate_content``.
        request_timeout_ms : int | None
            Per-request timeout handed to the SDK.  ``None`` keeps the SDK
            default; the pipeline itself never adds a timeout.

    Paths:
        uploads_dir : Path
            Directory receiving uploaded files for the lifetime of a request.

    Server Settings:
        server_host : str
            Bind address for uvicorn.
        server_port : int
            Listening port (1024-65535).
        log_level : str
            Root log level applied by ``main()``.

    Examples
    --------
        >>> custom_config = GatewayConfig(
        ...     model_name="gemini-2.5-flash",
        ...     uploads_dir="/tmp/mediagate-uploads",
        ... )
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="MEDIAGATE_",
        case_sensitive=False,
        populate_by_name=True,
        extra="ignore",
    )

    # Backend settings
    gemini_api_key: SecretStr | None = Field(
        default=None,
        validation_alias=AliasChoices(
            "gemini_api_key", "MEDIAGATE_GEMINI_API_KEY", "GEMINI_API_KEY"
        ),
        description="API key for the Gemini API",
    )
    model_name: str = Field(
        default="gemini-2.0-flash",
        description="Model used for every generation request",
    )
    request_timeout_ms: int | None = Field(
        default=None,
        ge=1,
        description="Backend request timeout in milliseconds (None = SDK default)",
    )

    # Paths
    uploads_dir: Path = Field(
        default=Path("uploads"),
        description="Directory for temporarily stored uploads",
    )

    # Server settings
    server_host: str = Field(
        default="0.0.0.0",
        description="Server bind address",
    )
    server_port: int = Field(
        default=3000,
        description="Server port",
        ge=1024,
        le=65535,
    )
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Root log level",
    )

    def __init__(self, **kwargs):
        """Initialize configuration and create the uploads directory.

        Args:
            **kwargs: Configuration overrides (typically from environment variables)
        """
        super().__init__(**kwargs)

        self.uploads_dir.mkdir(parents=True, exist_ok=True)


# Global configuration instance, loaded from MEDIAGATE_* variables and .env.
config = GatewayConfig()
