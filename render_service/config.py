"""
Render Service Configuration Module

Centralized configuration management with Pydantic validation.
All environment variables (prefixed with RENDER_) are validated at startup
to catch misconfigurations early.
"""

from functools import lru_cache
from typing import List

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings


MAX_UPLOAD_BYTES = 5 * 1024 * 1024  # 5MB


class RenderSettings(BaseSettings):
    """
    Render service configuration with validation.

    All settings can be overridden via environment variables,
    e.g. RENDER_PLAYWRIGHT_TIMEOUT_MS=60000.
    """

    # === Limits ===
    max_upload_bytes: int = Field(
        default=MAX_UPLOAD_BYTES,
        ge=1,
        description="Maximum accepted size of an uploaded markdown file in bytes"
    )
    max_form_field_bytes: int = Field(
        default=64 * 1024 * 1024,
        ge=MAX_UPLOAD_BYTES,
        description="Multipart parser bound for non-file fields (pasted markdown)"
    )

    # === Playwright ===
    playwright_timeout_ms: int = Field(
        default=30000,
        ge=1000,
        le=300000,
        description="Upper bound for content load and capture steps (milliseconds)"
    )
    playwright_headless: bool = Field(
        default=True,
        description="Run Chromium headless"
    )
    browser_args: str = Field(
        default="--no-sandbox,--disable-setuid-sandbox",
        description="Comma-separated Chromium launch flags"
    )
    validate_browser_on_startup: bool = Field(
        default=True,
        description="Launch the shared browser once at startup and report failures via /health"
    )

    # === Server ===
    host: str = Field(default="0.0.0.0", description="Bind address for `serve`")
    port: int = Field(default=3000, ge=1, le=65535, description="Bind port for `serve`")
    log_level: str = Field(default="INFO", description="Root logging level")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is one the logging module knows."""
        allowed = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        v_upper = v.upper()
        if v_upper not in allowed:
            raise ValueError(f"log_level must be one of: {', '.join(sorted(allowed))}")
        return v_upper

    @property
    def browser_args_list(self) -> List[str]:
        """Parse browser launch flags into a list."""
        return [arg.strip() for arg in self.browser_args.split(",") if arg.strip()]

    class Config:
        env_prefix = "RENDER_"
        case_sensitive = False  # RENDER_PORT = port


@lru_cache()
def get_settings() -> RenderSettings:
    """
    Get cached settings instance.

    Settings are loaded once and cached for performance.
    Tests that change the environment call get_settings.cache_clear().
    """
    return RenderSettings()


def log_config_on_startup() -> None:
    """Log the loaded configuration at application startup."""
    import logging
    logger = logging.getLogger(__name__)

    settings = get_settings()
    logger.info("Configuration loaded:")
    logger.info(f"  max_upload_bytes={settings.max_upload_bytes}")
    logger.info(f"  playwright_timeout={settings.playwright_timeout_ms}ms")
    logger.info(f"  playwright_headless={settings.playwright_headless}")
    logger.info(f"  browser_args={settings.browser_args_list}")
