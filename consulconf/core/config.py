"""
consulconf - Settings

Patterns Applied:
- Pydantic Settings with SettingsConfigDict
- Environment variable prefix CONSULCONF_

Settings only describe how to reach Consul and how the library should log and
trace. Options.from_settings() turns them into source options and
configure_observability() applies the logging and tracing fields.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from consulconf.core.logging import configure_logging
from consulconf.core.tracing import configure_tracing


class Settings(BaseSettings):
    """Connection and runtime settings loaded from environment variables.

    All settings can be overridden via environment variables with CONSULCONF_ prefix.
    Example: CONSULCONF_ADDRESS=consul.internal:8500, CONSULCONF_NAMESPACE=billing
    """

    # Consul connection
    address: str = "127.0.0.1:8500"
    username: str | None = None
    password: str | None = None
    token: str | None = None
    request_timeout: float | None = None

    # Key scoping
    namespace: str = ""
    delimiter: str = "/"

    # Polling
    refresh_interval: float = Field(default=10.0, description="Seconds between refreshes")

    # Logging configuration
    log_level: str = "INFO"
    log_json: bool = True

    # Tracing configuration
    tracing_enabled: bool = False
    tracing_console_export: bool = False

    model_config = SettingsConfigDict(
        env_prefix="CONSULCONF_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


def get_settings() -> Settings:
    """Get settings instance.

    Returns:
        Settings instance with values from environment
    """
    return Settings()


def configure_observability(settings: Settings) -> None:
    """Apply the logging and tracing settings.

    Meant to be called once by the host application at startup; the library
    never configures logging or tracing on its own.

    Args:
        settings: Loaded Settings
    """
    configure_logging(log_level=settings.log_level, json_output=settings.log_json)
    if settings.tracing_enabled:
        configure_tracing(console_export=settings.tracing_console_export)
