"""Configuration management for the Calil Book Search MCP Server.

Configuration is loaded once from the environment (prefix ``CALIL_``) or a
``.env`` file and injected into the Calil clients at construction:
1. Protocol Metadata - Server identification for the MCP handshake
2. Calil API - Credential, endpoint and HTTP behaviour
3. Polling - Round budget and inter-round delay for availability checks
4. Presentation - How many libraries a tool response lists
"""

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .calil.errors import ConfigurationError


class ServerConfig(BaseSettings):
    """MCP server and Calil client configuration.

    The application key is optional at construction so tests and tooling can
    build a config freely; the server calls :meth:`require_application_key`
    once at startup and refuses to run without it.
    """

    model_config = SettingsConfigDict(
        # CALIL_APPLICATION_KEY, CALIL_POLL_MAX_ROUNDS, ...
        env_prefix="CALIL_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # === Server Metadata (Required by MCP Protocol) ===

    server_name: str = Field(
        default="calil-book-search",
        description="MCP server name used in protocol handshake",
        pattern=r"^[a-z0-9-]+$",
    )

    server_version: str = Field(
        default="0.1.0",
        description="Server version for capability negotiation",
        pattern=r"^\d+\.\d+\.\d+(-[a-zA-Z0-9.]+)?$",
    )

    transport: str = Field(
        default="stdio",
        description="Primary transport mechanism",
        pattern=r"^(stdio|streamable_http)$",
    )

    # === Calil API ===

    application_key: SecretStr | None = Field(
        default=None,
        description="Calil application key (appkey query parameter)",
        repr=False,
    )

    api_base_url: str = Field(
        default="https://api.calil.jp",
        description="Base URL of the Calil API",
        pattern=r"^https?://",
    )

    http_timeout_seconds: float = Field(
        default=20.0,
        gt=0,
        description="Timeout per HTTP request in seconds",
    )

    user_agent: str = Field(
        default="calil-book-search/0.1",
        min_length=1,
        description="User-Agent sent to the Calil API",
    )

    # === Availability Polling ===

    poll_max_rounds: int = Field(
        default=5,
        ge=1,
        le=30,
        description="Maximum continuation rounds before an availability check times out",
    )

    poll_interval_seconds: float = Field(
        default=1.0,
        ge=0,
        le=60,
        description="Delay between continuation rounds in seconds",
    )

    # === Presentation ===

    max_display_libraries: int = Field(
        default=10,
        ge=1,
        le=200,
        description="Maximum number of libraries listed in a tool response",
    )

    # === Development Configuration ===

    debug: bool = Field(
        default=False,
        description="Enable debug logging for protocol messages",
    )

    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR)",
        pattern=r"^(DEBUG|INFO|WARNING|ERROR)$",
    )

    # === Validation Methods ===

    @field_validator("server_name")
    @classmethod
    def validate_server_name(cls, v: str) -> str:
        """Validate server name meets MCP naming conventions."""
        if len(v) < 3:
            raise ValueError("Server name must be at least 3 characters")
        if len(v) > 50:
            raise ValueError("Server name must not exceed 50 characters")
        return v

    @field_validator("api_base_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    @field_validator("application_key")
    @classmethod
    def blank_key_is_missing(cls, v: SecretStr | None) -> SecretStr | None:
        """Treat an empty or whitespace-only key as not configured."""
        if v is not None and not v.get_secret_value().strip():
            return None
        return v

    # === Computed Properties ===

    @property
    def is_development(self) -> bool:
        return self.debug or self.log_level == "DEBUG"

    @property
    def server_info(self) -> dict[str, str]:
        """Get server information for MCP handshake."""
        return {
            "name": self.server_name,
            "version": self.server_version,
            "transport": self.transport,
        }

    def require_application_key(self) -> str:
        """Return the Calil application key or fail.

        Called once at process start; a missing key is fatal for the server,
        never a per-request error.
        """
        if self.application_key is None:
            raise ConfigurationError(
                "CALIL_APPLICATION_KEY is not defined in environment variables"
            )
        return self.application_key.get_secret_value()


# === Global Configuration Instance ===


class _ConfigStore:
    """Internal storage for configuration singleton."""

    _instance: ServerConfig | None = None


def get_config() -> ServerConfig:
    """Get or create the global configuration instance."""
    if _ConfigStore._instance is None:  # type: ignore[reportPrivateUsage]
        _ConfigStore._instance = ServerConfig()  # type: ignore[reportPrivateUsage]
    return _ConfigStore._instance  # type: ignore[reportPrivateUsage]


def reset_config() -> None:
    """Reset configuration (useful for testing)."""
    _ConfigStore._instance = None  # type: ignore[reportPrivateUsage]
