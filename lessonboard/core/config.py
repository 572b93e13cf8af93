"""Configuration management with YAML and environment variable support"""

import os
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Type

import yaml
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource, SettingsConfigDict

DEFAULT_CATALOG_PATH = str(Path(__file__).resolve().parent.parent / "data" / "power_electronics_videos.json")


class BaseConfigSection(BaseSettings):
    """Base class for all config sections with correct environment variable precedence.

    This class customizes the settings source priority to ensure that:
    1. Environment variables have highest priority
    2. Init kwargs (YAML data) have second priority
    3. Default values have lowest priority
    """

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: Type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> Tuple[PydanticBaseSettingsSource, ...]:
        """Customize settings source priority: env vars > init kwargs > defaults."""
        return (env_settings, init_settings, dotenv_settings, file_secret_settings)


class ServerConfig(BaseConfigSection):
    """Server configuration"""

    host: str = (
        "0.0.0.0"  # nosec B104 - Intentional binding to all interfaces for containerized deployment
    )
    port: int = 8000
    # In-memory chat history and generated session keys are per process
    workers: int = 1

    model_config = SettingsConfigDict(env_prefix="APP_SERVER_")


class AuthConfig(BaseConfigSection):
    """Identity provider and session configuration"""

    issuer: str = ""  # e.g. https://tenant.eu.auth0.com
    client_id: str = ""
    client_secret: str = ""
    scope: str = "openid email profile"
    session_secret: str = ""  # random per-process key when empty
    session_max_age: int = 30 * 24 * 3600  # seconds
    https_only: bool = False
    allow_anonymous: bool = False
    http_timeout: int = 10  # seconds

    model_config = SettingsConfigDict(env_prefix="APP_AUTH_")

    @field_validator("issuer")
    @classmethod
    def strip_issuer(cls, v: str) -> str:
        return v.rstrip("/")


class CatalogConfig(BaseConfigSection):
    """Video catalog configuration"""

    path: str = DEFAULT_CATALOG_PATH

    model_config = SettingsConfigDict(env_prefix="APP_CATALOG_")


class PlayerConfig(BaseConfigSection):
    """Embedded player defaults"""

    autoplay: bool = False
    muted: bool = True

    model_config = SettingsConfigDict(env_prefix="APP_PLAYER_")


class ChatConfig(BaseConfigSection):
    """Mock chat backend configuration"""

    reply_delay: float = 1.0  # seconds
    failure_rate: float = 0.2
    max_history: int = 20  # messages kept per conversation
    history_ttl: int = 24 * 3600  # seconds an idle conversation is kept
    max_conversations: int = 1000

    model_config = SettingsConfigDict(env_prefix="APP_CHAT_")

    @field_validator("failure_rate")
    @classmethod
    def validate_failure_rate(cls, v: float) -> float:
        if not 0.0 <= v <= 1.0:
            raise ValueError("failure_rate must be between 0 and 1")
        return v


class LoggingConfig(BaseConfigSection):
    """Logging configuration"""

    level: str = "INFO"
    format: str = "json"

    model_config = SettingsConfigDict(env_prefix="APP_LOGGING_")

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        v_upper = v.upper()
        if v_upper not in valid_levels:
            raise ValueError(f"level must be one of {valid_levels}")
        return v_upper


class SecurityConfig(BaseConfigSection):
    """Security configuration"""

    cors_origins: List[str] = Field(default_factory=lambda: ["*"])

    model_config = SettingsConfigDict(env_prefix="APP_SECURITY_")


class MonitoringConfig(BaseConfigSection):
    """Monitoring configuration"""

    metrics_enabled: bool = True

    model_config = SettingsConfigDict(env_prefix="APP_MONITORING_")


class Config(BaseSettings):
    """Main application configuration"""

    server: ServerConfig = Field(default_factory=ServerConfig)
    auth: AuthConfig = Field(default_factory=AuthConfig)
    catalog: CatalogConfig = Field(default_factory=CatalogConfig)
    player: PlayerConfig = Field(default_factory=PlayerConfig)
    chat: ChatConfig = Field(default_factory=ChatConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    security: SecurityConfig = Field(default_factory=SecurityConfig)
    monitoring: MonitoringConfig = Field(default_factory=MonitoringConfig)

    model_config = SettingsConfigDict(env_prefix="APP_")


class ConfigService:
    """Service for loading and managing configuration"""

    def __init__(self, config_path: Optional[str] = None):
        self.config_path = config_path or os.environ.get("APP_CONFIG_PATH", "config.yaml")
        self._config: Optional[Config] = None

    def load(self) -> Config:
        """Load configuration from YAML file with environment variable overrides.

        BaseConfigSection.settings_customise_sources() makes environment variables
        take precedence over YAML values, which in turn take precedence over defaults.
        """
        config_data: Dict[str, Any] = {}

        if os.path.exists(self.config_path):
            with open(self.config_path, "r", encoding="utf-8") as f:
                yaml_data = yaml.safe_load(f)
                if yaml_data:
                    config_data = yaml_data

        self._config = Config(
            server=ServerConfig(**config_data.get("server", {})),
            auth=AuthConfig(**config_data.get("auth", {})),
            catalog=CatalogConfig(**config_data.get("catalog", {})),
            player=PlayerConfig(**config_data.get("player", {})),
            chat=ChatConfig(**config_data.get("chat", {})),
            logging=LoggingConfig(**config_data.get("logging", {})),
            security=SecurityConfig(**config_data.get("security", {})),
            monitoring=MonitoringConfig(**config_data.get("monitoring", {})),
        )

        return self._config

    def validate(self) -> bool:
        """Validate the loaded configuration"""
        if self._config is None:
            raise ValueError("Configuration not loaded. Call load() first.")
        return validate_config(self._config)

    @property
    def config(self) -> Config:
        """Get the loaded configuration"""
        if self._config is None:
            raise ValueError("Configuration not loaded. Call load() first.")
        return self._config


def validate_config(config: Config) -> bool:
    """
    Check that sign-in can work with this configuration.

    Raises:
        ValueError: If identity provider settings are missing and anonymous
                    access is not enabled
    """
    auth = config.auth
    if not auth.allow_anonymous:
        missing = [
            name
            for name, value in (
                ("issuer", auth.issuer),
                ("client_id", auth.client_id),
                ("client_secret", auth.client_secret),
            )
            if not value
        ]
        if missing:
            raise ValueError(f"Identity provider settings missing: {', '.join(missing)}")

    if not auth.session_secret and auth.https_only:
        raise ValueError("session_secret must be set when https_only is enabled")

    return True
