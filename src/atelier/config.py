"""Configuration management for the atelier application.

Values come from environment variables (a local ``.env`` file is loaded first)
with Streamlit secrets as fallback. ``load_settings`` turns them into one
immutable ``Settings`` object at start-up which is handed to every service,
so no component reaches for module-level client handles.
"""

import os
from dataclasses import dataclass
from typing import Any

import streamlit as st
from dotenv import load_dotenv

from .logging_config import get_logger

logger = get_logger(__name__)


class Config:
    """Centralized configuration management using environment variables."""

    def __init__(self, env_file: str | None = None):
        """Initialize configuration.

        Args:
            env_file: Optional path to a dotenv file. Existing environment
                variables always win over values from the file.
        """
        self._cache: dict[str, Any] = {}
        load_dotenv(dotenv_path=env_file, override=False)

    def get(self, key: str, default: Any = None, cast_type: type = str) -> Any:
        """Get configuration value from environment variables or Streamlit secrets.

        Args:
            key: Configuration key
            default: Default value if not found
            cast_type: Type to cast the value to (str, int, bool, float)

        Returns:
            Configuration value cast to the specified type
        """
        cache_key = f"{key}:{cast_type.__name__}"
        if cache_key in self._cache:
            return self._cache[cache_key]

        value = os.getenv(key)

        if value is None:
            try:
                value = st.secrets.get(key)
            except Exception:  # nosec B110
                # No secrets.toml or not running inside Streamlit
                pass

        if value is None:
            value = default

        if value is not None:
            try:
                if cast_type is bool:
                    if isinstance(value, str):
                        value = value.lower() in ("true", "1", "yes", "on")
                    else:
                        value = bool(value)
                elif cast_type is not str:
                    value = cast_type(value)
            except (ValueError, TypeError) as e:
                logger.warning("config_cast_failed", key=key, cast_type=cast_type.__name__, error=str(e))
                value = default

        self._cache[cache_key] = value
        return value

    def get_required(self, key: str, cast_type: type = str) -> Any:
        """Get required configuration value.

        Raises:
            ValueError: If the required configuration is not found
        """
        value = self.get(key, cast_type=cast_type)
        if value is None:
            raise ValueError(f"Required configuration '{key}' not found")
        return value

    def is_development(self) -> bool:
        """Check if running in development mode."""
        environment = self.get("ENVIRONMENT", "development").lower()
        return environment in ["development", "dev", "local", "test"]

    def is_production(self) -> bool:
        """Check if running in production mode."""
        environment = self.get("ENVIRONMENT", "development").lower()
        return environment in ["production", "prod"]

    def clear_cache(self) -> None:
        """Clear configuration cache."""
        self._cache.clear()


@dataclass(frozen=True)
class Settings:
    """Resolved application settings passed into every component."""

    environment: str = "development"
    database_path: str = "data/atelier.duckdb"

    # Image host (Cloudinary)
    cloudinary_cloud_name: str = ""
    cloudinary_upload_preset: str = ""
    cloudinary_api_key: str | None = None
    cloudinary_api_secret: str | None = None
    cloudinary_api_url: str = "https://api.cloudinary.com/v1_1"

    # Identity service (Supabase GoTrue)
    supabase_url: str | None = None
    supabase_anon_key: str | None = None

    # Reverse geocoding (Nominatim)
    geocoder_url: str = "https://nominatim.openstreetmap.org"
    geocoder_user_agent: str = "AtelierPortfolio/1.0"

    # Backend deletion endpoint
    delete_endpoint_url: str = "http://localhost:8000/api/delete-photo"

    request_timeout: float = 30.0
    max_file_size: int = 50 * 1024 * 1024
    min_file_size: int = 100
    upload_clear_delay: float = 1.0

    # Development sign-in
    dev_user_email: str = "admin@example.com"
    dev_user_password: str | None = None
    dev_jwt_secret: str = "atelier-development-secret"  # nosec B105

    @property
    def is_development(self) -> bool:
        return self.environment.lower() in ["development", "dev", "local", "test"]

    @property
    def image_host_configured(self) -> bool:
        return bool(self.cloudinary_cloud_name and self.cloudinary_upload_preset)

    @property
    def can_sign_host_requests(self) -> bool:
        return bool(self.cloudinary_api_key and self.cloudinary_api_secret)


def load_settings(config: Config | None = None) -> Settings:
    """Build ``Settings`` from configuration sources.

    Args:
        config: Configuration source, defaults to the global instance

    Returns:
        Settings for this process
    """
    config = config or get_config()
    settings = Settings(
        environment=config.get("ENVIRONMENT", "development"),
        database_path=config.get("ATELIER_DB_PATH", Settings.database_path),
        cloudinary_cloud_name=config.get("CLOUDINARY_CLOUD_NAME", ""),
        cloudinary_upload_preset=config.get("CLOUDINARY_UPLOAD_PRESET", ""),
        cloudinary_api_key=config.get("CLOUDINARY_API_KEY"),
        cloudinary_api_secret=config.get("CLOUDINARY_API_SECRET"),
        cloudinary_api_url=config.get("CLOUDINARY_API_URL", Settings.cloudinary_api_url),
        supabase_url=config.get("SUPABASE_URL"),
        supabase_anon_key=config.get("SUPABASE_ANON_KEY"),
        geocoder_url=config.get("GEOCODER_URL", Settings.geocoder_url),
        geocoder_user_agent=config.get("GEOCODER_USER_AGENT", Settings.geocoder_user_agent),
        delete_endpoint_url=config.get("DELETE_ENDPOINT_URL", Settings.delete_endpoint_url),
        request_timeout=config.get("REQUEST_TIMEOUT_SECONDS", Settings.request_timeout, float),
        max_file_size=config.get("MAX_FILE_SIZE", Settings.max_file_size, int),
        min_file_size=config.get("MIN_FILE_SIZE", Settings.min_file_size, int),
        upload_clear_delay=config.get("UPLOAD_CLEAR_DELAY_SECONDS", Settings.upload_clear_delay, float),
        dev_user_email=config.get("DEV_USER_EMAIL", Settings.dev_user_email),
        dev_user_password=config.get("DEV_USER_PASSWORD"),
        dev_jwt_secret=config.get("DEV_JWT_SECRET", Settings.dev_jwt_secret),
    )

    if not settings.is_development and not settings.supabase_url:
        raise ValueError("Required configuration 'SUPABASE_URL' not found")

    logger.info(
        "settings_loaded",
        environment=settings.environment,
        database_path=settings.database_path,
        image_host_configured=settings.image_host_configured,
        delete_endpoint_url=settings.delete_endpoint_url,
    )
    return settings


# Global configuration instance
_config: Config | None = None


def get_config() -> Config:
    """Get the global configuration instance."""
    global _config
    if _config is None:
        _config = Config()
    return _config


def get_env(key: str, default: Any = None, cast_type: type = str) -> Any:
    """Get environment variable with type casting."""
    return get_config().get(key, default, cast_type)


def is_development() -> bool:
    """Check if running in development mode."""
    return get_config().is_development()
