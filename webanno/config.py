"""
Configuration settings for WebAnno.

Reads settings from the .env file in the project root and provides typed
settings. Feature support enablement and default layer presets are read
from config.yaml.
"""

import logging
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, List

import yaml
from pydantic import Field, computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

# Resolve paths
PROJECT_ROOT = Path(__file__).parent.parent
ENV_FILE = PROJECT_ROOT / ".env"
CONFIG_YAML_PATH = PROJECT_ROOT / "config.yaml"


class Settings(BaseSettings):
    """Application settings loaded from .env file."""

    model_config = SettingsConfigDict(
        env_file=str(ENV_FILE),
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    # Database - SQLite by default, PostgreSQL via DATABASE_URL
    database_url: str = Field(
        default=f"sqlite:///{PROJECT_ROOT / 'webanno.db'}",
        alias="DATABASE_URL",
        description="SQLAlchemy database URL",
    )

    # Filesystem repository for document texts, annotation documents and guidelines
    repository_dir: Path = Field(
        default=PROJECT_ROOT / "repository",
        alias="REPOSITORY_DIR",
    )

    # Authentication
    jwt_secret: str = Field(default="webanno-change-me", alias="JWT_SECRET")
    jwt_algorithm: str = Field(default="HS256", alias="JWT_ALGORITHM")
    jwt_expiration_hours: int = Field(default=24, alias="JWT_EXPIRATION_HOURS")

    # Bootstrap administrator created on first start
    admin_username: str = Field(default="admin", alias="ADMIN_USERNAME")
    admin_password: str = Field(default="admin", alias="ADMIN_PASSWORD")

    # Redis for Celery (project export)
    redis_url: str = Field(
        default="redis://localhost:6379/0",
        alias="REDIS_URL",
        description="Redis connection URL for Celery broker",
    )

    # Application settings
    debug: bool = Field(default=False, alias="DEBUG")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    # Annotation editor defaults
    default_window_size: int = Field(
        default=5,
        alias="DEFAULT_WINDOW_SIZE",
        description="Number of sentences shown per page",
    )
    default_sidebar_size: int = Field(
        default=20,
        alias="DEFAULT_SIDEBAR_SIZE",
        description="Width of the sidebar in percent",
    )
    default_font_zoom: int = Field(default=100, alias="DEFAULT_FONT_ZOOM")

    @computed_field
    @property
    def exports_dir(self) -> Path:
        """Path to project export archives."""
        return self.repository_dir / "exports"

    @computed_field
    @property
    def tmp_dir(self) -> Path:
        """Path to temporary files."""
        return self.repository_dir / "tmp"


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


def load_app_config(path: Path = CONFIG_YAML_PATH) -> Dict[str, Any]:
    """
    Load application configuration from config.yaml.

    Returns:
        Dictionary with feature support and layer preset configuration.
    """
    if not path.exists():
        logger.warning(f"config.yaml not found at {path}, using defaults")
        return {}

    try:
        with open(path, "r", encoding="utf-8") as f:
            config = yaml.safe_load(f)
        return config or {}
    except (OSError, yaml.YAMLError) as e:
        logger.error(f"Error loading config.yaml: {e}")
        return {}


def is_feature_support_enabled(support_id: str, config: Dict[str, Any], default: bool = True) -> bool:
    """Check if a feature support is enabled in config.yaml."""
    support_config = config.get("feature_supports", {}).get(support_id, {})
    if isinstance(support_config, dict):
        return support_config.get("enabled", default)
    return default


def get_default_layers(config: Dict[str, Any]) -> List[Dict[str, Any]]:
    """Layer presets created with every new project."""
    return list(config.get("default_layers", []))


# Convenience accessors
settings = get_settings()
