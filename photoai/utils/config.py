"""Configuration management for the photo AI backend."""

import os
from pathlib import Path
from typing import List, Optional
import yaml
from pydantic import BaseModel, Field
from dotenv import load_dotenv

from .errors import ConfigurationError
from .logger import get_logger

logger = get_logger(__name__)

# Load environment variables
load_dotenv()

DEFAULT_SETTINGS_PATH = Path("config/settings.yaml")


class ProviderConfig(BaseModel):
    """Configuration for the fal.ai apps and call timeouts."""
    queue_base_url: str = "https://queue.fal.run"
    sync_base_url: str = "https://fal.run"
    training_app: str = "fal-ai/flux-lora-fast-training"
    generation_app: str = "fal-ai/flux-lora"
    timeout_seconds: float = 30.0
    sync_timeout_seconds: float = 120.0
    lora_scale: float = 1.0
    thumbnail_prompt: str = (
        "Generate a head shot for this user in front of a white background"
    )


class UploadConfig(BaseModel):
    """Configuration for presigned client uploads."""
    key_prefix: str = "models"
    content_type: str = "application/zip"
    expires_seconds: int = 300


class Config(BaseModel):
    """Main application configuration."""

    # Provider
    fal_key: str = Field(..., alias="FAL_KEY")
    webhook_base_url: str = Field(..., alias="WEBHOOK_BASE_URL")
    webhook_secret: Optional[str] = Field(default=None, alias="WEBHOOK_SECRET")
    webhook_allowed_ips: str = Field(default="", alias="WEBHOOK_ALLOWED_IPS")

    # Database
    supabase_url: str = Field(..., alias="SUPABASE_URL")
    supabase_service_key: str = Field(..., alias="SUPABASE_SERVICE_KEY")

    # Object storage
    s3_access_key: str = Field(..., alias="S3_ACCESS_KEY")
    s3_secret_key: str = Field(..., alias="S3_SECRET_KEY")
    s3_endpoint: Optional[str] = Field(default=None, alias="S3_ENDPOINT")
    s3_region: str = Field(default="auto", alias="S3_REGION")
    bucket_name: str = Field(..., alias="BUCKET_NAME")

    # Auth
    auth_jwt_key: str = Field(..., alias="AUTH_JWT_KEY")
    auth_jwt_algorithms: str = Field(default="RS256", alias="AUTH_JWT_ALGORITHMS")

    # Application Settings
    app_env: str = Field(default="development", alias="APP_ENV")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    provider: ProviderConfig = Field(default_factory=ProviderConfig)
    uploads: UploadConfig = Field(default_factory=UploadConfig)

    class Config:
        populate_by_name = True

    @property
    def allowed_webhook_ips(self) -> List[str]:
        return _split_csv(self.webhook_allowed_ips)

    @property
    def jwt_algorithms(self) -> List[str]:
        return _split_csv(self.auth_jwt_algorithms)


def _split_csv(value: str) -> List[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


def load_config(settings_path: Optional[Path] = None) -> Config:
    """
    Load configuration from environment and the YAML settings file.

    Environment variables carry credentials and deployment specifics;
    the YAML file carries provider app ids, timeouts and upload policy.

    Args:
        settings_path: Path to settings.yaml (defaults to config/settings.yaml)

    Returns:
        Config instance

    Raises:
        ConfigurationError: If configuration is invalid
    """
    path = settings_path or Path(os.getenv("SETTINGS_PATH", DEFAULT_SETTINGS_PATH))

    try:
        if not path.exists():
            raise ConfigurationError(f"settings.yaml not found at {path}")

        with open(path, "r") as f:
            settings = yaml.safe_load(f) or {}

        config_data = {
            **os.environ,
            **settings,
        }

        config = Config(**config_data)

        logger.info(
            "Configuration loaded successfully",
            extra={
                "environment": config.app_env,
                "training_app": config.provider.training_app,
                "generation_app": config.provider.generation_app,
            }
        )

        return config

    except ConfigurationError:
        raise
    except Exception as e:
        raise ConfigurationError(f"Failed to load configuration: {e}")
