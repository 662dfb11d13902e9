"""Tests for configuration loading from environment and settings.yaml."""

from pathlib import Path

import pytest

from photoai.utils.config import load_config
from photoai.utils.errors import ConfigurationError

REQUIRED_ENV = {
    "FAL_KEY": "fal-key",
    "WEBHOOK_BASE_URL": "https://api.example.com",
    "SUPABASE_URL": "https://db.example.com",
    "SUPABASE_SERVICE_KEY": "service-key",
    "S3_ACCESS_KEY": "AKIATEST",
    "S3_SECRET_KEY": "secret",
    "BUCKET_NAME": "bucket",
    "AUTH_JWT_KEY": "-----BEGIN PUBLIC KEY-----\\nabc\\n-----END PUBLIC KEY-----",
}

SETTINGS_YAML = """
provider:
  training_app: fal-ai/custom-trainer
  timeout_seconds: 10
uploads:
  expires_seconds: 120
"""


@pytest.fixture
def env(monkeypatch):
    for key, value in REQUIRED_ENV.items():
        monkeypatch.setenv(key, value)
    for key in ("WEBHOOK_SECRET", "WEBHOOK_ALLOWED_IPS", "AUTH_JWT_ALGORITHMS", "SETTINGS_PATH"):
        monkeypatch.delenv(key, raising=False)
    return monkeypatch


@pytest.fixture
def settings_file(tmp_path) -> Path:
    path = tmp_path / "settings.yaml"
    path.write_text(SETTINGS_YAML)
    return path


def test_loads_env_and_yaml(env, settings_file):
    config = load_config(settings_file)

    assert config.fal_key == "fal-key"
    assert config.bucket_name == "bucket"
    assert config.provider.training_app == "fal-ai/custom-trainer"
    assert config.provider.timeout_seconds == 10
    assert config.uploads.expires_seconds == 120


def test_yaml_leaves_other_settings_at_defaults(env, settings_file):
    config = load_config(settings_file)

    assert config.provider.generation_app == "fal-ai/flux-lora"
    assert config.provider.queue_base_url == "https://queue.fal.run"
    assert config.uploads.content_type == "application/zip"
    assert config.s3_region == "auto"
    assert config.webhook_secret is None


def test_optional_lists(env, settings_file):
    env.setenv("WEBHOOK_ALLOWED_IPS", "203.0.113.5, 198.51.100.7,")
    env.setenv("AUTH_JWT_ALGORITHMS", "RS256,ES256")

    config = load_config(settings_file)

    assert config.allowed_webhook_ips == ["203.0.113.5", "198.51.100.7"]
    assert config.jwt_algorithms == ["RS256", "ES256"]


def test_default_algorithm(env, settings_file):
    assert load_config(settings_file).jwt_algorithms == ["RS256"]


def test_settings_path_from_env(env, settings_file):
    env.setenv("SETTINGS_PATH", str(settings_file))

    assert load_config().provider.training_app == "fal-ai/custom-trainer"


def test_missing_settings_file(env, tmp_path):
    with pytest.raises(ConfigurationError, match="not found"):
        load_config(tmp_path / "nope.yaml")


def test_missing_credentials(env, settings_file):
    env.delenv("FAL_KEY")

    with pytest.raises(ConfigurationError, match="Failed to load configuration"):
        load_config(settings_file)


def test_empty_yaml_is_allowed(env, tmp_path):
    path = tmp_path / "settings.yaml"
    path.write_text("")

    assert load_config(path).provider.training_app == "fal-ai/flux-lora-fast-training"
