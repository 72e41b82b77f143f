import pytest

from uploadsign.config.backend_config import (
    DEFAULT_EXPIRES_SECONDS,
    DEFAULT_MAX_UPLOAD_BYTES,
    BackendConfig,
    load_backend_config,
)
from uploadsign.errors import ConfigurationError


def _config(**overrides):
    values = {"bucket": "uploads", "access_key": "ak", "secret_key": "sk"}
    values.update(overrides)
    return BackendConfig(**values)


def test_defaults():
    config = _config()
    assert config.region == "us-east-1"
    assert config.max_upload_bytes == DEFAULT_MAX_UPLOAD_BYTES == 1073741824
    assert config.expires_seconds == DEFAULT_EXPIRES_SECONDS == 1800
    assert config.date_format == "%Y%m%d"


@pytest.mark.parametrize("field", ["bucket", "access_key", "secret_key"])
def test_required_fields(field):
    with pytest.raises(ConfigurationError):
        _config(**{field: "  "})


@pytest.mark.parametrize(
    "overrides",
    [
        {"endpoint": "minio:9000"},
        {"public_base_url": "cdn.example.com"},
        {"key_prefix": "a\\b"},
        {"key_prefix": "a\nb"},
        {"max_upload_bytes": 0},
        {"expires_seconds": 0},
        {"expires_seconds": 8 * 24 * 3600},
    ],
)
def test_invalid_settings_rejected(overrides):
    with pytest.raises(ConfigurationError):
        _config(**overrides)


def test_secret_not_in_repr():
    assert "sk-very-secret" not in repr(_config(secret_key="sk-very-secret"))


def test_server_url_virtual_hosted_for_aws():
    assert _config(region="eu-west-1").server_url == "https://uploads.s3.eu-west-1.amazonaws.com"
    assert _config().path_style is False


def test_server_url_path_style_for_endpoint():
    config = _config(endpoint="http://localhost:9000/")
    assert config.server_url == "http://localhost:9000/uploads"
    assert config.path_style is True


def test_public_url_prefers_cdn():
    assert _config().public_url("a/b.png") == "https://uploads.s3.us-east-1.amazonaws.com/a/b.png"
    assert _config(public_base_url="https://cdn.example.com/").public_url("a/b.png") == "https://cdn.example.com/a/b.png"


def test_load_backend_config_from_env(monkeypatch):
    monkeypatch.setenv("MEDIA_BUCKET", "media")
    monkeypatch.setenv("MEDIA_ACCESS_KEY", "ak")
    monkeypatch.setenv("MEDIA_SECRET_KEY", "sk")
    monkeypatch.setenv("MEDIA_ENDPOINT", "https://oss-cn-hangzhou.aliyuncs.com")
    monkeypatch.setenv("MEDIA_REGION", "oss-cn-hangzhou")
    monkeypatch.setenv("MEDIA_EXPIRES_SECONDS", "600")
    monkeypatch.setenv("MEDIA_DATE_FORMAT", "")
    config = load_backend_config("MEDIA_")
    assert config.bucket == "media"
    assert config.region == "oss-cn-hangzhou"
    assert config.expires_seconds == 600
    assert config.max_upload_bytes == DEFAULT_MAX_UPLOAD_BYTES
    assert config.date_format == ""


def test_load_backend_config_missing_secret(monkeypatch):
    monkeypatch.setenv("MEDIA_BUCKET", "media")
    monkeypatch.setenv("MEDIA_ACCESS_KEY", "ak")
    monkeypatch.delenv("MEDIA_SECRET_KEY", raising=False)
    with pytest.raises(ConfigurationError, match="MEDIA_SECRET_KEY"):
        load_backend_config("MEDIA_")


def test_load_backend_config_bad_integer(monkeypatch):
    monkeypatch.setenv("MEDIA_BUCKET", "media")
    monkeypatch.setenv("MEDIA_ACCESS_KEY", "ak")
    monkeypatch.setenv("MEDIA_SECRET_KEY", "sk")
    monkeypatch.setenv("MEDIA_MAX_BYTES", "1GB")
    with pytest.raises(ConfigurationError, match="MEDIA_MAX_BYTES"):
        load_backend_config("MEDIA_")
