from __future__ import annotations

import os
from dataclasses import dataclass, field
from urllib.parse import urlsplit

from uploadsign.errors import ConfigurationError

DEFAULT_REGION = "us-east-1"
DEFAULT_MAX_UPLOAD_BYTES = 1024 * 1024 * 1024
DEFAULT_EXPIRES_SECONDS = 30 * 60
DEFAULT_DATE_FORMAT = "%Y%m%d"
# SigV4 presigned URLs are rejected by S3 beyond seven days.
MAX_EXPIRES_SECONDS = 7 * 24 * 60 * 60

_FORBIDDEN_KEY_CHARS = {"\\"} | {chr(code) for code in range(0x20)} | {"\x7f"}


def has_forbidden_key_chars(value: str) -> bool:
    return any(ch in _FORBIDDEN_KEY_CHARS for ch in value)


@dataclass(frozen=True)
class BackendConfig:
    bucket: str
    access_key: str
    secret_key: str = field(repr=False)
    endpoint: str | None = None
    region: str = DEFAULT_REGION
    key_prefix: str = ""
    public_base_url: str | None = None
    max_upload_bytes: int = DEFAULT_MAX_UPLOAD_BYTES
    expires_seconds: int = DEFAULT_EXPIRES_SECONDS
    date_format: str = DEFAULT_DATE_FORMAT

    def __post_init__(self):
        for name in ("bucket", "access_key", "secret_key"):
            value = getattr(self, name)
            if not value or not value.strip():
                raise ConfigurationError(f"BackendConfig.{name} must be a non-empty string.")
        if not self.region or not self.region.strip():
            raise ConfigurationError("BackendConfig.region must be a non-empty string.")
        if self.endpoint is not None:
            parts = urlsplit(self.endpoint)
            if parts.scheme not in {"http", "https"} or not parts.netloc:
                raise ConfigurationError(
                    f"BackendConfig.endpoint must be an absolute http(s) URL, got: {self.endpoint!r}"
                )
        if self.public_base_url is not None and not urlsplit(self.public_base_url).scheme:
            raise ConfigurationError(
                f"BackendConfig.public_base_url must include a scheme, got: {self.public_base_url!r}"
            )
        if has_forbidden_key_chars(self.key_prefix):
            raise ConfigurationError("BackendConfig.key_prefix contains characters not allowed in object keys.")
        if self.max_upload_bytes <= 0:
            raise ConfigurationError(f"BackendConfig.max_upload_bytes must be > 0, got: {self.max_upload_bytes}")
        if not 0 < self.expires_seconds <= MAX_EXPIRES_SECONDS:
            raise ConfigurationError(
                f"BackendConfig.expires_seconds must be in (0, {MAX_EXPIRES_SECONDS}], got: {self.expires_seconds}"
            )

    @property
    def server_url(self) -> str:
        """Base URL objects are addressed under: path-style for custom endpoints, virtual-hosted for AWS."""
        if self.endpoint:
            return f"{self.endpoint.rstrip('/')}/{self.bucket}"
        return f"https://{self.bucket}.s3.{self.region}.amazonaws.com"

    @property
    def path_style(self) -> bool:
        return bool(self.endpoint)

    def public_url(self, object_key: str, server_url: str | None = None) -> str:
        base = self.public_base_url or server_url or self.server_url
        return f"{base.rstrip('/')}/{object_key}"


def require_env(var_name: str) -> str:
    value = os.getenv(var_name)
    if value is None or not value.strip():
        raise ConfigurationError(f"Environment variable '{var_name}' is required but not set.")
    return value


def _int_env(var_name: str, default: int) -> int:
    raw = os.getenv(var_name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ConfigurationError(f"{var_name} must be an integer, got: {raw!r}") from exc


def load_backend_config(env_prefix: str = "UPLOAD_") -> BackendConfig:
    date_format = os.getenv(f"{env_prefix}DATE_FORMAT")
    return BackendConfig(
        bucket=require_env(f"{env_prefix}BUCKET"),
        access_key=require_env(f"{env_prefix}ACCESS_KEY"),
        secret_key=require_env(f"{env_prefix}SECRET_KEY"),
        endpoint=os.getenv(f"{env_prefix}ENDPOINT") or None,
        region=os.getenv(f"{env_prefix}REGION") or os.getenv("AWS_REGION") or DEFAULT_REGION,
        key_prefix=os.getenv(f"{env_prefix}KEY_PREFIX", ""),
        public_base_url=os.getenv(f"{env_prefix}PUBLIC_BASE_URL") or None,
        max_upload_bytes=_int_env(f"{env_prefix}MAX_BYTES", DEFAULT_MAX_UPLOAD_BYTES),
        expires_seconds=_int_env(f"{env_prefix}EXPIRES_SECONDS", DEFAULT_EXPIRES_SECONDS),
        date_format=DEFAULT_DATE_FORMAT if date_format is None else date_format,
    )
