import hashlib
import hmac
from datetime import datetime, timezone

import pytest

from uploadsign.config.backend_config import BackendConfig
from uploadsign.credentials.issuer import CredentialIssuer

FIXED_INSTANT = datetime(2024, 1, 1, 0, 0, 0, tzinfo=timezone.utc)
SECRET_KEY = "s3cr3t-k3y-value"


def reference_signing_key(secret: str, date_stamp: str, region: str, service: str = "s3") -> bytes:
    key = ("AWS4" + secret).encode("utf-8")
    for part in (date_stamp, region, service, "aws4_request"):
        key = hmac.new(key, part.encode("utf-8"), hashlib.sha256).digest()
    return key


def reference_aws4_signature(secret: str, date_stamp: str, region: str, amz_date: str, hashed: str) -> str:
    scope = f"{date_stamp}/{region}/s3/aws4_request"
    string_to_sign = f"AWS4-HMAC-SHA256\n{amz_date}\n{scope}\n{hashed}"
    key = reference_signing_key(secret, date_stamp, region)
    return hmac.new(key, string_to_sign.encode("utf-8"), hashlib.sha256).hexdigest()


@pytest.fixture
def backend_config():
    return BackendConfig(
        bucket="uploads",
        access_key="AKIDEXAMPLE",
        secret_key=SECRET_KEY,
        key_prefix="avatars/2024",
    )


@pytest.fixture
def issuer(backend_config):
    return CredentialIssuer(backend_config, clock=lambda: FIXED_INSTANT, token_factory=lambda: "abc123")
