from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum

from uploadsign.config.backend_config import BackendConfig
from uploadsign.keys.object_key import as_utc

AWS4_ALGORITHM = "AWS4-HMAC-SHA256"
AWS4_REQUEST = "aws4_request"
S3_SERVICE = "s3"

AMZ_DATE_FORMAT = "%Y%m%dT%H%M%SZ"
DATE_STAMP_FORMAT = "%Y%m%d"
EXPIRATION_FORMAT = "%Y-%m-%dT%H:%M:%SZ"


class BackendVariant(str, Enum):
    PRESIGNED_PUT = "PresignedPut"
    POST_POLICY = "PostPolicy"
    POST_POLICY_AWS4 = "PostPolicyAWS4"
    TOKEN = "Token"


@dataclass(frozen=True)
class SigningContext:
    variant: BackendVariant
    instant: datetime
    config: BackendConfig

    def __post_init__(self):
        object.__setattr__(self, "instant", as_utc(self.instant))

    @property
    def amz_date(self) -> str:
        return self.instant.strftime(AMZ_DATE_FORMAT)

    @property
    def date_stamp(self) -> str:
        return self.instant.strftime(DATE_STAMP_FORMAT)

    @property
    def credential_scope(self) -> str:
        return f"{self.date_stamp}/{self.config.region}/{S3_SERVICE}/{AWS4_REQUEST}"

    @property
    def credential(self) -> str:
        return f"{self.config.access_key}/{self.credential_scope}"

    @property
    def expires_at(self) -> datetime:
        return self.instant + timedelta(seconds=self.config.expires_seconds)

    @property
    def expiration(self) -> str:
        return self.expires_at.strftime(EXPIRATION_FORMAT)
