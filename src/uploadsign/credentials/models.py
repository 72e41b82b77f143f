from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from uploadsign.signing.context import BackendVariant


class Credential(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True, extra='forbid')
    backend_kind: BackendVariant = Field(..., alias="backendKind", description="Which backend variant issued this credential.")
    server_url: str = Field(..., alias="serverUrl", description="Where the client sends the upload.")
    object_key: str = Field(..., alias="objectKey", description="Key the object will be stored under.")
    file_path: str = Field(..., alias="filePath", description="Public/access URL the caller should persist.")

    def as_payload(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json")


class PresignedPutCredential(Credential):
    presigned_url: str = Field(..., alias="presignedUrl", description="URL carrying the X-Amz-* query signature for a single PUT.")


class PostPolicyCredential(Credential):
    access_key: str = Field(..., alias="accessKey")
    policy: str = Field(..., description="Base64 encoded POST policy JSON.")
    signature: str = Field(..., description="Hex HMAC-SHA1 of the base64 policy.")


class PostPolicyAWS4Credential(Credential):
    algorithm: str = Field(..., alias="x-amz-algorithm")
    amz_date: str = Field(..., alias="x-amz-date", description="yyyyMMdd'T'HHmmss'Z' in UTC.")
    amz_credential: str = Field(..., alias="x-amz-credential", description="accessKey/date/region/s3/aws4_request")
    policy: str = Field(..., description="Base64 encoded POST policy JSON.")
    signature: str = Field(..., description="Hex HMAC-SHA256 over the AWS4 string-to-sign.")
    access_key: str = Field(..., alias="accessKey")
    region: str


class TokenCredential(Credential):
    token: str = Field(..., description="Opaque upload token scoped to bucket:key.")


# Direct upload / delete results


class UploadedFile(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)
    file_name: str = Field(..., alias="fileName", description="Original name of the uploaded file.")
    object_key: str = Field(..., alias="objectKey")
    file_path: str = Field(..., alias="filePath")
    size_bytes: int | None = Field(None, alias="sizeBytes")


class DeleteResult(BaseModel):
    model_config = ConfigDict(populate_by_name=True)
    deleted: list[str] = Field(default_factory=list)
    failed: dict[str, str] = Field(default_factory=dict, description="Object key -> backend error code.")

    @property
    def ok(self) -> bool:
        return not self.failed
