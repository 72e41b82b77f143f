"""
Builders for the exact documents each backend verifier recomputes.

Every builder here is order- and byte-sensitive: the storage backend rebuilds
the same string from the request it receives and compares signatures, so field
order, separators and percent-encoding must not drift.
"""
from __future__ import annotations

import base64
import json
from dataclasses import dataclass
from typing import Any
from urllib.parse import quote, urlsplit

from uploadsign.errors import CanonicalizationError
from uploadsign.signing.context import AWS4_ALGORITHM, SigningContext

UNSIGNED_PAYLOAD = "UNSIGNED-PAYLOAD"
SIGNED_HEADERS = "host"


def _dump_json(document: dict[str, Any]) -> str:
    try:
        return json.dumps(document, separators=(",", ":"), ensure_ascii=False, allow_nan=False)
    except (TypeError, ValueError) as exc:
        raise CanonicalizationError(f"Could not serialize {sorted(document)} document") from exc


# POST policy


@dataclass(frozen=True)
class PostPolicyDocument:
    expiration: str
    conditions: tuple[tuple[Any, ...], ...]

    def to_json(self) -> str:
        # dict insertion order fixes "expiration" before "conditions".
        return _dump_json({"expiration": self.expiration, "conditions": [list(c) for c in self.conditions]})

    def encode(self) -> str:
        """Base64 of the UTF-8 JSON. This string, not the JSON, is what gets signed."""
        return base64.b64encode(self.to_json().encode("utf-8")).decode("ascii")


def build_post_policy(context: SigningContext, object_key: str, aws4: bool = False) -> PostPolicyDocument:
    config = context.config
    conditions: list[tuple[Any, ...]] = [
        ("eq", "$bucket", config.bucket),
        ("eq", "$key", object_key),
        ("content-length-range", 0, config.max_upload_bytes),
    ]
    if aws4:
        conditions += [
            ("eq", "$x-amz-algorithm", AWS4_ALGORITHM),
            ("eq", "$x-amz-credential", context.credential),
            ("eq", "$x-amz-date", context.amz_date),
        ]
    return PostPolicyDocument(expiration=context.expiration, conditions=tuple(conditions))


# Presigned URL


def uri_encode(value: str, encode_slash: bool = True) -> str:
    # quote() leaves only A-Z a-z 0-9 - _ . ~ unescaped, which is the SigV4 unreserved set.
    return quote(value, safe="" if encode_slash else "/")


def canonical_query(params: dict[str, str]) -> tuple[tuple[str, str], ...]:
    encoded = [(uri_encode(name), uri_encode(value)) for name, value in params.items()]
    return tuple(sorted(encoded))


@dataclass(frozen=True)
class PresignedRequest:
    method: str
    scheme: str
    host: str
    canonical_uri: str
    query: tuple[tuple[str, str], ...]
    payload_hash: str = UNSIGNED_PAYLOAD

    @property
    def canonical_query_string(self) -> str:
        return "&".join(f"{name}={value}" for name, value in self.query)

    @property
    def canonical_headers(self) -> str:
        return f"host:{self.host}\n"

    @property
    def canonical_request(self) -> str:
        return "\n".join(
            [
                self.method,
                self.canonical_uri,
                self.canonical_query_string,
                self.canonical_headers,
                SIGNED_HEADERS,
                self.payload_hash,
            ]
        )

    def url(self, signature: str) -> str:
        return f"{self.scheme}://{self.host}{self.canonical_uri}?{self.canonical_query_string}&X-Amz-Signature={signature}"


def build_presigned_request_for(
    method: str,
    server_url: str,
    object_key: str,
    credential: str,
    amz_date: str,
    expires_seconds: int,
) -> PresignedRequest:
    parts = urlsplit(server_url)
    if not parts.netloc:
        raise CanonicalizationError(f"Cannot presign against a server URL without a host: {server_url!r}")
    path = f"{parts.path.rstrip('/')}/{object_key.lstrip('/')}"
    params = {
        "X-Amz-Algorithm": AWS4_ALGORITHM,
        "X-Amz-Credential": credential,
        "X-Amz-Date": amz_date,
        "X-Amz-Expires": str(expires_seconds),
        "X-Amz-SignedHeaders": SIGNED_HEADERS,
    }
    return PresignedRequest(
        method=method.upper(),
        scheme=parts.scheme or "https",
        host=parts.netloc,
        canonical_uri=uri_encode(path, encode_slash=False),
        query=canonical_query(params),
    )


def build_presigned_request(context: SigningContext, object_key: str, method: str = "PUT") -> PresignedRequest:
    return build_presigned_request_for(
        method=method,
        server_url=context.config.server_url,
        object_key=object_key,
        credential=context.credential,
        amz_date=context.amz_date,
        expires_seconds=context.config.expires_seconds,
    )


# Upload token


@dataclass(frozen=True)
class UploadTokenPolicy:
    scope: str
    deadline: int

    def to_json(self) -> str:
        return _dump_json({"scope": self.scope, "deadline": self.deadline})

    def encode(self) -> str:
        return base64.urlsafe_b64encode(self.to_json().encode("utf-8")).decode("ascii")


def build_upload_token_policy(context: SigningContext, object_key: str) -> UploadTokenPolicy:
    return UploadTokenPolicy(
        scope=f"{context.config.bucket}:{object_key}",
        deadline=int(context.expires_at.timestamp()),
    )
