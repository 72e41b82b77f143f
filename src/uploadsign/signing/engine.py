from __future__ import annotations

import base64
import hashlib
import hmac

from uploadsign.errors import SigningError
from uploadsign.signing.canonical import PostPolicyDocument, PresignedRequest, UploadTokenPolicy
from uploadsign.signing.context import AWS4_ALGORITHM, AWS4_REQUEST, S3_SERVICE, BackendVariant, SigningContext


def _utf8(value: str | bytes) -> bytes:
    return value.encode("utf-8") if isinstance(value, str) else value


def _hmac_sha256(key: bytes, msg: str | bytes) -> bytes:
    return hmac.new(key, _utf8(msg), hashlib.sha256).digest()


def sha256_hex(value: str) -> str:
    if not isinstance(value, str):
        # Hashing raw bytes here would silently sign the wrong document.
        raise SigningError(f"sha256_hex expects text, got {type(value).__name__}")
    return hashlib.sha256(value.encode("utf-8")).hexdigest()


def hmac_sha1_hex(secret_key: str, base64_policy: str) -> str:
    return hmac.new(_utf8(secret_key), _utf8(base64_policy), hashlib.sha1).hexdigest()


def derive_signing_key(secret_key: str, date_stamp: str, region: str, service: str = S3_SERVICE) -> bytes:
    """
    AWS4 four-stage key derivation. Always recomputed: the key is scoped to
    date_stamp, so a key derived yesterday is rejected today.
    """
    k_date = _hmac_sha256(("AWS4" + secret_key).encode("utf-8"), date_stamp)
    k_region = _hmac_sha256(k_date, region)
    k_service = _hmac_sha256(k_region, service)
    return _hmac_sha256(k_service, AWS4_REQUEST)


def build_string_to_sign(amz_date: str, credential_scope: str, hashed_payload: str) -> str:
    return "\n".join([AWS4_ALGORITHM, amz_date, credential_scope, hashed_payload])


def aws4_policy_string_to_sign(context: SigningContext, base64_policy: str) -> str:
    return build_string_to_sign(context.amz_date, context.credential_scope, sha256_hex(base64_policy))


def presign_string_to_sign(context: SigningContext, request: PresignedRequest) -> str:
    return build_string_to_sign(context.amz_date, context.credential_scope, sha256_hex(request.canonical_request))


def _aws4_signature(context: SigningContext, string_to_sign: str) -> str:
    config = context.config
    signing_key = derive_signing_key(config.secret_key, context.date_stamp, config.region)
    return hmac.new(signing_key, string_to_sign.encode("utf-8"), hashlib.sha256).hexdigest()


def sign_post_policy_aws4(context: SigningContext, base64_policy: str) -> str:
    return _aws4_signature(context, aws4_policy_string_to_sign(context, base64_policy))


def sign_presigned_request(context: SigningContext, request: PresignedRequest) -> str:
    return _aws4_signature(context, presign_string_to_sign(context, request))


def sign_upload_token(access_key: str, secret_key: str, encoded_policy: str) -> str:
    digest = hmac.new(_utf8(secret_key), _utf8(encoded_policy), hashlib.sha1).digest()
    encoded_sign = base64.urlsafe_b64encode(digest).decode("ascii")
    return f"{access_key}:{encoded_sign}:{encoded_policy}"


def sign(context: SigningContext, document: PostPolicyDocument | PresignedRequest | UploadTokenPolicy) -> str:
    """Produce the signature (or, for upload tokens, the complete token) for a built document."""
    try:
        if isinstance(document, PresignedRequest):
            return sign_presigned_request(context, document)
        if isinstance(document, UploadTokenPolicy):
            return sign_upload_token(context.config.access_key, context.config.secret_key, document.encode())
        if isinstance(document, PostPolicyDocument):
            if context.variant is BackendVariant.POST_POLICY_AWS4:
                return sign_post_policy_aws4(context, document.encode())
            return hmac_sha1_hex(context.config.secret_key, document.encode())
    except SigningError:
        raise
    except (TypeError, ValueError, AttributeError) as exc:
        raise SigningError(f"Signing failed for {context.variant.value}") from exc
    raise SigningError(f"No signer for document type {type(document).__name__}")
