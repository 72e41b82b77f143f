"""
Operator smoke test: issue a credential from UPLOAD_* environment settings and
use it to upload one local file, the same way a browser or client would.

    python -m uploadsign.tools.smoke_upload path/to/file.png
"""
from __future__ import annotations

import argparse
import mimetypes
import os
import time
from pathlib import Path

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from uploadsign.credentials.issuer import issuer_from_env
from uploadsign.credentials.models import (
    Credential,
    PostPolicyAWS4Credential,
    PostPolicyCredential,
    PresignedPutCredential,
    TokenCredential,
)
from uploadsign.logging_config import configure_logging, get_logger

USER_AGENT = "uploadsign-smoke/1.0"
REQUEST_TIMEOUT = 30

logger = get_logger(__name__)


def _create_session() -> requests.Session:
    retries = Retry(
        total=3,
        backoff_factor=1,
        status_forcelist=[429, 500, 502, 503, 504],
        allowed_methods=["PUT", "POST"],
    )
    adapter = HTTPAdapter(max_retries=retries)
    session = requests.Session()
    session.mount("https://", adapter)
    session.mount("http://", adapter)
    session.headers.update({"User-Agent": USER_AGENT})
    return session


def build_form_fields(credential: Credential) -> dict[str, str]:
    """Form fields each backend expects alongside the file part of a POST upload."""
    if isinstance(credential, PostPolicyAWS4Credential):
        return {
            "key": credential.object_key,
            "policy": credential.policy,
            "x-amz-algorithm": credential.algorithm,
            "x-amz-credential": credential.amz_credential,
            "x-amz-date": credential.amz_date,
            "x-amz-signature": credential.signature,
        }
    if isinstance(credential, PostPolicyCredential):
        return {
            "key": credential.object_key,
            "policy": credential.policy,
            "OSSAccessKeyId": credential.access_key,
            "Signature": credential.signature,
        }
    if isinstance(credential, TokenCredential):
        return {"key": credential.object_key, "token": credential.token}
    raise TypeError(f"{type(credential).__name__} is not uploaded with a form POST")


def upload_with_credential(credential: Credential, source: Path, session: requests.Session | None = None) -> requests.Response:
    session = session or _create_session()
    content_type = mimetypes.guess_type(source.name)[0] or "application/octet-stream"
    data = source.read_bytes()
    if isinstance(credential, PresignedPutCredential):
        response = session.put(
            credential.presigned_url,
            data=data,
            headers={"Content-Type": content_type},
            timeout=REQUEST_TIMEOUT,
        )
    else:
        response = session.post(
            credential.server_url,
            data=build_form_fields(credential),
            files={"file": (source.name, data, content_type)},
            timeout=REQUEST_TIMEOUT,
        )
    response.raise_for_status()
    return response


def main(argv: list[str] | None = None) -> int:
    configure_logging(level=os.getenv("LOG_LEVEL", "INFO"), service="uploadsign.tools.smoke_upload")
    parser = argparse.ArgumentParser(description=__doc__.strip().splitlines()[0])
    parser.add_argument("source", type=Path)
    args = parser.parse_args(argv)
    source: Path = args.source
    if not source.is_file():
        raise FileNotFoundError(f"Upload source not found at '{source}'")
    try:
        issuer, variant = issuer_from_env()
        credential = issuer.issue(variant, extension=source.suffix)
        started_at = time.perf_counter()
        response = upload_with_credential(credential, source)
        logger.info(
            "Smoke upload succeeded: backend=%s status=%s object_key=%s file_path=%s elapsed_seconds=%.3f",
            variant.value,
            response.status_code,
            credential.object_key,
            credential.file_path,
            time.perf_counter() - started_at,
        )
    except Exception:
        logger.exception("Smoke upload failed: source=%s", source)
        raise
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
