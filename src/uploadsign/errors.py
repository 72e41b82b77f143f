from __future__ import annotations


class UploadSignError(Exception):
    """Base class for every error raised by uploadsign."""


class ConfigurationError(UploadSignError):
    """Backend settings are missing or invalid. Raised at startup, not per request."""


class InvalidExtensionError(UploadSignError, ValueError):
    def __init__(self, extension: str) -> None:
        super().__init__(f"Invalid file extension: {extension!r}")
        self.extension = extension


class InvalidObjectKeyError(UploadSignError, ValueError):
    def __init__(self, key: str) -> None:
        super().__init__(f"Object key contains characters not allowed by object storage: {key!r}")
        self.key = key


class CanonicalizationError(UploadSignError):
    """The document to be signed could not be built or serialized."""


class SigningError(UploadSignError):
    """Hashing or HMAC computation failed."""


class CredentialIssuanceFailed(UploadSignError):
    # Message is fixed; the cause is only reachable through __cause__ and the server log.
    MESSAGE = "Failed to issue upload credential"

    def __init__(self) -> None:
        super().__init__(self.MESSAGE)


class ObjectStoreError(UploadSignError, RuntimeError):
    """A direct upload or delete against the backend failed."""
