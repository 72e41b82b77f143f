from __future__ import annotations

import re
from datetime import datetime, timezone
from pathlib import PurePosixPath
from typing import Callable
from uuid import uuid4

from uploadsign.config.backend_config import DEFAULT_DATE_FORMAT, has_forbidden_key_chars
from uploadsign.errors import InvalidExtensionError, InvalidObjectKeyError

Clock = Callable[[], datetime]
TokenFactory = Callable[[], str]

KEY_SEPARATOR = "/"
_EXTENSION_RE = re.compile(r"^\.[A-Za-z0-9_-]+(\.[A-Za-z0-9_-]+)*$")


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def random_token() -> str:
    return uuid4().hex


def as_utc(instant: datetime) -> datetime:
    # Naive datetimes are taken to already be UTC; local time is never consulted.
    if instant.tzinfo is None:
        return instant.replace(tzinfo=timezone.utc)
    return instant.astimezone(timezone.utc)


def normalize_extension(extension: str | None) -> str:
    """
    Normalize a caller-supplied extension to a single leading dot.
    "jpg", ".jpg" and " .jpg " all become ".jpg"; None or blank becomes "".
    Multi-part extensions such as "tar.gz" keep their inner dots.
    """
    if extension is None:
        return ""
    trimmed = extension.strip()
    if not trimmed:
        return ""
    normalized = "." + trimmed.lstrip(".")
    if not _EXTENSION_RE.match(normalized):
        raise InvalidExtensionError(extension)
    return normalized


def append_file_extension(source_name: str, key: str) -> str:
    """Append the suffix of the uploaded file's original name to a generated key."""
    return key + PurePosixPath(source_name.replace("\\", "/")).suffix


def join_key(*segments: str) -> str:
    # Only the edges of each segment are trimmed; inner separators are kept as given.
    return KEY_SEPARATOR.join(s.strip(KEY_SEPARATOR) for s in segments if s and s.strip(KEY_SEPARATOR))


class ObjectKeyGenerator:
    def __init__(
        self,
        clock: Clock = utc_now,
        token_factory: TokenFactory = random_token,
        date_format: str = DEFAULT_DATE_FORMAT,
    ) -> None:
        self.clock = clock
        self.token_factory = token_factory
        self.date_format = date_format

    def new_name(self, instant: datetime | None = None) -> str:
        instant = as_utc(instant or self.clock())
        millis = int(instant.replace(microsecond=0).timestamp()) * 1000 + instant.microsecond // 1000
        return f"{millis}-{self.token_factory()}"

    def new_key(
        self,
        prefix: str = "",
        file_name: str | None = None,
        extension: str | None = None,
        instant: datetime | None = None,
    ) -> str:
        instant = as_utc(instant or self.clock())
        name = file_name.strip() if file_name and file_name.strip() else self.new_name(instant)
        name += normalize_extension(extension)
        date_path = instant.strftime(self.date_format) if self.date_format else ""
        key = join_key(prefix, date_path, name)
        if has_forbidden_key_chars(key):
            raise InvalidObjectKeyError(key)
        return key
