"""Object storage interface and the local-filesystem backend."""

from __future__ import annotations

import logging
import os
import shutil
from dataclasses import dataclass
from datetime import timedelta
from typing import BinaryIO, Protocol, Union, runtime_checkable

logger = logging.getLogger(__name__)

DEFAULT_BUCKET = "uploads"

Readable = Union[bytes, bytearray, memoryview, BinaryIO]


@runtime_checkable
class Storage(Protocol):
    """Uploads, deletes and links stored objects."""

    def upload(
        self,
        key: str,
        reader: Readable,
        size: int,
        content_type: str,
        is_private: bool,
    ) -> str: ...

    def delete(self, key: str) -> None: ...

    def generate_url(self, key: str, is_private: bool, expires: timedelta) -> str: ...


@dataclass
class OssConfig:
    """Object storage settings."""

    provider: str = ""
    endpoint: str = ""
    access_key_id: str = ""
    access_key_secret: str = ""
    bucket: str = ""
    domain: str = ""
    use_https: bool = False
    region: str = ""


def _join(base: str, key: str) -> str:
    # A leading separator in the key must not escape the base directory.
    return os.path.join(base, key.lstrip("/\\"))


class LocalStorage:
    """Stores objects as files below a base directory (the bucket)."""

    def __init__(self, config: OssConfig) -> None:
        self.config = config
        self.base_dir = config.bucket or DEFAULT_BUCKET
        os.makedirs(self.base_dir, mode=0o755, exist_ok=True)

    def _check_inside(self, key: str, file_path: str) -> None:
        base = os.path.abspath(os.path.normpath(self.base_dir))
        target = os.path.abspath(os.path.normpath(file_path))
        try:
            rel = os.path.relpath(target, base)
        except ValueError as exc:
            raise ValueError(f"invalid file path: {key}") from exc
        if rel.startswith(".."):
            raise ValueError(f"invalid file path: {key}")

    def upload(
        self,
        key: str,
        reader: Readable,
        size: int = -1,
        content_type: str = "",
        is_private: bool = False,
    ) -> str:
        """Write the content to ``key`` and return the key; rejects paths leaving the base."""
        file_path = _join(self.base_dir, key)
        self._check_inside(key, file_path)
        os.makedirs(os.path.dirname(file_path) or ".", mode=0o755, exist_ok=True)
        with open(file_path, "wb") as out:
            if isinstance(reader, (bytes, bytearray, memoryview)):
                out.write(reader)
            else:
                shutil.copyfileobj(reader, out)
        return key

    def delete(self, key: str) -> None:
        os.remove(_join(self.base_dir, key))

    def generate_url(
        self, key: str, is_private: bool = False, expires: timedelta = timedelta(0)
    ) -> str:
        """Absolute URL when a domain is configured, otherwise a root-relative path."""
        schema = "https" if self.config.use_https else "http"
        if self.config.domain:
            return f"{schema}://{self.config.domain}/{key}"
        return f"/{key}"


def new_storage(config: OssConfig | None) -> Storage:
    """Pick a backend from the configuration; local storage is the fallback."""
    if config is None:
        return LocalStorage(OssConfig(bucket=DEFAULT_BUCKET))
    if config.provider in ("aliyun", "qiniu", "minio"):
        raise ValueError(f"storage provider {config.provider!r} is not available")
    return LocalStorage(config)