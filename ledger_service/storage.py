"""
Document storage for uploaded receipts.

Uploaded bytes are written under a generated key and served back through the
authenticated ``/api/documents/<key>`` proxy. Transactions only ever persist
the ``(url, fileName, mimeType)`` triple returned by :func:`store_upload`.
"""

import re
from functools import lru_cache
from pathlib import Path
from typing import Dict, Optional
from urllib.parse import urlparse
from uuid import uuid4

from .config import MAX_UPLOAD_BYTES, STORAGE_DIR
from .errors import InvalidFieldError
from .logger import get_logger

log = get_logger("storage")

PROXY_PREFIX = "/api/documents/"
# allowed upload type -> extension of the stored key
ALLOWED_MIME_TYPES = {
    "image/jpeg": ".jpg",
    "image/jpg": ".jpg",
    "image/png": ".png",
    "image/gif": ".gif",
    "image/webp": ".webp",
    "application/pdf": ".pdf",
}
CONTENT_TYPES = {
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".gif": "image/gif",
    ".webp": "image/webp",
    ".pdf": "application/pdf",
}
LEGACY_HOST_RE = re.compile(r"(?:r2\.cloudflarestorage\.com|r2\.dev)/(.+?)(?:\?|$)")


class StorageBackend:
    """Interface for the object store holding document bytes."""

    def save_file(self, data: bytes, key: str) -> str:
        raise NotImplementedError(f"{self.__class__.__name__}.save_file() must be implemented")

    def read_file(self, key: str) -> bytes:
        """
        Return the stored bytes.

        Raises:
            FileNotFoundError: If nothing is stored under ``key``
        """
        raise NotImplementedError(f"{self.__class__.__name__}.read_file() must be implemented")

    def delete_file(self, key: str) -> None:
        raise NotImplementedError(f"{self.__class__.__name__}.delete_file() must be implemented")


class LocalStorage(StorageBackend):
    """Filesystem storage rooted at ``base_dir``."""

    def __init__(self, base_dir):
        self.base_dir = Path(base_dir).resolve()
        self.base_dir.mkdir(parents=True, exist_ok=True)
        log.info(f"Local storage initialized: base_dir={self.base_dir}")

    def _path(self, key: str) -> Path:
        path = (self.base_dir / key).resolve()
        if path != self.base_dir and self.base_dir not in path.parents:
            raise FileNotFoundError(f"File not found: {key}")
        return path

    def save_file(self, data: bytes, key: str) -> str:
        path = self._path(key)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(data)
        except OSError as e:
            log.error(f"Failed to save file to local storage: key={key} error={e}")
            raise
        log.info(f"Saved file to local storage: key={key} size={len(data)} bytes")
        return key

    def read_file(self, key: str) -> bytes:
        path = self._path(key)
        if not path.is_file():
            raise FileNotFoundError(f"File not found: {key}")
        content = path.read_bytes()
        log.debug(f"Read file from local storage: key={key} size={len(content)} bytes")
        return content

    def delete_file(self, key: str) -> None:
        path = self._path(key)
        if path.is_file():
            path.unlink()
            log.info(f"Deleted file from local storage: key={key}")


@lru_cache()
def get_storage() -> StorageBackend:
    return LocalStorage(STORAGE_DIR)


def validate_upload(mime_type: Optional[str], size: int) -> None:
    if mime_type not in ALLOWED_MIME_TYPES:
        raise InvalidFieldError(
            "file",
            "Invalid file type. Only images (JPEG, PNG, GIF, WebP) and PDF files are allowed.",
        )
    if size > MAX_UPLOAD_BYTES:
        raise InvalidFieldError(
            "file",
            f"File size exceeds maximum allowed size of {MAX_UPLOAD_BYTES // (1024 * 1024)}MB",
        )

def store_upload(storage: StorageBackend, data: bytes, file_name: str, mime_type: str) -> Dict[str, str]:
    validate_upload(mime_type, len(data))
    # the key extension follows the validated type, never the client's file name
    key = f"documents/{uuid4()}{ALLOWED_MIME_TYPES[mime_type]}"
    storage.save_file(data, key)
    return {"url": PROXY_PREFIX + key, "fileName": file_name, "mimeType": mime_type}

def guess_content_type(key: str) -> str:
    return CONTENT_TYPES.get(Path(key).suffix.lower(), "application/octet-stream")

def document_key(url: str) -> Optional[str]:
    """Storage key behind a proxy URL, or None for external URLs."""
    if url and url.startswith(PROXY_PREFIX):
        return url[len(PROXY_PREFIX):] or None
    return None

def discard_files(storage: StorageBackend, keys) -> None:
    """Delete stored bytes that no document references any more."""
    for key in sorted(set(keys)):
        try:
            storage.delete_file(key)
        except OSError as e:
            log.warning(f"Failed to delete stored file: key={key} error={e}")


def normalize_document_url(url: str) -> str:
    """Rewrite direct object-storage URLs to the proxy path; other URLs pass through."""
    if not url or url.startswith(PROXY_PREFIX):
        return url
    if ".r2.cloudflarestorage.com/" not in url and ".r2.dev/" not in url:
        return url
    parsed = urlparse(url if url.startswith("http") else f"https://{url}")
    key = parsed.path.lstrip("/")
    if not key:
        match = LEGACY_HOST_RE.search(url)
        if not match:
            return url
        key = match.group(1)
    normalized = PROXY_PREFIX + key
    log.debug(f"Normalized document url: original={url} normalized={normalized}")
    return normalized
