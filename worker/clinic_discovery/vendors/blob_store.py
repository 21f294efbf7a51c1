"""Upload helper for the Vercel Blob HTTP API."""

import logging
import mimetypes
from pathlib import Path

import requests

logger = logging.getLogger(__name__)
_SESSION = requests.Session()
_API_VERSION = "7"

CONTENT_TYPES = {
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".gif": "image/gif",
    ".webp": "image/webp",
    ".svg": "image/svg+xml",
}


class BlobStoreError(RuntimeError):
    """Raised when the blob store rejects an upload."""


def content_type_for(path: Path) -> str:
    suffix = path.suffix.lower()
    return CONTENT_TYPES.get(suffix) or mimetypes.types_map.get(suffix) or "application/octet-stream"


class BlobUploader:
    """Puts files under a stable pathname and returns their public URL."""

    def __init__(self, token: str, base_url: str = "https://blob.vercel-storage.com") -> None:
        if not token:
            raise ValueError("A blob read/write token is required for uploads")
        self.token = token
        self.base_url = base_url.rstrip("/")

    def upload(self, local_file: Path, pathname: str) -> str:
        headers = {
            "Authorization": f"Bearer {self.token}",
            "x-api-version": _API_VERSION,
            "x-content-type": content_type_for(local_file),
            "x-add-random-suffix": "0",
        }
        response = _SESSION.put(
            f"{self.base_url}/{pathname.lstrip('/')}",
            data=local_file.read_bytes(),
            headers=headers,
            timeout=30,
        )
        if response.status_code >= 400:
            raise BlobStoreError(f"upload of {pathname} failed: {response.status_code} {response.text[:200]}")
        url = (response.json() or {}).get("url")
        if not url:
            raise BlobStoreError(f"upload of {pathname} returned no url")
        logger.debug("Uploaded %s -> %s", pathname, url)
        return url
