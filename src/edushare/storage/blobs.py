"""Blob storage for uploaded files.

Two backends share one interface: a local directory (development and tests)
and an HTTP object store that accepts ``PUT``/``DELETE`` on object paths.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from pathlib import Path

import httpx

from edushare.config import Settings
from edushare.errors import UploadError

logger = logging.getLogger(__name__)


class BlobStorage(ABC):
    """Durable storage returning a stable URL per stored object."""

    @abstractmethod
    def upload(self, data: bytes, path: str, content_type: str) -> str:
        """Store ``data`` under ``path`` and return its URL.

        Raises:
            UploadError: the object could not be stored.
        """
        ...

    @abstractmethod
    def delete(self, url: str) -> None:
        """Remove the object behind ``url``. Missing objects are not an error."""
        ...

    def close(self) -> None:
        """Release any held connections."""


class LocalBlobStorage(BlobStorage):
    """Stores objects as files below a root directory."""

    def __init__(self, root: Path, base_url: str) -> None:
        self._root = root
        self._base_url = base_url.rstrip("/")
        self._root.mkdir(parents=True, exist_ok=True)

    def _resolve(self, path: str) -> Path:
        target = (self._root / path).resolve()
        if not target.is_relative_to(self._root.resolve()):
            raise ValueError(f"Path escapes storage root: {path}")
        return target

    def upload(self, data: bytes, path: str, content_type: str) -> str:
        try:
            target = self._resolve(path)
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(data)
        except (OSError, ValueError) as exc:
            raise UploadError(f"Could not store {path}: {exc}") from exc
        logger.debug("Stored %d bytes (%s) at %s", len(data), content_type, target)
        return f"{self._base_url}/{path}"

    def path_for_url(self, url: str) -> str:
        prefix = self._base_url + "/"
        if not url.startswith(prefix):
            raise ValueError(f"URL does not belong to this storage: {url}")
        return url[len(prefix):]

    def delete(self, url: str) -> None:
        self._resolve(self.path_for_url(url)).unlink(missing_ok=True)


class HttpBlobStorage(BlobStorage):
    """Wrapper around an object store reachable over HTTP."""

    def __init__(self, endpoint: str, token: str = "", timeout: float = 60.0) -> None:
        self._endpoint = endpoint.rstrip("/")
        headers = {"Authorization": f"Bearer {token}"} if token else {}
        self._client = httpx.Client(
            base_url=self._endpoint,
            headers=headers,
            timeout=timeout,
        )

    def upload(self, data: bytes, path: str, content_type: str) -> str:
        try:
            resp = self._client.put(
                f"/{path}", content=data, headers={"Content-Type": content_type}
            )
            resp.raise_for_status()
        except httpx.HTTPError as exc:
            raise UploadError(f"Could not store {path}: {exc}") from exc

        # Stores that return a canonical location win over our own path
        location = resp.headers.get("Location")
        return location or f"{self._endpoint}/{path}"

    def delete(self, url: str) -> None:
        resp = self._client.delete(url)
        if resp.status_code == 404:
            return
        resp.raise_for_status()

    def close(self) -> None:
        self._client.close()


def storage_from_settings(settings: Settings) -> BlobStorage:
    if settings.storage_backend == "http":
        if not settings.storage_endpoint:
            raise ValueError("EDUSHARE_STORAGE_ENDPOINT is required for the http backend")
        return HttpBlobStorage(settings.storage_endpoint, token=settings.storage_token)
    return LocalBlobStorage(settings.storage_dir, settings.storage_base_url)
