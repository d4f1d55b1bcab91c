"""Blob stores backing the remote artifact cache.

This module handles:
- The ``BlobStore`` interface the remote cache is written against
- ``S3BlobStore``, a flat key/blob store speaking the S3 REST API over httpx

Keys are flat: no hierarchy is assumed, and keys are used verbatim as object
names in the bucket.
"""

from __future__ import annotations

import logging
import xml.etree.ElementTree as ET
from typing import Any, Protocol, runtime_checkable
from urllib.parse import quote

import httpx

from stackbuild.errors import StackbuildError

logger = logging.getLogger(__name__)

# Timeout for remote cache requests (seconds)
REQUEST_TIMEOUT = 300


class BlobStoreError(StackbuildError):
    """Raised when a remote blob store request fails."""

    def __init__(self, message: str, code: str = "blob_store_error") -> None:
        super().__init__(message, code=code)


class NotInCacheError(BlobStoreError):
    """Raised when a key is not present in the blob store."""

    def __init__(self, key: str) -> None:
        super().__init__(f"Key not found in remote cache: {key}", code="not_in_cache")
        self.key = key


@runtime_checkable
class BlobStore(Protocol):
    """A flat key -> blob store."""

    def list(self) -> list[str]:
        """Return every key in the store."""
        ...

    def get(self, key: str) -> bytes:
        """Return the blob stored under ``key``."""
        ...

    def put(self, key: str, blob: bytes) -> None:
        """Store ``blob`` under ``key``, replacing any previous blob."""
        ...


def _local_name(tag: str) -> str:
    """Strip the XML namespace from an element tag."""
    return tag.rsplit("}", 1)[-1]


def parse_list_bucket_result(content: bytes) -> tuple[list[str], str | None]:
    """Parse an S3 ``ListBucketResult`` document.

    Args:
        content: Raw XML response body.

    Returns:
        Tuple of (keys on this page, continuation token or None).

    Raises:
        BlobStoreError: If the document cannot be parsed.
    """
    try:
        root = ET.fromstring(content)
    except ET.ParseError as e:
        raise BlobStoreError(
            f"Invalid bucket listing: {e}", code="invalid_listing"
        ) from e

    keys: list[str] = []
    truncated = False
    token: str | None = None

    for child in root:
        name = _local_name(child.tag)
        if name == "Contents":
            for field in child:
                if _local_name(field.tag) == "Key" and field.text:
                    keys.append(field.text)
        elif name == "IsTruncated":
            truncated = (child.text or "").strip().lower() == "true"
        elif name == "NextContinuationToken":
            token = child.text

    return keys, token if truncated else None


class S3BlobStore:
    """Blob store backed by an S3-compatible bucket.

    The bucket URL must grant the caller list/read/write access (public
    bucket, pre-signed gateway or a proxy adding credentials).

    Attributes:
        base_url: Bucket URL, e.g. ``https://bucket.s3.amazonaws.com``.
    """

    def __init__(
        self,
        base_url: str,
        client: httpx.Client | None = None,
        timeout: float = REQUEST_TIMEOUT,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self._owns_client = client is None
        self.client = client or httpx.Client(timeout=timeout)

    def url_for(self, key: str) -> str:
        """Return the object URL for a key."""
        return f"{self.base_url}/{quote(key, safe='')}"

    def _request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        try:
            response = self.client.request(method, url, **kwargs)
            response.raise_for_status()
            return response
        except httpx.HTTPStatusError as e:
            raise BlobStoreError(
                f"HTTP error on {method} {url}: "
                f"{e.response.status_code} {e.response.reason_phrase}",
                code="http_error",
            ) from e
        except httpx.TimeoutException as e:
            raise BlobStoreError(
                f"Timeout on {method} {url}", code="timeout"
            ) from e
        except httpx.RequestError as e:
            raise BlobStoreError(
                f"Network error on {method} {url}: {e}", code="network_error"
            ) from e

    def list(self) -> list[str]:
        keys: list[str] = []
        token: str | None = None
        while True:
            params = {"list-type": "2"}
            if token:
                params["continuation-token"] = token
            response = self._request("GET", f"{self.base_url}/", params=params)
            page, token = parse_list_bucket_result(response.content)
            keys.extend(page)
            if token is None:
                break
        logger.debug("Listed %d key(s) in %s", len(keys), self.base_url)
        return keys

    def get(self, key: str) -> bytes:
        url = self.url_for(key)
        try:
            response = self.client.get(url)
        except httpx.TimeoutException as e:
            raise BlobStoreError(f"Timeout on GET {url}", code="timeout") from e
        except httpx.RequestError as e:
            raise BlobStoreError(
                f"Network error on GET {url}: {e}", code="network_error"
            ) from e
        if response.status_code == 404:
            raise NotInCacheError(key)
        if response.is_error:
            raise BlobStoreError(
                f"HTTP error on GET {url}: "
                f"{response.status_code} {response.reason_phrase}",
                code="http_error",
            )
        return response.content

    def put(self, key: str, blob: bytes) -> None:
        self._request(
            "PUT",
            self.url_for(key),
            content=blob,
            headers={"Content-Type": "application/octet-stream"},
        )
        logger.info("Uploaded %s (%d bytes)", key, len(blob))

    def close(self) -> None:
        if self._owns_client:
            self.client.close()

    def __enter__(self) -> S3BlobStore:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"S3BlobStore({self.base_url!r})"


__all__ = [
    "REQUEST_TIMEOUT",
    "BlobStore",
    "BlobStoreError",
    "NotInCacheError",
    "S3BlobStore",
    "parse_list_bucket_result",
]
