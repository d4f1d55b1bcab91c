"""Remote artifact cache.

This module handles:
- Remote cache key computation (``<name>-<version>-<checksum>``)
- Partitioning components into cached and missing
- Mirroring upstream sources of missing components into the remote store
- Uploading already-downloaded sources (populate)
- Downloading cached sources from the remote store

The remote cache is orthogonal to the local git cache: it keeps source
artifacts by identity so that builds on other machines do not depend on
upstream download sites. Transfers of different components are independent;
they run concurrently, and a failure of one never stops the others.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Sequence
from concurrent.futures import ThreadPoolExecutor, as_completed
from pathlib import Path
from typing import TYPE_CHECKING, Any

import httpx

from stackbuild.builds.blob_store import BlobStore, S3BlobStore
from stackbuild.builds.fetch import (
    DOWNLOAD_TIMEOUT,
    compute_file_sha256,
    download_file,
    verify_bytes,
)
from stackbuild.errors import (
    ConfigurationError,
    InsufficientSpecification,
    PartialFetchFailure,
    TransferFailure,
)

if TYPE_CHECKING:
    from stackbuild.config import Settings

logger = logging.getLogger(__name__)

KEY_FIELDS = ("name", "version", "checksum")


def cacheable(components: Iterable[Any]) -> list[Any]:
    """Select the components that download a source artifact."""
    return [c for c in components if getattr(c, "source", None)]


def key_for(component: Any) -> str:
    """Compute the remote cache key of a component.

    Args:
        component: Object with ``name``, ``version`` and ``checksum``.

    Returns:
        ``<name>-<version>-<checksum>``.

    Raises:
        InsufficientSpecification: If any of the three fields is missing.
    """
    for field_name in KEY_FIELDS:
        if not getattr(component, field_name, None):
            raise InsufficientSpecification(field_name, component)
    return f"{component.name}-{component.version}-{component.checksum}"


class RemoteCache:
    """Shared cache of component source artifacts.

    Attributes:
        store: Blob store holding the artifacts.
        cache_dir: Local directory for downloaded artifacts.
        max_workers: Maximum concurrent transfers.
        download_timeout: Timeout for upstream downloads (seconds).
    """

    def __init__(
        self,
        store: BlobStore,
        cache_dir: Path,
        client: httpx.Client | None = None,
        max_workers: int = 4,
        download_timeout: float = DOWNLOAD_TIMEOUT,
        owns_store: bool = False,
    ) -> None:
        self.store = store
        self._owns_store = owns_store
        self.cache_dir = Path(cache_dir)
        self.max_workers = max_workers
        self.download_timeout = download_timeout
        self._owns_client = client is None
        self.client = client or httpx.Client(follow_redirects=True)

    key_for = staticmethod(key_for)

    def keys(self) -> list[str]:
        """Return every key in the remote store."""
        return self.store.list()

    def list(self, components: Iterable[Any]) -> list[Any]:
        """Return the components whose artifact is in the remote store."""
        return self._partition(components)[0]

    def missing(self, components: Iterable[Any]) -> list[Any]:
        """Return the components whose artifact is not in the remote store."""
        return self._partition(components)[1]

    def _partition(self, components: Iterable[Any]) -> tuple[list[Any], list[Any]]:
        # Compute every key first: an under-specified component is fatal
        keyed = [(component, key_for(component)) for component in components]
        remote = set(self.keys())
        cached = [c for c, key in keyed if key in remote]
        missing = [c for c, key in keyed if key not in remote]
        return cached, missing

    def local_path(self, component: Any) -> Path:
        """Return where a component's artifact is kept locally."""
        return self.cache_dir / key_for(component)

    def has_local(self, component: Any) -> bool:
        """Return True if a verified local copy of the artifact exists."""
        path = self.local_path(component)
        return (
            path.is_file()
            and compute_file_sha256(path) == str(component.checksum).lower()
        )

    def fetch(self, component: Any) -> str:
        """Mirror a component's upstream source into the remote store.

        The source is downloaded (unless a verified local copy exists),
        checked against the declared checksum and uploaded under its key.

        Returns:
            The remote key.

        Raises:
            InsufficientSpecification: If the component has no source URL.
            DownloadError: If the upstream download fails.
            VerificationError: If the checksum does not match.
            BlobStoreError: If the upload fails.
        """
        key = key_for(component)
        if not getattr(component, "source", None):
            raise InsufficientSpecification("source", component)

        path = self.local_path(component)
        if not self.has_local(component):
            download_file(
                self.client,
                component.source,
                path,
                expected_checksum=component.checksum,
                timeout=self.download_timeout,
            )
        self.store.put(key, path.read_bytes())
        return key

    def fetch_missing(self, components: Iterable[Any]) -> list[str]:
        """Mirror every component missing from the remote store.

        Returns:
            Keys uploaded, in input order.

        Raises:
            PartialFetchFailure: After all transfers finished, if any failed.
        """
        missing = self.missing(components)
        logger.info("Fetching %d missing artifact(s)", len(missing))
        return self._run_all("fetch", missing, self.fetch)

    def upload(self, component: Any) -> str:
        """Upload the local copy of a component's artifact.

        Raises:
            VerificationError: If the local copy does not match the checksum.
            BlobStoreError: If the upload fails.
        """
        key = key_for(component)
        data = self.local_path(component).read_bytes()
        verify_bytes(data, component.checksum, key)
        self.store.put(key, data)
        return key

    def populate(self, components: Iterable[Any]) -> list[str]:
        """Upload local artifacts that are not yet in the remote store.

        Components without a local copy are skipped.

        Returns:
            Keys uploaded, in input order.

        Raises:
            PartialFetchFailure: After all uploads finished, if any failed.
        """
        pending = []
        for component in self.missing(components):
            if self.local_path(component).is_file():
                pending.append(component)
            else:
                logger.warning(
                    "No local artifact for %s; not uploading", key_for(component)
                )
        logger.info("Populating remote cache with %d artifact(s)", len(pending))
        return self._run_all("populate", pending, self.upload)

    def download(self, component: Any, dest_dir: Path | None = None) -> Path:
        """Download a component's artifact from the remote store.

        Args:
            component: Component to download.
            dest_dir: Directory to write into (defaults to ``cache_dir``).

        Returns:
            Path of the verified local file.

        Raises:
            NotInCacheError: If the key is not in the remote store.
            VerificationError: If the blob does not match the checksum.
        """
        key = key_for(component)
        data = self.store.get(key)
        verify_bytes(data, component.checksum, key)

        path = (dest_dir or self.cache_dir) / key
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)
        logger.info("Downloaded %s from remote cache", key)
        return path

    def _run_all(
        self,
        operation: str,
        components: Sequence[Any],
        action: Callable[[Any], str],
    ) -> list[str]:
        """Run ``action`` for every component concurrently, collecting failures."""
        if not components:
            return []

        keys = {id(c): key_for(c) for c in components}
        succeeded: set[str] = set()
        failures: list[TransferFailure] = []

        with ThreadPoolExecutor(max_workers=self.max_workers) as pool:
            futures = {pool.submit(action, c): keys[id(c)] for c in components}
            for future in as_completed(futures):
                key = futures[future]
                try:
                    future.result()
                except Exception as e:
                    logger.error("Failed to %s %s: %s", operation, key, e)
                    failures.append(TransferFailure(key=key, error=e))
                else:
                    succeeded.add(key)

        ordered = [keys[id(c)] for c in components if keys[id(c)] in succeeded]
        if failures:
            order = {key: i for i, key in enumerate(keys[id(c)] for c in components)}
            failures.sort(key=lambda f: order[f.key])
            raise PartialFetchFailure(failures, succeeded=ordered)
        return ordered

    def close(self) -> None:
        if self._owns_client:
            self.client.close()
        if self._owns_store and isinstance(self.store, S3BlobStore):
            self.store.close()

    def __enter__(self) -> RemoteCache:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


def create_remote_cache(settings: Settings) -> RemoteCache:
    """Create a RemoteCache from settings.

    Raises:
        ConfigurationError: If no remote cache URL is configured.
    """
    if not settings.remote_cache_url:
        raise ConfigurationError(
            "No remote cache configured (set STACKBUILD_REMOTE_CACHE_URL)",
            code="remote_cache_not_configured",
        )
    store = S3BlobStore(settings.remote_cache_url, timeout=settings.download_timeout)
    return RemoteCache(
        store,
        cache_dir=settings.download_dir,
        max_workers=settings.max_concurrent_fetches,
        download_timeout=settings.download_timeout,
        owns_store=True,
    )


__all__ = [
    "KEY_FIELDS",
    "RemoteCache",
    "cacheable",
    "create_remote_cache",
    "key_for",
]
