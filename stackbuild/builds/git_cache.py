"""Local incremental build cache.

This module handles:
- Mapping an install directory to its git cache path
- Snapshotting the install directory after a component builds
- Restoring the install directory to a previous snapshot

Each install directory gets one object store under
``<cache_root>/git_cache/<install_dir>``. After a component builds, the whole
install tree is committed and tagged with the component's fingerprint. Before
building, the driver asks for a restore: if a tag with the same fingerprint
exists the tree is reset to it and the build step can be skipped.

The cache has no locking of its own. Snapshots and restores of one install
directory must not overlap; the build driver runs components sequentially.
"""

from __future__ import annotations

import logging
import shutil
from pathlib import Path
from typing import TYPE_CHECKING

from stackbuild.builds.fingerprint import fingerprint
from stackbuild.builds.object_store import GitObjectStore, ObjectStore
from stackbuild.types import CacheResult, SnapshotInfo

if TYPE_CHECKING:
    from stackbuild.software.library import Library
    from stackbuild.software.models import Component

logger = logging.getLogger(__name__)

# A directory is treated as an embedded git directory only when it holds a
# ``config`` file next to all of these entries
GIT_DIR_ENTRIES = ("HEAD", "description", "hooks", "info", "objects", "refs")

COMMIT_MESSAGE_TEMPLATE = "Backup of {tag}"


def cache_path_for(cache_root: Path, install_dir: str | Path) -> Path:
    """Return the git cache path for an install directory.

    Args:
        cache_root: Root cache directory.
        install_dir: Absolute install directory.

    Returns:
        ``<cache_root>/git_cache/<install_dir>``.
    """
    relative = str(install_dir).lstrip("/")
    return Path(cache_root) / "git_cache" / relative


def is_git_dir(path: Path) -> bool:
    """Return True if ``path`` looks like a self-contained git directory."""
    if not (path / "config").is_file():
        return False
    return all((path / entry).exists() for entry in GIT_DIR_ENTRIES)


def find_nested_stores(root: Path) -> list[Path]:
    """Find git directories embedded anywhere inside ``root``.

    Args:
        root: Directory to search.

    Returns:
        Sorted list of git directory paths, outermost first.
    """
    found: list[Path] = []
    for config in sorted(root.rglob("config")):
        candidate = config.parent
        if any(candidate.is_relative_to(parent) for parent in found):
            continue
        if is_git_dir(candidate):
            found.append(candidate)
    return found


class GitCache:
    """Snapshot/restore cache for one component's step in an install tree.

    Attributes:
        install_dir: Install directory shared by all components.
        component: Component whose build step is being cached.
        library: Library the component's fingerprint is computed against.
        cache_root: Root cache directory.
        store: Object store holding the snapshots.
    """

    def __init__(
        self,
        install_dir: str | Path,
        component: Component,
        library: Library,
        cache_root: Path,
        store: ObjectStore | None = None,
    ) -> None:
        self.install_dir = Path(install_dir)
        self.component = component
        self.library = library
        self.cache_root = Path(cache_root)
        self.cache_path = cache_path_for(self.cache_root, install_dir)
        self.store: ObjectStore = store or GitObjectStore(
            self.cache_path, self.install_dir
        )
        self._tag: str | None = None

    @property
    def tag(self) -> str:
        """Fingerprint labelling this component's snapshot."""
        if self._tag is None:
            self._tag = fingerprint(self.component, self.library)
        return self._tag

    def cache_path_exists(self) -> bool:
        return self.store.exists()

    def ensure_store(self) -> None:
        """Create the object store unless it already exists."""
        if self.store.exists():
            return
        self.cache_path.parent.mkdir(parents=True, exist_ok=True)
        self.store.init()

    def remove_nested_stores(self) -> list[Path]:
        """Delete git directories embedded in the install tree.

        Components sometimes install a checkout's git directory along with
        their files. Committing it would nest one repository inside the cache
        repository, so it is removed before every snapshot.

        Returns:
            Paths that were removed.
        """
        if not self.install_dir.is_dir():
            return []

        removed = find_nested_stores(self.install_dir)
        for path in removed:
            logger.debug("Removing embedded git directory %s", path)
            shutil.rmtree(path)
        return removed

    def snapshot(self) -> SnapshotInfo:
        """Record the install tree under this component's fingerprint.

        Re-snapshotting the same fingerprint moves the existing tag.

        Returns:
            SnapshotInfo describing the snapshot.

        Raises:
            StoreError: If the object store fails.
        """
        self.ensure_store()
        # A component may install nothing into a tree that does not exist yet
        self.install_dir.mkdir(parents=True, exist_ok=True)
        removed = self.remove_nested_stores()
        self.store.snapshot(self.tag, COMMIT_MESSAGE_TEMPLATE.format(tag=self.tag))
        logger.info("Cached %s as %s", self.component.name, self.tag)
        return SnapshotInfo(
            tag=self.tag,
            install_dir=str(self.install_dir),
            cache_path=self.cache_path,
            removed_stores=removed,
        )

    def restore(self) -> CacheResult:
        """Reset the install tree to this component's snapshot, if one exists.

        On a miss the tree is left untouched. On a hit every file is
        overwritten and files absent from the snapshot are deleted. A missing
        install directory is created before it is restored.

        Returns:
            CacheResult.HIT or CacheResult.MISS.

        Raises:
            StoreError: If the object store fails.
        """
        self.ensure_store()
        if not self.store.has(self.tag):
            logger.debug(
                "No cached snapshot for %s (%s)", self.component.name, self.tag
            )
            return CacheResult.MISS

        self.install_dir.mkdir(parents=True, exist_ok=True)
        self.store.restore(self.tag)
        logger.info("Restored %s from %s", self.component.name, self.tag)
        return CacheResult.HIT

    def __repr__(self) -> str:
        return (
            f"GitCache(install_dir={str(self.install_dir)!r}, "
            f"component={self.component.name!r})"
        )


__all__ = [
    "COMMIT_MESSAGE_TEMPLATE",
    "GIT_DIR_ENTRIES",
    "GitCache",
    "cache_path_for",
    "find_nested_stores",
    "is_git_dir",
]
