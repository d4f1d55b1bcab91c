"""In-memory stores and builders shared by the tests."""

import shutil
from pathlib import Path

import pytest

from stackbuild.builds.blob_store import BlobStoreError, NotInCacheError
from stackbuild.software.models import Component

requires_git = pytest.mark.skipif(
    shutil.which("git") is None, reason="git executable not available"
)


class MemoryObjectStore:
    """Object store keeping snapshots of a directory tree in memory."""

    def __init__(self, work_tree: Path) -> None:
        self.work_tree = work_tree
        self.initialized = False
        self.init_calls = 0
        self.snapshots: dict[str, dict[str, bytes]] = {}
        self.messages: list[str] = []
        self.restored: list[str] = []

    def exists(self) -> bool:
        return self.initialized

    def init(self) -> None:
        self.initialized = True
        self.init_calls += 1

    def snapshot(self, label: str, message: str) -> None:
        tree: dict[str, bytes] = {}
        if self.work_tree.exists():
            for path in sorted(self.work_tree.rglob("*")):
                if path.is_file():
                    relative = path.relative_to(self.work_tree).as_posix()
                    tree[relative] = path.read_bytes()
        self.snapshots[label] = tree
        self.messages.append(message)

    def restore(self, label: str) -> None:
        if self.work_tree.exists():
            shutil.rmtree(self.work_tree)
        self.work_tree.mkdir(parents=True)
        for relative, content in self.snapshots[label].items():
            path = self.work_tree / relative
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(content)
        self.restored.append(label)

    def has(self, label: str) -> bool:
        return label in self.snapshots


class MemoryBlobStore:
    """Blob store backed by a dict; keys in ``fail_on`` raise on put."""

    def __init__(self, blobs: dict[str, bytes] | None = None) -> None:
        self.blobs = dict(blobs or {})
        self.fail_on: set[str] = set()
        self.puts: list[str] = []

    def list(self) -> list[str]:
        return sorted(self.blobs)

    def get(self, key: str) -> bytes:
        try:
            return self.blobs[key]
        except KeyError:
            raise NotInCacheError(key) from None

    def put(self, key: str, blob: bytes) -> None:
        if key in self.fail_on:
            raise BlobStoreError(f"upload of {key} rejected", code="http_error")
        self.blobs[key] = blob
        self.puts.append(key)


def tree_contents(root: Path) -> dict[str, bytes]:
    """Map every file under root to its content."""
    return {
        path.relative_to(root).as_posix(): path.read_bytes()
        for path in sorted(root.rglob("*"))
        if path.is_file()
    }


def make_component(
    name: str,
    version: str = "1.0.0",
    deps: list[str] | None = None,
    **kwargs: object,
) -> Component:
    """Create a component for tests."""
    return Component(
        name=name, version=version, dependencies=tuple(deps or ()), **kwargs
    )
