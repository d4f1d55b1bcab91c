"""Versioned object stores backing the local incremental cache.

This module handles:
- The ``ObjectStore`` interface the local cache is written against
- ``GitObjectStore``, which keeps snapshots of an install directory in a
  separate git directory using labels (tags) as cache entries

The git directory lives outside the install directory, so the install tree
never contains cache metadata of its own.
"""

from __future__ import annotations

import logging
import shlex
import subprocess
from pathlib import Path
from typing import Protocol, runtime_checkable

from stackbuild.errors import StoreError

logger = logging.getLogger(__name__)

# Identity used for snapshot commits; git refuses to commit without one
COMMITTER_NAME = "stackbuild"
COMMITTER_EMAIL = "stackbuild@localhost"


@runtime_checkable
class ObjectStore(Protocol):
    """A store of named, immutable snapshots of one directory tree."""

    def exists(self) -> bool:
        """Return True if the store has been initialized."""
        ...

    def init(self) -> None:
        """Initialize an empty store."""
        ...

    def snapshot(self, label: str, message: str) -> None:
        """Record the current tree and point ``label`` at it."""
        ...

    def restore(self, label: str) -> None:
        """Make the tree exactly match the snapshot named ``label``."""
        ...

    def has(self, label: str) -> bool:
        """Return True if a snapshot named ``label`` exists."""
        ...


class GitObjectStore:
    """Object store using a detached git directory.

    Attributes:
        git_dir: Path of the git directory holding the snapshots.
        work_tree: Directory being snapshotted.
        git: Name or path of the git executable.
    """

    def __init__(self, git_dir: Path, work_tree: Path, git: str = "git") -> None:
        self.git_dir = Path(git_dir)
        self.work_tree = Path(work_tree)
        self.git = git

    def _command(self, args: list[str], with_work_tree: bool = True) -> list[str]:
        cmd = [
            self.git,
            "-c",
            f"user.name={COMMITTER_NAME}",
            "-c",
            f"user.email={COMMITTER_EMAIL}",
            "-c",
            "commit.gpgsign=false",
            "-c",
            "tag.gpgsign=false",
            f"--git-dir={self.git_dir}",
        ]
        if with_work_tree:
            cmd.append(f"--work-tree={self.work_tree}")
        cmd.extend(args)
        return cmd

    def _run(
        self,
        operation: str,
        args: list[str],
        with_work_tree: bool = True,
    ) -> subprocess.CompletedProcess[str]:
        """Run a git command, raising StoreError on any failure.

        Args:
            operation: Logical operation name, used in errors.
            args: git subcommand and arguments.
            with_work_tree: Pass ``--work-tree`` to git.

        Returns:
            The completed process.

        Raises:
            StoreError: If git cannot be started or exits non-zero.
        """
        cmd = self._command(args, with_work_tree=with_work_tree)
        cmd_str = shlex.join(cmd)
        logger.debug("Executing: %s", cmd_str)

        try:
            return subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                check=True,
            )
        except subprocess.CalledProcessError as e:
            raise StoreError(
                f"git {operation} failed for {self.work_tree} "
                f"(exit code {e.returncode}): {e.stderr.strip()}",
                operation=operation,
                command=cmd_str,
                exit_code=e.returncode,
                stderr=e.stderr,
            ) from e
        except OSError as e:
            raise StoreError(
                f"Failed to run git for {operation}: {e}",
                operation=operation,
                command=cmd_str,
                code="execution_error",
            ) from e

    def exists(self) -> bool:
        return self.git_dir.is_dir()

    def init(self) -> None:
        self._run("init", ["init", "-q"], with_work_tree=False)
        logger.info("Initialized git cache at %s", self.git_dir)

    def snapshot(self, label: str, message: str) -> None:
        self._run("snapshot", ["add", "-A", "-f"])
        self._run("snapshot", ["commit", "-q", "--allow-empty", "-m", message])
        self._run("snapshot", ["tag", "-f", label])

    def restore(self, label: str) -> None:
        self._run("restore", ["checkout", "-q", "-f", label])
        # Drop files the snapshot does not know about, ignored ones included
        self._run("restore", ["clean", "-q", "-ffdx"])

    def has(self, label: str) -> bool:
        result = self._run("lookup", ["tag", "-l", label])
        return label in result.stdout.splitlines()

    def __repr__(self) -> str:
        return f"GitObjectStore(git_dir={str(self.git_dir)!r})"


__all__ = [
    "COMMITTER_EMAIL",
    "COMMITTER_NAME",
    "GitObjectStore",
    "ObjectStore",
]
