"""Shared type definitions for stackbuild.

This module contains enums and dataclasses shared across subpackages
to avoid circular imports.
"""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path


class CacheResult(str, Enum):
    """Outcome of a cache lookup."""

    HIT = "hit"
    MISS = "miss"


class LogLevel(str, Enum):
    """Log levels accepted on the command line."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


@dataclass
class SnapshotInfo:
    """Information about a snapshot written to the local cache."""

    tag: str
    install_dir: str
    cache_path: Path
    removed_stores: list[Path] = field(default_factory=list)


__all__ = ["CacheResult", "LogLevel", "SnapshotInfo"]
