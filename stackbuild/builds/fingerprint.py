"""Component fingerprint computation.

This module handles:
- Canonical input snapshot creation for a component and its library
- Deterministic hash computation over the normalized snapshot

A fingerprint names the local cache entry of a component. It covers the
component's own definition and the name, version and overrides of every
other registered component, not only its dependencies: a shared toolchain or
a sibling override can change what a component installs, and a fingerprint
that missed it would restore a stale tree.
"""

from __future__ import annotations

import hashlib
import json
from dataclasses import asdict, dataclass, field
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from stackbuild.software.library import Library
    from stackbuild.software.models import Component

# Schema version for fingerprint format; bump when the snapshot format changes
FINGERPRINT_SCHEMA_VERSION = "1"


@dataclass
class FingerprintInputs:
    """Canonical representation of everything a fingerprint covers.

    Attributes:
        schema_version: Version of fingerprint schema.
        component: Normalized snapshot of the component itself.
        library: Name/version/overrides of every other component, by name.
    """

    schema_version: str = FINGERPRINT_SCHEMA_VERSION
    component: dict[str, Any] = field(default_factory=dict)
    library: list[dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return asdict(self)


def normalize_component(component: Component) -> dict[str, Any]:
    """Create the normalized snapshot of a component's own definition."""
    return {
        "name": component.name,
        "version": component.version,
        "dependencies": list(component.dependencies),
        "source": component.source,
        "checksum": component.checksum,
        "config": component.config,
        "overrides": component.overrides,
    }


def normalize_sibling(component: Component) -> dict[str, Any]:
    """Create the snapshot of another component as seen from the graph."""
    return {
        "name": component.name,
        "version": component.version,
        "overrides": component.overrides,
    }


def create_fingerprint_inputs(
    component: Component,
    library: Library,
) -> FingerprintInputs:
    """Collect the fingerprint inputs for a component.

    Siblings are sorted by name so registration order does not matter.
    """
    siblings = sorted(
        (c for c in library.components if c.name != component.name),
        key=lambda c: c.name,
    )
    return FingerprintInputs(
        schema_version=FINGERPRINT_SCHEMA_VERSION,
        component=normalize_component(component),
        library=[normalize_sibling(c) for c in siblings],
    )


def compute_digest(inputs: FingerprintInputs) -> str:
    """Compute the SHA-256 hex digest of the canonical JSON of the inputs."""
    # Serialize to canonical JSON (sorted keys, no extra whitespace)
    canonical_json = json.dumps(
        inputs.to_dict(),
        sort_keys=True,
        separators=(",", ":"),
        default=str,
    )
    return hashlib.sha256(canonical_json.encode("utf-8")).hexdigest()


def fingerprint(component: Component, library: Library) -> str:
    """Compute the fingerprint of a component within its library.

    Args:
        component: Component to fingerprint.
        library: Library the component is registered in.

    Returns:
        ``<name>-<sha256 hex>``.
    """
    digest = compute_digest(create_fingerprint_inputs(component, library))
    return f"{component.name}-{digest}"


__all__ = [
    "FINGERPRINT_SCHEMA_VERSION",
    "FingerprintInputs",
    "compute_digest",
    "create_fingerprint_inputs",
    "fingerprint",
    "normalize_component",
    "normalize_sibling",
]
