"""Component and project models.

A ``Component`` (historically called a "software definition") is one named,
versioned build recipe that installs files into the project's install
directory. A ``Project`` names that install directory, lists its top-level
dependencies and owns the ``Library`` of registered components.

Both are pydantic models: components are frozen once loaded, so that the
fingerprint computed for them cannot drift during a build.
"""

from __future__ import annotations

import re
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr, field_validator

from stackbuild.software.library import Library

COMPONENT_NAME_PATTERN = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_.+\-]*$")

# Attributes a project may override on the components it pulls in
OVERRIDABLE_FIELDS = frozenset({"version", "source", "checksum"})


def coerce_version(v: Any) -> Any:
    """YAML happily turns ``2.7`` into a float; versions are always strings."""
    if isinstance(v, bool):
        raise ValueError("version must be a string")
    if isinstance(v, (int, float)):
        return str(v)
    return v


class Component(BaseModel):
    """A single build recipe registered for a project.

    Attributes:
        name: Unique name within the project.
        version: Declared version (semantic, revision hash or symbolic).
        dependencies: Names of components that must build first, in order.
        source: Upstream URL of the source artifact.
        checksum: SHA-256 hex digest of the source artifact.
        config: Free-form build configuration participating in fingerprints.
        overrides: Project overrides applied when the component was loaded.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    name: str = Field(min_length=1, description="Unique component name")
    version: str | None = Field(default=None, description="Declared version")
    dependencies: tuple[str, ...] = Field(
        default=(), description="Dependency names, in declared order"
    )
    source: str | None = Field(default=None, description="Upstream source URL")
    checksum: str | None = Field(
        default=None, description="SHA-256 of the source artifact"
    )
    config: dict[str, Any] = Field(
        default_factory=dict, description="Build configuration attributes"
    )
    overrides: dict[str, Any] = Field(
        default_factory=dict, description="Project overrides in effect"
    )

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        """Validate name is usable as a git tag and remote key prefix."""
        if not COMPONENT_NAME_PATTERN.match(v):
            raise ValueError(
                f"name must contain only letters, digits and '_.+-', got '{v}'"
            )
        return v

    @field_validator("version", mode="before")
    @classmethod
    def validate_version(cls, v: Any) -> Any:
        """Coerce numeric versions to strings."""
        return coerce_version(v)

    @field_validator("checksum")
    @classmethod
    def validate_checksum(cls, v: str | None) -> str | None:
        """Normalize checksum to lowercase."""
        if v is None:
            return v
        return v.strip().lower()

    def __repr__(self) -> str:
        return f"Component(name={self.name!r}, version={self.version!r})"


class Project(BaseModel):
    """A distribution built from a set of components.

    Attributes:
        name: Project name.
        install_dir: Absolute path every component installs into.
        build_version: Version of the finished distribution.
        dependencies: Top-level component names, in declared order.
        overrides: Component name -> attributes overriding its definition.
    """

    model_config = ConfigDict(extra="forbid")

    name: str = Field(min_length=1, description="Project name")
    install_dir: str = Field(description="Absolute install path")
    build_version: str | None = Field(default=None, description="Build version")
    dependencies: tuple[str, ...] = Field(
        default=(), description="Top-level dependency names"
    )
    overrides: dict[str, dict[str, Any]] = Field(
        default_factory=dict, description="Per-component overrides"
    )

    _library: Library = PrivateAttr()

    def model_post_init(self, __context: Any) -> None:
        self._library = Library(self)

    @field_validator("install_dir")
    @classmethod
    def validate_install_dir(cls, v: str) -> str:
        """Validate install_dir is absolute."""
        if not v.startswith("/"):
            raise ValueError("install_dir must be an absolute path")
        return v.rstrip("/") or "/"

    @field_validator("build_version", mode="before")
    @classmethod
    def validate_build_version(cls, v: Any) -> Any:
        """Coerce numeric versions to strings."""
        return coerce_version(v)

    @field_validator("overrides")
    @classmethod
    def validate_overrides(
        cls, v: dict[str, dict[str, Any]]
    ) -> dict[str, dict[str, Any]]:
        """Only a fixed set of attributes may be overridden."""
        overrides: dict[str, dict[str, Any]] = {}
        for name, attrs in v.items():
            unknown = set(attrs) - OVERRIDABLE_FIELDS
            if unknown:
                raise ValueError(
                    f"override for '{name}' sets unsupported attributes: "
                    f"{sorted(unknown)} (allowed: {sorted(OVERRIDABLE_FIELDS)})"
                )
            overrides[name] = {
                key: coerce_version(value) if key == "version" else value
                for key, value in attrs.items()
            }
        return overrides

    @property
    def library(self) -> Library:
        """The library of components registered for this project."""
        return self._library

    def apply_overrides(self, component: Component) -> Component:
        """Return the component with this project's overrides applied.

        Components without an override are returned unchanged. The result is
        validated again, so overridden values are normalized like loaded ones.
        """
        attrs = self.overrides.get(component.name)
        if not attrs:
            return component
        data = component.model_dump()
        data.update(attrs, overrides=dict(attrs))
        return Component.model_validate(data)


__all__ = [
    "COMPONENT_NAME_PATTERN",
    "OVERRIDABLE_FIELDS",
    "Component",
    "Project",
    "coerce_version",
]
