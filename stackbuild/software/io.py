"""Project definition loading.

A project file is a YAML or JSON document describing the project and the
components it is built from::

    name: chef-server
    install_dir: /opt/chef-server
    build_version: 1.0.0
    dependencies: [preparation, erchef, postgresql, chef]
    overrides:
      ruby: {version: 2.1.2}
    software:
      - name: ruby
        version: 1.9.3-p481
        dependencies: [zlib, ncurses]
        source: https://cache.ruby-lang.org/pub/ruby/ruby-1.9.3-p481.tar.gz
        checksum: 4f10b0be...

Loading validates the document, applies the project's overrides and registers
every component in the project's library, in file order.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator

from stackbuild.software.models import Component, Project, coerce_version

logger = logging.getLogger(__name__)

YAML_SUFFIXES = frozenset({".yaml", ".yml"})


class ProjectFileSchema(BaseModel):
    """Schema of a project definition file."""

    model_config = ConfigDict(extra="forbid")

    name: str
    install_dir: str
    build_version: str | None = None
    dependencies: list[str] = Field(default_factory=list)
    overrides: dict[str, dict[str, Any]] = Field(default_factory=dict)
    software: list[Component] = Field(default_factory=list)

    @field_validator("build_version", mode="before")
    @classmethod
    def validate_build_version(cls, v: Any) -> Any:
        return coerce_version(v)


def load_yaml(path: Path) -> dict[str, Any]:
    """Load a YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: If the file does not exist.
        yaml.YAMLError: If the file is not valid YAML.
        ValueError: If the document is not a mapping.
    """
    with open(path, encoding="utf-8") as f:
        data = yaml.safe_load(f)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"Expected a YAML mapping, got {type(data).__name__}")
    return data


def load_json(path: Path) -> dict[str, Any]:
    """Load a JSON file and return its contents as a dict.

    Raises:
        FileNotFoundError: If the file does not exist.
        json.JSONDecodeError: If the file is not valid JSON.
        ValueError: If the document is not an object.
    """
    with open(path, encoding="utf-8") as f:
        data = json.load(f)
    if not isinstance(data, dict):
        raise ValueError(f"Expected a JSON object, got {type(data).__name__}")
    return data


def parse_project_data(data: dict[str, Any]) -> Project:
    """Build a project and its library from parsed file data.

    Args:
        data: Dictionary containing the project definition.

    Returns:
        Project with every component registered in its library.

    Raises:
        pydantic.ValidationError: If data does not match the schema.
        DuplicateComponentError: If two components share a name.
    """
    schema = ProjectFileSchema.model_validate(data)
    project = Project(
        name=schema.name,
        install_dir=schema.install_dir,
        build_version=schema.build_version,
        dependencies=tuple(schema.dependencies),
        overrides=schema.overrides,
    )

    for component in schema.software:
        project.library.register(project.apply_overrides(component))

    for name in project.overrides:
        if name not in project.library:
            logger.warning("Override for unknown component '%s' ignored", name)

    logger.debug(
        "Loaded project %s with %d component(s)", project.name, len(project.library)
    )
    return project


def load_project(path: Path) -> Project:
    """Load a project definition from a YAML or JSON file.

    Args:
        path: Path to the project file.

    Returns:
        Loaded Project.
    """
    if path.suffix.lower() in YAML_SUFFIXES:
        data = load_yaml(path)
    elif path.suffix.lower() == ".json":
        data = load_json(path)
    else:
        raise ValueError(f"Unsupported project file format: {path.suffix}")
    return parse_project_data(data)


__all__ = [
    "ProjectFileSchema",
    "load_json",
    "load_project",
    "load_yaml",
    "parse_project_data",
]
