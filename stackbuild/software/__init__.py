"""Component definitions and the project library.

This module handles:
- Component and project models
- The per-project library (dependency graph)
- Loading project definitions from YAML/JSON
"""

from stackbuild.software.library import Library
from stackbuild.software.models import Component, Project

__all__ = ["Component", "Library", "Project"]
