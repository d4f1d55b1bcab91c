"""stackbuild - build ordering and caching for full-stack software distributions.

This package resolves the build order of the components that make up a
distribution and caches their installed trees, both locally (per install
directory) and remotely (source artifacts shared between machines).
"""

__version__ = "0.1.0"
__all__ = ["__version__"]
