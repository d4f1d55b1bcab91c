"""Build ordering and caching.

This module handles:
- Build order resolution over the component graph
- Component fingerprint computation
- Local incremental cache (git snapshots of the install directory)
- Remote artifact cache (source artifacts in a shared bucket)
"""

# Access submodules directly: stackbuild.builds.resolver, etc.
