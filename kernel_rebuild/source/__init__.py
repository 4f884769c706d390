"""Kernel source acquisition module.

This module handles:
- Kernel tarball URL composition and download
- Extraction to a validated source directory
- Patch discovery and fail-fast application
"""

from kernel_rebuild.source.fetch import (
    build_kernel_url,
    extract_source,
    fetch_kernel_source,
)
from kernel_rebuild.source.patches import (
    apply_patches,
    discover_patches,
    resolve_patches,
)

__all__ = [
    "apply_patches",
    "build_kernel_url",
    "discover_patches",
    "extract_source",
    "fetch_kernel_source",
    "resolve_patches",
]
