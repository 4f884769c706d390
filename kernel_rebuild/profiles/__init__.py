"""Build profile module.

This module handles:
- Profile schema validation (Pydantic)
- Loading/exporting profiles from YAML/JSON files
- Resolving the effective configuration overlay
"""

from kernel_rebuild.profiles.io import export_profile, load_profile, resolve_overlay
from kernel_rebuild.profiles.schema import KernelProfileSchema

__all__ = [
    "KernelProfileSchema",
    "export_profile",
    "load_profile",
    "resolve_overlay",
]
