"""Kernel configuration module.

This module handles:
- The configuration overlay (ordered CONFIG_* overrides)
- The built-in default overlay
- Appending the overlay to .config and verifying the normalized result
"""

from kernel_rebuild.kconfig.defaults import default_overlay
from kernel_rebuild.kconfig.overlay import (
    ConfigOverlay,
    apply_overlay,
    parse_kconfig,
    verify_overlay,
)

__all__ = [
    "ConfigOverlay",
    "apply_overlay",
    "default_overlay",
    "parse_kconfig",
    "verify_overlay",
]
