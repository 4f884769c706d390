"""Kernel Rebuild - containerized Linux kernel builds.

This package fetches kernel sources, applies a fixed patch set, merges a
configuration overlay onto the baseline defconfig, compiles the boot image
and modules, and copies the results back into a target filesystem tree.
"""

__version__ = "0.1.0"
__all__ = ["__version__"]
