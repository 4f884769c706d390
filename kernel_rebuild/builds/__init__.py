"""Kernel build module.

This module handles:
- Running kbuild targets (defconfig, olddefconfig, image, modules)
- Staging the boot image and module tree
- The in-container build pipeline
"""

from kernel_rebuild.builds.service import KernelBuildResult, build_kernel

__all__ = ["KernelBuildResult", "build_kernel"]

# Access submodules via kernel_rebuild.builds.runner, .artifacts
