"""Container orchestration module.

This module handles:
- Detecting the container runtime (podman or docker)
- Staging the ephemeral build context and rendering its Dockerfile
- Building and running the kernel build image
- Installing the results on the host
"""

from kernel_rebuild.container.runtime import (
    ContainerRuntime,
    detect_container_runtime,
)
from kernel_rebuild.container.service import RebuildResult, rebuild_kernel

__all__ = [
    "ContainerRuntime",
    "RebuildResult",
    "detect_container_runtime",
    "rebuild_kernel",
]
