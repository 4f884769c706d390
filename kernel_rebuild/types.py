"""Shared type definitions for kernel_rebuild.

This module contains dataclasses and enums shared across subpackages to
avoid circular imports.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path


class RebuildStage(str, Enum):
    """Stages of the containerized rebuild, in execution order."""

    DETECT_RUNTIME = "detect_runtime"
    STAGE_BUILD_CONTEXT = "stage_build_context"
    RENDER_DOCKERFILE = "render_dockerfile"
    BUILD_IMAGE = "build_image"
    RUN_CONTAINER = "run_container"
    COLLECT_ARTIFACTS = "collect_artifacts"
    REPAIR_MODULE_TREE = "repair_module_tree"
    DONE = "done"


class BuildStep(str, Enum):
    """Steps of the in-container kernel build, in execution order."""

    FETCH = "fetch"
    EXTRACT = "extract"
    PATCH = "patch"
    CONFIGURE = "configure"
    COMPILE = "compile"
    STAGE = "stage"


def format_kbuild_timestamp(moment: datetime) -> str:
    """Format a moment the way `date` prints it in the UTC locale.

    Args:
        moment: Timestamp to format (converted to UTC).

    Returns:
        String like 'Mon Jan  2 15:04:05 UTC 2006'.
    """
    utc = moment.astimezone(timezone.utc)
    return f"{utc:%a %b} {utc.day:2d} {utc:%H:%M:%S} UTC {utc:%Y}"


@dataclass
class BuildIdentity:
    """Cosmetic build metadata embedded into the kernel image."""

    user: str
    host: str
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_env(self) -> dict[str, str]:
        """Return the kbuild environment variables for this identity."""
        return {
            "KBUILD_BUILD_USER": self.user,
            "KBUILD_BUILD_HOST": self.host,
            "KBUILD_BUILD_TIMESTAMP": format_kbuild_timestamp(self.timestamp),
        }


@dataclass
class ArtifactSet:
    """Artifacts produced by one build.

    Attributes:
        boot_image: Path of the staged boot image.
        modules_dir: Path of the lib/modules tree, if modules were built.
    """

    boot_image: Path
    modules_dir: Path | None = None


@dataclass
class OverlayMismatch:
    """An overlay entry the config normalizer did not keep."""

    option: str
    requested: str
    actual: str | None


__all__ = [
    "ArtifactSet",
    "BuildIdentity",
    "BuildStep",
    "OverlayMismatch",
    "RebuildStage",
    "format_kbuild_timestamp",
]
