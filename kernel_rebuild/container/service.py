"""Containerized rebuild service.

This module provides the host-side wrapper around the in-container build:

    DETECT_RUNTIME -> STAGE_BUILD_CONTEXT -> RENDER_DOCKERFILE -> BUILD_IMAGE
    -> RUN_CONTAINER -> COLLECT_ARTIFACTS -> REPAIR_MODULE_TREE -> DONE

The ephemeral context directory doubles as the container's result volume
and is removed when the rebuild ends, whichever step failed.
"""

from __future__ import annotations

import logging
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING

from kernel_rebuild.builds.artifacts import (
    prune_module_symlinks,
    replace_module_tree,
    stage_file,
)
from kernel_rebuild.container.context import (
    caller_ids,
    container_environment,
    find_file,
    render_dockerfile,
    search_dirs,
    stage_build_context,
    write_dockerfile,
)
from kernel_rebuild.container.runtime import (
    ContainerRuntime,
    build_image,
    detect_container_runtime,
    run_container,
)
from kernel_rebuild.errors import StageError
from kernel_rebuild.source.patches import discover_patches
from kernel_rebuild.types import ArtifactSet, RebuildStage

if TYPE_CHECKING:
    from kernel_rebuild.config import Settings
    from kernel_rebuild.profiles.schema import KernelProfileSchema

logger = logging.getLogger(__name__)


@dataclass
class RebuildResult:
    """Result of a containerized rebuild.

    Attributes:
        runtime: Container runtime used.
        artifacts: Host paths of the installed boot image and module tree.
        stages: Stages completed, in order.
        pruned_links: Container-only symlinks removed from the module tree.
    """

    runtime: ContainerRuntime
    artifacts: ArtifactSet
    stages: list[RebuildStage] = field(default_factory=list)
    pruned_links: list[str] = field(default_factory=list)


class _StageTracker:
    """Logs and records transitions through the rebuild stages."""

    def __init__(self) -> None:
        self.completed: list[RebuildStage] = []

    def enter(self, stage: RebuildStage) -> None:
        logger.info("Rebuild stage: %s", stage.value)
        self.completed.append(stage)


def rebuild_kernel(
    settings: Settings,
    profile: KernelProfileSchema | None = None,
    container_executable: str | None = None,
) -> RebuildResult:
    """Build the kernel in a container and install the results on the host.

    Args:
        settings: Effective settings.
        profile: Optional build profile; its patches are shipped into the
            container and its file (settings.profile_path) is copied along.
        container_executable: Runtime override; falls back to
            settings.container_executable, then detection.

    Returns:
        RebuildResult with the installed artifact paths.

    Raises:
        KernelRebuildError: On the first failing stage.
    """
    tracker = _StageTracker()
    dirs = search_dirs(settings.fallback_dir)

    tracker.enter(RebuildStage.DETECT_RUNTIME)
    runtime = detect_container_runtime(
        settings.container_choices,
        override=container_executable or settings.container_executable,
    )
    logger.info("Using %s (%s)", runtime.name, runtime.executable)

    # Resolve everything on the host before doing any work
    if profile is not None:
        patch_paths = [find_file(name, dirs) for name in profile.patches or []]
    else:
        patch_paths = discover_patches(Path.cwd(), settings.patch_glob)
    kernel_path = find_file(settings.kernel_image_name, dirs)
    lib_path = find_file(settings.lib_dir_name, dirs)

    settings.tmp_root.mkdir(parents=True, exist_ok=True)
    with tempfile.TemporaryDirectory(
        dir=settings.tmp_root, prefix="kernel-rebuild-"
    ) as tmp:
        tmp_dir = Path(tmp)

        tracker.enter(RebuildStage.STAGE_BUILD_CONTEXT)
        profile_path = settings.profile_path if profile is not None else None
        context = stage_build_context(tmp_dir, patch_paths, profile_path)

        tracker.enter(RebuildStage.RENDER_DOCKERFILE)
        uid, gid = caller_ids()
        write_dockerfile(
            context,
            render_dockerfile(
                context.patches,
                uid=uid,
                gid=gid,
                base_image=settings.container_base_image,
                env=container_environment(settings, context.profile),
                profile=context.profile,
            ),
        )

        tracker.enter(RebuildStage.BUILD_IMAGE)
        logger.info("Building %s container for kernel compilation", runtime.name)
        build_image(runtime, tmp_dir, settings.container_tag)

        tracker.enter(RebuildStage.RUN_CONTAINER)
        logger.info("Compiling kernel")
        run_container(runtime, settings.container_tag, tmp_dir)

        tracker.enter(RebuildStage.COLLECT_ARTIFACTS)
        built_image = tmp_dir / settings.kernel_image_name
        if not built_image.is_file():
            raise StageError(
                f"Container did not produce {settings.kernel_image_name}",
                code="artifact_missing",
            )
        stage_file(kernel_path, built_image)

        tracker.enter(RebuildStage.REPAIR_MODULE_TREE)
        built_modules = tmp_dir / "lib" / "modules"
        pruned: list[str] = []
        modules_dir: Path | None = None
        if built_modules.is_dir():
            pruned = [
                str(p.relative_to(built_modules))
                for p in prune_module_symlinks(built_modules)
            ]
            modules_dir = replace_module_tree(built_modules, lib_path)
        else:
            logger.warning("No modules produced; leaving %s untouched", lib_path)

    tracker.enter(RebuildStage.DONE)
    return RebuildResult(
        runtime=runtime,
        artifacts=ArtifactSet(boot_image=kernel_path, modules_dir=modules_dir),
        stages=tracker.completed,
        pruned_links=pruned,
    )


__all__ = ["RebuildResult", "rebuild_kernel"]
