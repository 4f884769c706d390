"""Kernel build service.

This module provides the in-container build pipeline:
fetch -> extract -> patch -> configure -> compile -> stage.

Each step raises a KernelRebuildError subclass on failure; nothing is
retried and later steps do not run.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING

import httpx

from kernel_rebuild.builds.artifacts import compute_file_hash, stage_file
from kernel_rebuild.builds.runner import (
    compile_kernel,
    install_modules,
    materialize_config,
)
from kernel_rebuild.profiles.io import resolve_overlay
from kernel_rebuild.source.fetch import (
    build_kernel_url,
    extract_source,
    fetch_kernel_source,
    sha256sums_url_for,
)
from kernel_rebuild.source.patches import (
    apply_patches,
    discover_patches,
    resolve_patches,
)
from kernel_rebuild.types import ArtifactSet, BuildIdentity, BuildStep, OverlayMismatch

if TYPE_CHECKING:
    from kernel_rebuild.config import Settings
    from kernel_rebuild.kconfig.overlay import ConfigOverlay
    from kernel_rebuild.profiles.schema import KernelProfileSchema

logger = logging.getLogger(__name__)

# Set in the build container image
IN_CONTAINER_ENV = "KREBUILD_IN_CONTAINER"


@dataclass
class KernelBuildResult:
    """Result of an in-container kernel build.

    Attributes:
        source_dir: Extracted and patched source tree.
        artifacts: Staged boot image and module tree.
        patches_applied: Patches applied, in order.
        overlay_mismatches: Overlay entries changed by olddefconfig.
        boot_image_sha256: Digest of the staged boot image.
        source_sha256: Digest of the downloaded source archive.
    """

    source_dir: Path
    artifacts: ArtifactSet
    patches_applied: list[Path] = field(default_factory=list)
    overlay_mismatches: list[OverlayMismatch] = field(default_factory=list)
    boot_image_sha256: str | None = None
    source_sha256: str | None = None


def running_in_container() -> bool:
    """Return True when running inside the build container image."""
    return os.environ.get(IN_CONTAINER_ENV) == "1"


def resolve_kernel_url(
    settings: Settings,
    profile: KernelProfileSchema | None = None,
) -> str:
    """Return the tarball URL.

    Precedence: profile URL, profile version, settings URL, settings version.
    """
    if profile is not None:
        if profile.kernel_url:
            return profile.kernel_url
        if profile.kernel_version:
            return build_kernel_url(profile.kernel_version, settings.kernel_base_url)
    if settings.kernel_url:
        return settings.kernel_url
    return build_kernel_url(settings.kernel_version, settings.kernel_base_url)


def resolve_identity(
    settings: Settings,
    profile: KernelProfileSchema | None = None,
) -> BuildIdentity:
    """Return the build identity, letting the profile override settings."""
    user = (profile.build_user if profile else None) or settings.build_user
    host = (profile.build_host if profile else None) or settings.build_host
    return BuildIdentity(user=user, host=host)


def select_patches(
    settings: Settings,
    work_dir: Path,
    profile: KernelProfileSchema | None = None,
) -> list[Path]:
    """Return the patches to apply, in order.

    A profile that lists patches gets exactly those, resolved in work_dir.
    Otherwise patches are discovered with settings.patch_glob.

    Raises:
        PatchError: If a listed patch is missing.
    """
    if profile is not None and profile.patches is not None:
        return resolve_patches(work_dir, profile.patches)
    return discover_patches(work_dir, settings.patch_glob)


def compile_targets(settings: Settings) -> list[str]:
    """Return the make targets for the compile step."""
    targets = [settings.image_target]
    if settings.build_modules:
        targets.append("modules")
    return targets


def _step(step: BuildStep, message: str, *args: object) -> None:
    logger.info("[%s] " + message, step.value, *args)


def build_kernel(
    settings: Settings,
    profile: KernelProfileSchema | None = None,
    overlay: ConfigOverlay | None = None,
    client: httpx.Client | None = None,
) -> KernelBuildResult:
    """Fetch, patch, configure, compile and stage a kernel.

    Args:
        settings: Effective settings.
        profile: Optional build profile (source, overlay, identity).
        overlay: Overlay to apply (defaults to the profile's, or built-in).
        client: HTTPX client (one is created if not provided).

    Returns:
        KernelBuildResult describing the staged artifacts.

    Raises:
        KernelRebuildError: On the first failing step.
    """
    work_dir = settings.work_dir or Path.cwd()
    if overlay is None:
        overlay = resolve_overlay(profile)

    url = resolve_kernel_url(settings, profile)
    sums_url = sha256sums_url_for(url) if settings.verify_checksum else None
    patches = select_patches(settings, work_dir, profile)

    _step(BuildStep.FETCH, "Downloading kernel source: %s", url)
    if client is None:
        with httpx.Client(follow_redirects=True) as own_client:
            download = fetch_kernel_source(
                own_client, url, work_dir, sums_url, timeout=settings.download_timeout
            )
    else:
        download = fetch_kernel_source(
            client, url, work_dir, sums_url, timeout=settings.download_timeout
        )

    archive = download.archive_path
    _step(BuildStep.EXTRACT, "Unpacking %s", archive.name)
    source_dir = extract_source(archive, work_dir)

    _step(BuildStep.PATCH, "Applying %d patch(es)", len(patches))
    applied = apply_patches(source_dir, patches)

    _step(BuildStep.CONFIGURE, "Materializing .config (%d overlay entries)", len(overlay))
    mismatches = materialize_config(source_dir, overlay)

    targets = compile_targets(settings)
    _step(BuildStep.COMPILE, "Compiling %s", " ".join(targets))
    compile_kernel(
        source_dir,
        targets,
        resolve_identity(settings, profile),
        jobs=settings.jobs,
        timeout=settings.build_timeout,
    )

    result_dir = settings.result_dir
    boot_image = result_dir / settings.kernel_image_name
    _step(BuildStep.STAGE, "Staging artifacts to %s", result_dir)
    stage_file(boot_image, source_dir / settings.boot_image)

    modules_dir: Path | None = None
    if settings.build_modules:
        modules_dir = install_modules(source_dir, result_dir)

    digest = compute_file_hash(boot_image)
    logger.info("Boot image %s (sha256 %s...)", boot_image, digest[:16])

    return KernelBuildResult(
        source_dir=source_dir,
        artifacts=ArtifactSet(boot_image=boot_image, modules_dir=modules_dir),
        patches_applied=applied,
        overlay_mismatches=mismatches,
        boot_image_sha256=digest,
        source_sha256=download.checksum,
    )


__all__ = [
    "IN_CONTAINER_ENV",
    "KernelBuildResult",
    "build_kernel",
    "compile_targets",
    "resolve_identity",
    "resolve_kernel_url",
    "running_in_container",
    "select_patches",
]
