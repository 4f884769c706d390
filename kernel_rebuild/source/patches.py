"""Patch discovery and application.

Patches are either named explicitly (a profile's patch list) or discovered
in the working directory (not the source tree) and applied in lexical
order with ``patch -p1``. Application stops at the first patch that fails;
patches applied before it are left in place.

Each patch is checked with ``patch --dry-run`` before it is applied, so a
patch with a failing hunk leaves neither partial hunks nor ``.rej`` files
behind.
"""

from __future__ import annotations

import logging
import subprocess
from collections.abc import Sequence
from pathlib import Path

from kernel_rebuild.errors import PatchError

logger = logging.getLogger(__name__)

DEFAULT_PATCH_GLOB = "*.patch"


def discover_patches(
    directory: Path | None = None,
    pattern: str = DEFAULT_PATCH_GLOB,
) -> list[Path]:
    """Find patch files in a directory.

    Args:
        directory: Directory to search (defaults to the current directory).
        pattern: Glob pattern for patch files.

    Returns:
        Matching files in lexical filename order.
    """
    if directory is None:
        directory = Path.cwd()
    return sorted(
        (p for p in directory.glob(pattern) if p.is_file()),
        key=lambda p: p.name,
    )


def resolve_patches(directory: Path, names: Sequence[str]) -> list[Path]:
    """Resolve named patch files in a directory, keeping the given order.

    Raises:
        PatchError: If a named patch is not a file in directory.
    """
    paths: list[Path] = []
    for name in names:
        path = directory / name
        if not path.is_file():
            raise PatchError(
                f"Patch {name} not found in {directory}",
                patch=path,
                code="patch_not_found",
            )
        paths.append(path)
    return paths


def compose_patch_command(strip: int = 1, dry_run: bool = False) -> list[str]:
    """Compose the patch invocation that reads a diff from stdin."""
    cmd = ["patch", f"-p{strip}"]
    if dry_run:
        cmd.append("--dry-run")
    return cmd


def _run_patch(cmd: list[str], source_dir: Path, patch: Path) -> int:
    with patch.open("rb") as f:
        result = subprocess.run(
            cmd,
            cwd=source_dir,
            stdin=f,
            check=False,
        )
    return result.returncode


def apply_patches(
    source_dir: Path,
    patches: list[Path],
    strip: int = 1,
) -> list[Path]:
    """Apply patches to a source tree, stopping at the first failure.

    patch(1) output goes straight to the caller's stdout/stderr.

    Args:
        source_dir: Root of the source tree.
        patches: Patch files, applied in the given order.
        strip: Leading path components to strip (patch -pN).

    Returns:
        The patches that were applied.

    Raises:
        PatchError: On the first patch that does not apply. Its
            ``applied`` attribute lists the patches already applied.
    """
    applied: list[Path] = []
    check_cmd = compose_patch_command(strip, dry_run=True)
    apply_cmd = compose_patch_command(strip)

    for patch in patches:
        logger.info("Applying patch %s", patch.name)
        try:
            exit_code = _run_patch(check_cmd, source_dir, patch)
            if exit_code == 0:
                exit_code = _run_patch(apply_cmd, source_dir, patch)
        except OSError as e:
            raise PatchError(
                f"Failed to apply {patch}: {e}",
                patch=patch,
                applied=applied,
                code="patch_io_error",
            ) from e

        if exit_code != 0:
            raise PatchError(
                f"Patch {patch.name} does not apply (exit code {exit_code})",
                patch=patch,
                applied=applied,
            )
        applied.append(patch)

    if not patches:
        logger.info("No patches to apply")
    return applied


__all__ = [
    "DEFAULT_PATCH_GLOB",
    "apply_patches",
    "compose_patch_command",
    "discover_patches",
    "resolve_patches",
]
