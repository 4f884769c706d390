"""Artifact staging.

This module handles:
- Copying the boot image into place with its permission bits
- Removing module-tree symlinks that only resolve inside the build container
- Replacing a target's lib/modules tree with a freshly built one
"""

from __future__ import annotations

import hashlib
import logging
import os
import shutil
import stat
import tempfile
import uuid
from pathlib import Path

from kernel_rebuild.errors import StageError

logger = logging.getLogger(__name__)

# Per-release entries pointing into the build tree
CONTAINER_ONLY_LINKS = ("build", "source")

# Default chunk size for hashing
HASH_CHUNK_SIZE = 64 * 1024  # 64KB


def compute_file_hash(
    file_path: Path,
    chunk_size: int = HASH_CHUNK_SIZE,
) -> str:
    """Compute SHA-256 hash of a file."""
    sha256 = hashlib.sha256()
    with file_path.open("rb") as f:
        while chunk := f.read(chunk_size):
            sha256.update(chunk)
    return sha256.hexdigest()


def stage_file(dest: Path, src: Path) -> Path:
    """Copy a file and give the copy the source's permission bits.

    The content is written to a temporary file next to ``dest`` and renamed
    over it, so a failed copy never leaves a truncated ``dest`` behind.

    Args:
        dest: Destination path.
        src: Source path.

    Returns:
        The destination path.

    Raises:
        StageError: If the source cannot be read or the destination written.
    """
    tmp_path: Path | None = None
    try:
        mode = stat.S_IMODE(src.stat().st_mode)
        dest.parent.mkdir(parents=True, exist_ok=True)

        with src.open("rb") as fin, tempfile.NamedTemporaryFile(
            dir=dest.parent, prefix=f".{dest.name}.", delete=False
        ) as fout:
            tmp_path = Path(fout.name)
            shutil.copyfileobj(fin, fout)
            fout.flush()
            os.fsync(fout.fileno())

        tmp_path.chmod(mode)
        tmp_path.replace(dest)

    except OSError as e:
        if tmp_path is not None:
            tmp_path.unlink(missing_ok=True)
        raise StageError(f"Failed to stage {src} -> {dest}: {e}") from e

    logger.info("Staged %s -> %s (mode %o)", src, dest, mode)
    return dest


def prune_module_symlinks(modules_root: Path) -> list[Path]:
    """Remove build/source entries from every release under lib/modules.

    Args:
        modules_root: The lib/modules directory.

    Returns:
        Paths that were removed.

    Raises:
        StageError: If an entry cannot be removed.
    """
    removed: list[Path] = []
    releases = sorted(p for p in modules_root.iterdir() if p.is_dir())
    for release in releases:
        for name in CONTAINER_ONLY_LINKS:
            match = release / name
            # The links dangle outside the container
            if not os.path.lexists(match):
                continue
            try:
                if match.is_dir() and not match.is_symlink():
                    shutil.rmtree(match)
                else:
                    match.unlink()
            except OSError as e:
                raise StageError(f"Failed to remove {match}: {e}") from e
            logger.debug("Removed %s", match)
            removed.append(match)
    return removed


def replace_module_tree(new_modules: Path, lib_dir: Path) -> Path:
    """Replace lib_dir/modules with a copy of new_modules.

    The new tree is copied to a staging directory inside ``lib_dir`` first;
    the live tree is then swapped out with two renames and deleted.
    Until the copy completes the existing tree is untouched.

    Args:
        new_modules: Freshly built lib/modules directory.
        lib_dir: Target lib directory.

    Returns:
        Path to the replaced lib_dir/modules.

    Raises:
        StageError: If copying or swapping fails.
    """
    target = lib_dir / "modules"
    token = uuid.uuid4().hex[:8]
    staging = lib_dir / f".modules.new-{token}"
    retired = lib_dir / f".modules.old-{token}"

    logger.info("Replacing %s with %s", target, new_modules)

    try:
        lib_dir.mkdir(parents=True, exist_ok=True)
        shutil.copytree(new_modules, staging, symlinks=True)
    except OSError as e:
        shutil.rmtree(staging, ignore_errors=True)
        raise StageError(f"Failed to copy {new_modules} to {staging}: {e}") from e

    try:
        if target.exists() or target.is_symlink():
            target.rename(retired)
        staging.rename(target)
    except OSError as e:
        if retired.exists() and not target.exists():
            retired.rename(target)
        shutil.rmtree(staging, ignore_errors=True)
        raise StageError(f"Failed to swap in {target}: {e}") from e

    if retired.is_symlink():
        retired.unlink()
    elif retired.exists():
        shutil.rmtree(retired)

    return target


__all__ = [
    "CONTAINER_ONLY_LINKS",
    "compute_file_hash",
    "prune_module_symlinks",
    "replace_module_tree",
    "stage_file",
]
