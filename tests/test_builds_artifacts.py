"""Tests for artifact staging."""

import hashlib
import os
import stat
from pathlib import Path
from unittest.mock import patch

import pytest

from kernel_rebuild.builds.artifacts import (
    compute_file_hash,
    prune_module_symlinks,
    replace_module_tree,
    stage_file,
)
from kernel_rebuild.errors import StageError


def make_module_tree(root: Path, release: str = "6.6.58-v1") -> Path:
    """Create lib/modules/<release> with build/source links like modules_install."""
    release_dir = root / release
    (release_dir / "kernel" / "fs").mkdir(parents=True)
    (release_dir / "kernel" / "fs" / "fuse.ko").write_bytes(b"\x7fELF")
    (release_dir / "modules.dep").write_text("kernel/fs/fuse.ko:\n")
    (release_dir / "build").symlink_to("/usr/src/linux-6.6.58")
    (release_dir / "source").symlink_to("/usr/src/linux-6.6.58")
    return root


class TestComputeFileHash:
    """Tests for compute_file_hash."""

    def test_hash(self, tmp_path: Path) -> None:
        path = tmp_path / "vmlinuz"
        path.write_bytes(b"bzImage")
        assert compute_file_hash(path) == hashlib.sha256(b"bzImage").hexdigest()


class TestStageFile:
    """Tests for stage_file."""

    def test_copies_content_and_mode(self, tmp_path: Path) -> None:
        src = tmp_path / "bzImage"
        src.write_bytes(b"kernel image")
        src.chmod(0o755)
        dest = tmp_path / "out" / "vmlinuz"

        assert stage_file(dest, src) == dest

        assert dest.read_bytes() == b"kernel image"
        assert stat.S_IMODE(dest.stat().st_mode) == 0o755

    def test_mode_follows_source_not_destination(self, tmp_path: Path) -> None:
        """An existing destination takes the source's permission bits."""
        src = tmp_path / "bzImage"
        src.write_bytes(b"new")
        src.chmod(0o640)
        dest = tmp_path / "vmlinuz"
        dest.write_bytes(b"old")
        dest.chmod(0o777)

        stage_file(dest, src)

        assert dest.read_bytes() == b"new"
        assert stat.S_IMODE(dest.stat().st_mode) == 0o640

    def test_no_temp_files_left(self, tmp_path: Path) -> None:
        src = tmp_path / "src" / "bzImage"
        src.parent.mkdir()
        src.write_bytes(b"x")
        out = tmp_path / "out"

        stage_file(out / "vmlinuz", src)

        assert [p.name for p in out.iterdir()] == ["vmlinuz"]

    def test_missing_source(self, tmp_path: Path) -> None:
        dest = tmp_path / "vmlinuz"
        dest.write_bytes(b"old")

        with pytest.raises(StageError) as exc_info:
            stage_file(dest, tmp_path / "missing")

        assert exc_info.value.code == "stage_error"
        assert dest.read_bytes() == b"old"

    def test_failed_copy_keeps_destination(self, tmp_path: Path) -> None:
        src = tmp_path / "bzImage"
        src.write_bytes(b"new")
        dest = tmp_path / "out" / "vmlinuz"
        dest.parent.mkdir()
        dest.write_bytes(b"old")

        with patch("shutil.copyfileobj", side_effect=OSError("disk full")):
            with pytest.raises(StageError):
                stage_file(dest, src)

        assert dest.read_bytes() == b"old"
        assert [p.name for p in dest.parent.iterdir()] == ["vmlinuz"]


class TestPruneModuleSymlinks:
    """Tests for prune_module_symlinks."""

    def test_removes_build_and_source(self, tmp_path: Path) -> None:
        modules = make_module_tree(tmp_path / "modules")

        removed = prune_module_symlinks(modules)

        release = modules / "6.6.58-v1"
        assert sorted(p.name for p in removed) == ["build", "source"]
        assert not os.path.lexists(release / "build")
        assert not os.path.lexists(release / "source")
        assert (release / "modules.dep").exists()
        assert (release / "kernel" / "fs" / "fuse.ko").exists()

    def test_every_release(self, tmp_path: Path) -> None:
        modules = tmp_path / "modules"
        make_module_tree(modules, "6.6.58")
        make_module_tree(modules, "6.6.59")

        assert len(prune_module_symlinks(modules)) == 4

    def test_real_directory_removed(self, tmp_path: Path) -> None:
        modules = tmp_path / "modules"
        (modules / "6.1" / "build" / "include").mkdir(parents=True)

        prune_module_symlinks(modules)

        assert not (modules / "6.1" / "build").exists()

    def test_nothing_to_prune(self, tmp_path: Path) -> None:
        modules = tmp_path / "modules"
        (modules / "6.1").mkdir(parents=True)
        assert prune_module_symlinks(modules) == []


class TestReplaceModuleTree:
    """Tests for replace_module_tree."""

    def test_replaces_existing_tree(self, tmp_path: Path) -> None:
        new = make_module_tree(tmp_path / "new" / "modules", "6.6.58-v1")
        prune_module_symlinks(new)
        lib = tmp_path / "target" / "lib"
        old_release = lib / "modules" / "6.1.0-old"
        old_release.mkdir(parents=True)
        (old_release / "modules.dep").write_text("")

        result = replace_module_tree(new, lib)

        assert result == lib / "modules"
        assert [p.name for p in result.iterdir()] == ["6.6.58-v1"]
        assert (result / "6.6.58-v1" / "kernel" / "fs" / "fuse.ko").exists()
        # No staging or retired directories left behind
        assert [p.name for p in lib.iterdir()] == ["modules"]

    def test_creates_missing_target(self, tmp_path: Path) -> None:
        new = make_module_tree(tmp_path / "new" / "modules")
        lib = tmp_path / "lib"

        replace_module_tree(new, lib)

        assert (lib / "modules" / "6.6.58-v1" / "modules.dep").exists()

    def test_symlinks_copied_as_links(self, tmp_path: Path) -> None:
        new = make_module_tree(tmp_path / "new" / "modules")
        lib = tmp_path / "lib"

        replace_module_tree(new, lib)

        assert (lib / "modules" / "6.6.58-v1" / "build").is_symlink()

    def test_failed_copy_keeps_existing_tree(self, tmp_path: Path) -> None:
        new = make_module_tree(tmp_path / "new" / "modules")
        lib = tmp_path / "lib"
        (lib / "modules" / "old").mkdir(parents=True)

        with patch("shutil.copytree", side_effect=OSError("disk full")):
            with pytest.raises(StageError):
                replace_module_tree(new, lib)

        assert (lib / "modules" / "old").is_dir()
        assert [p.name for p in lib.iterdir()] == ["modules"]
