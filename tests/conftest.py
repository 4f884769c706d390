"""Shared fixtures."""

import lzma
import tarfile
from collections.abc import Callable
from io import BytesIO
from pathlib import Path

import pytest


def _make_tar_xz(path: Path, files: dict[str, str | bytes]) -> Path:
    tar_bytes = BytesIO()
    with tarfile.open(fileobj=tar_bytes, mode="w") as tar:
        for name, content in files.items():
            data = content.encode() if isinstance(content, str) else content
            info = tarfile.TarInfo(name=name)
            info.size = len(data)
            tar.addfile(info, BytesIO(data))

    with lzma.open(path, "wb") as xz_file:
        xz_file.write(tar_bytes.getvalue())
    return path


@pytest.fixture
def make_tar_xz() -> Callable[[Path, dict[str, str | bytes]], Path]:
    """Return a helper writing a .tar.xz with the given members."""
    return _make_tar_xz
