"""Kernel source fetch module.

This module handles:
- URL composition for kernel.org source tarballs
- Download with optional checksum verification
- Extraction to a validated source directory
"""

from __future__ import annotations

import hashlib
import logging
import shutil
import subprocess
import tarfile
import tempfile
from dataclasses import dataclass
from pathlib import Path
from urllib.parse import urlsplit, urlunsplit

import httpx

from kernel_rebuild.errors import DownloadError, ExtractionError, VerificationError

logger = logging.getLogger(__name__)

# Official kernel.org CDN
KERNEL_DOWNLOAD_BASE = "https://cdn.kernel.org/pub/linux/kernel"

# Timeout for checksum requests (seconds)
CHECKSUM_TIMEOUT = 30

# Timeout for downloads (seconds)
DOWNLOAD_TIMEOUT = 3600

# Checksum list published in each series directory
SHA256SUMS_NAME = "sha256sums.asc"

# Chunk size for downloads (bytes)
DOWNLOAD_CHUNK_SIZE = 64 * 1024  # 64 KB

# Longest first, so ".tar.xz" is not mistaken for ".xz"
ARCHIVE_SUFFIXES = (".tar.xz", ".tar.gz", ".tar.bz2", ".tar.zst", ".tgz", ".tar")

TARFILE_MODES = {
    ".tar.xz": "r:xz",
    ".tar.gz": "r:gz",
    ".tgz": "r:gz",
    ".tar.bz2": "r:bz2",
    ".tar": "r:",
}


@dataclass
class DownloadResult:
    """Result of a kernel source download."""

    archive_path: Path
    checksum: str
    size_bytes: int


def _series(version: str) -> str:
    major = version.split(".", 1)[0]
    if not major.isdigit():
        raise ValueError(f"Cannot derive kernel series from version '{version}'")
    return f"v{major}.x"


def build_kernel_url(version: str, base_url: str = KERNEL_DOWNLOAD_BASE) -> str:
    """Build the tarball URL for a kernel release.

    Args:
        version: Kernel version (e.g., '6.6.58').
        base_url: Base URL of the kernel.org mirror.

    Returns:
        URL like https://cdn.kernel.org/pub/linux/kernel/v6.x/linux-6.6.58.tar.xz
    """
    return f"{base_url.rstrip('/')}/{_series(version)}/linux-{version}.tar.xz"


def sha256sums_url_for(archive_url: str) -> str:
    """Return the URL of the signed checksum list next to a tarball.

    kernel.org publishes one sha256sums.asc per series directory.
    """
    parts = urlsplit(archive_url)
    parent = parts.path.rsplit("/", 1)[0]
    return urlunsplit((parts.scheme, parts.netloc, f"{parent}/{SHA256SUMS_NAME}", "", ""))


def archive_filename(url: str) -> str:
    """Return the final path segment of a URL.

    Raises:
        DownloadError: If the URL has no file name.
    """
    name = urlsplit(url).path.rsplit("/", 1)[-1]
    if not name:
        raise DownloadError(f"URL has no file name: {url}", code="invalid_url")
    return name


def strip_archive_suffix(filename: str) -> str:
    """Strip a known archive suffix from a file name.

    Raises:
        ExtractionError: If the suffix is not a supported archive type.
    """
    lowered = filename.lower()
    for suffix in ARCHIVE_SUFFIXES:
        if lowered.endswith(suffix):
            return filename[: -len(suffix)]
    raise ExtractionError(
        f"Unsupported archive format: {filename}",
        code="unsupported_format",
    )


def parse_sha256sums(content: str, filename: str) -> str | None:
    """Parse a SHA256SUMS listing to find the checksum of one file.

    Lines that are not '<hex>  <name>' pairs (PGP armor, comments) are
    skipped.

    Args:
        content: Content of the checksum file.
        filename: File name to look up.

    Returns:
        SHA256 checksum string, or None if not found.
    """
    for line in content.splitlines():
        line = line.strip()
        if not line or line.startswith("#"):
            continue

        parts = line.split(maxsplit=1)
        if len(parts) != 2:
            continue

        checksum, name = parts
        # Remove leading '*' if present (binary mode indicator)
        name = name.lstrip("*").strip()

        if name == filename:
            return checksum.lower()

    return None


def download_file(
    client: httpx.Client,
    url: str,
    dest_path: Path,
    expected_checksum: str | None = None,
    timeout: float = DOWNLOAD_TIMEOUT,
    chunk_size: int = DOWNLOAD_CHUNK_SIZE,
) -> DownloadResult:
    """Download a file with optional checksum verification.

    Args:
        client: HTTPX client instance.
        url: URL to download from.
        dest_path: Destination path for the downloaded file.
        expected_checksum: Expected SHA256 checksum (optional).
        timeout: Download timeout in seconds.
        chunk_size: Size of chunks to download.

    Returns:
        DownloadResult with path, checksum, and size.

    Raises:
        DownloadError: If download fails.
        VerificationError: If checksum verification fails.
    """
    logger.info("Downloading %s to %s", url, dest_path)

    try:
        with client.stream("GET", url, timeout=timeout) as response:
            response.raise_for_status()

            total_bytes = 0
            sha256 = hashlib.sha256()

            dest_path.parent.mkdir(parents=True, exist_ok=True)

            with dest_path.open("wb") as f:
                for chunk in response.iter_bytes(chunk_size):
                    f.write(chunk)
                    sha256.update(chunk)
                    total_bytes += len(chunk)

    except httpx.HTTPStatusError as e:
        raise DownloadError(
            f"HTTP error downloading {url}: {e.response.status_code} {e.response.reason_phrase}",
            code="http_error",
        ) from e
    except httpx.TimeoutException as e:
        raise DownloadError(
            f"Timeout downloading {url}",
            code="timeout",
        ) from e
    except httpx.RequestError as e:
        raise DownloadError(
            f"Network error downloading {url}: {e}",
            code="network_error",
        ) from e

    computed_checksum = sha256.hexdigest()

    if expected_checksum and computed_checksum != expected_checksum.lower():
        dest_path.unlink(missing_ok=True)
        raise VerificationError(
            f"Checksum mismatch for {url}: "
            f"expected {expected_checksum}, got {computed_checksum}"
        )

    logger.info(
        "Downloaded %s (%d bytes, checksum: %s)",
        dest_path.name,
        total_bytes,
        computed_checksum[:16] + "...",
    )

    return DownloadResult(
        archive_path=dest_path,
        checksum=computed_checksum,
        size_bytes=total_bytes,
    )


def fetch_checksums(
    client: httpx.Client,
    sha256sums_url: str,
    timeout: float = CHECKSUM_TIMEOUT,
) -> str:
    """Fetch checksum file content.

    Raises:
        DownloadError: If fetch fails.
    """
    logger.debug("Fetching checksums from %s", sha256sums_url)

    try:
        response = client.get(sha256sums_url, timeout=timeout)
        response.raise_for_status()
        return response.text

    except httpx.HTTPStatusError as e:
        raise DownloadError(
            f"HTTP error fetching checksums: {e.response.status_code}",
            code="http_error",
        ) from e
    except httpx.TimeoutException as e:
        raise DownloadError(
            f"Timeout fetching checksums from {sha256sums_url}",
            code="timeout",
        ) from e
    except httpx.RequestError as e:
        raise DownloadError(
            f"Network error fetching checksums: {e}",
            code="network_error",
        ) from e


def fetch_kernel_source(
    client: httpx.Client,
    url: str,
    work_dir: Path,
    sha256sums_url: str | None = None,
    timeout: float = DOWNLOAD_TIMEOUT,
) -> DownloadResult:
    """Download a kernel source tarball into the work directory.

    The archive is named after the URL's final path segment. It is
    downloaded to a temporary file and moved into place on success.

    Args:
        client: HTTPX client instance.
        url: Tarball URL.
        work_dir: Directory receiving the archive.
        sha256sums_url: Checksum list to verify against (optional).
        timeout: Download timeout in seconds.

    Returns:
        DownloadResult pointing at the archive in work_dir.

    Raises:
        DownloadError: If download fails.
        VerificationError: If checksum verification fails.
    """
    filename = archive_filename(url)
    work_dir.mkdir(parents=True, exist_ok=True)

    expected_checksum: str | None = None
    if sha256sums_url:
        expected_checksum = parse_sha256sums(
            fetch_checksums(client, sha256sums_url), filename
        )
        if not expected_checksum:
            raise VerificationError(
                f"No checksum for {filename} in {sha256sums_url}",
                code="checksum_not_found",
            )

    with tempfile.NamedTemporaryFile(
        dir=work_dir, suffix=".tmp", delete=False
    ) as tmp_file:
        tmp_path = Path(tmp_file.name)

    try:
        result = download_file(
            client,
            url,
            tmp_path,
            expected_checksum=expected_checksum,
            timeout=timeout,
        )
        archive_path = work_dir / filename
        shutil.move(str(tmp_path), str(archive_path))
    except Exception:
        tmp_path.unlink(missing_ok=True)
        raise

    result.archive_path = archive_path
    return result


def _check_members(archive_path: Path, tar: tarfile.TarFile) -> None:
    members = tar.getmembers()
    if not members:
        raise ExtractionError(
            f"Archive {archive_path} is empty",
            code="empty_archive",
        )
    for member in members:
        member_path = Path(member.name)
        if member_path.is_absolute() or ".." in member_path.parts:
            raise ExtractionError(
                f"Refusing to extract {member.name}: path traversal detected",
                code="path_traversal",
            )


def extract_source(archive_path: Path, dest_dir: Path | None = None) -> Path:
    """Extract a kernel source archive and locate its source directory.

    The source directory name is the archive name without its suffix
    (linux-6.6.58.tar.xz -> linux-6.6.58). A leftover directory of that
    name from an earlier run is removed first. The result must be a
    directory with a top-level Makefile.

    Args:
        archive_path: Path to the archive file.
        dest_dir: Extraction directory (defaults to the archive's directory).

    Returns:
        Path to the extracted source directory.

    Raises:
        ExtractionError: If extraction fails or the layout is unexpected.
    """
    if dest_dir is None:
        dest_dir = archive_path.parent
    source_dir = dest_dir / strip_archive_suffix(archive_path.name)

    logger.info("Extracting %s to %s", archive_path.name, dest_dir)

    try:
        dest_dir.mkdir(parents=True, exist_ok=True)
        if source_dir.exists():
            logger.info("Removing previous source tree %s", source_dir)
            shutil.rmtree(source_dir)

        lowered = archive_path.name.lower()
        mode = next(
            (m for suffix, m in TARFILE_MODES.items() if lowered.endswith(suffix)),
            None,
        )
        if mode is not None:
            with tarfile.open(archive_path, mode) as tar:
                _check_members(archive_path, tar)
                tar.extractall(dest_dir, filter="data")
        else:
            # zstd is not supported by tarfile; use the system tar
            result = subprocess.run(
                ["tar", "-xf", str(archive_path), "-C", str(dest_dir)],
                capture_output=True,
                text=True,
                check=False,
            )
            if result.returncode != 0:
                raise ExtractionError(
                    f"Failed to extract {archive_path}: {result.stderr}",
                    code="tar_error",
                )

    except tarfile.TarError as e:
        raise ExtractionError(
            f"Failed to extract {archive_path}: {e}",
            code="tar_error",
        ) from e
    except OSError as e:
        raise ExtractionError(
            f"OS error extracting {archive_path}: {e}",
            code="os_error",
        ) from e

    if not source_dir.is_dir():
        raise ExtractionError(
            f"Expected source directory {source_dir.name} not found after "
            f"extracting {archive_path.name}",
            code="unexpected_layout",
        )
    if not (source_dir / "Makefile").is_file():
        raise ExtractionError(
            f"{source_dir} does not look like a kernel source tree (no Makefile)",
            code="unexpected_layout",
        )

    logger.info("Extracted kernel source to %s", source_dir)
    return source_dir


__all__ = [
    "ARCHIVE_SUFFIXES",
    "DownloadResult",
    "KERNEL_DOWNLOAD_BASE",
    "SHA256SUMS_NAME",
    "archive_filename",
    "build_kernel_url",
    "download_file",
    "extract_source",
    "fetch_checksums",
    "fetch_kernel_source",
    "parse_sha256sums",
    "sha256sums_url_for",
    "strip_archive_suffix",
]
