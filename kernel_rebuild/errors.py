"""Error definitions for kernel_rebuild.

Every failure that ends a build is a KernelRebuildError carrying a stable
``code``. The CLI treats all of them as fatal; the code only tells the
operator which step failed.
"""

from __future__ import annotations

from pathlib import Path


class KernelRebuildError(Exception):
    """Base class for all build pipeline failures."""

    default_code = "kernel_rebuild_error"

    def __init__(self, message: str, code: str | None = None) -> None:
        """Initialize the error.

        Args:
            message: Error description.
            code: Error code for structured error handling.
        """
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code


class DownloadError(KernelRebuildError):
    """Raised when the kernel source download fails."""

    default_code = "download_error"


class VerificationError(KernelRebuildError):
    """Raised when checksum verification fails."""

    default_code = "verification_error"


class ExtractionError(KernelRebuildError):
    """Raised when archive extraction fails."""

    default_code = "extraction_error"


class PatchError(KernelRebuildError):
    """Raised when a patch does not apply.

    Patches applied before the failing one stay applied.
    """

    default_code = "patch_failed"

    def __init__(
        self,
        message: str,
        patch: Path | None = None,
        applied: list[Path] | None = None,
        code: str | None = None,
    ) -> None:
        super().__init__(message, code)
        self.patch = patch
        self.applied = list(applied or [])


class ConfigError(KernelRebuildError):
    """Raised when a kbuild configuration target fails."""

    default_code = "config_error"


class OverlayWriteError(KernelRebuildError, OSError):
    """Raised when the overlay cannot be appended to .config."""

    default_code = "overlay_write_error"


class BuildError(KernelRebuildError):
    """Raised when compilation or module installation fails."""

    default_code = "build_failed"

    def __init__(
        self,
        message: str,
        exit_code: int | None = None,
        code: str | None = None,
    ) -> None:
        super().__init__(message, code)
        self.exit_code = exit_code


class StageError(KernelRebuildError, OSError):
    """Raised when an artifact cannot be staged."""

    default_code = "stage_error"


class RuntimeNotFoundError(KernelRebuildError):
    """Raised when no container executable is available."""

    default_code = "runtime_not_found"


class ContextFileNotFoundError(KernelRebuildError, FileNotFoundError):
    """Raised when a file for the build context cannot be located."""

    default_code = "file_not_found"


class ContainerBuildError(KernelRebuildError):
    """Raised when the container image build fails."""

    default_code = "container_build_error"


class ContainerRunError(KernelRebuildError):
    """Raised when the build container exits unsuccessfully."""

    default_code = "container_run_error"


class ProfileError(KernelRebuildError):
    """Raised when a build profile cannot be loaded or validated."""

    default_code = "profile_error"


class SettingsError(KernelRebuildError):
    """Raised when KREBUILD_* settings fail validation."""

    default_code = "invalid_settings"


__all__ = [
    "BuildError",
    "ConfigError",
    "ContainerBuildError",
    "ContainerRunError",
    "ContextFileNotFoundError",
    "DownloadError",
    "ExtractionError",
    "KernelRebuildError",
    "OverlayWriteError",
    "PatchError",
    "ProfileError",
    "RuntimeNotFoundError",
    "SettingsError",
    "StageError",
    "VerificationError",
]
