"""Configuration settings for kernel_rebuild.

Uses pydantic-settings for config parsing from environment variables
and defaults. Configuration precedence: CLI flags > env vars > defaults.
"""

from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Where the in-container builder stages its results; the host wrapper
# mounts its ephemeral directory here.
CONTAINER_RESULT_DIR = Path("/tmp/buildresult")


class Settings(BaseSettings):
    """Application settings.

    Settings are loaded from environment variables with the KREBUILD_ prefix.
    CLI flags can override these at runtime.
    """

    model_config = SettingsConfigDict(
        env_prefix="KREBUILD_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Kernel source
    kernel_version: str = Field(
        default="6.6.58",
        description="Kernel version used to compose the download URL",
    )
    kernel_url: str | None = Field(
        default=None,
        description="Explicit kernel source tarball URL (overrides kernel_version)",
    )
    kernel_base_url: str = Field(
        default="https://cdn.kernel.org/pub/linux/kernel",
        description="Base URL of the kernel.org mirror",
    )
    verify_checksum: bool = Field(
        default=False,
        description="Verify the tarball against the mirror's sha256sums.asc",
    )

    # Inputs
    work_dir: Path | None = Field(
        default=None,
        description="Download/extract directory (uses current directory if not set)",
    )
    patch_glob: str = Field(
        default="*.patch",
        description="Glob pattern for patch discovery in the work directory",
    )
    profile_path: Path | None = Field(
        default=None,
        description="Build profile (YAML/JSON); built-in overlay if not set",
    )

    # Compilation
    image_target: str = Field(
        default="bzImage",
        description="make target producing the boot image",
    )
    boot_image: str = Field(
        default="arch/x86/boot/bzImage",
        description="Boot image path relative to the source directory",
    )
    build_modules: bool = Field(
        default=True,
        description="Build and install kernel modules",
    )
    jobs: int | None = Field(
        default=None,
        ge=1,
        description="make parallelism (uses CPU count if not set)",
    )
    build_user: str = Field(
        default="kernel-rebuild",
        description="KBUILD_BUILD_USER embedded in the kernel",
    )
    build_host: str = Field(
        default="builder.localdomain",
        description="KBUILD_BUILD_HOST embedded in the kernel",
    )

    # Outputs
    result_dir: Path = Field(
        default=CONTAINER_RESULT_DIR,
        description="Directory receiving the boot image and module tree",
    )
    kernel_image_name: str = Field(
        default="vmlinuz",
        description="Boot image file name in the result and target trees",
    )
    lib_dir_name: str = Field(
        default="lib",
        description="Target directory holding the modules/ tree",
    )
    fallback_dir: Path | None = Field(
        default=None,
        description="Second lookup location for patches and target files",
    )

    # Container orchestration
    tmp_root: Path = Field(
        default=Path("/tmp"),
        description="Parent directory of the ephemeral build context",
    )
    container_executable: str | None = Field(
        default=None,
        description="Container executable override (skips detection)",
    )
    container_choices: list[str] = Field(
        default_factory=lambda: ["podman", "docker"],
        description="Container executables probed in order",
    )
    container_tag: str = Field(
        default="kernel-rebuild",
        description="Tag of the throwaway build image",
    )
    container_base_image: str = Field(
        default="python:3.12-slim-bookworm",
        description="Base image of the build container",
    )

    # Operational
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Logging level",
    )

    # Timeouts (in seconds)
    download_timeout: int = Field(
        default=3600,
        ge=60,
        description="Timeout for the kernel source download",
    )
    build_timeout: int | None = Field(
        default=None,
        ge=60,
        description="Timeout for the compile step (unlimited if not set)",
    )


def get_settings() -> Settings:
    """Get the application settings singleton.

    Returns:
        Settings instance loaded from environment.
    """
    return Settings()


def print_settings_json(settings: Settings | None = None) -> str:
    """Render effective settings as JSON.

    Args:
        settings: Optional settings instance; uses default if not provided.

    Returns:
        JSON string of effective settings.
    """
    if settings is None:
        settings = get_settings()
    return settings.model_dump_json(indent=2)


__all__ = ["CONTAINER_RESULT_DIR", "Settings", "get_settings", "print_settings_json"]
