"""Pydantic models for build profile validation.

A profile describes one kernel build: which source to fetch, which
patches to ship into the build container, and the configuration overlay.
"""

import re
from typing import Annotated, Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from kernel_rebuild.kconfig.overlay import validate_option, validate_value

PATCH_NAME_PATTERN = re.compile(r"^[A-Za-z0-9_.+\-]+$")


class KernelProfileSchema(BaseModel):
    """Build profile schema for validation and import/export.

    Attributes:
        name: Profile name.
        description: Optional longer description.
        kernel_version: Kernel version to fetch (overrides settings).
        kernel_url: Explicit tarball URL (overrides kernel_version).
        patches: Patch file names shipped into the build context.
        overlay: CONFIG_* overrides, applied in the order given.
        include_default_overlay: Start from the built-in overlay.
        build_user: KBUILD_BUILD_USER override.
        build_host: KBUILD_BUILD_HOST override.
        notes: Optional notes/comments.
    """

    model_config = ConfigDict(extra="forbid")

    name: Annotated[
        str, Field(description="Profile name", min_length=1, max_length=255)
    ]
    description: str | None = Field(default=None, description="Longer description")

    kernel_version: str | None = Field(
        default=None, description="Kernel version", max_length=50
    )
    kernel_url: str | None = Field(default=None, description="Tarball URL")

    patches: list[str] | None = Field(
        default=None, description="Patch files for the build context"
    )
    overlay: dict[str, str] = Field(
        default_factory=dict, description="CONFIG_* overrides"
    )
    include_default_overlay: bool = Field(
        default=False, description="Merge the overlay onto the built-in one"
    )

    build_user: str | None = Field(default=None, description="KBUILD_BUILD_USER")
    build_host: str | None = Field(default=None, description="KBUILD_BUILD_HOST")

    notes: str | None = Field(default=None, description="Notes/comments")

    @field_validator("overlay", mode="before")
    @classmethod
    def coerce_overlay_values(cls, v: Any) -> Any:
        """Accept numbers in YAML/JSON overlays (e.g. cache sizes)."""
        if not isinstance(v, dict):
            return v
        coerced: dict[Any, Any] = {}
        for option, value in v.items():
            if isinstance(value, bool):
                value = "y" if value else "n"
            elif isinstance(value, int):
                value = str(value)
            coerced[option] = value
        return coerced

    @field_validator("overlay")
    @classmethod
    def validate_overlay(cls, v: dict[str, str]) -> dict[str, str]:
        """Validate option names and values."""
        for option, value in v.items():
            validate_option(option)
            validate_value(option, value)
        return v

    @field_validator("patches")
    @classmethod
    def validate_patches(cls, v: list[str] | None) -> list[str] | None:
        """Validate patch entries are plain, unique file names."""
        if v is None:
            return v
        for item in v:
            if not PATCH_NAME_PATTERN.match(item):
                raise ValueError(
                    f"patches must be plain file names, got '{item}'"
                )
        if len(set(v)) != len(v):
            raise ValueError("patches must not contain duplicates")
        return v

    @field_validator("kernel_version")
    @classmethod
    def validate_kernel_version(cls, v: str | None) -> str | None:
        """Validate kernel_version looks like a release number."""
        if v is None:
            return v
        if not re.match(r"^[0-9]+\.[0-9]+(\.[0-9]+)?(-rc[0-9]+)?$", v):
            raise ValueError(f"kernel_version must look like '6.6.58', got '{v}'")
        return v


__all__ = ["KernelProfileSchema", "PATCH_NAME_PATTERN"]
