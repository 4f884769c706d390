"""Build context staging for the kernel build container.

This module handles:
- Locating patch files and target paths (current directory, then fallback)
- Copying the kernel_rebuild package, patches and profile into the context
- Rendering the Dockerfile from a Jinja2 template
"""

from __future__ import annotations

import logging
import os
import shutil
from collections.abc import Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING

from jinja2 import Environment, StrictUndefined

import kernel_rebuild
from kernel_rebuild.errors import ContextFileNotFoundError, StageError

if TYPE_CHECKING:
    from kernel_rebuild.config import Settings

logger = logging.getLogger(__name__)

PACKAGE_NAME = "kernel_rebuild"

# Installed into the image; the package itself is copied from the host
CONTAINER_REQUIREMENTS = [
    "httpx",
    "pydantic",
    "pydantic-settings",
    "typer",
    "rich",
    "PyYAML",
    "Jinja2",
]

# Settings forwarded from the host into the container as KREBUILD_* env
FORWARDED_SETTINGS = (
    "kernel_version",
    "kernel_url",
    "kernel_base_url",
    "verify_checksum",
    "patch_glob",
    "image_target",
    "boot_image",
    "build_modules",
    "jobs",
    "build_user",
    "build_host",
    "kernel_image_name",
    "log_level",
    "download_timeout",
    "build_timeout",
)

DOCKERFILE_TEMPLATE = """\
FROM {{ base_image }}

RUN apt-get update && apt-get install -y --no-install-recommends \\
    build-essential bc bison flex kmod cpio patch xz-utils zstd \\
    libssl-dev libelf-dev libncurses-dev && \\
    rm -rf /var/lib/apt/lists/*

RUN pip install --no-cache-dir{% for req in requirements %} {{ req }}{% endfor %}

COPY {{ package }} /opt/kernel-rebuild/{{ package }}
{%- for name in patches %}
COPY {{ name }} /usr/src/{{ name }}
{%- endfor %}
{%- if profile %}
COPY {{ profile }} /usr/src/{{ profile }}
{%- endif %}

RUN echo 'builduser:x:{{ uid }}:{{ gid }}:nobody:/:/bin/sh' >> /etc/passwd && \\
    chown -R {{ uid }}:{{ gid }} /usr/src

ENV PYTHONPATH=/opt/kernel-rebuild \\
    KREBUILD_IN_CONTAINER=1
{%- for key, value in env.items() %}
ENV {{ key }}={{ value | dockerquote }}
{%- endfor %}

USER builduser
WORKDIR /usr/src
ENTRYPOINT ["python3", "-m", "{{ package }}", "build"]
"""


def _dockerquote(value: object) -> str:
    text = str(value).replace("\\", "\\\\").replace('"', '\\"')
    return f'"{text}"'


_jinja = Environment(
    autoescape=False,
    keep_trailing_newline=True,
    undefined=StrictUndefined,
)
_jinja.filters["dockerquote"] = _dockerquote
dockerfile_template = _jinja.from_string(DOCKERFILE_TEMPLATE)


@dataclass
class BuildContext:
    """A staged build context directory.

    Attributes:
        context_dir: The ephemeral directory handed to the image build.
        patches: Patch file names copied into the context.
        profile: Profile file name copied into the context, if any.
        dockerfile: Path of the rendered Dockerfile, once written.
    """

    context_dir: Path
    patches: list[str] = field(default_factory=list)
    profile: str | None = None
    dockerfile: Path | None = None


def search_dirs(fallback_dir: Path | None = None) -> list[Path]:
    """Return the lookup order: current directory, then the fallback."""
    dirs = [Path.cwd()]
    if fallback_dir is not None:
        dirs.append(fallback_dir)
    return dirs


def find_file(filename: str, dirs: Sequence[Path]) -> Path:
    """Locate a file or directory by name in the given directories.

    Args:
        filename: Name (or relative path) to look for.
        dirs: Directories to search, in order.

    Returns:
        First existing match.

    Raises:
        ContextFileNotFoundError: If no directory holds the file.
    """
    for directory in dirs:
        candidate = directory / filename
        if candidate.exists():
            return candidate
    looked = " and ".join(str(d) for d in dirs)
    raise ContextFileNotFoundError(
        f"could not find file {filename!r} (looked in {looked})"
    )


def package_source_dir() -> Path:
    """Return the directory of the kernel_rebuild package."""
    return Path(kernel_rebuild.__file__).resolve().parent


def container_environment(
    settings: Settings,
    profile_name: str | None = None,
) -> dict[str, str]:
    """Return KREBUILD_* variables passing host settings into the container."""
    env: dict[str, str] = {}
    for name in FORWARDED_SETTINGS:
        value = getattr(settings, name)
        if value is None:
            continue
        if isinstance(value, bool):
            value = "true" if value else "false"
        env[f"KREBUILD_{name.upper()}"] = str(value)
    if profile_name:
        env["KREBUILD_PROFILE_PATH"] = f"/usr/src/{profile_name}"
    return env


def stage_build_context(
    context_dir: Path,
    patch_paths: Sequence[Path],
    profile_path: Path | None = None,
    package_dir: Path | None = None,
) -> BuildContext:
    """Copy everything the image build needs into the context directory.

    Args:
        context_dir: Ephemeral context directory (must exist).
        patch_paths: Resolved patch files.
        profile_path: Optional profile file used inside the container.
        package_dir: Package source to copy (defaults to this package).

    Returns:
        BuildContext listing the staged files.

    Raises:
        StageError: If copying fails.
    """
    if package_dir is None:
        package_dir = package_source_dir()

    context = BuildContext(context_dir=context_dir)
    try:
        shutil.copytree(
            package_dir,
            context_dir / PACKAGE_NAME,
            ignore=shutil.ignore_patterns("__pycache__", "*.pyc"),
        )
        for path in patch_paths:
            shutil.copy2(path, context_dir / path.name)
            context.patches.append(path.name)
        if profile_path is not None:
            shutil.copy2(profile_path, context_dir / profile_path.name)
            context.profile = profile_path.name
    except OSError as e:
        raise StageError(f"Failed to stage build context in {context_dir}: {e}") from e

    logger.info(
        "Staged build context in %s (%d patch(es))", context_dir, len(context.patches)
    )
    return context


def render_dockerfile(
    patches: Sequence[str],
    uid: int,
    gid: int,
    base_image: str,
    env: dict[str, str] | None = None,
    profile: str | None = None,
    requirements: Sequence[str] = tuple(CONTAINER_REQUIREMENTS),
) -> str:
    """Render the Dockerfile for the kernel build image.

    Args:
        patches: Patch file names in the context.
        uid: User id the build user gets (so mounted output is caller-owned).
        gid: Group id the build user gets.
        base_image: Base image with python3 and pip.
        env: Extra environment variables for the build.
        profile: Profile file name in the context, if any.
        requirements: pip requirements installed into the image.

    Returns:
        Dockerfile content.
    """
    return dockerfile_template.render(
        base_image=base_image,
        requirements=list(requirements),
        package=PACKAGE_NAME,
        patches=list(patches),
        profile=profile,
        uid=uid,
        gid=gid,
        env=env or {},
    )


def write_dockerfile(context: BuildContext, content: str) -> Path:
    """Write the Dockerfile into the build context."""
    path = context.context_dir / "Dockerfile"
    try:
        path.write_text(content, encoding="utf-8")
    except OSError as e:
        raise StageError(f"Failed to write {path}: {e}") from e
    context.dockerfile = path
    return path


def caller_ids() -> tuple[int, int]:
    """Return the effective (uid, gid) of this process."""
    return os.geteuid(), os.getegid()


__all__ = [
    "BuildContext",
    "CONTAINER_REQUIREMENTS",
    "DOCKERFILE_TEMPLATE",
    "FORWARDED_SETTINGS",
    "caller_ids",
    "container_environment",
    "find_file",
    "package_source_dir",
    "render_dockerfile",
    "search_dirs",
    "stage_build_context",
    "write_dockerfile",
]
