"""Container runtime detection and invocation.

This module handles:
- Detecting podman or docker on PATH (or honoring an explicit override)
- Composing `build` and `run` commands for the detected runtime
- Running them with output streamed to the caller
"""

from __future__ import annotations

import logging
import os
import shlex
import shutil
import subprocess
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path

from kernel_rebuild.config import CONTAINER_RESULT_DIR
from kernel_rebuild.errors import (
    ContainerBuildError,
    ContainerRunError,
    RuntimeNotFoundError,
)

logger = logging.getLogger(__name__)

# podman first: the docker binary may be a thin wrapper around podman
DEFAULT_RUNTIME_CHOICES = ("podman", "docker")

PODMAN = "podman"


@dataclass(frozen=True)
class ContainerRuntime:
    """A container executable and the runtime it behaves as.

    Attributes:
        executable: Path or name used to invoke the runtime.
        name: Runtime name ('podman', 'docker', ...), from the resolved binary.
    """

    executable: str
    name: str

    @classmethod
    def from_executable(cls, executable: str) -> ContainerRuntime:
        return cls(executable=executable, name=Path(executable).name)

    @property
    def keeps_user_namespace(self) -> bool:
        """Whether `run` needs --userns=keep-id to map the caller's uid."""
        return self.name == PODMAN


def detect_container_runtime(
    choices: Sequence[str] = DEFAULT_RUNTIME_CHOICES,
    override: str | None = None,
) -> ContainerRuntime:
    """Find the container runtime to use.

    An override is used as-is without probing. Otherwise the first choice
    found on PATH wins; symlinks are resolved so that a docker shim for
    podman is invoked with podman semantics.

    Args:
        choices: Executable names to probe, in order of preference.
        override: Explicit executable name or path.

    Returns:
        ContainerRuntime for the selected executable.

    Raises:
        RuntimeNotFoundError: If no choice is on PATH and no override given.
    """
    if override:
        logger.info("Using container executable override: %s", override)
        return ContainerRuntime.from_executable(override)

    for exe in choices:
        path = shutil.which(exe)
        if path is None:
            continue
        resolved = os.path.realpath(path)
        logger.debug("Found %s at %s (resolved %s)", exe, path, resolved)
        return ContainerRuntime.from_executable(resolved)

    raise RuntimeNotFoundError(f"None of {list(choices)} found in $PATH")


def compose_build_command(runtime: ContainerRuntime, tag: str) -> list[str]:
    """Compose the image build command (context is the working directory)."""
    return [runtime.executable, "build", "--rm=true", f"--tag={tag}", "."]


def compose_run_command(
    runtime: ContainerRuntime,
    tag: str,
    result_dir: Path,
    container_result_dir: Path = CONTAINER_RESULT_DIR,
) -> list[str]:
    """Compose the run command mounting result_dir into the container.

    Only podman gets --userns=keep-id; docker rejects it.
    """
    cmd = [runtime.executable, "run"]
    if runtime.keeps_user_namespace:
        cmd.append("--userns=keep-id")
    cmd.extend(
        [
            "--rm",
            "--volume",
            f"{result_dir}:{container_result_dir}:Z",
            tag,
        ]
    )
    return cmd


def _run(cmd: list[str], cwd: Path) -> int:
    logger.info("Executing: %s", shlex.join(cmd))
    result = subprocess.run(cmd, cwd=cwd, check=False)
    return result.returncode


def build_image(runtime: ContainerRuntime, context_dir: Path, tag: str) -> None:
    """Build the container image from context_dir.

    Raises:
        ContainerBuildError: If the build fails.
    """
    cmd = compose_build_command(runtime, tag)
    try:
        exit_code = _run(cmd, context_dir)
    except OSError as e:
        raise ContainerBuildError(
            f"{runtime.name} build: {e} (cmd: {shlex.join(cmd)})",
            code="execution_error",
        ) from e
    if exit_code != 0:
        raise ContainerBuildError(
            f"{runtime.name} build failed with exit code {exit_code} "
            f"(cmd: {shlex.join(cmd)})"
        )


def run_container(
    runtime: ContainerRuntime,
    tag: str,
    result_dir: Path,
) -> None:
    """Run the build container with result_dir mounted as its result volume.

    Raises:
        ContainerRunError: If the container exits unsuccessfully.
    """
    cmd = compose_run_command(runtime, tag, result_dir)
    try:
        exit_code = _run(cmd, result_dir)
    except OSError as e:
        raise ContainerRunError(
            f"{runtime.name} run: {e} (cmd: {shlex.join(cmd)})",
            code="execution_error",
        ) from e
    if exit_code != 0:
        raise ContainerRunError(
            f"{runtime.name} run failed with exit code {exit_code} "
            f"(cmd: {shlex.join(cmd)})"
        )


__all__ = [
    "ContainerRuntime",
    "DEFAULT_RUNTIME_CHOICES",
    "build_image",
    "compose_build_command",
    "compose_run_command",
    "detect_container_runtime",
    "run_container",
]
