"""Build runner for kbuild make targets.

This module handles:
- Composing `make` commands (defconfig, olddefconfig, image, modules)
- Materializing .config from defconfig plus the overlay
- Compiling with build identity variables and CPU-count parallelism
- Installing modules into the result tree

Output is streamed to the caller's stdout/stderr; failures are detected
by exit code only.
"""

from __future__ import annotations

import logging
import os
import shlex
import subprocess
from pathlib import Path

from kernel_rebuild.errors import BuildError, ConfigError
from kernel_rebuild.kconfig.overlay import (
    ConfigOverlay,
    apply_overlay,
    read_kconfig,
    verify_overlay,
)
from kernel_rebuild.types import BuildIdentity, OverlayMismatch

logger = logging.getLogger(__name__)


def default_jobs() -> int:
    """Return the number of available CPUs (at least 1)."""
    return os.cpu_count() or 1


def compose_make_command(
    targets: list[str],
    jobs: int | None = None,
    variables: dict[str, str] | None = None,
) -> list[str]:
    """Compose a make command.

    Args:
        targets: make targets.
        jobs: Parallel job count (omitted when None).
        variables: make variable assignments (NAME=value).

    Returns:
        Command as list of strings suitable for subprocess.
    """
    cmd = ["make", *targets]
    if variables:
        cmd.extend(f"{name}={value}" for name, value in variables.items())
    if jobs is not None:
        cmd.append(f"-j{jobs}")
    return cmd


def run_make(
    cmd: list[str],
    source_dir: Path,
    env_override: dict[str, str] | None = None,
    timeout: int | None = None,
) -> int:
    """Run a make command in the source tree.

    Args:
        cmd: Command from compose_make_command().
        source_dir: Kernel source directory.
        env_override: Variables overlaid on the inherited environment.
        timeout: Timeout in seconds (None = no timeout).

    Returns:
        Process exit code.

    Raises:
        subprocess.TimeoutExpired: If the timeout elapses.
        OSError: If make cannot be started.
    """
    logger.info("Executing: %s", shlex.join(cmd))

    env: dict[str, str] | None = None
    if env_override:
        env = dict(os.environ)
        env.update(env_override)

    result = subprocess.run(
        cmd,
        cwd=source_dir,
        env=env,
        timeout=timeout,
        check=False,
    )
    return result.returncode


def _run_config_target(source_dir: Path, target: str) -> None:
    try:
        exit_code = run_make(compose_make_command([target]), source_dir)
    except OSError as e:
        raise ConfigError(f"make {target}: {e}", code="execution_error") from e
    if exit_code != 0:
        raise ConfigError(
            f"make {target} failed with exit code {exit_code}",
            code=f"{target}_error",
        )


def generate_baseline(source_dir: Path) -> Path:
    """Generate the baseline .config with `make defconfig`.

    Returns:
        Path to the generated .config.

    Raises:
        ConfigError: If make defconfig fails.
    """
    _run_config_target(source_dir, "defconfig")
    return source_dir / ".config"


def normalize_config(source_dir: Path) -> None:
    """Resolve option dependencies with `make olddefconfig`.

    Raises:
        ConfigError: If make olddefconfig fails.
    """
    _run_config_target(source_dir, "olddefconfig")


def materialize_config(
    source_dir: Path,
    overlay: ConfigOverlay,
) -> list[OverlayMismatch]:
    """Produce the final .config: defconfig, overlay append, olddefconfig.

    Args:
        source_dir: Kernel source directory.
        overlay: Overlay appended to the generated defconfig.

    Returns:
        Overlay entries the normalizer did not keep (logged as warnings).

    Raises:
        ConfigError: If a config target fails.
        OverlayWriteError: If the overlay cannot be appended.
    """
    config_file = generate_baseline(source_dir)
    apply_overlay(config_file, overlay)
    normalize_config(source_dir)

    mismatches = verify_overlay(read_kconfig(config_file), overlay)
    for m in mismatches:
        logger.warning(
            "%s: requested %s, normalized to %s",
            m.option,
            m.requested,
            m.actual if m.actual is not None else "(unset)",
        )
    if mismatches:
        logger.warning(
            "%d of %d overlay entries were changed by olddefconfig",
            len(mismatches),
            len(overlay),
        )
    return mismatches


def compile_kernel(
    source_dir: Path,
    targets: list[str],
    identity: BuildIdentity,
    jobs: int | None = None,
    timeout: int | None = None,
) -> None:
    """Compile the kernel.

    Args:
        source_dir: Kernel source directory (with a final .config).
        targets: make targets (e.g. ['bzImage', 'modules']).
        identity: Build identity exported as KBUILD_BUILD_* variables.
        jobs: Parallel job count (defaults to CPU count).
        timeout: Timeout in seconds (None = no timeout).

    Raises:
        BuildError: If compilation fails or times out.
    """
    if jobs is None:
        jobs = default_jobs()
    cmd = compose_make_command(targets, jobs=jobs)

    try:
        exit_code = run_make(
            cmd,
            source_dir,
            env_override=identity.to_env(),
            timeout=timeout,
        )
    except subprocess.TimeoutExpired as e:
        raise BuildError(
            f"Build timed out after {timeout} seconds",
            exit_code=-1,
            code="build_timeout",
        ) from e
    except OSError as e:
        raise BuildError(
            f"Failed to execute build: {e}",
            code="execution_error",
        ) from e

    if exit_code != 0:
        raise BuildError(
            f"make {' '.join(targets)} failed with exit code {exit_code}",
            exit_code=exit_code,
        )


def install_modules(source_dir: Path, dest_root: Path) -> Path:
    """Install compiled modules below dest_root/lib/modules.

    Returns:
        Path to dest_root/lib/modules.

    Raises:
        BuildError: If make modules_install fails.
    """
    cmd = compose_make_command(
        ["modules_install"],
        variables={"INSTALL_MOD_PATH": str(dest_root)},
    )
    try:
        exit_code = run_make(cmd, source_dir)
    except OSError as e:
        raise BuildError(
            f"Failed to install modules: {e}",
            code="execution_error",
        ) from e
    if exit_code != 0:
        raise BuildError(
            f"make modules_install failed with exit code {exit_code}",
            exit_code=exit_code,
            code="modules_install_error",
        )
    return dest_root / "lib" / "modules"


__all__ = [
    "compile_kernel",
    "compose_make_command",
    "default_jobs",
    "generate_baseline",
    "install_modules",
    "materialize_config",
    "normalize_config",
    "run_make",
]
