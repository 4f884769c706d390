"""Kernel configuration overlay.

This module handles:
- An ordered set of CONFIG_* overrides (ConfigOverlay)
- Appending the overlay to a generated .config as raw KEY=VALUE lines
- Reading a .config back and reporting overlay entries the
  normalizer (make olddefconfig) did not keep

Appended lines come after the defconfig output, so an overlay value wins
over the baseline for the same option; olddefconfig then resolves
dependent options.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable, Iterator, Mapping
from pathlib import Path

from kernel_rebuild.errors import OverlayWriteError
from kernel_rebuild.types import OverlayMismatch

logger = logging.getLogger(__name__)

OPTION_PATTERN = re.compile(r"^CONFIG_[A-Za-z0-9_]+$")
VALUE_PATTERN = re.compile(
    r'^(?:[ynm]|"(?:[^"\\\n]|\\.)*"|-?[0-9]+|0x[0-9a-fA-F]+|[A-Za-z0-9_.\-]+)$'
)
NOT_SET_PATTERN = re.compile(r"^# (CONFIG_[A-Za-z0-9_]+) is not set$")


def validate_option(option: str) -> str:
    """Validate a config option name.

    Raises:
        ValueError: If the name is not a CONFIG_* symbol.
    """
    if not OPTION_PATTERN.match(option):
        raise ValueError(
            f"option must match {OPTION_PATTERN.pattern}, got '{option}'"
        )
    return option


def validate_value(option: str, value: str) -> str:
    """Validate a config value (y/n/m, quoted string, number or bare word).

    Raises:
        ValueError: If the value cannot be written as a .config line.
    """
    if not VALUE_PATTERN.match(value):
        raise ValueError(f"invalid value for {option}: {value!r}")
    return value


class ConfigOverlay:
    """Ordered set of (option, value) overrides.

    A later duplicate option replaces the earlier value but keeps the
    position where the option first appeared, so iteration order is
    deterministic.
    """

    def __init__(self, entries: Iterable[tuple[str, str]] = ()) -> None:
        self._entries: dict[str, str] = {}
        for option, value in entries:
            self.set(option, value)

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, str]) -> ConfigOverlay:
        """Create an overlay from a mapping, in its iteration order."""
        return cls(mapping.items())

    def set(self, option: str, value: str) -> None:
        """Add or replace an entry."""
        validate_option(option)
        self._entries[option] = validate_value(option, str(value))

    def get(self, option: str) -> str | None:
        return self._entries.get(option)

    def merged(self, other: ConfigOverlay) -> ConfigOverlay:
        """Return a new overlay with ``other`` applied on top of this one."""
        return ConfigOverlay([*self, *other])

    def lines(self) -> list[str]:
        """Return the overlay as .config lines."""
        return [f"{option}={value}" for option, value in self]

    def render(self) -> str:
        """Return the overlay as newline-terminated .config text."""
        return "".join(f"{line}\n" for line in self.lines())

    def as_dict(self) -> dict[str, str]:
        return dict(self._entries)

    def __iter__(self) -> Iterator[tuple[str, str]]:
        return iter(self._entries.items())

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, option: object) -> bool:
        return option in self._entries

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ConfigOverlay):
            return NotImplemented
        return list(self) == list(other)

    def __repr__(self) -> str:
        return f"ConfigOverlay({len(self)} entries)"


def apply_overlay(config_file: Path, overlay: ConfigOverlay) -> int:
    """Append overlay entries to a generated .config file.

    Args:
        config_file: Path to .config (must already exist).
        overlay: Overlay to append.

    Returns:
        Number of lines appended.

    Raises:
        OverlayWriteError: If the file is missing or cannot be written.
    """
    if not config_file.is_file():
        raise OverlayWriteError(
            f"Config file not found: {config_file}",
            code="config_not_found",
        )

    logger.info("Appending %d overlay entries to %s", len(overlay), config_file)

    try:
        needs_newline = False
        if config_file.stat().st_size > 0:
            with config_file.open("rb") as f:
                f.seek(-1, 2)
                needs_newline = f.read(1) != b"\n"

        with config_file.open("a", encoding="utf-8") as f:
            if needs_newline:
                f.write("\n")
            f.write(overlay.render())
    except OSError as e:
        raise OverlayWriteError(
            f"Failed to append overlay to {config_file}: {e}"
        ) from e

    return len(overlay)


def parse_kconfig(text: str) -> dict[str, str]:
    """Parse .config content into an option -> value mapping.

    ``# CONFIG_FOO is not set`` lines map to 'n'. When an option appears
    more than once the last occurrence wins, matching kconfig.

    Args:
        text: Content of a .config file.

    Returns:
        Mapping in first-seen order.
    """
    values: dict[str, str] = {}
    for raw in text.splitlines():
        line = raw.strip()
        if not line:
            continue
        match = NOT_SET_PATTERN.match(line)
        if match:
            values[match.group(1)] = "n"
            continue
        if line.startswith("#"):
            continue
        option, sep, value = line.partition("=")
        if sep and OPTION_PATTERN.match(option):
            values[option] = value
    return values


def read_kconfig(config_file: Path) -> dict[str, str]:
    """Read and parse a .config file."""
    return parse_kconfig(config_file.read_text(encoding="utf-8"))


def verify_overlay(
    values: Mapping[str, str],
    overlay: ConfigOverlay,
) -> list[OverlayMismatch]:
    """Compare a normalized config against the requested overlay.

    An option requested as 'n' is satisfied when it is absent, since
    kconfig drops symbols whose dependencies are unmet.

    Args:
        values: Parsed .config after normalization.
        overlay: Requested overlay.

    Returns:
        Entries whose final value differs from the request.
    """
    mismatches: list[OverlayMismatch] = []
    for option, requested in overlay:
        actual = values.get(option)
        if actual == requested:
            continue
        if requested == "n" and actual is None:
            continue
        mismatches.append(OverlayMismatch(option, requested, actual))
    return mismatches


__all__ = [
    "ConfigOverlay",
    "OPTION_PATTERN",
    "apply_overlay",
    "parse_kconfig",
    "read_kconfig",
    "validate_option",
    "validate_value",
    "verify_overlay",
]
