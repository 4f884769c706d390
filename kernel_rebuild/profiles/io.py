"""Profile import/export functionality.

This module provides helpers for loading build profiles from YAML/JSON
files, writing them back, and resolving the effective overlay.
"""

import json
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from kernel_rebuild.errors import ProfileError
from kernel_rebuild.kconfig.defaults import default_overlay
from kernel_rebuild.kconfig.overlay import ConfigOverlay
from kernel_rebuild.profiles.schema import KernelProfileSchema


def load_yaml(path: Path) -> dict[str, Any]:
    """Load a YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: If the file does not exist.
        yaml.YAMLError: If the file is not valid YAML.
        ValueError: If the document is not a mapping.
    """
    with open(path, encoding="utf-8") as f:
        data = yaml.safe_load(f)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"Expected a YAML mapping, got {type(data).__name__}")
    return data


def load_json(path: Path) -> dict[str, Any]:
    """Load a JSON file and return its contents as a dict.

    Raises:
        FileNotFoundError: If the file does not exist.
        json.JSONDecodeError: If the file is not valid JSON.
        ValueError: If the document is not an object.
    """
    with open(path, encoding="utf-8") as f:
        data = json.load(f)
    if not isinstance(data, dict):
        raise ValueError(f"Expected a JSON object, got {type(data).__name__}")
    return data


def load_profile(path: Path) -> KernelProfileSchema:
    """Load and validate a profile from a file (YAML or JSON).

    File format is determined by extension (.yaml, .yml for YAML,
    .json for JSON).

    Args:
        path: Path to the profile file.

    Returns:
        Validated KernelProfileSchema instance.

    Raises:
        ProfileError: If the file is missing, unparsable, or invalid.
    """
    suffix = path.suffix.lower()
    try:
        if suffix in (".yaml", ".yml"):
            data = load_yaml(path)
        elif suffix == ".json":
            data = load_json(path)
        else:
            raise ProfileError(
                f"Unsupported file extension '{suffix}'. Use .yaml, .yml, or .json",
                code="unsupported_format",
            )
        return KernelProfileSchema.model_validate(data)
    except FileNotFoundError as e:
        raise ProfileError(f"Profile not found: {path}", code="profile_not_found") from e
    except (yaml.YAMLError, json.JSONDecodeError) as e:
        raise ProfileError(f"Cannot parse {path}: {e}", code="parse_error") from e
    except ValidationError as e:
        raise ProfileError(f"Invalid profile {path}:\n{e}", code="validation") from e
    except ValueError as e:
        raise ProfileError(f"Invalid profile {path}: {e}", code="validation") from e


def export_profile(profile: KernelProfileSchema, path: Path) -> None:
    """Write a profile to a YAML or JSON file (by extension)."""
    data = profile.model_dump(exclude_none=True)
    suffix = path.suffix.lower()
    with open(path, "w", encoding="utf-8") as f:
        if suffix == ".json":
            json.dump(data, f, indent=2)
            f.write("\n")
        else:
            yaml.dump(
                data, f, default_flow_style=False, allow_unicode=True, sort_keys=False
            )


def resolve_overlay(profile: KernelProfileSchema | None) -> ConfigOverlay:
    """Return the effective overlay for a profile.

    Without a profile the built-in overlay is used. A profile's overlay
    replaces it, or is applied on top of it when include_default_overlay
    is set.
    """
    if profile is None:
        return default_overlay()
    overlay = ConfigOverlay.from_mapping(profile.overlay)
    if profile.include_default_overlay:
        return default_overlay().merged(overlay)
    return overlay


__all__ = [
    "export_profile",
    "load_json",
    "load_profile",
    "load_yaml",
    "resolve_overlay",
]
