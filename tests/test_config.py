"""Tests for configuration module."""

import json
import os
from pathlib import Path
from unittest.mock import patch

import pytest
from pydantic import ValidationError

from kernel_rebuild.config import (
    CONTAINER_RESULT_DIR,
    Settings,
    get_settings,
    print_settings_json,
)


class TestSettings:
    """Test Settings class."""

    def test_default_settings(self) -> None:
        """Settings should have sensible defaults."""
        settings = Settings()

        assert settings.kernel_url is None
        assert settings.kernel_base_url.startswith("https://")
        assert settings.patch_glob == "*.patch"
        assert settings.image_target == "bzImage"
        assert settings.boot_image == "arch/x86/boot/bzImage"
        assert settings.result_dir == CONTAINER_RESULT_DIR
        assert settings.kernel_image_name == "vmlinuz"
        assert settings.lib_dir_name == "lib"
        assert settings.container_choices == ["podman", "docker"]
        assert settings.container_executable is None
        assert settings.log_level == "INFO"
        assert settings.jobs is None

    def test_settings_from_env(self) -> None:
        """Settings should be loadable from environment variables."""
        with patch.dict(
            os.environ,
            {
                "KREBUILD_KERNEL_VERSION": "6.1.100",
                "KREBUILD_LOG_LEVEL": "DEBUG",
                "KREBUILD_JOBS": "4",
                "KREBUILD_BUILD_MODULES": "false",
            },
        ):
            settings = Settings()
            assert settings.kernel_version == "6.1.100"
            assert settings.log_level == "DEBUG"
            assert settings.jobs == 4
            assert settings.build_modules is False

    def test_path_settings_from_env(self, tmp_path: Path) -> None:
        """Path settings should be parsed from env vars."""
        with patch.dict(
            os.environ,
            {
                "KREBUILD_FALLBACK_DIR": str(tmp_path),
                "KREBUILD_PROFILE_PATH": str(tmp_path / "p.yaml"),
            },
        ):
            settings = Settings()
            assert settings.fallback_dir == tmp_path
            assert settings.profile_path == tmp_path / "p.yaml"

    def test_container_choices_from_env(self) -> None:
        """List settings should be parsed from JSON env values."""
        with patch.dict(os.environ, {"KREBUILD_CONTAINER_CHOICES": '["docker"]'}):
            settings = Settings()
            assert settings.container_choices == ["docker"]

    def test_jobs_must_be_positive(self) -> None:
        """A zero job count should be rejected."""
        with pytest.raises(ValidationError):
            Settings(jobs=0)

    def test_invalid_log_level(self) -> None:
        """Unknown log levels should be rejected."""
        with pytest.raises(ValidationError):
            Settings(log_level="LOUD")

    def test_download_timeout_minimum(self) -> None:
        """Download timeout below one minute should be rejected."""
        with pytest.raises(ValidationError):
            Settings(download_timeout=10)


class TestGetSettings:
    """Test get_settings function."""

    def test_returns_settings_instance(self) -> None:
        assert isinstance(get_settings(), Settings)


class TestPrintSettingsJson:
    """Test print_settings_json function."""

    def test_returns_valid_json(self) -> None:
        """Should return a parsable JSON document."""
        data = json.loads(print_settings_json(Settings()))

        assert data["kernel_image_name"] == "vmlinuz"
        assert data["container_tag"] == "kernel-rebuild"
        assert data["result_dir"] == str(CONTAINER_RESULT_DIR)

    def test_uses_given_settings(self) -> None:
        """Should render the provided instance."""
        data = json.loads(print_settings_json(Settings(kernel_version="5.15.1")))
        assert data["kernel_version"] == "5.15.1"
