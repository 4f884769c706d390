"""Tests for kconfig overlay module.

Tests overlay construction, appending to .config and reading it back.
"""

from pathlib import Path

import pytest

from kernel_rebuild.errors import OverlayWriteError
from kernel_rebuild.kconfig import (
    ConfigOverlay,
    apply_overlay,
    default_overlay,
    parse_kconfig,
    verify_overlay,
)
from kernel_rebuild.kconfig.defaults import DEFAULT_OVERLAY_ENTRIES
from kernel_rebuild.kconfig.overlay import (
    read_kconfig,
    validate_option,
    validate_value,
)
from kernel_rebuild.types import OverlayMismatch

DEFCONFIG_TEXT = """\
#
# Automatically generated file; DO NOT EDIT.
#
CONFIG_IPV6=m
# CONFIG_WERROR is not set
CONFIG_LOCALVERSION=""
"""


class TestValidation:
    """Tests for option and value validation."""

    @pytest.mark.parametrize("option", ["CONFIG_IPV6", "CONFIG_X86_64", "CONFIG_a1"])
    def test_valid_options(self, option: str) -> None:
        assert validate_option(option) == option

    @pytest.mark.parametrize("option", ["IPV6", "CONFIG_", "CONFIG_FOO BAR", ""])
    def test_invalid_options(self, option: str) -> None:
        with pytest.raises(ValueError):
            validate_option(option)

    @pytest.mark.parametrize(
        "value", ["y", "n", "m", "3", "-1", "0x10", '"-v1"', '""', '"a \\"q\\""']
    )
    def test_valid_values(self, value: str) -> None:
        assert validate_value("CONFIG_X", value) == value

    @pytest.mark.parametrize("value", ["", "two words", '"unterminated', "a\nb"])
    def test_invalid_values(self, value: str) -> None:
        with pytest.raises(ValueError):
            validate_value("CONFIG_X", value)


class TestConfigOverlay:
    """Tests for ConfigOverlay."""

    def test_preserves_insertion_order(self) -> None:
        overlay = ConfigOverlay([("CONFIG_B", "y"), ("CONFIG_A", "n")])
        assert overlay.lines() == ["CONFIG_B=y", "CONFIG_A=n"]

    def test_duplicate_keeps_first_position_last_value(self) -> None:
        overlay = ConfigOverlay(
            [("CONFIG_A", "y"), ("CONFIG_B", "y"), ("CONFIG_A", "m")]
        )
        assert overlay.lines() == ["CONFIG_A=m", "CONFIG_B=y"]
        assert len(overlay) == 2

    def test_rejects_invalid_entry(self) -> None:
        with pytest.raises(ValueError):
            ConfigOverlay([("NOT_CONFIG", "y")])

    def test_from_mapping(self) -> None:
        overlay = ConfigOverlay.from_mapping({"CONFIG_IPV6": "y", "CONFIG_WERROR": "n"})
        assert list(overlay) == [("CONFIG_IPV6", "y"), ("CONFIG_WERROR", "n")]
        assert "CONFIG_IPV6" in overlay
        assert overlay.get("CONFIG_WERROR") == "n"
        assert overlay.get("CONFIG_MISSING") is None

    def test_render_is_newline_terminated(self) -> None:
        overlay = ConfigOverlay([("CONFIG_A", "y"), ("CONFIG_B", '"x"')])
        assert overlay.render() == 'CONFIG_A=y\nCONFIG_B="x"\n'

    def test_render_empty(self) -> None:
        assert ConfigOverlay().render() == ""

    def test_merged_applies_other_on_top(self) -> None:
        base = ConfigOverlay([("CONFIG_A", "y"), ("CONFIG_B", "y")])
        top = ConfigOverlay([("CONFIG_B", "n"), ("CONFIG_C", "m")])

        merged = base.merged(top)

        assert merged.lines() == ["CONFIG_A=y", "CONFIG_B=n", "CONFIG_C=m"]
        # Inputs are not modified
        assert base.get("CONFIG_B") == "y"

    def test_equality(self) -> None:
        a = ConfigOverlay([("CONFIG_A", "y")])
        assert a == ConfigOverlay([("CONFIG_A", "y")])
        assert a != ConfigOverlay([("CONFIG_A", "n")])


class TestDefaultOverlay:
    """Tests for the built-in overlay."""

    def test_contains_expected_entries(self) -> None:
        overlay = default_overlay()
        assert overlay.get("CONFIG_IPV6") == "y"
        assert overlay.get("CONFIG_WERROR") == "n"
        assert overlay.get("CONFIG_SQUASHFS_FRAGMENT_CACHE_SIZE") == "3"
        assert overlay.get("CONFIG_LOCALVERSION") == '"-v1-thatwebsite"'

    def test_returns_fresh_copy(self) -> None:
        first = default_overlay()
        first.set("CONFIG_IPV6", "n")
        assert default_overlay().get("CONFIG_IPV6") == "y"

    def test_order_follows_entries(self) -> None:
        options = [option for option, _ in default_overlay()]
        assert options[0] == DEFAULT_OVERLAY_ENTRIES[0][0]
        assert options[-1] == "CONFIG_WERROR"


class TestApplyOverlay:
    """Tests for apply_overlay."""

    def test_appends_every_line_after_existing_content(self, tmp_path: Path) -> None:
        config = tmp_path / ".config"
        config.write_text(DEFCONFIG_TEXT)
        overlay = ConfigOverlay.from_mapping({"CONFIG_IPV6": "y", "CONFIG_WERROR": "n"})

        count = apply_overlay(config, overlay)

        assert count == 2
        content = config.read_text()
        assert content.startswith(DEFCONFIG_TEXT)
        assert content.endswith("CONFIG_IPV6=y\nCONFIG_WERROR=n\n")

    def test_lines_present_regardless_of_order(self, tmp_path: Path) -> None:
        """Every overlay line should be present whatever the entry order."""
        entries = [("CONFIG_A", "y"), ("CONFIG_B", "m"), ("CONFIG_C", "n")]
        for ordering in (entries, list(reversed(entries))):
            config = tmp_path / ".config"
            config.write_text(DEFCONFIG_TEXT)
            apply_overlay(config, ConfigOverlay(ordering))
            lines = config.read_text().splitlines()
            for option, value in entries:
                assert f"{option}={value}" in lines

    def test_overlay_wins_over_earlier_line(self, tmp_path: Path) -> None:
        """An appended value should override the defconfig value when read."""
        config = tmp_path / ".config"
        config.write_text(DEFCONFIG_TEXT)

        apply_overlay(config, ConfigOverlay([("CONFIG_IPV6", "y")]))

        lines = config.read_text().splitlines()
        assert lines.index("CONFIG_IPV6=y") > lines.index("CONFIG_IPV6=m")
        assert read_kconfig(config)["CONFIG_IPV6"] == "y"

    def test_adds_missing_trailing_newline(self, tmp_path: Path) -> None:
        config = tmp_path / ".config"
        config.write_text("CONFIG_A=y")

        apply_overlay(config, ConfigOverlay([("CONFIG_B", "y")]))

        assert config.read_text() == "CONFIG_A=y\nCONFIG_B=y\n"

    def test_empty_overlay_leaves_file_unchanged(self, tmp_path: Path) -> None:
        config = tmp_path / ".config"
        config.write_text(DEFCONFIG_TEXT)

        assert apply_overlay(config, ConfigOverlay()) == 0
        assert config.read_text() == DEFCONFIG_TEXT

    def test_missing_config_raises(self, tmp_path: Path) -> None:
        with pytest.raises(OverlayWriteError) as exc_info:
            apply_overlay(tmp_path / ".config", ConfigOverlay([("CONFIG_A", "y")]))

        assert exc_info.value.code == "config_not_found"
        assert isinstance(exc_info.value, OSError)


class TestParseKconfig:
    """Tests for parse_kconfig."""

    def test_parses_values_and_not_set(self) -> None:
        values = parse_kconfig(DEFCONFIG_TEXT)
        assert values == {
            "CONFIG_IPV6": "m",
            "CONFIG_WERROR": "n",
            "CONFIG_LOCALVERSION": '""',
        }

    def test_last_occurrence_wins(self) -> None:
        values = parse_kconfig("CONFIG_A=y\n# CONFIG_A is not set\nCONFIG_A=m\n")
        assert values["CONFIG_A"] == "m"

    def test_ignores_comments_and_garbage(self) -> None:
        values = parse_kconfig("# comment\nnot a line\nFOO=bar\n\nCONFIG_B=y\n")
        assert values == {"CONFIG_B": "y"}


class TestVerifyOverlay:
    """Tests for verify_overlay."""

    def test_no_mismatches(self) -> None:
        overlay = ConfigOverlay.from_mapping({"CONFIG_IPV6": "y"})
        assert verify_overlay({"CONFIG_IPV6": "y"}, overlay) == []

    def test_changed_value_reported(self) -> None:
        overlay = ConfigOverlay.from_mapping({"CONFIG_IPV6": "y"})
        assert verify_overlay({"CONFIG_IPV6": "m"}, overlay) == [
            OverlayMismatch("CONFIG_IPV6", "y", "m")
        ]

    def test_dropped_option_reported(self) -> None:
        overlay = ConfigOverlay.from_mapping({"CONFIG_FOO": "y"})
        assert verify_overlay({}, overlay) == [OverlayMismatch("CONFIG_FOO", "y", None)]

    def test_absent_option_satisfies_n(self) -> None:
        overlay = ConfigOverlay.from_mapping({"CONFIG_WERROR": "n"})
        assert verify_overlay({}, overlay) == []
