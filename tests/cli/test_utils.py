"""
Tests for CLI utility functions.
"""

from pathlib import Path

import pytest

from voltakit.cli.utils import (
    config_file_path,
    env_value,
    get_section,
    load_yaml_config,
    parse_bool,
    print_error,
    print_warning,
    resolve_path,
    resolve_project_root,
)


class TestLoadYamlConfig:
    """Test load_yaml_config function."""

    def test_load_valid_config(self, tmp_path):
        """Test loading valid YAML config."""
        config_file = tmp_path / "voltakit.yaml"
        config_file.write_text("volta:\n  version: v1.2.3\n  skip: false\n")

        config = load_yaml_config(config_file)

        assert config == {"volta": {"version": "v1.2.3", "skip": False}}

    def test_load_nonexistent_config_not_required(self, tmp_path):
        """Test loading nonexistent config when not required."""
        assert load_yaml_config(tmp_path / "missing.yaml", required=False) == {}

    def test_load_nonexistent_config_required(self, tmp_path):
        """Test loading nonexistent config when required."""
        with pytest.raises(FileNotFoundError, match="Configuration file not found"):
            load_yaml_config(tmp_path / "missing.yaml", required=True)

    def test_load_empty_config(self, tmp_path):
        """Test loading empty YAML file."""
        config_file = tmp_path / "empty.yaml"
        config_file.write_text("")

        assert load_yaml_config(config_file) == {}

    def test_load_invalid_yaml(self, tmp_path):
        """Test loading invalid YAML raises ValueError."""
        config_file = tmp_path / "invalid.yaml"
        config_file.write_text("volta: [unclosed")

        with pytest.raises(ValueError, match="Invalid YAML"):
            load_yaml_config(config_file)

    def test_load_non_mapping(self, tmp_path):
        """Test a YAML document that is not a mapping is rejected."""
        config_file = tmp_path / "list.yaml"
        config_file.write_text("- one\n- two\n")

        with pytest.raises(ValueError, match="expected a mapping"):
            load_yaml_config(config_file)


class TestGetSection:
    """Test get_section function."""

    def test_existing_section(self):
        """Test an existing mapping is returned."""
        assert get_section({"volta": {"version": "v1"}}, "volta") == {"version": "v1"}

    def test_missing_or_empty_section(self):
        """Test missing and empty sections yield an empty mapping."""
        assert get_section({}, "volta") == {}
        assert get_section({"volta": None}, "volta") == {}

    def test_invalid_section(self):
        """Test a non-mapping section is rejected."""
        with pytest.raises(ValueError, match="must be a mapping"):
            get_section({"volta": "v1.2.3"}, "volta")


class TestParseBool:
    """Test parse_bool function."""

    @pytest.mark.parametrize("value", [True, "true", "TRUE", "1", "yes", "on"])
    def test_true_values(self, value):
        """Test values interpreted as true."""
        assert parse_bool(value) is True

    @pytest.mark.parametrize("value", [False, "false", "0", "no", "off", ""])
    def test_false_values(self, value):
        """Test values interpreted as false."""
        assert parse_bool(value) is False

    def test_invalid_value(self):
        """Test unrecognized values raise ValueError."""
        with pytest.raises(ValueError, match="Not a boolean"):
            parse_bool("maybe")


class TestEnvValue:
    """Test env_value function."""

    def test_set_value(self, monkeypatch):
        """Test a set variable is returned."""
        monkeypatch.setenv("VOLTAKIT_TEST_VALUE", "x")
        assert env_value("VOLTAKIT_TEST_VALUE") == "x"

    def test_empty_value(self, monkeypatch):
        """Test an empty variable counts as unset."""
        monkeypatch.setenv("VOLTAKIT_TEST_VALUE", "")
        assert env_value("VOLTAKIT_TEST_VALUE") is None


class TestPrintFunctions:
    """Test print utility functions."""

    def test_print_error(self, capsys):
        """Test print_error outputs to stderr."""
        print_error("Something went wrong")

        assert "ERROR: Something went wrong" in capsys.readouterr().err

    def test_print_error_with_details(self, capsys):
        """Test print_error with details."""
        print_error("Install failed", "HTTP 404")

        captured = capsys.readouterr()
        assert "ERROR: Install failed" in captured.err
        assert "  HTTP 404" in captured.err

    def test_print_warning(self, capsys):
        """Test print_warning outputs to stderr."""
        print_warning("Careful")

        assert "WARNING: Careful" in capsys.readouterr().err


class TestPathUtilities:
    """Test path helpers."""

    def test_resolve_project_root_default(self):
        """Test project root defaults to the current directory."""
        assert resolve_project_root() == Path.cwd().resolve()

    def test_resolve_relative_path(self, tmp_path):
        """Test relative paths are interpreted against the base."""
        assert resolve_path("tools", tmp_path) == tmp_path / "tools"

    def test_resolve_absolute_path(self, tmp_path):
        """Test absolute paths are kept."""
        assert resolve_path(str(tmp_path / "x"), Path("/elsewhere")) == tmp_path / "x"

    def test_resolve_home_path(self, tmp_path, monkeypatch):
        """Test ~ is expanded."""
        monkeypatch.setenv("HOME", str(tmp_path))
        monkeypatch.setenv("USERPROFILE", str(tmp_path))

        assert resolve_path("~/cache", Path("/base")) == tmp_path / "cache"

    def test_config_file_path(self, tmp_path):
        """Test explicit and default configuration file locations."""

        class Args:
            config = None
            project_root = tmp_path

        assert config_file_path(Args()) == tmp_path.resolve() / "voltakit.yaml"

        Args.config = tmp_path / "other.yaml"
        assert config_file_path(Args()) == tmp_path / "other.yaml"
