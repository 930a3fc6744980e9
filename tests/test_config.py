"""
Tests for synthesis configuration and logging setup.
"""

import logging
from unittest.mock import patch

import pytest

from konverge import logging_config
from konverge.config import DEFAULT_OUTPUT_DIRECTORY, SynthesisConfig
from konverge.core.app import App
from konverge.logging_config import LOG_LEVEL_ENV, configure_logging


class TestSynthesisConfig:
    """Tests for SynthesisConfig construction."""

    def test_defaults(self):
        config = SynthesisConfig()

        assert config.validate_schemas is True
        assert config.output_directory == DEFAULT_OUTPUT_DIRECTORY
        assert config.log_level is None

    def test_from_dict_overrides_given_keys(self):
        config = SynthesisConfig.from_dict({"validate_schemas": False})

        assert config.validate_schemas is False
        assert config.output_directory == DEFAULT_OUTPUT_DIRECTORY

    def test_from_dict_ignores_unknown_keys(self):
        config = SynthesisConfig.from_dict({"output_directory": "out", "unknown": 1})
        assert config.output_directory == "out"

    def test_from_yaml(self, tmp_path):
        path = tmp_path / "konverge.yaml"
        path.write_text("validate_schemas: false\noutput_directory: build/manifests\n")

        config = SynthesisConfig.from_yaml(path)

        assert config.validate_schemas is False
        assert config.output_directory == "build/manifests"

    def test_empty_yaml_gives_defaults(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("")

        assert SynthesisConfig.from_yaml(path) == SynthesisConfig()


class TestConfigureLogging:
    """Tests for process-wide logging setup."""

    @pytest.fixture(autouse=True)
    def unconfigured(self, monkeypatch):
        monkeypatch.setattr(logging_config, "_CONFIGURED", False)
        monkeypatch.delenv(LOG_LEVEL_ENV, raising=False)

    def test_silent_without_level(self):
        with patch("logging.basicConfig") as basic_config:
            configure_logging()

        basic_config.assert_not_called()

    def test_level_from_environment(self, monkeypatch):
        monkeypatch.setenv(LOG_LEVEL_ENV, "debug")

        with patch("logging.basicConfig") as basic_config:
            configure_logging()

        assert basic_config.call_args.kwargs["level"] == logging.DEBUG

    def test_explicit_level_wins(self, monkeypatch):
        monkeypatch.setenv(LOG_LEVEL_ENV, "debug")

        with patch("logging.basicConfig") as basic_config:
            configure_logging("WARNING")

        assert basic_config.call_args.kwargs["level"] == logging.WARNING

    def test_configures_only_once(self):
        with patch("logging.basicConfig") as basic_config:
            configure_logging("INFO")
            configure_logging("DEBUG")

        assert basic_config.call_count == 1

    def test_silent_call_does_not_block_later_setup(self):
        with patch("logging.basicConfig") as basic_config:
            configure_logging()
            configure_logging("INFO")

        assert basic_config.call_args.kwargs["level"] == logging.INFO

    def test_app_applies_configured_level(self):
        with patch("logging.basicConfig") as basic_config:
            App(SynthesisConfig(log_level="ERROR"))

        assert basic_config.call_args.kwargs["level"] == logging.ERROR

    @pytest.mark.parametrize(
        "raw, expected",
        [("debug", logging.DEBUG), ("10", 10), (20, 20), ("", None), ("bogus", None), (None, None)],
    )
    def test_resolve_level(self, raw, expected):
        assert logging_config._resolve_level(raw) == expected
