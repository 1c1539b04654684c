"""Tests for configuration loading and validation."""

import tempfile
from pathlib import Path

import pytest
import yaml

from tapnotify_app.config.defaults import DefaultConfig, TimingParams, get_default_config
from tapnotify_app.config.loader import ConfigLoader
from tapnotify_app.config.validation import ConfigValidator, ValidationError
from tapnotify_app.errors import InvalidConfigurationError


class TestDefaults:
    """Built-in defaults."""

    def test_timing_defaults(self):
        timing = TimingParams()

        assert timing.executing_timeout_ms == 30_000
        assert timing.rapid_click_window_ms == 2_000
        assert timing.rapid_click_count == 3
        assert timing.grace_delay_ms == 4_000
        assert timing.success_visibility_ms == 4_000
        assert timing.error_visibility_ms == 5_000
        assert timing.crash_visibility_ms == 10_000
        assert timing.trailing_delay_ms == 600

    def test_default_config(self):
        config = get_default_config()

        assert isinstance(config, DefaultConfig)
        assert config.geofence.radius_m == 70.0
        assert config.messaging.phone_numbers == []


class TestConfigLoader:
    """Test ConfigLoader class."""

    def setup_method(self):
        self.temp_dir = tempfile.TemporaryDirectory()
        self.config_dir = Path(self.temp_dir.name)

    def teardown_method(self):
        self.temp_dir.cleanup()

    def write_settings(self, settings):
        with open(self.config_dir / "settings.yaml", "w") as f:
            yaml.safe_dump(settings, f)

    def test_missing_settings_file(self):
        loader = ConfigLoader.create(self.config_dir)

        assert loader.load_settings_file() == {}
        assert loader.load() == get_default_config()

    def test_settings_override_defaults(self):
        self.write_settings({"timing": {"grace_delay_ms": 1000}, "messaging": {"provider": "whapi"}})

        config = ConfigLoader.create(self.config_dir).load()

        assert config.timing.grace_delay_ms == 1000
        assert config.timing.success_visibility_ms == 4000
        assert config.messaging.provider == "whapi"

    def test_explicit_overrides_win(self):
        self.write_settings({"timing": {"grace_delay_ms": 1000}})

        config = ConfigLoader.create(self.config_dir).load({"timing": {"grace_delay_ms": 5}})

        assert config.timing.grace_delay_ms == 5

    def test_unknown_keys_are_ignored(self):
        self.write_settings({"timing": {"grace_delay_ms": 10, "warp_factor": 9}, "extra": {}})

        config = ConfigLoader.create(self.config_dir).load()

        assert config.timing.grace_delay_ms == 10

    def test_invalid_settings_raise(self):
        self.write_settings({"timing": {"grace_delay_ms": -1}})

        with pytest.raises(InvalidConfigurationError) as exc_info:
            ConfigLoader.create(self.config_dir).load()

        assert any("grace_delay_ms" in message for message in exc_info.value.errors)

    def test_empty_settings_file(self):
        (self.config_dir / "settings.yaml").write_text("")

        assert ConfigLoader.create(self.config_dir).load_settings_file() == {}

    def test_deep_merge(self):
        loader = ConfigLoader.create(self.config_dir)

        merged = loader._deep_merge({"a": {"b": 1, "c": 2}, "d": 3}, {"a": {"b": 9}})

        assert merged == {"a": {"b": 9, "c": 2}, "d": 3}

    def test_empty_section_keeps_defaults(self):
        (self.config_dir / "settings.yaml").write_text("timing:\nmessaging:\n  provider: whapi\n")

        config = ConfigLoader.create(self.config_dir).load()

        assert config.timing == TimingParams()
        assert config.messaging.provider == "whapi"

    def test_deep_merge_skips_empty_section(self):
        loader = ConfigLoader.create(self.config_dir)

        merged = loader._deep_merge({"a": {"b": 1}}, {"a": None})

        assert merged == {"a": {"b": 1}}


class TestConfigValidator:
    """Test ConfigValidator class."""

    def test_valid_defaults(self):
        loader = ConfigLoader.create(Path(tempfile.gettempdir()) / "tapnotify-no-config")

        assert ConfigValidator.validate_config(loader.merge_config()) == []

    def test_timing_must_be_non_negative_ints(self):
        errors = ConfigValidator.validate_timing_params({
            "grace_delay_ms": "soon",
            "trailing_delay_ms": True,
            "rapid_click_count": 0,
        })

        assert {e.field for e in errors} == {"grace_delay_ms", "trailing_delay_ms",
                                             "rapid_click_count"}

    @pytest.mark.parametrize("number, expected", [
        ("+4915112345678", (True, "4915112345678")),
        ("  +4915112345678  ", (True, "4915112345678")),
        ("", (True, "")),
        ("4915112345678", (False, "Phone number must start with +")),
        ("+49 151 1234", (False, "Phone number must contain only digits after +")),
        ("+123456", (False, "Phone number must be between 8 and 16 characters")),
        ("+12345678901234567", (False, "Phone number must be between 8 and 16 characters")),
    ])
    def test_validate_phone_number(self, number, expected):
        assert ConfigValidator.validate_phone_number(number) == expected

    def test_unknown_provider(self):
        errors = ConfigValidator.validate_messaging_params({"provider": "pigeon"})

        assert errors == [ValidationError(
            field="provider",
            message="Must be one of textbelt, callmebot, whapi",
            value="pigeon"
        )]

    def test_invalid_phone_numbers_reported(self):
        errors = ConfigValidator.validate_messaging_params({"phone_numbers": ["+4915112345678", "123"]})

        assert len(errors) == 1
        assert errors[0].value == "123"

    def test_enabled_action_needs_http_url(self):
        errors = ConfigValidator.validate_action({"id": 0, "url": "ftp://x", "enabled": True})

        assert [e.field for e in errors] == ["url"]

    def test_disabled_action_url_not_checked(self):
        assert ConfigValidator.validate_action({"id": 0, "url": "", "enabled": False}) == []

    def test_malformed_header_line(self):
        errors = ConfigValidator.validate_action({"id": 1, "header": "X-Key: 1\nbroken"})

        assert [e.value for e in errors] == ["broken"]

    def test_bad_and_duplicate_ids(self):
        errors = ConfigValidator.validate_actions([{"id": 0}, {"id": 0}, {"id": -1}, {"id": "a"}])

        messages = [(e.field, e.message) for e in errors]
        assert ("id", "Duplicate action id") in messages
        assert messages.count(("id", "Must be a non-negative integer")) == 2
