"""Tests for settings file handling."""

from configparser import ConfigParser

import pytest

from impscope.system import (
    AppSettings,
    create_default_settings_file,
    load_settings,
    save_settings,
    update_setting,
    validate_settings,
)
from impscope.system.settings import SECTION


@pytest.fixture
def temp_config_dir(tmp_path):
    """Create temporary .impscope directory."""
    config_dir = tmp_path / ".impscope"
    config_dir.mkdir()
    return config_dir


@pytest.fixture
def settings_file(temp_config_dir):
    """Create a settings.ini file with non-default values."""
    path = temp_config_dir / "settings.ini"
    config = ConfigParser()
    config[SECTION] = {
        "calibration_collection": "testImpedanceParam",
        "measurement_collection": "alternativeNewImpedanceParam",
        "min_threshold": "1.5",
        "max_threshold": "9.0",
        "store_dir": str(temp_config_dir / "records"),
        "log_level": "debug",
        "cache_max_age": "300",
    }
    with path.open("w") as f:
        config.write(f)
    return path


def test_missing_file_gives_defaults(temp_config_dir):
    settings = load_settings(temp_config_dir / "nope.ini")
    assert settings == AppSettings()
    assert settings.cache_max_age is None


def test_load_settings(settings_file):
    settings = load_settings(settings_file)
    assert settings.calibration_collection == "testImpedanceParam"
    assert settings.measurement_collection == "alternativeNewImpedanceParam"
    assert (settings.min_threshold, settings.max_threshold) == (1.5, 9.0)
    assert settings.log_level == "DEBUG"
    assert settings.cache_max_age == 300.0
    assert settings.source == settings_file


def test_validate_settings(settings_file):
    config = ConfigParser()
    config.read(settings_file)
    is_valid, error_msg = validate_settings(config)
    assert is_valid, f"Valid settings were marked as invalid: {error_msg}"

    config[SECTION]["min_threshold"] = "10"
    is_valid, error_msg = validate_settings(config)
    assert not is_valid
    assert "min_threshold" in error_msg

    config[SECTION]["min_threshold"] = "abc"
    assert not validate_settings(config)[0]

    assert validate_settings(ConfigParser()) == (False, f"Missing section: [{SECTION}]")


def test_invalid_entries_fall_back(settings_file):
    config = ConfigParser()
    config.read(settings_file)
    config[SECTION]["calibration_collection"] = "someOtherCollection"
    config[SECTION]["max_threshold"] = "1.0"
    config[SECTION]["log_level"] = "LOUD"
    config[SECTION]["cache_max_age"] = "-5"
    with settings_file.open("w") as f:
        config.write(f)

    settings = load_settings(settings_file)
    defaults = AppSettings()
    assert settings.calibration_collection == defaults.calibration_collection
    assert settings.measurement_collection == "alternativeNewImpedanceParam"
    assert (settings.min_threshold, settings.max_threshold) == (
        defaults.min_threshold,
        defaults.max_threshold,
    )
    assert settings.log_level == defaults.log_level
    assert settings.cache_max_age is None


def test_create_default_settings_file(temp_config_dir):
    path = temp_config_dir / "sub" / "settings.ini"
    assert create_default_settings_file(path) == path
    assert path.exists()
    assert load_settings(path) == AppSettings()

    update_setting("min_threshold", "1.0", path)
    create_default_settings_file(path)
    assert load_settings(path).min_threshold == 1.0
    create_default_settings_file(path, force=True)
    assert load_settings(path).min_threshold == AppSettings().min_threshold


def test_save_round_trip(temp_config_dir):
    path = temp_config_dir / "settings.ini"
    settings = AppSettings(min_threshold=0.5, cache_max_age=12.5)
    save_settings(settings, path)
    assert load_settings(path) == settings


def test_update_setting(temp_config_dir):
    path = temp_config_dir / "settings.ini"
    settings = update_setting("measurement_collection", "alternativeNewImpedanceParam", path)
    assert settings.measurement_collection == "alternativeNewImpedanceParam"

    with pytest.raises(ValueError, match="Unknown setting"):
        update_setting("colour", "blue", path)
    with pytest.raises(ValueError):
        update_setting("log_level", "LOUD", path)
    assert load_settings(path).log_level == AppSettings().log_level


def test_collections_mapping():
    from impscope.types import RecordKind

    settings = AppSettings()
    assert settings.collections == {
        RecordKind.CALIBRATION: "alternativeImpedanceParam",
        RecordKind.MEASUREMENT: "testNewImpedanceParam",
    }
