"""Application settings handling for impscope.

Settings live in an INI file (``~/.impscope/settings.ini``) with a single
``[impscope]`` section:

[impscope]
calibration_collection = alternativeImpedanceParam
measurement_collection = testNewImpedanceParam
min_threshold = 2.0
max_threshold = 8.0
store_dir = ~/.impscope/records
log_level = INFO
# seconds, empty for no expiry
cache_max_age =

Collection names are restricted to the known collections of the record
store; an unknown name falls back to the default with a warning.

See Also
--------
impscope.session : Builds the services from these settings
"""

from __future__ import annotations

from configparser import ConfigParser
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Optional

from loguru import logger

from impscope.types import RecordKind
from impscope.util.defaults import (
    CONFIG_DIR,
    DEFAULT_LOGLEVEL,
    DEFAULT_MAX_THRESHOLD,
    DEFAULT_MIN_THRESHOLD,
    DEFAULT_STORE_DIR,
)

SECTION = "impscope"
SETTINGS_FILE = CONFIG_DIR / "settings.ini"

CALIBRATION_COLLECTIONS = ("testImpedanceParam", "alternativeImpedanceParam")
MEASUREMENT_COLLECTIONS = ("testNewImpedanceParam", "alternativeNewImpedanceParam")
LOG_LEVELS = ("TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL")


@dataclass
class AppSettings:
    """Settings loaded from the INI file.

    Attributes
    ----------
    calibration_collection : str
        Store collection holding calibration records
    measurement_collection : str
        Store collection holding measurement records
    min_threshold, max_threshold : float
        Diagnosis thresholds for banks without a usable calibration
    store_dir : str
        Directory of the JSON record store
    log_level : str
        loguru level name
    cache_max_age : float | None
        Seconds before a cached record list expires, None for never
    """

    calibration_collection: str = "alternativeImpedanceParam"
    measurement_collection: str = "testNewImpedanceParam"
    min_threshold: float = DEFAULT_MIN_THRESHOLD
    max_threshold: float = DEFAULT_MAX_THRESHOLD
    store_dir: str = str(DEFAULT_STORE_DIR)
    log_level: str = DEFAULT_LOGLEVEL
    cache_max_age: Optional[float] = None
    source: Optional[Path] = field(default=None, compare=False)

    @property
    def collections(self) -> dict[RecordKind, str]:
        return {
            RecordKind.CALIBRATION: self.calibration_collection,
            RecordKind.MEASUREMENT: self.measurement_collection,
        }

    def to_section(self) -> dict[str, str]:
        data = asdict(self)
        data.pop("source")
        return {
            key: "" if val is None else str(val) for key, val in data.items()
        }


def validate_settings(config: ConfigParser, section: str = SECTION) -> tuple[bool, str]:
    """Validate a settings section.

    Parameters
    ----------
    config : ConfigParser
        ConfigParser instance containing the settings
    section : str
        Name of the section to validate

    Returns
    -------
    tuple[bool, str]
        (is_valid, error_message)
    """
    if not config.has_section(section):
        return False, f"Missing section: [{section}]"
    sec = config[section]
    if sec.get("calibration_collection", CALIBRATION_COLLECTIONS[1]) not in (
        CALIBRATION_COLLECTIONS
    ):
        return False, f"Invalid calibration_collection: {sec['calibration_collection']}"
    if sec.get("measurement_collection", MEASUREMENT_COLLECTIONS[0]) not in (
        MEASUREMENT_COLLECTIONS
    ):
        return False, f"Invalid measurement_collection: {sec['measurement_collection']}"
    try:
        lo = sec.getfloat("min_threshold", DEFAULT_MIN_THRESHOLD)
        hi = sec.getfloat("max_threshold", DEFAULT_MAX_THRESHOLD)
    except ValueError as e:
        return False, f"Invalid threshold: {e}"
    if lo > hi:
        return False, f"min_threshold {lo} is larger than max_threshold {hi}"
    if sec.get("log_level", DEFAULT_LOGLEVEL).upper() not in LOG_LEVELS:
        return False, f"Invalid log_level: {sec['log_level']}"
    max_age = sec.get("cache_max_age", "").strip()
    if max_age:
        try:
            if float(max_age) <= 0:
                return False, "cache_max_age must be positive"
        except ValueError:
            return False, f"Invalid cache_max_age: {max_age}"
    return True, ""


def _read_choice(sec, key: str, options: tuple[str, ...], default: str) -> str:
    val = sec.get(key, default)
    if val not in options:
        logger.warning("Unknown {} '{}', using '{}'.", key, val, default)
        return default
    return val


def load_settings(path: Optional[Path] = None) -> AppSettings:
    """Load settings from `path` (default ``~/.impscope/settings.ini``).

    A missing file gives the defaults. Invalid entries fall back to their
    default with a warning.
    """
    path = Path(path) if path is not None else SETTINGS_FILE
    defaults = AppSettings()
    if not path.exists():
        logger.debug("No settings file at {}, using defaults.", path)
        return defaults

    config = ConfigParser()
    config.read(path)
    if not config.has_section(SECTION):
        logger.warning("Settings file {} has no [{}] section.", path, SECTION)
        return AppSettings(source=path)
    is_valid, msg = validate_settings(config)
    if not is_valid:
        logger.warning("Settings file {}: {}", path, msg)

    sec = config[SECTION]
    settings = AppSettings(source=path)
    settings.calibration_collection = _read_choice(
        sec,
        "calibration_collection",
        CALIBRATION_COLLECTIONS,
        defaults.calibration_collection,
    )
    settings.measurement_collection = _read_choice(
        sec,
        "measurement_collection",
        MEASUREMENT_COLLECTIONS,
        defaults.measurement_collection,
    )
    try:
        lo = sec.getfloat("min_threshold", defaults.min_threshold)
        hi = sec.getfloat("max_threshold", defaults.max_threshold)
        if lo <= hi:
            settings.min_threshold, settings.max_threshold = lo, hi
    except ValueError:
        pass  # already reported by validate_settings
    settings.store_dir = str(Path(sec.get("store_dir", defaults.store_dir)).expanduser())
    level = sec.get("log_level", defaults.log_level).upper()
    settings.log_level = level if level in LOG_LEVELS else defaults.log_level
    max_age = sec.get("cache_max_age", "").strip()
    try:
        settings.cache_max_age = float(max_age) if max_age else None
        if settings.cache_max_age is not None and settings.cache_max_age <= 0:
            settings.cache_max_age = None
    except ValueError:
        settings.cache_max_age = None
    return settings


def save_settings(settings: AppSettings, path: Optional[Path] = None) -> Path:
    path = Path(path) if path is not None else SETTINGS_FILE
    path.parent.mkdir(parents=True, exist_ok=True)
    config = ConfigParser()
    config.read_dict({SECTION: settings.to_section()})
    with path.open("w") as f:
        config.write(f)
    logger.debug("Settings written to {}", path)
    return path


def create_default_settings_file(path: Optional[Path] = None, force: bool = False) -> Path:
    """Write the default settings file, keeping an existing one unless `force`."""
    path = Path(path) if path is not None else SETTINGS_FILE
    if path.exists() and not force:
        logger.info("Settings file {} already exists.", path)
        return path
    logger.debug("Creating default settings file at {}", path)
    return save_settings(AppSettings(), path)


def update_setting(key: str, value: str, path: Optional[Path] = None) -> AppSettings:
    """Set one key in the settings file and return the reloaded settings.

    Raises
    ------
    ValueError
        If `key` is unknown or the resulting file does not validate.
    """
    path = Path(path) if path is not None else SETTINGS_FILE
    if key not in AppSettings().to_section():
        raise ValueError(f"Unknown setting: {key}")
    config = ConfigParser()
    if path.exists():
        config.read(path)
    if not config.has_section(SECTION):
        config.read_dict({SECTION: AppSettings().to_section()})
    config[SECTION][key] = value
    is_valid, msg = validate_settings(config)
    if not is_valid:
        raise ValueError(msg)
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w") as f:
        config.write(f)
    return load_settings(path)
