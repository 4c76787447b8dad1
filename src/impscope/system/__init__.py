"""
Application settings (INI file under ~/.impscope).

See Also
--------
impscope.system.settings : Loading, validation and writing of settings
"""

from .settings import (
    CALIBRATION_COLLECTIONS,
    MEASUREMENT_COLLECTIONS,
    SETTINGS_FILE,
    AppSettings,
    create_default_settings_file,
    load_settings,
    save_settings,
    update_setting,
    validate_settings,
)

__all__ = [
    "CALIBRATION_COLLECTIONS",
    "MEASUREMENT_COLLECTIONS",
    "SETTINGS_FILE",
    "AppSettings",
    "create_default_settings_file",
    "load_settings",
    "save_settings",
    "update_setting",
    "validate_settings",
]
