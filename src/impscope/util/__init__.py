# -*- coding: utf-8 -*-
"""
Utility functions and constants for impscope.

This module provides:

- Logging configuration and management
- Default values (thresholds, paths, page size)
- Record date stamps

Examples
--------
Start logging to stderr only:
```python
from impscope.util import start_log
start_log(log_to_file=False, log_to_stdout=True, log_level="DEBUG")
```

See Also
--------
impscope.util.logging : Logging configuration
impscope.util.dates : Record date stamps
"""

from .dates import DATE_FORMAT, now_stamp
from .defaults import (
    CONFIG_DIR,
    DEFAULT_LOGLEVEL,
    DEFAULT_MAX_THRESHOLD,
    DEFAULT_MIN_THRESHOLD,
    DEFAULT_STORE_DIR,
    NO_DEVICE_ID,
    PAGE_SIZE,
)
from .logging import (
    clear_log,
    log_default_path,
    shutdown_log,
    start_log,
)

__all__ = [
    "CONFIG_DIR",
    "DATE_FORMAT",
    "DEFAULT_LOGLEVEL",
    "DEFAULT_MAX_THRESHOLD",
    "DEFAULT_MIN_THRESHOLD",
    "DEFAULT_STORE_DIR",
    "NO_DEVICE_ID",
    "PAGE_SIZE",
    "clear_log",
    "log_default_path",
    "now_stamp",
    "shutdown_log",
    "start_log",
]
