# -*- coding: utf-8 -*-

from pathlib import Path

DEFAULT_LOGLEVEL = "INFO"

CONFIG_DIR = Path.home() / ".impscope"
DEFAULT_STORE_DIR = CONFIG_DIR / "records"

# diagnosis thresholds used when a bank has no usable calibration
DEFAULT_MIN_THRESHOLD = 2.0
DEFAULT_MAX_THRESHOLD = 8.0

PAGE_SIZE = 30  # records per page in record browsing
NO_DEVICE_ID = "--------"  # shown by the transport before the device reports its id
