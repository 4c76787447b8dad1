# -*- coding: utf-8 -*-
"""Date stamps for persisted records."""

from datetime import datetime
from typing import Optional

DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def now_stamp(now: Optional[datetime] = None) -> str:
    """Local-time record stamp, e.g. '2024-03-07 14:05:09'.

    Zero padded so that lexical order is chronological order.
    """
    if now is None:
        now = datetime.now()
    return now.strftime(DATE_FORMAT)
