"""Validation utilities for device ids, readings and records.

Validators return ``(is_valid, error_message)`` tuples; the message is empty
when the input is valid. Callers gate UI actions (e.g. "save") on them rather
than catching exceptions.
"""

from __future__ import annotations

import math
from typing import Mapping

from impscope.util.defaults import NO_DEVICE_ID

from .channels import is_valid_channel
from .records import CalibrationRecord, MeasurementRecord, Record


def validate_device_id(device_id: str | None) -> tuple[bool, str]:
    """Validate a device id before it is used as a record key.

    Parameters
    ----------
    device_id : str | None
        Id reported by the device.

    Returns
    -------
    tuple[bool, str]
        (is_valid, error_message)
    """
    if device_id is None or not str(device_id).strip():
        return False, "Empty device id"
    if str(device_id).strip() == NO_DEVICE_ID:
        return False, "Device id not yet reported by the device"
    return True, ""


def validate_readings(readings: Mapping[int, float]) -> tuple[bool, str]:
    """Validate a completed-session mapping of channel -> raw value.

    Returns
    -------
    tuple[bool, str]
        (is_valid, error_message)
    """
    for channel, value in readings.items():
        if not is_valid_channel(channel):
            return False, f"Invalid channel: {channel!r}"
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            return False, f"Non-numeric reading on channel {channel}: {value!r}"
        if not math.isfinite(value):
            return False, f"Non-finite reading on channel {channel}: {value!r}"
    return True, ""


def validate_record(record: Record) -> tuple[bool, str]:
    """Validate a record before it is sent to the record store."""
    if not isinstance(record, (CalibrationRecord, MeasurementRecord)):
        return False, f"Not a record: {type(record).__name__}"
    is_valid, msg = validate_device_id(record.device_id)
    if not is_valid:
        return False, msg
    if not record.date:
        return False, "Empty record date"
    if isinstance(record, CalibrationRecord):
        for name in ("bank_a", "bank_b"):
            bank = getattr(record, name)
            if not (bank.is_empty or bank.has_points):
                return False, f"Partially set calibration in {name}"
    return True, ""
