"""
Channel map, record types, protocols, validation and exceptions.

The impscope.types package is the leaf layer every other module builds on:

1. Channels (channels.py)
    - Channel -> bank, in-bank position, reference frequency.

2. Records (records.py)
    - Persisted calibration and measurement records (mashumaro dataclasses).

3. Protocols (protocols.py)
    - The remote record store collaborator.

4. Validation and errors (validation.py, errors.py)
    - ``(is_valid, message)`` validators and the exception taxonomy.

Examples
--------
Resolving a channel:
```python
from impscope.types import resolve
info = resolve(20)
info.bank, info.position_in_bank, info.reference_value  # (Bank.B, 4, 1500)
```

See Also
--------
impscope.calib : Two-point calibration
impscope.meas : Measurement buffer and diagnosis
impscope.sync : Record cache and queries
"""

from .channels import (
    CHANNELS_PER_BANK,
    N_CHANNELS,
    REFERENCE_FREQUENCIES,
    Bank,
    ChannelInfo,
    channels_in,
    is_valid_channel,
    resolve,
)
from .errors import (
    CalibrationDegenerate,
    CalibrationIncomplete,
    OutOfRange,
    RemoteUnavailable,
    Uncalibrated,
    ValidationError,
)
from .protocols import RecordStoreProtocol
from .records import (
    RECORD_TYPES,
    CalibrationRecord,
    MeasurementRecord,
    Record,
    RecordKind,
    StoredBankCalibration,
    record_from_dict,
)
from .validation import validate_device_id, validate_readings, validate_record

__all__ = [
    "CHANNELS_PER_BANK",
    "N_CHANNELS",
    "REFERENCE_FREQUENCIES",
    "Bank",
    "ChannelInfo",
    "channels_in",
    "is_valid_channel",
    "resolve",
    "CalibrationDegenerate",
    "CalibrationIncomplete",
    "OutOfRange",
    "RemoteUnavailable",
    "Uncalibrated",
    "ValidationError",
    "RecordStoreProtocol",
    "RECORD_TYPES",
    "CalibrationRecord",
    "MeasurementRecord",
    "Record",
    "RecordKind",
    "StoredBankCalibration",
    "record_from_dict",
    "validate_device_id",
    "validate_readings",
    "validate_record",
]
